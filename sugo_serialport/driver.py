"""Serial port driver for sugo-serialport.

Wraps pyserial in the event-producing surface the adapters bind to:
- list_ports: enumerate serial ports as plain descriptor dicts
- SerialDriver: one port with open/write/flush/drain/pause/resume/set/update/close
  and the open/data/disconnect/close/error events

pyserial is blocking, so incoming data is read by a daemon thread and
published as "data" events while the port is flowing (not paused).
"""

import logging
import threading
from collections.abc import Callable, Mapping
from typing import Any

import serial
import serial.tools.list_ports

from sugo_serialport.config import driver_kwargs
from sugo_serialport.errors import InvalidOptionsError
from sugo_serialport.events import EventPipe
from sugo_serialport.protocol import READ_CHUNK_SIZE, READ_POLL_S, TRACE

logger = logging.getLogger(__name__)

# Control flags accepted by set(), mapped to pyserial attributes
_CONTROL_FLAGS = {
    "brk": "break_condition",
    "dtr": "dtr",
    "rts": "rts",
}

READER_JOIN_TIMEOUT_S = READ_POLL_S * 10


def port_descriptor(info: Any) -> dict[str, Any]:
    """Convert a pyserial ListPortInfo to a port descriptor dict."""
    return {
        "comName": info.device,
        "path": info.device,
        "description": info.description,
        "manufacturer": info.manufacturer,
        "serialNumber": info.serial_number,
        "pnpId": info.hwid,
        "locationId": info.location,
        "vendorId": f"{info.vid:04x}" if info.vid is not None else None,
        "productId": f"{info.pid:04x}" if info.pid is not None else None,
    }


def list_ports() -> list[dict[str, Any]]:
    """Retrieve available serial ports with metadata."""
    ports = [port_descriptor(info) for info in serial.tools.list_ports.comports()]
    logger.debug(f"Found {len(ports)} serial port(s)")
    return ports


def to_bytes(data: Any) -> bytes:
    """Coerce write payloads (bytes, str, list of ints) to bytes."""
    if isinstance(data, (bytes, bytearray, memoryview)):
        return bytes(data)
    if isinstance(data, str):
        return data.encode("utf-8")
    if isinstance(data, (list, tuple)):
        return bytes(data)
    raise TypeError(f"Cannot write {type(data).__name__} to a serial port")


class SerialDriver(EventPipe):
    """One serial port with node-serialport style operations and events.

    The port is not opened by the constructor; call open() after
    subscribing to events. auto_open reports the autoOpen option so the
    caller can decide whether to open immediately.
    """

    def __init__(
        self,
        path: str,
        options: Mapping[str, Any] | None = None,
        serial_factory: Callable[..., serial.SerialBase] = serial.Serial,
    ) -> None:
        super().__init__()
        if not path:
            raise InvalidOptionsError("A serial port path is required")
        self.path = path
        self._kwargs, self.auto_open = driver_kwargs(options)
        self._serial_factory = serial_factory
        self._serial: serial.SerialBase | None = None
        self._state_lock = threading.RLock()
        self._flowing = threading.Event()
        self._flowing.set()
        self._stop: threading.Event | None = None
        self._reader: threading.Thread | None = None

    def __repr__(self) -> str:
        return f"SerialDriver(path={self.path!r}, open={self.is_open()})"

    def _require_open(self) -> serial.SerialBase:
        ser = self._serial
        if ser is None or not ser.is_open:
            raise serial.PortNotOpenError()
        return ser

    def open(self) -> None:
        """Open the port and start the reader thread. Emits "open"."""
        with self._state_lock:
            if self._serial is not None and self._serial.is_open:
                raise serial.SerialException("Port is already open")
            ser = self._serial_factory(timeout=READ_POLL_S, **self._kwargs)
            ser.port = self.path
            ser.open()
            self._serial = ser
            self._start_reader(ser)
        logger.info(f"Opened {self.path} (baudrate={self._kwargs.get('baudrate')})")
        self.emit("open")

    def is_open(self) -> bool:
        return self._serial is not None and self._serial.is_open

    def write(self, data: Any) -> int:
        """Write data to the port. Returns bytes written."""
        ser = self._require_open()
        payload = to_bytes(data)
        written = ser.write(payload) or 0
        logger.log(TRACE, f"Wrote {written} bytes to {self.path}")
        return written

    def pause(self) -> None:
        """Stop delivering "data" events; unread data stays buffered."""
        self._flowing.clear()
        logger.debug(f"Paused {self.path}")

    def resume(self) -> None:
        """Restart "data" event delivery."""
        self._flowing.set()
        logger.debug(f"Resumed {self.path}")

    def flush(self) -> None:
        """Discard data received but not read and written but not transmitted."""
        ser = self._require_open()
        ser.reset_input_buffer()
        ser.reset_output_buffer()

    def drain(self) -> None:
        """Wait until all output data has been transmitted."""
        self._require_open().flush()

    def set(self, options: Mapping[str, Any]) -> None:
        """Set control flags (brk, dtr, rts) on an open port."""
        ser = self._require_open()
        unknown = set(options) - set(_CONTROL_FLAGS)
        if unknown:
            raise InvalidOptionsError(f"Unsupported control flags: {sorted(unknown)}")
        for flag, value in options.items():
            setattr(ser, _CONTROL_FLAGS[flag], bool(value))
        logger.debug(f"Set flags on {self.path}: {dict(options)}")

    def update(self, options: Mapping[str, Any]) -> None:
        """Change the baud rate of an open port."""
        ser = self._require_open()
        baudrate = options.get("baudRate", options.get("baudrate"))
        if not isinstance(baudrate, int) or baudrate <= 0:
            raise InvalidOptionsError(f"Invalid baud rate: {baudrate!r}")
        ser.baudrate = baudrate
        self._kwargs["baudrate"] = baudrate
        logger.info(f"Updated {self.path} baudrate={baudrate}")

    def close(self) -> None:
        """Stop the reader and close the port. Emits "close"."""
        with self._state_lock:
            ser = self._require_open()
            self._stop_reader()
            ser.close()
        logger.info(f"Closed {self.path}")
        self.emit("close")

    # -------------------------------------------------------------------------
    # Reader thread
    # -------------------------------------------------------------------------

    def _start_reader(self, ser: serial.SerialBase) -> None:
        self._stop = threading.Event()
        self._reader = threading.Thread(
            target=self._read_loop,
            args=(ser, self._stop),
            name=f"serial-reader:{self.path}",
            daemon=True,
        )
        self._reader.start()

    def _stop_reader(self) -> None:
        if self._stop is not None:
            self._stop.set()
        reader = self._reader
        if reader is not None and reader is not threading.current_thread():
            reader.join(timeout=READER_JOIN_TIMEOUT_S)
        self._reader = None

    def _read_loop(self, ser: serial.SerialBase, stop: threading.Event) -> None:
        held = b""
        while not stop.is_set():
            if not self._flowing.wait(READ_POLL_S):
                continue
            if held:
                data, held = held, b""
            else:
                try:
                    data = ser.read(min(ser.in_waiting, READ_CHUNK_SIZE) or 1)
                except (serial.SerialException, OSError) as e:
                    if stop.is_set():
                        break
                    self._on_disconnect(ser, stop, e)
                    break
                if not data or stop.is_set():
                    continue
                if not self._flowing.is_set():
                    # Paused during the read
                    held = data
                    continue
            logger.log(TRACE, f"Read {len(data)} bytes from {self.path}")
            try:
                self.emit("data", data)
            except Exception as e:
                logger.exception(f"Listener failed for data event on {self.path}")
                self.emit("error", e)

    def _on_disconnect(self, ser: serial.SerialBase, stop: threading.Event, err: Exception) -> None:
        logger.warning(f"Disconnected from {self.path}: {err}")
        self.emit("disconnect", err)
        with self._state_lock:
            if stop.is_set():
                # close() got there first
                return
            stop.set()
            self._reader = None
            try:
                ser.close()
            except (serial.SerialException, OSError) as close_err:
                logger.warning(f"Failed to close {self.path} after disconnect: {close_err}")
        self.emit("close")

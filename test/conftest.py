"""pytest configuration and fixtures for sugo-serialport tests.

Provides:
- MockSerial: in-memory stand-in for serial.Serial used by SerialDriver
- FakeDriver: recording stand-in for SerialDriver used by adapter tests
- loopback_pty fixture: pty pair with an echo thread for integration tests
- Markers for unit vs integration tests
"""

import os
import sys
import threading
from collections.abc import Generator
from typing import Any

import pytest
import serial

from sugo_serialport.events import EventPipe


class MockSerial:
    """In-memory serial port.

    Bytes given to inject() are returned by read(); written bytes are
    collected in .written. fail_read() makes the next read raise, and
    in_waiting_error makes in_waiting raise; the driver treats both as a
    disconnect.
    """

    def __init__(self, timeout: float | None = None, **kwargs: Any) -> None:
        self.timeout = timeout
        self.kwargs = kwargs
        self.baudrate = kwargs.get("baudrate")
        self.port: str | None = None
        self.is_open = False
        self.written = bytearray()
        self.calls: list[str] = []
        self.break_condition = False
        self.dtr = True
        self.rts = True
        self.open_error: Exception | None = None
        self._rx = bytearray()
        self._read_error: Exception | None = None
        self.in_waiting_error: Exception | None = None
        self._cond = threading.Condition()

    def open(self) -> None:
        if self.open_error is not None:
            raise self.open_error
        self.is_open = True

    def close(self) -> None:
        with self._cond:
            self.is_open = False
            self.calls.append("close")
            self._cond.notify_all()

    def write(self, data: bytes) -> int:
        if not self.is_open:
            raise serial.PortNotOpenError()
        self.written += data
        return len(data)

    @property
    def in_waiting(self) -> int:
        if self.in_waiting_error is not None:
            raise self.in_waiting_error
        with self._cond:
            return len(self._rx)

    def read(self, size: int = 1) -> bytes:
        with self._cond:
            self._cond.wait_for(
                lambda: self._rx or self._read_error is not None or not self.is_open,
                timeout=self.timeout,
            )
            if self._read_error is not None:
                err, self._read_error = self._read_error, None
                raise err
            data = bytes(self._rx[:size])
            del self._rx[:size]
            return data

    def reset_input_buffer(self) -> None:
        with self._cond:
            self.calls.append("reset_input_buffer")
            self._rx.clear()

    def reset_output_buffer(self) -> None:
        self.calls.append("reset_output_buffer")

    def flush(self) -> None:
        self.calls.append("flush")

    def inject(self, data: bytes) -> None:
        """Inject data as if received from the device."""
        with self._cond:
            self._rx += data
            self._cond.notify_all()

    def fail_read(self, err: Exception) -> None:
        with self._cond:
            self._read_error = err
            self._cond.notify_all()


class MockSerialFactory:
    """Callable passed as serial_factory; keeps every MockSerial it creates."""

    def __init__(self) -> None:
        self.instances: list[MockSerial] = []
        self.open_error: Exception | None = None

    def __call__(self, **kwargs: Any) -> MockSerial:
        ser = MockSerial(**kwargs)
        ser.open_error = self.open_error
        self.instances.append(ser)
        return ser

    @property
    def last(self) -> MockSerial:
        return self.instances[-1]


class FakeDriver(EventPipe):
    """SerialDriver stand-in that records calls and emits events synchronously."""

    def __init__(self, path: str, options: dict[str, Any] | None = None) -> None:
        super().__init__()
        self.path = path
        self.options = dict(options or {})
        self.auto_open = bool(self.options.get("autoOpen", True))
        self.calls: list[Any] = []
        self.open_error: Exception | None = None
        self._open = False

    def open(self) -> None:
        self.calls.append("open")
        if self.open_error is not None:
            raise self.open_error
        self._open = True
        self.emit("open")

    def is_open(self) -> bool:
        return self._open

    def write(self, data: Any) -> int:
        self.calls.append(("write", data))
        return len(data)

    def pause(self) -> None:
        self.calls.append("pause")

    def resume(self) -> None:
        self.calls.append("resume")

    def flush(self) -> None:
        self.calls.append("flush")

    def drain(self) -> None:
        self.calls.append("drain")

    def set(self, options: dict[str, Any]) -> None:
        self.calls.append(("set", dict(options)))

    def update(self, options: dict[str, Any]) -> None:
        self.calls.append(("update", dict(options)))

    def close(self) -> None:
        self.calls.append("close")
        if not self._open:
            raise serial.PortNotOpenError()
        self._open = False
        self.emit("close")


class FakeDriverFactory:
    """Driver factory for adapters; open_error applies to the next driver created."""

    def __init__(self) -> None:
        self.created: list[FakeDriver] = []
        self.open_error: Exception | None = None

    def __call__(self, path: str, options: dict[str, Any]) -> FakeDriver:
        driver = FakeDriver(path, options)
        driver.open_error, self.open_error = self.open_error, None
        self.created.append(driver)
        return driver

    @property
    def last(self) -> FakeDriver:
        return self.created[-1]


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: mark test as unit test")
    config.addinivalue_line("markers", "integration: mark test as integration test (requires pty)")


@pytest.fixture
def serial_factory() -> MockSerialFactory:
    return MockSerialFactory()


@pytest.fixture
def drivers() -> FakeDriverFactory:
    return FakeDriverFactory()


@pytest.fixture
def loopback_pty() -> Generator[str, None, None]:
    """Create a pty pair whose master echoes everything back.

    Yields the slave device path; bytes written to it are read back from it.
    """
    if sys.platform not in ("linux", "darwin"):
        pytest.skip("pty loopback requires Linux/macOS")
    import pty

    master_fd, slave_fd = pty.openpty()
    slave_name = os.ttyname(slave_fd)
    running = True

    def echo_loop() -> None:
        while running:
            try:
                data = os.read(master_fd, 4096)
                if data:
                    os.write(master_fd, data)
            except OSError:
                break

    echo_thread = threading.Thread(target=echo_loop, daemon=True)
    echo_thread.start()
    try:
        yield slave_name
    finally:
        running = False
        os.close(slave_fd)
        os.close(master_fd)

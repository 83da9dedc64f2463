"""Interface variant of the serial port adapter.

Every action receives an InterfaceContext carrying the positional params
sent by the remote terminal and the pipe used to push events back to it.
The port is closed automatically after config.timeout milliseconds
without an open or write.
"""

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

import serial

from sugo_serialport.adapter import DriverFactory, SerialportAdapter
from sugo_serialport.config import AdapterConfig
from sugo_serialport.driver import SerialDriver, list_ports
from sugo_serialport.events import EventPipe
from sugo_serialport.requirements import assert_bins
from sugo_serialport.spec import action, find_action, interface_spec
from sugo_serialport.timer import IdleTimer

logger = logging.getLogger(__name__)


@dataclass
class InterfaceContext:
    """Invocation context: positional params and the pipe to the remote terminal."""

    params: list[Any] = field(default_factory=list)
    pipe: EventPipe = field(default_factory=EventPipe)

    @classmethod
    def coerce(cls, ctx: "InterfaceContext | Mapping[str, Any] | None") -> "InterfaceContext":
        """Accept a context object, a plain dict, or nothing."""
        if ctx is None:
            return cls()
        if isinstance(ctx, InterfaceContext):
            return ctx
        return cls(
            params=list(ctx.get("params") or []),
            pipe=ctx.get("pipe") or EventPipe(),
        )

    def param(self, index: int, default: Any = None) -> Any:
        return self.params[index] if index < len(self.params) else default


Ctx = InterfaceContext | Mapping[str, Any] | None


class SerialportInterface(SerialportAdapter):
    """SUGOS interface to access serial ports."""

    def __init__(
        self,
        config: AdapterConfig | Mapping[str, Any] | None = None,
        driver_factory: DriverFactory = SerialDriver,
    ) -> None:
        super().__init__(config, driver_factory)
        self._idle = IdleTimer(self.config.timeout, self._close_idle)

    @property
    def spec(self) -> dict[str, Any]:
        return interface_spec()

    @property
    def idle_timer(self) -> IdleTimer:
        return self._idle

    def invoke(self, name: str, ctx: Ctx = None) -> Any:
        """Call the action bound to wire name with an invocation context."""
        return find_action(self, name)(ctx)

    def _close_idle(self) -> None:
        driver = self._driver
        if driver is None or not driver.is_open():
            return
        try:
            driver.close()
        except (serial.SerialException, OSError) as e:
            logger.warning(f"Failed to close idle port {driver.path}: {e}")

    @action("ping")
    def ping(self, ctx: Ctx = None) -> str:
        """Return the first param, or "pong"."""
        return InterfaceContext.coerce(ctx).param(0) or "pong"

    @action("assert")
    def assert_(self, ctx: Ctx = None) -> bool:
        """Assert spot system requirements.

        Raises RequirementError naming the first missing command.
        """
        return assert_bins(self.required_bins)

    @action("list")
    def list(self, ctx: Ctx = None) -> list[dict[str, Any]]:
        return list_ports()

    @action("SerialPort")
    def serial_port(self, ctx: Ctx = None) -> None:
        """Create a serial port from params [path, options, openCallback].

        Driver events are relayed to ctx.pipe. openCallback, when given, is
        called with None after a successful open or with the error.
        """
        context = InterfaceContext.coerce(ctx)
        path = context.param(0)
        options = context.param(1)
        open_callback: Callable[[Exception | None], None] | None = context.param(2)
        try:
            driver = self._connect(path, options, context.pipe)
        except Exception as e:
            if open_callback is not None:
                open_callback(e)
            raise
        if open_callback is not None:
            open_callback(None)
        if driver.is_open():
            self._idle.arm()

    @action("open")
    def open(self, ctx: Ctx = None) -> None:
        self.driver.open()
        self._idle.arm()

    @action("isOpen")
    def is_open(self, ctx: Ctx = None) -> bool:
        return self.driver.is_open()

    @action("write")
    def write(self, ctx: Ctx = None) -> int:
        """Write params[0] to the port and restart the idle timer."""
        data = InterfaceContext.coerce(ctx).param(0)
        written = self.driver.write(data)
        self._idle.arm()
        return written

    @action("pause")
    def pause(self, ctx: Ctx = None) -> None:
        self.driver.pause()

    @action("resume")
    def resume(self, ctx: Ctx = None) -> None:
        self.driver.resume()

    @action("flush")
    def flush(self, ctx: Ctx = None) -> None:
        self.driver.flush()

    @action("drain")
    def drain(self, ctx: Ctx = None) -> None:
        self.driver.drain()

    @action("close")
    def close(self, ctx: Ctx = None) -> None:
        driver = self.driver
        self._idle.cancel()
        driver.close()

    @action("set")
    def set(self, ctx: Ctx = None) -> None:
        self.driver.set(InterfaceContext.coerce(ctx).param(0) or {})

    @action("update")
    def update(self, ctx: Ctx = None) -> None:
        self.driver.update(InterfaceContext.coerce(ctx).param(0) or {})

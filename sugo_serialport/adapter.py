"""Serial port adapters exposing driver operations to a SUGO actor.

Contains:
- SerialportAdapter: shared connection slot, connect logic and $spec access
- SerialportModule: module variant, positional arguments, events emitted
  on the module itself, connection created with connect()
"""

import logging
import threading
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from typing import Any

import serial

from sugo_serialport.config import AdapterConfig
from sugo_serialport.driver import SerialDriver, list_ports
from sugo_serialport.errors import InvalidOptionsError, NotConnectedError
from sugo_serialport.events import Emitter, EventPipe, relay_events
from sugo_serialport.protocol import PIPE_EVENTS, REQUIRED_BINS
from sugo_serialport.requirements import assert_bins
from sugo_serialport.spec import action, find_action, module_spec

logger = logging.getLogger(__name__)

DriverFactory = Callable[[str, Mapping[str, Any]], SerialDriver]


class SerialportAdapter(ABC):
    """Base for adapters owning at most one serial port handle.

    The handle lives in a per-instance slot. It is set by a successful
    connect and kept after close, so isOpen() reports the driver's own
    state. Connects are serialized. A connect that replaces a live handle
    opens the new port first and then closes the old one, unless both use
    the same path, in which case the old handle is closed first.
    """

    required_bins: tuple[str, ...] = REQUIRED_BINS

    def __init__(
        self,
        config: AdapterConfig | Mapping[str, Any] | None = None,
        driver_factory: DriverFactory = SerialDriver,
    ) -> None:
        self.config = AdapterConfig.from_mapping(config)
        logger.debug(f"Config: {self.config}")
        self._driver_factory = driver_factory
        self._driver: SerialDriver | None = None
        self._connect_lock = threading.RLock()

    def __getattr__(self, name: str) -> Any:
        # Host frameworks look the descriptor up as "$spec"
        if name == "$spec":
            return self.spec
        raise AttributeError(f"{type(self).__name__!r} object has no attribute {name!r}")

    @property
    @abstractmethod
    def spec(self) -> dict[str, Any]:
        """Capability descriptor of this adapter variant."""
        pass

    @property
    def driver(self) -> SerialDriver:
        """The connected driver, or NotConnectedError."""
        driver = self._driver
        if driver is None:
            raise NotConnectedError()
        return driver

    @property
    def connected(self) -> bool:
        return self._driver is not None

    def _connect(
        self,
        path: str | None,
        options: Mapping[str, Any] | None,
        pipe: Emitter,
    ) -> SerialDriver:
        """Create a driver, relay its events to pipe, and open it (unless autoOpen is false)."""
        path = path or self.config.path
        if not path:
            raise InvalidOptionsError("A serial port path is required")
        with self._connect_lock:
            driver = self._driver_factory(path, self.config.merged_options(options))
            logger.debug(f"Create pipe for events: {list(PIPE_EVENTS)}")
            relay_events(driver, pipe, PIPE_EVENTS)

            previous = self._driver
            replaced = previous is not None and previous.is_open()
            if replaced and previous.path == path:
                # The same device cannot be held twice
                logger.warning(f"Closing previous connection to {path} before reopening it")
                previous.close()
                replaced = False

            if driver.auto_open:
                driver.open()
            self._driver = driver

            if replaced:
                logger.warning(f"Closing previous connection to {previous.path}")
                try:
                    previous.close()
                except (serial.SerialException, OSError) as e:
                    logger.warning(f"Failed to close previous connection to {previous.path}: {e}")
        logger.info(f"Connected to {path}")
        return driver


class SerialportModule(SerialportAdapter, EventPipe):
    """SUGOS module to access serial ports.

    Methods take positional arguments and driver events are emitted on the
    module itself (register listeners with on()).
    """

    def __init__(
        self,
        config: AdapterConfig | Mapping[str, Any] | None = None,
        driver_factory: DriverFactory = SerialDriver,
    ) -> None:
        SerialportAdapter.__init__(self, config, driver_factory)
        EventPipe.__init__(self)

    @property
    def spec(self) -> dict[str, Any]:
        return module_spec()

    def invoke(self, name: str, *params: Any) -> Any:
        """Call the action bound to wire name with positional params."""
        return find_action(self, name)(*params)

    @action("ping")
    def ping(self, pong: str = "pong") -> str:
        return pong

    @action("assert")
    def assert_(self) -> bool:
        """Assert actor system requirements.

        Raises RequirementError naming the first missing command.
        """
        return assert_bins(self.required_bins)

    @action("list")
    def list(self) -> list[dict[str, Any]]:
        """Retrieve available serial ports with metadata."""
        return list_ports()

    @action("connect")
    def connect(self, path: str | None = None, options: Mapping[str, Any] | None = None) -> None:
        """Connect to path, relaying data/error/close/disconnect/open to this module."""
        self._connect(path, options, self)

    @action("open")
    def open(self) -> None:
        self.driver.open()

    @action("isOpen")
    def is_open(self) -> bool:
        return self.driver.is_open()

    @action("write")
    def write(self, data: Any) -> int:
        return self.driver.write(data)

    @action("pause")
    def pause(self) -> None:
        self.driver.pause()

    @action("resume")
    def resume(self) -> None:
        self.driver.resume()

    @action("flush")
    def flush(self) -> None:
        self.driver.flush()

    @action("drain")
    def drain(self) -> None:
        self.driver.drain()

    @action("close")
    def close(self) -> None:
        self.driver.close()

    @action("set")
    def set(self, options: Mapping[str, Any]) -> None:
        self.driver.set(options)

    @action("update")
    def update(self, options: Mapping[str, Any]) -> None:
        self.driver.update(options)

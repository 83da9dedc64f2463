"""Adapter configuration and driver option translation.

Contains:
- AdapterConfig: path, driver options and idle timeout given at construction
- driver_kwargs: translate node-serialport style options to pyserial kwargs
- timeout_seconds: normalize a millisecond timeout (None/inf mean never)
"""

import logging
import math
import os
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping

import serial

from sugo_serialport.errors import InvalidOptionsError
from sugo_serialport.protocol import DEFAULT_BAUDRATE

logger = logging.getLogger(__name__)

_PARITY = {
    "none": serial.PARITY_NONE,
    "even": serial.PARITY_EVEN,
    "odd": serial.PARITY_ODD,
    "mark": serial.PARITY_MARK,
    "space": serial.PARITY_SPACE,
}

_BYTESIZE = {
    5: serial.FIVEBITS,
    6: serial.SIXBITS,
    7: serial.SEVENBITS,
    8: serial.EIGHTBITS,
}

_STOPBITS = {
    1: serial.STOPBITS_ONE,
    1.5: serial.STOPBITS_ONE_POINT_FIVE,
    2: serial.STOPBITS_TWO,
}

# node-serialport name -> pyserial name
_ALIASES = {
    "baudRate": "baudrate",
    "dataBits": "bytesize",
    "stopBits": "stopbits",
    "lock": "exclusive",
    "writeTimeout": "write_timeout",
}

# Keys passed straight to serial.Serial after translation
_PYSERIAL_KEYS = {
    "baudrate",
    "bytesize",
    "parity",
    "stopbits",
    "xonxoff",
    "rtscts",
    "dsrdtr",
    "write_timeout",
    "inter_byte_timeout",
    "exclusive",
}


@dataclass(frozen=True)
class AdapterConfig:
    """Configuration passed once to an adapter.

    Attributes:
        path: Default serial device path used when connect omits one.
        options: Default driver options merged under per-call options.
        timeout: Idle auto-close timeout in milliseconds, None or inf = never.
    """

    path: str | None = None
    options: Mapping[str, Any] = field(default_factory=dict)
    timeout: float | None = None

    def __post_init__(self) -> None:
        """Freeze options and validate timeout."""
        object.__setattr__(self, "options", MappingProxyType(dict(self.options)))
        if self.timeout is not None and (math.isnan(self.timeout) or self.timeout < 0):
            raise ValueError(f"timeout must be a non-negative number, got {self.timeout}")

    @classmethod
    def from_mapping(cls, config: "AdapterConfig | Mapping[str, Any] | None") -> "AdapterConfig":
        """Build a config from a plain dict (as a host framework passes it)."""
        if config is None:
            return cls()
        if isinstance(config, AdapterConfig):
            return config
        unknown = set(config) - {"path", "options", "timeout"}
        if unknown:
            raise ValueError(f"Unknown config keys: {sorted(unknown)}")
        return cls(
            path=config.get("path"),
            options=config.get("options") or {},
            timeout=config.get("timeout"),
        )

    @classmethod
    def from_env(cls) -> "AdapterConfig":
        """Build a config from SUGO_SERIALPORT_* environment variables."""
        path = os.environ.get("SUGO_SERIALPORT_PATH") or None
        options: dict[str, Any] = {}
        baudrate = os.environ.get("SUGO_SERIALPORT_BAUDRATE")
        if baudrate:
            options["baudRate"] = int(baudrate)
        timeout_env = os.environ.get("SUGO_SERIALPORT_TIMEOUT", "")
        timeout: float | None = None
        if timeout_env:
            timeout = math.inf if timeout_env.lower() in ("inf", "infinity") else float(timeout_env)
        return cls(path=path, options=options, timeout=timeout)

    def merged_options(self, options: Mapping[str, Any] | None) -> dict[str, Any]:
        """Return config options overlaid with per-call options."""
        merged = dict(self.options)
        if options:
            merged.update(options)
        return merged


def timeout_seconds(timeout_ms: float | None) -> float | None:
    """Convert a millisecond timeout to seconds; None means never fire."""
    if timeout_ms is None or math.isinf(timeout_ms):
        return None
    return timeout_ms / 1000.0


def _parity(value: Any) -> str:
    if value in _PARITY.values():
        return value
    try:
        return _PARITY[str(value).lower()]
    except KeyError:
        raise InvalidOptionsError(f"Invalid parity: {value!r}")


def driver_kwargs(options: Mapping[str, Any] | None) -> tuple[dict[str, Any], bool]:
    """Translate driver options to serial.Serial keyword arguments.

    Accepts node-serialport names (baudRate, dataBits, stopBits, parity,
    rtscts, xon, xoff, lock, autoOpen) as well as pyserial names.

    Returns (kwargs, auto_open).
    Raises InvalidOptionsError for unknown keys or unsupported values.
    """
    opts = dict(options or {})
    auto_open = bool(opts.pop("autoOpen", True))

    kwargs: dict[str, Any] = {"baudrate": DEFAULT_BAUDRATE}
    xon = opts.pop("xon", None)
    xoff = opts.pop("xoff", None)
    if xon is not None or xoff is not None:
        kwargs["xonxoff"] = bool(xon or xoff)

    for key, value in opts.items():
        name = _ALIASES.get(key, key)
        if name not in _PYSERIAL_KEYS:
            raise InvalidOptionsError(f"Unknown serial port option: {key}")
        if name == "bytesize":
            if value not in _BYTESIZE:
                raise InvalidOptionsError(f"Invalid data bits: {value!r}")
            value = _BYTESIZE[value]
        elif name == "stopbits":
            if value not in _STOPBITS:
                raise InvalidOptionsError(f"Invalid stop bits: {value!r}")
            value = _STOPBITS[value]
        elif name == "parity":
            value = _parity(value)
        elif name == "baudrate":
            if not isinstance(value, int) or value <= 0:
                raise InvalidOptionsError(f"Invalid baud rate: {value!r}")
        kwargs[name] = value

    logger.debug(f"Driver options {dict(options or {})} -> {kwargs} (autoOpen={auto_open})")
    return kwargs, auto_open

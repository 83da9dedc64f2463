"""SUGOS adapter to access serial ports.

This package exposes a pyserial driver to a SUGO actor:
- adapter: SerialportModule (positional args, connect)
- interface: SerialportInterface (ctx params, SerialPort, idle auto-close)
- driver: SerialDriver event-producing port, list_ports
- spec: $spec descriptors and validation
- config: AdapterConfig and driver option translation
- events: EventPipe emitter and event relay
"""

from collections.abc import Mapping
from typing import Any

from sugo_serialport.adapter import SerialportAdapter, SerialportModule
from sugo_serialport.config import AdapterConfig, driver_kwargs
from sugo_serialport.driver import SerialDriver, list_ports
from sugo_serialport.errors import (
    InvalidOptionsError,
    NotConnectedError,
    RequirementError,
    SerialportError,
    SpecValidationError,
)
from sugo_serialport.events import EventPipe, relay_events
from sugo_serialport.interface import InterfaceContext, SerialportInterface
from sugo_serialport.protocol import NAME, PIPE_EVENTS, VERSION
from sugo_serialport.spec import (
    implemented_methods,
    interface_spec,
    module_spec,
    validate_spec,
)


def create(config: AdapterConfig | Mapping[str, Any] | None = None) -> SerialportModule:
    """Create a module instance."""
    return SerialportModule(config)


def sugo_interface_serialport(
    config: AdapterConfig | Mapping[str, Any] | None = None,
) -> SerialportInterface:
    """Create an interface instance."""
    return SerialportInterface(config)


__all__ = [
    # Adapters
    "SerialportAdapter",
    "SerialportModule",
    "SerialportInterface",
    "InterfaceContext",
    "create",
    "sugo_interface_serialport",
    # Driver
    "SerialDriver",
    "list_ports",
    # Config
    "AdapterConfig",
    "driver_kwargs",
    # Events
    "EventPipe",
    "relay_events",
    "PIPE_EVENTS",
    # Spec
    "implemented_methods",
    "interface_spec",
    "module_spec",
    "validate_spec",
    "NAME",
    "VERSION",
    # Exceptions
    "InvalidOptionsError",
    "NotConnectedError",
    "RequirementError",
    "SerialportError",
    "SpecValidationError",
]

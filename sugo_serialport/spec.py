"""Capability descriptor ($spec) for sugo-serialport adapters.

The host framework discovers and validates adapters through a static
descriptor of method names, parameters and events. This module contains:
- action: decorator binding a Python method to its wire name
- implemented_methods / find_action: look up bound wire names on an adapter
- ParamSpec, ValueSpec, MethodSpec, EventSpec: descriptor dataclasses
- module_spec / interface_spec: descriptors for the two adapter variants
- validate_spec: structural check of a descriptor dict
"""

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, TypeVar

from sugo_serialport.errors import SpecValidationError
from sugo_serialport.protocol import DESCRIPTION, NAME, VERSION

F = TypeVar("F", bound=Callable[..., Any])

_ACTION_ATTR = "__sugo_action__"


def action(name: str) -> Callable[[F], F]:
    """Mark a method as the implementation of wire method name."""

    def decorate(func: F) -> F:
        setattr(func, _ACTION_ATTR, name)
        return func

    return decorate


def _actions(obj: Any) -> dict[str, str]:
    """Map wire name -> Python attribute name for obj's class."""
    found: dict[str, str] = {}
    for attr in dir(type(obj)):
        wire = getattr(getattr(type(obj), attr, None), _ACTION_ATTR, None)
        if wire is not None:
            found[wire] = attr
    return found


def implemented_methods(obj: Any) -> set[str]:
    """Return the public wire names obj implements ($/_ prefixed excluded)."""
    return {name for name in _actions(obj) if not name.startswith(("$", "_"))}


def find_action(obj: Any, name: str) -> Callable[..., Any]:
    """Return the bound method implementing wire name, or raise AttributeError."""
    attr = _actions(obj).get(name)
    if attr is None:
        raise AttributeError(f"{type(obj).__name__} has no action {name!r}")
    return getattr(obj, attr)


# -----------------------------------------------------------------------------
# Descriptor types
# -----------------------------------------------------------------------------


@dataclass
class ParamSpec:
    """A single positional parameter of a method."""

    name: str
    type: str
    desc: str

    def to_dict(self) -> dict[str, str]:
        return {"name": self.name, "type": self.type, "desc": self.desc}


@dataclass
class ValueSpec:
    """A return value or a thrown error."""

    type: str
    desc: str

    def to_dict(self) -> dict[str, str]:
        return {"type": self.type, "desc": self.desc}


@dataclass
class MethodSpec:
    """Descriptor for one remotely callable method."""

    desc: str
    params: list[ParamSpec] = field(default_factory=list)
    returns: ValueSpec | None = None
    throws: list[ValueSpec] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"desc": self.desc, "params": [p.to_dict() for p in self.params]}
        if self.returns is not None:
            d["return"] = self.returns.to_dict()
        if self.throws:
            d["throws"] = [t.to_dict() for t in self.throws]
        return d


@dataclass
class EventSpec:
    """Descriptor for one republished event."""

    desc: str

    def to_dict(self) -> dict[str, str]:
        return {"desc": self.desc}


def build_spec(
    methods: Mapping[str, MethodSpec],
    events: Mapping[str, EventSpec] | None = None,
) -> dict[str, Any]:
    """Assemble a descriptor dict from method and event specs."""
    spec: dict[str, Any] = {
        "name": NAME,
        "version": VERSION,
        "desc": DESCRIPTION,
        "methods": {name: m.to_dict() for name, m in methods.items()},
    }
    if events:
        spec["events"] = {name: e.to_dict() for name, e in events.items()}
    return spec


# -----------------------------------------------------------------------------
# Serial port descriptors
# -----------------------------------------------------------------------------

_PORT_METHODS = {
    "close": MethodSpec("Close the given serial port."),
    "drain": MethodSpec("Waits until all output data has been transmitted to the serial port."),
    "flush": MethodSpec("Flushes data received but not read."),
    "isOpen": MethodSpec(
        "Returns true if the port is open.",
        returns=ValueSpec("boolean", "Open state reported by the driver"),
    ),
    "open": MethodSpec("Open a serial port."),
    "pause": MethodSpec("Pauses an open connection."),
    "resume": MethodSpec("Resumes a paused connection."),
    "set": MethodSpec(
        "Sets flags on an open port.",
        params=[ParamSpec("options", "object", "Control flags (brk, dtr, rts)")],
    ),
    "update": MethodSpec(
        "Changes the baudrate for an open port.",
        params=[ParamSpec("options", "object", "Options with baudRate")],
    ),
    "write": MethodSpec(
        "Write data to the given serial port.",
        params=[ParamSpec("data", "object", "Buffer data to write")],
        returns=ValueSpec("number", "Number of bytes written"),
    ),
}

_LIST_METHOD = MethodSpec(
    "Retrieves a list of available serial ports with metadata.",
    throws=[ValueSpec("Error", "Listing failed")],
    returns=ValueSpec("array", "The list of serial ports"),
)

EVENTS = {
    "open": EventSpec("Emitted with no payload when the port is opened and ready for writing."),
    "close": EventSpec("Emitted with no payload when the port is closed."),
    "disconnect": EventSpec(
        "Emitted with an error object before a close event if a disconnection is detected."
    ),
    "data": EventSpec("Emitted with the bytes received from the port."),
    "error": EventSpec("Emitted with an error object whenever there is an error."),
}


def _ping(target: str) -> MethodSpec:
    return MethodSpec(
        f"Test the reachability of an {target}.",
        params=[ParamSpec("pong", "string", "Pong message to return")],
        returns=ValueSpec("string", "Pong message"),
    )


def _assert(host: str) -> MethodSpec:
    return MethodSpec(
        f"Test if the {host} fulfills system requirements",
        throws=[ValueSpec("Error", "System requirements failed")],
        returns=ValueSpec("boolean", "System is OK"),
    )


def module_spec() -> dict[str, Any]:
    """Descriptor for the module variant (positional args, connect)."""
    methods = {
        "ping": _ping("module"),
        "assert": _assert("actor"),
        "list": _LIST_METHOD,
        "connect": MethodSpec(
            "Create a new connection",
            params=[
                ParamSpec("path", "string", "path"),
                ParamSpec("options", "object", "options"),
            ],
        ),
        **_PORT_METHODS,
    }
    return build_spec(methods, EVENTS)


def interface_spec() -> dict[str, Any]:
    """Descriptor for the interface variant (ctx params, SerialPort)."""
    methods = {
        "ping": _ping("interface"),
        "assert": _assert("spot"),
        "list": _LIST_METHOD,
        "SerialPort": MethodSpec(
            "Create a new serial port object",
            params=[
                ParamSpec("path", "string", "path"),
                ParamSpec("options", "object", "options"),
                ParamSpec("openCallback", "function", "open callback"),
            ],
        ),
        **_PORT_METHODS,
    }
    return build_spec(methods, EVENTS)


# -----------------------------------------------------------------------------
# Validation
# -----------------------------------------------------------------------------


def _check_str(problems: list[str], where: str, value: Any) -> None:
    if not isinstance(value, str) or not value:
        problems.append(f"{where} must be a non-empty string")


def _check_value(problems: list[str], where: str, value: Any) -> None:
    if not isinstance(value, Mapping):
        problems.append(f"{where} must be an object")
        return
    _check_str(problems, f"{where}.type", value.get("type"))
    _check_str(problems, f"{where}.desc", value.get("desc"))


def validate_spec(spec: Mapping[str, Any]) -> None:
    """Validate a descriptor dict.

    Raises SpecValidationError listing every problem found.
    """
    problems: list[str] = []
    for key in ("name", "version"):
        _check_str(problems, key, spec.get(key))
    if "desc" in spec and not isinstance(spec["desc"], str):
        problems.append("desc must be a string")

    methods = spec.get("methods")
    if not isinstance(methods, Mapping) or not methods:
        problems.append("methods must be a non-empty object")
        methods = {}
    for name, method in methods.items():
        where = f"methods.{name}"
        if not isinstance(method, Mapping):
            problems.append(f"{where} must be an object")
            continue
        _check_str(problems, f"{where}.desc", method.get("desc"))
        params = method.get("params")
        if not isinstance(params, list):
            problems.append(f"{where}.params must be an array")
            params = []
        for i, param in enumerate(params):
            if not isinstance(param, Mapping):
                problems.append(f"{where}.params[{i}] must be an object")
                continue
            for key in ("name", "type", "desc"):
                _check_str(problems, f"{where}.params[{i}].{key}", param.get(key))
        if "return" in method:
            _check_value(problems, f"{where}.return", method["return"])
        throws = method.get("throws", [])
        if not isinstance(throws, list):
            problems.append(f"{where}.throws must be an array")
            throws = []
        for i, thrown in enumerate(throws):
            _check_value(problems, f"{where}.throws[{i}]", thrown)

    events = spec.get("events", {})
    if not isinstance(events, Mapping):
        problems.append("events must be an object")
        events = {}
    for name, event in events.items():
        if not isinstance(event, Mapping):
            problems.append(f"events.{name} must be an object")
            continue
        _check_str(problems, f"events.{name}.desc", event.get("desc"))

    if problems:
        raise SpecValidationError(problems)

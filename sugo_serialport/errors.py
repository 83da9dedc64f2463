"""Exceptions for sugo-serialport.

Contains:
- NotConnectedError: operation needs a port handle but none is held
- RequirementError: a required host command is missing
- InvalidOptionsError: driver options cannot be translated
- SpecValidationError: capability descriptor is malformed
"""

from sugo_serialport.protocol import NOT_CONNECTED


class SerialportError(Exception):
    """Base class for adapter errors raised by this package."""

    pass


class NotConnectedError(SerialportError):
    """Raised when an I/O operation is invoked before connect."""

    def __init__(self, message: str = NOT_CONNECTED) -> None:
        super().__init__(message)


class RequirementError(SerialportError):
    """Raised when the host does not fulfill system requirements."""

    pass


class InvalidOptionsError(SerialportError, ValueError):
    """Raised when driver options contain unknown or invalid keys."""

    pass


class SpecValidationError(SerialportError):
    """Raised when a capability descriptor fails validation."""

    def __init__(self, problems: list[str]) -> None:
        self.problems = problems
        super().__init__("; ".join(problems))

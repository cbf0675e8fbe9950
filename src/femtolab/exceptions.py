"""
Exception hierarchy for the femtolab instrument drivers.

All exceptions inherit from :class:`FemtolabError` so callers can catch
broadly (``except FemtolabError``) or narrowly (``except ParseError``).
"""


class FemtolabError(Exception):
    """Base exception for all femtolab errors."""


class ConnectionError(FemtolabError):  # noqa: A001 – intentional shadow of builtin
    """Raised when the serial connection is unavailable or fails to open."""


class TransportError(FemtolabError):
    """Raised when a write or read on an open serial link fails."""


class TimeoutError(TransportError):  # noqa: A001 – intentional shadow of builtin
    """Raised when the device does not answer with a complete line in time.

    Attributes:
        partial: Text that arrived before the timeout, without a terminator.
    """

    def __init__(self, message: str, partial: str = "") -> None:
        self.partial = partial
        super().__init__(message)


class DeviceNotReadyError(FemtolabError):
    """Raised when the shooter never reports a reset counter during startup."""

    def __init__(self, port: str, last_line: str) -> None:
        self.port = port
        self.last_line = last_line
        super().__init__(f"Device on {port} is not ready; last line read: {last_line!r}")


class ParseError(FemtolabError):
    """Raised when a response cannot be parsed into the expected value."""

    def __init__(self, message: str, response: str = "") -> None:
        self.response = response
        super().__init__(message)


class ValidationError(FemtolabError):
    """Raised when an argument fails pre-send validation."""


class ShootingDisabledError(FemtolabError):
    """Raised by :meth:`~femtolab.shooter.LaserShooter.shoot` while shooting is disallowed."""

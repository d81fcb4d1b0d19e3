"""Exception hierarchy for nm-bridge.

Every failure raised by the bridge derives from NMBridgeError and carries a
message, a details mapping and an optional cause, so the CLI and HTTP layers
can report errors uniformly.
"""

from enum import Enum
from typing import Any


class ErrorSeverity(Enum):
    """Error severity levels for monitoring and logging."""

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class NMBridgeError(Exception):
    """Base exception for all nm-bridge errors.

    Attributes:
        message: Human-readable error message
        details: Additional context as key-value pairs
        severity: Error severity level
    """

    severity: ErrorSeverity = ErrorSeverity.ERROR

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.cause = cause

    def __str__(self) -> str:
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({detail_str})"
        return self.message

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to a dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "severity": self.severity.value,
            "details": self.details,
        }


class ConfigurationError(NMBridgeError):
    """Configuration validation or loading error."""

    pass


class TransportError(NMBridgeError):
    """The system bus could not be reached.

    Raised when:
    - The bus socket is missing or refuses the connection
    - The connection drops during a call
    """

    severity = ErrorSeverity.CRITICAL


class LockError(NMBridgeError):
    """The shared client cell could not be locked."""

    pass


class NotInitializedError(NMBridgeError):
    """An operation was invoked before the bus client exists."""

    pass


class OperationError(NMBridgeError):
    """A remote call returned an error reply.

    The D-Bus error name and the remote message are kept in ``details``.
    """

    def __init__(
        self,
        message: str,
        dbus_name: str | None = None,
        details: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        details = details or {}
        if dbus_name is not None:
            details["dbus_name"] = dbus_name
        super().__init__(message, details, cause)
        self.dbus_name = dbus_name


class PermissionDeniedError(OperationError):
    """The service refused the call for lack of authorization."""

    severity = ErrorSeverity.WARNING


class UnsupportedSecurityError(NMBridgeError):
    """Requested security kind cannot be expressed as connection settings."""

    severity = ErrorSeverity.WARNING


class NotImplementedOperationError(NMBridgeError):
    """Reserved for call paths that are not available yet."""

    pass


class ValidationError(NMBridgeError):
    """Input validation errors.

    Raised when:
    - A connection request has an empty or oversized SSID
    """

    severity = ErrorSeverity.WARNING

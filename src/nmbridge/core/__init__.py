"""Core infrastructure module.

Provides foundational components:
- Configuration management with validation
- Custom exception hierarchy
- Structured logging
- Thread-safe primitives
"""

from .config import Config, ConfigManager, load_config
from .errors import (
    NMBridgeError,
    ConfigurationError,
    TransportError,
    LockError,
    NotInitializedError,
    OperationError,
    PermissionDeniedError,
    UnsupportedSecurityError,
    NotImplementedOperationError,
    ValidationError,
)
from .logging import setup_logging, get_logger
from .threading import ClientCell, ReadWriteLock, StoppableThread

__all__ = [
    # Config
    "Config",
    "ConfigManager",
    "load_config",
    # Errors
    "NMBridgeError",
    "ConfigurationError",
    "TransportError",
    "LockError",
    "NotInitializedError",
    "OperationError",
    "PermissionDeniedError",
    "UnsupportedSecurityError",
    "NotImplementedOperationError",
    "ValidationError",
    # Logging
    "setup_logging",
    "get_logger",
    # Threading
    "ClientCell",
    "ReadWriteLock",
    "StoppableThread",
]

"""D-Bus access layer.

Provides:
- BusClient for property reads/writes and method calls
- SignalSource for state-change signal subscriptions
- Typed decoders for bus values
"""

from .client import BusClient, REMOTE_ERRORS, read_property
from .signals import SignalSource

__all__ = [
    "BusClient",
    "REMOTE_ERRORS",
    "read_property",
    "SignalSource",
]

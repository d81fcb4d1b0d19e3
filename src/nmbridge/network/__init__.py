"""Network state and control over NetworkManager.

Provides:
- NetworkContext owning the bus client and exposing every operation
- NetworkRecord and SecurityType data model
- ChangeNotifier for debounced change events
- BandwidthTracker for interface traffic counters
"""

from .context import NetworkContext
from .models import ActivationResult, ConnectionRequest, NetworkRecord, SecurityType
from .notifier import ChangeNotifier, Debouncer
from .security import classify, classify_key_mgmt
from .stats import BandwidthStats, BandwidthTracker, list_interfaces

__all__ = [
    "NetworkContext",
    "ActivationResult",
    "ConnectionRequest",
    "NetworkRecord",
    "SecurityType",
    "ChangeNotifier",
    "Debouncer",
    "classify",
    "classify_key_mgmt",
    "BandwidthStats",
    "BandwidthTracker",
    "list_interfaces",
]

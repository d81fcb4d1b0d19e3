"""Data model for resolved network state."""

from dataclasses import asdict, dataclass, replace
from enum import Enum
from typing import Any

UNKNOWN = "Unknown"
NO_IP_ADDRESS = "0.0.0.0"
NO_MAC_ADDRESS = "00:00:00:00:00:00"

KIND_WIFI = "wifi"
KIND_ETHERNET = "ethernet"

ICON_OFFLINE = "network-offline-symbolic"
ICON_WIRED = "network-wired-symbolic"
ICON_WIRED_DISCONNECTED = "network-wired-disconnected-symbolic"
ICON_WIFI_NONE = "wifi-signal-none"

# Upper bound (inclusive) of each strength bucket
_WIFI_ICON_BUCKETS = (
    (20, "wifi-signal-weak"),
    (40, "wifi-signal-low"),
    (60, "wifi-signal-medium"),
    (80, "wifi-signal-good"),
    (100, "wifi-signal-excellent"),
)


class SecurityType(str, Enum):
    """Security scheme of a wireless network."""

    NONE = "none"
    WEP = "wep"
    WPA_PSK = "wpa-psk"
    WPA_EAP = "wpa-eap"
    WPA2_PSK = "wpa2-psk"
    WPA3_PSK = "wpa3-psk"


def wifi_icon(strength: int) -> str:
    """Icon name for a signal strength percentage."""
    if strength < 0:
        return ICON_WIFI_NONE
    for upper, icon in _WIFI_ICON_BUCKETS:
        if strength <= upper:
            return icon
    return ICON_WIFI_NONE


def wired_icon(connected: bool) -> str:
    return ICON_WIRED if connected else ICON_WIRED_DISCONNECTED


@dataclass(frozen=True)
class NetworkRecord:
    """Snapshot of one network as seen by the service.

    A fresh record is built on every call; use ``evolve`` to derive a
    modified copy.
    """

    name: str = UNKNOWN
    ssid: str = UNKNOWN
    connection_kind: str = UNKNOWN
    icon_id: str = ICON_OFFLINE
    ip_address: str = NO_IP_ADDRESS
    mac_address: str = NO_MAC_ADDRESS
    signal_strength: int = 0
    security: SecurityType = SecurityType.NONE
    is_connected: bool = False

    @classmethod
    def disconnected(cls) -> "NetworkRecord":
        """The record reported when nothing is active."""
        return cls()

    def evolve(self, **changes: Any) -> "NetworkRecord":
        return replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for API responses."""
        data = asdict(self)
        data["security"] = self.security.value
        return data


@dataclass(frozen=True)
class ConnectionRequest:
    """Parameters for joining a wireless network."""

    ssid: str
    password: str | None = None
    security: SecurityType = SecurityType.NONE
    username: str | None = None

    def __repr__(self) -> str:
        # Keep secrets out of logs
        return (
            f"ConnectionRequest(ssid={self.ssid!r}, security={self.security!r}, "
            f"password={'***' if self.password else None}, username={self.username!r})"
        )


@dataclass(frozen=True)
class ActivationResult:
    """Object paths returned by a successful activation."""

    connection_path: str
    active_path: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


SettingsPayload = dict[str, dict[str, Any]]

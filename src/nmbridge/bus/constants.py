"""NetworkManager D-Bus names and numeric codes.

Values follow NetworkManager's published D-Bus API reference.
"""

from enum import IntEnum

NM_BUS_NAME = "org.freedesktop.NetworkManager"
NM_PATH = "/org/freedesktop/NetworkManager"
NM_SETTINGS_PATH = "/org/freedesktop/NetworkManager/Settings"

NM_IFACE = "org.freedesktop.NetworkManager"
NM_SETTINGS_IFACE = "org.freedesktop.NetworkManager.Settings"
NM_CONNECTION_IFACE = "org.freedesktop.NetworkManager.Settings.Connection"
NM_ACTIVE_CONNECTION_IFACE = "org.freedesktop.NetworkManager.Connection.Active"
NM_DEVICE_IFACE = "org.freedesktop.NetworkManager.Device"
NM_WIRELESS_IFACE = "org.freedesktop.NetworkManager.Device.Wireless"
NM_ACCESS_POINT_IFACE = "org.freedesktop.NetworkManager.AccessPoint"
NM_IP4_CONFIG_IFACE = "org.freedesktop.NetworkManager.IP4Config"
PROPERTIES_IFACE = "org.freedesktop.DBus.Properties"

# Object path NetworkManager uses for "no object"
NULL_PATH = "/"

# Setting group names of a connection profile
SETTING_CONNECTION = "connection"
SETTING_WIRELESS = "802-11-wireless"
SETTING_WIRELESS_SECURITY = "802-11-wireless-security"

# Error names that mean the caller lacks authorization
PERMISSION_ERROR_NAMES = frozenset(
    {
        "org.freedesktop.NetworkManager.PermissionDenied",
        "org.freedesktop.NetworkManager.Settings.PermissionDenied",
        "org.freedesktop.DBus.Error.AccessDenied",
        "org.freedesktop.DBus.Error.AuthFailed",
    }
)

# Error names for methods or properties the service does not provide
UNSUPPORTED_ERROR_NAMES = frozenset(
    {
        "org.freedesktop.DBus.Error.UnknownMethod",
        "org.freedesktop.DBus.Error.NotSupported",
    }
)


class DeviceType(IntEnum):
    UNKNOWN = 0
    ETHERNET = 1
    WIFI = 2


class ActiveConnectionState(IntEnum):
    UNKNOWN = 0
    ACTIVATING = 1
    ACTIVATED = 2
    DEACTIVATING = 3
    DEACTIVATED = 4


class Connectivity(IntEnum):
    UNKNOWN = 0
    NONE = 1
    PORTAL = 2
    LIMITED = 3
    FULL = 4

"""Connection lifecycle: settings builder, activation, radio switches."""

import logging
from typing import Any

from ..bus.client import BusClient, read_property
from ..bus.constants import (
    NM_IFACE,
    NM_PATH,
    NULL_PATH,
    SETTING_CONNECTION,
    SETTING_WIRELESS,
    SETTING_WIRELESS_SECURITY,
)
from ..bus.decode import decode_bool, decode_path, decode_path_list, encode_settings
from ..core.errors import OperationError, UnsupportedSecurityError, ValidationError
from .enumerator import wireless_devices
from .models import ActivationResult, ConnectionRequest, SecurityType, SettingsPayload

logger = logging.getLogger(__name__)

MAX_SSID_BYTES = 32

ALREADY_SWITCHED_ERROR = "org.freedesktop.NetworkManager.AlreadyEnabledOrDisabled"


def _coerce_security(value: Any) -> SecurityType:
    if isinstance(value, SecurityType):
        return value
    try:
        return SecurityType(value)
    except ValueError:
        raise UnsupportedSecurityError(
            f"Unsupported security type: {value!r}",
            details={"supported": [s.value for s in SecurityType]},
        ) from None


def validate_request(request: ConnectionRequest) -> SecurityType:
    """Check a connection request before anything is sent.

    Returns:
        The request's security type

    Raises:
        ValidationError: If the SSID is empty or too long
        UnsupportedSecurityError: If the security kind is unknown
    """
    if not request.ssid:
        raise ValidationError("SSID cannot be empty")
    if len(request.ssid.encode("utf-8")) > MAX_SSID_BYTES:
        raise ValidationError(
            f"SSID too long (max {MAX_SSID_BYTES} bytes)",
            details={"ssid": request.ssid},
        )
    return _coerce_security(request.security)


def _security_group(request: ConnectionRequest, security: SecurityType) -> dict[str, Any]:
    group: dict[str, Any] = {}
    password = request.password

    if security == SecurityType.NONE:
        return group

    if security == SecurityType.WEP:
        group["key-mgmt"] = "none"
        if password:
            group["wep-key0"] = password
    elif security == SecurityType.WPA_PSK:
        group["key-mgmt"] = "wpa-psk"
        if password:
            group["psk"] = password
    elif security == SecurityType.WPA_EAP:
        group["key-mgmt"] = "wpa-eap"
        if password:
            group["password"] = password
        if request.username:
            group["identity"] = request.username
    elif security == SecurityType.WPA2_PSK:
        group["key-mgmt"] = "wpa-psk"
        group["proto"] = ["rsn"]
        if password:
            group["psk"] = password
    elif security == SecurityType.WPA3_PSK:
        group["key-mgmt"] = "sae"
        if password:
            group["psk"] = password
    return group


def build_settings(request: ConnectionRequest) -> SettingsPayload:
    """Settings payload for joining the requested network."""
    security = validate_request(request)
    return {
        SETTING_CONNECTION: {
            "id": request.ssid,
            "type": SETTING_WIRELESS,
        },
        SETTING_WIRELESS: {
            "ssid": request.ssid.encode("utf-8"),
            "mode": "infrastructure",
        },
        SETTING_WIRELESS_SECURITY: _security_group(request, security),
    }


class ConnectionManager:
    """Issues activation, deactivation and radio calls.

    Remote failures propagate as OperationError with the service's message;
    nothing is retried.
    """

    def __init__(self, client: BusClient) -> None:
        self._client = client

    def connect(self, request: ConnectionRequest) -> ActivationResult:
        """Add a connection profile for ``request`` and activate it.

        The device and specific object are left as "/" so the service picks
        the device and access point itself.
        """
        settings = build_settings(request)
        logger.info("Connecting to %s", request.ssid)

        reply = self._client.call(
            NM_PATH,
            NM_IFACE,
            "AddAndActivateConnection",
            "a{sa{sv}}oo",
            (encode_settings(settings), NULL_PATH, NULL_PATH),
        )
        result = parse_activation_reply(reply)
        logger.info("Activation started: %s", result.active_path)
        return result

    def disconnect(self) -> bool:
        """Deactivate the first active connection.

        Returns:
            False when nothing was active
        """
        active = read_property(self._client, NM_PATH, NM_IFACE, "ActiveConnections", decode_path_list, [])
        if not active:
            logger.debug("Nothing to disconnect")
            return False

        logger.info("Deactivating %s", active[0])
        self._client.call(NM_PATH, NM_IFACE, "DeactivateConnection", "o", (active[0],))
        return True

    def set_radio_enabled(self, enabled: bool) -> None:
        logger.info("Setting wireless radio %s", "on" if enabled else "off")
        self._client.set_property(NM_PATH, NM_IFACE, "WirelessEnabled", "b", enabled)

    def get_radio_enabled(self) -> bool:
        return self._read_flag("WirelessEnabled")

    def is_radio_available(self) -> bool:
        return bool(wireless_devices(self._client))

    def set_networking_enabled(self, enabled: bool) -> bool:
        """Switch all networking on or off.

        Returns:
            The state reported by the service afterwards
        """
        logger.info("Setting networking %s", "on" if enabled else "off")
        try:
            self._client.call(NM_PATH, NM_IFACE, "Enable", "b", (enabled,))
        except OperationError as e:
            if e.dbus_name != ALREADY_SWITCHED_ERROR:
                raise
            logger.debug("Networking already %s", "on" if enabled else "off")
        return self.get_networking_enabled()

    def get_networking_enabled(self) -> bool:
        return self._read_flag("NetworkingEnabled")

    def _read_flag(self, name: str) -> bool:
        raw = self._client.root_property(name)
        result = decode_bool(raw)
        if not result.ok:
            raise OperationError(f"Unexpected {name} value: {result.error}")
        return bool(result.value)


def parse_activation_reply(reply: tuple[Any, ...]) -> ActivationResult:
    """Check the shape of an AddAndActivateConnection reply."""
    if len(reply) < 2:
        raise OperationError("Malformed activation reply", details={"reply": reply})
    connection_path, active_path = (decode_path(item) for item in reply[:2])
    if not (connection_path.ok and active_path.ok):
        raise OperationError("Malformed activation reply", details={"reply": reply})
    return ActivationResult(connection_path=connection_path.value, active_path=active_path.value)

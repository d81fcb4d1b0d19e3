"""Current network state resolution.

Walks active connection -> device -> access point -> IPv4 configuration on
every call and folds what it finds into one NetworkRecord. Nothing is cached
between calls. Optional properties that cannot be read fall back to the
record's sentinel values; only an unreachable bus raises.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable

import httpx

from ..bus.client import REMOTE_ERRORS, BusClient, read_property
from ..bus.constants import (
    NM_ACCESS_POINT_IFACE,
    NM_ACTIVE_CONNECTION_IFACE,
    NM_DEVICE_IFACE,
    NM_IFACE,
    NM_IP4_CONFIG_IFACE,
    NM_PATH,
    NM_WIRELESS_IFACE,
    NULL_PATH,
    ActiveConnectionState,
    Connectivity,
    DeviceType,
)
from ..bus.decode import (
    decode_address_data,
    decode_enum,
    decode_ipv4_addresses,
    decode_path,
    decode_path_list,
    decode_ssid,
    decode_str,
    decode_strength,
    decode_u32,
)
from ..core.config import ProbeEndpoint, ReachabilityConfig
from .models import (
    KIND_ETHERNET,
    KIND_WIFI,
    NO_IP_ADDRESS,
    NO_MAC_ADDRESS,
    UNKNOWN,
    NetworkRecord,
    SecurityType,
    wifi_icon,
    wired_icon,
)
from .security import classify

logger = logging.getLogger(__name__)

ReachabilityProbe = Callable[[BusClient], bool]


# =============================================================================
# Reachability Probes
# =============================================================================


class HttpProbe:
    """Succeeds when any connectivity-check endpoint answers as expected."""

    def __init__(self, endpoints: list[ProbeEndpoint], timeout: float = 5.0) -> None:
        self._endpoints = endpoints
        self._timeout = timeout

    def __call__(self, client: BusClient) -> bool:
        with httpx.Client(timeout=self._timeout, follow_redirects=False) as http:
            for endpoint in self._endpoints:
                try:
                    response = http.get(str(endpoint.url))
                except (httpx.HTTPError, httpx.InvalidURL) as e:
                    logger.debug("Probe %s failed: %s", endpoint.url, e)
                    continue
                if response.status_code == endpoint.expected_status:
                    return True
        return False


def service_probe(client: BusClient) -> bool:
    """Trust the service's own connectivity check."""
    try:
        raw = client.root_property("Connectivity")
    except REMOTE_ERRORS as e:
        logger.debug("Connectivity unavailable: %s", e)
        return False
    return decode_enum(raw, Connectivity).or_default(Connectivity.UNKNOWN, "Connectivity") == Connectivity.FULL


def always_reachable(client: BusClient) -> bool:
    return True


def make_probe(config: ReachabilityConfig) -> ReachabilityProbe:
    """Build the probe selected in configuration."""
    if config.method == "service":
        return service_probe
    if config.method == "none":
        return always_reachable
    return HttpProbe(config.endpoints, timeout=config.timeout)


# =============================================================================
# Property Walks
# =============================================================================


@dataclass(frozen=True)
class AccessPointInfo:
    ssid: str
    strength: int
    security: SecurityType

    @property
    def signal_strength(self) -> int:
        return min(self.strength, 100)

    @property
    def icon_id(self) -> str:
        return wifi_icon(self.strength)


def read_access_point(client: BusClient, ap_path: str, raw_ssid: Any = None) -> AccessPointInfo:
    """Decode SSID, strength and security of one access point.

    ``raw_ssid`` skips the SSID read when the caller already fetched it.
    """

    def read(name, decoder, default):
        return read_property(client, ap_path, NM_ACCESS_POINT_IFACE, name, decoder, default)

    security = classify(
        read("Flags", decode_u32, 0),
        read("WpaFlags", decode_u32, 0),
        read("RsnFlags", decode_u32, 0),
        read("KeyMgmt", decode_str, None),
    )
    if raw_ssid is None:
        ssid = read("Ssid", decode_ssid, "")
    else:
        ssid = decode_ssid(raw_ssid).or_default("", "Ssid")
    return AccessPointInfo(
        ssid=ssid,
        strength=read("Strength", decode_strength, 0),
        security=security,
    )


def read_device_type(client: BusClient, device_path: str) -> int:
    return read_property(client, device_path, NM_DEVICE_IFACE, "DeviceType", decode_u32, DeviceType.UNKNOWN)


def read_hw_address(client: BusClient, device_path: str) -> str:
    mac = read_property(client, device_path, NM_DEVICE_IFACE, "HwAddress", decode_str, NO_MAC_ADDRESS)
    return mac or NO_MAC_ADDRESS


def read_ipv4_address(client: BusClient, device_path: str) -> str:
    """First IPv4 address of a device, or the sentinel."""
    config_path = read_property(client, device_path, NM_DEVICE_IFACE, "Ip4Config", decode_path, NULL_PATH)
    if config_path == NULL_PATH:
        return NO_IP_ADDRESS

    addresses = read_property(
        client, config_path, NM_IP4_CONFIG_IFACE, "Addresses", decode_ipv4_addresses, []
    )
    if not addresses:
        addresses = read_property(
            client, config_path, NM_IP4_CONFIG_IFACE, "AddressData", decode_address_data, []
        )
    return addresses[0] if addresses else NO_IP_ADDRESS


# =============================================================================
# Resolver
# =============================================================================


class StateResolver:
    """Resolves the current network into a NetworkRecord.

    When several connections are active the first one reported by the
    service is used; the service does not document that order as stable.
    """

    def __init__(self, client: BusClient, probe: ReachabilityProbe | None = None) -> None:
        self._client = client
        self._probe = probe or always_reachable

    def _read(self, path: str, interface: str, name: str, decoder, default):
        return read_property(self._client, path, interface, name, decoder, default)

    def active_connections(self) -> list[str]:
        return self._read(NM_PATH, NM_IFACE, "ActiveConnections", decode_path_list, [])

    def resolve_current(self) -> NetworkRecord:
        """Resolve the current network.

        Raises:
            TransportError: If the bus is unreachable
        """
        active = self.active_connections()
        if not active:
            return NetworkRecord.disconnected()

        active_path = active[0]
        devices = self._read(active_path, NM_ACTIVE_CONNECTION_IFACE, "Devices", decode_path_list, [])
        if not devices:
            logger.debug("Active connection %s has no devices", active_path)
            return NetworkRecord.disconnected()

        device_path = devices[0]
        device_type = read_device_type(self._client, device_path)
        record = NetworkRecord(mac_address=read_hw_address(self._client, device_path))

        if device_type == DeviceType.WIFI:
            record = self._with_access_point(record, device_path)

        record = record.evolve(ip_address=read_ipv4_address(self._client, device_path))

        state = self._read(
            active_path,
            NM_ACTIVE_CONNECTION_IFACE,
            "State",
            lambda raw: decode_enum(raw, ActiveConnectionState),
            ActiveConnectionState.UNKNOWN,
        )
        connected = state == ActiveConnectionState.ACTIVATED and self._probe(self._client)
        record = record.evolve(is_connected=connected)

        if device_type == DeviceType.WIFI:
            return record

        connection_id = self._read(active_path, NM_ACTIVE_CONNECTION_IFACE, "Id", decode_str, UNKNOWN)
        if device_type == DeviceType.ETHERNET:
            return record.evolve(
                name=connection_id,
                connection_kind=KIND_ETHERNET,
                icon_id=wired_icon(connected),
            )

        connection_type = self._read(active_path, NM_ACTIVE_CONNECTION_IFACE, "Type", decode_str, UNKNOWN)
        return record.evolve(name=connection_id, connection_kind=connection_type)

    def _with_access_point(self, record: NetworkRecord, device_path: str) -> NetworkRecord:
        record = record.evolve(connection_kind=KIND_WIFI)
        ap_path = self._read(device_path, NM_WIRELESS_IFACE, "ActiveAccessPoint", decode_path, NULL_PATH)
        if ap_path == NULL_PATH:
            return record

        ap = read_access_point(self._client, ap_path)
        return record.evolve(
            name=ap.ssid,
            ssid=ap.ssid,
            signal_strength=ap.signal_strength,
            security=ap.security,
            icon_id=ap.icon_id,
        )

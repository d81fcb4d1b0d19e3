"""Visible wireless network enumeration."""

import logging

from ..bus.client import REMOTE_ERRORS, BusClient, read_property
from ..bus.constants import NM_ACCESS_POINT_IFACE, NM_IFACE, NM_PATH, NM_WIRELESS_IFACE, DeviceType
from ..bus.decode import decode_path_list
from .models import KIND_WIFI, NO_IP_ADDRESS, NetworkRecord
from .resolver import (
    ReachabilityProbe,
    StateResolver,
    read_access_point,
    read_device_type,
    read_hw_address,
)

logger = logging.getLogger(__name__)


def wireless_devices(client: BusClient) -> list[str]:
    """Paths of all devices reporting the wifi type code."""
    devices = read_property(client, NM_PATH, NM_IFACE, "Devices", decode_path_list, [])
    return [path for path in devices if read_device_type(client, path) == DeviceType.WIFI]


class NetworkEnumerator:
    """Lists the wireless networks currently in range.

    Usage:
        networks = NetworkEnumerator(client).list_visible()
    """

    def __init__(self, client: BusClient, probe: ReachabilityProbe | None = None) -> None:
        self._client = client
        self._resolver = StateResolver(client, probe)

    def list_visible(self) -> list[NetworkRecord]:
        """Visible networks, one per SSID, strongest first.

        When several access points broadcast the same SSID the first one
        encountered is kept. Equal strengths keep encounter order.
        """
        current = self._resolver.resolve_current()
        connected_ssid = current.ssid if current.connection_kind == KIND_WIFI else None

        records: list[NetworkRecord] = []
        seen: set[str] = set()

        for device_path in wireless_devices(self._client):
            mac_address = read_hw_address(self._client, device_path)
            ap_paths = read_property(
                self._client, device_path, NM_WIRELESS_IFACE, "AccessPoints", decode_path_list, []
            )

            for ap_path in ap_paths:
                try:
                    raw_ssid = self._client.get_property(ap_path, NM_ACCESS_POINT_IFACE, "Ssid")
                except REMOTE_ERRORS as e:
                    logger.warning("Skipping access point %s that vanished mid-scan: %s", ap_path, e)
                    continue
                # Hidden networks decode to "" and collapse into one record
                ap = read_access_point(self._client, ap_path, raw_ssid)
                if ap.ssid in seen:
                    continue
                seen.add(ap.ssid)

                is_current = ap.ssid == connected_ssid
                records.append(
                    NetworkRecord(
                        name=ap.ssid,
                        ssid=ap.ssid,
                        connection_kind=KIND_WIFI,
                        icon_id=ap.icon_id,
                        ip_address=current.ip_address if is_current else NO_IP_ADDRESS,
                        mac_address=mac_address,
                        signal_strength=ap.signal_strength,
                        security=ap.security,
                        is_connected=current.is_connected if is_current else False,
                    )
                )

        # list.sort is stable, so ties keep encounter order
        records.sort(key=lambda r: r.signal_strength, reverse=True)
        logger.debug("Found %d visible networks", len(records))
        return records

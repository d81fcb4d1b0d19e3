"""Saved connection profiles."""

import logging
from dataclasses import dataclass
from typing import Any, Iterator

from ..bus.client import REMOTE_ERRORS, BusClient
from ..bus.constants import (
    NM_CONNECTION_IFACE,
    NM_SETTINGS_IFACE,
    NM_SETTINGS_PATH,
    SETTING_CONNECTION,
    SETTING_WIRELESS,
    SETTING_WIRELESS_SECURITY,
)
from ..bus.decode import decode_path_list, decode_settings, decode_ssid
from ..core.errors import OperationError
from .models import UNKNOWN, NetworkRecord
from .security import classify_key_mgmt

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SavedProfile:
    path: str
    settings: dict[str, dict[str, Any]]

    @property
    def is_wireless(self) -> bool:
        return self.settings.get(SETTING_CONNECTION, {}).get("type") == SETTING_WIRELESS

    @property
    def ssid(self) -> str:
        raw = self.settings.get(SETTING_WIRELESS, {}).get("ssid")
        return decode_ssid(raw).or_default("", "profile ssid")

    def to_record(self) -> NetworkRecord:
        """Partial record: profiles have no live signal or address."""
        name = self.settings.get(SETTING_CONNECTION, {}).get("id")
        key_mgmt = self.settings.get(SETTING_WIRELESS_SECURITY, {}).get("key-mgmt")
        return NetworkRecord(
            name=name if isinstance(name, str) else UNKNOWN,
            ssid=self.ssid,
            security=classify_key_mgmt(key_mgmt if isinstance(key_mgmt, str) else None),
        )


class ProfileManager:
    """Lists and deletes wireless profiles stored by the service."""

    def __init__(self, client: BusClient) -> None:
        self._client = client

    def _profile_paths(self) -> list[str]:
        (raw,) = self._client.call(NM_SETTINGS_PATH, NM_SETTINGS_IFACE, "ListConnections")
        result = decode_path_list(raw)
        if not result.ok:
            raise OperationError(f"Unexpected ListConnections reply: {result.error}")
        return result.value or []

    def _wireless_profiles(self) -> Iterator[SavedProfile]:
        for path in self._profile_paths():
            try:
                (raw,) = self._client.call(path, NM_CONNECTION_IFACE, "GetSettings")
            except REMOTE_ERRORS as e:
                # Profiles can disappear between listing and reading
                logger.warning("Skipping profile %s: %s", path, e)
                continue

            settings = decode_settings(raw)
            if not settings.ok:
                logger.warning("Skipping profile %s: %s", path, settings.error)
                continue

            profile = SavedProfile(path=path, settings=settings.value or {})
            if profile.is_wireless:
                yield profile

    def list_saved(self) -> list[NetworkRecord]:
        return [profile.to_record() for profile in self._wireless_profiles()]

    def delete_saved(self, ssid: str) -> bool:
        """Delete the first wireless profile for ``ssid``.

        Returns:
            False when no profile matched
        """
        for profile in self._wireless_profiles():
            if profile.ssid == ssid:
                logger.info("Deleting profile %s for %s", profile.path, ssid)
                self._client.call(profile.path, NM_CONNECTION_IFACE, "Delete")
                return True

        logger.info("No saved profile for %s", ssid)
        return False

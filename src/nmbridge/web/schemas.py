"""Pydantic schemas for API request/response validation.

Provides type-safe request parsing and response serialization.
"""

from typing import Any

from pydantic import BaseModel, Field, SecretStr

from ..network.models import ConnectionRequest, NetworkRecord, SecurityType


# =============================================================================
# Request Schemas
# =============================================================================


class ConnectRequest(BaseModel):
    """Wireless connection request."""

    ssid: str = Field(..., min_length=1, max_length=32)
    password: SecretStr | None = Field(None, max_length=63)
    security: str = Field(
        ..., description="none, wep, wpa-psk, wpa-eap, wpa2-psk or wpa3-psk"
    )
    username: str | None = None

    def to_request(self) -> ConnectionRequest:
        return ConnectionRequest(
            ssid=self.ssid,
            password=self.password.get_secret_value() if self.password else None,
            security=self.security,  # checked by the connection manager
            username=self.username,
        )


class SwitchRequest(BaseModel):
    """Radio or networking on/off request."""

    enabled: bool


# =============================================================================
# Response Schemas
# =============================================================================


class APIResponse(BaseModel):
    """Standard API response wrapper."""

    success: bool
    message: str = ""
    data: dict[str, Any] | None = None


class ErrorResponse(BaseModel):
    """Error response."""

    success: bool = False
    error: str
    detail: str | None = None


class NetworkInfo(BaseModel):
    """Network record as returned by the API."""

    name: str
    ssid: str
    connection_kind: str
    icon_id: str
    ip_address: str
    mac_address: str
    signal_strength: int = Field(..., ge=0, le=100)
    security: SecurityType
    is_connected: bool

    @classmethod
    def from_record(cls, record: NetworkRecord) -> "NetworkInfo":
        return cls(**record.to_dict())


class NetworksResponse(BaseModel):
    """Visible or saved networks."""

    networks: list[NetworkInfo]


class SwitchResponse(BaseModel):
    """State of an on/off switch."""

    enabled: bool


class AvailabilityResponse(BaseModel):
    """Whether a wireless device exists."""

    available: bool


class BandwidthResponse(BaseModel):
    """Interface traffic snapshot."""

    interface: str
    download_speed: int
    upload_speed: int
    total_downloaded: int
    total_uploaded: int
    connection_duration: int


class InterfacesResponse(BaseModel):
    """Network interface names."""

    interfaces: list[str]

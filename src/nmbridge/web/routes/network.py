"""Network management API routes.

Provides endpoints for state, scanning, connection, radio switches, saved
profiles and interface statistics. Every bus operation blocks, so each one
runs in the worker thread pool.
"""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.concurrency import run_in_threadpool

from ...network.context import NetworkContext
from ...network.stats import BandwidthTracker, list_interfaces
from ..schemas import (
    APIResponse,
    AvailabilityResponse,
    BandwidthResponse,
    ConnectRequest,
    InterfacesResponse,
    NetworkInfo,
    NetworksResponse,
    SwitchRequest,
    SwitchResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/network", tags=["network"])


def get_context(request: Request) -> NetworkContext:
    return request.app.state.context


# =============================================================================
# State and Scanning
# =============================================================================


@router.get("/state")
async def current_state(context: NetworkContext = Depends(get_context)) -> NetworkInfo:
    """Get the current network."""
    record = await run_in_threadpool(context.resolve_current)
    return NetworkInfo.from_record(record)


@router.get("/networks")
async def visible_networks(context: NetworkContext = Depends(get_context)) -> NetworksResponse:
    """List visible wireless networks, strongest first."""
    records = await run_in_threadpool(context.list_visible)
    return NetworksResponse(networks=[NetworkInfo.from_record(r) for r in records])


# =============================================================================
# Connection
# =============================================================================


@router.post("/connect")
async def connect(
    body: ConnectRequest, context: NetworkContext = Depends(get_context)
) -> APIResponse:
    """Connect to a wireless network."""
    logger.info("Connecting to WiFi: %s", body.ssid)
    result = await run_in_threadpool(context.connect, body.to_request())
    return APIResponse(
        success=True,
        message=f"Activating {body.ssid}",
        data=result.to_dict(),
    )


@router.post("/disconnect")
async def disconnect(context: NetworkContext = Depends(get_context)) -> APIResponse:
    """Deactivate the current connection."""
    disconnected = await run_in_threadpool(context.disconnect)
    return APIResponse(
        success=True,
        message="Disconnected" if disconnected else "No active connection",
        data={"disconnected": disconnected},
    )


# =============================================================================
# Switches
# =============================================================================


@router.get("/radio")
async def radio_state(context: NetworkContext = Depends(get_context)) -> SwitchResponse:
    """Get the wireless radio switch."""
    return SwitchResponse(enabled=await run_in_threadpool(context.get_radio_enabled))


@router.put("/radio")
async def set_radio(
    body: SwitchRequest, context: NetworkContext = Depends(get_context)
) -> SwitchResponse:
    """Turn the wireless radio on or off."""
    await run_in_threadpool(context.set_radio_enabled, body.enabled)
    return SwitchResponse(enabled=await run_in_threadpool(context.get_radio_enabled))


@router.get("/radio/available")
async def radio_available(context: NetworkContext = Depends(get_context)) -> AvailabilityResponse:
    """Check whether a wireless device exists."""
    return AvailabilityResponse(available=await run_in_threadpool(context.is_radio_available))


@router.get("/networking")
async def networking_state(context: NetworkContext = Depends(get_context)) -> SwitchResponse:
    """Get the global networking switch."""
    return SwitchResponse(enabled=await run_in_threadpool(context.get_networking_enabled))


@router.put("/networking")
async def set_networking(
    body: SwitchRequest, context: NetworkContext = Depends(get_context)
) -> SwitchResponse:
    """Turn all networking on or off."""
    enabled = await run_in_threadpool(context.set_networking_enabled, body.enabled)
    return SwitchResponse(enabled=enabled)


# =============================================================================
# Saved Profiles
# =============================================================================


@router.get("/saved")
async def saved_networks(context: NetworkContext = Depends(get_context)) -> NetworksResponse:
    """List saved wireless profiles."""
    records = await run_in_threadpool(context.list_saved)
    return NetworksResponse(networks=[NetworkInfo.from_record(r) for r in records])


@router.delete("/saved/{ssid}")
async def forget_network(ssid: str, context: NetworkContext = Depends(get_context)) -> APIResponse:
    """Delete the saved profile for a network."""
    deleted = await run_in_threadpool(context.delete_saved, ssid)
    return APIResponse(
        success=deleted,
        message=f"Forgot {ssid}" if deleted else f"No saved profile for {ssid}",
        data={"ssid": ssid},
    )


# =============================================================================
# Interface Statistics
# =============================================================================


@router.get("/interfaces")
async def interfaces() -> InterfacesResponse:
    """List network interfaces."""
    return InterfacesResponse(interfaces=await run_in_threadpool(list_interfaces))


@router.get("/stats/{interface}")
async def interface_stats(interface: str, request: Request) -> BandwidthResponse:
    """Traffic since the previous request for the same interface."""
    trackers: dict[str, BandwidthTracker] = request.app.state.trackers
    tracker = trackers.get(interface)
    if tracker is None:
        tracker = await run_in_threadpool(BandwidthTracker, interface)
        trackers[interface] = tracker

    stats = await run_in_threadpool(tracker.sample)
    return BandwidthResponse(**stats.to_dict())

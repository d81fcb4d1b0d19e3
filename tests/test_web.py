"""REST API."""

from types import SimpleNamespace

import psutil
import pytest
from fastapi.testclient import TestClient

from fakes import FakeBus
from nmbridge.bus.constants import NM_PATH, DeviceType
from nmbridge.core.errors import OperationError, PermissionDeniedError, TransportError
from nmbridge.network.context import NetworkContext
from nmbridge.network.resolver import always_reachable
from nmbridge.web import create_app
from nmbridge.web.app import status_for


@pytest.fixture
def client(context):
    return TestClient(create_app(context))


def test_state_disconnected(client):
    response = client.get("/api/network/state")
    assert response.status_code == 200
    data = response.json()
    assert data["name"] == "Unknown"
    assert data["icon_id"] == "network-offline-symbolic"
    assert data["security"] == "none"
    assert data["is_connected"] is False


def test_networks_sorted(client, bus):
    aps = [bus.add_access_point("weak", 10), bus.add_access_point("strong", 95, rsn_flags=0x400)]
    bus.add_wifi_device(aps)

    response = client.get("/api/network/networks")
    assert response.status_code == 200
    networks = response.json()["networks"]
    assert [n["ssid"] for n in networks] == ["strong", "weak"]
    assert networks[0]["security"] == "wpa3-psk"
    assert networks[0]["icon_id"] == "wifi-signal-excellent"


def test_connect(client, bus):
    response = client.post(
        "/api/network/connect",
        json={"ssid": "home", "password": "secret123", "security": "wpa2-psk"},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["data"]["active_path"].startswith("/org/freedesktop/NetworkManager/ActiveConnection/")
    assert len(bus.method_calls("AddAndActivateConnection")) == 1


def test_connect_unsupported_security(client, bus):
    response = client.post("/api/network/connect", json={"ssid": "home", "security": "wpa9"})
    assert response.status_code == 400
    assert response.json()["error"] == "UnsupportedSecurityError"
    assert bus.calls == []


def test_connect_oversized_ssid_bytes(client):
    response = client.post("/api/network/connect", json={"ssid": "é" * 20, "security": "none"})
    assert response.status_code == 400
    assert response.json()["error"] == "ValidationError"


def test_connect_request_validation(client):
    assert client.post("/api/network/connect", json={"security": "none"}).status_code == 422


def test_remote_failure_is_bad_gateway(client, bus):
    bus.errors[(NM_PATH, "AddAndActivateConnection")] = OperationError("no device")
    response = client.post("/api/network/connect", json={"ssid": "home", "security": "none"})
    assert response.status_code == 502
    assert response.json()["detail"] == "no device"


def test_disconnect(client, bus):
    response = client.post("/api/network/disconnect")
    assert response.json()["data"] == {"disconnected": False}

    bus.activate(bus.add_device(DeviceType.ETHERNET))
    response = client.post("/api/network/disconnect")
    assert response.json()["data"] == {"disconnected": True}


def test_radio_and_networking(client, bus):
    assert client.get("/api/network/radio").json() == {"enabled": True}
    assert client.put("/api/network/radio", json={"enabled": False}).json() == {"enabled": False}
    assert bus.root["WirelessEnabled"] is False

    assert client.get("/api/network/radio/available").json() == {"available": False}

    assert client.put("/api/network/networking", json={"enabled": False}).json() == {"enabled": False}
    assert client.get("/api/network/networking").json() == {"enabled": False}


def test_saved_profiles(client, bus):
    bus.add_wifi_profile("home", key_mgmt="wpa-psk")

    networks = client.get("/api/network/saved").json()["networks"]
    assert [(n["ssid"], n["security"]) for n in networks] == [("home", "wpa-psk")]

    assert client.delete("/api/network/saved/home").json()["success"] is True
    missing = client.delete("/api/network/saved/home").json()
    assert missing["success"] is False


def test_stats_and_interfaces(client, monkeypatch):
    nics = {
        "lo": SimpleNamespace(bytes_recv=1, bytes_sent=1),
        "eth0": SimpleNamespace(bytes_recv=100, bytes_sent=50),
    }
    monkeypatch.setattr(psutil, "net_io_counters", lambda pernic=False: dict(nics))
    monkeypatch.setattr(psutil, "net_if_stats", lambda: dict(nics))

    assert client.get("/api/network/interfaces").json() == {"interfaces": ["eth0"]}

    data = client.get("/api/network/stats/eth0").json()
    assert data["interface"] == "eth0"
    assert data["total_downloaded"] == 0

    assert client.get("/api/network/stats/wlan9").status_code == 502


def test_not_initialized_is_unavailable(config):
    ctx = NetworkContext(config, client_factory=FakeBus, probe=always_reachable)
    client = TestClient(create_app(ctx))
    response = client.get("/api/network/state")
    assert response.status_code == 503
    assert response.json()["error"] == "NotInitializedError"


def test_transport_failure_is_unavailable(client, bus):
    bus.offline = True
    assert client.get("/api/network/state").status_code == 503


def test_status_mapping():
    assert status_for(PermissionDeniedError("denied")) == 403
    assert status_for(OperationError("failed")) == 502
    assert status_for(TransportError("down")) == 503


def test_lifespan_manages_context(bus, signals, config):
    ctx = NetworkContext(
        config,
        client_factory=lambda: bus,
        signal_factory=lambda: signals,
        probe=always_reachable,
    )
    with TestClient(create_app(ctx, manage_lifecycle=True)) as client:
        assert ctx.is_initialized is True
        assert ctx.notifications_running is True
        assert client.get("/api/network/state").status_code == 200

    assert ctx.is_initialized is False
    assert bus.closed is True

"""Current state resolution."""

import httpx
import pydantic
import pytest

from fakes import FakeBus
from nmbridge.bus.constants import DeviceType
from nmbridge.core.config import ProbeEndpoint, ReachabilityConfig
from nmbridge.core.errors import TransportError
from nmbridge.network.models import NetworkRecord, SecurityType
from nmbridge.network.resolver import (
    HttpProbe,
    StateResolver,
    always_reachable,
    make_probe,
    service_probe,
)


def wifi_setup(bus: FakeBus, strength: int = 72, state: int = 2) -> str:
    ap = bus.add_access_point("home", strength, rsn_flags=0x188, wpa_flags=0x144)
    device = bus.add_wifi_device([ap], active_access_point=ap, mac="11:22:33:44:55:66", ip4_address="192.168.1.20")
    bus.activate(device, connection_id="home", connection_type="802-11-wireless", state=state)
    return device


def test_no_active_connection_is_default_record(bus):
    assert StateResolver(bus).resolve_current() == NetworkRecord.disconnected()


def test_active_connection_without_devices(bus):
    bus.root["ActiveConnections"].append("/org/freedesktop/NetworkManager/ActiveConnection/99")
    bus.objects["/org/freedesktop/NetworkManager/ActiveConnection/99"] = {"Devices": [], "State": 2}
    assert StateResolver(bus).resolve_current() == NetworkRecord.disconnected()


def test_wifi_connection(bus):
    wifi_setup(bus)
    record = StateResolver(bus).resolve_current()

    assert record.name == "home"
    assert record.ssid == "home"
    assert record.connection_kind == "wifi"
    assert record.signal_strength == 72
    assert record.icon_id == "wifi-signal-good"
    assert record.security == SecurityType.WPA2_PSK
    assert record.ip_address == "192.168.1.20"
    assert record.mac_address == "11:22:33:44:55:66"
    assert record.is_connected is True


def test_strength_above_100_is_clamped_but_icon_is_none(bus):
    wifi_setup(bus, strength=180)
    record = StateResolver(bus).resolve_current()
    assert record.signal_strength == 100
    assert record.icon_id == "wifi-signal-none"


def test_activating_connection_is_not_connected(bus):
    wifi_setup(bus, state=1)
    assert StateResolver(bus).resolve_current().is_connected is False


def test_probe_failure_means_not_connected(bus):
    wifi_setup(bus)
    record = StateResolver(bus, probe=lambda client: False).resolve_current()
    assert record.is_connected is False
    assert record.ssid == "home"


def test_wifi_without_access_point(bus):
    device = bus.add_wifi_device([])
    bus.activate(device, connection_id="home", connection_type="802-11-wireless")
    record = StateResolver(bus).resolve_current()

    assert record.connection_kind == "wifi"
    assert record.name == "Unknown"
    assert record.ssid == "Unknown"
    assert record.signal_strength == 0


def test_ethernet_connection(bus):
    device = bus.add_device(DeviceType.ETHERNET, mac="de:ad:be:ef:00:01", ip4_address="10.0.0.2")
    bus.activate(device, connection_id="Wired connection 1")
    record = StateResolver(bus).resolve_current()

    assert record.name == "Wired connection 1"
    assert record.connection_kind == "ethernet"
    assert record.icon_id == "network-wired-symbolic"
    assert record.ip_address == "10.0.0.2"
    assert record.ssid == "Unknown"
    assert record.is_connected is True


def test_ethernet_not_reachable_uses_disconnected_icon(bus):
    device = bus.add_device(DeviceType.ETHERNET)
    bus.activate(device)
    record = StateResolver(bus, probe=lambda client: False).resolve_current()
    assert record.icon_id == "network-wired-disconnected-symbolic"


def test_other_device_kind_uses_connection_type(bus):
    device = bus.add_device(14)
    bus.activate(device, connection_id="vpn0", connection_type="wireguard")
    record = StateResolver(bus).resolve_current()

    assert record.name == "vpn0"
    assert record.connection_kind == "wireguard"


def test_missing_properties_degrade_to_defaults(bus):
    device = wifi_setup(bus)
    del bus.objects[device]["HwAddress"]
    ap = bus.objects[device]["ActiveAccessPoint"]
    bus.objects[ap]["Strength"] = "loud"
    bus.objects[ap]["Ssid"] = 42

    record = StateResolver(bus).resolve_current()
    assert record.mac_address == "00:00:00:00:00:00"
    assert record.signal_strength == 0
    assert record.ssid == ""
    assert record.ip_address == "192.168.1.20"


def test_address_data_fallback(bus):
    device = wifi_setup(bus)
    ip4 = bus.objects[device]["Ip4Config"]
    bus.objects[ip4] = {"Addresses": [], "AddressData": [{"address": ("s", "172.16.0.9")}]}
    assert StateResolver(bus).resolve_current().ip_address == "172.16.0.9"


def test_first_active_connection_wins(bus):
    wifi_setup(bus)
    device = bus.add_device(DeviceType.ETHERNET)
    bus.activate(device)
    assert StateResolver(bus).resolve_current().connection_kind == "wifi"


def test_transport_failure_propagates(bus):
    bus.offline = True
    with pytest.raises(TransportError):
        StateResolver(bus).resolve_current()


def test_service_probe(bus):
    assert service_probe(bus) is True
    bus.root["Connectivity"] = 2
    assert service_probe(bus) is False
    del bus.root["Connectivity"]
    assert service_probe(bus) is False


def test_make_probe_selects_method():
    assert make_probe(ReachabilityConfig(method="none")) is always_reachable
    assert make_probe(ReachabilityConfig(method="service")) is service_probe
    assert isinstance(make_probe(ReachabilityConfig()), HttpProbe)


def test_http_probe_any_endpoint(monkeypatch, bus):
    answers = {"http://a.test/": 500, "http://b.test/": 204}

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(answers[str(request.url)])

    real_client = httpx.Client

    def client_factory(**kwargs):
        return real_client(transport=httpx.MockTransport(handler), **kwargs)

    monkeypatch.setattr(httpx, "Client", client_factory)

    probe = HttpProbe(
        [
            ProbeEndpoint(url="http://a.test/", expected_status=204),
            ProbeEndpoint(url="http://b.test/", expected_status=204),
        ]
    )
    assert probe(bus) is True

    answers["http://b.test/"] = 302
    assert probe(bus) is False


def test_malformed_endpoint_rejected_by_config():
    with pytest.raises(pydantic.ValidationError):
        ProbeEndpoint(url="http://[::1", expected_status=204)
    with pytest.raises(pydantic.ValidationError):
        ReachabilityConfig(endpoints=[{"url": "not a url"}])


def test_http_probe_invalid_url_does_not_fail_resolution(bus):
    wifi_setup(bus)
    broken = ProbeEndpoint.model_construct(url="http://[::1", expected_status=204)
    record = StateResolver(bus, HttpProbe([broken])).resolve_current()

    assert record.ssid == "home"
    assert record.is_connected is False

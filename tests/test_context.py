"""Network context lifecycle and operations."""

import threading

import pytest

from fakes import FakeBus
from nmbridge.bus.constants import DeviceType
from nmbridge.core.errors import NotInitializedError
from nmbridge.network.context import NetworkContext
from nmbridge.network.models import ConnectionRequest, NetworkRecord, SecurityType
from nmbridge.network.resolver import always_reachable


def test_operations_before_initialize_raise(config):
    ctx = NetworkContext(config, client_factory=FakeBus, probe=always_reachable)
    assert ctx.is_initialized is False

    for operation in (
        ctx.resolve_current,
        ctx.list_visible,
        ctx.disconnect,
        ctx.get_radio_enabled,
        ctx.is_radio_available,
        ctx.list_saved,
        ctx.get_networking_enabled,
        ctx.start_notifications,
    ):
        with pytest.raises(NotInitializedError):
            operation()

    with pytest.raises(NotInitializedError):
        ctx.delete_saved("home")


def test_operations_after_close_raise(context):
    context.close()
    with pytest.raises(NotInitializedError):
        context.resolve_current()


def test_initialize_is_idempotent(config):
    created = []

    def factory():
        created.append(FakeBus())
        return created[-1]

    ctx = NetworkContext(config, client_factory=factory, probe=always_reachable)
    ctx.initialize()
    ctx.initialize()
    assert len(created) == 1

    ctx.close()
    assert created[0].closed is True


def test_context_manager(config, bus):
    with NetworkContext(config, client_factory=lambda: bus, probe=always_reachable) as ctx:
        assert ctx.resolve_current() == NetworkRecord.disconnected()
    assert bus.closed is True


def test_replace_client_hot_swaps(context, bus):
    other = FakeBus()
    device = other.add_device(DeviceType.ETHERNET)
    other.activate(device, connection_id="LAN")

    context.replace_client(other)

    assert bus.closed is True
    assert context.resolve_current().name == "LAN"


def test_produced_operations(context, bus):
    ap = bus.add_access_point("home", 60)
    device = bus.add_wifi_device([ap], active_access_point=ap)
    bus.activate(device, connection_id="home", connection_type="802-11-wireless")
    bus.add_wifi_profile("home", key_mgmt="wpa-psk")

    assert context.resolve_current().ssid == "home"
    assert [r.ssid for r in context.list_visible()] == ["home"]
    assert context.is_radio_available() is True
    assert [r.ssid for r in context.list_saved()] == ["home"]

    result = context.connect(ConnectionRequest(ssid="cafe", security=SecurityType.NONE))
    assert result.connection_path.startswith("/org/freedesktop/NetworkManager/Settings/")

    context.set_radio_enabled(False)
    assert context.get_radio_enabled() is False
    assert context.set_networking_enabled(False) is False
    assert context.get_networking_enabled() is False

    assert context.delete_saved("home") is True
    assert context.delete_saved("home") is False
    assert context.disconnect() is True
    assert context.disconnect() is False


def test_concurrent_resolutions(context, bus):
    device = bus.add_device(DeviceType.ETHERNET)
    bus.activate(device, connection_id="LAN")
    results = []
    errors = []

    def worker():
        try:
            for _ in range(20):
                results.append(context.resolve_current().name)
        except Exception as e:
            errors.append(e)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(5.0)

    assert errors == []
    assert results == ["LAN"] * 160


def test_notifications_through_context(context, signals):
    received = []
    event = threading.Event()

    def on_change(record):
        received.append(record)
        event.set()

    unsubscribe = context.subscribe(on_change)
    context.start_notifications()
    assert context.notifications_running is True

    signals.emit()
    assert event.wait(2.0)

    unsubscribe()
    context.stop_notifications()
    assert context.notifications_running is False
    assert received == [NetworkRecord.disconnected()]

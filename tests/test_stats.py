"""Interface bandwidth counters."""

import time
from types import SimpleNamespace

import psutil
import pytest

from nmbridge.core.errors import OperationError, ValidationError
from nmbridge.network.stats import BandwidthTracker, list_interfaces


class FakeCounters:
    """Per-NIC counter table standing in for psutil."""

    def __init__(self) -> None:
        self.nics: dict[str, SimpleNamespace] = {}

    def set(self, interface: str, rx: int, tx: int) -> None:
        self.nics[interface] = SimpleNamespace(bytes_recv=rx, bytes_sent=tx)

    def net_io_counters(self, pernic: bool = False):
        assert pernic
        return dict(self.nics)

    def net_if_stats(self):
        return {name: SimpleNamespace(isup=True) for name in self.nics}


@pytest.fixture
def counters(monkeypatch) -> FakeCounters:
    fake = FakeCounters()
    monkeypatch.setattr(psutil, "net_io_counters", fake.net_io_counters)
    monkeypatch.setattr(psutil, "net_if_stats", fake.net_if_stats)
    return fake


def test_speeds_and_totals(counters):
    counters.set("wlan0", 1000, 500)
    tracker = BandwidthTracker("wlan0")

    counters.set("wlan0", 3000, 1500)
    time.sleep(0.1)
    stats = tracker.sample()

    assert stats.interface == "wlan0"
    assert stats.total_downloaded == 2000
    assert stats.total_uploaded == 1000
    assert stats.download_speed > 0
    assert stats.upload_speed > 0
    assert stats.download_speed <= 2000 / 0.1

    again = tracker.sample()
    assert again.download_speed == 0
    assert again.total_downloaded == 2000


def test_counter_reset_does_not_go_negative(counters):
    counters.set("eth0", 5000, 5000)
    tracker = BandwidthTracker("eth0")
    counters.set("eth0", 10, 10)

    stats = tracker.sample()
    assert stats.download_speed == 0
    assert stats.total_downloaded == 0


def test_missing_interface(counters):
    counters.set("eth0", 0, 0)
    with pytest.raises(OperationError) as excinfo:
        BandwidthTracker("nope0")
    assert excinfo.value.details["interface"] == "nope0"


def test_interface_disappears_after_baseline(counters):
    counters.set("usb0", 10, 10)
    tracker = BandwidthTracker("usb0")
    del counters.nics["usb0"]
    with pytest.raises(OperationError):
        tracker.sample()


def test_psutil_failure_is_operation_error(monkeypatch):
    def broken(pernic=False):
        raise psutil.AccessDenied()

    monkeypatch.setattr(psutil, "net_io_counters", broken)
    with pytest.raises(OperationError):
        BandwidthTracker("eth0")


@pytest.mark.parametrize("name", ["", "..", "a/b"])
def test_invalid_interface_name(counters, name):
    with pytest.raises(ValidationError):
        BandwidthTracker(name)


def test_list_interfaces_skips_loopback(counters):
    for name in ("lo", "wlan0", "eth0"):
        counters.set(name, 0, 0)
    assert list_interfaces() == ["eth0", "wlan0"]


def test_list_interfaces_failure(monkeypatch):
    def broken():
        raise OSError("no netlink")

    monkeypatch.setattr(psutil, "net_if_stats", broken)
    with pytest.raises(OperationError):
        list_interfaces()

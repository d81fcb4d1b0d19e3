"""Per-interface bandwidth counters read through psutil."""

import logging
import threading
import time
from dataclasses import asdict, dataclass

import psutil

from ..core.errors import OperationError, ValidationError

logger = logging.getLogger(__name__)

LOOPBACK = "lo"


@dataclass(frozen=True)
class BandwidthStats:
    """Snapshot of one interface's traffic.

    Speeds are bytes per second since the previous sample; totals and
    duration are counted from when the tracker was created.
    """

    interface: str
    download_speed: int
    upload_speed: int
    total_downloaded: int
    total_uploaded: int
    connection_duration: int

    def to_dict(self) -> dict:
        return asdict(self)


def _read_counters(interface: str) -> tuple[int, int]:
    try:
        counters = psutil.net_io_counters(pernic=True)
    except (psutil.Error, OSError) as e:
        raise OperationError(f"Failed to read counters for {interface}", cause=e) from e
    nic = counters.get(interface)
    if nic is None:
        raise OperationError(f"No counters for interface {interface}", details={"interface": interface})
    return nic.bytes_recv, nic.bytes_sent


class BandwidthTracker:
    """Tracks download/upload rates for one interface.

    Usage:
        tracker = BandwidthTracker("wlan0")
        time.sleep(1)
        print(tracker.sample().download_speed)
    """

    def __init__(self, interface: str) -> None:
        """Take the baseline sample.

        Raises:
            ValidationError: If the interface name is malformed
            OperationError: If the interface counters cannot be read
        """
        if not interface or "/" in interface or interface in (".", ".."):
            raise ValidationError(f"Invalid interface name: {interface!r}")
        self.interface = interface
        self._lock = threading.Lock()

        rx, tx = _read_counters(interface)
        now = time.monotonic()
        self._start_rx, self._start_tx, self._start_time = rx, tx, now
        self._last_rx, self._last_tx, self._last_time = rx, tx, now
        logger.debug("Tracking %s from rx=%d tx=%d", interface, rx, tx)

    def sample(self) -> BandwidthStats:
        """Read the counters and compute speeds since the last sample."""
        with self._lock:
            rx, tx = _read_counters(self.interface)
            now = time.monotonic()
            elapsed = now - self._last_time

            if elapsed > 0:
                # Counters reset when an interface is re-created
                download = max(rx - self._last_rx, 0) / elapsed
                upload = max(tx - self._last_tx, 0) / elapsed
            else:
                download = upload = 0.0

            self._last_rx, self._last_tx, self._last_time = rx, tx, now

            return BandwidthStats(
                interface=self.interface,
                download_speed=int(download),
                upload_speed=int(upload),
                total_downloaded=max(rx - self._start_rx, 0),
                total_uploaded=max(tx - self._start_tx, 0),
                connection_duration=int(now - self._start_time),
            )


def list_interfaces() -> list[str]:
    """Names of all network interfaces except loopback.

    Raises:
        OperationError: If the interface table cannot be read
    """
    try:
        names = sorted(psutil.net_if_stats())
    except (psutil.Error, OSError) as e:
        raise OperationError("Failed to list network interfaces", cause=e) from e
    return [name for name in names if name != LOOPBACK]

"""Application context owning the bus client.

Every public operation borrows the client under a shared lock, so many
resolutions may run at once; initialising, replacing and closing the client
take exclusive access.
"""

import logging
from contextlib import contextmanager
from functools import partial
from typing import Callable, Iterator

from ..bus.client import BusClient
from ..bus.signals import SignalSource
from ..core.config import Config
from ..core.errors import NotInitializedError
from ..core.threading import ClientCell
from .connection import ConnectionManager
from .enumerator import NetworkEnumerator
from .models import ActivationResult, ConnectionRequest, NetworkRecord
from .notifier import ChangeNotifier, Subscriber
from .profiles import ProfileManager
from .resolver import ReachabilityProbe, StateResolver, make_probe

logger = logging.getLogger(__name__)

ClientFactory = Callable[[], BusClient]


class NetworkContext:
    """Owns the single bus client and exposes all network operations.

    Usage:
        with NetworkContext(config) as context:
            record = context.resolve_current()
            for network in context.list_visible():
                print(network.ssid, network.signal_strength)
    """

    def __init__(
        self,
        config: Config | None = None,
        client_factory: ClientFactory | None = None,
        signal_factory: Callable[[], SignalSource] | None = None,
        probe: ReachabilityProbe | None = None,
    ) -> None:
        """Create an uninitialised context.

        Args:
            config: Application configuration (defaults when omitted)
            client_factory: Builds the bus client on ``initialize``
            signal_factory: Builds the listener's monitor connection
            probe: Internet reachability probe; built from config when omitted
        """
        self._config = config or Config()
        bus = self._config.bus

        self._client_factory = client_factory or partial(
            BusClient.open, bus=bus.bus, call_timeout=bus.call_timeout
        )
        self._probe = probe or make_probe(self._config.reachability)
        self._cell: ClientCell[BusClient] = ClientCell(lock_timeout=bus.lock_timeout)

        notifier = self._config.notifier
        self._notifier = ChangeNotifier(
            resolve=self.resolve_current,
            signal_factory=signal_factory or partial(SignalSource.open, bus=bus.bus),
            debounce=notifier.debounce_ms / 1000,
            poll_interval=notifier.poll_interval,
            queue_size=notifier.queue_size,
        )

    @property
    def config(self) -> Config:
        return self._config

    @property
    def is_initialized(self) -> bool:
        return self._cell.is_set()

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def initialize(self) -> None:
        """Open the bus client if it is not open yet.

        Raises:
            TransportError: If the bus cannot be reached
        """
        if self.is_initialized:
            return
        self.replace_client(self._client_factory())
        logger.info("Network context initialized")

    def replace_client(self, client: BusClient | None) -> None:
        """Swap in a new client and close the previous one.

        Operations already holding the old client finish before the swap.
        """
        previous = self._cell.swap(client)
        if previous is not None and previous is not client:
            logger.debug("Closing previous bus client")
            previous.close()

    def close(self) -> None:
        """Stop notifications and release the client."""
        self.stop_notifications()
        self.replace_client(None)
        logger.info("Network context closed")

    def __enter__(self) -> "NetworkContext":
        self.initialize()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @contextmanager
    def _borrow(self) -> Iterator[BusClient]:
        with self._cell.read() as client:
            if client is None:
                raise NotInitializedError("Network client not initialized")
            yield client

    # =========================================================================
    # State and Enumeration
    # =========================================================================

    def resolve_current(self) -> NetworkRecord:
        with self._borrow() as client:
            return StateResolver(client, self._probe).resolve_current()

    def list_visible(self) -> list[NetworkRecord]:
        with self._borrow() as client:
            return NetworkEnumerator(client, self._probe).list_visible()

    # =========================================================================
    # Connection Lifecycle
    # =========================================================================

    def connect(self, request: ConnectionRequest) -> ActivationResult:
        with self._borrow() as client:
            return ConnectionManager(client).connect(request)

    def disconnect(self) -> bool:
        with self._borrow() as client:
            return ConnectionManager(client).disconnect()

    def set_radio_enabled(self, enabled: bool) -> None:
        with self._borrow() as client:
            ConnectionManager(client).set_radio_enabled(enabled)

    def get_radio_enabled(self) -> bool:
        with self._borrow() as client:
            return ConnectionManager(client).get_radio_enabled()

    def is_radio_available(self) -> bool:
        with self._borrow() as client:
            return ConnectionManager(client).is_radio_available()

    def set_networking_enabled(self, enabled: bool) -> bool:
        with self._borrow() as client:
            return ConnectionManager(client).set_networking_enabled(enabled)

    def get_networking_enabled(self) -> bool:
        with self._borrow() as client:
            return ConnectionManager(client).get_networking_enabled()

    # =========================================================================
    # Saved Profiles
    # =========================================================================

    def list_saved(self) -> list[NetworkRecord]:
        with self._borrow() as client:
            return ProfileManager(client).list_saved()

    def delete_saved(self, ssid: str) -> bool:
        with self._borrow() as client:
            return ProfileManager(client).delete_saved(ssid)

    # =========================================================================
    # Change Notifications
    # =========================================================================

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register for debounced state changes; returns the unsubscribe function."""
        return self._notifier.subscribe(callback)

    def start_notifications(self) -> None:
        """Start the listener and debounce threads.

        Raises:
            NotInitializedError: If the client has not been opened
        """
        if not self.is_initialized:
            raise NotInitializedError("Network client not initialized")
        self._notifier.start()

    def stop_notifications(self) -> None:
        self._notifier.stop()

    @property
    def notifications_running(self) -> bool:
        return self._notifier.is_running

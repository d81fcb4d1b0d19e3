"""Change notification pipeline.

A listener thread turns every state-change signal into a freshly resolved
NetworkRecord and hands it to a debounce stage. The debounce stage publishes
the last record of a burst once the burst has been quiet for a full window.

    signal -> listener (resolve) -> queue -> debouncer -> subscribers
"""

import logging
import queue
import threading
import time
from typing import Callable, Generic, TypeVar

from ..bus.signals import SignalSource
from ..core.errors import NMBridgeError, TransportError
from ..core.threading import StoppableThread
from .models import NetworkRecord

logger = logging.getLogger(__name__)

T = TypeVar("T")

Subscriber = Callable[[NetworkRecord], None]

# Marks the end of the channel
_CLOSED = object()


class Debouncer(Generic[T]):
    """Trailing-edge debounce stage fed through a queue.

    The first item after an idle period opens a window; every item that
    arrives before the window elapses replaces the pending one and restarts
    the window. When a window elapses quietly the pending item is published
    once. Closing the channel ends the stage and drops anything pending.

    Usage:
        debouncer = Debouncer(0.5, publish=print)
        debouncer.start()
        debouncer.push(item)
        debouncer.close()
    """

    def __init__(
        self,
        window: float,
        publish: Callable[[T], None],
        maxsize: int = 0,
        poll_interval: float = 1.0,
    ) -> None:
        self._window = window
        self._publish = publish
        self._poll_interval = poll_interval
        self._queue: queue.Queue = queue.Queue(maxsize)
        self._thread: StoppableThread | None = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def push(self, item: T) -> None:
        self._queue.put(item)

    def close(self) -> None:
        """Close the channel; the stage exits once it reads the marker."""
        self._queue.put(_CLOSED)

    def start(self) -> None:
        if self.is_running:
            return
        self._thread = StoppableThread(target=self.run, name="NetworkDebounce")
        self._thread.start()

    def stop(self, timeout: float = 5.0) -> bool:
        if self._thread is None:
            return True
        self.close()
        stopped = self._thread.stop(timeout=timeout)
        self._thread = None
        return stopped

    def run(self, thread: StoppableThread | None = None) -> None:
        """Stage loop; runs until the channel is closed or stop is requested."""
        pending: T | None = None
        deadline: float | None = None

        while thread is None or not thread.should_stop():
            if deadline is None:
                try:
                    item = self._queue.get(timeout=self._poll_interval)
                except queue.Empty:
                    continue
            else:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    self._emit(pending)
                    pending, deadline = None, None
                    continue
                try:
                    item = self._queue.get(timeout=remaining)
                except queue.Empty:
                    continue

            if item is _CLOSED:
                break
            pending = item
            deadline = time.monotonic() + self._window

        logger.debug("Debounce stage stopped")

    def _emit(self, item: T) -> None:
        try:
            self._publish(item)
        except Exception:
            logger.exception("Error publishing debounced event")


class ChangeNotifier:
    """Publishes debounced NetworkRecord changes to subscribers.

    Usage:
        notifier = ChangeNotifier(resolve=context.resolve_current)
        unsubscribe = notifier.subscribe(lambda record: print(record))
        notifier.start()
        ...
        notifier.stop()
    """

    def __init__(
        self,
        resolve: Callable[[], NetworkRecord],
        signal_factory: Callable[[], SignalSource] = SignalSource.open,
        debounce: float = 0.5,
        poll_interval: float = 1.0,
        queue_size: int = 64,
    ) -> None:
        self._resolve = resolve
        self._signal_factory = signal_factory
        self._debounce = debounce
        self._poll_interval = poll_interval
        self._queue_size = queue_size

        self._subscribers: list[Subscriber] = []
        self._subscribers_lock = threading.Lock()

        self._debouncer: Debouncer[NetworkRecord] | None = None
        self._listener: StoppableThread | None = None

    @property
    def is_running(self) -> bool:
        return self._listener is not None and self._listener.is_alive()

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a callback for change events.

        Returns:
            A function that removes the callback again
        """
        with self._subscribers_lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._subscribers_lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def start(self) -> None:
        if self.is_running:
            return

        logger.info("Starting network change notifications")
        self._debouncer = Debouncer(
            self._debounce,
            publish=self._publish,
            maxsize=self._queue_size,
            poll_interval=self._poll_interval,
        )
        self._debouncer.start()

        self._listener = StoppableThread(target=self._listen, name="NetworkListener")
        self._listener.start()

    def stop(self, timeout: float = 5.0) -> None:
        if self._listener is None:
            return

        logger.info("Stopping network change notifications")
        self._listener.stop(timeout=timeout)
        self._listener = None

        if self._debouncer is not None:
            self._debouncer.stop(timeout=timeout)
            self._debouncer = None

    def _publish(self, record: NetworkRecord) -> None:
        with self._subscribers_lock:
            subscribers = list(self._subscribers)

        logger.debug("Publishing network change: %s", record.name)
        for callback in subscribers:
            try:
                callback(record)
            except Exception as e:
                logger.error("Error in network change subscriber: %s", e)

    def _listen(self, thread: StoppableThread) -> None:
        debouncer = self._debouncer
        try:
            with self._signal_factory() as source:
                logger.debug("Network listener started")
                while not thread.should_stop():
                    for message in source.receive(timeout=self._poll_interval):
                        logger.debug("State signal: %s", message.header.fields)
                        try:
                            record = self._resolve()
                        except TransportError:
                            raise
                        except NMBridgeError as e:
                            logger.warning("Failed to resolve state after signal: %s", e)
                            continue
                        if debouncer is not None:
                            debouncer.push(record)
        except TransportError as e:
            logger.error("Network listener stopped: %s", e)
        finally:
            if debouncer is not None:
                debouncer.close()
            logger.debug("Network listener stopped")

"""Thread-safe primitives for concurrent operations.

Provides the reader/writer guarded client cell shared by all operations and
the stoppable thread used by the change notification pipeline.
"""

import logging
import threading
import time
from contextlib import contextmanager
from typing import Any, Callable, Generic, Iterator, TypeVar

from .errors import LockError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ReadWriteLock:
    """Many-readers / single-writer lock.

    Writers are preferred: once a writer is waiting, new readers block until
    it has finished.

    Usage:
        lock = ReadWriteLock()
        with lock.read_locked():
            ...
        with lock.write_locked(timeout=2.0):
            ...
    """

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    def acquire_read(self, timeout: float | None = None) -> bool:
        """Acquire a shared lock.

        Returns:
            False if the timeout elapsed first
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        with self._cond:
            while self._writer or self._writers_waiting:
                if not self._wait(deadline):
                    return False
            self._readers += 1
            return True

    def release_read(self) -> None:
        with self._cond:
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    def acquire_write(self, timeout: float | None = None) -> bool:
        """Acquire the exclusive lock.

        Returns:
            False if the timeout elapsed first
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    if not self._wait(deadline):
                        return False
                self._writer = True
                return True
            finally:
                self._writers_waiting -= 1
                if not self._writer:
                    self._cond.notify_all()

    def release_write(self) -> None:
        with self._cond:
            self._writer = False
            self._cond.notify_all()

    def _wait(self, deadline: float | None) -> bool:
        if deadline is None:
            self._cond.wait()
            return True
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            return False
        self._cond.wait(remaining)
        return True

    @contextmanager
    def read_locked(self, timeout: float | None = None) -> Iterator[None]:
        if not self.acquire_read(timeout):
            raise LockError("Timed out acquiring read lock", details={"timeout": timeout})
        try:
            yield
        finally:
            self.release_read()

    @contextmanager
    def write_locked(self, timeout: float | None = None) -> Iterator[None]:
        if not self.acquire_write(timeout):
            raise LockError("Timed out acquiring write lock", details={"timeout": timeout})
        try:
            yield
        finally:
            self.release_write()


class ClientCell(Generic[T]):
    """Single optional value behind a reader/writer lock.

    Readers borrow the current value for the duration of a ``with`` block;
    ``swap`` replaces it under exclusive access and hands back the old one.

    Usage:
        cell = ClientCell[BusClient](lock_timeout=5.0)
        cell.swap(client)
        with cell.read() as client:
            ...
    """

    def __init__(self, value: T | None = None, lock_timeout: float | None = None) -> None:
        self._value = value
        self._lock = ReadWriteLock()
        self._lock_timeout = lock_timeout

    @contextmanager
    def read(self) -> Iterator[T | None]:
        """Borrow the current value (may be None) under a shared lock."""
        with self._lock.read_locked(self._lock_timeout):
            yield self._value

    def swap(self, value: T | None) -> T | None:
        """Replace the value under exclusive access.

        Returns:
            The previous value
        """
        with self._lock.write_locked(self._lock_timeout):
            previous, self._value = self._value, value
            return previous

    def is_set(self) -> bool:
        with self._lock.read_locked(self._lock_timeout):
            return self._value is not None


class StoppableThread(threading.Thread):
    """Thread with clean stop mechanism using Event.

    The target receives the thread as its first argument so it can poll
    ``should_stop()`` between blocking receives.

    Usage:
        def worker(thread: StoppableThread):
            while not thread.should_stop():
                # Do work
                time.sleep(1.0)

        thread = StoppableThread(target=worker)
        thread.start()
        # Later:
        thread.stop()  # Signals stop and waits
    """

    def __init__(
        self,
        target: Callable[..., Any] | None = None,
        name: str | None = None,
        args: tuple[Any, ...] = (),
        kwargs: dict[str, Any] | None = None,
        daemon: bool = True,
    ) -> None:
        if target is not None:
            original_target = target

            def wrapped_target(*a: Any, **kw: Any) -> Any:
                return original_target(self, *a, **kw)

            super().__init__(target=wrapped_target, name=name, args=args, kwargs=kwargs or {})
        else:
            super().__init__(name=name)

        self.daemon = daemon
        self._stop_event = threading.Event()

    def stop(self, timeout: float = 5.0) -> bool:
        """Request stop and wait for thread to finish.

        Args:
            timeout: Maximum time to wait for thread to finish

        Returns:
            True if thread stopped, False if still running
        """
        logger.debug("Stopping thread: %s", self.name)
        self._stop_event.set()
        if self.is_alive() and threading.current_thread() is not self:
            self.join(timeout=timeout)
        stopped = not self.is_alive()
        if not stopped:
            logger.warning("Thread %s did not stop within timeout", self.name)
        return stopped

    def should_stop(self) -> bool:
        """Check if stop was requested."""
        return self._stop_event.is_set()

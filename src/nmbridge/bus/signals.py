"""Signal subscription for the change notification pipeline.

Uses its own blocking connection so a listener waiting for signals never
competes with method calls made through the shared BusClient.
"""

import logging
from collections import deque
from contextlib import ExitStack

from jeepney.bus_messages import MatchRule, message_bus
from jeepney.io.blocking import DBusConnection, open_dbus_connection
from jeepney.low_level import Message

from ..core.errors import TransportError
from .constants import NM_IFACE, NM_PATH, PROPERTIES_IFACE

logger = logging.getLogger(__name__)

SIGNAL_QUEUE_SIZE = 16

STATE_RULES = (
    MatchRule(type="signal", interface=NM_IFACE, member="StateChanged", path=NM_PATH),
    MatchRule(type="signal", interface=PROPERTIES_IFACE, member="PropertiesChanged", path=NM_PATH),
)


class SignalSource:
    """Delivers NetworkManager state-change signals.

    Usage:
        with SignalSource.open() as source:
            while running:
                for msg in source.receive(timeout=1.0):
                    ...
    """

    def __init__(
        self,
        conn: DBusConnection,
        rules: tuple[MatchRule, ...] = STATE_RULES,
        bufsize: int = SIGNAL_QUEUE_SIZE,
    ) -> None:
        self._conn = conn
        self._rules = rules
        self._bufsize = bufsize
        self._queues: list[deque] = []
        self._stack = ExitStack()

    @classmethod
    def open(cls, bus: str = "SYSTEM") -> "SignalSource":
        try:
            conn = open_dbus_connection(bus=bus)
        except (OSError, KeyError) as e:
            raise TransportError(f"Cannot open {bus.lower()} bus for signals", cause=e) from e
        return cls(conn)

    def __enter__(self) -> "SignalSource":
        try:
            for rule in self._rules:
                self._conn.send_and_get_reply(message_bus.AddMatch(rule))
        except OSError as e:
            self._conn.close()
            raise TransportError("Failed to subscribe to state signals", cause=e) from e

        for rule in self._rules:
            queue = self._stack.enter_context(self._conn.filter(rule, bufsize=self._bufsize))
            self._queues.append(queue)
        logger.debug("Subscribed to %d signal rules", len(self._rules))
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def receive(self, timeout: float) -> list[Message]:
        """Wait up to ``timeout`` seconds and return the signals collected.

        Raises:
            TransportError: If the connection dropped
        """
        try:
            self._conn.recv_messages(timeout=timeout)
        except TimeoutError:
            return []
        except OSError as e:
            raise TransportError("Signal connection lost", cause=e) from e

        messages: list[Message] = []
        for queue in self._queues:
            while queue:
                messages.append(queue.popleft())
        return messages

    def close(self) -> None:
        self._stack.close()
        self._queues.clear()
        self._conn.close()

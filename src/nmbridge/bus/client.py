"""Bus client handle for NetworkManager.

Wraps a thread-safe jeepney router on the system bus and offers the three
primitives the rest of the package needs: read a property, write a property,
and call a method. Error replies are turned into OperationError subclasses;
socket failures become TransportError.
"""

import logging
from typing import Any, Callable, TypeVar

from jeepney import DBusAddress, new_method_call
from jeepney.io.threading import DBusRouter, ReceiveStopped, open_dbus_connection
from jeepney.low_level import Message, MessageType
from jeepney.wrappers import DBusErrorResponse, Properties

from ..core.errors import (
    NotImplementedOperationError,
    OperationError,
    PermissionDeniedError,
    TransportError,
)
from .constants import (
    NM_BUS_NAME,
    NM_IFACE,
    NM_PATH,
    PERMISSION_ERROR_NAMES,
    UNSUPPORTED_ERROR_NAMES,
)
from .decode import Decoded

logger = logging.getLogger(__name__)

# Exceptions meaning "the service answered with an error"
REMOTE_ERRORS = (OperationError, NotImplementedOperationError)

T = TypeVar("T")


def error_from_reply(reply: Message, what: str) -> OperationError | NotImplementedOperationError:
    """Build the exception matching a D-Bus error reply."""
    err = DBusErrorResponse(reply)
    remote_message = err.data[0] if err.data and isinstance(err.data[0], str) else ""
    text = f"{what} failed: {remote_message or err.name}"

    if err.name in PERMISSION_ERROR_NAMES:
        return PermissionDeniedError(text, dbus_name=err.name)
    if err.name in UNSUPPORTED_ERROR_NAMES:
        return NotImplementedOperationError(text, details={"dbus_name": err.name})
    return OperationError(text, dbus_name=err.name)


class BusClient:
    """Connection to the bus with a properties accessor for the service root.

    Usage:
        client = BusClient.open()
        paths = client.get_property(NM_PATH, NM_IFACE, "ActiveConnections")
        client.close()
    """

    def __init__(
        self,
        router: DBusRouter,
        call_timeout: float | None = None,
        bus_name: str = NM_BUS_NAME,
    ) -> None:
        self._router = router
        self._call_timeout = call_timeout
        self._bus_name = bus_name
        self._root = Properties(DBusAddress(NM_PATH, bus_name=bus_name, interface=NM_IFACE))

    @classmethod
    def open(cls, bus: str = "SYSTEM", call_timeout: float | None = None) -> "BusClient":
        """Connect to the bus.

        Raises:
            TransportError: If the bus socket cannot be reached
        """
        try:
            conn = open_dbus_connection(bus=bus)
        except (OSError, KeyError) as e:
            # KeyError: no DBUS_SESSION_BUS_ADDRESS for the session bus
            raise TransportError(f"Cannot connect to {bus.lower()} bus", cause=e) from e
        logger.debug("Connected to %s bus as %s", bus.lower(), conn.unique_name)
        return cls(DBusRouter(conn), call_timeout=call_timeout)

    def close(self) -> None:
        """Stop the router and close the socket."""
        try:
            self._router.close()
            self._router.conn.close()
        except OSError as e:
            logger.debug("Error closing bus connection: %s", e)

    def _address(self, path: str, interface: str) -> DBusAddress:
        return DBusAddress(path, bus_name=self._bus_name, interface=interface)

    def _send(self, msg: Message, what: str) -> tuple[Any, ...]:
        try:
            reply = self._router.send_and_get_reply(msg, timeout=self._call_timeout)
        except (OSError, ReceiveStopped) as e:
            # TimeoutError is an OSError too
            raise TransportError(f"{what}: bus unavailable", cause=e) from e

        if reply.header.message_type == MessageType.error:
            raise error_from_reply(reply, what)
        return reply.body

    def get_property(self, path: str, interface: str, name: str) -> Any:
        """Read one property.

        Returns:
            The raw ``(signature, value)`` variant
        """
        msg = Properties(self._address(path, interface)).get(name)
        return self._send(msg, f"Get {name}")[0]

    def set_property(self, path: str, interface: str, name: str, signature: str, value: Any) -> None:
        msg = Properties(self._address(path, interface)).set(name, signature, value)
        self._send(msg, f"Set {name}")

    def call(
        self,
        path: str,
        interface: str,
        method: str,
        signature: str | None = None,
        body: tuple[Any, ...] = (),
    ) -> tuple[Any, ...]:
        """Invoke a method and return the reply body."""
        msg = new_method_call(self._address(path, interface), method, signature, body)
        return self._send(msg, method)

    def root_property(self, name: str) -> Any:
        """Read a property of the service root object."""
        return self._send(self._root.get(name), f"Get {name}")[0]


def read_property(
    client: "BusClient",
    path: str,
    interface: str,
    name: str,
    decoder: Callable[[Any], Decoded[T]],
    default: T,
) -> T:
    """Read and decode one property, falling back to ``default``.

    Error replies and undecodable values both yield the default; transport
    failures propagate.
    """
    try:
        raw = client.get_property(path, interface, name)
    except REMOTE_ERRORS as e:
        logger.debug("Property %s unavailable on %s: %s", name, path, e)
        return default
    return decoder(raw).or_default(default, name)

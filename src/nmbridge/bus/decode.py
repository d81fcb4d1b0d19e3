"""Typed decoders for values read from the bus.

jeepney hands back variants as ``(signature, value)`` tuples. Each decoder
here accepts such a variant (or an already unwrapped value), checks that it
has the expected shape, and returns a ``Decoded`` result instead of raising.
Callers choose the fallback with ``Decoded.or_default`` so the
"decode or default" policy lives in one place.
"""

import ipaddress
import logging
import sys
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
E = TypeVar("E", bound=IntEnum)

U32_MAX = 0xFFFFFFFF


@dataclass(frozen=True)
class Decoded(Generic[T]):
    """Outcome of decoding one bus value."""

    value: T | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "Decoded[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: str) -> "Decoded[T]":
        return cls(error=error)

    def or_default(self, default: T, what: str = "value") -> T:
        """Return the decoded value, or ``default`` when decoding failed."""
        if self.error is None:
            return self.value  # type: ignore[return-value]
        logger.debug("Using default for %s: %s", what, self.error)
        return default


def _unwrap(raw: Any) -> tuple[str | None, Any]:
    """Split a jeepney variant into signature and value."""
    if isinstance(raw, tuple) and len(raw) == 2 and isinstance(raw[0], str):
        return raw[0], raw[1]
    return None, raw


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def decode_str(raw: Any) -> Decoded[str]:
    _, value = _unwrap(raw)
    if isinstance(value, str):
        return Decoded.success(value)
    return Decoded.failure(f"expected string, got {type(value).__name__}")


def decode_bool(raw: Any) -> Decoded[bool]:
    _, value = _unwrap(raw)
    if isinstance(value, bool):
        return Decoded.success(value)
    return Decoded.failure(f"expected boolean, got {type(value).__name__}")


def decode_u32(raw: Any) -> Decoded[int]:
    _, value = _unwrap(raw)
    if _is_int(value) and 0 <= value <= U32_MAX:
        return Decoded.success(value)
    return Decoded.failure(f"expected uint32, got {value!r}")


def decode_enum(raw: Any, enum_cls: type[E]) -> Decoded[E]:
    code = decode_u32(raw)
    if not code.ok:
        return Decoded.failure(code.error or "")
    try:
        return Decoded.success(enum_cls(code.value))
    except ValueError:
        return Decoded.failure(f"unknown {enum_cls.__name__} code {code.value}")


def decode_strength(raw: Any) -> Decoded[int]:
    """Access point strength, a byte the service reports as a percentage."""
    _, value = _unwrap(raw)
    if _is_int(value) and 0 <= value <= 0xFF:
        return Decoded.success(value)
    return Decoded.failure(f"expected byte, got {value!r}")


def decode_ssid(raw: Any) -> Decoded[str]:
    """SSID byte array to text, replacing invalid UTF-8."""
    _, value = _unwrap(raw)
    if isinstance(value, (bytes, bytearray)):
        return Decoded.success(bytes(value).decode("utf-8", "replace"))
    if isinstance(value, list) and all(_is_int(b) and 0 <= b <= 0xFF for b in value):
        return Decoded.success(bytes(value).decode("utf-8", "replace"))
    return Decoded.failure(f"expected byte array, got {type(value).__name__}")


def decode_path(raw: Any) -> Decoded[str]:
    _, value = _unwrap(raw)
    if isinstance(value, str) and value.startswith("/"):
        return Decoded.success(value)
    return Decoded.failure(f"expected object path, got {value!r}")


def decode_path_list(raw: Any) -> Decoded[list[str]]:
    _, value = _unwrap(raw)
    if not isinstance(value, (list, tuple)):
        return Decoded.failure(f"expected object path array, got {type(value).__name__}")
    paths = []
    for item in value:
        path = decode_path(item)
        if not path.ok:
            return Decoded.failure(path.error or "")
        paths.append(path.value)
    return Decoded.success(paths)


def _ipv4_from_network_order(value: int) -> str:
    # The u32 holds the address bytes in network order in host memory
    return str(ipaddress.IPv4Address(value.to_bytes(4, sys.byteorder)))


def decode_ipv4_addresses(raw: Any) -> Decoded[list[str]]:
    """Legacy ``Addresses`` property: array of (address, prefix, gateway)."""
    _, value = _unwrap(raw)
    if not isinstance(value, (list, tuple)):
        return Decoded.failure(f"expected address array, got {type(value).__name__}")
    addresses = []
    for entry in value:
        if not isinstance(entry, (list, tuple)) or not entry or not _is_int(entry[0]):
            return Decoded.failure(f"malformed address entry {entry!r}")
        if not 0 <= entry[0] <= U32_MAX:
            return Decoded.failure(f"address out of range {entry[0]!r}")
        addresses.append(_ipv4_from_network_order(entry[0]))
    return Decoded.success(addresses)


def decode_address_data(raw: Any) -> Decoded[list[str]]:
    """``AddressData`` property: array of dicts with an ``address`` string."""
    _, value = _unwrap(raw)
    if not isinstance(value, (list, tuple)):
        return Decoded.failure(f"expected address data array, got {type(value).__name__}")
    addresses = []
    for entry in value:
        if not isinstance(entry, dict) or "address" not in entry:
            return Decoded.failure(f"malformed address data entry {entry!r}")
        address = decode_str(entry["address"])
        if not address.ok:
            return Decoded.failure(address.error or "")
        addresses.append(address.value)
    return Decoded.success(addresses)


def decode_settings(raw: Any) -> Decoded[dict[str, dict[str, Any]]]:
    """Connection settings (``a{sa{sv}}``) with the variants stripped."""
    _, value = _unwrap(raw)
    if not isinstance(value, dict):
        return Decoded.failure(f"expected settings map, got {type(value).__name__}")
    settings: dict[str, dict[str, Any]] = {}
    for group, entries in value.items():
        if not isinstance(group, str) or not isinstance(entries, dict):
            return Decoded.failure(f"malformed settings group {group!r}")
        settings[group] = {key: _unwrap(item)[1] for key, item in entries.items()}
    return Decoded.success(settings)


def _variant(value: Any) -> tuple[str, Any]:
    if isinstance(value, bool):
        return ("b", value)
    if _is_int(value):
        return ("u", value)
    if isinstance(value, str):
        return ("s", value)
    if isinstance(value, (bytes, bytearray)):
        return ("ay", bytes(value))
    if isinstance(value, (list, tuple)) and all(isinstance(v, str) for v in value):
        return ("as", list(value))
    raise TypeError(f"Cannot encode settings value {value!r}")


def encode_settings(payload: dict[str, dict[str, Any]]) -> dict[str, dict[str, tuple[str, Any]]]:
    """Wrap a plain settings payload into ``a{sa{sv}}`` variants.

    Empty groups are left out so the service applies its own defaults.
    """
    return {
        group: {key: _variant(value) for key, value in entries.items()}
        for group, entries in payload.items()
        if entries
    }

"""Bus value decoders."""

import sys

import pytest

from nmbridge.bus.constants import DeviceType
from nmbridge.bus.decode import (
    Decoded,
    decode_address_data,
    decode_bool,
    decode_enum,
    decode_ipv4_addresses,
    decode_path_list,
    decode_settings,
    decode_ssid,
    decode_strength,
    decode_u32,
    encode_settings,
)


def test_variants_are_unwrapped():
    assert decode_u32(("u", 7)).value == 7
    assert decode_bool(("b", True)).value is True
    assert decode_path_list(("ao", ["/a", "/b"])).value == ["/a", "/b"]


def test_u32_rejects_bool_and_out_of_range():
    assert not decode_u32(True).ok
    assert not decode_u32(-1).ok
    assert not decode_u32(2**32).ok
    assert not decode_u32("2").ok


def test_enum_unknown_code_fails():
    assert decode_enum(("u", 2), DeviceType).value == DeviceType.WIFI
    assert not decode_enum(("u", 9999), DeviceType).ok


def test_ssid_lossy_utf8():
    assert decode_ssid(("ay", b"caf\xc3\xa9")).value == "café"
    assert decode_ssid(b"bad\xff").value == "bad\ufffd"
    assert decode_ssid([104, 105]).value == "hi"
    assert not decode_ssid("text").ok


def test_strength_is_a_byte():
    assert decode_strength(("y", 255)).value == 255
    assert not decode_strength(256).ok


def test_legacy_addresses_network_order():
    # 192.168.1.20 laid out in host memory
    value = int.from_bytes(bytes([192, 168, 1, 20]), sys.byteorder)
    assert decode_ipv4_addresses([[value, 24, 0]]).value == ["192.168.1.20"]
    assert decode_ipv4_addresses([]).value == []
    assert not decode_ipv4_addresses([["x"]]).ok


@pytest.mark.parametrize("byteorder", ["little", "big"])
def test_legacy_addresses_follow_host_byte_order(monkeypatch, byteorder):
    monkeypatch.setattr(sys, "byteorder", byteorder)
    value = int.from_bytes(bytes([10, 0, 0, 7]), byteorder)
    assert decode_ipv4_addresses([[value, 8, 0]]).value == ["10.0.0.7"]


def test_address_data():
    raw = ("aa{sv}", [{"address": ("s", "10.0.0.5"), "prefix": ("u", 8)}])
    assert decode_address_data(raw).value == ["10.0.0.5"]
    assert not decode_address_data([{"prefix": 8}]).ok


def test_settings_strip_variants():
    raw = {"connection": {"id": ("s", "home"), "type": ("s", "802-11-wireless")}}
    assert decode_settings(raw).value == {"connection": {"id": "home", "type": "802-11-wireless"}}
    assert not decode_settings(["x"]).ok


def test_or_default():
    assert Decoded.failure("nope").or_default(5) == 5
    assert Decoded.success(0).or_default(5) == 0


def test_encode_settings_skips_empty_groups():
    encoded = encode_settings(
        {
            "connection": {"id": "home", "autoconnect": True},
            "802-11-wireless": {"ssid": b"home"},
            "802-11-wireless-security": {},
            "extra": {"proto": ["rsn"]},
        }
    )
    assert encoded == {
        "connection": {"id": ("s", "home"), "autoconnect": ("b", True)},
        "802-11-wireless": {"ssid": ("ay", b"home")},
        "extra": {"proto": ("as", ["rsn"])},
    }


def test_encode_settings_rejects_unknown_types():
    with pytest.raises(TypeError):
        encode_settings({"connection": {"weird": object()}})

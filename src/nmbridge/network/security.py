"""Security type classification for access points and saved profiles."""

from .models import SecurityType

# General-flag bits inspected when no key-management hint is available
FLAG_OPEN = 0x1
FLAG_WEP = 0x2

_KEY_MGMT_TYPES = {
    "none": SecurityType.NONE,
    "wpa-psk": SecurityType.WPA_PSK,
    "wpa-eap": SecurityType.WPA_EAP,
    "sae": SecurityType.WPA3_PSK,
}


def classify_key_mgmt(hint: str | None) -> SecurityType:
    """Map a key-management string; unknown or missing values are open."""
    if hint is None:
        return SecurityType.NONE
    return _KEY_MGMT_TYPES.get(hint, SecurityType.NONE)


def classify(flags: int, wpa_flags: int, rsn_flags: int, key_mgmt: str | None = None) -> SecurityType:
    """Classify an access point.

    A key-management hint, when present, decides on its own. Otherwise the
    general flags are checked first, then the WPA/RSN flag words.
    """
    if key_mgmt is not None:
        return classify_key_mgmt(key_mgmt)

    if flags & FLAG_OPEN:
        return SecurityType.NONE
    if flags & FLAG_WEP:
        return SecurityType.WEP
    if wpa_flags and not rsn_flags:
        return SecurityType.WPA_PSK
    if rsn_flags:
        return SecurityType.WPA2_PSK if wpa_flags else SecurityType.WPA3_PSK
    return SecurityType.NONE

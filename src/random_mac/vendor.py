from __future__ import annotations

import random
import string
from dataclasses import dataclass

from .errors import ValidationError

HEX_DIGITS = frozenset(string.hexdigits)


def normalize_mac(mac: str) -> str:
    # Normalize to uppercase colon-separated where possible
    return mac.strip().replace("-", ":").upper()


def verify_prefix(prefix: str) -> None:
    """
    Check a user supplied prefix: 3 octets, colons optional.
    Raises ValidationError (reason "length" or "character").
    """
    raw = prefix.replace(":", "")
    if len(raw) != 6:
        raise ValidationError(ValidationError.LENGTH, "Invalid prefix length")
    for ch in raw:
        if ch not in HEX_DIGITS:
            raise ValidationError(ValidationError.CHARACTER, "Invalid prefix character")


def format_prefix(prefix: str) -> str:
    """Colon-separated upper-case form of a verified prefix, e.g. 001b77 -> 00:1B:77."""
    raw = prefix.replace(":", "").upper()
    return ":".join(raw[i:i + 2] for i in range(0, len(raw), 2))


def random_address(prefix: str) -> str:
    octets = (random.randint(0, 255) for _ in range(3))
    return prefix + "".join(f":{o:02X}" for o in octets)


@dataclass(frozen=True)
class VendorRecord:
    prefix: str
    vendor_name: str
    is_private: bool = False
    block_type: str = ""
    source_format: str = "maclookupapp"

    def __post_init__(self) -> None:
        verify_prefix(self.prefix)

    def random_address(self) -> str:
        return random_address(self.prefix)

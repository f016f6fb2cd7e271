"""EIP-55 mixed-case address checksum."""

from __future__ import annotations

import re
from typing import Any

from eth_utils import keccak

from calldisasm.decoding.utils import strip_hex_prefix

_ADDRESS_RE = re.compile(r"^(0[xX])?[0-9a-fA-F]{40}$")


def is_address(value: Any) -> bool:
    """True for a 20-byte hex address in any casing, with or without `0x`."""
    return isinstance(value, str) and bool(_ADDRESS_RE.match(value.strip()))


def checksum_address(address: str) -> str:
    """Return the EIP-55 checksummed form of `address`.

    The lowercase hex digits are hashed with keccak-256; each letter is
    uppercased when the matching hash nibble is >= 8. Idempotent.
    """
    if not is_address(address):
        raise ValueError(f"Invalid address: {address!r}")
    lower = strip_hex_prefix(address).lower()
    digest = keccak(text=lower).hex()
    return "0x" + "".join(
        ch.upper() if ch.isalpha() and int(digest[i], 16) >= 8 else ch
        for i, ch in enumerate(lower)
    )

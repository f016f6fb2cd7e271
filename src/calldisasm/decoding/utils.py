"""Decoding utilities: hex normalization, selector extraction and ABI word access."""

from __future__ import annotations

import string
from dataclasses import dataclass

from calldisasm.core.errors import AbiDecodeError

_HEX_DIGITS = frozenset(string.hexdigits)


def strip_hex_prefix(value: str) -> str:
    """Drop a leading `0x`/`0X` (and surrounding whitespace)."""
    s = value.strip()
    return s[2:] if s[:2] in ("0x", "0X") else s


def is_hex(value: str) -> bool:
    """True when `value` (prefix stripped) only holds hex digits."""
    return all(ch in _HEX_DIGITS for ch in strip_hex_prefix(value))


def is_empty_payload(payload: str) -> bool:
    """True for `""` and `"0x"`."""
    return strip_hex_prefix(payload) == ""


def extract_selector(payload: str) -> str:
    """Return the lowercase 0x-prefixed 4-byte selector, or "" if shorter than 4 bytes."""
    body = strip_hex_prefix(payload)
    if len(body) < 8 or not is_hex(body[:8]):
        return ""
    return "0x" + body[:8].lower()


def normalize_selector(value: str) -> str:
    """Normalize a selector (any casing, with/without 0x, or a full payload)."""
    return extract_selector(value)


@dataclass(frozen=True, slots=True)
class HexBuffer:
    """Byte view of a hex string that keeps the original text for slicing.

    Dynamic `bytes` values are sliced from `text` so that nested payloads
    stay exact substrings of their parent.
    """

    data: bytes
    text: str  # hex digits, no prefix, original casing

    @classmethod
    def from_hex(cls, hex_str: str) -> HexBuffer:
        body = strip_hex_prefix(hex_str)
        if not is_hex(body):
            raise AbiDecodeError("invalid hex string")
        if len(body) % 2:
            raise AbiDecodeError(f"odd-length hex string ({len(body)} digits)")
        return cls(data=bytes.fromhex(body), text=body)

    def __len__(self) -> int:
        return len(self.data)

    def word_at(self, offset: int) -> bytes:
        """Return the 32-byte ABI word starting at byte `offset`."""
        end = offset + 32
        if offset < 0 or end > len(self.data):
            raise AbiDecodeError(
                f"insufficient data: word at byte {offset} exceeds {len(self.data)} bytes"
            )
        return self.data[offset:end]

    def uint_at(self, offset: int) -> int:
        return int.from_bytes(self.word_at(offset), "big", signed=False)

    def size_at(self, offset: int, what: str) -> int:
        """Read an offset/length word and check it can index into the buffer."""
        v = self.uint_at(offset)
        if v > len(self.data):
            raise AbiDecodeError(f"{what} {v} at byte {offset} is out of bounds ({len(self.data)} bytes)")
        return v

    def hex_slice(self, start: int, end: int) -> str:
        """0x-prefixed hex of bytes [start, end) taken from the original text."""
        if start < 0 or end > len(self.data) or start > end:
            raise AbiDecodeError(f"byte range [{start}, {end}) is out of bounds ({len(self.data)} bytes)")
        return "0x" + self.text[2 * start : 2 * end]

    def tail(self, start: int) -> HexBuffer:
        """Sub-buffer from byte `start` to the end."""
        return HexBuffer(data=self.data[start:], text=self.text[2 * start :])

"""ABI head/tail decoder for function call data.

This module translates a payload into `DecodedParam` values given one
signature:
- `function_selector()` computes the 4-byte selector of a signature
- `decode_params()` decodes a body (no selector) for a list of types
- `decode_with_signature()` checks the selector and decodes the body

`decode_with_signature` never raises: any structural problem is returned as a
`DecodeFailure` value.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from eth_utils import keccak

from calldisasm.constants import DEFAULT_MAX_ARRAY_LENGTH
from calldisasm.core.errors import AbiDecodeError, TypeGrammarError
from calldisasm.core.models import DecodedParam, DecodeFailure, DecodeResult, DecodeSuccess
from calldisasm.decoding.checksum import checksum_address
from calldisasm.decoding.grammar import AbiTypeSpec, ParsedSignature, parse_signature, parse_type
from calldisasm.decoding.utils import HexBuffer, extract_selector

logger = logging.getLogger(__name__)


def function_selector(signature: str | ParsedSignature) -> str:
    """Return the lowercase 0x-prefixed selector implied by `signature`."""
    parsed = parse_signature(signature) if isinstance(signature, str) else signature
    return "0x" + keccak(text=parsed.selector_signature)[:4].hex()


# ---------- element decoders ----------


def _decode_elementary(buf: HexBuffer, t: AbiTypeSpec, pos: int) -> Any:
    base = t.base
    if base == "bytes":
        length = buf.size_at(pos, "bytes length")
        return buf.hex_slice(pos + 32, pos + 32 + length)
    if base == "string":
        length = buf.size_at(pos, "string length")
        start = pos + 32
        if start + length > len(buf):
            raise AbiDecodeError(f"string of {length} bytes at byte {start} exceeds {len(buf)} bytes")
        return buf.data[start : start + length].decode("utf-8", errors="replace")

    word = buf.word_at(pos)
    if base == "address":
        return checksum_address("0x" + word[-20:].hex())
    if base == "bool":
        return bool(word[-1] & 1)
    if base.startswith("uint"):
        return int.from_bytes(word, "big", signed=False)
    if base.startswith("int"):
        return int.from_bytes(word, "big", signed=True)
    if base.startswith("bytes"):
        size = int(base[5:])
        return buf.hex_slice(pos, pos + size)
    raise AbiDecodeError(f"unsupported type {t.canonical}")


class _Decoder:
    """Recursive head/tail walker over one buffer."""

    def __init__(self, buf: HexBuffer, max_array_length: int) -> None:
        self.buf = buf
        self.max_array_length = max_array_length

    def decode_tuple(
        self,
        types: Sequence[AbiTypeSpec],
        base: int,
        names: Sequence[str] = (),
    ) -> list[DecodedParam]:
        """Decode a head region starting at `base`; offsets are relative to `base`."""
        out: list[DecodedParam] = []
        head = base
        for i, t in enumerate(types):
            name = names[i] if i < len(names) else ""
            if t.is_dynamic:
                rel = self.buf.size_at(head, "offset")
                out.append(self.decode_value(t, base + rel, name))
            else:
                out.append(self.decode_value(t, head, name))
            head += 32 * t.head_words
        return out

    def decode_value(self, t: AbiTypeSpec, pos: int, name: str = "") -> DecodedParam:
        if t.is_array:
            elem = t.element()
            length = t.dims[-1]
            if length is None:
                length = self.buf.size_at(pos, "array length")
                pos += 32
            if length > self.max_array_length:
                raise AbiDecodeError(f"array length {length} exceeds limit {self.max_array_length}")
            if pos + 32 * length * elem.head_words > len(self.buf):
                raise AbiDecodeError(f"array of {length} x {elem.canonical} at byte {pos} exceeds buffer")
            children = self.decode_tuple([elem] * length, pos, [f"[{i}]" for i in range(length)])
            return DecodedParam(
                value=tuple(c.value for c in children),
                abi_type=t.canonical,
                name=name,
                children=tuple(children),
            )
        if t.is_tuple:
            children = self.decode_tuple(t.components, pos)
            return DecodedParam(
                value=tuple(c.value for c in children),
                abi_type=t.canonical,
                name=name,
                children=tuple(children),
            )
        return DecodedParam(value=_decode_elementary(self.buf, t, pos), abi_type=t.canonical, name=name)


def decode_params(
    types: Sequence[AbiTypeSpec | str],
    body: HexBuffer | str,
    *,
    names: Sequence[str] = (),
    max_array_length: int = DEFAULT_MAX_ARRAY_LENGTH,
) -> list[DecodedParam]:
    """Decode an ABI-encoded body (no selector) for the given types.

    Raises `AbiDecodeError` / `TypeGrammarError` on structural problems.
    """
    specs = [parse_type(t) if isinstance(t, str) else t for t in types]
    buf = body if isinstance(body, HexBuffer) else HexBuffer.from_hex(body)
    return _Decoder(buf, max_array_length).decode_tuple(specs, 0, names)


# ---------- main entry point ----------


def decode_with_signature(
    signature: str,
    payload: str,
    *,
    max_array_length: int = DEFAULT_MAX_ARRAY_LENGTH,
) -> DecodeResult:
    """Decode `payload` with `signature`.

    - The selector implied by `signature` must equal the payload's first
      4 bytes, otherwise a `selector_mismatch` failure is returned before
      the body is looked at.
    - Any structural problem yields a `structural` failure with empty params.
    """
    if not isinstance(signature, str):
        return DecodeFailure("Signature must be a string")
    try:
        parsed = parse_signature(signature)
    except TypeGrammarError as e:
        return DecodeFailure(f"Malformed signature: {e}")

    if not isinstance(payload, str):
        return DecodeFailure("Payload must be a hex string")

    expected = function_selector(parsed)
    actual = extract_selector(payload)
    if actual != expected:
        msg = f"Selector mismatch: payload={actual or '<none>'}, expected={expected}"
        logger.debug("%s (%s)", msg, signature)
        return DecodeFailure(msg, kind="selector_mismatch")

    try:
        buf = HexBuffer.from_hex(payload)
    except AbiDecodeError as e:
        return DecodeFailure(f"Malformed payload: {e}")

    try:
        params = _Decoder(buf.tail(4), max_array_length).decode_tuple(
            parsed.types, 0, [parsed.param_name(i) for i in range(len(parsed.types))]
        )
    except AbiDecodeError as e:
        logger.debug("Decode failed for %s: %s", signature, e)
        return DecodeFailure(f"Decode failed: {e}")

    return DecodeSuccess(tuple(params))

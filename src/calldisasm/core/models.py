"""Core data models for the call tree.

This module defines:
- `DecodedParam`: one decoded ABI value (with children for tuples/arrays and
  nested calls for `bytes` values that hold call data).
- `DecodedCall`: one node of the call tree.
- `DecodeSuccess` / `DecodeFailure`: the two-variant result returned by
  `decode_with_signature`.

Design notes
------------
- All records are frozen; a node owns its children, there are no back-references.
- `to_dict` renders integers as strings to keep uint256 values exact in JSON.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Literal

from calldisasm.constants import UNKNOWN_CALL_NAME

DecodeErrorKind = Literal["selector_mismatch", "structural"]


def _jsonable(value: Any) -> Any:
    """Convert decoded values to JSON-safe primitives (big ints as strings)."""
    if isinstance(value, bool) or value is None:
        return value
    if isinstance(value, int):
        return str(value)
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


# === Parameters ===


@dataclass(slots=True, frozen=True)
class DecodedParam:
    """Decoded ABI value.

    `children` is set only for tuple/array types, whose `value` is a tuple of
    the element values. `calls` is set only for `bytes` values that were
    recognised as call data and disassembled.
    """

    value: Any
    abi_type: str
    name: str = ""
    children: tuple[DecodedParam, ...] | None = None
    calls: tuple[DecodedCall, ...] | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"name": self.name, "abi_type": self.abi_type, "value": _jsonable(self.value)}
        if self.children is not None:
            out["children"] = [c.to_dict() for c in self.children]
        if self.calls is not None:
            out["calls"] = [c.to_dict() for c in self.calls]
        return out


# === Call tree node ===


@dataclass(slots=True, frozen=True)
class DecodedCall:
    """One node of the call tree.

    `payload` is the hex string this node was decoded from, unmodified.
    `error` is only set when decoding was forced with a specific signature
    and failed; it is never combined with a populated `params`.
    """

    selector: str
    function_name: str
    payload: str
    params: tuple[DecodedParam, ...] = ()
    children: tuple[DecodedCall, ...] = ()
    error: str | None = None
    signature: str | None = None
    address: str = ""  # called target when known (multiSend, aggregate tuples)
    value: str = "0"  # wei, as decimal string
    operation: int | None = None  # Safe CALL(0) / DELEGATECALL(1)
    depth: int = 0
    attempts: tuple[str, ...] = ()  # failure reasons of rejected candidates
    truncated: bool = False  # node limit reached; some nested calls left undecoded

    def __post_init__(self) -> None:
        if self.error is not None and self.params:
            raise ValueError("DecodedCall cannot carry both params and an error")

    @property
    def is_unknown(self) -> bool:
        """True for placeholder nodes (empty payload or unresolved selector)."""
        return self.signature is None and self.function_name == UNKNOWN_CALL_NAME

    def iter_calls(self):
        """Yield this node and every nested node, depth-first, in tree order."""
        yield self
        for p in self.params:
            yield from _iter_param_calls(p)
        for c in self.children:
            yield from c.iter_calls()

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "selector": self.selector,
            "function_name": self.function_name,
            "signature": self.signature,
            "payload": self.payload,
            "params": [p.to_dict() for p in self.params],
        }
        if self.address:
            out["address"] = self.address
        if self.value != "0":
            out["value"] = self.value
        if self.operation is not None:
            out["operation"] = self.operation
        if self.children:
            out["children"] = [c.to_dict() for c in self.children]
        if self.error is not None:
            out["error"] = self.error
        if self.truncated:
            out["truncated"] = True
        return out

    def to_json(self, indent: int | None = 2) -> str:
        """Serialize as JSON."""
        return json.dumps(self.to_dict(), indent=indent)


def _iter_param_calls(param: DecodedParam):
    for c in param.calls or ():
        yield from c.iter_calls()
    for child in param.children or ():
        yield from _iter_param_calls(child)


# === Decode results ===


@dataclass(slots=True, frozen=True)
class DecodeSuccess:
    """Successful decode of a payload body."""

    params: tuple[DecodedParam, ...]

    @property
    def error(self) -> None:
        return None


@dataclass(slots=True, frozen=True)
class DecodeFailure:
    """Failed decode; `reason` is human-readable."""

    reason: str
    kind: DecodeErrorKind = "structural"

    @property
    def params(self) -> tuple[DecodedParam, ...]:
        return ()

    @property
    def error(self) -> str:
        return self.reason


DecodeResult = DecodeSuccess | DecodeFailure


# === Collaborator records ===


@dataclass(slots=True, frozen=True)
class ContractInfo:
    """Token metadata for one address; fields are None when unavailable."""

    address: str
    symbol: str | None = None
    decimals: int | None = None
    is_contract: bool = False


@dataclass(slots=True)
class AddressStats:
    """Registry statistics."""

    unique_count: int = 0
    total_occurrences: int = 0
    per_source: dict[str, int] = field(default_factory=dict)

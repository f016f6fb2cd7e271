"""Call-data disassembler: selector resolution, candidate trial and nested calls.

Per payload the disassembler goes through:

    Start → SelectorExtracted → SignatureFound → HeadTailDecode → NestedBytesScan → Done
                              ↘ SignatureNotFound → Done (placeholder "Call" node)

- Candidates from the signature database are tried in listed order; the
  first structurally successful decode wins.
- `bytes` values that look like call data are disassembled recursively and
  attached to their parameter (`DecodedParam.calls`).
- Batch shapes (`bytes[]` or `(address,...,bytes)[]` as the sole/trailing
  parameter, Safe `multiSend(bytes)`) turn each element into a child node.
- Recursion is bounded by `DisassemblerConfig.max_depth`, total work by
  `DisassemblerConfig.max_nodes`. Sub-payloads past the node budget become
  placeholders flagged `truncated`.

Nothing here performs I/O; a call tree is built fresh for every request.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import replace
from typing import Any

from calldisasm.constants import EXEC_TRANSACTION_SELECTOR, MULTISEND_SELECTOR, UNKNOWN_CALL_NAME
from calldisasm.core.config import DisassemblerConfig
from calldisasm.core.interfaces import ISignatureSource
from calldisasm.core.models import DecodedCall, DecodedParam, DecodeFailure, DecodeSuccess
from calldisasm.decoding.abi import decode_with_signature
from calldisasm.decoding.grammar import AbiTypeSpec, parse_type
from calldisasm.decoding.multisend import parse_multisend_transactions
from calldisasm.decoding.signatures import DEFAULT_DATABASE
from calldisasm.decoding.utils import extract_selector, is_empty_payload, strip_hex_prefix

logger = logging.getLogger(__name__)


def is_decodable_bytes(value: Any) -> bool:
    """Heuristic: does a `bytes` value look like call data?

    True iff `value` is a string of at least 4 bytes (8 digits after the
    prefix) whose first byte is not `00`. Zero-led values are usually padded
    numbers, not calls.
    """
    if not isinstance(value, str):
        return False
    body = strip_hex_prefix(value)
    if len(body) < 8:
        return False
    return body[:2] != "00"


# ---------- batch shapes ----------


def _batch_element_fields(t: AbiTypeSpec) -> tuple[int, int | None, int | None] | None:
    """For an array param, return (data_idx, target_idx, value_idx) if it is a batch.

    `bytes[]` → (-1, None, None); `(address,...,bytes)[]` with exactly one
    `bytes` member → indices inside the tuple. Anything else → None.
    """
    if not t.is_array or t.dims[-1] is not None:
        return None
    elem = t.element()
    if elem.base == "bytes" and not elem.dims:
        return (-1, None, None)
    if not elem.is_tuple:
        return None
    bytes_idx = [i for i, c in enumerate(elem.components) if c.base == "bytes" and not c.dims]
    if len(bytes_idx) != 1:
        return None
    target_idx = next((i for i, c in enumerate(elem.components) if c.base == "address" and not c.dims), None)
    value_idx = next((i for i, c in enumerate(elem.components) if c.base == "uint256" and not c.dims), None)
    return (bytes_idx[0], target_idx, value_idx)


class _NodeBudget:
    """Call nodes one decode may still spend; shared across the whole tree."""

    __slots__ = ("remaining", "refused")

    def __init__(self, limit: int) -> None:
        self.remaining = limit
        self.refused = 0

    def take(self) -> bool:
        if self.remaining <= 0:
            self.refused += 1
            return False
        self.remaining -= 1
        return True


class Disassembler:
    """Turn raw call data into a `DecodedCall` tree.

    Parameters
    ----------
    database : ISignatureSource | None
        Selector → candidate signatures. Defaults to the built-in database.
    config : DisassemblerConfig | None
        Recursion depth, array limits and batch options.
    """

    def __init__(
        self,
        database: ISignatureSource | None = None,
        config: DisassemblerConfig | None = None,
    ) -> None:
        self.database = database if database is not None else DEFAULT_DATABASE
        self.config = config or DisassemblerConfig()

    # ---------- public API ----------

    def decode_payload(self, payload: Any) -> list[DecodedCall]:
        """Decode one payload into a call tree (a list holding the root node).

        Non-string input yields `[]`.
        """
        if not isinstance(payload, str):
            logger.warning("Invalid payload type %s; expected hex string", type(payload).__name__)
            return []
        budget = _NodeBudget(self.config.max_nodes)
        root = self._decode_call(payload, 0, budget)
        if budget.refused:
            logger.warning("Node limit %d reached; %d sub-calls left undecoded", self.config.max_nodes, budget.refused)
        logger.debug("Decoded %s with %d children", root.function_name, len(root.children))
        return [root]

    def split_payload_into_calls(self, payload: Any) -> list[DecodedCall]:
        """Decode a payload and flatten batch payloads into their sub-calls.

        Multicall / aggregate / multiSend payloads yield one node per
        sub-call in order; anything else yields the single decoded node.
        """
        calls = self.decode_payload(payload)
        if len(calls) == 1 and calls[0].children:
            return list(calls[0].children)
        return calls

    def decode_with(self, signature: str, payload: str) -> DecodedCall:
        """Decode with a forced signature; failures are reported on `error`."""
        result = decode_with_signature(signature, payload, max_array_length=self.config.max_array_length)
        if isinstance(result, DecodeFailure):
            named = isinstance(signature, str)
            return DecodedCall(
                selector=extract_selector(payload) if isinstance(payload, str) else "",
                function_name=signature.split("(", 1)[0].strip() if named else UNKNOWN_CALL_NAME,
                payload=payload if isinstance(payload, str) else "",
                error=result.reason,
                signature=signature if named else None,
            )
        budget = _NodeBudget(self.config.max_nodes)
        budget.take()
        return self._build_call(payload, signature, result.params, 0, budget)

    # ---------- per-node decode ----------

    def _placeholder(self, payload: str, depth: int, attempts: tuple[str, ...] = (), **extra: Any) -> DecodedCall:
        return DecodedCall(
            selector=extract_selector(payload),
            function_name=UNKNOWN_CALL_NAME,
            payload=payload,
            depth=depth,
            attempts=attempts,
            **extra,
        )

    def _decode_call(self, payload: str, depth: int, budget: _NodeBudget, **extra: Any) -> DecodedCall:
        if not budget.take():
            return self._placeholder(payload, depth, truncated=True, **extra)
        if is_empty_payload(payload):
            return self._placeholder(payload, depth, **extra)

        selector = extract_selector(payload)
        candidates = self.database.lookup(selector) if selector else ()
        if not candidates:
            logger.debug("No signature for selector %s", selector or "<none>")
            return self._placeholder(payload, depth, **extra)

        attempts: list[str] = []
        for signature in candidates:
            result = decode_with_signature(signature, payload, max_array_length=self.config.max_array_length)
            match result:
                case DecodeSuccess(params=params):
                    logger.debug("Selector %s resolved to %s", selector, signature)
                    return self._build_call(payload, signature, params, depth, budget, tuple(attempts), **extra)
                case DecodeFailure(reason=reason):
                    attempts.append(f"{signature}: {reason}")

        logger.debug("All %d candidates failed for %s: %s", len(candidates), selector, attempts[-1])
        return self._placeholder(payload, depth, tuple(attempts), **extra)

    def _build_call(
        self,
        payload: str,
        signature: str,
        params: Sequence[DecodedParam],
        depth: int,
        budget: _NodeBudget,
        attempts: tuple[str, ...] = (),
        **extra: Any,
    ) -> DecodedCall:
        selector = extract_selector(payload)
        params = list(params)
        children: tuple[DecodedCall, ...] = ()
        batch_idx: int | None = None

        if depth < self.config.max_depth:
            if self.config.decode_multisend and selector == MULTISEND_SELECTOR and len(params) == 1:
                children = self._multisend_children(params[0], depth, budget)
                if children:
                    batch_idx = 0
            if not children and self.config.split_batches and params:
                batch_idx, children = self._batch_children(params, depth, budget)
            hints = self._wrapper_hints(selector, params)
            params = [
                p if i == batch_idx else self._scan_param(p, depth, budget, hints.get(i, {}))
                for i, p in enumerate(params)
            ]

        return DecodedCall(
            selector=selector,
            function_name=signature.split("(", 1)[0].strip(),
            payload=payload,
            params=tuple(params),
            children=children,
            signature=signature,
            depth=depth,
            attempts=attempts,
            **extra,
        )

    # ---------- nested bytes ----------

    def _scan_param(
        self, param: DecodedParam, depth: int, budget: _NodeBudget, hint: dict[str, Any]
    ) -> DecodedParam:
        """Attach nested calls to every decodable `bytes` value under `param`."""
        if param.abi_type == "bytes":
            if not is_decodable_bytes(param.value):
                return param
            logger.debug("Decoding nested bytes %s at depth %d", param.name or "<elem>", depth + 1)
            return replace(param, calls=(self._decode_call(param.value, depth + 1, budget, **hint),))
        if param.children:
            return replace(param, children=tuple(self._scan_param(c, depth, budget, {}) for c in param.children))
        return param

    def _wrapper_hints(self, selector: str, params: Sequence[DecodedParam]) -> dict[int, dict[str, Any]]:
        """Target/value/operation for the inner call of known wrapper functions."""
        if selector == EXEC_TRANSACTION_SELECTOR and len(params) == 10:
            return {
                2: {
                    "address": params[0].value,
                    "value": str(params[1].value),
                    "operation": params[3].value,
                }
            }
        return {}

    # ---------- batches ----------

    def _batch_children(
        self, params: Sequence[DecodedParam], depth: int, budget: _NodeBudget
    ) -> tuple[int | None, tuple[DecodedCall, ...]]:
        """Split the trailing batch parameter into child calls, if there is one."""
        idx = len(params) - 1
        last = params[idx]
        shape = _batch_element_fields(parse_type(last.abi_type))
        if shape is None or not last.children:
            return None, ()
        data_idx, target_idx, value_idx = shape

        # multiCall(address[] targets, bytes[] data): pair targets by position
        targets: list[Any] = []
        if data_idx == -1 and idx > 0 and params[idx - 1].abi_type == "address[]":
            if len(params[idx - 1].value) == len(last.value):
                targets = list(params[idx - 1].value)

        children: list[DecodedCall] = []
        for j, elem in enumerate(last.children):
            extra: dict[str, Any] = {}
            if data_idx == -1:
                data = elem.value
                if targets:
                    extra["address"] = targets[j]
            else:
                data = elem.value[data_idx]
                if target_idx is not None:
                    extra["address"] = elem.value[target_idx]
                if value_idx is not None:
                    extra["value"] = str(elem.value[value_idx])
            children.append(self._decode_call(data, depth + 1, budget, **extra))
        logger.debug("Split %s into %d sub-calls", last.abi_type, len(children))
        return idx, tuple(children)

    def _multisend_children(
        self, param: DecodedParam, depth: int, budget: _NodeBudget
    ) -> tuple[DecodedCall, ...]:
        if param.abi_type != "bytes":
            return ()
        txs = parse_multisend_transactions(param.value)
        logger.debug("multiSend holds %d packed transactions", len(txs))
        return tuple(
            self._decode_call(
                tx.data,
                depth + 1,
                budget,
                address=tx.to,
                value=str(tx.value),
                operation=tx.operation,
            )
            for tx in txs
        )


# ---------- module-level helpers ----------


def _make(
    database: ISignatureSource | None,
    config: DisassemblerConfig | None,
    max_depth: int | None,
) -> Disassembler:
    if max_depth is not None:
        config = replace(config or DisassemblerConfig(), max_depth=max_depth)
    return Disassembler(database, config)


def decode_payload(
    payload: Any,
    *,
    database: ISignatureSource | None = None,
    config: DisassemblerConfig | None = None,
    max_depth: int | None = None,
) -> list[DecodedCall]:
    """Decode `payload` into a call tree using a throwaway `Disassembler`.

    `max_depth`, when given, overrides `config.max_depth`.
    """
    return _make(database, config, max_depth).decode_payload(payload)


def split_payload_into_calls(
    payload: Any,
    *,
    database: ISignatureSource | None = None,
    config: DisassemblerConfig | None = None,
    max_depth: int | None = None,
) -> list[DecodedCall]:
    """Decode `payload` and return its sub-calls (or the single call)."""
    return _make(database, config, max_depth).split_payload_into_calls(payload)

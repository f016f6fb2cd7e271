"""Exception hierarchy used inside the decoder.

These never cross the public decode API: `decode_with_signature` and the
disassembler catch them and turn them into `DecodeFailure` values.
"""

from __future__ import annotations


class CallDisasmError(Exception):
    """Base class for all calldisasm errors."""


class TypeGrammarError(CallDisasmError, ValueError):
    """Malformed ABI type list or signature (e.g. unbalanced parentheses)."""


class AbiDecodeError(CallDisasmError):
    """Structural problem in an ABI-encoded body (short data, bad offset...)."""


class RPCError(CallDisasmError, RuntimeError):
    """JSON-RPC endpoint returned an error object."""

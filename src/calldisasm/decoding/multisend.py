"""Safe `multiSend(bytes)` packed transaction parser.

The `transactions` argument packs each transaction as:
- 1 byte: operation (0 = CALL, 1 = DELEGATECALL)
- 20 bytes: target address
- 32 bytes: value
- 32 bytes: data length
- N bytes: data
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from calldisasm.constants import SAFE_OPERATIONS
from calldisasm.core.errors import AbiDecodeError
from calldisasm.decoding.checksum import checksum_address
from calldisasm.decoding.utils import HexBuffer

logger = logging.getLogger(__name__)

_FIXED_PART = 1 + 20 + 32 + 32


@dataclass(slots=True, frozen=True)
class PackedTransaction:
    operation: int
    to: str  # checksummed
    value: int
    data: str  # 0x-prefixed, sliced from the packed stream

    @property
    def operation_name(self) -> str:
        return SAFE_OPERATIONS.get(self.operation, "UNKNOWN")


def parse_multisend_transactions(packed: str) -> list[PackedTransaction]:
    """Split a packed multiSend stream into transactions.

    Parsing stops at the first truncated or malformed entry; entries parsed
    before it are returned.
    """
    try:
        buf = HexBuffer.from_hex(packed)
    except AbiDecodeError as e:
        logger.debug("multiSend stream is not valid hex: %s", e)
        return []

    out: list[PackedTransaction] = []
    pos = 0
    while pos < len(buf):
        if len(buf) - pos < _FIXED_PART:
            logger.debug("multiSend stream: %d trailing bytes ignored", len(buf) - pos)
            break
        operation = buf.data[pos]
        if operation not in SAFE_OPERATIONS:
            logger.debug("multiSend stream: invalid operation %d at byte %d", operation, pos)
            break
        to = checksum_address(buf.data[pos + 1 : pos + 21].hex())
        value = int.from_bytes(buf.data[pos + 21 : pos + 53], "big")
        length = int.from_bytes(buf.data[pos + 53 : pos + 85], "big")
        start = pos + _FIXED_PART
        if start + length > len(buf):
            logger.debug("multiSend stream: data length %d at byte %d exceeds stream", length, pos)
            break
        out.append(PackedTransaction(operation, to, value, buf.hex_slice(start, start + length)))
        pos = start + length
    return out

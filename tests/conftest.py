from unittest.mock import AsyncMock

import pytest
from eth_abi import encode

from calldisasm.decoding.abi import function_selector
from calldisasm.decoding.grammar import parse_signature

USDC = "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48"
WETH = "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2"
VITALIK = "0xd8dA6BF26964aF9D7eEd9e03E53415D37aA96045"


def build_call(signature: str, *args) -> str:
    """ABI-encode a call: selector + encoded arguments, 0x-prefixed."""
    parsed = parse_signature(signature)
    body = encode([t.selector_form for t in parsed.types], list(args))
    return function_selector(parsed) + body.hex()


def pack_multisend(*txs: tuple[int, str, int, bytes]) -> bytes:
    """Pack (operation, to, value, data) tuples into a Safe multiSend stream."""
    out = b""
    for operation, to, value, data in txs:
        out += (
            operation.to_bytes(1, "big")
            + bytes.fromhex(to[2:])
            + value.to_bytes(32, "big")
            + len(data).to_bytes(32, "big")
            + data
        )
    return out


@pytest.fixture
def encode_call():
    return build_call


@pytest.fixture
def transfer_payload() -> str:
    return build_call("transfer(address,uint256)", VITALIK, 10**18)


@pytest.fixture
def mock_rpc():
    rpc = AsyncMock()
    rpc.eth_call = AsyncMock(return_value="0x")
    rpc.aclose = AsyncMock()
    return rpc

from __future__ import annotations

from dataclasses import dataclass

from calldisasm.constants import (
    DEFAULT_MAX_ARRAY_LENGTH,
    DEFAULT_MAX_DEPTH,
    DEFAULT_MAX_NODES,
    MULTICALL3_ADDRESS,
    SIGNATURE_LOOKUP_URL,
)


@dataclass(frozen=True)
class DisassemblerConfig:
    """Configuration for the call-data disassembler."""

    max_depth: int = DEFAULT_MAX_DEPTH  # nested-bytes recursion bound
    max_array_length: int = DEFAULT_MAX_ARRAY_LENGTH
    max_nodes: int = DEFAULT_MAX_NODES  # call nodes decoded per payload
    decode_multisend: bool = True  # split Safe multiSend packed transactions
    split_batches: bool = True  # bytes[] / aggregate tuples become children

    def __post_init__(self) -> None:
        if self.max_depth < 0:
            raise ValueError("max_depth must be >= 0")
        if self.max_array_length < 0:
            raise ValueError("max_array_length must be >= 0")
        if self.max_nodes < 1:
            raise ValueError("max_nodes must be >= 1")


@dataclass(frozen=True)
class ContractInfoConfig:
    """Configuration for the batched symbol/decimals lookup."""

    rpc_url: str = ""  # empty: resolve from chains.get_rpc_url(chain_id)
    timeout_s: int = 20
    batch_size: int = 200  # addresses per Multicall3 request
    concurrency: int = 4
    multicall_address: str = MULTICALL3_ADDRESS


@dataclass(frozen=True)
class SignatureLookupConfig:
    """Configuration for the online signature registry client."""

    api_url: str = SIGNATURE_LOOKUP_URL
    timeout_s: int = 10
    concurrency: int = 8
    filter_junk: bool = True

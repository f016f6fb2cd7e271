"""calldisasm: Ethereum call-data disassembler."""

from calldisasm.addresses import AddressRegistry, collect_addresses
from calldisasm.core import (
    ContractInfo,
    DecodedCall,
    DecodedParam,
    DecodeFailure,
    DecodeResult,
    DecodeSuccess,
    DisassemblerConfig,
)
from calldisasm.decoding import (
    DEFAULT_DATABASE,
    Disassembler,
    SignatureDatabase,
    checksum_address,
    decode_payload,
    decode_with_signature,
    function_selector,
    is_decodable_bytes,
    split_payload_into_calls,
    split_tuple_types,
)

__version__ = "0.1.0"

__all__ = [
    "AddressRegistry",
    "collect_addresses",
    "ContractInfo",
    "DecodedCall",
    "DecodedParam",
    "DecodeFailure",
    "DecodeResult",
    "DecodeSuccess",
    "DisassemblerConfig",
    "DEFAULT_DATABASE",
    "Disassembler",
    "SignatureDatabase",
    "checksum_address",
    "decode_payload",
    "decode_with_signature",
    "function_selector",
    "is_decodable_bytes",
    "split_payload_into_calls",
    "split_tuple_types",
    "__version__",
]

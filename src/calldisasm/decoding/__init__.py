"""Call-data decoding.

This package provides:
- Type grammar (split_tuple_types, parse_type, parse_signature)
- ABI head/tail decoder (decode_with_signature, decode_params, function_selector)
- EIP-55 address checksum (checksum_address)
- Local signature database (SignatureDatabase, COMMON_SIGNATURES)
- Disassembler producing call trees (decode_payload, split_payload_into_calls)
"""

from calldisasm.decoding.abi import decode_params, decode_with_signature, function_selector
from calldisasm.decoding.checksum import checksum_address, is_address
from calldisasm.decoding.disassembler import (
    Disassembler,
    decode_payload,
    is_decodable_bytes,
    split_payload_into_calls,
)
from calldisasm.decoding.grammar import (
    AbiTypeSpec,
    ParsedSignature,
    canonical_type,
    parse_signature,
    parse_type,
    selector_type,
    split_tuple_types,
)
from calldisasm.decoding.signatures import COMMON_SIGNATURES, DEFAULT_DATABASE, SignatureDatabase

__all__ = [
    "decode_params",
    "decode_with_signature",
    "function_selector",
    "checksum_address",
    "is_address",
    "Disassembler",
    "decode_payload",
    "is_decodable_bytes",
    "split_payload_into_calls",
    "AbiTypeSpec",
    "ParsedSignature",
    "parse_signature",
    "parse_type",
    "split_tuple_types",
    "canonical_type",
    "selector_type",
    "COMMON_SIGNATURES",
    "DEFAULT_DATABASE",
    "SignatureDatabase",
]

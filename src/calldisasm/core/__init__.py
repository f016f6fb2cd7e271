"""Core data models, configurations, errors and collaborator interfaces.

This package provides:
- Data models (DecodedCall, DecodedParam, DecodeSuccess, DecodeFailure, ContractInfo)
- Configuration classes (DisassemblerConfig, ContractInfoConfig, SignatureLookupConfig)
- Exception hierarchy (CallDisasmError and subclasses)
"""

from calldisasm.core.config import ContractInfoConfig, DisassemblerConfig, SignatureLookupConfig
from calldisasm.core.errors import AbiDecodeError, CallDisasmError, RPCError, TypeGrammarError
from calldisasm.core.models import (
    ContractInfo,
    DecodedCall,
    DecodedParam,
    DecodeFailure,
    DecodeResult,
    DecodeSuccess,
)

__all__ = [
    "ContractInfoConfig",
    "DisassemblerConfig",
    "SignatureLookupConfig",
    "AbiDecodeError",
    "CallDisasmError",
    "RPCError",
    "TypeGrammarError",
    "ContractInfo",
    "DecodedCall",
    "DecodedParam",
    "DecodeFailure",
    "DecodeResult",
    "DecodeSuccess",
]

from __future__ import annotations

# Function name used for placeholder nodes (empty payloads, unknown selectors)
UNKNOWN_CALL_NAME = "Call"

# Nested-bytes recursion bound
DEFAULT_MAX_DEPTH = 8

# Upper bound on dynamic array lengths accepted by the decoder
DEFAULT_MAX_ARRAY_LENGTH = 4096

# Calls decoded per payload; sub-payloads past this stay undecoded placeholders
DEFAULT_MAX_NODES = 2048

# Multicall3 is deployed at the same address on most EVM chains
MULTICALL3_ADDRESS = "0xcA11bde05977b3631167028862bE2a173976CA11"

# ERC20 metadata selectors (lowercase, 0x-prefixed)
SYMBOL_SELECTOR = "0x95d89b41"
DECIMALS_SELECTOR = "0x313ce567"

# Gnosis Safe selectors
EXEC_TRANSACTION_SELECTOR = "0x6a761202"
MULTISEND_SELECTOR = "0x8d80ff0a"
SAFE_OPERATIONS = {0: "CALL", 1: "DELEGATECALL"}

# Public 4byte signature registry
SIGNATURE_LOOKUP_URL = "https://api.4byte.sourcify.dev/signature-database/v1/lookup"

"""Chain metadata: names, block explorers and public RPC endpoints.

`get_rpc_url()` honours a `CALLDISASM_RPC_URL_<chain_id>` environment
override, so private providers can be used without code changes.
"""

from __future__ import annotations

import os
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class ChainInfo:
    name: str
    explorer: str
    rpc: str


CHAIN_CONFIG: dict[int, ChainInfo] = {
    1: ChainInfo("Ethereum Mainnet", "https://etherscan.io", "https://eth.drpc.org"),
    10: ChainInfo("Optimism", "https://optimistic.etherscan.io", "https://optimism.drpc.org"),
    56: ChainInfo("BNB Smart Chain", "https://bscscan.com", "https://bsc.drpc.org"),
    137: ChainInfo("Polygon", "https://polygonscan.com", "https://polygon.drpc.org"),
    239: ChainInfo("TAC", "https://explorer.tac.build", "https://turin.rpc.tac.build"),
    1329: ChainInfo("Sei", "https://seitrace.com", "https://evm-rpc.sei-apis.com"),
    4200: ChainInfo("Merlin Chain", "https://scan.merlinchain.io", "https://rpc.merlinchain.io"),
    5000: ChainInfo("Mantle", "https://mantlescan.xyz", "https://mantle.drpc.org"),
    8453: ChainInfo("Base", "https://basescan.org", "https://base.drpc.org"),
    9745: ChainInfo("Plasma", "https://plasmascan.to", "https://rpc.plasma.nexus"),
    42161: ChainInfo("Arbitrum One", "https://arbiscan.io", "https://arbitrum.drpc.org"),
    43114: ChainInfo("Avalanche C-Chain", "https://snowscan.xyz", "https://avalanche.drpc.org"),
    80094: ChainInfo("Berachain", "https://berascan.com", "https://rpc.berachain.com"),
    81457: ChainInfo("Blast", "https://blastscan.io", "https://blast.drpc.org"),
    534352: ChainInfo("Scroll", "https://scrollscan.com", "https://scroll.drpc.org"),
    11155111: ChainInfo("Sepolia Testnet", "https://sepolia.etherscan.io", "https://sepolia.drpc.org"),
}

RPC_ENV_PREFIX = "CALLDISASM_RPC_URL_"


def is_chain_supported(chain_id: int | str) -> bool:
    try:
        return int(chain_id) in CHAIN_CONFIG
    except ValueError:
        return False


def get_chain_name(chain_id: int | str) -> str:
    info = CHAIN_CONFIG.get(int(chain_id))
    return info.name if info else "Unknown Chain"


def get_explorer_url(chain_id: int | str) -> str:
    info = CHAIN_CONFIG.get(int(chain_id))
    return info.explorer if info else ""


def get_rpc_url(chain_id: int | str) -> str:
    """RPC endpoint for `chain_id`; "" when the chain is unknown and no override is set."""
    override = os.environ.get(f"{RPC_ENV_PREFIX}{int(chain_id)}")
    if override:
        return override
    info = CHAIN_CONFIG.get(int(chain_id))
    return info.rpc if info else ""


def all_chain_ids() -> list[int]:
    return sorted(CHAIN_CONFIG)

"""Local selector → signature database.

This module exposes:
- `COMMON_SIGNATURES`: static table of well-known function signatures
- `SignatureDatabase`: read-only lookup returning candidates in trial order
- `signatures_from_abi()`: function signatures of a JSON ABI (pydantic-validated)

Collisions are legal: a selector maps to an ordered list of candidates and
callers try them in listed order. A database is never mutated; `merged()`
returns a new one.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Iterator, Mapping, Sequence
from pathlib import Path
from types import MappingProxyType
from typing import Any, Literal

from pydantic import BaseModel

from calldisasm.decoding.abi import function_selector
from calldisasm.decoding.utils import normalize_selector

COMMON_SIGNATURES: dict[str, list[str]] = {
    # ERC20
    "0x095ea7b3": ["approve(address,uint256)"],
    "0xa9059cbb": ["transfer(address,uint256)"],
    "0x23b872dd": ["transferFrom(address,address,uint256)"],
    "0x70a08231": ["balanceOf(address)"],
    "0x18160ddd": ["totalSupply()"],
    "0xdd62ed3e": ["allowance(address,address)"],
    "0x313ce567": ["decimals()"],
    "0x06fdde03": ["name()"],
    "0x95d89b41": ["symbol()"],

    # ERC721
    "0x42842e0e": ["safeTransferFrom(address,address,uint256)"],
    "0xb88d4fde": ["safeTransferFrom(address,address,uint256,bytes)"],
    "0x6352211e": ["ownerOf(uint256)"],
    "0xe985e9c5": ["isApprovedForAll(address,address)"],
    "0xa22cb465": ["setApprovalForAll(address,bool)"],
    "0x081812fc": ["getApproved(uint256)"],

    # ERC1155
    "0xf242432a": ["safeTransferFrom(address,address,uint256,uint256,bytes)"],
    "0x2eb2c2d6": ["safeBatchTransferFrom(address,address,uint256[],uint256[],bytes)"],
    "0x00fdd58e": ["balanceOf(address,uint256)"],
    "0x4e1273f4": ["balanceOfBatch(address[],uint256[])"],

    # Gnosis Safe
    "0x6a761202": ["execTransaction(address,uint256,bytes,uint8,uint256,uint256,uint256,address,address,bytes)"],
    "0x8d80ff0a": ["multiSend(bytes)"],
    "0xf08a0323": ["setFallbackHandler(address)"],
    "0xe19a9dd9": ["setGuard(address)"],
    "0x0d582f13": ["addOwnerWithThreshold(address,uint256)"],
    "0xf8dc5dd9": ["removeOwner(address,address,uint256)"],
    "0x694e80c3": ["changeThreshold(uint256)"],
    "0x610b5925": ["enableModule(address)"],

    # Multicall patterns
    "0x5ae401dc": ["multicall(uint256,bytes[])"],
    "0xac9650d8": ["multicall(bytes[])"],
    "0x1c0464c1": ["multicall(bytes32,bytes[])"],
    "0xda5b4ffd": ["multiCall(address[],bytes[])"],
    "0x252dba42": ["aggregate((address,bytes)[])"],
    "0x82ad56cb": ["aggregate3((address,bool,bytes)[])"],
    "0x174dea71": ["aggregate3Value((address,bool,uint256,bytes)[])"],
    "0xc3077fa9": ["blockAndAggregate((address,bytes)[])"],
    "0xbce38bd7": ["tryAggregate(bool,(address,bytes)[])"],
    "0x399542e9": ["tryBlockAndAggregate(bool,(address,bytes)[])"],

    # Uniswap V2 router
    "0x7ff36ab5": ["swapExactETHForTokens(uint256,address[],address,uint256)"],
    "0x18cbafe5": ["swapExactTokensForETH(uint256,uint256,address[],address,uint256)"],
    "0x38ed1739": ["swapExactTokensForTokens(uint256,uint256,address[],address,uint256)"],
    "0x8803dbee": ["swapTokensForExactTokens(uint256,uint256,address[],address,uint256)"],
    "0xfb3bdb41": ["swapETHForExactTokens(uint256,address[],address,uint256)"],
    "0x4a25d94a": ["swapTokensForExactETH(uint256,uint256,address[],address,uint256)"],
    "0xe8e33700": ["addLiquidity(address,address,uint256,uint256,uint256,uint256,address,uint256)"],
    "0xf305d719": ["addLiquidityETH(address,uint256,uint256,uint256,address,uint256)"],
    "0xbaa2abde": ["removeLiquidity(address,address,uint256,uint256,uint256,address,uint256)"],
    "0x02751cec": ["removeLiquidityETH(address,uint256,uint256,uint256,address,uint256)"],

    # Uniswap V3 routers
    "0x414bf389": ["exactInputSingle((address,address,uint24,address,uint256,uint256,uint256,uint160))"],
    "0xc04b8d59": ["exactInput((bytes,address,uint256,uint256,uint256))"],
    "0xdb3e2198": ["exactOutputSingle((address,address,uint24,address,uint256,uint256,uint256,uint160))"],
    "0xf28c0498": ["exactOutput((bytes,address,uint256,uint256,uint256))"],
    "0x04e45aaf": ["exactInputSingle((address,address,uint24,address,uint256,uint256,uint160))"],
    "0x5023b4df": ["exactOutputSingle((address,address,uint24,address,uint256,uint256,uint160))"],

    # Common DeFi (WETH, vaults, staking)
    "0xd0e30db0": ["deposit()"],
    "0x2e1a7d4d": ["withdraw(uint256)"],
    "0x3ccfd60b": ["withdraw()"],
    "0xb6b55f25": ["deposit(uint256)"],
    "0x6e553f65": ["deposit(uint256,address)"],
    "0xba087652": ["redeem(uint256,address,address)"],
    "0x4641257d": ["harvest()"],
    "0xa694fc3a": ["stake(uint256)"],
    "0x2e17de78": ["unstake(uint256)"],
    "0xe9fad8ee": ["exit()"],
    "0x3d18b912": ["getReward()"],

    # Proxy & upgrades
    "0x3659cfe6": ["upgradeTo(address)"],
    "0x4f1ef286": ["upgradeToAndCall(address,bytes)"],
    "0x5c60da1b": ["implementation()"],
    "0xf851a440": ["admin()"],
    "0x8f283970": ["changeAdmin(address)"],

    # Access control
    "0x2f2ff15d": ["grantRole(bytes32,address)"],
    "0xd547741f": ["revokeRole(bytes32,address)"],
    "0x36568abe": ["renounceRole(bytes32,address)"],
    "0x91d14854": ["hasRole(bytes32,address)"],
    "0x248a9ca3": ["getRoleAdmin(bytes32)"],

    # Ownable / Pausable
    "0x8da5cb5b": ["owner()"],
    "0xf2fde38b": ["transferOwnership(address)"],
    "0x715018a6": ["renounceOwnership()"],
    "0x8456cb59": ["pause()"],
    "0x3f4ba83a": ["unpause()"],
    "0x5c975abb": ["paused()"],

    # Custom errors (EIP-6093)
    "0xe450d38c": ["ERC20InsufficientBalance(address,uint256,uint256)"],
    "0xfb8f41b2": ["ERC20InsufficientAllowance(address,uint256,uint256)"],
    "0x96c6fd1e": ["ERC20InvalidSender(address)"],
    "0xec442f05": ["ERC20InvalidReceiver(address)"],
    "0xe602df05": ["ERC20InvalidApprover(address)"],
    "0x94280d62": ["ERC20InvalidSpender(address)"],

    # Permit (EIP-2612)
    "0xd505accf": ["permit(address,address,uint256,uint256,uint8,bytes32,bytes32)"],
    "0x7ecebe00": ["nonces(address)"],
    "0x3644e515": ["DOMAIN_SEPARATOR()"],

    # Chainlink
    "0x50d25bcd": ["latestAnswer()"],
    "0xfeaf968c": ["latestRoundData()"],
    "0x9a6fc8f5": ["getRoundData(uint80)"],

    # ENS
    "0x3b3b57de": ["addr(bytes32)"],
    "0xf1cb7e06": ["addr(bytes32,uint256)"],
    "0x691f3431": ["name(bytes32)"],
    "0x10f13a8c": ["setText(bytes32,string,string)"],
    "0x59d1d43c": ["text(bytes32,string)"],

    # Compound / Aave style
    "0xa0712d68": ["mint(uint256)"],
    "0xdb006a75": ["redeem(uint256)"],
    "0x852a12e3": ["redeemUnderlying(uint256)"],
    "0xc5ebeaec": ["borrow(uint256)"],
    "0x0e752702": ["repayBorrow(uint256)"],

    # 1inch
    "0x12aa3caf": ["swap(address,(address,address,address,address,uint256,uint256,uint256),bytes,bytes)"],
    "0xe449022e": ["uniswapV3Swap(uint256,uint256,uint256[])"],
    "0x0502b1c5": ["unoswap(address,uint256,uint256,uint256[])"],

    # Seaport
    "0xfb0f3ee1": ["fulfillBasicOrder((address,uint256,uint256,address,address,address,uint256,uint256,uint8,uint256,uint256,bytes32,uint256,bytes32,bytes32,uint256,(uint256,address)[],bytes))"],
    "0x87201b41": ["fulfillAvailableAdvancedOrders(((address,address,(uint8,address,uint256,uint256,uint256)[],(uint8,address,uint256,uint256,uint256,address)[],uint8,uint256,uint256,bytes32,uint256,bytes32,uint256),uint120,uint120,bytes,bytes)[],(uint256,uint8,uint256,uint256,bytes32[])[],(uint256,uint256)[][],(uint256,uint256)[][],bytes32,address,uint256)"],

    # Misc
    "0x1249c58b": ["mint()"],
    "0x40c10f19": ["mint(address,uint256)"],
    "0x42966c68": ["burn(uint256)", "collate_propagate_storage(bytes16)"],
    "0x9dc29fac": ["burn(address,uint256)"],
    "0x79cc6790": ["burnFrom(address,uint256)"],
    "0x8129fc1c": ["initialize()"],
    "0xc4d66de8": ["initialize(address)"],
    "0xfe4b84df": ["initialize(uint256)"],
    "0x485cc955": ["initialize(address,address)"],
}


# ---- ABI files ----


class AbiParameter(BaseModel):
    name: str = ""
    type: str
    components: list[AbiParameter] | None = None


AbiParameter.model_rebuild()


class AbiFunction(BaseModel):
    name: str
    inputs: list[AbiParameter] = []
    type: Literal["function"]


def _abi_param_type(param: AbiParameter) -> str:
    """Render one ABI JSON parameter as a signature type (tuples expanded)."""
    if param.type.startswith("tuple"):
        inner = ",".join(_abi_param_type(c) for c in param.components or [])
        return f"({inner}){param.type[len('tuple'):]}"
    return param.type


def get_function_signature(fn: AbiFunction) -> str:
    return f"{fn.name}({','.join(_abi_param_type(p) for p in fn.inputs)})"


def signatures_from_abi(abi: Iterable[dict[str, Any]] | Path) -> list[str]:
    """Return the function signatures declared in a JSON ABI (list or file)."""
    entries = json.loads(abi.read_text()) if isinstance(abi, Path) else abi
    if isinstance(entries, dict) and "abi" in entries:  # compiler artifact
        entries = entries["abi"]
    return [
        get_function_signature(AbiFunction.model_validate(entry))
        for entry in entries
        if entry.get("type") == "function"
    ]


# ---- Database ----


class SignatureDatabase:
    """Read-only selector → candidate signatures mapping.

    Parameters
    ----------
    entries : Mapping[str, Sequence[str]] | None
        Selector (any casing, with/without 0x) to ordered candidates.
        Defaults to `COMMON_SIGNATURES`.
    """

    def __init__(self, entries: Mapping[str, Sequence[str]] | None = None) -> None:
        table: dict[str, tuple[str, ...]] = {}
        for selector, sigs in (COMMON_SIGNATURES if entries is None else entries).items():
            key = normalize_selector(selector)
            if not key:
                raise ValueError(f"Invalid selector: {selector!r}")
            merged = table.get(key, ()) + tuple(s.strip() for s in sigs if s.strip())
            table[key] = tuple(dict.fromkeys(merged))
        self._entries = MappingProxyType(table)

    @classmethod
    def from_signatures(cls, signatures: Iterable[str]) -> SignatureDatabase:
        """Build a database keyed by the computed selector of each signature."""
        table: dict[str, list[str]] = {}
        for sig in signatures:
            table.setdefault(function_selector(sig), []).append(sig)
        return cls(table)

    @classmethod
    def from_json(cls, path: Path) -> SignatureDatabase:
        """Load a `{selector: [signature, ...]}` JSON file (a bare string is accepted)."""
        raw = json.loads(Path(path).read_text())
        return cls({k: [v] if isinstance(v, str) else v for k, v in raw.items()})

    @classmethod
    def from_abi(cls, abi: Iterable[dict[str, Any]] | Path) -> SignatureDatabase:
        return cls.from_signatures(signatures_from_abi(abi))

    def lookup(self, selector: str) -> tuple[str, ...]:
        """Return candidates for a selector (or full payload), in trial order."""
        if not isinstance(selector, str):
            return ()
        return self._entries.get(normalize_selector(selector), ())

    def merged(self, extra: SignatureDatabase | Mapping[str, Sequence[str]]) -> SignatureDatabase:
        """Return a new database; `extra` candidates are tried after existing ones."""
        combined: dict[str, list[str]] = {k: list(v) for k, v in self._entries.items()}
        for selector, sigs in extra.items():
            combined.setdefault(normalize_selector(selector), []).extend(sigs)
        return SignatureDatabase(combined)

    def items(self) -> Iterator[tuple[str, tuple[str, ...]]]:
        return iter(self._entries.items())

    def __contains__(self, selector: object) -> bool:
        return isinstance(selector, str) and normalize_selector(selector) in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)


DEFAULT_DATABASE = SignatureDatabase()

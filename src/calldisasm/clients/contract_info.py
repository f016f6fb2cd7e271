"""Token metadata lookup (symbol, decimals) via Multicall3.

Each address contributes two calls, `symbol()` and `decimals()`, to a
`tryAggregate(false, calls)` batch sent with `eth_call`. Failing calls do not
revert the batch; they leave the corresponding field as None.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Sequence

import httpx
from eth_abi import encode

from calldisasm.chains import get_rpc_url
from calldisasm.clients.rpc import RPC
from calldisasm.constants import DECIMALS_SELECTOR, SYMBOL_SELECTOR
from calldisasm.core.config import ContractInfoConfig
from calldisasm.core.errors import AbiDecodeError, RPCError
from calldisasm.core.models import ContractInfo
from calldisasm.decoding.abi import decode_params, function_selector
from calldisasm.decoding.checksum import checksum_address, is_address
from calldisasm.decoding.utils import HexBuffer

logger = logging.getLogger(__name__)

TRY_AGGREGATE_SIGNATURE = "tryAggregate(bool,(address,bytes)[])"
TRY_AGGREGATE_SELECTOR = function_selector(TRY_AGGREGATE_SIGNATURE)


def build_multicall_batch(addresses: Sequence[str]) -> list[tuple[str, bytes]]:
    """Two calls per address: symbol() then decimals()."""
    calls: list[tuple[str, bytes]] = []
    for addr in addresses:
        calls.append((addr, bytes.fromhex(SYMBOL_SELECTOR[2:])))
        calls.append((addr, bytes.fromhex(DECIMALS_SELECTOR[2:])))
    return calls


def encode_try_aggregate(calls: Sequence[tuple[str, bytes]]) -> str:
    """Call data for `tryAggregate(false, calls)`."""
    body = encode(["bool", "(address,bytes)[]"], [False, list(calls)])
    return TRY_AGGREGATE_SELECTOR + body.hex()


def decode_try_aggregate(return_data: str) -> list[tuple[bool, str]]:
    """Decode `(bool success, bytes returnData)[]`. Raises `AbiDecodeError`."""
    (results,) = decode_params(["(bool,bytes)[]"], return_data)
    return [(bool(ok), data) for ok, data in results.value]


def decode_symbol(return_data: str) -> str | None:
    """ABI `string`, with a fallback for legacy tokens returning `bytes32`."""
    try:
        (param,) = decode_params(["string"], return_data)
        return param.value or None
    except AbiDecodeError:
        pass
    try:
        buf = HexBuffer.from_hex(return_data)
    except AbiDecodeError:
        return None
    if len(buf) != 32:
        return None
    text = buf.data.rstrip(b"\x00").decode("utf-8", errors="replace")
    return text or None


def decode_decimals(return_data: str) -> int | None:
    try:
        (param,) = decode_params(["uint8"], return_data)
    except AbiDecodeError:
        return None
    return param.value if param.value <= 255 else None


def parse_multicall_results(
    addresses: Sequence[str],
    results: Sequence[tuple[bool, str]],
) -> dict[str, ContractInfo]:
    """Pair `(symbol, decimals)` result slots with their addresses."""
    out: dict[str, ContractInfo] = {}
    for i, addr in enumerate(addresses):
        symbol: str | None = None
        decimals: int | None = None
        if 2 * i < len(results):
            ok, data = results[2 * i]
            if ok and data != "0x":
                symbol = decode_symbol(data)
        if 2 * i + 1 < len(results):
            ok, data = results[2 * i + 1]
            if ok and data != "0x":
                decimals = decode_decimals(data)
        out[addr] = ContractInfo(
            address=addr,
            symbol=symbol,
            decimals=decimals,
            is_contract=symbol is not None or decimals is not None,
        )
    return out


class ContractInfoService:
    """Batched symbol/decimals lookup over Multicall3.

    Parameters
    ----------
    config : ContractInfoConfig | None
        RPC URL override, batch size and concurrency.
    rpc : RPC | None
        Pre-built client (tests, shared pools). When omitted a client is
        created per `fetch_contract_info` call and closed afterwards.
    """

    def __init__(self, config: ContractInfoConfig | None = None, *, rpc: RPC | None = None) -> None:
        self.config = config or ContractInfoConfig()
        self._rpc = rpc

    async def _query_batch(self, rpc: RPC, batch: Sequence[str]) -> dict[str, ContractInfo]:
        data = encode_try_aggregate(build_multicall_batch(batch))
        try:
            raw = await rpc.eth_call(to=self.config.multicall_address, data=data)
            results = decode_try_aggregate(raw)
        except (httpx.HTTPError, RPCError, AbiDecodeError) as e:
            logger.warning("Contract info lookup failed for %d addresses: %s", len(batch), e)
            return {addr: ContractInfo(address=addr) for addr in batch}
        return parse_multicall_results(batch, results)

    async def fetch_contract_info(
        self,
        addresses: Iterable[str],
        chain_id: int | str,
    ) -> dict[str, ContractInfo]:
        """Return checksummed address -> `ContractInfo` for every valid input address."""
        unique = list(dict.fromkeys(checksum_address(a) for a in addresses if is_address(a)))
        if not unique:
            logger.debug("No addresses to query")
            return {}

        rpc = self._rpc
        if rpc is None:
            url = self.config.rpc_url or get_rpc_url(chain_id)
            if not url:
                logger.warning("No RPC URL configured for chain %s", chain_id)
                return {}
            rpc = RPC(url, timeout_s=self.config.timeout_s, max_connections=self.config.concurrency)

        size = max(1, self.config.batch_size)
        batches = [unique[i : i + size] for i in range(0, len(unique), size)]
        sem = asyncio.Semaphore(max(1, self.config.concurrency))

        async def worker(batch: Sequence[str]) -> dict[str, ContractInfo]:
            async with sem:
                return await self._query_batch(rpc, batch)

        logger.info("Fetching contract info for %d addresses on chain %s", len(unique), chain_id)
        try:
            parts = await asyncio.gather(*(worker(b) for b in batches))
        finally:
            if self._rpc is None:
                await rpc.aclose()

        out: dict[str, ContractInfo] = {}
        for part in parts:
            out.update(part)
        logger.info("Resolved symbols for %d of %d addresses", sum(1 for i in out.values() if i.symbol), len(out))
        return out

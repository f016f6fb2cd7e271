"""Lightweight JSON-RPC client for Ethereum-compatible nodes.

This module provides:
- `RPC`: an async client with sane timeouts/connection limits
- `eth_call` for read-only contract calls (used by the contract-info lookup)
"""

from __future__ import annotations

from typing import Any

import httpx

from calldisasm.core.errors import RPCError


def to_hex_block(x: int | str) -> str:
    """Return a 0x-prefixed hex block number (tags like "latest" pass through)."""
    return x if isinstance(x, str) else hex(x)


class RPC:
    """Minimal async RPC client.

    Parameters
    ----------
    url : str
        RPC endpoint URL.
    timeout_s : int
        Per-operation timeout in seconds (connect/read/write).
    max_connections : int
        Maximum concurrent connections to keep in the pool.
    """

    def __init__(self, url: str, *, timeout_s: int = 20, max_connections: int = 16) -> None:
        self.url = url
        self.client = httpx.AsyncClient(
            timeout=httpx.Timeout(
                connect=timeout_s,
                read=timeout_s,
                write=timeout_s,
                pool=max(30, timeout_s * 3),
            ),
            limits=httpx.Limits(
                max_connections=max_connections,
                max_keepalive_connections=max(1, max_connections // 2),
            ),
            http2=True,
        )
        self._next_id = 0

    async def request(self, method: str, params: list[Any]) -> Any:
        """Send one JSON-RPC request and return its `result`.

        Raises `httpx.HTTPError` on transport/status errors and `RPCError`
        when the node answers with an error object.
        """
        self._next_id += 1
        payload = {"jsonrpc": "2.0", "id": self._next_id, "method": method, "params": params}
        r = await self.client.post(self.url, json=payload)
        r.raise_for_status()
        data = r.json()
        if "error" in data:
            e = data["error"] or {}
            raise RPCError(f"RPC error: {e.get('code')} {e.get('message')}")
        return data.get("result")

    async def eth_call(self, *, to: str, data: str, block: int | str = "latest") -> str:
        """Execute a read-only call and return the 0x-prefixed return data."""
        result = await self.request("eth_call", [{"to": to, "data": data}, to_hex_block(block)])
        return str(result or "0x")

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self.client.aclose()

    async def __aenter__(self) -> RPC:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.aclose()

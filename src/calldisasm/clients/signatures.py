"""Client for the public 4byte signature registry.

Used to augment the local `SignatureDatabase` with candidates for unknown
selectors and by the offline verification tool. The disassembler itself
never performs I/O.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable

import httpx
from pydantic import BaseModel, ValidationError

from calldisasm.core.config import SignatureLookupConfig
from calldisasm.decoding.signatures import SignatureDatabase
from calldisasm.decoding.utils import normalize_selector

logger = logging.getLogger(__name__)

# selectors per HTTP request
LOOKUP_CHUNK_SIZE = 50


class RegistryEntry(BaseModel):
    name: str
    filtered: bool = False


class RegistryResult(BaseModel):
    function: dict[str, list[RegistryEntry] | None] = {}
    event: dict[str, list[RegistryEntry] | None] = {}


class RegistryResponse(BaseModel):
    ok: bool = True
    result: RegistryResult = RegistryResult()


class SignatureLookupClient:
    """Async lookup of selectors against the 4byte registry.

    Results are cached for the lifetime of the client. A failed request maps
    every selector it covered to `[]` and is not cached.
    """

    def __init__(
        self,
        config: SignatureLookupConfig | None = None,
        *,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.config = config or SignatureLookupConfig()
        self.client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(self.config.timeout_s),
            limits=httpx.Limits(max_connections=max(1, self.config.concurrency)),
            http2=True,
        )
        self._cache: dict[str, list[str]] = {}

    async def fetch(self, selectors: list[str]) -> dict[str, list[str]]:
        """Query the registry for normalized selectors in a single request.

        Raises `httpx.HTTPError` on transport/status errors and
        `pydantic.ValidationError` / `ValueError` on malformed responses.
        """
        params = {"function": ",".join(selectors)}
        if self.config.filter_junk:
            params["filter"] = "true"
        r = await self.client.get(self.config.api_url, params=params)
        r.raise_for_status()
        resp = RegistryResponse.model_validate(r.json())

        found: dict[str, list[str]] = {}
        for sel in selectors:
            entries = resp.result.function.get(sel) or []
            names = [e.name for e in entries if not (self.config.filter_junk and e.filtered)]
            found[sel] = names
            self._cache[sel] = names
        return found

    async def lookup(self, selectors: Iterable[str]) -> dict[str, list[str]]:
        """Return selector -> candidate signatures; unknown or failed selectors map to `[]`."""
        wanted = list(dict.fromkeys(s for s in (normalize_selector(x) for x in selectors) if s))
        missing = [s for s in wanted if s not in self._cache]
        out = {s: list(self._cache[s]) for s in wanted if s in self._cache}

        if missing:
            chunks = [missing[i : i + LOOKUP_CHUNK_SIZE] for i in range(0, len(missing), LOOKUP_CHUNK_SIZE)]
            sem = asyncio.Semaphore(max(1, self.config.concurrency))

            async def worker(chunk: list[str]) -> dict[str, list[str]]:
                async with sem:
                    try:
                        return await self.fetch(chunk)
                    except (httpx.HTTPError, ValidationError, ValueError) as e:
                        logger.warning("Signature lookup failed for %d selectors: %s", len(chunk), e)
                        return {s: [] for s in chunk}

            logger.debug("Looking up %d selectors in %d requests", len(missing), len(chunks))
            for part in await asyncio.gather(*(worker(c) for c in chunks)):
                out.update(part)
        return {s: out.get(s, []) for s in wanted}

    async def augment(self, database: SignatureDatabase, selectors: Iterable[str]) -> SignatureDatabase:
        """Return `database` merged with registry candidates for selectors it does not know."""
        unknown = [s for s in selectors if s and s not in database]
        if not unknown:
            return database
        found = {s: sigs for s, sigs in (await self.lookup(unknown)).items() if sigs}
        if found:
            logger.info("Registry supplied signatures for %d selectors", len(found))
        return database.merged(found) if found else database

    async def aclose(self) -> None:
        await self.client.aclose()

    async def __aenter__(self) -> SignatureLookupClient:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.aclose()

"""Offline verification of the signature database.

Two checks:
- local: every candidate must hash to the selector it is filed under
- remote: the primary candidate should be known to the 4byte registry

Neither check runs during decoding.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Literal

import httpx
from pydantic import ValidationError

from calldisasm.clients.signatures import LOOKUP_CHUNK_SIZE, SignatureLookupClient
from calldisasm.core.errors import TypeGrammarError
from calldisasm.decoding.abi import function_selector
from calldisasm.decoding.signatures import SignatureDatabase

logger = logging.getLogger(__name__)

VerifyStatus = Literal["ok", "mismatch", "missing", "error", "invalid"]


@dataclass(slots=True, frozen=True)
class VerificationResult:
    selector: str
    local: str
    status: VerifyStatus
    remote: tuple[str, ...] = ()
    detail: str = ""


def check_local_selectors(database: SignatureDatabase) -> list[VerificationResult]:
    """Return an `invalid` result for every candidate whose selector does not match its key."""
    out: list[VerificationResult] = []
    for selector, candidates in database.items():
        for sig in candidates:
            try:
                actual = function_selector(sig)
            except TypeGrammarError as e:
                out.append(VerificationResult(selector, sig, "invalid", detail=str(e)))
                continue
            if actual != selector:
                out.append(VerificationResult(selector, sig, "invalid", detail=f"hashes to {actual}"))
    return out


def _classify(selector: str, local: str, remote: list[str]) -> VerificationResult:
    if not remote:
        return VerificationResult(selector, local, "missing")
    status: VerifyStatus = "ok" if local in remote else "mismatch"
    return VerificationResult(selector, local, status, tuple(remote))


async def verify_database(
    database: SignatureDatabase,
    client: SignatureLookupClient,
    *,
    concurrency: int = 4,
    on_result: Callable[[VerificationResult], None] | None = None,
) -> list[VerificationResult]:
    """Compare the primary candidate of each selector with the registry.

    Results come back in database order. A failed request marks every
    selector it covered as `error`; the rest of the run continues.
    """
    entries = [(sel, cands[0]) for sel, cands in database.items() if cands]
    chunks = [entries[i : i + LOOKUP_CHUNK_SIZE] for i in range(0, len(entries), LOOKUP_CHUNK_SIZE)]
    sem = asyncio.Semaphore(max(1, concurrency))

    async def worker(chunk: list[tuple[str, str]]) -> list[VerificationResult]:
        async with sem:
            try:
                found = await client.fetch([sel for sel, _ in chunk])
            except (httpx.HTTPError, ValidationError, ValueError) as e:
                logger.warning("Registry request failed for %d selectors: %s", len(chunk), e)
                results = [VerificationResult(sel, local, "error", detail=str(e)) for sel, local in chunk]
            else:
                results = [_classify(sel, local, found.get(sel, [])) for sel, local in chunk]
        if on_result is not None:
            for r in results:
                on_result(r)
        return results

    parts = await asyncio.gather(*(worker(c) for c in chunks))
    return [r for part in parts for r in part]


def summarize(results: list[VerificationResult]) -> dict[str, int]:
    counts = {"ok": 0, "mismatch": 0, "missing": 0, "error": 0, "invalid": 0}
    for r in results:
        counts[r.status] += 1
    return counts

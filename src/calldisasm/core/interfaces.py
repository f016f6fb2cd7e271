from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Protocol, runtime_checkable

from calldisasm.core.models import ContractInfo


# ---------------------------------------------------------------------------
# ISignatureSource
# ---------------------------------------------------------------------------

@runtime_checkable
class ISignatureSource(Protocol):
    """
    Read-only source of candidate signatures for a selector.

    Domain expectations:
    - Candidates are returned in trial order.
    - Lookups are local and synchronous; the disassembler never awaits.
    """

    def lookup(self, selector: str) -> tuple[str, ...]:
        """
        Return candidate signatures for a selector (possibly empty).

        Implementations:
        - SignatureDatabase (static table, optionally merged with extras)
        - In-memory mapping for testing
        """
        ...


# ---------------------------------------------------------------------------
# IAddressSink
# ---------------------------------------------------------------------------

@runtime_checkable
class IAddressSink(Protocol):
    """
    Receiver of discovered addresses.

    Domain expectations:
    - Insertion is idempotent; duplicates are expected and harmless.
    - It is never consulted while decoding.
    """

    def register(self, address: str, source: str = "param") -> bool:
        """Record one address; return True when it was not seen before."""
        ...


# ---------------------------------------------------------------------------
# IContractInfoProvider
# ---------------------------------------------------------------------------

@runtime_checkable
class IContractInfoProvider(Protocol):
    """
    Batched symbol/decimals lookup for a set of addresses on one chain.

    Domain expectations:
    - A failure for one address never aborts the others; it yields an
      entry whose fields are None.
    """

    async def fetch_contract_info(
        self,
        addresses: Iterable[str],
        chain_id: int | str,
    ) -> Mapping[str, ContractInfo]:
        ...


# ---------------------------------------------------------------------------
# ISignatureRegistry
# ---------------------------------------------------------------------------

@runtime_checkable
class ISignatureRegistry(Protocol):
    """
    Remote signature registry (e.g. the public 4byte database).

    Used for augmentation and offline verification, never by the decoder.
    """

    async def lookup(self, selectors: Iterable[str]) -> dict[str, list[str]]:
        """Return selector -> candidate signatures; unknown selectors map to []."""
        ...

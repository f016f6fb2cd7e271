"""Discovered-address collection.

This module provides:
- `collect_addresses()`: yield every checksummed address found in a call tree
- `AddressRegistry`: thread-safe, idempotent sink with deduplication and stats

The registry is fed after decoding and is never consulted by the decoder.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable, Iterator

from calldisasm.core.models import AddressStats, DecodedCall, DecodedParam
from calldisasm.decoding.checksum import checksum_address, is_address


def _param_addresses(param: DecodedParam) -> Iterator[str]:
    if param.abi_type == "address" and is_address(param.value):
        yield param.value
    for child in param.children or ():
        yield from _param_addresses(child)


def collect_addresses(calls: Iterable[DecodedCall]) -> Iterator[tuple[str, str]]:
    """Yield `(address, source)` for every address in the trees, in tree order.

    `source` is `"param"` for address-typed values and `"target"` for a
    node's called address. Duplicates are yielded as found.
    """
    for root in calls:
        for call in root.iter_calls():
            if call.address and is_address(call.address):
                yield checksum_address(call.address), "target"
            for p in call.params:
                for addr in _param_addresses(p):
                    yield addr, "param"


class AddressRegistry:
    """Thread-safe set of discovered addresses with occurrence counters.

    Insertion is idempotent; overlapping decode requests may register the
    same address concurrently.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._sources: dict[str, dict[str, int]] = {}

    def register(self, address: str, source: str = "param") -> bool:
        """Record one address. Returns True when it was not seen before.

        Invalid addresses are ignored (returns False).
        """
        if not is_address(address):
            return False
        key = checksum_address(address)
        with self._lock:
            is_new = key not in self._sources
            counts = self._sources.setdefault(key, {})
            counts[source] = counts.get(source, 0) + 1
        return is_new

    def register_calls(self, calls: Iterable[DecodedCall]) -> int:
        """Register every address of the given call trees; return how many were new."""
        return sum(self.register(addr, source) for addr, source in collect_addresses(calls))

    def addresses(self) -> list[str]:
        """Unique checksummed addresses in first-seen order."""
        with self._lock:
            return list(self._sources)

    def has(self, address: str) -> bool:
        if not is_address(address):
            return False
        with self._lock:
            return checksum_address(address) in self._sources

    def sources_for(self, address: str) -> dict[str, int]:
        """Occurrence counts per source for one address (empty if unknown)."""
        if not is_address(address):
            return {}
        with self._lock:
            return dict(self._sources.get(checksum_address(address), {}))

    def stats(self) -> AddressStats:
        with self._lock:
            per_source: dict[str, int] = {}
            total = 0
            for counts in self._sources.values():
                for source, n in counts.items():
                    per_source[source] = per_source.get(source, 0) + n
                    total += n
            return AddressStats(unique_count=len(self._sources), total_occurrences=total, per_source=per_source)

    def clear(self) -> None:
        with self._lock:
            self._sources.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sources)

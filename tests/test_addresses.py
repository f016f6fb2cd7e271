import threading

from calldisasm.addresses import AddressRegistry, collect_addresses
from calldisasm.decoding.disassembler import decode_payload

from conftest import USDC, VITALIK, WETH, build_call, pack_multisend


def _bytes(payload: str) -> bytes:
    return bytes.fromhex(payload[2:])


def test_collect_addresses_walks_params_arrays_and_children() -> None:
    transfer = _bytes(build_call("transfer(address,uint256)", VITALIK, 10))
    swap = _bytes(build_call("swapExactTokensForTokens(uint256,uint256,address[],address,uint256)", 1, 0, [USDC, WETH], VITALIK, 0))
    payload = build_call("multiSend(bytes)", pack_multisend((0, USDC, 0, transfer), (0, WETH, 0, swap)))

    found = list(collect_addresses(decode_payload(payload)))

    assert (USDC, "target") in found
    assert (WETH, "target") in found
    assert (VITALIK, "param") in found
    assert (USDC, "param") in found
    assert found.count((VITALIK, "param")) == 2


def test_collect_addresses_empty() -> None:
    assert list(collect_addresses([])) == []
    assert list(collect_addresses(decode_payload("0x"))) == []


class TestAddressRegistry:
    def setup_method(self) -> None:
        self.registry = AddressRegistry()

    def test_register_is_idempotent_and_checksums(self) -> None:
        assert self.registry.register(USDC.lower()) is True
        assert self.registry.register(USDC) is False
        assert self.registry.addresses() == [USDC]
        assert self.registry.has(USDC.upper().replace("0X", "0x"))
        assert len(self.registry) == 1

    def test_invalid_addresses_are_ignored(self) -> None:
        assert self.registry.register("0x1234") is False
        assert self.registry.register(None) is False  # type: ignore[arg-type]
        assert self.registry.addresses() == []
        assert not self.registry.has("nope")
        assert self.registry.sources_for("nope") == {}

    def test_stats_and_sources(self) -> None:
        self.registry.register(USDC, "param")
        self.registry.register(USDC, "target")
        self.registry.register(USDC, "param")
        self.registry.register(WETH, "target")

        stats = self.registry.stats()
        assert stats.unique_count == 2
        assert stats.total_occurrences == 4
        assert stats.per_source == {"param": 2, "target": 2}
        assert self.registry.sources_for(USDC) == {"param": 2, "target": 1}

    def test_register_calls(self) -> None:
        payload = build_call("transferFrom(address,address,uint256)", USDC, WETH, 1)
        assert self.registry.register_calls(decode_payload(payload)) == 2
        assert self.registry.addresses() == [USDC, WETH]

    def test_clear(self) -> None:
        self.registry.register(USDC)
        self.registry.clear()
        assert self.registry.addresses() == []

    def test_concurrent_registration(self) -> None:
        addresses = ["0x" + i.to_bytes(20, "big").hex() for i in range(1, 101)]
        barrier = threading.Barrier(8)

        def worker() -> None:
            barrier.wait()
            for a in addresses:
                self.registry.register(a)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        stats = self.registry.stats()
        assert stats.unique_count == 100
        assert stats.total_occurrences == 800

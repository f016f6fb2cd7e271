import json

import pytest

from calldisasm.constants import DEFAULT_MAX_NODES
from calldisasm.core.config import DisassemblerConfig
from calldisasm.core.models import DecodedCall
from calldisasm.decoding.abi import function_selector
from calldisasm.decoding.disassembler import (
    Disassembler,
    decode_payload,
    is_decodable_bytes,
    split_payload_into_calls,
)
from calldisasm.decoding.signatures import DEFAULT_DATABASE, SignatureDatabase

from conftest import USDC, VITALIK, WETH, build_call, pack_multisend

ZERO = "0x" + "00" * 20


def _bytes(payload: str) -> bytes:
    return bytes.fromhex(payload[2:])


@pytest.fixture
def custom_db() -> SignatureDatabase:
    return DEFAULT_DATABASE.merged(
        SignatureDatabase.from_signatures(
            [
                "execute(address,bytes)",
                "multiCall(address[],bytes[])",
                "aggregate3Value((address,bool,uint256,bytes)[])",
            ]
        )
    )


# ---------- input handling ----------


@pytest.mark.parametrize("payload", ["0x", ""])
def test_empty_payload_yields_placeholder(payload: str) -> None:
    calls = decode_payload(payload)

    assert len(calls) == 1
    call = calls[0]
    assert call.function_name == "Call"
    assert call.params == ()
    assert call.payload == payload
    assert call.error is None
    assert call.is_unknown


@pytest.mark.parametrize("payload", [None, 123, b"\xa9\x05\x9c\xbb"])
def test_non_string_input_yields_empty_list(payload) -> None:
    assert decode_payload(payload) == []
    assert split_payload_into_calls(payload) == []


def test_unknown_selector_keeps_raw_payload() -> None:
    payload = "0xFFFFFFFF" + "00" * 32
    (call,) = decode_payload(payload)

    assert call.function_name == "Call"
    assert call.selector == "0xffffffff"
    assert call.payload == payload
    assert call.params == ()
    assert call.attempts == ()


def test_short_payload_has_no_selector() -> None:
    (call,) = decode_payload("0xa905")
    assert call.selector == ""
    assert call.is_unknown


# ---------- single calls ----------


def test_decode_transfer(transfer_payload: str) -> None:
    (call,) = decode_payload(transfer_payload)

    assert call.function_name == "transfer"
    assert call.signature == "transfer(address,uint256)"
    assert call.selector == "0xa9059cbb"
    assert call.payload == transfer_payload
    assert [p.value for p in call.params] == [VITALIK, 10**18]
    assert call.children == ()
    assert split_payload_into_calls(transfer_payload) == [call]


def test_candidates_tried_in_order(transfer_payload: str) -> None:
    db = SignatureDatabase({"0xa9059cbb": ["bogus(uint256)", "transfer(address,uint256)"]})
    (call,) = decode_payload(transfer_payload, database=db)

    assert call.function_name == "transfer"
    assert len(call.attempts) == 1
    assert "mismatch" in call.attempts[0]


def test_first_successful_candidate_wins() -> None:
    payload = build_call("burn(uint256)", 5)

    (default,) = decode_payload(payload)
    assert default.function_name == "burn"
    assert default.params[0].value == 5

    db = SignatureDatabase({"0x42966c68": ["collate_propagate_storage(bytes16)", "burn(uint256)"]})
    (colliding,) = decode_payload(payload, database=db)
    assert colliding.function_name == "collate_propagate_storage"
    assert colliding.params[0].value == "0x" + "00" * 16


def test_all_candidates_failing_yields_placeholder(transfer_payload: str) -> None:
    truncated = transfer_payload[:-20]
    (call,) = decode_payload(truncated)

    assert call.is_unknown
    assert call.error is None
    assert call.payload == truncated
    assert len(call.attempts) == 1
    assert "Decode failed" in call.attempts[0]


def test_decode_with_forced_signature(transfer_payload: str) -> None:
    d = Disassembler()

    ok = d.decode_with("transfer(address,uint256)", transfer_payload)
    assert ok.error is None
    assert ok.params[1].value == 10**18

    bad = d.decode_with("approve(address,uint256)", transfer_payload)
    assert bad.params == ()
    assert "mismatch" in bad.error
    assert bad.function_name == "approve"


@pytest.mark.parametrize("signature", [None, 7, b"transfer(address,uint256)"])
def test_decode_with_non_string_signature(signature, transfer_payload: str) -> None:
    call = Disassembler().decode_with(signature, transfer_payload)

    assert call.error == "Signature must be a string"
    assert call.params == ()
    assert call.signature is None
    assert call.selector == "0xa9059cbb"


# ---------- batches ----------


def test_multicall_bytes_array_splits_in_order() -> None:
    first = build_call("transfer(address,uint256)", USDC, 1)
    second = build_call("approve(address,uint256)", WETH, 2)
    payload = build_call("multicall(bytes[])", [_bytes(first), _bytes(second)])

    (root,) = decode_payload(payload)
    assert root.function_name == "multicall"
    assert [c.function_name for c in root.children] == ["transfer", "approve"]
    assert [c.payload for c in root.children] == [first, second]
    assert all(c.depth == 1 for c in root.children)
    assert root.params[0].calls is None

    split = split_payload_into_calls(payload)
    assert split == list(root.children)


def test_multicall_with_deadline() -> None:
    inner = build_call("transfer(address,uint256)", USDC, 7)
    payload = build_call("multicall(uint256,bytes[])", 1_700_000_000, [_bytes(inner), _bytes(inner)])

    (root,) = decode_payload(payload)
    assert root.params[0].value == 1_700_000_000
    assert len(root.children) == 2
    assert root.children[1].params[1].value == 7


def test_batch_siblings_fail_independently(transfer_payload: str) -> None:
    garbage = "0xffffffff01"
    truncated = transfer_payload[:30]
    payload = build_call(
        "multicall(bytes[])",
        [_bytes(transfer_payload), _bytes(garbage), _bytes(truncated), b""],
    )

    children = split_payload_into_calls(payload)
    assert len(children) == 4
    assert children[0].function_name == "transfer"
    assert children[1].is_unknown and children[1].payload == garbage
    assert children[2].is_unknown and children[2].attempts
    assert children[3].is_unknown and children[3].payload == "0x"


def test_aggregate_tuple_array_fills_targets() -> None:
    a = build_call("transfer(address,uint256)", VITALIK, 1)
    b = build_call("approve(address,uint256)", VITALIK, 2)
    payload = build_call("aggregate((address,bytes)[])", [(USDC, _bytes(a)), (WETH.lower(), _bytes(b))])

    children = split_payload_into_calls(payload)
    assert [c.function_name for c in children] == ["transfer", "approve"]
    assert [c.address for c in children] == [USDC, WETH]


def test_aggregate3_value_fills_value(custom_db: SignatureDatabase) -> None:
    inner = build_call("transfer(address,uint256)", VITALIK, 1)
    payload = build_call(
        "aggregate3Value((address,bool,uint256,bytes)[])",
        [(USDC, True, 123, _bytes(inner))],
    )

    (child,) = split_payload_into_calls(payload, database=custom_db)
    assert child.function_name == "transfer"
    assert child.address == USDC
    assert child.value == "123"


def test_parallel_target_array_is_paired(custom_db: SignatureDatabase) -> None:
    a = build_call("transfer(address,uint256)", VITALIK, 1)
    b = build_call("transfer(address,uint256)", VITALIK, 2)
    payload = build_call("multiCall(address[],bytes[])", [USDC, WETH], [_bytes(a), _bytes(b)])

    children = split_payload_into_calls(payload, database=custom_db)
    assert [c.address for c in children] == [USDC, WETH]


def test_safe_multisend_stream() -> None:
    transfer = _bytes(build_call("transfer(address,uint256)", VITALIK, 10))
    approve = _bytes(build_call("approve(address,uint256)", VITALIK, 20))
    packed = pack_multisend((0, USDC, 0, transfer), (1, WETH, 5, approve), (0, VITALIK, 10**18, b""))
    payload = build_call("multiSend(bytes)", packed)

    (root,) = decode_payload(payload)
    assert root.function_name == "multiSend"
    assert len(root.children) == 3
    first, second, third = root.children
    assert (first.function_name, first.address, first.value, first.operation) == ("transfer", USDC, "0", 0)
    assert (second.function_name, second.address, second.value, second.operation) == ("approve", WETH, "5", 1)
    assert third.is_unknown and third.payload == "0x" and third.value == str(10**18)


def test_multisend_truncated_stream_keeps_parsed_entries() -> None:
    transfer = _bytes(build_call("transfer(address,uint256)", VITALIK, 10))
    packed = pack_multisend((0, USDC, 0, transfer)) + b"\x00\x01\x02"
    payload = build_call("multiSend(bytes)", packed)

    (root,) = decode_payload(payload)
    assert [c.function_name for c in root.children] == ["transfer"]


def test_multisend_can_be_disabled() -> None:
    transfer = _bytes(build_call("transfer(address,uint256)", VITALIK, 10))
    payload = build_call("multiSend(bytes)", pack_multisend((1, USDC, 0, transfer)))

    (root,) = decode_payload(payload, config=DisassemblerConfig(decode_multisend=False))
    assert root.children == ()
    # the packed stream starts with operation 1, so it reads as opaque call data
    assert root.params[0].calls is not None
    assert root.params[0].calls[0].is_unknown


# ---------- nested bytes ----------


def test_exec_transaction_inner_call_gets_target(transfer_payload: str) -> None:
    payload = build_call(
        "execTransaction(address,uint256,bytes,uint8,uint256,uint256,uint256,address,address,bytes)",
        USDC, 0, _bytes(transfer_payload), 0, 0, 0, 0, ZERO, ZERO, b"",
    )

    (root,) = decode_payload(payload)
    assert root.function_name == "execTransaction"
    (inner,) = root.params[2].calls
    assert inner.function_name == "transfer"
    assert inner.address == USDC
    assert inner.operation == 0
    assert inner.depth == 1
    assert root.params[9].calls is None


def test_nested_bytes_are_decoded(custom_db: SignatureDatabase, transfer_payload: str) -> None:
    payload = build_call("execute(address,bytes)", USDC, _bytes(transfer_payload))

    (root,) = decode_payload(payload, database=custom_db)
    (inner,) = root.params[1].calls
    assert inner.function_name == "transfer"
    assert inner.payload == transfer_payload
    assert root.children == ()


def test_nested_unknown_call_is_attached_as_placeholder(custom_db: SignatureDatabase) -> None:
    payload = build_call("execute(address,bytes)", USDC, bytes.fromhex("ffffffff" + "11" * 8))

    (root,) = decode_payload(payload, database=custom_db)
    (inner,) = root.params[1].calls
    assert inner.is_unknown


def test_zero_led_bytes_are_not_decoded(custom_db: SignatureDatabase) -> None:
    payload = build_call("execute(address,bytes)", USDC, b"\x00" + b"\xa9" * 40)

    (root,) = decode_payload(payload, database=custom_db)
    assert root.params[1].calls is None


def _nested_execute(levels: int) -> str:
    payload = build_call("transfer(address,uint256)", VITALIK, 1)
    for _ in range(levels):
        payload = build_call("execute(address,bytes)", USDC, _bytes(payload))
    return payload


def test_depth_bound_stops_recursion(custom_db: SignatureDatabase) -> None:
    payload = _nested_execute(3)

    (root,) = decode_payload(payload, database=custom_db, max_depth=2)
    level1 = root.params[1].calls[0]
    level2 = level1.params[1].calls[0]
    assert level2.depth == 2
    assert level2.function_name == "execute"
    assert level2.params[1].calls is None


def test_full_depth_resolves_innermost(custom_db: SignatureDatabase) -> None:
    (root,) = decode_payload(_nested_execute(3), database=custom_db)
    depths = [(c.function_name, c.depth) for c in root.iter_calls()]
    assert depths == [("execute", 0), ("execute", 1), ("execute", 2), ("transfer", 3)]


def test_max_depth_zero_disables_splitting() -> None:
    inner = build_call("transfer(address,uint256)", USDC, 1)
    payload = build_call("multicall(bytes[])", [_bytes(inner)])

    (root,) = decode_payload(payload, max_depth=0)
    assert root.function_name == "multicall"
    assert root.children == ()
    assert root.params[0].children[0].calls is None


def test_every_payload_is_a_substring_of_the_input(custom_db: SignatureDatabase) -> None:
    transfer = _bytes(build_call("transfer(address,uint256)", VITALIK, 10))
    wrapped = _bytes(build_call("execute(address,bytes)", USDC, transfer))
    packed = pack_multisend((0, USDC, 0, transfer), (0, WETH, 0, wrapped))
    payload = build_call("multiSend(bytes)", packed).upper().replace("0X", "0x")

    (root,) = decode_payload(payload, database=custom_db)
    nodes = list(root.iter_calls())
    assert len(nodes) == 4
    assert root.payload == payload
    for node in nodes:
        assert node.payload[2:] in payload


def test_tree_serializes_to_json(transfer_payload: str) -> None:
    (call,) = decode_payload(transfer_payload)
    doc = json.loads(call.to_json())

    assert doc["function_name"] == "transfer"
    assert doc["params"][1]["value"] == str(10**18)
    assert doc["params"][0]["abi_type"] == "address"


def test_decoded_call_rejects_error_with_params(transfer_payload: str) -> None:
    (call,) = decode_payload(transfer_payload)
    with pytest.raises(ValueError):
        DecodedCall(
            selector=call.selector,
            function_name=call.function_name,
            payload=call.payload,
            params=call.params,
            error="boom",
        )


# ---------- heuristic ----------


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("0xa9059cbb", True),
        ("a9059cbb00", True),
        ("0x00a9059cbb", False),
        ("0xa9059c", False),
        ("0x", False),
        ("0xzzzzzzzz", True),
        (None, False),
        (b"\xa9\x05\x9c\xbb", False),
    ],
)
def test_is_decodable_bytes(value, expected: bool) -> None:
    assert is_decodable_bytes(value) is expected


# ---------- node budget ----------


def _aliased_multicall(inner: str, n: int) -> str:
    """multicall(bytes[]) whose n element offsets all point at one shared blob."""
    data = _bytes(inner)
    words = [32, n] + [32 * n] * n + [len(data)]
    body = b"".join(w.to_bytes(32, "big") for w in words) + data + b"\x00" * (-len(data) % 32)
    return function_selector("multicall(bytes[])") + body.hex()


def _aliased_tower(n: int, levels: int) -> str:
    payload = build_call("transfer(address,uint256)", USDC, 1)
    for _ in range(levels):
        payload = _aliased_multicall(payload, n)
    return payload


def test_aliased_elements_decode_to_the_same_call() -> None:
    (root,) = decode_payload(_aliased_tower(3, 1))

    assert root.function_name == "multicall"
    assert [c.function_name for c in root.children] == ["transfer"] * 3
    assert len({c.payload for c in root.children}) == 1


def test_node_budget_caps_aliased_batches() -> None:
    n, limit = 10, 50
    (root,) = decode_payload(_aliased_tower(n, 3), config=DisassemblerConfig(max_nodes=limit))

    nodes = list(root.iter_calls())
    decoded = [c for c in nodes if not c.truncated]
    truncated = [c for c in nodes if c.truncated]
    assert len(decoded) == limit
    assert truncated
    assert len(nodes) <= limit * (n + 1)
    for c in truncated:
        assert c.is_unknown
        assert c.params == () and c.children == ()
        assert c.payload[2:] in root.payload
    assert root.children[0].children[0].function_name == "multicall"


def test_node_budget_keeps_one_child_per_element() -> None:
    (root,) = decode_payload(_aliased_tower(4, 2), config=DisassemblerConfig(max_nodes=3))

    assert len(root.children) == 4
    first, *rest = root.children
    assert first.function_name == "multicall"
    assert [c.truncated for c in first.children] == [False, True, True, True]
    assert all(c.truncated for c in rest)
    assert first.children[0].function_name == "transfer"


def test_default_budget_bounds_hostile_payload(caplog) -> None:
    with caplog.at_level("WARNING", logger="calldisasm"):
        (root,) = decode_payload(_aliased_tower(40, 4))

    decoded = [c for c in root.iter_calls() if not c.truncated]
    assert len(decoded) == DEFAULT_MAX_NODES
    assert "Node limit" in caplog.text


def test_truncated_flag_is_serialized() -> None:
    (root,) = decode_payload(_aliased_tower(2, 1), config=DisassemblerConfig(max_nodes=2))
    doc = root.to_dict()

    assert "truncated" not in doc
    assert "truncated" not in doc["children"][0]
    assert doc["children"][1]["truncated"] is True


def test_max_nodes_must_be_positive() -> None:
    with pytest.raises(ValueError):
        DisassemblerConfig(max_nodes=0)

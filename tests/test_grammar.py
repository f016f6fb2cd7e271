import pytest

from calldisasm.core.errors import TypeGrammarError
from calldisasm.decoding.grammar import (
    canonical_type,
    parse_signature,
    parse_type,
    selector_type,
    split_tuple_types,
)


def test_split_top_level_commas_only() -> None:
    assert split_tuple_types("address,tuple(uint256,bool),bytes") == [
        "address",
        "tuple(uint256,bool)",
        "bytes",
    ]


def test_split_nested_tuples_and_arrays() -> None:
    assert split_tuple_types("(address,(uint8,bytes)[])[],uint256[3]") == [
        "(address,(uint8,bytes)[])[]",
        "uint256[3]",
    ]


def test_split_empty() -> None:
    assert split_tuple_types("") == []


@pytest.mark.parametrize("bad", ["(address,uint256", "address)", "((bool)"])
def test_split_unbalanced_raises(bad: str) -> None:
    with pytest.raises(TypeGrammarError):
        split_tuple_types(bad)


def test_aliases_are_canonicalised() -> None:
    assert canonical_type("uint") == "uint256"
    assert canonical_type("int") == "int256"
    assert canonical_type("byte") == "bytes1"
    assert canonical_type("(uint,address)[]") == "tuple(uint256,address)[]"
    assert selector_type("tuple(uint,address)[]") == "(uint256,address)[]"


def test_array_dims_innermost_first() -> None:
    t = parse_type("uint256[2][]")
    assert t.dims == (2, None)
    assert t.is_dynamic
    assert t.element().dims == (2,)
    assert t.element().head_words == 2


def test_static_tuple_head_words() -> None:
    t = parse_type("(uint256,address,bool)")
    assert t.is_tuple
    assert not t.is_dynamic
    assert t.head_words == 3


def test_dynamic_tuple() -> None:
    t = parse_type("(address,bytes)")
    assert t.is_dynamic
    assert t.head_words == 1


@pytest.mark.parametrize(
    "bad",
    ["uint7", "uint264", "bytes33", "fixed128x18", "", "uint256[x]", "uint256[²]", "uint256[٣]", "uint" + "8" * 5000],
)
def test_invalid_types_raise(bad: str) -> None:
    with pytest.raises(TypeGrammarError):
        parse_type(bad)


def test_parse_signature_with_names_and_locations() -> None:
    sig = parse_signature("function aggregate((address target, bytes callData)[] calldata calls)")
    assert sig.name == "aggregate"
    assert sig.selector_signature == "aggregate((address,bytes)[])"
    assert sig.display == "aggregate(tuple(address,bytes)[])"
    assert sig.names == ("calls",)
    assert sig.param_name(0) == "calls"


def test_parse_signature_default_param_names() -> None:
    sig = parse_signature("transfer(address,uint)")
    assert sig.selector_signature == "transfer(address,uint256)"
    assert [sig.param_name(i) for i in range(2)] == ["param0", "param1"]


def test_parse_signature_no_params() -> None:
    sig = parse_signature("totalSupply()")
    assert sig.types == ()
    assert sig.selector_signature == "totalSupply()"


@pytest.mark.parametrize("bad", ["transfer", "transfer(address", "1bad(uint256)", "(uint256)"])
def test_parse_signature_invalid(bad: str) -> None:
    with pytest.raises(TypeGrammarError):
        parse_signature(bad)


def test_deep_tuple_nesting_raises_grammar_error() -> None:
    with pytest.raises(TypeGrammarError):
        parse_type("(" * 3000 + "uint256" + ")" * 3000)
    with pytest.raises(TypeGrammarError):
        parse_signature("f(" + "(" * 3000 + "uint256" + ")" * 3000 + ")")


def test_too_many_array_dimensions_raise() -> None:
    assert parse_type("uint256" + "[]" * 32).dims == (None,) * 32
    with pytest.raises(TypeGrammarError):
        parse_type("uint256" + "[]" * 3000)


def test_moderate_tuple_nesting_parses() -> None:
    t = parse_type("(" * 10 + "uint256,bool" + ")" * 10)
    assert t.head_words == 2

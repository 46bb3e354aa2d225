import json

import pytest

from chainbind.abi.schema import (AbiSchema, FunctionDescriptor, Param,
                                  canonical_signature, event_topic,
                                  function_selector, py_ident)
from chainbind.abi.types import parse_type
from chainbind.errors import SchemaError
from chainbind.utils.hash import keccak256, keccak256_hex


def test_keccak_known_vectors():
    assert keccak256_hex(b"") == "0xc5d2460186f7233c927e7db2dcc703c0e500b653ca82273b7bfad8045d85a470"
    assert keccak256(b"").hex() == keccak256_hex(b"", prefix=False)


@pytest.mark.parametrize(
    "signature, selector",
    [
        ("transfer(address,uint256)", "a9059cbb"),
        ("balanceOf(address)", "70a08231"),
        ("totalSupply()", "18160ddd"),
        ("approve(address,uint256)", "095ea7b3"),
    ],
)
def test_function_selectors(signature, selector):
    assert function_selector(signature).hex() == selector


def test_event_topic_is_full_hash():
    topic = event_topic("Transfer(address,address,uint256)")
    assert topic.hex() == "ddf252ad1be2c89b69c2b068fc378daa952ba7f163c4a11628f55a4df523b3ef"


def test_selector_ignores_parameter_names():
    a = FunctionDescriptor("transfer", (Param("to", parse_type("address")), Param("amount", parse_type("uint"))))
    b = FunctionDescriptor("transfer", (Param("dst", parse_type("address")), Param("wad", parse_type("uint256"))))
    assert a.signature == b.signature == "transfer(address,uint256)"
    assert a.selector == b.selector


def test_parse_collects_descriptors(token_abi):
    schema = AbiSchema.parse(token_abi)
    assert schema.constructor is not None
    assert [p.name for p in schema.constructor_inputs] == ["name", "supply"]
    assert len(schema.functions) == 5
    assert [e.name for e in schema.events] == ["Transfer"]
    assert schema.function("totalSupply").is_constant
    assert not schema.function("transfer(address,uint256)").is_constant


def test_dispatch_names_for_overloads(token_abi):
    schema = AbiSchema.parse(token_abi)
    assert set(schema.function_table) == {
        "total_supply",
        "balance_of",
        "info",
        "transfer__address__uint256",
        "transfer__address__uint256__bytes",
    }
    assert schema.event_table["transfer"].signature == "Transfer(address,address,uint256)"


def test_dispatch_names_are_stable(token_abi):
    first = AbiSchema.parse(token_abi)
    second = AbiSchema.parse(json.dumps(token_abi))
    assert list(first.function_table) == list(second.function_table)
    for name, d in first.function_table.items():
        assert second.function_table[name].selector == d.selector


def test_overload_type_idents_cover_arrays_and_tuples():
    abi = [
        {"type": "function", "name": "f", "inputs": [{"name": "a", "type": "uint256[]"}], "outputs": []},
        {
            "type": "function",
            "name": "f",
            "inputs": [
                {"name": "p", "type": "tuple", "components": [{"name": "x", "type": "address"}, {"name": "y", "type": "bool"}]},
                {"name": "q", "type": "bytes32[2]"},
            ],
            "outputs": [],
        },
    ]
    schema = AbiSchema.parse(abi)
    assert set(schema.function_table) == {"f__uint256_array", "f__tuple_address_bool___bytes32_array2"}
    assert schema.function("f((address,bool),bytes32[2])").name == "f"


def test_overloaded_plain_name_is_ambiguous(token_abi):
    schema = AbiSchema.parse(token_abi)
    with pytest.raises(SchemaError) as ei:
        schema.function("transfer")
    assert "transfer__address__uint256" in str(ei.value)


def test_unknown_function_raises(token_abi):
    schema = AbiSchema.parse(token_abi)
    with pytest.raises(SchemaError):
        schema.function("mint")
    with pytest.raises(SchemaError):
        schema.event("Approval")


def test_lookup_by_dispatch_name_and_descriptor(token_abi):
    schema = AbiSchema.parse(token_abi)
    d = schema.function("balance_of")
    assert schema.function("balanceOf") is d
    assert schema.function(d) is d
    assert schema.dispatch_name(d) == "balance_of"


def test_tuple_components_are_canonicalized():
    abi = [
        {
            "type": "function",
            "name": "submit",
            "inputs": [
                {
                    "name": "orders",
                    "type": "tuple[]",
                    "components": [
                        {"name": "maker", "type": "address"},
                        {"name": "amounts", "type": "uint[]"},
                    ],
                }
            ],
            "outputs": [],
        }
    ]
    fn = AbiSchema.parse(abi).function("submit")
    assert fn.signature == "submit((address,uint256[])[])"


def test_legacy_constant_flag_maps_to_view():
    abi = [{"type": "function", "name": "get", "constant": True, "inputs": [], "outputs": [{"type": "uint256"}]}]
    assert AbiSchema.parse(abi).function("get").state_mutability == "view"


def test_artifact_wrapper_is_unwrapped(token_abi):
    schema = AbiSchema.parse({"contractName": "Token", "abi": token_abi, "bytecode": "0x00"})
    assert "total_supply" in schema.function_table


@pytest.mark.parametrize(
    "abi",
    [
        [],
        [{"type": "constructor", "inputs": []}],
        [{"type": "fallback"}],
        [{"type": "function", "inputs": [], "outputs": []}],
        [{"type": "event", "name": "", "inputs": []}],
        [{"type": "function", "name": "f", "inputs": [{"name": "x", "type": "uint7"}], "outputs": []}],
        [{"type": "function", "name": "f", "inputs": [{"name": "x", "type": "tuple"}], "outputs": []}],
        [{"type": "function", "name": "f", "stateMutability": "sometimes", "inputs": [], "outputs": []}],
        [{"type": "widget", "name": "f"}],
        [{"type": "constructor"}, {"type": "constructor"}, {"type": "function", "name": "f"}],
        [
            {"type": "function", "name": "f", "inputs": [{"name": "a", "type": "uint"}]},
            {"type": "function", "name": "f", "inputs": [{"name": "b", "type": "uint256"}]},
        ],
        "not json",
        {"no": "abi"},
    ],
)
def test_malformed_abis_raise_schema_error(abi):
    with pytest.raises(SchemaError):
        AbiSchema.parse(abi)


def test_error_and_receive_entries_are_ignored():
    abi = [
        {"type": "error", "name": "Unauthorized", "inputs": []},
        {"type": "receive", "stateMutability": "payable"},
        {"type": "function", "name": "ping", "inputs": [], "outputs": []},
    ]
    schema = AbiSchema.parse(abi)
    assert list(schema.function_table) == ["ping"]


@pytest.mark.parametrize(
    "name, ident",
    [("balanceOf", "balance_of"), ("totalSupply", "total_supply"), ("get", "get"), ("class", "class_"), ("ERC20Name", "erc20_name")],
)
def test_py_ident(name, ident):
    assert py_ident(name) == ident


def test_canonical_signature_uses_canonical_types():
    assert canonical_signature("f", [parse_type("uint"), parse_type("(int,byte)[]")]) == "f(uint256,(int256,bytes1)[])"

import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[2]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from contractabi.core import (
    Constructor,
    Event,
    EventParam,
    Fallback,
    Function,
    Param,
    parse_operation,
    parse_operations,
)
from contractabi.errors import AbiDecodeError


def test_function_entry_with_state_mutability():
    operation = parse_operation(
        {
            "type": "function",
            "name": "balanceOf",
            "inputs": [{"name": "owner", "type": "address", "internalType": "address"}],
            "outputs": [{"name": "", "type": "uint256"}],
            "stateMutability": "view",
        }
    )

    assert isinstance(operation, Function)
    assert operation.inputs == (Param(name="owner", type="address", internal_type="address"),)
    assert operation.constant is True
    assert operation.signature == "balanceOf(address)"


@pytest.mark.parametrize(
    "flags, expected",
    [
        ({"constant": True}, "view"),
        ({"constant": False, "payable": True}, "payable"),
        ({}, "nonpayable"),
    ],
)
def test_legacy_flags_map_to_state_mutability(flags, expected):
    operation = parse_operation({"type": "function", "name": "f", **flags})

    assert operation.state_mutability == expected


def test_missing_type_defaults_to_function():
    assert parse_operation({"name": "ping"}) == Function(name="ping")


def test_event_entry_keeps_indexed_flags():
    operation = parse_operation(
        {
            "type": "event",
            "name": "Transfer",
            "anonymous": False,
            "inputs": [
                {"name": "from", "type": "address", "indexed": True},
                {"name": "to", "type": "address", "indexed": True},
                {"name": "value", "type": "uint256", "indexed": False},
            ],
        }
    )

    assert isinstance(operation, Event)
    assert [param.indexed for param in operation.inputs] == [True, True, False]
    assert all(isinstance(param, EventParam) for param in operation.inputs)
    assert operation.signature == "Transfer(address,address,uint256)"


def test_tuple_components_expand_in_signature():
    operation = parse_operation(
        {
            "type": "function",
            "name": "submit",
            "inputs": [
                {
                    "name": "orders",
                    "type": "tuple[]",
                    "components": [
                        {"name": "maker", "type": "address"},
                        {"name": "amounts", "type": "uint256[2]"},
                    ],
                },
                {"name": "nonce", "type": "uint64"},
            ],
        }
    )

    assert operation.signature == "submit((address,uint256[2])[],uint64)"


def test_constructor_and_fallback_entries():
    assert parse_operation({"type": "constructor", "inputs": []}) == Constructor()
    assert parse_operation({"type": "fallback"}) == Fallback(kind="fallback")
    assert parse_operation({"type": "receive"}) == Fallback(kind="receive")


@pytest.mark.parametrize(
    "raw, message",
    [
        ({"type": "error", "name": "Oops"}, "Unknown ABI entry type"),
        ({"type": "function"}, "missing a name"),
        ({"type": "event", "name": "E", "inputs": [{"name": "x"}]}, "missing a type"),
        ({"type": "function", "name": "f", "inputs": {"name": "x"}}, "must be an array"),
        (["function"], "Expected ABI entry object"),
    ],
)
def test_malformed_entries_raise_decode_error(raw, message):
    with pytest.raises(AbiDecodeError, match=message):
        parse_operation(raw)


def test_parse_operations_is_lazy():
    stream = parse_operations([{"type": "fallback"}, {"type": "bogus"}])

    assert next(stream) == Fallback()
    with pytest.raises(AbiDecodeError):
        next(stream)

from __future__ import annotations

import json

import pytest

from datashare.dispatcher import (
    OPERATIONS,
    DataSharingChaincode,
    decode_key_list,
    dispatch,
    encode_key_list,
    resolve_operation,
)
from datashare.errors import ArityError, UnknownOperation
from datashare.ledger import LedgerOps
from datashare.response import ERROR, OK
from datashare.state import MemoryStore
from datashare.tests._helpers import SENTINEL, new_stub


@pytest.fixture
def chaincode(ops: LedgerOps) -> DataSharingChaincode:
    return DataSharingChaincode(ops)


def test_operation_table() -> None:
    assert {name: op.arity for name, op in OPERATIONS.items()} == {
        "insert": 2,
        "update": 2,
        "key_search": 1,
        "value_search": 1,
    }


def test_unknown_operation_names_the_valid_set() -> None:
    with pytest.raises(UnknownOperation) as excinfo:
        resolve_operation("delete", ["k"])
    err = excinfo.value
    assert err.message == (
        "Invalid invoke function name. Expecting {insert, update, key_search, value_search}."
    )
    assert err.data == {
        "function": "delete",
        "valid": ["insert", "update", "key_search", "value_search"],
    }


@pytest.mark.parametrize(
    "function,args",
    [
        ("insert", []),
        ("insert", ["k"]),
        ("insert", ["k", "v", "extra"]),
        ("update", ["k"]),
        ("key_search", []),
        ("key_search", ["a", "b"]),
        ("value_search", []),
        ("value_search", ["a", "b"]),
    ],
)
def test_arity_errors_touch_no_state(ops, store, function, args) -> None:
    stub = new_stub(store, function, args)
    with pytest.raises(ArityError) as excinfo:
        dispatch(ops, stub, function, args)
    assert excinfo.value.data["expected"] == OPERATIONS[function].arity
    assert excinfo.value.data["got"] == len(args)
    assert stub.reads == []
    assert stub.writes == {}


def test_arity_message() -> None:
    with pytest.raises(ArityError, match="Expecting 2"):
        resolve_operation("update", ["only-key"])


def test_dispatch_returns_payloads(ops, store) -> None:
    stub = new_stub(store)
    assert dispatch(ops, stub, "insert", ["alice", "10"]) is None
    assert dispatch(ops, stub, "update", ["bob", "10"]) is None
    assert dispatch(ops, stub, "key_search", ["alice"]) == b"10"
    assert sorted(json.loads(dispatch(ops, stub, "value_search", ["10"]))) == ["alice", "bob"]


def test_key_list_codec() -> None:
    assert encode_key_list([]) == b"[]"
    assert encode_key_list(["alice", "bob"]) == b'["alice","bob"]'
    assert decode_key_list(b'["alice"]') == ["alice"]
    assert decode_key_list(None) == []


def test_invoke_success_response(chaincode, store) -> None:
    stub = new_stub(store, "update", ["alice", "99"])
    resp = chaincode.invoke(stub)
    assert resp.ok and resp.status == OK
    assert resp.payload is None
    assert resp.message == ""


def test_invoke_key_search_payload(chaincode) -> None:
    store = MemoryStore({"alice": b"10;20", SENTINEL: b'{"alice":0}'})
    resp = chaincode.invoke(new_stub(store, "key_search", ["alice"]))
    assert resp.ok
    assert resp.payload == b"10;20"


def test_invoke_value_search_empty_is_success(chaincode, store) -> None:
    resp = chaincode.invoke(new_stub(store, "value_search", ["zzz"]))
    assert resp.ok
    assert resp.payload == b"[]"


def test_invoke_turns_ledger_errors_into_error_responses(chaincode, store) -> None:
    resp = chaincode.invoke(new_stub(store, "insert", [SENTINEL, "x"]))
    assert not resp.ok
    assert resp.status == ERROR
    assert resp.message == "Invalid key {_KEY_LIST_} is reserved."
    assert resp.error["code"] == "INVALID_KEY"


def test_invoke_unknown_function(chaincode, store) -> None:
    resp = chaincode.invoke(new_stub(store, "PublishData", ["x", "{}"]))
    assert resp.status == ERROR
    assert resp.error["code"] == "UNKNOWN_OPERATION"


def test_invoke_corrupt_index_response(chaincode) -> None:
    store = MemoryStore({SENTINEL: b"garbage"})
    resp = chaincode.invoke(new_stub(store, "update", ["alice", "1"]))
    assert resp.status == ERROR
    assert resp.error["code"] == "CORRUPT_INDEX"
    assert resp.message.startswith("Failed to decode key list")


def test_init_accepts_no_arguments(chaincode, store) -> None:
    stub = new_stub(store, "init", [])
    resp = chaincode.init(stub)
    assert resp.ok
    assert stub.writes == {}
    assert stub.reads == []


def test_init_rejects_arguments(chaincode, store) -> None:
    resp = chaincode.init(new_stub(store, "init", ["a"]))
    assert resp.status == ERROR
    assert resp.message == "Incorrect number of arguments. Expecting no arguments."
    assert resp.error["code"] == "ARITY"

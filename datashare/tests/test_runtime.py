from __future__ import annotations

import json
import sqlite3
from pathlib import Path

import pytest

from datashare.dispatcher import DataSharingChaincode, decode_key_list
from datashare.ledger import LedgerOps
from datashare.config import load_config
from datashare.runtime import execute, execute_init
from datashare.state import MemoryStore, open_sqlite_store, open_store
from datashare.tests._helpers import SENTINEL, BrokenReadStore


def test_successful_invocation_is_committed(store: MemoryStore) -> None:
    resp = execute(store, "insert", ["alice", "10"])
    assert resp.ok
    assert store.snapshot() == {SENTINEL: b'{"alice":0}', "alice": b"10"}


def test_failed_invocation_leaves_store_untouched(store: MemoryStore) -> None:
    execute(store, "update", ["alice", "1"])
    before = store.snapshot()

    for function, args in [
        ("insert", [SENTINEL, "x"]),
        ("insert", ["", "x"]),
        ("update", ["alice"]),
        ("nope", []),
    ]:
        resp = execute(store, function, args)
        assert not resp.ok
        assert store.snapshot() == before


def test_scenario_across_invocations(store: MemoryStore) -> None:
    assert execute(store, "insert", ["alice", "10"]).ok
    assert execute(store, "key_search", ["alice"]).payload == b"10"
    assert execute(store, "insert", ["alice", "20"]).ok
    assert execute(store, "key_search", ["alice"]).payload == b"10;20"
    assert execute(store, "update", ["alice", "99"]).ok
    assert execute(store, "key_search", ["alice"]).payload == b"99"
    assert decode_key_list(execute(store, "value_search", ["99"]).payload) == ["alice"]


def test_key_search_of_missing_key_succeeds_with_no_payload(store: MemoryStore) -> None:
    resp = execute(store, "key_search", ["ghost"])
    assert resp.ok
    assert resp.payload is None


def test_store_read_failure_surfaces_message() -> None:
    store = BrokenReadStore(message="connection reset by peer")
    resp = execute(store, "insert", ["alice", "1"])
    assert not resp.ok
    assert resp.message == "connection reset by peer"
    assert resp.error["code"] == "STORE"
    assert resp.error["data"] == {"op": "get", "key": "alice"}


def test_commit_failure_is_reported() -> None:
    class NoBatchStore(MemoryStore):
        def batch(self):
            raise RuntimeError("store is read-only")

    store = NoBatchStore()
    resp = execute(store, "update", ["alice", "1"])
    assert not resp.ok
    assert resp.message == "store is read-only"
    assert store.snapshot() == {}


def test_init_runs_without_writes(store: MemoryStore) -> None:
    assert execute_init(store).ok
    assert store.snapshot() == {}
    assert not execute_init(store, ["unexpected"]).ok


def test_custom_chaincode_is_used(store: MemoryStore) -> None:
    cc = DataSharingChaincode(LedgerOps(config=load_config({"DATASHARE_SENTINEL_KEY": "IDX"})))
    assert execute(store, "update", ["alice", "1"], chaincode=cc).ok
    assert json.loads(store.get("IDX")) == {"alice": 0}
    assert store.get(SENTINEL) is None


def test_sqlite_ledger_survives_reopen(tmp_path: Path) -> None:
    path = tmp_path / "ledger.db"
    store = open_sqlite_store(path)
    assert execute(store, "insert", ["alice", "10"]).ok
    assert execute(store, "insert", ["alice", "20"]).ok
    store.close()

    reopened = open_store(f"sqlite:///{path}")
    try:
        assert execute(reopened, "key_search", ["alice"]).payload == b"10;20"
        assert decode_key_list(execute(reopened, "value_search", ["10;20"]).payload) == ["alice"]
        assert reopened.get(SENTINEL) == b'{"alice":0}'
    finally:
        reopened.close()


def test_sqlite_failed_invocation_rolls_back(tmp_path: Path) -> None:
    store = open_sqlite_store(tmp_path / "ledger.db")
    try:
        assert execute(store, "update", ["alice", "1"]).ok
        assert not execute(store, "update", [SENTINEL, "x"]).ok
        assert dict(store.items()) == {SENTINEL: b'{"alice":0}', "alice": b"1"}
    finally:
        store.close()


def test_sqlite_busy_commit_does_not_wedge_the_store(tmp_path: Path) -> None:
    path = tmp_path / "ledger.db"
    store = open_sqlite_store(path, pragmas={"journal_mode": "DELETE", "busy_timeout": 0})
    assert execute(store, "update", ["seed", "0"]).ok

    reader = sqlite3.connect(str(path), isolation_level=None)
    reader.execute("BEGIN")
    reader.execute("SELECT k FROM state").fetchall()
    try:
        resp = execute(store, "update", ["a", "1"])
        assert not resp.ok
        assert resp.error["code"] == "STORE"
        assert "locked" in resp.message
    finally:
        reader.execute("ROLLBACK")
        reader.close()

    try:
        assert execute(store, "update", ["b", "2"]).ok
        assert store.get("a") is None
        assert store.get("b") == b"2"
        assert json.loads(store.get(SENTINEL)) == {"b": 0, "seed": 0}
    finally:
        store.close()


@pytest.mark.parametrize("uri", ["memory://", "sqlite:///:memory:"])
def test_open_store_backends(uri: str) -> None:
    store = open_store(uri)
    try:
        assert execute(store, "update", ["k", "v"]).ok
        assert execute(store, "key_search", ["k"]).payload == b"v"
    finally:
        store.close()


def test_large_value_round_trips_with_default_config(store: MemoryStore) -> None:
    big = "x" * (1024 * 1024 + 1)
    assert execute(store, "update", ["k" * 5000, big]).ok
    assert execute(store, "key_search", ["k" * 5000]).payload == big.encode()

from __future__ import annotations

from pathlib import Path

import pytest

from datashare.errors import StoreError
from datashare.state import (
    InvocationStub,
    MemoryStore,
    StateStore,
    open_sqlite_store,
    open_store,
    put_many,
)


def test_stub_reads_its_own_writes() -> None:
    store = MemoryStore({"k": b"old"})
    stub = InvocationStub(store, "update", ["k", "new"])
    assert stub.get_state("k") == b"old"
    stub.put_state("k", b"new")
    assert stub.get_state("k") == b"new"
    # nothing reaches the store before commit
    assert store.get("k") == b"old"
    stub.commit()
    assert store.get("k") == b"new"


def test_stub_discard_drops_writes() -> None:
    store = MemoryStore()
    stub = InvocationStub(store, "update", ["k", "v"])
    stub.put_state("k", b"v")
    stub.discard()
    assert store.get("k") is None
    assert stub.writes == {}


def test_stub_delete_is_staged() -> None:
    store = MemoryStore({"k": b"v"})
    stub = InvocationStub(store, "x")
    stub.del_state("k")
    assert stub.get_state("k") is None
    assert store.get("k") == b"v"
    stub.commit()
    assert store.get("k") is None


def test_stub_is_single_use() -> None:
    stub = InvocationStub(MemoryStore(), "x")
    stub.commit()
    with pytest.raises(StoreError, match="already finished"):
        stub.get_state("k")
    with pytest.raises(StoreError):
        stub.put_state("k", b"v")


def test_stub_rejects_empty_keys_and_non_bytes() -> None:
    stub = InvocationStub(MemoryStore(), "x")
    with pytest.raises(StoreError, match="empty string"):
        stub.put_state("", b"v")
    with pytest.raises(StoreError, match="bytes-like"):
        stub.put_state("k", "text")  # type: ignore[arg-type]


def test_stub_exposes_invocation() -> None:
    stub = InvocationStub(MemoryStore(), "insert", ("a", "b"), tx_id="tx-1")
    assert stub.get_function_and_parameters() == ("insert", ["a", "b"])
    assert stub.tx_id == "tx-1"
    assert InvocationStub(MemoryStore(), "x").tx_id  # generated


def test_memory_batch_rolls_back_on_exception() -> None:
    store = MemoryStore()
    with pytest.raises(RuntimeError):
        with store.batch() as b:
            b.put("a", b"1")
            raise RuntimeError("boom")
    assert store.get("a") is None
    put_many(store, [("a", b"1"), ("b", b"2")])
    assert list(store.items()) == [("a", b"1"), ("b", b"2")]


def test_sqlite_store_roundtrip_and_rollback(tmp_path: Path) -> None:
    store = open_sqlite_store(tmp_path / "s.db")
    try:
        assert isinstance(store, StateStore)
        store.put("a", b"\x00\x01")
        assert store.get("a") == b"\x00\x01"
        assert store.get("missing") is None

        with pytest.raises(RuntimeError):
            with store.batch() as b:
                b.put("b", b"2")
                raise RuntimeError("boom")
        assert store.get("b") is None

        with store.batch() as b:
            b.put("b", b"2")
            b.delete("a")
        assert list(store.items()) == [("b", b"2")]
    finally:
        store.close()


def test_sqlite_open_without_create_requires_file(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        open_sqlite_store(tmp_path / "absent.db", create=False)


def test_open_store_rejects_unknown_scheme() -> None:
    with pytest.raises(ValueError, match="Unsupported store backend"):
        open_store("rocksdb:///tmp/x")


def test_open_store_memory_is_fresh_each_time() -> None:
    a = open_store("memory://")
    a.put("k", b"v")
    assert open_store("memory://").get("k") is None

"""
datashare.state.memory — in-process store for local runs and tests.

Thread-safe dict-backed implementation of `StateStore`. Batches stage their
operations and apply them under the store lock on commit, so a failed
invocation leaves nothing behind.
"""

from __future__ import annotations

import threading
from typing import Dict, Iterator, List, Optional, Tuple

from .kv import Batch, StateStore


class MemoryBatch(Batch):
    __slots__ = ("_store", "_ops", "_open")

    def __init__(self, store: "MemoryStore") -> None:
        self._store = store
        self._ops: List[Tuple[str, Optional[bytes]]] = []
        self._open = False

    def __enter__(self) -> "MemoryBatch":
        if self._open:
            raise RuntimeError("batch already open (nested batches not supported)")
        self._open = True
        return self

    def put(self, key: str, value: bytes) -> None:
        if not self._open:
            raise RuntimeError("batch not open")
        self._ops.append((key, bytes(value)))

    def delete(self, key: str) -> None:
        if not self._open:
            raise RuntimeError("batch not open")
        self._ops.append((key, None))

    def commit(self) -> None:
        if not self._open:
            return
        self._store._apply(self._ops)
        self._ops = []
        self._open = False

    def rollback(self) -> None:
        self._ops = []
        self._open = False

    def __exit__(self, exc_type, exc, tb) -> Optional[bool]:
        if exc_type is None:
            self.commit()
        else:
            self.rollback()
        return None


class MemoryStore(StateStore):
    """Dict-backed store. `MemoryStore({"k": b"v"})` seeds initial state."""

    def __init__(self, initial: Optional[Dict[str, bytes]] = None) -> None:
        self._data: Dict[str, bytes] = dict(initial or {})
        self._lock = threading.RLock()

    def get(self, key: str) -> Optional[bytes]:
        with self._lock:
            return self._data.get(key)

    def put(self, key: str, value: bytes) -> None:
        with self._lock:
            self._data[key] = bytes(value)

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def items(self) -> Iterator[Tuple[str, bytes]]:
        with self._lock:
            snapshot = sorted(self._data.items())
        yield from snapshot

    def batch(self) -> Batch:
        return MemoryBatch(self)

    def close(self) -> None:
        pass

    def _apply(self, ops: List[Tuple[str, Optional[bytes]]]) -> None:
        with self._lock:
            for key, value in ops:
                if value is None:
                    self._data.pop(key, None)
                else:
                    self._data[key] = value

    def __len__(self) -> int:
        return len(self._data)

    def snapshot(self) -> Dict[str, bytes]:
        """Copy of the current contents (tests/diagnostics)."""
        with self._lock:
            return dict(self._data)


__all__ = ["MemoryStore", "MemoryBatch"]

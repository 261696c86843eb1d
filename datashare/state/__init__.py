from __future__ import annotations

"""
datashare.state
===============

Host-side state plumbing for the chaincode: the store interface, two
backends, and the per-invocation stub.

URIs
----
- "memory://"                 → in-process MemoryStore
- "sqlite:///path/to/ledger.db" → SQLite file (path after the third slash)
- "sqlite:///:memory:"        → in-memory SQLite (tests)
- bare path                   → SQLite file

Example
-------
>>> from datashare.state import open_store
>>> store = open_store("memory://")
>>> with store.batch() as b:
...     b.put("alice", b"10")
>>> store.get("alice")
b'10'
"""

from typing import Tuple

from .kv import Batch, ReadOnlyStore, StateStore, put_many
from .memory import MemoryStore
from .sqlite import SQLiteStore, open_sqlite_store
from .stub import InvocationStub


def _parse_uri(uri: str) -> Tuple[str, str]:
    """
    Parse a store URI into (backend, path_or_target).

    Returns:
        ("sqlite", path) or ("memory", "")
    """
    u = uri.strip()
    if u.startswith("memory://"):
        return ("memory", "")
    if u.startswith("sqlite:///"):
        return ("sqlite", u[len("sqlite:///") :])
    if "://" in u:
        raise ValueError(f"Unsupported store backend in URI: {uri!r}")
    return ("sqlite", u)


def open_store(uri: str, create: bool = True) -> StateStore:
    """
    Open a state store by URI. See module docstring for supported forms.

    Raises:
        ValueError for unsupported URIs.
    """
    backend, target = _parse_uri(uri)
    if backend == "memory":
        return MemoryStore()
    return open_sqlite_store(target or ":memory:", create=create)


__all__ = [
    "Batch",
    "ReadOnlyStore",
    "StateStore",
    "put_many",
    "MemoryStore",
    "SQLiteStore",
    "open_sqlite_store",
    "InvocationStub",
    "open_store",
]

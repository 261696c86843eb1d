from __future__ import annotations

"""
State store interface
=====================

The chaincode never owns its storage: every read and write goes through a
store supplied by the host. This module defines that backend-agnostic
surface as Protocols (PEP 544) so backends can be duck-typed.

- Keys are `str` (backends encode them as UTF-8 where they need bytes).
- Values are opaque `bytes`; `get` returns None for a missing key.
- `batch()` returns a context manager that applies puts/deletes atomically
  when the block exits without an exception, and rolls back otherwise.

Backends raise `StoreError` (or any exception, which the invocation stub
wraps into `StoreError` with the original message).
"""

from typing import Iterable, Iterator, Optional, Protocol, Tuple, runtime_checkable


@runtime_checkable
class ReadOnlyStore(Protocol):
    """Minimal read-only surface."""

    def get(self, key: str) -> Optional[bytes]:
        """Fetch value or None if missing."""
        ...

    def items(self) -> Iterator[Tuple[str, bytes]]:
        """Iterate (key, value) pairs in lexicographic key order (diagnostics only)."""
        ...

    def close(self) -> None:
        """Close resources (no-op for in-memory)."""
        ...


@runtime_checkable
class Batch(Protocol):
    """
    A write-batch context manager. Atomic when exiting the context without
    exception; rolled back if an exception escapes.
    """

    def put(self, key: str, value: bytes) -> None: ...
    def delete(self, key: str) -> None: ...
    def commit(self) -> None: ...
    def rollback(self) -> None: ...

    def __enter__(self) -> "Batch": ...
    def __exit__(self, exc_type, exc, tb) -> Optional[bool]: ...


@runtime_checkable
class StateStore(ReadOnlyStore, Protocol):
    """Full read/write surface."""

    def put(self, key: str, value: bytes) -> None:
        """Persist (key, value). Overwrites if exists."""
        ...

    def delete(self, key: str) -> None:
        """Remove key if present (idempotent)."""
        ...

    def batch(self) -> Batch:
        """Return a new write batch."""
        ...


def put_many(store: StateStore, items: Iterable[Tuple[str, bytes]]) -> None:
    """Write many keys using a single batch."""
    with store.batch() as b:
        for k, v in items:
            b.put(k, v)


__all__ = [
    "ReadOnlyStore",
    "StateStore",
    "Batch",
    "put_many",
]

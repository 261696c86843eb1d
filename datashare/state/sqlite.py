from __future__ import annotations

"""
SQLite-backed state store
=========================

A small embedded store implementing the `StateStore` / `Batch` protocols from
`datashare.state.kv`, so ledgers survive between CLI runs.

- Table schema: state(k TEXT PRIMARY KEY, v BLOB NOT NULL)
- Keys are text; values are raw bytes.
- Pragmas: WAL journal, NORMAL sync, 5s busy timeout.
- A failed COMMIT is rolled back so the connection can start the next batch.

Threading:
- `check_same_thread=False`; the caller serializes write batches. Each batch
  executes inside a single `BEGIN IMMEDIATE` transaction.
"""

import os
import sqlite3
from typing import Iterator, Optional, Tuple, Union

from ..errors import StoreError
from .kv import Batch, StateStore

DEFAULT_PRAGMAS = {
    "journal_mode": "WAL",
    "synchronous": "NORMAL",
    "temp_store": "MEMORY",
    "foreign_keys": "OFF",
    "busy_timeout": 5000,
}


def _apply_pragmas(conn: sqlite3.Connection, pragmas: Optional[dict] = None) -> None:
    p = dict(DEFAULT_PRAGMAS)
    if pragmas:
        p.update(pragmas)
    cur = conn.cursor()
    cur.execute("PRAGMA journal_mode=%s" % p["journal_mode"])
    cur.execute("PRAGMA synchronous=%s" % p["synchronous"])
    cur.execute("PRAGMA temp_store=%s" % p["temp_store"])
    cur.execute("PRAGMA foreign_keys=%s" % p["foreign_keys"])
    cur.execute("PRAGMA busy_timeout=%d" % int(p["busy_timeout"]))
    cur.close()


def _migrate(conn: sqlite3.Connection) -> None:
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS state (
            k TEXT PRIMARY KEY,
            v BLOB NOT NULL
        )
        """
    )


class SQLiteBatch(Batch):
    __slots__ = ("_conn", "_open")

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn
        self._open = False

    def __enter__(self) -> "SQLiteBatch":
        if self._open:
            raise RuntimeError("batch already open (nested batches not supported)")
        self._exec("BEGIN IMMEDIATE")
        self._open = True
        return self

    def _exec(self, sql: str, args: tuple = ()) -> None:
        try:
            self._conn.execute(sql, args)
        except sqlite3.Error as exc:
            raise StoreError(str(exc), op="batch") from exc

    def put(self, key: str, value: bytes) -> None:
        if not self._open:
            raise RuntimeError("batch not open")
        self._exec(
            "INSERT INTO state(k, v) VALUES(?, ?) ON CONFLICT(k) DO UPDATE SET v=excluded.v",
            (key, memoryview(value)),
        )

    def delete(self, key: str) -> None:
        if not self._open:
            raise RuntimeError("batch not open")
        self._exec("DELETE FROM state WHERE k = ?", (key,))

    def commit(self) -> None:
        if not self._open:
            return
        try:
            self._exec("COMMIT")
        except StoreError:
            # SQLite keeps the transaction open when COMMIT fails (e.g. SQLITE_BUSY)
            try:
                self._conn.execute("ROLLBACK")
            except sqlite3.Error:
                pass
            raise
        finally:
            self._open = False

    def rollback(self) -> None:
        if not self._open:
            return
        self._exec("ROLLBACK")
        self._open = False

    def __exit__(self, exc_type, exc, tb) -> Optional[bool]:
        try:
            if exc_type is None:
                self.commit()
            else:
                self.rollback()
        finally:
            self._open = False
        return None


def _open_connection(
    path: Union[str, "os.PathLike[str]"],
    *,
    pragmas: Optional[dict] = None,
    create: bool = True,
) -> sqlite3.Connection:
    path_str = str(path) or ":memory:"
    if not create and path_str != ":memory:" and not os.path.exists(path_str):
        raise FileNotFoundError(f"SQLite store not found at {path_str}")
    conn = sqlite3.connect(
        path_str,
        detect_types=0,
        isolation_level=None,  # autocommit; batches BEGIN explicitly
        check_same_thread=False,
    )
    _apply_pragmas(conn, pragmas)
    _migrate(conn)
    return conn


class SQLiteStore(StateStore):
    """
    SQLite-backed store. Use `open_sqlite_store(path)` to construct.
    """

    __slots__ = ("_conn",)

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def get(self, key: str) -> Optional[bytes]:
        try:
            cur = self._conn.execute("SELECT v FROM state WHERE k = ?", (key,))
            row = cur.fetchone()
            cur.close()
        except sqlite3.Error as exc:
            raise StoreError(str(exc), op="get", key=key) from exc
        return bytes(row[0]) if row is not None else None

    def put(self, key: str, value: bytes) -> None:
        try:
            self._conn.execute(
                "INSERT INTO state(k, v) VALUES(?, ?) ON CONFLICT(k) DO UPDATE SET v=excluded.v",
                (key, memoryview(value)),
            )
        except sqlite3.Error as exc:
            raise StoreError(str(exc), op="put", key=key) from exc

    def delete(self, key: str) -> None:
        try:
            self._conn.execute("DELETE FROM state WHERE k = ?", (key,))
        except sqlite3.Error as exc:
            raise StoreError(str(exc), op="delete", key=key) from exc

    def items(self) -> Iterator[Tuple[str, bytes]]:
        cur = self._conn.execute("SELECT k, v FROM state ORDER BY k")
        try:
            for k, v in cur:
                yield k, bytes(v)
        finally:
            cur.close()

    def batch(self) -> Batch:
        return SQLiteBatch(self._conn)

    def close(self) -> None:
        self._conn.close()


def open_sqlite_store(
    path: Union[str, "os.PathLike[str]"],
    *,
    pragmas: Optional[dict] = None,
    create: bool = True,
) -> SQLiteStore:
    """
    Open (or create) a SQLite store at `path` (a filesystem path or ":memory:").

    `create=False` raises FileNotFoundError if the file does not exist.
    """
    return SQLiteStore(_open_connection(path, pragmas=pragmas, create=create))


__all__ = [
    "SQLiteStore",
    "SQLiteBatch",
    "open_sqlite_store",
]

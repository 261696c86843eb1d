"""
datashare.state.stub — the per-invocation view of the ledger.

An `InvocationStub` is what the host hands to the chaincode for exactly one
invocation. It carries the function name and string arguments, exposes
`get_state` / `put_state` / `del_state`, and stages every write in an
overlay instead of touching the store directly:

- Reads consult the overlay first, then the backing store (read-your-writes).
- `commit()` applies the overlay to the store in a single batch.
- `discard()` drops the overlay; the store is left untouched.

The host decides which of the two happens based on the invocation outcome,
which is what makes each invocation atomic. Any failure raised by the
backing store surfaces as `StoreError` carrying the original message.

    stub = InvocationStub(store, "insert", ["alice", "10"])
    resp = chaincode.invoke(stub)
    stub.commit() if resp.ok else stub.discard()
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from ..errors import StoreError
from ..logging import short_uuid
from .kv import StateStore


@contextmanager
def _store_call(op: str, key: Optional[str] = None) -> Iterator[None]:
    try:
        yield
    except StoreError:
        raise
    except Exception as exc:
        raise StoreError(str(exc) or type(exc).__name__, op=op, key=key) from exc


class InvocationStub:
    """
    Parameters
    ----------
    store :
        Backing state store supplied by the host.
    function :
        Operation name requested by the caller.
    args :
        Ordered string arguments.
    tx_id :
        Transaction identifier; a short random id is generated when omitted.
    """

    def __init__(
        self,
        store: StateStore,
        function: str,
        args: Sequence[str] = (),
        *,
        tx_id: Optional[str] = None,
    ) -> None:
        self._store = store
        self.function = function
        self.args: Tuple[str, ...] = tuple(args)
        self.tx_id = tx_id or short_uuid()
        # None marks a staged deletion
        self._overlay: Dict[str, Optional[bytes]] = {}
        self._reads: List[str] = []
        self._closed = False

    # ------------------------------ invocation ------------------------------

    def get_function_and_parameters(self) -> Tuple[str, List[str]]:
        return self.function, list(self.args)

    # ------------------------------ state ops -------------------------------

    def get_state(self, key: str) -> Optional[bytes]:
        """Return the value for `key`, or None if absent."""
        self._check_open()
        self._reads.append(key)
        if key in self._overlay:
            return self._overlay[key]
        with _store_call("get", key):
            return self._store.get(key)

    def put_state(self, key: str, value: bytes) -> None:
        self._check_open()
        if not key:
            raise StoreError("key must not be an empty string", op="put")
        if not isinstance(value, (bytes, bytearray, memoryview)):
            raise StoreError("value must be bytes-like", op="put", key=key)
        self._overlay[key] = bytes(value)

    def del_state(self, key: str) -> None:
        self._check_open()
        if not key:
            raise StoreError("key must not be an empty string", op="delete")
        self._overlay[key] = None

    # ------------------------------ lifecycle -------------------------------

    def commit(self) -> None:
        """Apply staged writes to the backing store atomically."""
        self._check_open()
        self._closed = True
        if not self._overlay:
            return
        with _store_call("commit"):
            with self._store.batch() as b:
                for key, value in self._overlay.items():
                    if value is None:
                        b.delete(key)
                    else:
                        b.put(key, value)

    def discard(self) -> None:
        """Drop staged writes."""
        self._overlay.clear()
        self._closed = True

    def _check_open(self) -> None:
        if self._closed:
            raise StoreError("invocation already finished", op="state")

    # ------------------------------ diagnostics -----------------------------

    @property
    def reads(self) -> List[str]:
        """Keys read during this invocation, in order (repeats included)."""
        return list(self._reads)

    @property
    def writes(self) -> Dict[str, Optional[bytes]]:
        """Staged writes in first-write order; None marks a deletion."""
        return dict(self._overlay)


__all__ = ["InvocationStub"]

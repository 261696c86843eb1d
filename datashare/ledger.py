"""
datashare.ledger — the indexed key/value operations.

All writes funnel through `LedgerOps.set`, which records the key in the
KeyIndex *before* writing the entry. If an invocation is cut short between
the two writes, the index may name a key with no value (harmless: the read
comes back empty) but there is never a value whose key the index does not
know about, which would silently hide it from `value_search`.

Value semantics
---------------
- update(k, v): stored value becomes exactly v.
- insert(k, v): v if nothing (or an empty value) is stored yet, otherwise
  `prior + b";" + v`. Inserting twice appends twice. The separator is not
  escaped, so "a;b" inserted once and "a" then "b" inserted separately are
  indistinguishable afterwards.

Every method takes the invocation's state accessor (the stub) as its first
argument and keeps nothing between calls.
"""

from __future__ import annotations

from typing import List, Optional, Union

from .config import HISTORY_SEPARATOR, LedgerConfig, get_config
from .errors import EncodeError, InvalidKey, ValueTooLarge
from .index import BlobKeyIndexStore, KeyIndexStore, StateAccess
from .logging import get_logger

log = get_logger(__name__)

ValueLike = Union[str, bytes, bytearray, memoryview]


def as_value_bytes(value: ValueLike) -> bytes:
    """UTF-8 encode string arguments; pass bytes-like values through."""
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)
    try:
        return value.encode("utf-8")
    except UnicodeEncodeError as exc:
        raise EncodeError(f"Failed to encode value: {exc}") from exc


class LedgerOps:
    """
    Parameters
    ----------
    index_store :
        KeyIndex persistence strategy. Defaults to a `BlobKeyIndexStore` on the
        configured sentinel key.
    config :
        Limits and sentinel; defaults to the process configuration.
    """

    def __init__(
        self,
        index_store: Optional[KeyIndexStore] = None,
        *,
        config: Optional[LedgerConfig] = None,
    ) -> None:
        self.config = config or get_config()
        self.index_store = index_store or BlobKeyIndexStore(self.config.sentinel_key)

    # ------------------------------ validation ------------------------------

    def validate_key(self, key: str) -> str:
        if self.index_store.is_reserved(key):
            raise InvalidKey(f"Invalid key {{{key}}} is reserved.", key=key)
        if len(key) == 0:
            raise InvalidKey("Invalid key, expecting non-empty string.")
        size = len(key.encode("utf-8", "surrogatepass"))
        limit = self.config.limits.max_key_bytes
        if limit and size > limit:
            raise InvalidKey(
                f"Invalid key, longer than {limit} bytes.",
                data={"size": size, "limit": limit},
            )
        return key

    def _check_value_size(self, value: bytes) -> None:
        limit = self.config.limits.max_value_bytes
        if limit and len(value) > limit:
            raise ValueTooLarge(
                f"Value of {len(value)} bytes exceeds the {limit} byte limit.",
                size=len(value),
                limit=limit,
            )

    # ------------------------------ writes ----------------------------------

    def set(self, state: StateAccess, key: str, value: bytes) -> None:
        """
        Record `key` in the KeyIndex, then write `value` under it.

        Any failure (corrupt index, encode error, store error) propagates
        before the entry write happens.
        """
        self.index_store.track(state, key)
        state.put_state(key, value)

    def insert(self, state: StateAccess, key: str, value: ValueLike) -> bytes:
        """Append `value` to the key's history; returns the new stored value."""
        self.validate_key(key)
        new_value = as_value_bytes(value)
        old_value = state.get_state(key)
        if not old_value:
            stored = new_value
        else:
            stored = old_value + HISTORY_SEPARATOR + new_value
        self._check_value_size(stored)
        log.debug("new value", extra={"key": key, "value": stored})
        self.set(state, key, stored)
        return stored

    def update(self, state: StateAccess, key: str, value: ValueLike) -> bytes:
        """Overwrite the key's value; returns the new stored value."""
        self.validate_key(key)
        stored = as_value_bytes(value)
        self._check_value_size(stored)
        log.debug("new value", extra={"key": key, "value": stored})
        self.set(state, key, stored)
        return stored

    # ------------------------------ reads -----------------------------------

    def key_search(self, state: StateAccess, key: str) -> Optional[bytes]:
        """Raw stored bytes for `key`, or None if nothing is stored."""
        self.validate_key(key)
        value = state.get_state(key)
        log.debug("key search", extra={"key": key, "value": value})
        return value

    def value_search(self, state: StateAccess, target: ValueLike) -> List[str]:
        """
        Keys whose stored value equals `target` byte-for-byte.

        One read per indexed key. Order follows the index and is unspecified.
        An accumulated insert history only matches the whole string. An
        indexed key with no stored value compares as empty.
        """
        target_b = as_value_bytes(target)
        index = self.index_store.load(state)
        matches: List[str] = []
        for key in index:
            if (state.get_state(key) or b"") == target_b:
                matches.append(key)
        log.debug(
            "value search",
            extra={"target": target_b, "matches": matches, "scanned": len(index)},
        )
        return matches


__all__ = ["LedgerOps", "as_value_bytes"]

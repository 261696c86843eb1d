"""
datashare.index — the KeyIndex side record.

The ledger keeps track of every key it has ever written so that
`value_search` can enumerate candidates without scanning the whole key
space. Two pieces:

- `KeyIndex`       : an in-memory, presence-only key set (add / contains / iterate).
- `KeyIndexStore`  : how that set is loaded from and written back to state.

The ledger only talks to `KeyIndexStore.load/merge/persist` and iterates
`KeyIndex`; where the set physically lives is the store's business.
`BlobKeyIndexStore` keeps the whole set as one JSON object under a reserved
sentinel key:

    _KEY_LIST_ -> {"alice":0,"bob":0}

The marker value carries no information. The set only grows.
"""

from __future__ import annotations

import abc
import json
from typing import Dict, Iterable, Iterator, Optional, Protocol

from .errors import CorruptIndex, EncodeError
from .logging import get_logger

log = get_logger(__name__)

# Unit marker stored for every key.
MARKER = 0

# HTML-safe JSON, as the rest of the network writes the index
_JSON_ESCAPES = str.maketrans(
    {
        "<": "\\u003c",
        ">": "\\u003e",
        "&": "\\u0026",
        "\u2028": "\\u2028",
        "\u2029": "\\u2029",
    }
)


class StateAccess(Protocol):
    """The slice of the invocation stub the index needs."""

    def get_state(self, key: str) -> Optional[bytes]: ...
    def put_state(self, key: str, value: bytes) -> None: ...


class KeyIndex:
    """
    Presence-only set of ledger keys.

    Iteration follows insertion order of the loaded blob, which callers must
    treat as unordered.
    """

    __slots__ = ("_keys",)

    def __init__(self, keys: Iterable[str] = ()) -> None:
        self._keys: Dict[str, int] = {k: MARKER for k in keys}

    def add(self, key: str) -> bool:
        """Add `key`; return True if it was not present before."""
        if key in self._keys:
            return False
        self._keys[key] = MARKER
        return True

    def __contains__(self, key: object) -> bool:
        return key in self._keys

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._keys))

    def __len__(self) -> int:
        return len(self._keys)

    def __repr__(self) -> str:  # pragma: no cover (human-only)
        return f"KeyIndex(size={len(self._keys)})"

    # ------------------------------ codec -----------------------------------

    def encode(self) -> bytes:
        """
        Serialize as a compact JSON object with sorted keys (UTF-8).

        HTML-safe: `<`, `>`, `&`, U+2028 and U+2029 are written as `\\u00XX` /
        `\\u202X` escapes, matching index blobs written by other peers.

        Raises:
            EncodeError: a key cannot be represented in UTF-8 (e.g. lone surrogates).
        """
        try:
            text = json.dumps(
                self._keys, sort_keys=True, separators=(",", ":"), ensure_ascii=False
            )
            return text.translate(_JSON_ESCAPES).encode("utf-8")
        except (TypeError, ValueError) as exc:
            raise EncodeError(f"Failed to encode key list: {exc}") from exc

    @classmethod
    def decode(cls, raw: bytes) -> "KeyIndex":
        """
        Parse a serialized index.

        Raises:
            CorruptIndex: not UTF-8 JSON, not an object, or a marker is not a
                small non-negative integer.
        """
        try:
            obj = json.loads(bytes(raw).decode("utf-8"))
        except ValueError as exc:
            raise CorruptIndex(f"Failed to decode key list: {exc}") from exc
        if not isinstance(obj, dict):
            raise CorruptIndex(
                f"Failed to decode key list: expected an object, got {type(obj).__name__}"
            )
        for key, marker in obj.items():
            if isinstance(marker, bool) or not isinstance(marker, int) or not 0 <= marker <= 0xFF:
                raise CorruptIndex(
                    f"Failed to decode key list: bad marker for {key!r}",
                    data={"key": key},
                )
        return cls(obj.keys())


# ------------------------------ index stores ---------------------------------


class KeyIndexStore(abc.ABC):
    """
    Persistence strategy for the KeyIndex.

    `set` in the ledger calls `load`, `merge` and `persist` in that order and
    stops at the first failure, so an entry is never written for a key the
    index does not know about.
    """

    @abc.abstractmethod
    def load(self, state: StateAccess) -> KeyIndex:
        """Read the index; an absent index is empty."""

    @abc.abstractmethod
    def merge(self, index: KeyIndex, key: str) -> bytes:
        """Add `key` to `index` and return the serialized index to persist."""

    @abc.abstractmethod
    def persist(self, state: StateAccess, payload: bytes) -> None:
        """Write the serialized index back to state."""

    @abc.abstractmethod
    def is_reserved(self, key: str) -> bool:
        """True if `key` belongs to the index itself and is not a user key."""

    def track(self, state: StateAccess, key: str) -> KeyIndex:
        """load → merge → persist; returns the updated index."""
        index = self.load(state)
        payload = self.merge(index, key)
        self.persist(state, payload)
        return index


class BlobKeyIndexStore(KeyIndexStore):
    """The whole index as one JSON object under the sentinel key."""

    def __init__(self, sentinel_key: str) -> None:
        if not sentinel_key:
            raise ValueError("sentinel key must be non-empty")
        self.sentinel_key = sentinel_key

    def load(self, state: StateAccess) -> KeyIndex:
        raw = state.get_state(self.sentinel_key)
        if raw is None:
            return KeyIndex()
        return KeyIndex.decode(raw)

    def merge(self, index: KeyIndex, key: str) -> bytes:
        if index.add(key):
            log.debug("key index grew", extra={"key": key, "size": len(index)})
        return index.encode()

    def persist(self, state: StateAccess, payload: bytes) -> None:
        state.put_state(self.sentinel_key, payload)

    def is_reserved(self, key: str) -> bool:
        return key == self.sentinel_key


__all__ = [
    "MARKER",
    "KeyIndex",
    "KeyIndexStore",
    "BlobKeyIndexStore",
]

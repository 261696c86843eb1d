"""
datashare.hashing — self-describing digests of structured payloads.

A payload is serialized to canonical JSON (sorted keys, compact separators,
bytes rendered as lowercase hex) and hashed; the result records which method
produced it:

    >>> hash_payload({"owner": {"name": "alice"}}).method
    'sha256'

Supported methods: sha256 (default), sha3_256, blake2b (32-byte digest).
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import asdict, dataclass, is_dataclass
from typing import Any, Callable, Dict

from .errors import EncodeError

_METHODS: Dict[str, Callable[[bytes], Any]] = {
    "sha256": hashlib.sha256,
    "sha3_256": hashlib.sha3_256,
    "blake2b": lambda data: hashlib.blake2b(data, digest_size=32),
}


@dataclass(frozen=True)
class MultiHash:
    method: str
    digest: str

    def to_dict(self) -> Dict[str, str]:
        return {"method": self.method, "digest": self.digest}


def _default(o: Any) -> Any:
    if isinstance(o, (bytes, bytearray, memoryview)):
        return bytes(o).hex()
    if is_dataclass(o) and not isinstance(o, type):
        return asdict(o)
    raise TypeError(f"unsupported payload type: {type(o).__name__}")


def canonical_json(obj: Any) -> bytes:
    """Canonical UTF-8 JSON encoding used as hash input."""
    try:
        return json.dumps(
            obj,
            default=_default,
            sort_keys=True,
            separators=(",", ":"),
            ensure_ascii=False,
            allow_nan=False,
        ).encode("utf-8")
    except (TypeError, ValueError) as exc:
        raise EncodeError(f"Failed to encode payload: {exc}") from exc


def hash_payload(obj: Any, method: str = "sha256") -> MultiHash:
    """
    Digest `obj` with `method`.

    Raises:
        ValueError:  unknown method.
        EncodeError: `obj` is not JSON-representable.
    """
    try:
        fn = _METHODS[method]
    except KeyError:
        raise ValueError(
            f"unknown hash method {method!r}; expected one of {sorted(_METHODS)}"
        ) from None
    return MultiHash(method=method, digest=fn(canonical_json(obj)).hexdigest())


def supported_methods() -> list[str]:
    return sorted(_METHODS)


__all__ = ["MultiHash", "canonical_json", "hash_payload", "supported_methods"]

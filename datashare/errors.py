"""
datashare.errors — typed failures of the data-sharing chaincode.

Every invocation either succeeds or fails with one of these exceptions; the
chaincode entry point converts them into an error `Response` and the host
discards any writes the failed invocation staged.

Hierarchy
---------
LedgerError (base)
 ├─ InvalidArgument   : bad argument value
 │   ├─ InvalidKey    : empty key, reserved sentinel key, or key too long
 │   └─ ValueTooLarge : stored value would exceed the configured cap
 ├─ ArityError        : wrong number of arguments for an operation
 ├─ UnknownOperation  : unrecognized function name
 ├─ CodecError
 │   ├─ EncodeError   : KeyIndex/value serialization failed
 │   └─ DecodeError
 │       └─ CorruptIndex : stored KeyIndex bytes are not a valid index
 ├─ StoreError        : state store read/write failure (message kept verbatim)
 └─ ConfigError       : invalid environment configuration

All errors are terminal for the current invocation; nothing here is retried.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Optional


@dataclass
class LedgerError(Exception):
    """
    Base chaincode error.

    Attributes:
        message: Human-readable explanation (surfaced to the caller by the host).
        code:    Stable machine code string (e.g., 'INVALID_KEY').
        data:    Optional structured details (kept JSON-serializable).
    """
    message: str = "ledger error"
    code: str = "LEDGER_ERROR"
    data: Optional[Dict[str, Any]] = field(default=None)

    def __str__(self) -> str:  # pragma: no cover - trivial
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a JSON-safe dict for responses/logs."""
        out: Dict[str, Any] = {"code": self.code, "message": self.message}
        if self.data is not None:
            out["data"] = self.data
        return out


def _merge(data: Optional[Dict[str, Any]], **fields: Any) -> Optional[Dict[str, Any]]:
    d: Dict[str, Any] = {}
    if data:
        d.update(data)
    for k, v in fields.items():
        if v is not None:
            d.setdefault(k, v)
    return d or None


class InvalidArgument(LedgerError):
    def __init__(
        self,
        message: str = "invalid argument",
        *,
        code: str = "INVALID_ARGUMENT",
        data: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, code=code, data=data)


class InvalidKey(InvalidArgument):
    """
    The key is empty, equals the reserved sentinel, or is longer than allowed.
    """
    def __init__(
        self,
        message: str = "invalid key",
        *,
        key: Optional[str] = None,
        data: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, code="INVALID_KEY", data=_merge(data, key=key))


class ValueTooLarge(InvalidArgument):
    def __init__(
        self,
        message: str = "value too large",
        *,
        size: Optional[int] = None,
        limit: Optional[int] = None,
        data: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message, code="VALUE_TOO_LARGE", data=_merge(data, size=size, limit=limit)
        )


class ArityError(LedgerError):
    """
    Wrong argument count. Raised before any state access.
    """
    def __init__(
        self,
        message: Optional[str] = None,
        *,
        op: Optional[str] = None,
        expected: Optional[int] = None,
        got: Optional[int] = None,
        data: Optional[Dict[str, Any]] = None,
    ):
        if message is None:
            if expected == 0:
                message = "Incorrect number of arguments. Expecting no arguments."
            else:
                message = f"Incorrect number of arguments. Expecting {expected}."
        super().__init__(
            message=message,
            code="ARITY",
            data=_merge(data, op=op, expected=expected, got=got),
        )


class UnknownOperation(LedgerError):
    def __init__(
        self,
        function: str,
        valid: Iterable[str],
        *,
        data: Optional[Dict[str, Any]] = None,
    ):
        names = list(valid)
        message = (
            "Invalid invoke function name. Expecting {" + ", ".join(names) + "}."
        )
        super().__init__(
            message=message,
            code="UNKNOWN_OPERATION",
            data=_merge(data, function=function, valid=names),
        )


class CodecError(LedgerError):
    def __init__(
        self,
        message: str = "codec error",
        *,
        code: str = "CODEC",
        data: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, code=code, data=data)


class EncodeError(CodecError):
    def __init__(self, message: str = "encode failed", *, data: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="ENCODE", data=data)


class DecodeError(CodecError):
    def __init__(
        self,
        message: str = "decode failed",
        *,
        code: str = "DECODE",
        data: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, code=code, data=data)


class CorruptIndex(DecodeError):
    """
    The stored KeyIndex blob cannot be deserialized into a key set.

    Indicates an earlier write left the ledger inconsistent; fatal for the
    invocation that observes it.
    """
    def __init__(self, message: str = "corrupt key index", *, data: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="CORRUPT_INDEX", data=data)


class StoreError(LedgerError):
    """
    Failure reported by the external state store. The message of the
    underlying failure is carried unchanged.
    """
    def __init__(
        self,
        message: str = "state store failure",
        *,
        op: Optional[str] = None,
        key: Optional[str] = None,
        data: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, code="STORE", data=_merge(data, op=op, key=key))


class ConfigError(LedgerError):
    def __init__(self, message: str = "invalid configuration", *, data: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, code="CONFIG", data=data)


# -------- helper utilities ---------------------------------------------------


def error_to_response_fields(err: LedgerError) -> Dict[str, Any]:
    """
    Map a LedgerError to response-like fields.

    Returns:
        {
          "status": 500,
          "message": <err.message>,
          "error":  {code, message, data?}
        }
    """
    return {"status": 500, "message": err.message, "error": err.to_dict()}


__all__ = [
    "LedgerError",
    "InvalidArgument",
    "InvalidKey",
    "ValueTooLarge",
    "ArityError",
    "UnknownOperation",
    "CodecError",
    "EncodeError",
    "DecodeError",
    "CorruptIndex",
    "StoreError",
    "ConfigError",
    "error_to_response_fields",
]

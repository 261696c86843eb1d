"""
datashare.response — the envelope an invocation returns to the host.

Mirrors the host platform's response shape: an HTTP-like status, a message
(set on errors) and an opaque payload (set on success).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

OK = 200
ERROR = 500


@dataclass(frozen=True)
class Response:
    status: int = OK
    message: str = ""
    payload: Optional[bytes] = None
    error: Optional[Dict[str, Any]] = field(default=None, compare=False)

    @property
    def ok(self) -> bool:
        return OK <= self.status < 400

    @classmethod
    def success(cls, payload: Optional[bytes] = None) -> "Response":
        return cls(status=OK, payload=payload)

    @classmethod
    def failure(cls, message: str, *, error: Optional[Dict[str, Any]] = None) -> "Response":
        return cls(status=ERROR, message=message, error=error)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"status": self.status}
        if self.message:
            out["message"] = self.message
        if self.payload is not None:
            out["payload"] = self.payload.decode("utf-8", "replace")
        if self.error is not None:
            out["error"] = self.error
        return out


__all__ = ["OK", "ERROR", "Response"]

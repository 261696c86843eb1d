"""
datashare.dispatcher — route an invocation to its ledger operation.

    insert(key, value)      [2 args] → empty payload
    update(key, value)      [2 args] → empty payload
    key_search(key)         [1 arg]  → raw stored bytes (None if absent)
    value_search(value)     [1 arg]  → JSON array of matching keys

Names and argument counts are checked before the stub is touched, so a
malformed invocation performs no reads and no writes.

`DataSharingChaincode` is the object the host drives: `init(stub)` and
`invoke(stub)` never raise for ledger failures; they return an error
`Response` carrying the message instead.
"""

from __future__ import annotations

import json
from typing import Any, Callable, Dict, List, Mapping, NamedTuple, Optional, Sequence

from .errors import ArityError, LedgerError, UnknownOperation, error_to_response_fields
from .index import StateAccess
from .ledger import LedgerOps
from .logging import bind, get_logger, trace_scope
from .response import Response

log = get_logger(__name__)


class Operation(NamedTuple):
    name: str
    arity: int
    run: Callable[[LedgerOps, StateAccess, List[str]], Optional[bytes]]


def _insert(ops: LedgerOps, state: StateAccess, args: List[str]) -> Optional[bytes]:
    ops.insert(state, args[0], args[1])
    return None


def _update(ops: LedgerOps, state: StateAccess, args: List[str]) -> Optional[bytes]:
    ops.update(state, args[0], args[1])
    return None


def _key_search(ops: LedgerOps, state: StateAccess, args: List[str]) -> Optional[bytes]:
    return ops.key_search(state, args[0])


def _value_search(ops: LedgerOps, state: StateAccess, args: List[str]) -> Optional[bytes]:
    keys = ops.value_search(state, args[0])
    return encode_key_list(keys)


OPERATIONS: Mapping[str, Operation] = {
    op.name: op
    for op in (
        Operation("insert", 2, _insert),
        Operation("update", 2, _update),
        Operation("key_search", 1, _key_search),
        Operation("value_search", 1, _value_search),
    )
}


def encode_key_list(keys: Sequence[str]) -> bytes:
    return json.dumps(list(keys), separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def decode_key_list(payload: Optional[bytes]) -> List[str]:
    """Inverse of the `value_search` payload encoding (client side helper)."""
    if not payload:
        return []
    return list(json.loads(payload.decode("utf-8")))


def resolve_operation(function: str, args: Sequence[Any]) -> Operation:
    """
    Look up `function` and check the argument count.

    Raises:
        UnknownOperation: name not in OPERATIONS.
        ArityError:       wrong number of arguments.
    """
    op = OPERATIONS.get(function)
    if op is None:
        raise UnknownOperation(function, OPERATIONS.keys())
    if len(args) != op.arity:
        raise ArityError(op=op.name, expected=op.arity, got=len(args))
    return op


def dispatch(
    ops: LedgerOps,
    state: StateAccess,
    function: str,
    args: Sequence[str],
) -> Optional[bytes]:
    """Run one operation against `state` and return its payload; raises LedgerError."""
    op = resolve_operation(function, args)
    return op.run(ops, state, list(args))


class DataSharingChaincode:
    """
    Host-facing entry points.

    Parameters
    ----------
    ops :
        Ledger operations to run; a default `LedgerOps()` is built when omitted.
    """

    def __init__(self, ops: Optional[LedgerOps] = None) -> None:
        self.ops = ops or LedgerOps()

    def init(self, stub: Any) -> Response:
        """Instantiate the chaincode. Takes no arguments and writes nothing."""
        _, args = stub.get_function_and_parameters()
        if args:
            err = ArityError(op="init", expected=0, got=len(args))
            log.warning("init rejected", extra={"code": err.code})
            return Response.failure(err.message, error=err.to_dict())
        log.info("created new data sharing ledger")
        return Response.success()

    def invoke(self, stub: Any) -> Response:
        function, args = stub.get_function_and_parameters()
        with trace_scope(getattr(stub, "tx_id", None)):
            bind(function=function)
            log.info("invoke %s(%s)", function, ", ".join(repr(a) for a in args))
            try:
                payload = dispatch(self.ops, stub, function, args)
            except LedgerError as err:
                fields: Dict[str, Any] = error_to_response_fields(err)
                log.warning("invoke failed: %s", err.message, extra={"code": err.code})
                return Response.failure(fields["message"], error=fields["error"])
            return Response.success(payload)


__all__ = [
    "OPERATIONS",
    "Operation",
    "DataSharingChaincode",
    "decode_key_list",
    "dispatch",
    "encode_key_list",
    "resolve_operation",
]

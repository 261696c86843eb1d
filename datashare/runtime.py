"""
datashare.runtime — local host for running invocations against a store.

Plays the part of the peer: it wraps one invocation in an `InvocationStub`,
hands it to the chaincode, and commits the staged writes only when the
chaincode reports success. A failed invocation leaves the store exactly as
it was.

    store = open_store("sqlite:///ledger.db")
    resp = execute(store, "insert", ["alice", "10"])
    assert resp.ok
"""

from __future__ import annotations

from typing import Optional, Sequence

from .dispatcher import DataSharingChaincode
from .errors import StoreError
from .logging import get_logger
from .response import Response
from .state import InvocationStub, StateStore

log = get_logger(__name__)


def _finish(stub: InvocationStub, resp: Response) -> Response:
    if not resp.ok:
        stub.discard()
        return resp
    try:
        stub.commit()
    except StoreError as err:
        log.warning("commit failed: %s", err.message, extra={"code": err.code})
        return Response.failure(err.message, error=err.to_dict())
    return resp


def execute(
    store: StateStore,
    function: str,
    args: Sequence[str] = (),
    *,
    tx_id: Optional[str] = None,
    chaincode: Optional[DataSharingChaincode] = None,
) -> Response:
    """Run one invocation and commit it if it succeeded."""
    cc = chaincode or DataSharingChaincode()
    stub = InvocationStub(store, function, args, tx_id=tx_id)
    return _finish(stub, cc.invoke(stub))


def execute_init(
    store: StateStore,
    args: Sequence[str] = (),
    *,
    tx_id: Optional[str] = None,
    chaincode: Optional[DataSharingChaincode] = None,
) -> Response:
    """Run the chaincode's Init with `args`."""
    cc = chaincode or DataSharingChaincode()
    stub = InvocationStub(store, "init", args, tx_id=tx_id)
    return _finish(stub, cc.init(stub))


__all__ = ["execute", "execute_init"]

"""
datashare — command-line host for the data-sharing chaincode.

Runs single invocations against a local store, the way a peer would:
each command is one invocation, committed only if it succeeds.

Global options:
  --store TEXT        Store URI (memory://, sqlite:///path, or a bare .db path)
  --log-level TEXT    Logging level (overrides DATASHARE_LOG_LEVEL, default INFO)
  --json-logs         Emit logs as JSON lines (overrides DATASHARE_LOG_FORMAT)

Logs go to stderr; command output goes to stdout.

Examples:
  datashare --store ledger.db invoke insert alice 10
  datashare --store ledger.db invoke insert alice 20
  datashare --store ledger.db invoke key_search alice      # 10;20
  datashare --store ledger.db invoke update alice 99
  datashare --store ledger.db invoke value_search 99       # ["alice"]
  datashare --store ledger.db keys
  datashare hash '{"owner": {"name": "alice"}}'
"""

from __future__ import annotations

import json
import sys
from typing import List, Optional

import typer

from .. import logging as dlog
from ..config import LOG_LEVELS, get_config
from ..dispatcher import decode_key_list
from ..errors import LedgerError
from ..hashing import hash_payload, supported_methods
from ..index import BlobKeyIndexStore
from ..response import Response
from ..runtime import execute, execute_init
from ..state import InvocationStub, StateStore, open_store
from ..version import __version__

app = typer.Typer(
    name="datashare",
    help="Data-sharing ledger: insert/update/search a shared key-value store",
    no_args_is_help=True,
    add_completion=False,
)


class GlobalContext:
    def __init__(self) -> None:
        self.store_uri: Optional[str] = None


_ctx = GlobalContext()


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"datashare {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    store: Optional[str] = typer.Option(
        None,
        "--store",
        help="Store URI (memory://, sqlite:///path, or a bare .db path)",
        envvar="DATASHARE_STORE",
    ),
    log_level: Optional[str] = typer.Option(
        None,
        "--log-level",
        help="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    ),
    json_logs: bool = typer.Option(
        False,
        "--json-logs",
        help="Emit logs as JSON lines",
    ),
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
) -> None:
    """
    Configuration is resolved in this order (highest to lowest priority):
      1. Command-line flags
      2. Environment variables (DATASHARE_STORE, DATASHARE_LOG_LEVEL, ...)
      3. Built-in defaults (memory://, which forgets everything on exit; INFO logs)
    """
    try:
        cfg = get_config()
    except LedgerError as err:
        typer.echo(f"Error: {err.message}", err=True)
        raise typer.Exit(2)
    if log_level is not None and log_level.upper() not in LOG_LEVELS:
        typer.echo(f"Error: unknown log level: {log_level!r}", err=True)
        raise typer.Exit(2)
    _ctx.store_uri = store or cfg.store_uri
    dlog.configure_from_config(
        cfg,
        level=log_level.upper() if log_level else None,
        json=True if json_logs else None,
        stream=sys.stderr,
    )


def _open() -> StateStore:
    uri = _ctx.store_uri or get_config().store_uri
    try:
        return open_store(uri)
    except (ValueError, OSError) as exc:
        typer.echo(f"Error: cannot open store {uri!r}: {exc}", err=True)
        raise typer.Exit(2)


def _fail(resp: Response) -> None:
    typer.echo(f"Error: {resp.message}", err=True)
    raise typer.Exit(1)


@app.command()
def invoke(
    function: str = typer.Argument(..., help="insert | update | key_search | value_search"),
    args: Optional[List[str]] = typer.Argument(None, help="Operation arguments"),
    tx_id: Optional[str] = typer.Option(None, "--tx-id", help="Transaction id for logs"),
) -> None:
    """Run one invocation and commit it if it succeeds."""
    store = _open()
    try:
        resp = execute(store, function, args or [], tx_id=tx_id)
    finally:
        store.close()
    if not resp.ok:
        _fail(resp)

    if function == "value_search":
        typer.echo(json.dumps(decode_key_list(resp.payload), ensure_ascii=False))
    elif function == "key_search":
        if resp.payload is not None:
            # raw stored bytes, not decoded
            typer.echo(resp.payload)
    else:
        typer.echo("OK")


@app.command()
def init(
    args: Optional[List[str]] = typer.Argument(None, help="Init takes no arguments"),
) -> None:
    """Instantiate the chaincode (no arguments, no writes)."""
    store = _open()
    try:
        resp = execute_init(store, args or [])
    finally:
        store.close()
    if not resp.ok:
        _fail(resp)
    typer.echo("OK")


@app.command()
def keys(
    json_output: bool = typer.Option(False, "--json", help="Output a JSON array"),
) -> None:
    """List every key recorded in the KeyIndex (sorted)."""
    cfg = get_config()
    store = _open()
    try:
        stub = InvocationStub(store, "keys")
        index = BlobKeyIndexStore(cfg.sentinel_key).load(stub)
        stub.discard()
    except LedgerError as err:
        typer.echo(f"Error: {err.message}", err=True)
        raise typer.Exit(1)
    finally:
        store.close()

    names = sorted(index)
    if json_output:
        typer.echo(json.dumps(names, ensure_ascii=False))
        return
    for name in names:
        typer.echo(name)


@app.command("hash")
def hash_cmd(
    payload: str = typer.Argument(..., help="JSON payload to digest"),
    method: str = typer.Option("sha256", "--method", "-m", help="Digest method"),
) -> None:
    """Print the MultiHash of a JSON payload."""
    if method not in supported_methods():
        typer.echo(
            f"Error: unknown method {method!r} (expected one of {', '.join(supported_methods())})",
            err=True,
        )
        raise typer.Exit(2)
    try:
        obj = json.loads(payload)
    except ValueError as exc:
        typer.echo(f"Error: payload is not JSON: {exc}", err=True)
        raise typer.Exit(2)
    try:
        mh = hash_payload(obj, method)
    except LedgerError as err:
        typer.echo(f"Error: {err.message}", err=True)
        raise typer.Exit(1)
    typer.echo(json.dumps(mh.to_dict()))


def main() -> None:  # pragma: no cover - console entry point
    app()


__all__ = ["app", "main"]

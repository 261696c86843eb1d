from __future__ import annotations

import logging

import pytest

from datashare.config import get_config, load_config
from datashare.ledger import LedgerOps
from datashare.state import MemoryStore


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch):
    """Each test starts from the built-in defaults."""
    for name in (
        "DATASHARE_SENTINEL_KEY",
        "DATASHARE_STORE",
        "DATASHARE_MAX_KEY_BYTES",
        "DATASHARE_MAX_VALUE_BYTES",
        "DATASHARE_LOG_LEVEL",
        "DATASHARE_LOG_FORMAT",
    ):
        monkeypatch.delenv(name, raising=False)
    get_config.cache_clear()
    yield
    get_config.cache_clear()


@pytest.fixture(autouse=True)
def _restore_root_logger():
    """CLI runs replace the root handler with one bound to a captured stream."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def ops() -> LedgerOps:
    return LedgerOps(config=load_config({}))

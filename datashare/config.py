"""
datashare.config — runtime configuration for the data-sharing chaincode.

This module centralizes knobs for:
  • The reserved sentinel key under which the KeyIndex is stored
  • The state store URI used by the local host runtime and CLI
  • Limits (user key length, stored value length)
  • Logging level / format

Configuration is provided via environment variables. Safe defaults are chosen so a
local developer run works out of the box.

Environment variables (all optional):
  DATASHARE_SENTINEL_KEY     -> reserved KeyIndex key (default: _KEY_LIST_)
  DATASHARE_STORE            -> store URI: memory://, sqlite:///path, or a bare *.db path
                                (default: memory://)
  DATASHARE_MAX_KEY_BYTES    -> e.g. "4KiB", "1024" (default: 0, unlimited)
  DATASHARE_MAX_VALUE_BYTES  -> e.g. "1MiB" (default: 0, unlimited)
  DATASHARE_LOG_LEVEL        -> DEBUG/INFO/WARNING/ERROR (default: INFO)
  DATASHARE_LOG_FORMAT       -> json/text (default: auto, text on a TTY)

Programmatic usage:
    from datashare.config import get_config
    cfg = get_config()
    sentinel = cfg.sentinel_key
"""

from __future__ import annotations

import os
import re
from dataclasses import asdict, dataclass, field
from functools import lru_cache
from typing import Dict, Mapping, Optional, Union

from .errors import ConfigError

DEFAULT_SENTINEL_KEY = "_KEY_LIST_"
HISTORY_SEPARATOR = b";"
DEFAULT_STORE_URI = "memory://"

LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG", "NOTSET")

# ----------------------------- helpers -------------------------------------

_SIZE_RE = re.compile(r"^\s*(\d+)\s*([kKmMgG]i?[bB]|[bB])?\s*$")

_UNIT_MULT = {
    "b": 1,
    "kb": 1000,
    "kib": 1024,
    "mb": 1000**2,
    "mib": 1024**2,
    "gb": 1000**3,
    "gib": 1024**3,
}


def _parse_size_bytes(s: Union[str, int]) -> int:
    """
    Parse human-friendly byte sizes:
      "4KiB", "64KB", "1MiB", "131072", 131072 -> bytes (int)
    """
    if isinstance(s, int):
        if s < 0:
            raise ValueError("size must be non-negative")
        return s

    m = _SIZE_RE.match(str(s))
    if not m:
        raise ValueError(f"invalid size: {s!r}")
    num = int(m.group(1))
    unit = (m.group(2) or "B").lower()
    try:
        return num * _UNIT_MULT[unit]
    except KeyError:
        raise ValueError(f"unknown size unit: {unit}") from None


# ------------------------------ dataclasses ---------------------------------


@dataclass(frozen=True)
class Limits:
    # 0 disables the check
    max_key_bytes: int = 0
    max_value_bytes: int = 0


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"
    format: Optional[str] = None  # None → auto


@dataclass(frozen=True)
class LedgerConfig:
    sentinel_key: str = DEFAULT_SENTINEL_KEY
    store_uri: str = DEFAULT_STORE_URI
    limits: Limits = field(default_factory=Limits)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def to_dict(self) -> Dict[str, object]:
        return asdict(self)


# ------------------------------ loader --------------------------------------


def _validate(cfg: LedgerConfig) -> LedgerConfig:
    if not cfg.sentinel_key:
        raise ConfigError("sentinel_key must be non-empty")
    if cfg.logging.level not in LOG_LEVELS:
        raise ConfigError(f"unknown log level: {cfg.logging.level!r}")
    if cfg.logging.format not in (None, "json", "text"):
        raise ConfigError(f"unknown log format: {cfg.logging.format!r}")
    return cfg


def load_config(env: Optional[Mapping[str, str]] = None) -> LedgerConfig:
    """
    Build a LedgerConfig from `env` (defaults to os.environ).

    Raises:
        ConfigError: on unparsable sizes or out-of-range values.
    """
    e = os.environ if env is None else env
    try:
        limits = Limits(
            max_key_bytes=_parse_size_bytes(
                e.get("DATASHARE_MAX_KEY_BYTES", Limits.max_key_bytes)
            ),
            max_value_bytes=_parse_size_bytes(
                e.get("DATASHARE_MAX_VALUE_BYTES", Limits.max_value_bytes)
            ),
        )
    except ValueError as exc:
        raise ConfigError(str(exc)) from exc

    fmt = e.get("DATASHARE_LOG_FORMAT", "").strip().lower() or None
    cfg = LedgerConfig(
        sentinel_key=e.get("DATASHARE_SENTINEL_KEY", DEFAULT_SENTINEL_KEY),
        store_uri=e.get("DATASHARE_STORE", DEFAULT_STORE_URI).strip() or DEFAULT_STORE_URI,
        limits=limits,
        logging=LoggingConfig(
            level=e.get("DATASHARE_LOG_LEVEL", "INFO").strip().upper(),
            format=fmt,
        ),
    )
    return _validate(cfg)


@lru_cache(maxsize=1)
def get_config() -> LedgerConfig:
    """Process-wide configuration resolved once from the environment."""
    return load_config()


def reload_config() -> LedgerConfig:
    """Drop the cached configuration and re-read the environment (tests)."""
    get_config.cache_clear()
    return get_config()


__all__ = [
    "DEFAULT_SENTINEL_KEY",
    "DEFAULT_STORE_URI",
    "HISTORY_SEPARATOR",
    "LOG_LEVELS",
    "Limits",
    "LoggingConfig",
    "LedgerConfig",
    "load_config",
    "get_config",
    "reload_config",
]

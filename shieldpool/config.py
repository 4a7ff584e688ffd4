"""
Pool configuration.

One flat dataclass covering the accumulator shape, the accepted coin, the
address prefix, the store location and logging. Every field has a default
and can be overridden through the environment:

  # Accumulator
  SHIELDPOOL_TREE_DEPTH=20               # 1..31
  SHIELDPOOL_ROOT_HISTORY_SIZE=100

  # Denomination & addresses
  SHIELDPOOL_DENOM=TKN
  SHIELDPOOL_DENOMINATION=10             # exact amount per deposit
  SHIELDPOOL_ADDRESS_HRP=juno

  # Storage
  SHIELDPOOL_DB_URI=sqlite:///shieldpool.db   # or memory://

  # Logging
  SHIELDPOOL_LOG_LEVEL=INFO
  SHIELDPOOL_LOG_JSON=0                  # 1/true/yes for JSON lines

Nothing here imports heavy dependencies.
"""

from __future__ import annotations

import logging
import os
from dataclasses import asdict, dataclass, replace
from typing import Any, Dict, List, Optional

from shieldpool.errors import ConfigError
from shieldpool.merkle import DEFAULT_HISTORY_SIZE, MAX_DEPTH, MIN_DEPTH

ENV_PREFIX = "SHIELDPOOL_"

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}
_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}


# ------------------------------- helpers ------------------------------------


def _getenv(key: str, default: Optional[str] = None) -> Optional[str]:
    v = os.environ.get(ENV_PREFIX + key)
    return v if v is not None and v.strip() != "" else default


def _getenv_int(key: str, default: int) -> int:
    v = _getenv(key)
    if v is None:
        return default
    try:
        return int(v.strip(), 10)
    except ValueError as e:
        raise ConfigError(f"invalid int for {ENV_PREFIX}{key}: {v!r}") from e


def _getenv_bool(key: str, default: bool) -> bool:
    v = _getenv(key)
    if v is None:
        return default
    vv = v.strip().lower()
    if vv in _TRUE:
        return True
    if vv in _FALSE:
        return False
    raise ConfigError(f"invalid bool for {ENV_PREFIX}{key}: {v!r}")


# ------------------------------- config -------------------------------------


@dataclass(frozen=True)
class PoolConfig:
    tree_depth: int = 20
    root_history_size: int = DEFAULT_HISTORY_SIZE
    address_hrp: str = "juno"
    denom: str = "TKN"
    denomination: int = 10
    db_uri: str = "sqlite:///shieldpool.db"
    log_level: str = "INFO"
    log_json: bool = False

    def validate(self) -> "PoolConfig":
        if not MIN_DEPTH <= self.tree_depth <= MAX_DEPTH:
            raise ConfigError(f"tree_depth must be in {MIN_DEPTH}..{MAX_DEPTH}", data={"tree_depth": self.tree_depth})
        if self.root_history_size <= 0:
            raise ConfigError("root_history_size must be > 0")
        if not self.address_hrp or self.address_hrp != self.address_hrp.lower():
            raise ConfigError("address_hrp must be a non-empty lowercase prefix")
        if not self.denom:
            raise ConfigError("denom must be non-empty")
        if self.denomination <= 0:
            raise ConfigError("denomination must be > 0")
        if not self.db_uri:
            raise ConfigError("db_uri must be set")
        if self.log_level.upper() not in _LEVELS:
            raise ConfigError(f"unknown log level {self.log_level!r}")
        return self

    def with_overrides(self, **changes: Any) -> "PoolConfig":
        """Copy with the non-None `changes` applied, validated."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None}).validate()

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_env(cls) -> "PoolConfig":
        d = cls()
        cfg = cls(
            tree_depth=_getenv_int("TREE_DEPTH", d.tree_depth),
            root_history_size=_getenv_int("ROOT_HISTORY_SIZE", d.root_history_size),
            address_hrp=_getenv("ADDRESS_HRP", d.address_hrp) or d.address_hrp,
            denom=_getenv("DENOM", d.denom) or d.denom,
            denomination=_getenv_int("DENOMINATION", d.denomination),
            db_uri=_getenv("DB_URI", d.db_uri) or d.db_uri,
            log_level=(_getenv("LOG_LEVEL", d.log_level) or d.log_level).upper(),
            log_json=_getenv_bool("LOG_JSON", d.log_json),
        )
        return cfg.validate()

    @property
    def log_level_no(self) -> int:
        return logging.getLevelName(self.log_level.upper())


def format_config(cfg: PoolConfig) -> List[str]:
    """`key: value` lines, useful in CLIs."""
    return [f"{k}: {v}" for k, v in cfg.to_dict().items()]


__all__ = ["PoolConfig", "format_config", "ENV_PREFIX"]

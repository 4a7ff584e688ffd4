from __future__ import annotations

import pytest

from shieldpool.config import PoolConfig, format_config
from shieldpool.errors import ConfigError

_VARS = (
    "TREE_DEPTH", "ROOT_HISTORY_SIZE", "ADDRESS_HRP", "DENOM",
    "DENOMINATION", "DB_URI", "LOG_LEVEL", "LOG_JSON",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for v in _VARS:
        monkeypatch.delenv("SHIELDPOOL_" + v, raising=False)


def test_defaults():
    cfg = PoolConfig.from_env()
    assert cfg == PoolConfig()
    assert (cfg.tree_depth, cfg.root_history_size, cfg.denom, cfg.denomination) == (20, 100, "TKN", 10)
    assert cfg.address_hrp == "juno"
    assert not cfg.log_json


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("SHIELDPOOL_TREE_DEPTH", "8")
    monkeypatch.setenv("SHIELDPOOL_DENOM", "ujuno")
    monkeypatch.setenv("SHIELDPOOL_DENOMINATION", "1000000")
    monkeypatch.setenv("SHIELDPOOL_DB_URI", "memory://")
    monkeypatch.setenv("SHIELDPOOL_LOG_LEVEL", "debug")
    monkeypatch.setenv("SHIELDPOOL_LOG_JSON", "yes")
    cfg = PoolConfig.from_env()
    assert cfg.tree_depth == 8
    assert cfg.denom == "ujuno"
    assert cfg.denomination == 1_000_000
    assert cfg.db_uri == "memory://"
    assert cfg.log_level == "DEBUG"
    assert cfg.log_json


@pytest.mark.parametrize(
    "var, value",
    [
        ("TREE_DEPTH", "0"),
        ("TREE_DEPTH", "32"),
        ("TREE_DEPTH", "ten"),
        ("ROOT_HISTORY_SIZE", "0"),
        ("DENOMINATION", "-1"),
        ("ADDRESS_HRP", "JUNO"),
        ("LOG_LEVEL", "LOUD"),
        ("LOG_JSON", "maybe"),
    ],
)
def test_invalid_env(monkeypatch, var, value):
    monkeypatch.setenv("SHIELDPOOL_" + var, value)
    with pytest.raises(ConfigError):
        PoolConfig.from_env()


def test_blank_env_falls_back_to_default(monkeypatch):
    monkeypatch.setenv("SHIELDPOOL_DENOM", "  ")
    assert PoolConfig.from_env().denom == "TKN"


def test_with_overrides_ignores_none_and_validates():
    cfg = PoolConfig().with_overrides(tree_depth=None, denom="ATOM")
    assert cfg.denom == "ATOM" and cfg.tree_depth == 20
    with pytest.raises(ConfigError):
        PoolConfig().with_overrides(tree_depth=40)


def test_format_config_lists_every_field():
    lines = format_config(PoolConfig())
    assert "tree_depth: 20" in lines
    assert len(lines) == len(PoolConfig().to_dict())

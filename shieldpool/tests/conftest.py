from __future__ import annotations

import logging

import pytest

from shieldpool.db import open_kv
from shieldpool.pool import Coin, ShieldedPool
from shieldpool.tests import Sha256Compression, StubVerifier


@pytest.fixture(autouse=True)
def _reset_pool_logger():
    """The CLI installs its own handler; give every test a clean, propagating logger."""
    yield
    logger = logging.getLogger("shieldpool")
    for h in list(logger.handlers):
        logger.removeHandler(h)
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def kv():
    store = open_kv("memory://")
    yield store
    store.close()


@pytest.fixture
def hasher() -> Sha256Compression:
    return Sha256Compression()


@pytest.fixture
def verifier() -> StubVerifier:
    return StubVerifier(accept=True)


@pytest.fixture
def pool(kv, hasher, verifier) -> ShieldedPool:
    return ShieldedPool.instantiate(
        kv,
        Coin("TKN", 10),
        {"protocol": "stub"},
        depth=20,
        hasher=hasher,
        verifier=verifier,
    )

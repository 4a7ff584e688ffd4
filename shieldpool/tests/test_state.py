from __future__ import annotations

import pytest

from shieldpool.errors import PoolStateError
from shieldpool.field import Fr
from shieldpool.merkle import MerkleAccumulator
from shieldpool.state import (
    KEY_ACCUMULATOR,
    ContractInfo,
    Denomination,
    PoolStore,
    dumps_canonical,
    loads,
)


def test_canonical_cbor_is_order_independent():
    assert dumps_canonical({"b": 1, "a": [None, "2"]}) == dumps_canonical({"a": [None, "2"], "b": 1})
    assert loads(dumps_canonical({"a": 1})) == {"a": 1}


def test_denomination_validation():
    with pytest.raises(ValueError):
        Denomination("", 10)
    with pytest.raises(ValueError):
        Denomination("TKN", 0)
    assert str(Denomination("TKN", 10)) == "10TKN"


def test_items_round_trip(kv, hasher):
    store = PoolStore(kv)
    assert not store.is_initialised()
    store.save_contract_info(ContractInfo("shieldpool", "0.1.0"))
    store.save_denomination(Denomination("TKN", 10))
    store.save_verifier_params({"IC": [[1, 2]], "protocol": "groth16"})
    tree = MerkleAccumulator(4, hasher)
    tree.insert(Fr(3))
    store.save_accumulator(tree)

    assert store.is_initialised()
    assert store.load_contract_info() == ContractInfo("shieldpool", "0.1.0")
    assert store.load_denomination() == Denomination("TKN", 10)
    assert store.load_verifier_params() == {"IC": [[1, 2]], "protocol": "groth16"}
    assert store.load_accumulator(hasher).get_last_root() == tree.get_last_root()


def test_missing_items_raise_state_error(kv, hasher):
    with pytest.raises(PoolStateError):
        PoolStore(kv).load_accumulator(hasher)


def test_corrupt_items_raise_state_error(kv, hasher):
    kv.put(KEY_ACCUMULATOR, b"\xff\x00garbage")
    with pytest.raises(PoolStateError):
        PoolStore(kv).load_accumulator(hasher)
    kv.put(KEY_ACCUMULATOR, dumps_canonical({"depth": 3}))
    with pytest.raises(PoolStateError):
        PoolStore(kv).load_accumulator(hasher)


def test_transaction_commits_or_discards(kv):
    store = PoolStore(kv)
    with pytest.raises(RuntimeError):
        with store.transaction() as tx:
            tx.save_denomination(Denomination("TKN", 10))
            raise RuntimeError("abort")
    assert kv.get(b"p:pool_denomination") is None

    with store.transaction() as tx:
        tx.save_denomination(Denomination("TKN", 10))
    assert store.load_denomination().amount == 10

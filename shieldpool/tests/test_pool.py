from __future__ import annotations

import logging

import pytest

from shieldpool.errors import (
    ConstructionError,
    DuplicateNullifier,
    FeeExceedsPrincipal,
    InvalidAddress,
    InvalidProof,
    MalformedSignal,
    PoolStateError,
    TreeFull,
    UnknownRoot,
    WrongAmount,
)
from shieldpool.pool import Coin, DepositMsg, ShieldedPool, WithdrawMsg
from shieldpool.tests import Sha256Compression, StubVerifier, account

PROOF = {"pi_a": ["1", "2", "1"], "pi_b": [["0", "0"], ["0", "0"]], "pi_c": ["1", "2", "1"]}


def _deposit(pool, commitment="42"):
    return pool.deposit(DepositMsg(commitment), [Coin("TKN", 10)], sender=account(7))


def _withdraw_msg(pool, **kw):
    args = dict(
        proof=PROOF,
        root=pool.last_root(),
        nullifier_hash="123",
        recipient=account(1),
        relayer="0",
        fee=0,
    )
    args.update(kw)
    return WithdrawMsg(**args)


def _snapshot(kv):
    return list(kv.iter_prefix(b"p:"))


# --- instantiate ---


def test_instantiate_writes_set_once_items(pool, kv):
    info = pool.info()
    assert info["contract"] == "shieldpool"
    assert info["denomination"] == {"denom": "TKN", "amount": 10}
    assert info["depth"] == 20
    assert info["next_index"] == 0
    assert info["spent_nullifiers"] == 0
    with pytest.raises(PoolStateError):
        ShieldedPool.instantiate(kv, Coin("TKN", 10), {}, verifier=StubVerifier())


def test_opening_an_empty_store_fails(kv):
    with pytest.raises(PoolStateError):
        ShieldedPool(kv)


def test_instantiate_validates_parameters(kv):
    with pytest.raises(ConstructionError):
        ShieldedPool.instantiate(kv, Coin("TKN", 0), {}, verifier=StubVerifier())
    with pytest.raises(ConstructionError):
        ShieldedPool.instantiate(kv, Coin("TKN", 10), {}, depth=0, hasher=Sha256Compression(), verifier=StubVerifier())
    with pytest.raises(ConstructionError):
        ShieldedPool.instantiate(kv, Coin("TKN", 10), {"vk_alpha_1": ["x"]}, hasher=Sha256Compression())
    assert not kv.has(b"p:contract_info")


def test_reopen_sees_the_same_state(pool, kv, hasher, verifier):
    _deposit(pool)
    again = ShieldedPool(kv, hasher=hasher, verifier=verifier)
    assert again.last_root() == pool.last_root()
    assert again.info()["next_index"] == 1


# --- deposit ---


def test_deposit_inserts_and_reports(pool):
    empty_root = pool.last_root()
    resp = _deposit(pool)
    assert resp.transfers == []
    assert resp.attr("action") == "deposit"
    assert resp.attr("from") == account(7)
    assert resp.attr("leaf_index") == "0"
    assert pool.last_root() != empty_root
    assert pool.is_known_root(empty_root)
    assert _deposit(pool, "43").attr("leaf_index") == "1"


@pytest.mark.parametrize(
    "funds",
    [
        [],
        [Coin("TKN", 5)],
        [Coin("TKN", 11)],
        [Coin("ATOM", 10)],
        [Coin("TKN", 10), Coin("TKN", 10)],
        [Coin("TKN", 5), Coin("TKN", 5)],
    ],
)
def test_deposit_wrong_amount_changes_nothing(pool, kv, funds):
    before = _snapshot(kv)
    with pytest.raises(WrongAmount):
        pool.deposit(DepositMsg("42"), funds)
    assert _snapshot(kv) == before
    assert pool.info()["next_index"] == 0


def test_deposit_malformed_commitment(pool):
    with pytest.raises(MalformedSignal):
        pool.deposit(DepositMsg("not-a-number"), [Coin("TKN", 10)])


def test_deposit_into_full_tree(kv, hasher, verifier):
    pool = ShieldedPool.instantiate(kv, Coin("TKN", 10), {}, depth=1, hasher=hasher, verifier=verifier)
    _deposit(pool, "1")
    _deposit(pool, "2")
    before = _snapshot(kv)
    with pytest.raises(TreeFull):
        _deposit(pool, "3")
    assert _snapshot(kv) == before


# --- withdraw: happy paths ---


def test_withdraw_without_relayer(pool, verifier):
    _deposit(pool)
    msg = _withdraw_msg(pool)
    resp = pool.withdraw(msg)
    assert resp.attr("action") == "withdraw"
    assert [(t.recipient, t.amount, t.denom) for t in resp.transfers] == [(account(1), 10, "TKN")]
    assert pool.is_spent("123")
    proof, inputs = verifier.calls[-1]
    assert proof == PROOF
    assert inputs[0] == int(msg.root)
    assert inputs[1] == 123
    assert inputs[2] == int.from_bytes(b"\x01" * 20, "big")
    assert inputs[3:] == [0, 0]


def test_withdraw_splits_fee_to_relayer(pool, verifier):
    _deposit(pool)
    resp = pool.withdraw(_withdraw_msg(pool, relayer=account(2), fee=3))
    assert [(t.recipient, t.amount) for t in resp.transfers] == [(account(1), 7), (account(2), 3)]
    assert verifier.calls[-1][1][3:] == [int.from_bytes(b"\x02" * 20, "big"), 3]


def test_withdraw_with_relayer_and_zero_fee_pays_only_recipient(pool):
    _deposit(pool)
    resp = pool.withdraw(_withdraw_msg(pool, relayer=account(2), fee=0))
    assert [(t.recipient, t.amount) for t in resp.transfers] == [(account(1), 10)]


def test_fee_equal_to_denomination_is_allowed(pool):
    _deposit(pool)
    resp = pool.withdraw(_withdraw_msg(pool, relayer=account(2), fee=10))
    assert [(t.recipient, t.amount) for t in resp.transfers] == [(account(1), 0), (account(2), 10)]


def test_withdraw_against_an_older_root(pool):
    _deposit(pool, "1")
    old_root = pool.last_root()
    for c in range(2, 6):
        _deposit(pool, str(c))
    assert pool.withdraw(_withdraw_msg(pool, root=old_root)).transfers


# --- withdraw: rejections ---


def test_double_spend_is_rejected_and_logged(pool, kv, caplog):
    _deposit(pool)
    pool.withdraw(_withdraw_msg(pool))
    before = _snapshot(kv)
    with caplog.at_level(logging.WARNING, logger="shieldpool"):
        with pytest.raises(DuplicateNullifier):
            pool.withdraw(_withdraw_msg(pool, nullifier_hash="0123"))
    assert _snapshot(kv) == before
    assert any(r.levelno == logging.WARNING for r in caplog.records)


def test_unknown_root(pool, kv):
    _deposit(pool)
    before = _snapshot(kv)
    with pytest.raises(UnknownRoot):
        pool.withdraw(_withdraw_msg(pool, root="99"))
    with pytest.raises(UnknownRoot):
        pool.withdraw(_withdraw_msg(pool, root="0"))
    assert _snapshot(kv) == before


def test_stale_root_is_rejected(pool):
    _deposit(pool, "1")
    stale = pool.last_root()
    for c in range(2, 103):
        _deposit(pool, str(c))
    with pytest.raises(UnknownRoot):
        pool.withdraw(_withdraw_msg(pool, root=stale))


def test_invalid_proof_leaves_no_state(pool, kv, verifier):
    _deposit(pool)
    verifier.accept = False
    before = _snapshot(kv)
    with pytest.raises(InvalidProof):
        pool.withdraw(_withdraw_msg(pool))
    assert _snapshot(kv) == before
    assert not pool.is_spent("123")


def test_fee_above_denomination_is_atomic(pool, kv, verifier):
    _deposit(pool)
    before = _snapshot(kv)
    with pytest.raises(FeeExceedsPrincipal):
        pool.withdraw(_withdraw_msg(pool, relayer=account(2), fee=11))
    assert _snapshot(kv) == before
    assert not pool.is_spent("123")
    assert verifier.calls  # the proof was checked before the fee


@pytest.mark.parametrize("relayer", ["", "0"])
def test_fee_without_relayer_is_rejected_atomically(pool, kv, verifier, relayer):
    _deposit(pool)
    before = _snapshot(kv)
    with pytest.raises(InvalidAddress):
        pool.withdraw(_withdraw_msg(pool, relayer=relayer, fee=1))
    assert _snapshot(kv) == before
    assert not pool.is_spent("123")
    assert verifier.calls


@pytest.mark.parametrize("relayer", ["", "0"])
def test_fee_above_denomination_without_relayer(pool, kv, relayer):
    _deposit(pool)
    before = _snapshot(kv)
    with pytest.raises(FeeExceedsPrincipal):
        pool.withdraw(_withdraw_msg(pool, relayer=relayer, fee=20))
    assert _snapshot(kv) == before
    assert not pool.is_spent("123")


@pytest.mark.parametrize(
    "field, value",
    [("recipient", "juno1invalid"), ("recipient", ""), ("relayer", "cosmos1qqqq")],
)
def test_bad_addresses(pool, field, value):
    _deposit(pool)
    with pytest.raises(InvalidAddress):
        pool.withdraw(_withdraw_msg(pool, **{field: value}))


@pytest.mark.parametrize("field, value", [("root", "abc"), ("nullifier_hash", "-1"), ("fee", "x")])
def test_malformed_signals(pool, field, value):
    _deposit(pool)
    with pytest.raises(MalformedSignal):
        pool.withdraw(_withdraw_msg(pool, **{field: value}))


def test_withdraw_before_any_deposit(pool, verifier):
    with pytest.raises(PoolStateError):
        pool.withdraw(_withdraw_msg(pool))
    assert verifier.calls == []


def test_gate_order_nullifier_before_root(pool):
    _deposit(pool)
    pool.withdraw(_withdraw_msg(pool))
    with pytest.raises(DuplicateNullifier):
        pool.withdraw(_withdraw_msg(pool, root="99"))


def test_replay_against_another_known_root(pool, kv):
    _deposit(pool, "1")
    first_root = pool.last_root()
    _deposit(pool, "2")
    second_root = pool.last_root()
    assert first_root != second_root
    assert pool.is_known_root(first_root) and pool.is_known_root(second_root)

    pool.withdraw(_withdraw_msg(pool, root=first_root))
    before = _snapshot(kv)
    with pytest.raises(DuplicateNullifier):
        pool.withdraw(_withdraw_msg(pool, root=second_root, recipient=account(4)))
    assert _snapshot(kv) == before


# --- queries ---


def test_is_known_root_query(pool):
    assert pool.is_known_root(pool.last_root())
    assert not pool.is_known_root("0")
    assert not pool.is_known_root("5")
    with pytest.raises(MalformedSignal):
        pool.is_known_root("zz")

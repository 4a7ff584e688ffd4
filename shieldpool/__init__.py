"""
shieldpool: a fixed-denomination shielded value pool.

Deposits append commitments to an incremental Poseidon Merkle tree; withdrawals
prove membership against a recent root with a Groth16 proof, burn a nullifier
and release one denomination to a recipient (minus an optional relayer fee).

    from shieldpool import ShieldedPool, Coin, DepositMsg
    from shieldpool.db import open_kv

    pool = ShieldedPool.instantiate(open_kv("memory://"), Coin("TKN", 10), vk_json)
    pool.deposit(DepositMsg(commitment), [Coin("TKN", 10)])
"""

from shieldpool.errors import PoolError
from shieldpool.field import Fr
from shieldpool.pool import Coin, DepositMsg, Response, ShieldedPool, Transfer, WithdrawMsg
from shieldpool.version import __version__

__all__ = [
    "ShieldedPool",
    "Coin",
    "DepositMsg",
    "WithdrawMsg",
    "Transfer",
    "Response",
    "Fr",
    "PoolError",
    "__version__",
]

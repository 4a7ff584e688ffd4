"""
Merkle accumulator with bounded root history.

    from shieldpool.merkle import MerkleAccumulator, ZERO_VALUE
    tree = MerkleAccumulator(20, default_hasher())
    idx = tree.insert(Fr(42))
    tree.is_known_root(tree.get_last_root())  # True
"""

from .history import DEFAULT_HISTORY_SIZE, RootHistory
from .tree import MAX_DEPTH, MIN_DEPTH, ZERO_VALUE, MerkleAccumulator

__all__ = [
    "RootHistory",
    "DEFAULT_HISTORY_SIZE",
    "MerkleAccumulator",
    "ZERO_VALUE",
    "MIN_DEPTH",
    "MAX_DEPTH",
]

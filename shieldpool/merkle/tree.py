"""
Incremental Merkle accumulator with root history.

A fixed-depth, append-only binary hash tree that only ever stores its
rightmost frontier:

- `zeros[level]`            hash of an empty subtree of height `level`
- `filled_subtrees[level]`  last left-child hash written at `level`
- `next_index`              number of leaves inserted so far
- `roots`                   ring buffer of the last K roots (see history.py)

Inserting leaf number `i` walks `depth` levels. At each level the running
hash is a left child when the index is even (its sibling is the empty
subtree `zeros[level]`, and it is remembered in `filled_subtrees[level]`) or
a right child when odd (its sibling is `filled_subtrees[level]`). The index
is halved per level. Cost is O(depth) hashes per insert.

The tree's leaves are never stored. Membership proofs are produced off-core;
the pool only needs `is_known_root`.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from shieldpool.errors import ConstructionError, PoolStateError, TreeFull
from shieldpool.field import Fr
from shieldpool.hashing import HashCompression

from .history import DEFAULT_HISTORY_SIZE, RootHistory

log = logging.getLogger(__name__)

# keccak256("tornado") mod r, the public empty-leaf value.
ZERO_VALUE = Fr(21663839004416932945382355908790599225266501822907911457504978515578255421292)

MIN_DEPTH = 1
MAX_DEPTH = 31


class MerkleAccumulator:
    """
    Append-only Merkle tree remembering its last `history_size` roots.

    The hasher is a capability and is not part of the persisted state;
    `from_state` must be given the same hasher the state was built with.
    """

    __slots__ = ("depth", "hasher", "zero_value", "zeros", "filled_subtrees", "next_index", "roots")

    def __init__(
        self,
        depth: int,
        hasher: HashCompression,
        *,
        zero_value: Fr = ZERO_VALUE,
        history_size: int = DEFAULT_HISTORY_SIZE,
    ) -> None:
        if isinstance(depth, bool) or not isinstance(depth, int) or depth < MIN_DEPTH:
            raise ConstructionError("tree depth should be greater than zero", data={"depth": depth})
        if depth > MAX_DEPTH:
            raise ConstructionError("tree depth should be less than 32", data={"depth": depth})
        if history_size <= 0:
            raise ConstructionError("root history size must be positive", data={"history_size": history_size})

        self.depth = depth
        self.hasher = hasher
        self.zero_value = zero_value

        zeros: List[Fr] = [zero_value]
        for _ in range(1, depth):
            zeros.append(hasher.compress(zeros[-1], zeros[-1]))
        self.zeros = zeros
        self.filled_subtrees = list(zeros)
        self.next_index = 0
        self.roots = RootHistory(
            history_size, initial=hasher.compress(zeros[-1], zeros[-1])
        )

    # --- properties ---

    @property
    def capacity(self) -> int:
        return 1 << self.depth

    @property
    def is_full(self) -> bool:
        return self.next_index >= self.capacity

    @property
    def current_root_index(self) -> int:
        return self.roots.current_index

    @property
    def history_size(self) -> int:
        return self.roots.capacity

    # --- operations ---

    def insert(self, leaf: Fr) -> int:
        """Append `leaf`; return its index. Raises TreeFull without touching state."""
        index = self.next_index
        if index >= self.capacity:
            raise TreeFull(
                "Merkle tree is full. No more leaves can be added",
                data={"capacity": self.capacity},
            )

        filled = list(self.filled_subtrees)
        current = leaf
        idx = index
        for level in range(self.depth):
            if idx % 2 == 0:
                left, right = current, self.zeros[level]
                filled[level] = current
            else:
                left, right = filled[level], current
            current = self.hasher.compress(left, right)
            idx //= 2

        self.filled_subtrees = filled
        self.roots.push(current)
        self.next_index = index + 1
        log.debug("leaf %d inserted, root slot %d", index, self.roots.current_index)
        return index

    def is_known_root(self, root: Fr) -> bool:
        """True iff `root` is one of the last `history_size` roots. Zero never is."""
        if root.is_zero():
            return False
        return self.roots.contains(root)

    def get_last_root(self) -> Fr:
        latest = self.roots.latest()
        # The constructor always writes slot 0; only corrupt state lacks it.
        if latest is None:
            raise PoolStateError("root history has no current root")
        return latest

    # --- persistence ---

    def to_state(self) -> Dict[str, Any]:
        return {
            "depth": self.depth,
            "zero_value": self.zero_value.to_decimal(),
            "zeros": [z.to_decimal() for z in self.zeros],
            "filled_subtrees": [f.to_decimal() for f in self.filled_subtrees],
            "next_index": self.next_index,
            "roots": self.roots.to_state(),
        }

    @classmethod
    def from_state(cls, d: Dict[str, Any], hasher: HashCompression) -> "MerkleAccumulator":
        depth = int(d["depth"])
        if not MIN_DEPTH <= depth <= MAX_DEPTH:
            raise ConstructionError("persisted tree depth is out of range", data={"depth": depth})
        zeros = [Fr.parse(z) for z in d["zeros"]]
        filled = [Fr.parse(f) for f in d["filled_subtrees"]]
        next_index = int(d["next_index"])
        if len(zeros) != depth or len(filled) != depth:
            raise ConstructionError("persisted tree levels do not match its depth")
        if not 0 <= next_index <= (1 << depth):
            raise ConstructionError("persisted next_index exceeds capacity")

        tree = cls.__new__(cls)
        tree.depth = depth
        tree.hasher = hasher
        tree.zero_value = Fr.parse(d["zero_value"])
        tree.zeros = zeros
        tree.filled_subtrees = filled
        tree.next_index = next_index
        tree.roots = RootHistory.from_state(d["roots"])
        return tree

    def __repr__(self) -> str:
        return (
            f"MerkleAccumulator(depth={self.depth}, next_index={self.next_index}, "
            f"current_root_index={self.current_root_index})"
        )


__all__ = ["MerkleAccumulator", "ZERO_VALUE", "MIN_DEPTH", "MAX_DEPTH"]

"""
Root history ring buffer.

A fixed-capacity ring of the most recent accumulator roots:

- `push(root)` writes the next slot, overwriting the oldest once full
- `contains(root)` scans backward from the newest slot, visiting each slot
  at most once (wrapping from 0 to capacity-1)
- `window()` is the derived view of distinct roots, newest first

Slots that were never written hold `None` and never match, so an all-zero
or uninitialised history cannot vouch for anything.
"""

from __future__ import annotations

from typing import Any, Dict, Iterator, List, Optional

from shieldpool.field import Fr

DEFAULT_HISTORY_SIZE = 100


class RootHistory:
    __slots__ = ("_slots", "_index")

    def __init__(self, capacity: int = DEFAULT_HISTORY_SIZE, *, initial: Optional[Fr] = None) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be > 0")
        self._slots: List[Optional[Fr]] = [None] * capacity
        self._index = 0
        if initial is not None:
            self._slots[0] = initial

    # --- properties ---

    @property
    def capacity(self) -> int:
        return len(self._slots)

    @property
    def current_index(self) -> int:
        """Slot holding the most recently written root."""
        return self._index

    # --- mutation ---

    def push(self, root: Fr) -> int:
        """Advance to the next slot (mod capacity), store `root` there, return the slot."""
        self._index = (self._index + 1) % len(self._slots)
        self._slots[self._index] = root
        return self._index

    # --- queries ---

    def latest(self) -> Optional[Fr]:
        return self._slots[self._index]

    def iter_newest_first(self) -> Iterator[Fr]:
        """Yield written slots from newest to oldest, each slot once."""
        cap = len(self._slots)
        i = self._index
        for _ in range(cap):
            root = self._slots[i]
            if root is not None:
                yield root
            i = cap - 1 if i == 0 else i - 1

    def contains(self, root: Fr) -> bool:
        for known in self.iter_newest_first():
            if known == root:
                return True
        return False

    def __contains__(self, root: object) -> bool:
        return isinstance(root, Fr) and self.contains(root)

    def window(self) -> List[Fr]:
        """Distinct roots of the last `capacity` updates, newest first."""
        seen = set()
        out: List[Fr] = []
        for root in self.iter_newest_first():
            if root not in seen:
                seen.add(root)
                out.append(root)
        return out

    def __len__(self) -> int:
        return sum(1 for s in self._slots if s is not None)

    # --- persistence ---

    def to_state(self) -> Dict[str, Any]:
        return {
            "index": self._index,
            "slots": [None if s is None else s.to_decimal() for s in self._slots],
        }

    @classmethod
    def from_state(cls, d: Dict[str, Any]) -> "RootHistory":
        slots = list(d["slots"])
        index = int(d["index"])
        if not slots or not 0 <= index < len(slots):
            raise ValueError("root history state is inconsistent")
        h = cls(len(slots))
        h._slots = [None if s is None else Fr.parse(s) for s in slots]
        h._index = index
        return h

    def __repr__(self) -> str:
        return f"RootHistory(capacity={self.capacity}, current_index={self._index})"


__all__ = ["RootHistory", "DEFAULT_HISTORY_SIZE"]

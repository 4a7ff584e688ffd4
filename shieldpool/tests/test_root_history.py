from __future__ import annotations

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from shieldpool.field import Fr
from shieldpool.merkle.history import RootHistory


def test_initial_slot_is_known_and_index_zero():
    h = RootHistory(4, initial=Fr(7))
    assert h.current_index == 0
    assert h.latest() == Fr(7)
    assert Fr(7) in h
    assert len(h) == 1


def test_unwritten_slots_never_match():
    h = RootHistory(4)
    assert h.latest() is None
    assert not h.contains(Fr(0))
    assert h.window() == []


def test_push_overwrites_oldest_after_wrap():
    h = RootHistory(3, initial=Fr(1))
    for v in (2, 3, 4):
        h.push(Fr(v))
    # slot 0 held 1 and has been overwritten by 4
    assert h.current_index == 0
    assert not h.contains(Fr(1))
    assert h.window() == [Fr(4), Fr(3), Fr(2)]


def test_window_is_distinct_newest_first():
    h = RootHistory(5, initial=Fr(1))
    for v in (2, 1, 3):
        h.push(Fr(v))
    assert h.window() == [Fr(3), Fr(1), Fr(2)]


def test_contains_rejects_non_field_values():
    h = RootHistory(2, initial=Fr(1))
    assert 1 not in h


def test_capacity_must_be_positive():
    with pytest.raises(ValueError):
        RootHistory(0)


def test_state_round_trip_and_validation():
    h = RootHistory(3, initial=Fr(5))
    h.push(Fr(6))
    again = RootHistory.from_state(h.to_state())
    assert again.current_index == 1
    assert again.window() == h.window()
    with pytest.raises(ValueError):
        RootHistory.from_state({"index": 3, "slots": [None, None, None]})


@settings(max_examples=50)
@given(
    capacity=st.integers(min_value=1, max_value=12),
    roots=st.lists(st.integers(min_value=1, max_value=50), min_size=0, max_size=40),
)
def test_membership_matches_last_k_pushes(capacity, roots):
    h = RootHistory(capacity, initial=Fr(1000))
    for r in roots:
        h.push(Fr(r))
    recent = ([1000] + roots)[-capacity:]
    for candidate in set(roots) | {1000}:
        assert h.contains(Fr(candidate)) == (candidate in recent)
    assert h.latest() == Fr(recent[-1])
    assert h.current_index == len(roots) % capacity

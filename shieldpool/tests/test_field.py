from __future__ import annotations

import pytest
from hypothesis import given
from hypothesis import strategies as st

from shieldpool.field import FR_ZERO, R, FieldError, Fr


def test_parse_accepts_canonical_decimal_and_ints():
    assert Fr.parse("42") == Fr(42)
    assert Fr.parse(" 7\n") == Fr(7)
    assert Fr.parse(str(R - 1)) == Fr(R - 1)
    assert Fr.parse(5) == Fr(5)
    assert Fr.parse(Fr(9)) == Fr(9)


def test_leading_zeros_name_the_same_element():
    assert Fr.parse("007") == Fr.parse("7")
    assert Fr.parse("007").to_decimal() == "7"


@pytest.mark.parametrize("bad", ["", "abc", "-1", "0x10", "1.5", "1e3", str(R), "١٢"])
def test_parse_rejects_malformed(bad):
    with pytest.raises(FieldError):
        Fr.parse(bad)


def test_parse_rejects_bool_and_other_types():
    with pytest.raises(FieldError):
        Fr.parse(True)
    with pytest.raises(FieldError):
        Fr.parse(1.0)  # type: ignore[arg-type]


def test_constructor_range_checks():
    with pytest.raises(FieldError):
        Fr(-1)
    with pytest.raises(FieldError):
        Fr(R)


def test_reduce():
    assert Fr.reduce(R) == FR_ZERO
    assert Fr.reduce(R + 3) == Fr(3)
    with pytest.raises(FieldError):
        Fr.reduce(-1)


def test_zero_checks():
    assert Fr.zero().is_zero()
    assert not Fr(1).is_zero()
    assert not bool(FR_ZERO)


def test_le_bytes_layout():
    b = Fr(1).to_bytes_le()
    assert len(b) == 32
    assert b[0] == 1 and b[1:] == bytes(31)
    with pytest.raises(FieldError):
        Fr.from_bytes_le(b"\x01" * 31)


@given(st.integers(min_value=0, max_value=R - 1))
def test_le_bytes_and_decimal_are_inverse(n):
    x = Fr(n)
    assert Fr.from_bytes_le(x.to_bytes_le()) == x
    assert Fr.parse(x.to_decimal()) == x

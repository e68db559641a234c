from __future__ import annotations

import io

import pytest

from learning.flags import (
    Flags,
    UINT_MASK,
    arithmetic,
    is_cast,
    is_up,
    run_demo,
    set_broadcast,
    turn_down,
)

SAMPLE_VALUES = [
    0,
    int(Flags.UP),
    int(Flags.UP | Flags.MULTICAST),
    int(Flags.UP | Flags.LOOPBACK | Flags.POINT_TO_POINT),
    0b11111,
    (1 << 40) | 1,
    UINT_MASK,
]


def test_flag_bits_are_distinct_powers_of_two() -> None:
    values = [int(flag) for flag in Flags]
    assert values == [1, 2, 4, 8, 16]


@pytest.mark.parametrize("value", SAMPLE_VALUES)
def test_turn_down_clears_exactly_the_up_bit(value: int) -> None:
    result = int(turn_down(value))

    assert result & Flags.UP == 0
    assert result | int(Flags.UP) == value | int(Flags.UP)
    assert result ^ value in (0, int(Flags.UP))


@pytest.mark.parametrize("value", SAMPLE_VALUES)
def test_set_broadcast_sets_exactly_the_broadcast_bit(value: int) -> None:
    without = value & ~int(Flags.BROADCAST)
    result = int(set_broadcast(without))

    assert result ^ without == int(Flags.BROADCAST)


@pytest.mark.parametrize("value", [v for v in SAMPLE_VALUES if v & Flags.UP])
def test_clear_then_set_restores_original(value: int) -> None:
    assert int(turn_down(value)) | int(Flags.UP) == value


def test_predicates() -> None:
    value = Flags.MULTICAST | Flags.UP
    assert is_up(value)
    assert is_cast(value)

    value = turn_down(value)
    assert not is_up(value)
    assert is_cast(value)

    assert not is_cast(Flags.UP | Flags.LOOPBACK)
    assert is_cast(set_broadcast(0))


def test_arithmetic_matches_operator_table() -> None:
    assert arithmetic(1, 10) == [
        ("a & b", 0),
        ("a | b", 11),
        ("a ^ b", 11),
        ("a << 2", 4),
        ("a >> 2", 0),
    ]
    assert [value for _, value in arithmetic(60, 13)] == [12, 61, 49, 240, 15]


def test_left_shift_wraps_like_an_unsigned_word() -> None:
    _, shifted = arithmetic(1 << 63, 0)[3]
    assert shifted == 0


def test_run_demo_output() -> None:
    buffer = io.StringIO()
    run_demo(buffer)

    assert buffer.getvalue().splitlines() == [
        "10001 17",
        "10001 true",
        "10000 false",
        "10010 false",
        "10010 true",
        "Line 1 - Value of c is 0",
        "Line 2 - Value of c is 11",
        "Line 3 - Value of c is 11",
        "Line 4 - Value of c is 4",
        "Line 5 - Value of c is 0",
    ]

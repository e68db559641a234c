"""Bit-flag demonstration using a single integer as a set of booleans."""

from __future__ import annotations

import enum
import sys
from typing import List, TextIO, Tuple

# Values are treated as a fixed-width unsigned word.
UINT_MASK = (1 << 64) - 1


class Flags(enum.IntFlag):
    """Status bits for a network interface."""

    UP = 1 << 0
    BROADCAST = 1 << 1
    LOOPBACK = 1 << 2
    POINT_TO_POINT = 1 << 3
    MULTICAST = 1 << 4


def is_up(value: int) -> bool:
    return value & Flags.UP == Flags.UP


def turn_down(value: int) -> Flags:
    """Clear the ``UP`` bit (AND-NOT) and return the new value."""

    return Flags(value & ~int(Flags.UP))


def set_broadcast(value: int) -> Flags:
    return Flags(value | int(Flags.BROADCAST))


def is_cast(value: int) -> bool:
    return value & (Flags.BROADCAST | Flags.MULTICAST) != 0


def arithmetic(a: int, b: int) -> List[Tuple[str, int]]:
    """Apply the fixed sequence of bitwise operators to ``a`` and ``b``."""

    results = [
        ("a & b", a & b),
        ("a | b", a | b),
        ("a ^ b", a ^ b),
        ("a << 2", a << 2),
        ("a >> 2", a >> 2),
    ]
    return [(label, value & UINT_MASK) for label, value in results]


def _describe(value: int, flag: bool) -> str:
    return f"{int(value):b} {str(flag).lower()}"


def run_demo(out: TextIO | None = None, *, a: int = 1, b: int = 10) -> None:
    """Print the flag walkthrough followed by the operator table."""

    out = out or sys.stdout

    value = Flags.MULTICAST | Flags.UP
    print(f"{int(value):b} {int(value)}", file=out)
    print(_describe(value, is_up(value)), file=out)

    value = turn_down(value)
    print(_describe(value, is_up(value)), file=out)

    value = set_broadcast(value)
    print(_describe(value, is_up(value)), file=out)
    print(_describe(value, is_cast(value)), file=out)

    for index, (_, result) in enumerate(arithmetic(a, b), start=1):
        print(f"Line {index} - Value of c is {result}", file=out)


__all__ = [
    "Flags",
    "UINT_MASK",
    "arithmetic",
    "is_cast",
    "is_up",
    "run_demo",
    "set_broadcast",
    "turn_down",
]

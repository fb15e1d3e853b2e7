"""Integer fixed-point helpers.

All arithmetic is on Python ints; callers pick the rounding direction
explicitly so that rounding never works against the protocol.
"""
from __future__ import annotations

from decimal import Decimal

from .constants import BPS, WAD


def mul_div_down(a: int, b: int, denominator: int) -> int:
    """Return floor(a * b / denominator)."""
    if denominator == 0:
        raise ZeroDivisionError("mul_div_down by zero")
    return (a * b) // denominator


def mul_div_up(a: int, b: int, denominator: int) -> int:
    """Return ceil(a * b / denominator)."""
    if denominator == 0:
        raise ZeroDivisionError("mul_div_up by zero")
    return -((-(a * b)) // denominator)


def wad_mul_down(a: int, b: int) -> int:
    return mul_div_down(a, b, WAD)


def wad_mul_up(a: int, b: int) -> int:
    return mul_div_up(a, b, WAD)


def wad_div_down(a: int, b: int) -> int:
    return mul_div_down(a, WAD, b)


def bps_mul_down(amount: int, bps: int) -> int:
    return mul_div_down(amount, bps, BPS)


def to_wad(value: int | float | str | Decimal) -> int:
    """Convert a human-readable number ("1500.25") to a WAD-scaled int.

    Floats go through ``str`` first so that 0.1 stays 0.1.
    """
    if isinstance(value, float):
        value = str(value)
    return int(Decimal(value) * WAD)


def from_wad(value: int) -> Decimal:
    """Convert a WAD-scaled int back to a Decimal for display."""
    return Decimal(value) / Decimal(WAD)


def scale_exponent(raw: int, expo: int, target_decimals: int = 18) -> int:
    """Rescale ``raw * 10**expo`` to an int with ``target_decimals`` decimals.

    Used for oracle prices published as (mantissa, exponent) pairs.
    Truncates when the source has more precision than the target.
    """
    shift = target_decimals + expo
    if shift >= 0:
        return raw * 10**shift
    return raw // 10**(-shift)

"""Unit tests for fixed-point helpers."""
from __future__ import annotations

from decimal import Decimal

import pytest

from money_market.constants import WAD
from money_market.fixed_point import (
    from_wad,
    mul_div_down,
    mul_div_up,
    scale_exponent,
    to_wad,
    wad_mul_up,
)


class TestMulDiv:
    def test_exact_division_agrees(self) -> None:
        assert mul_div_down(6, 4, 3) == 8
        assert mul_div_up(6, 4, 3) == 8

    def test_rounding_directions(self) -> None:
        assert mul_div_down(10, 1, 3) == 3
        assert mul_div_up(10, 1, 3) == 4

    def test_zero_numerator(self) -> None:
        assert mul_div_up(0, 5, 7) == 0

    def test_division_by_zero(self) -> None:
        with pytest.raises(ZeroDivisionError):
            mul_div_down(1, 1, 0)
        with pytest.raises(ZeroDivisionError):
            mul_div_up(1, 1, 0)

    def test_wad_mul_up_never_rounds_down(self) -> None:
        assert wad_mul_up(1, 1) == 1
        assert wad_mul_up(WAD, 3 * WAD) == 3 * WAD


class TestConversions:
    def test_to_wad_from_string(self) -> None:
        assert to_wad("1500.25") == 1500 * WAD + WAD // 4

    def test_to_wad_from_float_keeps_decimal_repr(self) -> None:
        assert to_wad(0.1) == WAD // 10

    def test_to_wad_from_int(self) -> None:
        assert to_wad(3) == 3 * WAD

    def test_from_wad(self) -> None:
        assert from_wad(45 * WAD // 10) == Decimal("4.5")


class TestScaleExponent:
    def test_negative_exponent(self) -> None:
        # Pyth style: 350000000 * 10**-8 = 3.5
        assert scale_exponent(350_000_000, -8) == 35 * WAD // 10

    def test_positive_exponent(self) -> None:
        assert scale_exponent(2, 3) == 2000 * WAD

    def test_truncates_extra_precision(self) -> None:
        assert scale_exponent(123, -20) == 1

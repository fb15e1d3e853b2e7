"""Kinked utilization interest rate model and borrow-index accrual."""
from __future__ import annotations

from dataclasses import dataclass

from .constants import (
    BPS,
    DEFAULT_BASE_RATE_BPS,
    DEFAULT_OPTIMAL_UTILIZATION_BPS,
    DEFAULT_SLOPE1_BPS,
    DEFAULT_SLOPE2_BPS,
    SECONDS_PER_YEAR,
    WAD,
)
from .errors import InvalidParameterError
from .fixed_point import mul_div_down, mul_div_up
from .models import ReserveState


@dataclass(frozen=True)
class InterestRateParams:
    """Annual rate curve parameters, in bps.

    Below the kink the rate climbs from ``base_rate_bps`` by ``slope1_bps``;
    above it the remaining utilization adds up to ``slope2_bps``.
    """

    base_rate_bps: int = DEFAULT_BASE_RATE_BPS
    slope1_bps: int = DEFAULT_SLOPE1_BPS
    slope2_bps: int = DEFAULT_SLOPE2_BPS
    optimal_utilization_bps: int = DEFAULT_OPTIMAL_UTILIZATION_BPS


@dataclass(frozen=True)
class Accrual:
    """Outcome of advancing a reserve to ``timestamp``."""

    borrow_index: int
    total_borrows: int
    total_deposits: int
    interest: int
    reserves_accrued: int
    timestamp: int


class InterestRateModel:
    """Borrow rate as a kinked function of utilization.

    Rates are WAD-scaled annual fractions; ``borrow_rate`` is
    non-decreasing in utilization.
    """

    def __init__(self, params: InterestRateParams | None = None) -> None:
        params = params or InterestRateParams()
        _validate(params)
        self.params = params
        self._base = mul_div_down(params.base_rate_bps, WAD, BPS)
        self._slope1 = mul_div_down(params.slope1_bps, WAD, BPS)
        self._slope2 = mul_div_down(params.slope2_bps, WAD, BPS)
        self._optimal = mul_div_down(params.optimal_utilization_bps, WAD, BPS)

    @staticmethod
    def utilization(total_borrows: int, total_deposits: int) -> int:
        """Return borrows / deposits in WAD, 0 without deposits, capped at 1."""
        if total_deposits <= 0:
            return 0
        return min(mul_div_down(total_borrows, WAD, total_deposits), WAD)

    def borrow_rate(self, utilization: int) -> int:
        """Annual borrow rate (WAD) at ``utilization`` (WAD)."""
        utilization = max(0, min(utilization, WAD))
        if utilization <= self._optimal:
            return self._base + mul_div_down(self._slope1, utilization, self._optimal)
        excess = utilization - self._optimal
        return (
            self._base
            + self._slope1
            + mul_div_down(self._slope2, excess, WAD - self._optimal)
        )

    def borrow_rate_per_second(self, total_borrows: int, total_deposits: int) -> int:
        """Per-second borrow rate (WAD), rounded up."""
        annual = self.borrow_rate(self.utilization(total_borrows, total_deposits))
        return mul_div_up(annual, 1, SECONDS_PER_YEAR)

    def supply_rate(
        self, total_borrows: int, total_deposits: int, reserve_factor: int
    ) -> int:
        """Annual rate earned by deposits: borrow_rate * u * (1 - reserve_factor)."""
        utilization = self.utilization(total_borrows, total_deposits)
        gross = mul_div_down(self.borrow_rate(utilization), utilization, WAD)
        return mul_div_down(gross, BPS - reserve_factor, BPS)

    def accrue(self, state: ReserveState, now: int, reserve_factor: int) -> Accrual:
        """Compute (without mutating ``state``) the reserve advanced to ``now``.

        index' = index * (1 + rate_per_second * elapsed), rounded up.
        The reserve-factor share of the new interest is split off for the
        protocol; the rest is credited to total deposits.
        """
        elapsed = now - state.last_accrual_time
        if elapsed <= 0 or state.total_borrows == 0:
            return Accrual(
                borrow_index=state.borrow_index,
                total_borrows=state.total_borrows,
                total_deposits=state.total_deposits,
                interest=0,
                reserves_accrued=0,
                timestamp=max(now, state.last_accrual_time),
            )

        rate = self.borrow_rate_per_second(state.total_borrows, state.total_deposits)
        factor = WAD + rate * elapsed
        new_index = mul_div_up(state.borrow_index, factor, WAD)
        new_borrows = mul_div_up(state.total_borrows, new_index, state.borrow_index)
        interest = new_borrows - state.total_borrows
        to_reserves = mul_div_down(interest, reserve_factor, BPS)

        return Accrual(
            borrow_index=new_index,
            total_borrows=new_borrows,
            total_deposits=state.total_deposits + interest - to_reserves,
            interest=interest,
            reserves_accrued=to_reserves,
            timestamp=now,
        )


def _validate(params: InterestRateParams) -> None:
    for name in ("base_rate_bps", "slope1_bps", "slope2_bps"):
        if getattr(params, name) < 0:
            raise InvalidParameterError(f"{name} must not be negative")
    if not 0 < params.optimal_utilization_bps < BPS:
        raise InvalidParameterError(
            f"optimal_utilization_bps must be within (0, {BPS}), "
            f"got {params.optimal_utilization_bps}"
        )

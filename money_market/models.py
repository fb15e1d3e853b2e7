"""Data models for the market ledger."""
from __future__ import annotations

from dataclasses import dataclass

from .constants import (
    DEFAULT_COLLATERAL_FACTOR,
    DEFAULT_DECIMALS,
    DEFAULT_LIQUIDATION_BONUS,
    DEFAULT_LIQUIDATION_THRESHOLD,
    DEFAULT_RESERVE_FACTOR,
    WAD,
)


@dataclass(frozen=True)
class AssetConfig:
    """Risk parameters of one supported asset (all fractions in bps)."""

    collateral_factor: int = DEFAULT_COLLATERAL_FACTOR
    liquidation_threshold: int = DEFAULT_LIQUIDATION_THRESHOLD
    liquidation_bonus: int = DEFAULT_LIQUIDATION_BONUS
    reserve_factor: int = DEFAULT_RESERVE_FACTOR
    decimals: int = DEFAULT_DECIMALS
    is_active: bool = True
    can_borrow: bool = True
    can_use_as_collateral: bool = True

    @property
    def unit(self) -> int:
        """Native units in one whole token."""
        return 10**self.decimals


@dataclass
class ReserveState:
    """Aggregate per-asset ledger state."""

    total_deposits: int = 0
    total_borrows: int = 0
    borrow_index: int = WAD
    last_accrual_time: int = 0


@dataclass
class UserPosition:
    """Per (asset, user) balances.

    ``borrow_principal`` is the debt as of ``borrow_index_snapshot``; the
    current debt is ``borrow_principal * borrow_index / borrow_index_snapshot``.
    """

    deposit_principal: int = 0
    borrow_principal: int = 0
    borrow_index_snapshot: int = WAD
    total_borrowed: int = 0


@dataclass(frozen=True)
class AccountData:
    """Cross-asset risk summary of one account, values in WAD quote units."""

    collateral_value: int
    debt_value: int
    liquidation_collateral: int
    borrow_capacity: int
    health_factor: int


@dataclass(frozen=True)
class LiquidationResult:
    collateral_asset: str
    debt_asset: str
    borrower: str
    liquidator: str
    debt_repaid: int
    collateral_seized: int

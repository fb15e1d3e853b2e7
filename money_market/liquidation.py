"""Liquidation engine — permissionless closure of unhealthy positions."""
from __future__ import annotations

import logging

from .assets import AssetConfigStore
from .constants import BPS, WAD
from .errors import (
    ConfigurationError,
    InputError,
    InsufficientBalanceError,
    NoDebtError,
    PositionHealthyError,
    ZeroAmountError,
)
from .fixed_point import mul_div_down
from .ledger import ReserveLedger
from .models import LiquidationResult
from .risk import RiskAggregator

logger = logging.getLogger(__name__)


class LiquidationEngine:
    """Repays part of an unhealthy borrower's debt in exchange for collateral.

    Seized collateral is worth the repaid debt plus the collateral asset's
    liquidation bonus. When the borrower holds less collateral than that,
    everything is seized and the repayment shrinks to what it covers.
    """

    def __init__(
        self, ledger: ReserveLedger, assets: AssetConfigStore, risk: RiskAggregator
    ) -> None:
        self._ledger = ledger
        self._assets = assets
        self._risk = risk

    def liquidate(
        self,
        liquidator: str,
        collateral_asset: str,
        debt_asset: str,
        borrower: str,
        debt_to_cover: int,
        receive_deposit: bool = False,
    ) -> LiquidationResult:
        """Liquidate ``borrower``; both reserves must already be accrued."""
        if debt_to_cover <= 0:
            raise ZeroAmountError()
        self._assets.get(debt_asset)
        collateral_config = self._assets.get(collateral_asset)
        if not collateral_config.can_use_as_collateral:
            raise ConfigurationError(f"{collateral_asset} is not enabled as collateral")

        health_factor = self._risk.health_factor(borrower)
        if health_factor >= WAD:
            raise PositionHealthyError(
                f"Position of {borrower} is healthy (health factor {health_factor})"
            )

        debt = self._ledger.borrow_balance(debt_asset, borrower)
        if debt == 0:
            raise NoDebtError(f"{borrower} has no {debt_asset} debt")
        collateral = self._ledger.deposit_balance(collateral_asset, borrower)
        if collateral == 0:
            raise InsufficientBalanceError(f"{borrower} has no {collateral_asset} collateral")

        bonus_factor = BPS + collateral_config.liquidation_bonus
        repay_amount = min(debt_to_cover, debt)
        seize_value = mul_div_down(self._risk.value_of(debt_asset, repay_amount), bonus_factor, BPS)
        seize_amount = self._risk.amount_for_value(collateral_asset, seize_value)

        if seize_amount > collateral:
            seize_amount = collateral
            covered_value = mul_div_down(
                self._risk.value_of(collateral_asset, collateral), BPS, bonus_factor
            )
            repay_amount = min(self._risk.amount_for_value(debt_asset, covered_value), debt)

        if repay_amount == 0 or seize_amount == 0:
            raise InputError(
                f"Liquidation of {debt_to_cover} {debt_asset} is too small to seize collateral"
            )

        repaid = self._ledger.repay(debt_asset, liquidator, borrower, repay_amount)
        if receive_deposit:
            self._ledger.transfer_deposit(collateral_asset, borrower, liquidator, seize_amount)
        else:
            self._ledger.withdraw(collateral_asset, borrower, seize_amount, recipient=liquidator)

        logger.info(
            "Liquidated %s: %s repaid %d %s, seized %d %s (health factor was %d)",
            borrower, liquidator, repaid, debt_asset, seize_amount, collateral_asset, health_factor,
        )
        return LiquidationResult(
            collateral_asset=collateral_asset,
            debt_asset=debt_asset,
            borrower=borrower,
            liquidator=liquidator,
            debt_repaid=repaid,
            collateral_seized=seize_amount,
        )

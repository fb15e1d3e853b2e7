"""Cross-asset collateral, debt and health factor."""
from __future__ import annotations

import logging

from .assets import AssetConfigStore
from .constants import BPS, HEALTH_FACTOR_MAX, WAD
from .errors import NoValidPriceError
from .fixed_point import mul_div_down, mul_div_up
from .interfaces.price_source import PriceSource
from .ledger import ReserveLedger
from .models import AccountData

logger = logging.getLogger(__name__)


def calc_health_factor(liquidation_collateral: int, debt_value: int, collateral_value: int) -> int:
    """Calculate health factor.

    health_factor = (collateral * liquidation_threshold) / debt, in WAD.
    Never 0 while the account still holds collateral.
    """
    if debt_value <= 0:
        return HEALTH_FACTOR_MAX
    health_factor = mul_div_down(liquidation_collateral, WAD, debt_value)
    if health_factor == 0 and collateral_value > 0:
        return 1
    return health_factor


class RiskAggregator:
    """Values an account's positions through the price source.

    Collateral is valued rounding down, debt rounding up. Two weighted
    collateral aggregates are produced: one by liquidation threshold
    (gates liquidation and withdrawals) and one by collateral factor
    (gates new borrows).
    """

    def __init__(
        self,
        ledger: ReserveLedger,
        assets: AssetConfigStore,
        price_source: PriceSource | None = None,
    ) -> None:
        self._ledger = ledger
        self._assets = assets
        self.price_source = price_source

    def price(self, asset: str) -> int:
        """WAD price per whole token; raises if the source cannot vouch for one."""
        if self.price_source is None:
            raise NoValidPriceError("No price source configured")
        price, updated_at = self.price_source.get_price_with_timestamp(asset)
        if price <= 0:
            raise NoValidPriceError(f"Invalid price {price} for {asset} (updated {updated_at})")
        return price

    def value_of(self, asset: str, amount: int, round_up: bool = False) -> int:
        """Quote value (WAD) of ``amount`` native units."""
        unit = self._assets.get(asset).unit
        if round_up:
            return mul_div_up(amount, self.price(asset), unit)
        return mul_div_down(amount, self.price(asset), unit)

    def amount_for_value(self, asset: str, value: int) -> int:
        """Native units of ``asset`` worth ``value`` (rounded down)."""
        unit = self._assets.get(asset).unit
        return mul_div_down(value, unit, self.price(asset))

    def account_data(
        self,
        user: str,
        asset: str | None = None,
        deposit_change: int = 0,
        debt_change: int = 0,
    ) -> AccountData:
        """Value the account, optionally as if ``asset`` balances moved by the given changes."""
        collateral_value = 0
        liquidation_collateral = 0
        borrow_capacity = 0
        debt_value = 0

        held = self._ledger.assets_of(user)
        if asset is not None and asset not in held:
            held.append(asset)
        for name in held:
            config = self._assets.get(name)
            deposit = self._ledger.deposit_balance(name, user)
            debt = self._ledger.borrow_balance(name, user)
            if name == asset:
                deposit += deposit_change
                debt += debt_change

            if deposit and config.can_use_as_collateral:
                value = self.value_of(name, deposit)
                collateral_value += value
                liquidation_collateral += mul_div_down(value, config.liquidation_threshold, BPS)
                borrow_capacity += mul_div_down(value, config.collateral_factor, BPS)
            if debt:
                debt_value += self.value_of(name, debt, round_up=True)

        health_factor = calc_health_factor(liquidation_collateral, debt_value, collateral_value)
        logger.debug(
            "Account %s: collateral=%d debt=%d health_factor=%d",
            user, collateral_value, debt_value, health_factor,
        )
        return AccountData(
            collateral_value=collateral_value,
            debt_value=debt_value,
            liquidation_collateral=liquidation_collateral,
            borrow_capacity=borrow_capacity,
            health_factor=health_factor,
        )

    def has_debt(self, user: str) -> bool:
        return any(
            self._ledger.position(asset, user).borrow_principal
            for asset in self._ledger.assets_of(user)
        )

    def health_factor(self, user: str) -> int:
        if not self.has_debt(user):
            return HEALTH_FACTOR_MAX
        return self.account_data(user).health_factor

    def max_borrow_value(self, user: str) -> int:
        return self.account_data(user).borrow_capacity

    def debt_value(self, user: str) -> int:
        if not self.has_debt(user):
            return 0
        return self.account_data(user).debt_value

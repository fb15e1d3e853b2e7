"""Manually maintained price source with a staleness bound."""
from __future__ import annotations

import logging

from ..config import ManualOracleConfig
from ..errors import InvalidParameterError, NoValidPriceError, StalePriceError
from ..fixed_point import to_wad
from ..interfaces.clock import Clock, system_clock

logger = logging.getLogger(__name__)


class ManualPriceSource:
    """Prices pushed by an operator (or a test), rejected once too old."""

    def __init__(self, max_age_seconds: int = 3600, clock: Clock = system_clock) -> None:
        self.max_age_seconds = max_age_seconds
        self._clock = clock
        self._prices: dict[str, tuple[int, int]] = {}

    @classmethod
    def from_config(
        cls, config: ManualOracleConfig, max_age_seconds: int, clock: Clock = system_clock
    ) -> ManualPriceSource:
        source = cls(max_age_seconds, clock)
        for asset, price in config.prices.items():
            source.set_price(asset, to_wad(price))
        return source

    def set_price(self, asset: str, price: int, updated_at: int | None = None) -> None:
        """Set a WAD-scaled price, stamped now unless ``updated_at`` is given."""
        if price <= 0:
            raise InvalidParameterError(f"Price for {asset} must be positive, got {price}")
        stamp = self._clock() if updated_at is None else updated_at
        self._prices[asset] = (price, stamp)
        logger.debug("Price %s set to %d at %d", asset, price, stamp)

    def get_price_with_timestamp(self, asset: str) -> tuple[int, int]:
        try:
            price, updated_at = self._prices[asset]
        except KeyError:
            raise NoValidPriceError(f"No price feed for {asset}") from None
        age = self._clock() - updated_at
        if age > self.max_age_seconds:
            raise StalePriceError(
                f"Price for {asset} is {age}s old (max {self.max_age_seconds}s)"
            )
        return price, updated_at

    def symbols(self) -> list[str]:
        return sorted(self._prices)

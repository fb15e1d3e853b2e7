"""Price sources."""
from __future__ import annotations

from ..config import PriceOracleConfig
from ..interfaces.clock import Clock, system_clock
from .manual import ManualPriceSource
from .pyth import PythPriceSource

__all__ = ["ManualPriceSource", "PythPriceSource", "build_price_source"]


def build_price_source(
    config: PriceOracleConfig, clock: Clock = system_clock
) -> ManualPriceSource | PythPriceSource:
    """Instantiate the configured price source provider."""
    if config.provider == "manual":
        return ManualPriceSource.from_config(config.manual, config.max_price_age_seconds, clock)
    if config.provider == "pyth":
        return PythPriceSource(config.pyth, config.max_price_age_seconds, clock)
    raise ValueError(f"Unknown price oracle provider '{config.provider}'")

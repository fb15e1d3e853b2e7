"""Collateralized lending market ledger."""
from .constants import BPS, HEALTH_FACTOR_MAX, MAX_AMOUNT, WAD
from .interest import InterestRateModel, InterestRateParams
from .market import LendingMarket
from .models import AccountData, AssetConfig, LiquidationResult, ReserveState, UserPosition
from .token_bank import InMemoryTokenBank

__all__ = [
    "AccountData",
    "AssetConfig",
    "BPS",
    "HEALTH_FACTOR_MAX",
    "InMemoryTokenBank",
    "InterestRateModel",
    "InterestRateParams",
    "LendingMarket",
    "LiquidationResult",
    "MAX_AMOUNT",
    "ReserveState",
    "UserPosition",
    "WAD",
]

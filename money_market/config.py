"""Configuration loader — reads config.yaml, interpolates env vars, validates."""
from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from .assets import validate_asset_config
from .constants import (
    DEFAULT_BASE_RATE_BPS,
    DEFAULT_COLLATERAL_FACTOR,
    DEFAULT_DECIMALS,
    DEFAULT_FLASH_LOAN_FEE_BPS,
    DEFAULT_LIQUIDATION_BONUS,
    DEFAULT_LIQUIDATION_THRESHOLD,
    DEFAULT_OPTIMAL_UTILIZATION_BPS,
    DEFAULT_RESERVE_FACTOR,
    DEFAULT_SLOPE1_BPS,
    DEFAULT_SLOPE2_BPS,
)
from .interest import InterestRateModel, InterestRateParams
from .models import AssetConfig

logger = logging.getLogger(__name__)

PRICE_PROVIDERS = ("pyth", "manual")

# ---------------------------------------------------------------------------
# Frozen config dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class MarketSettings:
    address: str = "lending-market"
    admin: str = ""
    flash_loan_fee_bps: int = DEFAULT_FLASH_LOAN_FEE_BPS


@dataclass(frozen=True)
class ThresholdsConfig:
    health_factor_warning: float = 1.1


@dataclass(frozen=True)
class MonitorConfig:
    thresholds: ThresholdsConfig = field(default_factory=ThresholdsConfig)


@dataclass(frozen=True)
class PythConfig:
    hermes_url: str = "https://hermes.pyth.network/v2/updates/price/latest"
    feeds: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class ManualOracleConfig:
    prices: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class PriceOracleConfig:
    provider: str = "pyth"
    max_price_age_seconds: int = 3600
    pyth: PythConfig = field(default_factory=PythConfig)
    manual: ManualOracleConfig = field(default_factory=ManualOracleConfig)


@dataclass(frozen=True)
class AppConfig:
    market: MarketSettings = field(default_factory=MarketSettings)
    monitor: MonitorConfig = field(default_factory=MonitorConfig)
    assets: dict[str, AssetConfig] = field(default_factory=dict)
    interest_rates: dict[str, InterestRateParams] = field(default_factory=dict)
    price_oracle: PriceOracleConfig = field(default_factory=PriceOracleConfig)


# ---------------------------------------------------------------------------
# Env interpolation
# ---------------------------------------------------------------------------

_ENV_VAR_RE = re.compile(r"\$\{([^}]+)}")


def _interpolate_env(value: Any) -> Any:
    """Recursively replace ${VAR} references with environment variable values."""
    if isinstance(value, str):
        return _ENV_VAR_RE.sub(lambda m: os.environ.get(m.group(1), ""), value)
    if isinstance(value, dict):
        return {k: _interpolate_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_interpolate_env(item) for item in value]
    return value


# ---------------------------------------------------------------------------
# YAML → dataclass builders
# ---------------------------------------------------------------------------


def _build_market(raw: dict[str, Any]) -> MarketSettings:
    return MarketSettings(
        address=str(raw.get("address", "lending-market")),
        admin=str(raw.get("admin", "")),
        flash_loan_fee_bps=int(raw.get("flash_loan_fee_bps", DEFAULT_FLASH_LOAN_FEE_BPS)),
    )


def _build_monitor(raw: dict[str, Any]) -> MonitorConfig:
    thresholds = raw.get("thresholds", {})
    return MonitorConfig(
        thresholds=ThresholdsConfig(
            health_factor_warning=float(thresholds.get("health_factor_warning", 1.1)),
        )
    )


def _build_asset(raw: dict[str, Any]) -> AssetConfig:
    return AssetConfig(
        collateral_factor=int(raw.get("collateral_factor", DEFAULT_COLLATERAL_FACTOR)),
        liquidation_threshold=int(
            raw.get("liquidation_threshold", DEFAULT_LIQUIDATION_THRESHOLD)
        ),
        liquidation_bonus=int(raw.get("liquidation_bonus", DEFAULT_LIQUIDATION_BONUS)),
        reserve_factor=int(raw.get("reserve_factor", DEFAULT_RESERVE_FACTOR)),
        decimals=int(raw.get("decimals", DEFAULT_DECIMALS)),
        is_active=bool(raw.get("is_active", True)),
        can_borrow=bool(raw.get("can_borrow", True)),
        can_use_as_collateral=bool(raw.get("can_use_as_collateral", True)),
    )


def _build_interest_rate(raw: dict[str, Any]) -> InterestRateParams:
    return InterestRateParams(
        base_rate_bps=int(raw.get("base_rate_bps", DEFAULT_BASE_RATE_BPS)),
        slope1_bps=int(raw.get("slope1_bps", DEFAULT_SLOPE1_BPS)),
        slope2_bps=int(raw.get("slope2_bps", DEFAULT_SLOPE2_BPS)),
        optimal_utilization_bps=int(
            raw.get("optimal_utilization_bps", DEFAULT_OPTIMAL_UTILIZATION_BPS)
        ),
    )


def _build_assets(
    raw: dict[str, Any],
) -> tuple[dict[str, AssetConfig], dict[str, InterestRateParams]]:
    assets: dict[str, AssetConfig] = {}
    rates: dict[str, InterestRateParams] = {}
    for name, cfg in raw.items():
        cfg = cfg or {}
        assets[name] = _build_asset(cfg)
        rates[name] = _build_interest_rate(cfg.get("interest_rate", {}))
    return assets, rates


def _build_price_oracle(raw: dict[str, Any]) -> PriceOracleConfig:
    pyth_raw = raw.get("pyth", {})
    manual_raw = raw.get("manual", {})
    return PriceOracleConfig(
        provider=raw.get("provider", "pyth"),
        max_price_age_seconds=int(raw.get("max_price_age_seconds", 3600)),
        pyth=PythConfig(
            hermes_url=pyth_raw.get("hermes_url", PythConfig.hermes_url),
            feeds=dict(pyth_raw.get("feeds", {})),
        ),
        manual=ManualOracleConfig(
            prices={k: str(v) for k, v in manual_raw.get("prices", {}).items()},
        ),
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(config_path: str | Path | None = None) -> AppConfig:
    """Load and validate market configuration from YAML + .env.

    Args:
        config_path: Path to config.yaml. Defaults to ``config.yaml`` in the
            project root (two levels up from this file).
    """
    load_dotenv()

    if config_path is None:
        config_path = Path(__file__).resolve().parent.parent / "config.yaml"
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    raw = _interpolate_env(raw)

    assets, rates = _build_assets(raw.get("assets", {}))
    cfg = AppConfig(
        market=_build_market(raw.get("market", {})),
        monitor=_build_monitor(raw.get("monitor", {})),
        assets=assets,
        interest_rates=rates,
        price_oracle=_build_price_oracle(raw.get("price_oracle", {})),
    )

    _validate(cfg)
    logger.info("Configuration loaded from %s", config_path)
    return cfg


def _validate(cfg: AppConfig) -> None:
    """Raise on invalid configuration."""
    if not cfg.market.admin:
        raise ValueError("Market admin must be configured")
    if not cfg.assets:
        raise ValueError("At least one asset must be configured")

    for asset, asset_cfg in cfg.assets.items():
        validate_asset_config(asset, asset_cfg)
    for params in cfg.interest_rates.values():
        InterestRateModel(params)

    oracle = cfg.price_oracle
    if oracle.provider not in PRICE_PROVIDERS:
        raise ValueError(f"Unknown price oracle provider '{oracle.provider}'")
    if oracle.max_price_age_seconds <= 0:
        raise ValueError("max_price_age_seconds must be positive")

    priced = oracle.pyth.feeds if oracle.provider == "pyth" else oracle.manual.prices
    for asset in cfg.assets:
        if asset not in priced:
            raise ValueError(
                f"Asset '{asset}' has no {oracle.provider} price configured"
            )

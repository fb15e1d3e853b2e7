"""Asset configuration store — per-asset risk parameters."""
from __future__ import annotations

import logging

from .constants import BPS, MAX_DECIMALS
from .errors import AssetNotActiveError, AssetNotSupportedError, InvalidParameterError
from .models import AssetConfig

logger = logging.getLogger(__name__)


def validate_asset_config(asset: str, config: AssetConfig) -> None:
    """Raise InvalidParameterError on out-of-range risk parameters."""
    if not asset:
        raise InvalidParameterError("Asset identifier must not be empty")

    for name in ("collateral_factor", "liquidation_threshold", "liquidation_bonus", "reserve_factor"):
        value = getattr(config, name)
        if not 0 <= value <= BPS:
            raise InvalidParameterError(
                f"{asset}: {name} must be within [0, {BPS}] bps, got {value}"
            )

    if config.liquidation_threshold < config.collateral_factor:
        raise InvalidParameterError(
            f"{asset}: liquidation_threshold ({config.liquidation_threshold}) "
            f"is below collateral_factor ({config.collateral_factor})"
        )
    if not 0 <= config.decimals <= MAX_DECIMALS:
        raise InvalidParameterError(
            f"{asset}: decimals must be within [0, {MAX_DECIMALS}], got {config.decimals}"
        )


class AssetConfigStore:
    """Holds the AssetConfig of every supported asset.

    Entries are created and replaced by ``configure``; they are never
    removed, deactivation goes through ``is_active=False``.
    """

    def __init__(self) -> None:
        self._configs: dict[str, AssetConfig] = {}

    def configure(self, asset: str, config: AssetConfig) -> AssetConfig:
        validate_asset_config(asset, config)
        previous = self._configs.get(asset)
        self._configs[asset] = config
        if previous is None:
            logger.info("Asset %s listed: %s", asset, config)
        else:
            logger.info("Asset %s reconfigured: %s", asset, config)
        return config

    def get(self, asset: str) -> AssetConfig:
        try:
            return self._configs[asset]
        except KeyError:
            raise AssetNotSupportedError(asset) from None

    def require_active(self, asset: str) -> AssetConfig:
        config = self.get(asset)
        if not config.is_active:
            raise AssetNotActiveError(asset)
        return config

    def is_supported(self, asset: str) -> bool:
        return asset in self._configs

    def assets(self) -> list[str]:
        """Supported assets in listing order."""
        return list(self._configs)

    def items(self) -> list[tuple[str, AssetConfig]]:
        return list(self._configs.items())

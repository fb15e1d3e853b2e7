"""Protocol-owned reserves: reporting and withdrawal."""
from __future__ import annotations

import logging

from .assets import AssetConfigStore
from .ledger import ReserveLedger

logger = logging.getLogger(__name__)


class ReserveAccountant:
    """Reports and pays out protocol reserves.

    Reserves grow by the reserve-factor share of accrued interest and by
    flash loan fees; only collected cash can be withdrawn.
    """

    def __init__(self, ledger: ReserveLedger, assets: AssetConfigStore) -> None:
        self._ledger = ledger
        self._assets = assets

    def reserves(self, asset: str) -> int:
        return self._ledger.protocol_reserves(asset)

    def summary(self) -> dict[str, int]:
        return {asset: self._ledger.protocol_reserves(asset) for asset in self._assets.assets()}

    def withdraw_reserves(self, asset: str, recipient: str, amount: int) -> int:
        self._assets.get(asset)
        paid = self._ledger.withdraw_reserves(asset, recipient, amount)
        logger.info("Withdrew %d %s of protocol reserves to %s", paid, asset, recipient)
        return paid

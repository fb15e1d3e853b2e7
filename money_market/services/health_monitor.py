"""Account health monitoring — classifies accounts for keepers and liquidators."""
from __future__ import annotations

import logging
from dataclasses import dataclass

from ..config import ThresholdsConfig
from ..constants import HEALTH_FACTOR_MAX, WAD
from ..errors import PriceError
from ..fixed_point import to_wad
from ..market import LendingMarket

logger = logging.getLogger(__name__)

HEALTHY = "healthy"
WARNING = "warning"
LIQUIDATABLE = "liquidatable"
UNPRICED = "unpriced"


@dataclass(frozen=True)
class AccountReport:
    user: str
    status: str
    health_factor: int
    collateral_value: int = 0
    debt_value: int = 0


class HealthMonitor:
    """Scans market accounts against the configured health factor thresholds."""

    def __init__(self, market: LendingMarket, thresholds: ThresholdsConfig | None = None) -> None:
        self._market = market
        self._thresholds = thresholds or ThresholdsConfig()
        self._warning_level = to_wad(self._thresholds.health_factor_warning)

    def _get_status(self, health_factor: int) -> str:
        if health_factor < WAD:
            return LIQUIDATABLE
        if health_factor < self._warning_level:
            return WARNING
        return HEALTHY

    def classify(self, user: str) -> AccountReport:
        if not self._market.risk.has_debt(user):
            return AccountReport(user=user, status=HEALTHY, health_factor=HEALTH_FACTOR_MAX)
        account = self._market.account_data(user)
        return AccountReport(
            user=user,
            status=self._get_status(account.health_factor),
            health_factor=account.health_factor,
            collateral_value=account.collateral_value,
            debt_value=account.debt_value,
        )

    def scan(self, users: list[str] | None = None) -> list[AccountReport]:
        """Classify ``users`` (default: every account), riskiest first.

        Accounts whose positions cannot be priced are reported as unpriced
        rather than aborting the scan.
        """
        reports: list[AccountReport] = []
        for user in users if users is not None else self._market.accounts():
            try:
                report = self.classify(user)
            except PriceError as e:
                logger.error("Cannot price account %s: %s", user, e)
                report = AccountReport(user=user, status=UNPRICED, health_factor=0)
            if report.status == LIQUIDATABLE:
                logger.warning(
                    "Account %s is liquidatable (health factor %d)", user, report.health_factor
                )
            elif report.status == WARNING:
                logger.info(
                    "Account %s is close to liquidation (health factor %d)",
                    user, report.health_factor,
                )
            reports.append(report)

        reports.sort(key=lambda r: (r.status != UNPRICED, r.health_factor))
        return reports

    def liquidatable(self, users: list[str] | None = None) -> list[AccountReport]:
        return [r for r in self.scan(users) if r.status == LIQUIDATABLE]

"""Shared test fixtures and sample data."""
from __future__ import annotations

import textwrap
from collections.abc import Callable
from pathlib import Path

import pytest

from money_market.constants import MAX_AMOUNT, WAD
from money_market.interest import InterestRateParams
from money_market.interfaces.clock import ManualClock
from money_market.market import LendingMarket
from money_market.models import AssetConfig
from money_market.oracles.manual import ManualPriceSource
from money_market.token_bank import InMemoryTokenBank

ADMIN = "admin"
MARKET = "market"
START_TIME = 1_700_000_000

DAI = "DAI"
WETH = "WETH"


# ---------------------------------------------------------------------------
# Market fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def clock() -> ManualClock:
    return ManualClock(START_TIME)


@pytest.fixture()
def bank() -> InMemoryTokenBank:
    return InMemoryTokenBank()


@pytest.fixture()
def fund(bank: InMemoryTokenBank) -> Callable[[str, str, int], None]:
    """Mint to a user and approve the market without limit."""

    def _fund(asset: str, user: str, amount: int) -> None:
        bank.mint(asset, user, amount)
        bank.approve(asset, user, MARKET, MAX_AMOUNT)

    return _fund


@pytest.fixture()
def prices(clock: ManualClock) -> ManualPriceSource:
    source = ManualPriceSource(max_age_seconds=10**9, clock=clock)
    source.set_price(DAI, 1 * WAD)
    source.set_price(WETH, 2000 * WAD)
    return source


@pytest.fixture()
def dai_config() -> AssetConfig:
    return AssetConfig(
        collateral_factor=7500,
        liquidation_threshold=8000,
        liquidation_bonus=500,
        reserve_factor=1000,
    )


@pytest.fixture()
def weth_config() -> AssetConfig:
    return AssetConfig(
        collateral_factor=7500,
        liquidation_threshold=8000,
        liquidation_bonus=500,
        reserve_factor=1000,
    )


@pytest.fixture()
def rate_params() -> InterestRateParams:
    return InterestRateParams(
        base_rate_bps=200,
        slope1_bps=400,
        slope2_bps=7500,
        optimal_utilization_bps=8000,
    )


@pytest.fixture()
def market(
    bank: InMemoryTokenBank,
    prices: ManualPriceSource,
    clock: ManualClock,
    dai_config: AssetConfig,
    weth_config: AssetConfig,
    rate_params: InterestRateParams,
) -> LendingMarket:
    m = LendingMarket(
        admin=ADMIN,
        token_bank=bank,
        price_source=prices,
        clock=clock,
        address=MARKET,
    )
    m.configure_asset(ADMIN, DAI, dai_config, rate_params)
    m.configure_asset(ADMIN, WETH, weth_config, rate_params)
    return m


@pytest.fixture()
def borrowed_market(
    market: LendingMarket, bank: InMemoryTokenBank, fund: Callable[[str, str, int], None]
) -> LendingMarket:
    """Alice supplies 100k DAI; bob posts 10 WETH and borrows 5000 DAI."""
    fund(DAI, "alice", 100_000 * WAD)
    market.deposit("alice", DAI, 100_000 * WAD)
    fund(WETH, "bob", 10 * WAD)
    market.deposit("bob", WETH, 10 * WAD)
    market.borrow("bob", DAI, 5_000 * WAD)
    bank.approve(DAI, "bob", MARKET, MAX_AMOUNT)
    return market


# ---------------------------------------------------------------------------
# Config YAML fixture
# ---------------------------------------------------------------------------

SAMPLE_YAML = textwrap.dedent("""\
    market:
      address: test-market
      admin: "${TEST_MARKET_ADMIN}"
      flash_loan_fee_bps: 9
    monitor:
      thresholds:
        health_factor_warning: 1.2
    assets:
      DAI:
        collateral_factor: 7500
        liquidation_threshold: 8000
        liquidation_bonus: 500
        reserve_factor: 1000
        interest_rate:
          base_rate_bps: 100
          slope1_bps: 400
          slope2_bps: 6000
          optimal_utilization_bps: 9000
      WETH:
        decimals: 18
        collateral_factor: 8000
        liquidation_threshold: 8250
        liquidation_bonus: 500
        reserve_factor: 1500
        can_borrow: false
    price_oracle:
      provider: manual
      max_price_age_seconds: 600
      pyth:
        hermes_url: "https://hermes.example.com"
        feeds: {DAI: "aaa", WETH: "bbb"}
      manual:
        prices: {DAI: "1.0", WETH: "2000.5"}
""")


@pytest.fixture()
def sample_yaml_path(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.setenv("TEST_MARKET_ADMIN", "ops-admin")
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text(SAMPLE_YAML)
    return cfg_file

"""Integration tests for deposits, withdrawals, borrows and repayments."""
from __future__ import annotations

from collections.abc import Callable

import pytest

from money_market.constants import HEALTH_FACTOR_MAX, MAX_AMOUNT, SECONDS_PER_YEAR, WAD
from money_market.errors import (
    AssetNotActiveError,
    AssetNotSupportedError,
    BorrowingNotEnabledError,
    InsufficientBalanceError,
    InsufficientCollateralError,
    InsufficientLiquidityError,
    NoDebtError,
    StalePriceError,
    TransferError,
    UnauthorizedError,
    ZeroAmountError,
)
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

Fund = Callable[[str, str, int], None]


class TestDeposit:
    def test_deposit_moves_tokens_and_credits_position(
        self, market: LendingMarket, bank: InMemoryTokenBank, fund: Fund
    ) -> None:
        fund(DAI, "alice", 1_000 * WAD)
        market.deposit("alice", DAI, 400 * WAD)

        assert bank.balance_of(DAI, "alice") == 600 * WAD
        assert bank.balance_of(DAI, MARKET) == 400 * WAD
        assert market.deposit_balance(DAI, "alice") == 400 * WAD
        assert market.reserve(DAI).total_deposits == 400 * WAD
        assert market.available_liquidity(DAI) == 400 * WAD
        assert market.accounts() == ["alice"]

    def test_zero_amount(self, market: LendingMarket) -> None:
        with pytest.raises(ZeroAmountError):
            market.deposit("alice", DAI, 0)

    def test_unsupported_asset(self, market: LendingMarket) -> None:
        with pytest.raises(AssetNotSupportedError):
            market.deposit("alice", "XYZ", WAD)

    def test_inactive_asset(
        self, market: LendingMarket, fund: Fund, dai_config: AssetConfig
    ) -> None:
        market.configure_asset(
            ADMIN,
            DAI,
            AssetConfig(
                collateral_factor=dai_config.collateral_factor,
                liquidation_threshold=dai_config.liquidation_threshold,
                is_active=False,
            ),
        )
        fund(DAI, "alice", WAD)
        with pytest.raises(AssetNotActiveError):
            market.deposit("alice", DAI, WAD)

    def test_without_allowance_fails_atomically(
        self, market: LendingMarket, bank: InMemoryTokenBank
    ) -> None:
        bank.mint(DAI, "alice", WAD)
        with pytest.raises(TransferError):
            market.deposit("alice", DAI, WAD)
        assert market.deposit_balance(DAI, "alice") == 0
        assert market.reserve(DAI).total_deposits == 0
        assert market.accounts() == []


class TestWithdraw:
    def test_partial_and_max(
        self, market: LendingMarket, bank: InMemoryTokenBank, fund: Fund
    ) -> None:
        fund(DAI, "alice", 1_000 * WAD)
        market.deposit("alice", DAI, 1_000 * WAD)

        assert market.withdraw("alice", DAI, 300 * WAD) == 300 * WAD
        assert market.withdraw("alice", DAI, MAX_AMOUNT) == 700 * WAD
        assert market.deposit_balance(DAI, "alice") == 0
        assert bank.balance_of(DAI, "alice") == 1_000 * WAD

    def test_more_than_deposited(self, market: LendingMarket, fund: Fund) -> None:
        fund(DAI, "alice", 100 * WAD)
        market.deposit("alice", DAI, 100 * WAD)
        with pytest.raises(InsufficientBalanceError):
            market.withdraw("alice", DAI, 101 * WAD)

    def test_max_without_deposit(self, market: LendingMarket) -> None:
        with pytest.raises(InsufficientBalanceError):
            market.withdraw("alice", DAI, MAX_AMOUNT)

    def test_limited_by_borrowed_liquidity(self, market: LendingMarket, fund: Fund) -> None:
        fund(DAI, "alice", 10_000 * WAD)
        market.deposit("alice", DAI, 10_000 * WAD)
        fund(WETH, "bob", 10 * WAD)
        market.deposit("bob", WETH, 10 * WAD)
        market.borrow("bob", DAI, 5_000 * WAD)

        with pytest.raises(InsufficientLiquidityError):
            market.withdraw("alice", DAI, 6_000 * WAD)
        assert market.withdraw("alice", DAI, 5_000 * WAD) == 5_000 * WAD

    def test_collateral_locked_by_debt(self, borrowed_market: LendingMarket) -> None:
        with pytest.raises(InsufficientCollateralError):
            borrowed_market.withdraw("bob", WETH, 9 * WAD)
        assert borrowed_market.deposit_balance(WETH, "bob") == 10 * WAD

        # 4 WETH left: (8000 * 0.8) / 5000 = 1.28
        borrowed_market.withdraw("bob", WETH, 6 * WAD)
        assert borrowed_market.health_factor("bob") == 128 * WAD // 100


class TestBorrow:
    def test_borrow_transfers_and_records_debt(
        self, borrowed_market: LendingMarket, bank: InMemoryTokenBank
    ) -> None:
        assert bank.balance_of(DAI, "bob") == 5_000 * WAD
        assert borrowed_market.borrow_balance(DAI, "bob") == 5_000 * WAD
        assert borrowed_market.total_borrowed(DAI, "bob") == 5_000 * WAD
        assert borrowed_market.reserve(DAI).total_borrows == 5_000 * WAD
        assert borrowed_market.available_liquidity(DAI) == 95_000 * WAD

    def test_above_liquidity(self, market: LendingMarket, fund: Fund) -> None:
        fund(DAI, "alice", 1_000 * WAD)
        market.deposit("alice", DAI, 1_000 * WAD)
        fund(WETH, "bob", 10 * WAD)
        market.deposit("bob", WETH, 10 * WAD)
        with pytest.raises(InsufficientLiquidityError):
            market.borrow("bob", DAI, 1_001 * WAD)

    def test_without_collateral(self, borrowed_market: LendingMarket) -> None:
        with pytest.raises(InsufficientCollateralError):
            borrowed_market.borrow("carol", DAI, WAD)
        assert borrowed_market.borrow_balance(DAI, "carol") == 0

    def test_borrowing_disabled(
        self, market: LendingMarket, fund: Fund, weth_config: AssetConfig
    ) -> None:
        market.configure_asset(
            ADMIN,
            WETH,
            AssetConfig(
                collateral_factor=weth_config.collateral_factor,
                liquidation_threshold=weth_config.liquidation_threshold,
                can_borrow=False,
            ),
        )
        fund(WETH, "alice", 10 * WAD)
        market.deposit("alice", WETH, 10 * WAD)
        with pytest.raises(BorrowingNotEnabledError):
            market.borrow("alice", WETH, WAD)

    def test_stale_price_blocks_borrow_not_deposit(
        self,
        borrowed_market: LendingMarket,
        prices: ManualPriceSource,
        bank: InMemoryTokenBank,
        fund: Fund,
    ) -> None:
        prices.set_price(WETH, 2_000 * WAD, updated_at=START_TIME - 10**9 - 1)

        before = bank.balance_of(DAI, "bob")
        with pytest.raises(StalePriceError):
            borrowed_market.borrow("bob", DAI, WAD)
        assert bank.balance_of(DAI, "bob") == before
        assert borrowed_market.borrow_balance(DAI, "bob") == 5_000 * WAD

        fund(DAI, "carol", WAD)
        borrowed_market.deposit("carol", DAI, WAD)
        assert borrowed_market.deposit_balance(DAI, "carol") == WAD

    def test_debt_grows_with_time(
        self, borrowed_market: LendingMarket, clock: ManualClock
    ) -> None:
        clock.advance(SECONDS_PER_YEAR)
        debt = borrowed_market.borrow_balance(DAI, "bob")
        # 5% utilization: 2% + 4% * 0.05 / 0.8 = 2.25% a year
        assert 5_112 * WAD < debt < 5_113 * WAD
        # deposit principal is not rebased
        assert borrowed_market.deposit_balance(DAI, "alice") == 100_000 * WAD
        assert borrowed_market.reserve(DAI).total_deposits > 100_000 * WAD


class TestRepay:
    def test_partial_repay(self, borrowed_market: LendingMarket) -> None:
        applied = borrowed_market.repay("bob", DAI, 2_000 * WAD)
        assert applied == 2_000 * WAD
        assert borrowed_market.borrow_balance(DAI, "bob") == 3_000 * WAD
        assert borrowed_market.reserve(DAI).total_borrows == 3_000 * WAD

    def test_overpay_is_capped(self, borrowed_market: LendingMarket, fund: Fund) -> None:
        fund(DAI, "bob", 10_000 * WAD)
        assert borrowed_market.repay("bob", DAI, 10_000 * WAD) == 5_000 * WAD
        assert borrowed_market.borrow_balance(DAI, "bob") == 0
        assert borrowed_market.health_factor("bob") == HEALTH_FACTOR_MAX

    def test_repay_max_after_interest(
        self, borrowed_market: LendingMarket, clock: ManualClock, fund: Fund
    ) -> None:
        clock.advance(30 * 24 * 3600)
        fund(DAI, "bob", 100 * WAD)
        owed = borrowed_market.borrow_balance(DAI, "bob")
        assert borrowed_market.repay("bob", DAI, MAX_AMOUNT) == owed
        assert borrowed_market.borrow_balance(DAI, "bob") == 0

    def test_on_behalf_of(
        self, borrowed_market: LendingMarket, bank: InMemoryTokenBank, fund: Fund
    ) -> None:
        fund(DAI, "carol", 1_000 * WAD)
        borrowed_market.repay("carol", DAI, 1_000 * WAD, on_behalf_of="bob")
        assert borrowed_market.borrow_balance(DAI, "bob") == 4_000 * WAD
        assert bank.balance_of(DAI, "carol") == 0
        assert bank.balance_of(DAI, "bob") == 5_000 * WAD

    def test_no_debt(self, borrowed_market: LendingMarket) -> None:
        with pytest.raises(NoDebtError):
            borrowed_market.repay("alice", DAI, WAD)

    def test_zero_amount(self, borrowed_market: LendingMarket) -> None:
        with pytest.raises(ZeroAmountError):
            borrowed_market.repay("bob", DAI, 0)


class TestAdministration:
    def test_non_admin_cannot_configure(self, market: LendingMarket) -> None:
        with pytest.raises(UnauthorizedError):
            market.configure_asset("mallory", DAI, AssetConfig())

    def test_transfer_admin(self, market: LendingMarket) -> None:
        market.transfer_admin(ADMIN, "ops")
        assert market.admin == "ops"
        with pytest.raises(UnauthorizedError):
            market.configure_asset(ADMIN, DAI, AssetConfig())
        market.configure_asset("ops", DAI, AssetConfig(reserve_factor=0))
        assert market.asset_config(DAI).reserve_factor == 0

    def test_transfer_admin_to_empty(self, market: LendingMarket) -> None:
        with pytest.raises(UnauthorizedError):
            market.transfer_admin(ADMIN, "")
        assert market.admin == ADMIN

    def test_list_assets(self, market: LendingMarket) -> None:
        assert market.list_assets() == [DAI, WETH]

    def test_accrue_is_public(
        self, borrowed_market: LendingMarket, clock: ManualClock
    ) -> None:
        clock.advance(3600)
        accrual = borrowed_market.accrue(DAI)
        assert accrual.interest > 0
        assert borrowed_market.ledger.reserve(DAI).last_accrual_time == clock.now

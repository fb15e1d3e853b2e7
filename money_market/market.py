"""Lending market facade — access control, re-entrancy exclusion, atomicity.

Every state-changing entry point runs inside ``_execute``: it refuses to
start while another call is in progress, accrues the touched reserves,
performs the operation and, on any exception, puts back every ledger record
it touched and rolls the token bank back to its checkpoint.
"""
from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from .assets import AssetConfigStore, validate_asset_config
from .config import AppConfig
from .constants import DEFAULT_FLASH_LOAN_FEE_BPS, WAD
from .errors import (
    BorrowingNotEnabledError,
    ConfigurationError,
    InsufficientCollateralError,
    ReentrancyError,
    UnauthorizedError,
)
from .flash_loan import FlashLoanDispatcher
from .interest import Accrual, InterestRateModel, InterestRateParams
from .interfaces.clock import Clock, system_clock
from .interfaces.flash_loan_receiver import FlashLoanReceiver
from .interfaces.price_source import PriceSource
from .interfaces.token import TokenBank, Transactional
from .ledger import ReserveLedger
from .liquidation import LiquidationEngine
from .models import AccountData, AssetConfig, LiquidationResult, ReserveState
from .risk import RiskAggregator
from .treasury import ReserveAccountant

logger = logging.getLogger(__name__)


class LendingMarket:
    """Single entry point of the money market.

    Callers identify themselves with the first argument of every
    operation; administrative operations require the admin identity.
    """

    def __init__(
        self,
        admin: str,
        token_bank: TokenBank,
        price_source: PriceSource | None = None,
        clock: Clock = system_clock,
        address: str = "lending-market",
        flash_loan_fee_bps: int = DEFAULT_FLASH_LOAN_FEE_BPS,
        default_rate_model: InterestRateModel | None = None,
    ) -> None:
        if not admin:
            raise UnauthorizedError("Market admin must not be empty")
        if not isinstance(token_bank, Transactional):
            raise ConfigurationError(
                f"Token bank {type(token_bank).__name__} must support checkpoint and rollback"
            )
        self.address = address
        self._admin = admin
        self._token_bank = token_bank
        self._clock = clock
        self._entered = False

        self.assets = AssetConfigStore()
        self.ledger = ReserveLedger(address, self.assets, token_bank, clock, default_rate_model)
        self.risk = RiskAggregator(self.ledger, self.assets, price_source)
        self.liquidations = LiquidationEngine(self.ledger, self.assets, self.risk)
        self.flash_loans = FlashLoanDispatcher(
            self.ledger, self.assets, token_bank, flash_loan_fee_bps
        )
        self.treasury = ReserveAccountant(self.ledger, self.assets)

    @classmethod
    def from_config(
        cls,
        config: AppConfig,
        token_bank: TokenBank,
        price_source: PriceSource | None = None,
        clock: Clock = system_clock,
    ) -> LendingMarket:
        """Build a market and list every configured asset."""
        admin = config.market.admin
        market = cls(
            admin=admin,
            token_bank=token_bank,
            price_source=price_source,
            clock=clock,
            address=config.market.address,
            flash_loan_fee_bps=config.market.flash_loan_fee_bps,
        )
        for asset, asset_config in config.assets.items():
            market.configure_asset(
                admin, asset, asset_config, config.interest_rates.get(asset)
            )
        return market

    # ------------------------------------------------------------------
    # Execution scope
    # ------------------------------------------------------------------

    @property
    def admin(self) -> str:
        return self._admin

    def _require_admin(self, caller: str) -> None:
        if caller != self._admin:
            raise UnauthorizedError(f"{caller} is not the market admin")

    @contextmanager
    def _execute(self, operation: str) -> Iterator[None]:
        if self._entered:
            raise ReentrancyError(f"{operation} called while another market call is in progress")
        self._entered = True
        self.ledger.begin()
        checkpoint = self._token_bank.checkpoint()
        try:
            yield
        except Exception as e:
            self.ledger.rollback()
            self._token_bank.rollback(checkpoint)
            logger.warning("%s rejected: %s: %s", operation, type(e).__name__, e)
            raise
        else:
            self.ledger.commit()
        finally:
            self._entered = False

    # ------------------------------------------------------------------
    # Administration
    # ------------------------------------------------------------------

    def configure_asset(
        self,
        caller: str,
        asset: str,
        config: AssetConfig,
        rate_params: InterestRateParams | None = None,
    ) -> None:
        """List or reconfigure an asset; interest so far accrues under the old parameters."""
        self._require_admin(caller)
        with self._execute("configure_asset"):
            validate_asset_config(asset, config)
            model = InterestRateModel(rate_params) if rate_params is not None else None
            if self.assets.is_supported(asset):
                self.ledger.accrue(asset)
            self.assets.configure(asset, config)
            if model is not None:
                self.ledger.set_rate_model(asset, model)

    def set_interest_rate_model(
        self, caller: str, asset: str, rate_params: InterestRateParams
    ) -> None:
        self._require_admin(caller)
        with self._execute("set_interest_rate_model"):
            model = InterestRateModel(rate_params)
            self.ledger.accrue(asset)
            self.ledger.set_rate_model(asset, model)
            logger.info("Interest rate model for %s set to %s", asset, rate_params)

    def set_price_source(self, caller: str, price_source: PriceSource) -> None:
        self._require_admin(caller)
        with self._execute("set_price_source"):
            self.risk.price_source = price_source
            logger.info("Price source set to %s", type(price_source).__name__)

    def transfer_admin(self, caller: str, new_admin: str) -> None:
        self._require_admin(caller)
        if not new_admin:
            raise UnauthorizedError("New admin must not be empty")
        with self._execute("transfer_admin"):
            self._admin = new_admin
            logger.info("Market admin transferred from %s to %s", caller, new_admin)

    def withdraw_reserves(self, caller: str, asset: str, recipient: str, amount: int) -> int:
        self._require_admin(caller)
        with self._execute("withdraw_reserves"):
            self.ledger.accrue(asset)
            return self.treasury.withdraw_reserves(asset, recipient, amount)

    # ------------------------------------------------------------------
    # User operations
    # ------------------------------------------------------------------

    def accrue(self, asset: str) -> Accrual:
        """Advance the asset's interest index to now; anyone may call it."""
        with self._execute("accrue"):
            self.assets.get(asset)
            return self.ledger.accrue(asset)

    def deposit(self, caller: str, asset: str, amount: int) -> None:
        with self._execute("deposit"):
            self.assets.require_active(asset)
            self.ledger.accrue(asset)
            self.ledger.deposit(asset, caller, amount)
            logger.info("Deposit: %s supplied %d %s", caller, amount, asset)

    def withdraw(self, caller: str, asset: str, amount: int) -> int:
        """Withdraw ``amount`` (or MAX_AMOUNT for everything); returns the amount paid out."""
        with self._execute("withdraw"):
            config = self.assets.require_active(asset)
            self.ledger.accrue(asset)
            amount = self.ledger.resolve_withdrawal(asset, caller, amount)
            if (
                config.can_use_as_collateral
                and config.liquidation_threshold > 0
                and self.risk.has_debt(caller)
            ):
                account = self.risk.account_data(caller, asset, deposit_change=-amount)
                if account.health_factor < WAD:
                    raise InsufficientCollateralError(
                        f"Withdrawal would drop health factor of {caller} "
                        f"to {account.health_factor}"
                    )
            withdrawn = self.ledger.withdraw(asset, caller, amount)
            logger.info("Withdraw: %s took %d %s", caller, withdrawn, asset)
            return withdrawn

    def borrow(self, caller: str, asset: str, amount: int) -> None:
        with self._execute("borrow"):
            config = self.assets.require_active(asset)
            if not config.can_borrow:
                raise BorrowingNotEnabledError(asset)
            self.ledger.accrue(asset)
            self.ledger.require_borrowable(asset, amount)
            account = self.risk.account_data(caller, asset, debt_change=amount)
            if account.debt_value > account.borrow_capacity:
                raise InsufficientCollateralError(
                    f"Borrow of {amount} {asset} would raise debt of {caller} to "
                    f"{account.debt_value}, above borrow capacity {account.borrow_capacity}"
                )
            self.ledger.borrow(asset, caller, amount)
            logger.info("Borrow: %s borrowed %d %s", caller, amount, asset)

    def repay(
        self, caller: str, asset: str, amount: int, on_behalf_of: str | None = None
    ) -> int:
        """Repay up to ``amount`` of debt; returns the amount actually applied."""
        borrower = on_behalf_of or caller
        with self._execute("repay"):
            self.assets.require_active(asset)
            self.ledger.accrue(asset)
            applied = self.ledger.repay(asset, caller, borrower, amount)
            logger.info("Repay: %s repaid %d %s for %s", caller, applied, asset, borrower)
            return applied

    def liquidate(
        self,
        caller: str,
        collateral_asset: str,
        debt_asset: str,
        borrower: str,
        debt_to_cover: int,
        receive_deposit: bool = False,
    ) -> LiquidationResult:
        with self._execute("liquidate"):
            self.ledger.accrue(debt_asset)
            if collateral_asset != debt_asset:
                self.ledger.accrue(collateral_asset)
            return self.liquidations.liquidate(
                caller, collateral_asset, debt_asset, borrower, debt_to_cover, receive_deposit
            )

    def flash_loan(
        self,
        caller: str,
        asset: str,
        amount: int,
        receiver: FlashLoanReceiver,
        params: bytes = b"",
    ) -> int:
        """Lend ``amount`` to ``receiver`` for one callback; returns the fee charged."""
        with self._execute("flash_loan"):
            self.assets.get(asset)
            self.ledger.accrue(asset)
            return self.flash_loans.flash_loan(caller, asset, amount, receiver, params)

    # ------------------------------------------------------------------
    # Read queries
    # ------------------------------------------------------------------

    def reserve(self, asset: str) -> ReserveState:
        """Reserve state as it would be after accruing to now."""
        accrual = self.ledger.projected(asset)
        return ReserveState(
            total_deposits=accrual.total_deposits,
            total_borrows=accrual.total_borrows,
            borrow_index=accrual.borrow_index,
            last_accrual_time=accrual.timestamp,
        )

    def available_liquidity(self, asset: str) -> int:
        state = self.reserve(asset)
        return max(state.total_deposits - state.total_borrows, 0)

    def protocol_reserves(self, asset: str) -> int:
        return self.ledger.protocol_reserves(asset) + self.ledger.projected(asset).reserves_accrued

    def asset_config(self, asset: str) -> AssetConfig:
        return self.assets.get(asset)

    def list_assets(self) -> list[str]:
        return self.assets.assets()

    def accounts(self) -> list[str]:
        return self.ledger.users()

    def deposit_balance(self, asset: str, user: str) -> int:
        return self.ledger.deposit_balance(asset, user)

    def borrow_balance(self, asset: str, user: str) -> int:
        return self.ledger.borrow_balance(asset, user)

    def total_borrowed(self, asset: str, user: str) -> int:
        """Everything ``user`` has ever borrowed of ``asset``."""
        return self.ledger.position(asset, user).total_borrowed

    def health_factor(self, user: str) -> int:
        return self.risk.health_factor(user)

    def max_borrow_value(self, user: str) -> int:
        return self.risk.max_borrow_value(user)

    def debt_value(self, user: str) -> int:
        return self.risk.debt_value(user)

    def account_data(self, user: str) -> AccountData:
        return self.risk.account_data(user)

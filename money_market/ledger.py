"""Reserve ledger — per-asset aggregates, per-user positions and value movement.

Debts are stored as principal plus the borrow index at the user's last
touch and are rebased lazily:

    debt_now = borrow_principal * borrow_index / borrow_index_snapshot

Only the asset's aggregate ``total_borrows`` is compounded on every accrual.
Risk checks live one level up, in the market facade.
"""
from __future__ import annotations

import copy
import logging
from dataclasses import replace
from typing import Any

from .assets import AssetConfigStore
from .constants import MAX_AMOUNT
from .errors import (
    InsufficientBalanceError,
    InsufficientLiquidityError,
    InsufficientReservesError,
    NoDebtError,
    ZeroAmountError,
)
from .fixed_point import mul_div_up
from .interest import Accrual, InterestRateModel
from .interfaces.clock import Clock
from .interfaces.token import TokenBank
from .models import ReserveState, UserPosition

logger = logging.getLogger(__name__)


def _require_positive(amount: int) -> None:
    if amount <= 0:
        raise ZeroAmountError()


class ReserveLedger:
    """Owns every ReserveState, UserPosition and protocol reserve counter."""

    def __init__(
        self,
        address: str,
        assets: AssetConfigStore,
        token_bank: TokenBank,
        clock: Clock,
        default_rate_model: InterestRateModel | None = None,
    ) -> None:
        self.address = address
        self._assets = assets
        self._token_bank = token_bank
        self._clock = clock
        self._default_rate_model = default_rate_model or InterestRateModel()
        self._rate_models: dict[str, InterestRateModel] = {}

        self._reserves: dict[str, ReserveState] = {}
        self._positions: dict[tuple[str, str], UserPosition] = {}
        self._user_assets: dict[str, list[str]] = {}
        self._protocol_reserves: dict[str, int] = {}
        # record key -> value before the current operation first touched it
        self._journal: dict[tuple[str, ...], Any] | None = None

    # ------------------------------------------------------------------
    # Undo journal
    # ------------------------------------------------------------------

    def begin(self) -> None:
        """Start recording the prior value of every record the operation touches."""
        self._journal = {}

    def commit(self) -> None:
        self._journal = None

    def rollback(self) -> None:
        """Put every touched record back the way ``begin`` found it."""
        journal, self._journal = self._journal or {}, None
        tables: dict[str, dict[Any, Any]] = {
            "reserve": self._reserves,
            "position": self._positions,
            "user_assets": self._user_assets,
            "protocol_reserves": self._protocol_reserves,
        }
        for (table, *key), previous in journal.items():
            record_key = tuple(key) if table == "position" else key[0]
            if previous is None:
                tables[table].pop(record_key, None)
            else:
                tables[table][record_key] = previous

    def _remember(self, key: tuple[str, ...], current: Any) -> None:
        if self._journal is None or key in self._journal:
            return
        self._journal[key] = copy.copy(current)

    def snapshot(self) -> dict[str, Any]:
        """Deep copy of every record."""
        return copy.deepcopy(
            {
                "reserves": self._reserves,
                "positions": self._positions,
                "user_assets": self._user_assets,
                "protocol_reserves": self._protocol_reserves,
            }
        )

    # ------------------------------------------------------------------
    # Rate models
    # ------------------------------------------------------------------

    def rate_model(self, asset: str) -> InterestRateModel:
        return self._rate_models.get(asset, self._default_rate_model)

    def set_rate_model(self, asset: str, model: InterestRateModel) -> None:
        self._rate_models[asset] = model

    # ------------------------------------------------------------------
    # Record access
    # ------------------------------------------------------------------

    def _reserve(self, asset: str) -> ReserveState:
        state = self._reserves.get(asset)
        self._remember(("reserve", asset), state)
        if state is None:
            state = ReserveState(last_accrual_time=self._clock())
            self._reserves[asset] = state
        return state

    def _position(self, asset: str, user: str) -> UserPosition:
        key = (asset, user)
        position = self._positions.get(key)
        self._remember(("position", asset, user), position)
        if position is None:
            position = UserPosition(borrow_index_snapshot=self._reserve(asset).borrow_index)
            self._positions[key] = position
            self._remember(("user_assets", user), self._user_assets.get(user))
            self._user_assets.setdefault(user, []).append(asset)
        return position

    def reserve(self, asset: str) -> ReserveState:
        """Copy of the stored reserve state (as of its last accrual)."""
        state = self._reserves.get(asset)
        if state is None:
            return ReserveState(last_accrual_time=self._clock())
        return replace(state)

    def position(self, asset: str, user: str) -> UserPosition:
        """Copy of the stored position (debt as of the user's last touch)."""
        position = self._positions.get((asset, user))
        return replace(position) if position is not None else UserPosition()

    def assets_of(self, user: str) -> list[str]:
        return list(self._user_assets.get(user, ()))

    def users(self) -> list[str]:
        return list(self._user_assets)

    # ------------------------------------------------------------------
    # Accrual
    # ------------------------------------------------------------------

    def projected(self, asset: str) -> Accrual:
        """Reserve advanced to now, without writing it back."""
        state = self._reserves.get(asset) or ReserveState(last_accrual_time=self._clock())
        config = self._assets.get(asset)
        return self.rate_model(asset).accrue(state, self._clock(), config.reserve_factor)

    def accrue(self, asset: str) -> Accrual:
        """Advance the asset's borrow index and totals to now."""
        state = self._reserve(asset)
        config = self._assets.get(asset)
        accrual = self.rate_model(asset).accrue(state, self._clock(), config.reserve_factor)

        state.borrow_index = accrual.borrow_index
        state.total_borrows = accrual.total_borrows
        state.total_deposits = accrual.total_deposits
        state.last_accrual_time = accrual.timestamp
        if accrual.reserves_accrued:
            self._credit_reserves(asset, accrual.reserves_accrued)
        if accrual.interest:
            logger.debug(
                "Accrued %s: interest=%d reserves=%d index=%d",
                asset, accrual.interest, accrual.reserves_accrued, accrual.borrow_index,
            )
        return accrual

    # ------------------------------------------------------------------
    # Balances
    # ------------------------------------------------------------------

    def deposit_balance(self, asset: str, user: str) -> int:
        position = self._positions.get((asset, user))
        return position.deposit_principal if position else 0

    def borrow_balance(self, asset: str, user: str) -> int:
        """Current debt, rebased to the projected index."""
        position = self._positions.get((asset, user))
        if position is None or position.borrow_principal == 0:
            return 0
        index = self.projected(asset).borrow_index
        return mul_div_up(position.borrow_principal, index, position.borrow_index_snapshot)

    def available_liquidity(self, asset: str) -> int:
        state = self._reserves.get(asset)
        if state is None:
            return 0
        return max(state.total_deposits - state.total_borrows, 0)

    def _rebase(self, asset: str, user: str) -> UserPosition:
        """Bring the user's debt to the current (already accrued) index."""
        position = self._position(asset, user)
        index = self._reserve(asset).borrow_index
        if position.borrow_principal:
            position.borrow_principal = mul_div_up(
                position.borrow_principal, index, position.borrow_index_snapshot
            )
        position.borrow_index_snapshot = index
        return position

    # ------------------------------------------------------------------
    # Operations (callers accrue first)
    # ------------------------------------------------------------------

    def deposit(self, asset: str, user: str, amount: int) -> None:
        _require_positive(amount)
        self._token_bank.transfer_from(asset, self.address, user, self.address, amount)
        position = self._position(asset, user)
        position.deposit_principal += amount
        self._reserve(asset).total_deposits += amount

    def require_liquidity(self, asset: str, amount: int, action: str) -> None:
        available = self.available_liquidity(asset)
        if amount > available:
            raise InsufficientLiquidityError(
                f"{action} of {amount} {asset} exceeds available liquidity {available}"
            )

    def resolve_withdrawal(self, asset: str, user: str, amount: int) -> int:
        """Amount a withdrawal would pay out, MAX_AMOUNT resolved; raises if it cannot."""
        _require_positive(amount)
        deposited = self.deposit_balance(asset, user)
        if amount == MAX_AMOUNT:
            amount = deposited
            if amount == 0:
                raise InsufficientBalanceError(f"{user} has no {asset} deposit")
        if amount > deposited:
            raise InsufficientBalanceError(
                f"{user} deposited {deposited} {asset}, cannot withdraw {amount}"
            )
        self.require_liquidity(asset, amount, "Withdrawal")
        return amount

    def withdraw(
        self, asset: str, user: str, amount: int, recipient: str | None = None
    ) -> int:
        amount = self.resolve_withdrawal(asset, user, amount)
        position = self._position(asset, user)
        position.deposit_principal -= amount
        self._reserve(asset).total_deposits -= amount
        self._token_bank.transfer(asset, self.address, recipient or user, amount)
        return amount

    def transfer_deposit(self, asset: str, sender: str, recipient: str, amount: int) -> None:
        """Move deposit principal between users without touching liquidity."""
        _require_positive(amount)
        source = self._position(asset, sender)
        if amount > source.deposit_principal:
            raise InsufficientBalanceError(
                f"{sender} deposited {source.deposit_principal} {asset}, cannot move {amount}"
            )
        source.deposit_principal -= amount
        self._position(asset, recipient).deposit_principal += amount

    def require_borrowable(self, asset: str, amount: int) -> None:
        _require_positive(amount)
        self.require_liquidity(asset, amount, "Borrow")

    def borrow(self, asset: str, user: str, amount: int) -> None:
        self.require_borrowable(asset, amount)
        position = self._rebase(asset, user)
        position.borrow_principal += amount
        position.total_borrowed += amount
        self._reserve(asset).total_borrows += amount
        self._token_bank.transfer(asset, self.address, user, amount)

    def repay(self, asset: str, payer: str, borrower: str, amount: int) -> int:
        """Apply up to ``amount`` against the borrower's debt; return what was applied."""
        _require_positive(amount)
        position = self._rebase(asset, borrower)
        debt = position.borrow_principal
        if debt == 0:
            raise NoDebtError(f"{borrower} has no {asset} debt")

        applied = min(amount, debt)
        self._token_bank.transfer_from(asset, self.address, payer, self.address, applied)
        position.borrow_principal -= applied
        state = self._reserve(asset)
        # Per-user rounding can leave a user's debt a few wei above the aggregate.
        state.total_borrows -= min(applied, state.total_borrows)
        return applied

    # ------------------------------------------------------------------
    # Protocol reserves
    # ------------------------------------------------------------------

    def protocol_reserves(self, asset: str) -> int:
        return self._protocol_reserves.get(asset, 0)

    def _credit_reserves(self, asset: str, amount: int) -> None:
        self._remember(("protocol_reserves", asset), self._protocol_reserves.get(asset))
        self._protocol_reserves[asset] = self._protocol_reserves.get(asset, 0) + amount

    def credit_reserves(self, asset: str, amount: int) -> None:
        if amount > 0:
            self._credit_reserves(asset, amount)

    def withdraw_reserves(self, asset: str, recipient: str, amount: int) -> int:
        _require_positive(amount)
        held = self.protocol_reserves(asset)
        if amount == MAX_AMOUNT:
            amount = held
            if amount == 0:
                raise InsufficientReservesError(f"No {asset} reserves accrued")
        if amount > held:
            raise InsufficientReservesError(
                f"Requested {amount} {asset} but only {held} in reserves"
            )
        # Idle depositor liquidity is never paid out as reserves.
        free = self._token_bank.balance_of(asset, self.address) - self.available_liquidity(asset)
        if amount > free:
            raise InsufficientLiquidityError(
                f"Only {max(free, 0)} of {amount} {asset} reserves collected in cash"
            )
        self._remember(("protocol_reserves", asset), held)
        self._protocol_reserves[asset] = held - amount
        self._token_bank.transfer(asset, self.address, recipient, amount)
        return amount

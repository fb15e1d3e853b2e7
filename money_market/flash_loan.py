"""Flash loans: uncollateralized loans repaid within one call."""
from __future__ import annotations

import logging

from .assets import AssetConfigStore
from .constants import BPS, DEFAULT_FLASH_LOAN_FEE_BPS
from .errors import (
    FlashLoanExecutionFailedError,
    FlashLoanNotRepaidError,
    InsufficientLiquidityError,
    InvalidParameterError,
    ZeroAmountError,
)
from .fixed_point import mul_div_up
from .interfaces.flash_loan_receiver import FlashLoanReceiver
from .interfaces.token import TokenBank
from .ledger import ReserveLedger

logger = logging.getLogger(__name__)


class FlashLoanDispatcher:
    """Lends idle liquidity to a receiver for the duration of its callback.

    Settlement is checked against the market's own token balance, so the
    receiver may repay by any transfer it likes. The fee goes to protocol
    reserves; deposits and borrows are never touched.
    """

    def __init__(
        self,
        ledger: ReserveLedger,
        assets: AssetConfigStore,
        token_bank: TokenBank,
        fee_bps: int = DEFAULT_FLASH_LOAN_FEE_BPS,
    ) -> None:
        if not 0 <= fee_bps <= BPS:
            raise InvalidParameterError(f"Flash loan fee must be within [0, {BPS}] bps")
        self._ledger = ledger
        self._assets = assets
        self._token_bank = token_bank
        self.fee_bps = fee_bps

    def fee_for(self, amount: int) -> int:
        return mul_div_up(amount, self.fee_bps, BPS)

    def flash_loan(
        self,
        initiator: str,
        asset: str,
        amount: int,
        receiver: FlashLoanReceiver,
        params: bytes = b"",
    ) -> int:
        """Run the loan and return the fee collected."""
        if amount <= 0:
            raise ZeroAmountError()
        self._assets.require_active(asset)
        available = self._ledger.available_liquidity(asset)
        if amount > available:
            raise InsufficientLiquidityError(
                f"Flash loan of {amount} {asset} exceeds available liquidity {available}"
            )

        fee = self.fee_for(amount)
        market = self._ledger.address
        balance_before = self._token_bank.balance_of(asset, market)

        self._token_bank.transfer(asset, market, receiver.address, amount)
        if not receiver.execute_operation(asset, amount, fee, initiator, params):
            raise FlashLoanExecutionFailedError(
                f"Receiver {receiver.address} reported failure for {amount} {asset}"
            )

        balance_after = self._token_bank.balance_of(asset, market)
        if balance_after < balance_before + fee:
            raise FlashLoanNotRepaidError(
                f"Flash loan of {amount} {asset} not repaid: "
                f"expected {amount + fee}, got back {balance_after - balance_before + amount}"
            )

        self._ledger.credit_reserves(asset, fee)
        logger.info(
            "Flash loan: %s borrowed %d %s via %s, fee %d",
            initiator, amount, asset, receiver.address, fee,
        )
        return fee

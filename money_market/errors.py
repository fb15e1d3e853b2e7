"""Exceptions raised by the lending market.

Every entry point either applies all of its effects or raises one of these
and leaves the market untouched.
"""


class ProtocolError(Exception):
    """Base error class for market errors"""


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class ConfigurationError(ProtocolError):
    """Asset missing, inactive or misconfigured"""


class AssetNotSupportedError(ConfigurationError):
    def __init__(self, asset: str) -> None:
        super().__init__(f"Asset '{asset}' is not supported")
        self.asset = asset


class AssetNotActiveError(ConfigurationError):
    def __init__(self, asset: str) -> None:
        super().__init__(f"Asset '{asset}' is not active")
        self.asset = asset


class BorrowingNotEnabledError(ConfigurationError):
    def __init__(self, asset: str) -> None:
        super().__init__(f"Borrowing is not enabled for '{asset}'")
        self.asset = asset


class InvalidParameterError(ConfigurationError, ValueError):
    """Risk or rate parameter out of range"""


# ---------------------------------------------------------------------------
# Caller input
# ---------------------------------------------------------------------------


class InputError(ProtocolError):
    """Invalid amount for the requested operation"""


class ZeroAmountError(InputError):
    def __init__(self) -> None:
        super().__init__("Amount must be greater than zero")


class InsufficientBalanceError(InputError):
    """Amount exceeds the caller's own balance"""


class NoDebtError(InputError):
    """Repayment or liquidation of an account with no debt in the asset"""


class InsufficientReservesError(InputError):
    """Reserve withdrawal above the accrued protocol reserves"""


# ---------------------------------------------------------------------------
# Market state
# ---------------------------------------------------------------------------


class InsufficientLiquidityError(ProtocolError):
    """Amount exceeds the reserve's idle (non-borrowed) liquidity"""


class InsufficientCollateralError(ProtocolError):
    """Operation would leave the account under-collateralized"""


class PositionHealthyError(ProtocolError):
    """Liquidation attempted on a position with health factor >= 1"""


# ---------------------------------------------------------------------------
# Flash loans
# ---------------------------------------------------------------------------


class FlashLoanError(ProtocolError):
    """Flash loan could not be settled"""


class FlashLoanExecutionFailedError(FlashLoanError):
    """Receiver signalled failure"""


class FlashLoanNotRepaidError(FlashLoanError):
    """Principal plus fee was not returned"""


# ---------------------------------------------------------------------------
# Prices
# ---------------------------------------------------------------------------


class PriceError(ProtocolError):
    """Price source failure"""


class NoValidPriceError(PriceError):
    """No usable price for the asset"""


class StalePriceError(NoValidPriceError):
    """Price older than the source's staleness bound"""


# ---------------------------------------------------------------------------
# Access and execution
# ---------------------------------------------------------------------------


class UnauthorizedError(ProtocolError):
    """Caller is not the market administrator"""


class ReentrancyError(ProtocolError):
    """Entry point called while another call is in progress"""


class TransferError(ProtocolError):
    """Token transfer rejected (balance or allowance)"""

"""Fixed-point scales and protocol-wide constants."""

# Fixed point scale factors
WAD = 10**18  # 1.0 for indexes, prices, rates and health factors
BPS = 10_000  # Basis points (100% = 10000)

SECONDS_PER_YEAR = 365 * 24 * 60 * 60

# Sentinel accepted by withdraw / repay / liquidate / withdraw_reserves
# meaning "the full balance after accrual".
MAX_AMOUNT = 2**256 - 1

# Returned by health_factor() for accounts without debt.
HEALTH_FACTOR_MAX = 2**256 - 1

# Flash loans
DEFAULT_FLASH_LOAN_FEE_BPS = 9  # 0.09%

# Default kinked rate curve (annual, bps)
DEFAULT_BASE_RATE_BPS = 0
DEFAULT_SLOPE1_BPS = 400
DEFAULT_SLOPE2_BPS = 7500
DEFAULT_OPTIMAL_UTILIZATION_BPS = 8000

# Default risk parameters (bps)
DEFAULT_COLLATERAL_FACTOR = 7500
DEFAULT_LIQUIDATION_THRESHOLD = 8000
DEFAULT_LIQUIDATION_BONUS = 500
DEFAULT_RESERVE_FACTOR = 1000

DEFAULT_DECIMALS = 18
MAX_DECIMALS = 36

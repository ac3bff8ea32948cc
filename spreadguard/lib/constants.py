"""
Default parameters for the spread risk guard.

This module defines the constants used throughout the guard:
- Spread window boundaries (daily rollover / maintenance period)
- Drawdown protection thresholds
- Default pip sizes for common FX symbols

Defaults follow the broker rollover window the guard was built for:
spreads widen between 21:00 and 22:00 UTC, so protective stops and
pending entries are pulled for that hour.
"""

from zoneinfo import ZoneInfo


# =============================================================================
# Timezone
# =============================================================================

UTC_TIMEZONE = ZoneInfo("UTC")
DEFAULT_TIMEZONE_NAME = "UTC"


# =============================================================================
# Spread Window
# =============================================================================

DEFAULT_WINDOW_START_HOUR = 21
DEFAULT_WINDOW_START_MINUTE = 0
DEFAULT_WINDOW_END_HOUR = 22
DEFAULT_WINDOW_END_MINUTE = 0


# =============================================================================
# Drawdown Protection
# =============================================================================

DEFAULT_PERCENT_RISK = 10.0  # % of balance tolerated as floating loss per position
DEFAULT_TICK_THRESHOLD = 10  # Consecutive breaching ticks before forced close

MIN_PERCENT_RISK = 0.0
MAX_PERCENT_RISK = 100.0
MIN_TICK_THRESHOLD = 1

# Above this the guard rarely closes anything before the account is hurt
HIGH_PERCENT_RISK_WARNING = 50.0


# =============================================================================
# Pip Sizes
# =============================================================================

DEFAULT_PIP_SIZE = 0.0001
JPY_PIP_SIZE = 0.01

PIP_SIZES = {
    "EURUSD": 0.0001,
    "GBPUSD": 0.0001,
    "AUDUSD": 0.0001,
    "NZDUSD": 0.0001,
    "USDCHF": 0.0001,
    "USDCAD": 0.0001,
    "EURGBP": 0.0001,
    "USDJPY": JPY_PIP_SIZE,
    "EURJPY": JPY_PIP_SIZE,
    "GBPJPY": JPY_PIP_SIZE,
    "XAUUSD": 0.1,
}


def default_pip_size(symbol: str) -> float:
    """
    Get the conventional pip size for a symbol.

    Args:
        symbol: Instrument symbol (e.g., "EURUSD")

    Returns:
        Pip size for the symbol (JPY crosses use 0.01)
    """
    symbol = symbol.upper()
    if symbol in PIP_SIZES:
        return PIP_SIZES[symbol]
    if symbol.endswith("JPY"):
        return JPY_PIP_SIZE
    return DEFAULT_PIP_SIZE

"""
Decision Core Constants

Centralized chain units, monitoring windows and detector thresholds.
"""

# Wrapped SOL mint (quote side of every pool we trade)
SOL_MINT = "So11111111111111111111111111111111111111112"

# 1 SOL = 10^9 lamports
LAMPORTS_PER_SOL = 1_000_000_000

# Price window kept per token for crash detection (seconds)
PRICE_WINDOW_SECONDS = 30.0

# Red candle: peak-to-trough drop inside the most recent sub-window
RED_CANDLE_WINDOW_SECONDS = 10.0
RED_CANDLE_DROP_PCT = 0.6
RED_CANDLE_MIN_SAMPLES = 2

# Large sell: any single-account balance swing above this (in SOL)
LARGE_SELL_THRESHOLD_SOL = 10.0
LARGE_SELL_TX_LOOKBACK = 10

# Creator sell: creator wallet activity newer than this is suspicious
CREATOR_ACTIVITY_WINDOW_SECONDS = 30
CREATOR_TX_LOOKBACK = 5

# Position sizing
MIN_TRADE_SIZE_SOL = 0.001
DEFAULT_RISK_PERCENT = 1.0
RISK_PRESETS = {
    "conservative": 1.0,
    "moderate": 2.5,
    "aggressive": 5.0,
}

# Severity ordering (higher is worse)
SEVERITY_RANK = {
    "medium": 1,
    "high": 2,
    "critical": 3,
}

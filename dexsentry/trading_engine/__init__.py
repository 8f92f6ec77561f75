"""Decision engine package - validation, exit monitoring, trailing stops, sizing"""

from dexsentry.trading_engine import (  # noqa: F401
    emergency_exit,
    risk_limits,
    risk_sizer,
    trailing_stops,
    validation_pipeline,
)

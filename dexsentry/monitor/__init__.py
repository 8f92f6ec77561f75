"""Periodic background sweeps over open positions and price alerts"""

from dexsentry.monitor.position_monitor import PositionDecision, PositionMonitor
from dexsentry.monitor.price_alert_monitor import PriceAlertMonitor

__all__ = ["PositionDecision", "PositionMonitor", "PriceAlertMonitor"]

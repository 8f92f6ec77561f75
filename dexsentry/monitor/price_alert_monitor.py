"""
Price Alert Monitor

Checks active watchlist alerts against current prices once a minute.
Triggered alerts are marked so they fire only once, and announced as
priceAlert.triggered events.
"""

import asyncio
import logging
from typing import List, Optional

from dexsentry.data_sources.base import AlertSource, PriceAlert, PriceSource
from dexsentry.events import PRICE_ALERT_TRIGGERED, EventDispatcher

logger = logging.getLogger(__name__)


class PriceAlertMonitor:
    def __init__(
        self,
        alerts: AlertSource,
        prices: PriceSource,
        events: Optional[EventDispatcher] = None,
        interval_seconds: float = 60.0,
    ):
        self.alerts = alerts
        self.prices = prices
        self.events = events or EventDispatcher()
        self.interval_seconds = interval_seconds
        self._task: Optional[asyncio.Task] = None
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self):
        if self._running:
            logger.warning("Price alert monitor already running")
            return

        self._running = True
        self._task = asyncio.create_task(self._monitor_loop())
        logger.info(f"Starting price alert monitor (interval: {self.interval_seconds}s)")

    async def stop(self):
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("Price alert monitor stopped")

    async def _monitor_loop(self):
        while self._running:
            try:
                await self.run_once()
            except Exception as e:
                logger.error(f"Error in price alert monitor loop: {e}")
            await asyncio.sleep(self.interval_seconds)

    async def run_once(self) -> List[PriceAlert]:
        """Check every active alert once; returns the alerts that fired"""
        try:
            active = await self.alerts.get_active_alerts()
            if not active:
                return []

            logger.debug(f"Checking {len(active)} price alerts")
            token_ids = list(dict.fromkeys(a.token_id for a in active))
            prices = await self.prices.fetch_prices(token_ids)
        except Exception as e:
            logger.error(f"Error checking price alerts: {e}")
            return []

        fired = []
        for alert in active:
            token_price = prices.get(alert.token_id)
            if token_price is None or not token_price.price:
                continue

            current_price = token_price.price
            label = alert.symbol or alert.token_id[:8]
            try:
                triggered = alert.is_triggered_by(current_price)
            except Exception as e:
                logger.error(f"Skipping malformed alert for {label}: {e}")
                continue
            if not triggered:
                continue

            logger.info(
                f"Price alert triggered: {label} {alert.condition} {alert.target_price} (current: {current_price})"
            )
            try:
                await self.alerts.mark_triggered(alert)
            except Exception as e:
                logger.error(f"Failed to mark alert for {label} as triggered: {e}")
                continue

            self.events.emit(
                PRICE_ALERT_TRIGGERED,
                {
                    "token": alert.token_id,
                    "symbol": alert.symbol,
                    "name": alert.name,
                    "user_id": alert.user_id,
                    "current_price": current_price,
                    "target_price": alert.target_price,
                    "condition": alert.condition,
                },
            )
            fired.append(alert)
        return fired

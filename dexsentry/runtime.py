"""
Decision core assembly

Wires settings, data-source adapters, the decision engine and the background
monitors together for a host process. The host supplies what the core does
not own: open positions, alerts, trade execution and validation thresholds.
"""

import logging
from typing import Any, Dict, Optional, Union

from dexsentry.cache import api_cache
from dexsentry.config import Settings
from dexsentry.data_sources import (
    AlertSource,
    BirdeyePriceSource,
    ChainReader,
    ExecutionGateway,
    PositionSource,
    PriceSource,
    RiskReportSource,
    RugCheckClient,
    SolanaRpcClient,
)
from dexsentry.events import EventDispatcher
from dexsentry.logging_config import configure_logging
from dexsentry.monitor import PositionMonitor, PriceAlertMonitor
from dexsentry.price_history import PriceHistoryStore
from dexsentry.services import EntryCoordinator
from dexsentry.strategies import create_default_engine
from dexsentry.trading_engine.emergency_exit import EmergencyExitMonitor
from dexsentry.trading_engine.risk_limits import TradeLimits
from dexsentry.trading_engine.risk_sizer import RiskSizer
from dexsentry.trading_engine.validation_pipeline import TradeValidationPipeline, ValidationConfig

logger = logging.getLogger(__name__)


class DecisionCore:
    """Container for the assembled components plus startup/shutdown hooks"""

    def __init__(
        self,
        settings: Settings,
        positions: PositionSource,
        execution: ExecutionGateway,
        validation_config: Union[ValidationConfig, Dict[str, Any]],
        alerts: Optional[AlertSource] = None,
        chain: Optional[ChainReader] = None,
        prices: Optional[PriceSource] = None,
        risk_source: Optional[RiskReportSource] = None,
        events: Optional[EventDispatcher] = None,
    ):
        self.settings = settings
        self.events = events or EventDispatcher()

        self.chain = chain or SolanaRpcClient(
            settings.rpc_url,
            commitment=settings.solana_commitment,
            timeout=settings.http_timeout_seconds,
        )
        self.prices = prices or BirdeyePriceSource(
            settings.birdeye_api_key,
            base_url=settings.birdeye_base_url,
            timeout=settings.http_timeout_seconds,
        )
        self.risk_source = risk_source or RugCheckClient(
            base_url=settings.rugcheck_base_url,
            timeout=settings.http_timeout_seconds,
            cache_ttl_seconds=settings.risk_report_cache_ttl_seconds,
            cache=api_cache,
        )

        self.exit_monitor = EmergencyExitMonitor(
            self.chain,
            price_windows=PriceHistoryStore(),
            detector_timeout_seconds=settings.detector_timeout_seconds,
        )
        self.position_monitor = PositionMonitor.from_settings(
            settings,
            positions=positions,
            prices=self.prices,
            execution=execution,
            exit_monitor=self.exit_monitor,
            events=self.events,
        )
        self.price_alert_monitor = None
        if alerts is not None:
            self.price_alert_monitor = PriceAlertMonitor(
                alerts, self.prices, events=self.events, interval_seconds=settings.price_alert_interval_seconds
            )

        self.entry_coordinator = EntryCoordinator(
            engine=create_default_engine(),
            pipeline=TradeValidationPipeline(self.chain, self.risk_source),
            execution=execution,
            validation_config=validation_config,
            sizer=RiskSizer(),
            limits=TradeLimits.from_settings(settings),
            events=self.events,
            history_window_seconds=settings.market_history_window_seconds,
        )

    async def start(self):
        configure_logging(self.settings.log_level)
        logger.info("Starting decision core monitors...")
        await self.position_monitor.start()
        if self.price_alert_monitor is not None:
            await self.price_alert_monitor.start()

    async def stop(self):
        logger.info("Stopping decision core monitors...")
        await self.position_monitor.stop()
        if self.price_alert_monitor is not None:
            await self.price_alert_monitor.stop()
        await self.events.drain()

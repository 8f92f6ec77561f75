"""
Position Monitor Service

Sweeps every open position on a fixed interval and decides whether to exit:
1. Emergency triggers (rug pull / crash) - always first
2. Trailing take-profit once activated
3. Fixed take-profit / stop-loss

Each sweep runs in two phases. Decisions for all positions are computed
concurrently without touching trailing or price-window state; only when the
sweep is still current is that state stored, events emitted and exits
submitted. Stopping the monitor (or calling cancel_sweep) invalidates
an in-flight sweep so its decisions are dropped instead of applied.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, List, Optional

from dexsentry.data_sources.base import ExecutionGateway, Position, PositionSource, PriceSource
from dexsentry.events import POSITION_EMERGENCY_EXIT, POSITION_TRAILING_UPDATE, EventDispatcher
from dexsentry.trading_engine.emergency_exit import EmergencyExitMonitor, ExitCheckResult
from dexsentry.trading_engine.trailing_stops import TrailingStopTracker, TrailingStopUpdate

logger = logging.getLogger(__name__)

ACTION_HOLD = "hold"
ACTION_EXIT = "exit"

EXIT_EMERGENCY = "emergency_exit"
EXIT_TRAILING_STOP = "trailing_stop"
EXIT_TAKE_PROFIT = "take_profit"
EXIT_STOP_LOSS = "stop_loss"


@dataclass
class PositionDecision:
    position: Position
    action: str
    reason: str
    current_price: Optional[float] = None
    pnl_pct: Optional[float] = None
    exit_type: Optional[str] = None
    severity: Optional[str] = None
    trailing: Optional[TrailingStopUpdate] = None
    emergency: Optional[ExitCheckResult] = None
    execution_result: Any = None
    observed_at: Optional[float] = None

    @property
    def token_id(self) -> str:
        return self.position.token_id

    @property
    def should_exit(self) -> bool:
        return self.action == ACTION_EXIT


class PositionMonitor:
    """Background service that applies exit rules to open positions"""

    def __init__(
        self,
        positions: PositionSource,
        prices: PriceSource,
        execution: ExecutionGateway,
        exit_monitor: EmergencyExitMonitor,
        trailing: Optional[TrailingStopTracker] = None,
        events: Optional[EventDispatcher] = None,
        interval_seconds: float = 5.0,
        take_profit_pct: float = 0.10,
        stop_loss_pct: float = 0.02,
    ):
        self.positions = positions
        self.prices = prices
        self.execution = execution
        self.exit_monitor = exit_monitor
        self.trailing = trailing or TrailingStopTracker()
        self.events = events or EventDispatcher()
        self.interval_seconds = interval_seconds
        self.take_profit_pct = take_profit_pct
        self.stop_loss_pct = stop_loss_pct

        self._task: Optional[asyncio.Task] = None
        self._running = False
        self._generation = 0

    @classmethod
    def from_settings(cls, settings, **components) -> "PositionMonitor":
        components.setdefault(
            "trailing", TrailingStopTracker(settings.trailing_activation_pct, settings.trailing_stop_pct)
        )
        return cls(
            interval_seconds=settings.position_monitor_interval_seconds,
            take_profit_pct=settings.take_profit_pct,
            stop_loss_pct=settings.stop_loss_pct,
            **components,
        )

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self):
        """Start the background monitor task."""
        if self._running:
            logger.warning("Position monitor already running")
            return

        self._running = True
        self._task = asyncio.create_task(self._monitor_loop())
        logger.info(f"Position monitor started (interval: {self.interval_seconds}s)")

    async def stop(self):
        """Stop the monitor; an in-flight sweep is discarded."""
        self._running = False
        self.cancel_sweep()
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("Position monitor stopped")

    def cancel_sweep(self) -> None:
        """Invalidate any sweep currently computing decisions"""
        self._generation += 1

    async def _monitor_loop(self):
        while self._running:
            try:
                await self.run_once()
            except Exception as e:
                logger.error(f"Error in position monitor loop: {e}")
            await asyncio.sleep(self.interval_seconds)

    async def run_once(self, now: Optional[float] = None) -> List[PositionDecision]:
        """One sweep over all open positions; returns the applied decisions"""
        generation = self._generation
        now = time.time() if now is None else now

        try:
            positions = await self.positions.get_open_positions()
        except Exception as e:
            logger.error(f"Failed to load open positions: {e}")
            return []
        if not positions:
            return []

        token_ids = list(dict.fromkeys(p.token_id for p in positions))
        try:
            prices = await self.prices.fetch_prices(token_ids)
        except Exception as e:
            logger.error(f"Failed to fetch prices for {len(token_ids)} positions: {e}")
            return []

        decisions = await asyncio.gather(
            *(self._evaluate_position(p, prices.get(p.token_id), now) for p in positions)
        )

        if generation != self._generation:
            logger.info(f"Sweep cancelled, discarding {len(decisions)} decision(s)")
            return []

        for decision in decisions:
            await self._apply(decision)
        return list(decisions)

    async def _evaluate_position(self, position: Position, token_price, now: float) -> PositionDecision:
        short_id = position.token_id[:8]

        if token_price is None or not token_price.price:
            logger.debug(f"No price available for {short_id}, skipping")
            return PositionDecision(position, ACTION_HOLD, "No price available")

        if not position.entry_price or position.entry_price <= 0:
            logger.warning(f"Position {short_id} has invalid entry price {position.entry_price!r}, skipping")
            return PositionDecision(position, ACTION_HOLD, "Invalid entry price", current_price=token_price.price)

        current_price = token_price.price
        pnl_pct = (current_price - position.entry_price) / position.entry_price
        trailing = self.trailing.peek(position.token_id, pnl_pct)

        decision = PositionDecision(
            position,
            ACTION_HOLD,
            "Within limits",
            current_price=current_price,
            pnl_pct=pnl_pct,
            trailing=trailing,
            observed_at=now,
        )

        emergency = await self.exit_monitor.check_all_triggers(
            position.token_id,
            current_price,
            pool_address=position.pool_address,
            creator_address=position.creator_address,
            now=now,
            record=False,
        )
        decision.emergency = emergency
        if emergency.should_exit:
            decision.action = ACTION_EXIT
            decision.exit_type = EXIT_EMERGENCY
            decision.reason = emergency.critical_reason or "Emergency exit"
            decision.severity = emergency.severity
            logger.error(f"EMERGENCY EXIT TRIGGERED for {short_id}: {decision.reason}")
            return decision

        if trailing.should_exit:
            decision.action = ACTION_EXIT
            decision.exit_type = EXIT_TRAILING_STOP
            decision.reason = trailing.reason
            return decision

        take_profit = position.take_profit_pct if position.take_profit_pct is not None else self.take_profit_pct
        stop_loss = position.stop_loss_pct if position.stop_loss_pct is not None else self.stop_loss_pct

        if take_profit and pnl_pct >= take_profit and not trailing.trailing_activated:
            decision.action = ACTION_EXIT
            decision.exit_type = EXIT_TAKE_PROFIT
            decision.reason = f"Take profit ({pnl_pct * 100:.1f}%)"
        elif stop_loss and pnl_pct <= -stop_loss:
            decision.action = ACTION_EXIT
            decision.exit_type = EXIT_STOP_LOSS
            decision.reason = f"Stop loss ({pnl_pct * 100:.1f}%)"

        return decision

    async def _apply(self, decision: PositionDecision) -> None:
        token_id = decision.token_id

        if decision.trailing is not None:
            self.trailing.commit(decision.trailing)
            self.exit_monitor.record_price(token_id, decision.current_price, decision.observed_at)
            if decision.trailing.changed:
                self.events.emit(POSITION_TRAILING_UPDATE, decision.trailing.to_event())

        if decision.exit_type == EXIT_EMERGENCY:
            self.events.emit(
                POSITION_EMERGENCY_EXIT,
                {
                    "token": token_id,
                    "reason": decision.reason,
                    "severity": decision.severity,
                    "triggers": [t.to_dict() for t in decision.emergency.triggers if t.triggered],
                },
            )

        if not decision.should_exit:
            return

        logger.warning(f"Position exit triggered for {token_id[:8]}: {decision.reason}")
        try:
            decision.execution_result = await self.execution.execute_exit(decision.position, decision.reason)
        except Exception as e:
            # Keep state so the next sweep retries the exit
            logger.error(f"Exit execution failed for {token_id[:8]}: {e}")
            return

        self.trailing.discard(token_id)
        self.exit_monitor.discard(token_id)

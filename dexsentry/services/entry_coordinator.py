"""
Entry Coordinator

Decides whether to open a position in a token:
1. Strategy engine must produce a buy signal
2. Validation pipeline must approve the token / pool
3. Risk sizer turns the balance into a trade size
4. Portfolio limits must allow the trade
5. Execution gateway receives the approved entry

Signals and rejections are emitted as events; the coordinator itself never
raises on a rejected or failed entry.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from dexsentry.data_sources.base import ExecutionGateway
from dexsentry.events import SIGNAL_GENERATED, TRADE_REJECTED, EventDispatcher
from dexsentry.price_history import PriceHistoryStore
from dexsentry.strategies import StrategyContext, StrategyEngine, StrategyResult
from dexsentry.trading_engine.risk_limits import RiskCheckResult, TradeLimits, check_trade_allowed
from dexsentry.trading_engine.risk_sizer import RiskCalculation, RiskSizer
from dexsentry.trading_engine.validation_pipeline import (
    TradeValidationPipeline,
    ValidationConfig,
    ValidationResult,
)

logger = logging.getLogger(__name__)

ACTION_BUY = "buy"
ACTION_SKIP = "skip"


@dataclass
class EntryDecision:
    token_id: str
    action: str
    reason: str
    signal: Optional[StrategyResult] = None
    validation: Optional[ValidationResult] = None
    sizing: Optional[RiskCalculation] = None
    risk_check: Optional[RiskCheckResult] = None
    rejected_reasons: List[str] = field(default_factory=list)
    execution_result: Any = None

    @property
    def executed(self) -> bool:
        return self.action == ACTION_BUY


class EntryCoordinator:
    """Turns market samples for a token into an entry decision"""

    def __init__(
        self,
        engine: StrategyEngine,
        pipeline: TradeValidationPipeline,
        execution: ExecutionGateway,
        validation_config: Union[ValidationConfig, Dict[str, Any]],
        sizer: Optional[RiskSizer] = None,
        limits: Optional[TradeLimits] = None,
        events: Optional[EventDispatcher] = None,
        history_window_seconds: float = 600.0,
    ):
        self.engine = engine
        self.pipeline = pipeline
        self.execution = execution
        self.validation_config = validation_config
        self.sizer = sizer or RiskSizer()
        self.limits = limits or TradeLimits()
        self.events = events or EventDispatcher()

        self.price_history = PriceHistoryStore(history_window_seconds)
        self.liquidity_history = PriceHistoryStore(history_window_seconds)
        self.volume_history = PriceHistoryStore(history_window_seconds)

    def record_market_sample(
        self,
        token_id: str,
        price: float,
        liquidity: Optional[float] = None,
        volume: Optional[float] = None,
        now: Optional[float] = None,
    ) -> None:
        self.price_history.record(token_id, price, now)
        if liquidity is not None:
            self.liquidity_history.record(token_id, liquidity, now)
        if volume is not None:
            self.volume_history.record(token_id, volume, now)

    def build_context(self, token_id: str, token_meta: Optional[Dict[str, Any]] = None) -> StrategyContext:
        prices = self.price_history.prices(token_id)
        liquidity = self.liquidity_history.prices(token_id)
        volume = self.volume_history.prices(token_id)
        return StrategyContext(
            token_id=token_id,
            price_history=tuple(prices),
            liquidity_history=tuple(liquidity),
            volume_history=tuple(volume),
            current_price=prices[-1] if prices else 0.0,
            current_liquidity=liquidity[-1] if liquidity else 0.0,
            current_volume=volume[-1] if volume else 0.0,
            token_meta=dict(token_meta or {}),
        )

    def discard(self, token_id: str) -> None:
        self.price_history.discard(token_id)
        self.liquidity_history.discard(token_id)
        self.volume_history.discard(token_id)

    async def evaluate_token(
        self,
        token_id: str,
        pool_id: str,
        balance_sol: float,
        open_positions: int = 0,
        daily_loss_sol: float = 0.0,
        token_meta: Optional[Dict[str, Any]] = None,
        risk_percent: Optional[float] = None,
        risk_amount: Optional[float] = None,
        known_liquidity: Optional[float] = None,
    ) -> EntryDecision:
        short_id = token_id[:8]
        context = self.build_context(token_id, token_meta)

        # Strategy engine: evaluate all strategies before validation
        signal = await self.engine.get_best_signal(context)
        if signal is not None:
            self.events.emit(SIGNAL_GENERATED, {"token": token_id, **signal.to_dict()})

        if signal is None or not signal.should_buy:
            reason = f"No buy signal: {signal.reason}" if signal else "No buy signal"
            logger.debug(f"{short_id}: {reason}")
            return EntryDecision(token_id, ACTION_SKIP, reason, signal=signal)

        logger.info(f"{short_id}: strategy {signal.strategy} signaled a buy, proceeding to validation")

        validation = await self.pipeline.validate(token_id, pool_id, self.validation_config, known_liquidity)
        if not validation.approved:
            return self._reject(
                EntryDecision(token_id, ACTION_SKIP, validation.reason or "Validation failed", signal, validation),
                list(validation.failed_filters),
            )

        sizing = self.sizer.calculate(balance_sol, risk_percent=risk_percent, risk_amount=risk_amount)
        if sizing.error:
            return self._reject(
                EntryDecision(token_id, ACTION_SKIP, sizing.error, signal, validation, sizing),
                ["sizing_error"],
            )

        risk_check = check_trade_allowed(
            sizing.risk_amount, open_positions, daily_loss_sol, balance_sol, self.limits
        )
        if not risk_check.allowed:
            return self._reject(
                EntryDecision(token_id, ACTION_SKIP, risk_check.reason, signal, validation, sizing, risk_check),
                ["risk_limit"],
            )

        decision = EntryDecision(
            token_id, ACTION_BUY, signal.reason, signal, validation, sizing, risk_check
        )
        try:
            decision.execution_result = await self.execution.execute_entry(token_id, sizing.risk_amount, signal.reason)
        except Exception as e:
            logger.error(f"Entry execution failed for {short_id}: {e}")
            decision.action = ACTION_SKIP
            decision.reason = f"Execution failed: {e}"
            return decision

        logger.info(f"Entry submitted for {short_id}: {sizing.risk_amount} SOL ({signal.reason})")
        return decision

    def _reject(self, decision: EntryDecision, reasons: List[str]) -> EntryDecision:
        decision.rejected_reasons = reasons
        logger.warning(f"Skipping trade for {decision.token_id[:8]}: {decision.reason}")
        self.events.emit(TRADE_REJECTED, {"token": decision.token_id, "reasons": reasons, "reason": decision.reason})
        return decision

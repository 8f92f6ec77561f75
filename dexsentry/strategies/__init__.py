"""
Trading Strategy Framework

This module provides the strategy interface and the engine that runs every
registered strategy against the same market snapshot. Each strategy
implements its own signal detection with fixed thresholds.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Sequence

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StrategyContext:
    """Per-evaluation market snapshot for one token (read-only)"""

    token_id: str
    price_history: Sequence[float] = ()
    liquidity_history: Sequence[float] = ()
    volume_history: Sequence[float] = ()
    current_price: float = 0.0
    current_liquidity: float = 0.0
    current_volume: float = 0.0
    token_meta: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class StrategyResult:
    """Opinion of a single strategy"""

    should_buy: bool
    should_sell: bool
    reason: str
    score: Optional[float] = None
    strategy: Optional[str] = None

    @property
    def is_hold(self) -> bool:
        return not self.should_buy and not self.should_sell

    def to_dict(self) -> Dict[str, Any]:
        return {
            "strategy": self.strategy,
            "should_buy": self.should_buy,
            "should_sell": self.should_sell,
            "reason": self.reason,
            "score": self.score,
        }


def hold(reason: str, score: Optional[float] = None) -> StrategyResult:
    """Neither buy nor sell"""
    return StrategyResult(should_buy=False, should_sell=False, reason=reason, score=score)


class TradingStrategy(ABC):
    """
    Base class for all signal strategies.

    Strategies must be pure with respect to the context and must not raise
    for short history; they return a hold result explaining why.
    """

    name: str = "base"

    @abstractmethod
    async def evaluate(self, context: StrategyContext) -> StrategyResult:
        """Return this strategy's opinion for the snapshot"""
        pass


class StrategyEngine:
    """Ordered registry of strategies; duplicates are kept and all run"""

    def __init__(self):
        self._strategies: List[TradingStrategy] = []

    def register(self, strategy: TradingStrategy) -> TradingStrategy:
        self._strategies.append(strategy)
        logger.debug(f"Registered strategy {strategy.name} ({len(self._strategies)} total)")
        return strategy

    @property
    def strategies(self) -> List[TradingStrategy]:
        return list(self._strategies)

    def __len__(self) -> int:
        return len(self._strategies)

    async def _run_one(self, strategy: TradingStrategy, context: StrategyContext) -> StrategyResult:
        try:
            result = await strategy.evaluate(context)
        except Exception as e:
            logger.error(f"Strategy {strategy.name} failed for {context.token_id[:8]}: {e}")
            result = hold(f"Strategy error: {e}")
        if result.strategy is None:
            result = replace(result, strategy=strategy.name)
        return result

    async def evaluate_all(self, context: StrategyContext) -> List[StrategyResult]:
        """
        Run every strategy concurrently.

        Results come back in registration order regardless of which
        strategy finished first.
        """
        if not self._strategies:
            return []
        return list(await asyncio.gather(*(self._run_one(s, context) for s in self._strategies)))

    async def get_best_signal(self, context: StrategyContext) -> Optional[StrategyResult]:
        """
        Pick one signal from all strategy results.

        Priority: first buy, then first sell, then the highest score among
        results that define one. None when nothing qualifies.
        """
        results = await self.evaluate_all(context)
        return select_best_signal(results)


def select_best_signal(results: Sequence[StrategyResult]) -> Optional[StrategyResult]:
    for result in results:
        if result.should_buy:
            return result
    for result in results:
        if result.should_sell:
            return result

    best = None
    for result in results:
        if result.score is None:
            continue
        if best is None or result.score > best.score:
            best = result
    return best


# Import strategy implementations after the base classes they subclass
from dexsentry.strategies import (  # noqa: E402
    breakout,
    copy_trading,
    liquidity_growth,
    mean_reversion,
    momentum,
    sniper,
)


def create_default_engine() -> StrategyEngine:
    """Engine with the six reference strategies registered"""
    engine = StrategyEngine()
    engine.register(momentum.MomentumStrategy())
    engine.register(breakout.BreakoutStrategy())
    engine.register(liquidity_growth.LiquidityGrowthStrategy())
    engine.register(mean_reversion.MeanReversionStrategy())
    engine.register(sniper.SniperStrategy())
    engine.register(copy_trading.CopyTradingStrategy())
    return engine


__all__ = [
    "StrategyContext",
    "StrategyResult",
    "StrategyEngine",
    "TradingStrategy",
    "create_default_engine",
    "hold",
    "select_best_signal",
    # Strategy implementations
    "breakout",
    "copy_trading",
    "liquidity_growth",
    "mean_reversion",
    "momentum",
    "sniper",
]

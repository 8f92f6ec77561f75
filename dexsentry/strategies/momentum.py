"""
Momentum Strategy

Buys when price has risen more than the threshold over the last N samples,
sells when it has fallen by more than the threshold.
"""

from dexsentry.strategies import StrategyContext, StrategyResult, TradingStrategy, hold

MOMENTUM_WINDOW = 5  # Price samples to look back
MOMENTUM_THRESHOLD = 0.03  # 3% move


class MomentumStrategy(TradingStrategy):
    name = "momentum"

    async def evaluate(self, context: StrategyContext) -> StrategyResult:
        history = context.price_history
        if not history or len(history) < MOMENTUM_WINDOW:
            return hold("Not enough price history")

        prev_price = history[-MOMENTUM_WINDOW]
        if not prev_price:
            return hold("Previous price undefined or zero")

        change = (context.current_price - prev_price) / prev_price
        if change > MOMENTUM_THRESHOLD:
            return StrategyResult(
                should_buy=True,
                should_sell=False,
                reason=f"Momentum up {change * 100:.0f}%",
                score=change,
            )
        if change < -MOMENTUM_THRESHOLD:
            return StrategyResult(
                should_buy=False,
                should_sell=True,
                reason=f"Momentum down {change * 100:.0f}%",
                score=change,
            )
        return hold("No strong momentum")

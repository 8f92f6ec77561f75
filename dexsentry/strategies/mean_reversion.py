"""
Mean Reversion Strategy

Buys when price trades well below its recent mean and sells when it trades
well above it.
"""

from dexsentry.strategies import StrategyContext, StrategyResult, TradingStrategy, hold

MEAN_WINDOW = 10
DEVIATION_THRESHOLD = 0.07  # 7% deviation


class MeanReversionStrategy(TradingStrategy):
    name = "mean_reversion"

    async def evaluate(self, context: StrategyContext) -> StrategyResult:
        history = context.price_history
        if not history or len(history) < MEAN_WINDOW:
            return hold("Not enough price history")

        window = history[-MEAN_WINDOW:]
        mean = sum(window) / len(window)
        if mean <= 0:
            return hold("Mean price is zero")

        deviation = (context.current_price - mean) / mean
        if deviation < -DEVIATION_THRESHOLD:
            return StrategyResult(
                should_buy=True,
                should_sell=False,
                reason=f"Below mean by {abs(deviation) * 100:.0f}%",
                score=deviation,
            )
        if deviation > DEVIATION_THRESHOLD:
            return StrategyResult(
                should_buy=False,
                should_sell=True,
                reason=f"Above mean by {deviation * 100:.0f}%",
                score=deviation,
            )
        return hold("Near mean")

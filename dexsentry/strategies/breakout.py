"""
Breakout Strategy

Buys when the current price clears the high of the preceding window by a
fixed margin. Never emits a sell.
"""

from dexsentry.strategies import StrategyContext, StrategyResult, TradingStrategy, hold

BREAKOUT_WINDOW = 10
BREAKOUT_THRESHOLD = 0.05  # 5% above previous high


class BreakoutStrategy(TradingStrategy):
    name = "breakout"

    async def evaluate(self, context: StrategyContext) -> StrategyResult:
        history = context.price_history
        if not history or len(history) < BREAKOUT_WINDOW:
            return hold("Not enough price history")

        window = list(history[-BREAKOUT_WINDOW:])
        # Last sample is the current tick; the high comes from the ones before it
        prev_high = max(window[:-1])
        if context.current_price > prev_high * (1 + BREAKOUT_THRESHOLD):
            return StrategyResult(
                should_buy=True,
                should_sell=False,
                reason=f"Breakout above {BREAKOUT_THRESHOLD * 100:.0f}%",
                score=context.current_price - prev_high,
            )
        return hold("No breakout")

"""
Liquidity Growth Strategy

Treats fast pool liquidity growth as demand (buy) and fast liquidity
drain as a warning (sell).
"""

from dexsentry.strategies import StrategyContext, StrategyResult, TradingStrategy, hold

LIQ_GROWTH_WINDOW = 5
LIQ_GROWTH_THRESHOLD = 0.1  # 10% liquidity change


class LiquidityGrowthStrategy(TradingStrategy):
    name = "liquidity_growth"

    async def evaluate(self, context: StrategyContext) -> StrategyResult:
        history = context.liquidity_history
        if not history or len(history) < LIQ_GROWTH_WINDOW:
            return hold("Not enough liquidity history")

        prev_liquidity = history[-LIQ_GROWTH_WINDOW]
        if not prev_liquidity:
            return hold("Previous liquidity undefined or zero")

        change = (context.current_liquidity - prev_liquidity) / prev_liquidity
        if change > LIQ_GROWTH_THRESHOLD:
            return StrategyResult(
                should_buy=True,
                should_sell=False,
                reason=f"Liquidity up {change * 100:.0f}%",
                score=change,
            )
        if change < -LIQ_GROWTH_THRESHOLD:
            return StrategyResult(
                should_buy=False,
                should_sell=True,
                reason=f"Liquidity down {change * 100:.0f}%",
                score=change,
            )
        return hold("No strong liquidity growth")

"""
Sniper Strategy

Buys a freshly launched pool immediately, provided it already holds a
minimum amount of SOL liquidity.
"""

from dexsentry.strategies import StrategyContext, StrategyResult, TradingStrategy, hold

SNIPER_MIN_LIQUIDITY_SOL = 1.0


class SniperStrategy(TradingStrategy):
    name = "sniper"

    async def evaluate(self, context: StrategyContext) -> StrategyResult:
        meta = context.token_meta or {}
        if meta.get("just_launched") and context.current_liquidity >= SNIPER_MIN_LIQUIDITY_SOL:
            return StrategyResult(
                should_buy=True,
                should_sell=False,
                reason=f"Sniper: Pool just launched with {context.current_liquidity:g} SOL",
            )
        return hold("Not a sniper opportunity")

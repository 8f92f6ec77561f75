"""
Copy Trading Strategy

Follows a tracked "smart money" wallet: buys when the upstream wallet
tracker has flagged a recent buy in the token metadata.
"""

from dexsentry.strategies import StrategyContext, StrategyResult, TradingStrategy, hold


class CopyTradingStrategy(TradingStrategy):
    name = "copy_trading"

    async def evaluate(self, context: StrategyContext) -> StrategyResult:
        meta = context.token_meta or {}
        smart_buy = meta.get("recent_smart_buy")
        if smart_buy:
            wallet = smart_buy if isinstance(smart_buy, str) else None
            reason = f"Copy-trading: Smart wallet {wallet[:8]} bought" if wallet else "Copy-trading: Smart wallet bought"
            return StrategyResult(should_buy=True, should_sell=False, reason=reason)
        return hold("No smart money signal")

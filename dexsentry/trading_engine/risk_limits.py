"""
Trade Limits

Portfolio-level gates applied after sizing:
- Max open positions
- Max daily realized loss (% of portfolio)
- Max risk per trade (% of portfolio)
"""

import logging
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TradeLimits:
    max_risk_per_trade_pct: float = 2.0
    max_open_positions: int = 3
    max_daily_loss_pct: float = 6.0

    @classmethod
    def from_settings(cls, settings) -> "TradeLimits":
        return cls(
            max_risk_per_trade_pct=settings.max_risk_per_trade_pct,
            max_open_positions=settings.max_open_positions,
            max_daily_loss_pct=settings.max_daily_loss_pct,
        )


@dataclass(frozen=True)
class RiskCheckResult:
    allowed: bool
    open_positions: int
    daily_loss_pct: float
    portfolio_value: float
    max_trade_size: float
    reason: Optional[str] = None


def check_trade_allowed(
    trade_amount_sol: float,
    open_positions: int,
    daily_loss_sol: float,
    portfolio_value_sol: float,
    limits: TradeLimits,
) -> RiskCheckResult:
    """Apply the limits in order; the first violated limit is reported"""
    if open_positions >= limits.max_open_positions:
        reason = f"Maximum {limits.max_open_positions} open positions already active"
        logger.warning(f"Trade blocked: {reason} (current: {open_positions})")
        return RiskCheckResult(False, open_positions, 0.0, portfolio_value_sol, 0.0, reason)

    if portfolio_value_sol <= 0:
        reason = "Portfolio value unknown or zero"
        logger.warning(f"Trade blocked: {reason}")
        return RiskCheckResult(False, open_positions, 0.0, portfolio_value_sol, 0.0, reason)

    daily_loss_pct = abs(daily_loss_sol) / portfolio_value_sol * 100
    if daily_loss_pct >= limits.max_daily_loss_pct:
        reason = f"Daily loss limit {limits.max_daily_loss_pct:g}% exceeded ({daily_loss_pct:.2f}%)"
        logger.warning(f"Trade blocked: {reason}")
        return RiskCheckResult(False, open_positions, daily_loss_pct, portfolio_value_sol, 0.0, reason)

    max_trade_size = portfolio_value_sol * limits.max_risk_per_trade_pct / 100
    if trade_amount_sol > max_trade_size:
        reason = (
            f"Trade size {trade_amount_sol:g} SOL exceeds {limits.max_risk_per_trade_pct:g}% "
            f"max risk ({max_trade_size:.2f} SOL)"
        )
        logger.warning(f"Trade blocked: {reason}")
        return RiskCheckResult(False, open_positions, daily_loss_pct, portfolio_value_sol, max_trade_size, reason)

    logger.info(
        f"Risk check PASSED: {trade_amount_sol:g} SOL trade allowed | "
        f"Open: {open_positions}/{limits.max_open_positions} | "
        f"Daily Loss: {daily_loss_pct:.2f}%/{limits.max_daily_loss_pct:g}%"
    )
    return RiskCheckResult(True, open_positions, daily_loss_pct, portfolio_value_sol, max_trade_size)

"""
Position Sizing

Turns an account balance plus a risk preference into a trade size, always
alongside the fixed conservative / moderate / aggressive presets.
"""

import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, Optional

from dexsentry.constants import DEFAULT_RISK_PERCENT, LAMPORTS_PER_SOL, MIN_TRADE_SIZE_SOL, RISK_PRESETS

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RiskRecommendation:
    conservative: float
    moderate: float
    aggressive: float

    def to_dict(self) -> Dict[str, float]:
        return {"conservative": self.conservative, "moderate": self.moderate, "aggressive": self.aggressive}


@dataclass(frozen=True)
class RiskCalculation:
    balance: float
    risk_percent: float
    risk_amount: float
    amount_lamports: int
    recommendation: RiskRecommendation
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "balance": self.balance,
            "risk_percent": self.risk_percent,
            "risk_amount": self.risk_amount,
            "amount_lamports": self.amount_lamports,
            "recommendation": self.recommendation.to_dict(),
            "error": self.error,
        }


def _is_positive_number(value: Any) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
        and value > 0
    )


class RiskSizer:
    """
    Precedence: explicit amount, then explicit percent, then 1% of balance.

    The amount is capped at the balance and then floored at the minimum trade
    size; when the floor applies the percent is recomputed from it, which can
    exceed 100% for balances below the minimum.
    """

    def __init__(self, minimum_trade_size: float = MIN_TRADE_SIZE_SOL):
        self.minimum_trade_size = minimum_trade_size

    @staticmethod
    def recommend(balance: float) -> RiskRecommendation:
        return RiskRecommendation(
            conservative=round(balance * RISK_PRESETS["conservative"] / 100, 4),
            moderate=round(balance * RISK_PRESETS["moderate"] / 100, 4),
            aggressive=round(balance * RISK_PRESETS["aggressive"] / 100, 4),
        )

    def calculate(
        self,
        balance: float,
        risk_percent: Optional[float] = None,
        risk_amount: Optional[float] = None,
    ) -> RiskCalculation:
        if not _is_positive_number(balance):
            logger.warning(f"Risk calculation rejected: invalid balance {balance!r}")
            return RiskCalculation(
                balance=0.0,
                risk_percent=0.0,
                risk_amount=0.0,
                amount_lamports=0,
                recommendation=RiskRecommendation(0.0, 0.0, 0.0),
                error="Balance is required and must be a positive number",
            )

        if _is_positive_number(risk_amount):
            amount = float(risk_amount)
            percent = amount / balance * 100
        elif _is_positive_number(risk_percent):
            percent = float(risk_percent)
            amount = balance * percent / 100
        else:
            percent = DEFAULT_RISK_PERCENT
            amount = balance * DEFAULT_RISK_PERCENT / 100

        if amount > balance:
            amount = balance
            percent = 100.0

        if amount < self.minimum_trade_size:
            amount = self.minimum_trade_size
            percent = self.minimum_trade_size / balance * 100

        logger.info(f"Risk calculation: Balance={balance:.4f} SOL, Risk={percent:.2f}%, Amount={amount:.4f} SOL")

        return RiskCalculation(
            balance=balance,
            risk_percent=round(percent, 2),
            risk_amount=round(amount, 4),
            amount_lamports=math.floor(amount * LAMPORTS_PER_SOL),
            recommendation=self.recommend(balance),
        )

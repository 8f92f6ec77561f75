"""
Trailing Take Profit Tracking

Tracks the peak unrealized PnL of each open position and recommends an exit
once the position has given back too much from that peak:
- Activates once peak PnL >= activation pct (stays active)
- After activation, exits when peak - current >= trailing stop pct
- Never recommends an exit before activation (fixed TP/SL live elsewhere)

PnL values are decimals (0.15 = 15%). State is created on the first update
for a token and must be discarded by the caller when the position closes.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

DEFAULT_TRAILING_ACTIVATION_PCT = 0.15  # 15% profit to activate trailing
DEFAULT_TRAILING_STOP_PCT = 0.05  # 5% drop from peak to exit


@dataclass
class TrailingStopState:
    token_id: str
    highest_pnl_pct: float
    trailing_activated: bool
    trailing_stop_pct: float
    trailing_activation_pct: float


@dataclass(frozen=True)
class TrailingStopUpdate:
    """Outcome of one tracker update"""
    token_id: str
    current_pnl_pct: float
    highest_pnl_pct: float
    trailing_activated: bool
    drawdown_from_peak: float
    should_exit: bool
    changed: bool
    trailing_stop_pct: float
    trailing_activation_pct: float

    @property
    def reason(self) -> str:
        if self.should_exit:
            return (
                f"Trailing stop triggered: peak {self.highest_pnl_pct * 100:.2f}%, "
                f"now {self.current_pnl_pct * 100:.2f}% "
                f"(gave back {self.drawdown_from_peak * 100:.2f}%)"
            )
        if self.trailing_activated:
            return (
                f"Trailing active: peak {self.highest_pnl_pct * 100:.2f}%, "
                f"drawdown {self.drawdown_from_peak * 100:.2f}%"
            )
        return (
            f"Trailing inactive: peak {self.highest_pnl_pct * 100:.2f}% "
            f"< activation {self.trailing_activation_pct * 100:.2f}%"
        )

    def to_event(self) -> Dict[str, Any]:
        """Payload for position.trailingUpdate"""
        return {
            "token": self.token_id,
            "current_pnl_pct": self.current_pnl_pct,
            "highest_pnl_pct": self.highest_pnl_pct,
            "trailing_activated": self.trailing_activated,
            "trailing_stop_pct": self.trailing_stop_pct,
            "trailing_activation_pct": self.trailing_activation_pct,
            "drawdown_from_peak": self.drawdown_from_peak,
        }


class TrailingStopTracker:
    """Per-token trailing take-profit state"""

    def __init__(
        self,
        trailing_activation_pct: float = DEFAULT_TRAILING_ACTIVATION_PCT,
        trailing_stop_pct: float = DEFAULT_TRAILING_STOP_PCT,
    ):
        if trailing_activation_pct < 0 or trailing_stop_pct < 0:
            raise ValueError("Trailing percentages must not be negative")
        self.trailing_activation_pct = trailing_activation_pct
        self.trailing_stop_pct = trailing_stop_pct
        self._states: Dict[str, TrailingStopState] = {}

    def get(self, token_id: str) -> Optional[TrailingStopState]:
        return self._states.get(token_id)

    def peek(
        self,
        token_id: str,
        current_pnl_pct: float,
        trailing_activation_pct: Optional[float] = None,
        trailing_stop_pct: Optional[float] = None,
    ) -> TrailingStopUpdate:
        """
        Compute what `update` would return without storing anything.

        Pass the result to `commit` to make it the token's state.
        """
        state = self._states.get(token_id)
        if state is None:
            previous_highest = current_pnl_pct
            previous_activated = False
            stop_pct = self.trailing_stop_pct if trailing_stop_pct is None else trailing_stop_pct
            activation_pct = self.trailing_activation_pct if trailing_activation_pct is None else trailing_activation_pct
        else:
            previous_highest = state.highest_pnl_pct
            previous_activated = state.trailing_activated
            stop_pct = state.trailing_stop_pct
            activation_pct = state.trailing_activation_pct

        highest = max(previous_highest, current_pnl_pct)
        activated = previous_activated or highest >= activation_pct
        drawdown = highest - current_pnl_pct if activated else 0.0

        return TrailingStopUpdate(
            token_id=token_id,
            current_pnl_pct=current_pnl_pct,
            highest_pnl_pct=highest,
            trailing_activated=activated,
            drawdown_from_peak=drawdown,
            should_exit=activated and drawdown >= stop_pct,
            changed=highest > previous_highest or activated != previous_activated,
            trailing_stop_pct=stop_pct,
            trailing_activation_pct=activation_pct,
        )

    def commit(self, update: TrailingStopUpdate) -> TrailingStopState:
        """Store a previewed update as the token's state"""
        state = self._states.get(update.token_id)
        previous_activated = state is not None and state.trailing_activated
        if state is None:
            state = TrailingStopState(
                token_id=update.token_id,
                highest_pnl_pct=update.highest_pnl_pct,
                trailing_activated=update.trailing_activated,
                trailing_stop_pct=update.trailing_stop_pct,
                trailing_activation_pct=update.trailing_activation_pct,
            )
            self._states[update.token_id] = state
        else:
            # Peak and activation only move one way
            state.highest_pnl_pct = max(state.highest_pnl_pct, update.highest_pnl_pct)
            state.trailing_activated = state.trailing_activated or update.trailing_activated

        if state.trailing_activated and not previous_activated:
            logger.info(
                f"Trailing activated for {update.token_id[:8]} at peak {state.highest_pnl_pct * 100:.2f}%"
            )
        if update.should_exit:
            logger.warning(
                f"Trailing stop hit for {update.token_id[:8]}: peak {update.highest_pnl_pct * 100:.2f}%, "
                f"now {update.current_pnl_pct * 100:.2f}%"
            )
        return state

    def update(
        self,
        token_id: str,
        current_pnl_pct: float,
        trailing_activation_pct: Optional[float] = None,
        trailing_stop_pct: Optional[float] = None,
    ) -> TrailingStopUpdate:
        """
        Fold the latest PnL into the token's state.

        Overrides only apply when the state is first created.
        """
        update = self.peek(token_id, current_pnl_pct, trailing_activation_pct, trailing_stop_pct)
        self.commit(update)
        return update

    def discard(self, token_id: str) -> None:
        self._states.pop(token_id, None)

    def __contains__(self, token_id: str) -> bool:
        return token_id in self._states

    def __len__(self) -> int:
        return len(self._states)

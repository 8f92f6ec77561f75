"""
Emergency Exit Monitoring

Independent rug-pull / crash detectors evaluated against an open position:
- LP removal: pool account gone or drained (critical)
- Large sell: latest token transaction moved more than 10 SOL (high)
- Red candle: >= 60% peak-to-trough inside 10 seconds (critical)
- Creator sell: creator wallet active within the last 30 seconds (high)

Exit policy: any critical trigger, or two or more high triggers at once.
A single high trigger is a warning only. A detector that fails (RPC error,
malformed data, timeout) reports "not triggered" and never aborts the check.
"""

import asyncio
import logging
import math
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from dexsentry.constants import (
    CREATOR_ACTIVITY_WINDOW_SECONDS,
    CREATOR_TX_LOOKBACK,
    LAMPORTS_PER_SOL,
    LARGE_SELL_THRESHOLD_SOL,
    LARGE_SELL_TX_LOOKBACK,
    PRICE_WINDOW_SECONDS,
    RED_CANDLE_DROP_PCT,
    RED_CANDLE_MIN_SAMPLES,
    RED_CANDLE_WINDOW_SECONDS,
    SEVERITY_RANK,
)
from dexsentry.data_sources.base import ChainReader
from dexsentry.price_history import PriceHistoryStore, PricePoint

logger = logging.getLogger(__name__)

CRITICAL = "critical"
HIGH = "high"
MEDIUM = "medium"


@dataclass(frozen=True)
class EmergencyTrigger:
    triggered: bool
    severity: str
    reason: Optional[str] = None
    detector: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "triggered": self.triggered,
            "severity": self.severity,
            "reason": self.reason,
            "detector": self.detector,
        }


@dataclass(frozen=True)
class ExitCheck:
    """Inputs shared by every detector for one evaluation"""
    token_id: str
    current_price: float
    now: float
    pool_address: Optional[str] = None
    creator_address: Optional[str] = None
    record: bool = True


@dataclass
class ExitCheckResult:
    should_exit: bool
    triggers: List[EmergencyTrigger] = field(default_factory=list)
    critical_reason: Optional[str] = None

    @property
    def severity(self) -> Optional[str]:
        """Worst severity among triggered detectors"""
        fired = [t.severity for t in self.triggers if t.triggered]
        if not fired:
            return None
        return max(fired, key=lambda s: SEVERITY_RANK.get(s, 0))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "should_exit": self.should_exit,
            "critical_reason": self.critical_reason,
            "severity": self.severity,
            "triggers": [t.to_dict() for t in self.triggers],
        }


class ExitDetector(ABC):
    """One risk trigger; must not share mutable state with other detectors"""

    name: str = "base"
    default_severity: str = HIGH

    @abstractmethod
    async def evaluate(self, check: ExitCheck) -> EmergencyTrigger:
        pass

    def quiet(self, severity: Optional[str] = None) -> EmergencyTrigger:
        """Non-triggered result"""
        return EmergencyTrigger(triggered=False, severity=severity or self.default_severity, detector=self.name)

    def fire(self, reason: str, severity: Optional[str] = None) -> EmergencyTrigger:
        return EmergencyTrigger(
            triggered=True, severity=severity or self.default_severity, reason=reason, detector=self.name
        )


class LpRemovalDetector(ExitDetector):
    """Most critical trigger: the pool account vanished or holds nothing"""

    name = "lp_removal"
    default_severity = MEDIUM

    def __init__(self, chain: ChainReader):
        self.chain = chain

    async def evaluate(self, check: ExitCheck) -> EmergencyTrigger:
        if not check.pool_address:
            logger.debug(f"No pool address for {check.token_id[:8]}, skipping LP removal check")
            return self.quiet()

        account = await self.chain.get_account_info(check.pool_address)
        if account is None:
            logger.error(f"EMERGENCY: liquidity pool account not found for {check.token_id[:8]} - LP REMOVED")
            return self.fire("Liquidity pool removed (rug pull detected)", CRITICAL)

        if account.lamports == 0:
            logger.error(f"EMERGENCY: liquidity pool closed for {check.token_id[:8]} - LP REMOVED")
            return self.fire("Liquidity pool closed (zero lamports)", CRITICAL)

        return self.quiet()


class LargeSellDetector(ExitDetector):
    """
    Raw balance-swing heuristic on the newest transaction touching the token.

    Does not decode swap instructions; any account moving more than the
    threshold counts.
    """

    name = "large_sell"
    default_severity = HIGH

    def __init__(self, chain: ChainReader, threshold_sol: float = LARGE_SELL_THRESHOLD_SOL):
        self.chain = chain
        self.threshold_sol = threshold_sol

    async def evaluate(self, check: ExitCheck) -> EmergencyTrigger:
        if not check.pool_address:
            return self.quiet()

        transactions = await self.chain.get_recent_transactions(check.token_id, limit=LARGE_SELL_TX_LOOKBACK)
        if not transactions:
            return self.quiet()

        latest = transactions[0]
        for delta in latest.balance_deltas:
            sol_change = abs(delta) / LAMPORTS_PER_SOL
            if sol_change > self.threshold_sol:
                logger.warning(
                    f"Large transaction on {check.token_id[:8]}: {sol_change:.2f} SOL "
                    f"(signature {latest.signature[:16]})"
                )
                return self.fire(f"Large sell detected ({sol_change:.2f} SOL)")

        return self.quiet()


class RedCandleDetector(ExitDetector):
    """
    Rapid crash detection on the per-token price window.

    Evaluations record the current price by default, so the detector must be
    consulted on each sweep to keep its window populated. With record=False
    the sample is only considered, and the caller stores it later through
    EmergencyExitMonitor.record_price.
    """

    name = "red_candle"
    default_severity = HIGH

    def __init__(
        self,
        price_windows: Optional[PriceHistoryStore] = None,
        window_seconds: float = RED_CANDLE_WINDOW_SECONDS,
        drop_pct: float = RED_CANDLE_DROP_PCT,
    ):
        self.price_windows = price_windows or PriceHistoryStore(PRICE_WINDOW_SECONDS)
        self.window_seconds = window_seconds
        self.drop_pct = drop_pct

    async def evaluate(self, check: ExitCheck) -> EmergencyTrigger:
        return self.detect(check.token_id, check.current_price, check.now, record=check.record)

    def detect(
        self, token_id: str, current_price: float, now: Optional[float] = None, record: bool = True
    ) -> EmergencyTrigger:
        """Test the recent sub-window including `current_price` at `now`"""
        now = time.time() if now is None else now

        if not isinstance(current_price, (int, float)) or not math.isfinite(current_price) or current_price < 0:
            logger.warning(f"Ignoring malformed price {current_price!r} for {token_id[:8]}")
            return self.quiet()

        since = now - self.window_seconds
        if record:
            self.price_windows.record(token_id, current_price, now)
            recent = self.price_windows.points(token_id, since=since)
        else:
            recent = self.price_windows.points(token_id, since=since)
            recent.append(PricePoint(price=float(current_price), timestamp=now))
        if len(recent) < RED_CANDLE_MIN_SAMPLES:
            return self.quiet()

        highest = max(p.price for p in recent)
        lowest = min(p.price for p in recent)
        if highest <= 0:
            return self.quiet()

        drop = (highest - lowest) / highest
        if drop >= self.drop_pct:
            logger.error(
                f"EMERGENCY: red candle on {token_id[:8]}: {highest:.8f} -> {lowest:.8f} ({drop * 100:.1f}% drop)"
            )
            return self.fire(
                f"{self.drop_pct * 100:.0f}% price crash in {self.window_seconds:.0f} seconds "
                f"({drop * 100:.1f}% drop)",
                CRITICAL,
            )
        return self.quiet()


class CreatorSellDetector(ExitDetector):
    """
    Recency heuristic: any creator wallet transaction in the last 30 seconds.

    Stands in for insider dumping without parsing what the transaction did.
    """

    name = "creator_sell"
    default_severity = HIGH

    def __init__(self, chain: ChainReader, activity_window_seconds: int = CREATOR_ACTIVITY_WINDOW_SECONDS):
        self.chain = chain
        self.activity_window_seconds = activity_window_seconds

    async def evaluate(self, check: ExitCheck) -> EmergencyTrigger:
        if not check.creator_address:
            logger.debug(f"No creator address for {check.token_id[:8]}, skipping creator sell check")
            return self.quiet()

        transactions = await self.chain.get_recent_transactions(check.creator_address, limit=CREATOR_TX_LOOKBACK)
        if not transactions:
            return self.quiet()

        latest = transactions[0]
        tx_time = latest.block_time or 0
        if check.now - tx_time < self.activity_window_seconds:
            logger.warning(
                f"Recent creator transaction for {check.token_id[:8]} "
                f"(creator {check.creator_address[:8]}, signature {latest.signature[:16]})"
            )
            return self.fire("Creator wallet activity detected")
        return self.quiet()


class EmergencyExitMonitor:
    """Runs all detectors concurrently and applies the exit policy"""

    def __init__(
        self,
        chain: ChainReader,
        price_windows: Optional[PriceHistoryStore] = None,
        detectors: Optional[List[ExitDetector]] = None,
        detector_timeout_seconds: Optional[float] = 10.0,
    ):
        self.price_windows = price_windows or PriceHistoryStore(PRICE_WINDOW_SECONDS)
        self.detector_timeout_seconds = detector_timeout_seconds
        if detectors is None:
            detectors = [
                LpRemovalDetector(chain),
                LargeSellDetector(chain),
                RedCandleDetector(self.price_windows),
                CreatorSellDetector(chain),
            ]
        self.detectors = detectors

    async def _run_detector(self, detector: ExitDetector, check: ExitCheck) -> EmergencyTrigger:
        try:
            if self.detector_timeout_seconds:
                return await asyncio.wait_for(detector.evaluate(check), timeout=self.detector_timeout_seconds)
            return await detector.evaluate(check)
        except asyncio.TimeoutError:
            logger.error(f"Detector {detector.name} timed out for {check.token_id[:8]}")
        except Exception as e:
            logger.error(f"Error in {detector.name} detector for {check.token_id[:8]}: {e}")
        return detector.quiet()

    async def check_all_triggers(
        self,
        token_id: str,
        current_price: float,
        pool_address: Optional[str] = None,
        creator_address: Optional[str] = None,
        now: Optional[float] = None,
        record: bool = True,
    ) -> ExitCheckResult:
        """
        Evaluate every detector for one price observation.

        record=False leaves the price window untouched; call record_price
        afterwards to keep the observation.
        """
        if not token_id:
            logger.warning("Emergency check requested without a token identifier")
            return ExitCheckResult(should_exit=False)

        check = ExitCheck(
            token_id=token_id,
            current_price=current_price,
            now=time.time() if now is None else now,
            pool_address=pool_address,
            creator_address=creator_address,
            record=record,
        )
        triggers = list(await asyncio.gather(*(self._run_detector(d, check) for d in self.detectors)))
        return decide_exit(triggers)

    def record_price(self, token_id: str, price: float, now: Optional[float] = None) -> None:
        """Store an observation that was checked with record=False"""
        if not isinstance(price, (int, float)) or not math.isfinite(price) or price < 0:
            return
        self.price_windows.record(token_id, price, now)

    def discard(self, token_id: str) -> None:
        """Drop per-token window once the position is closed"""
        self.price_windows.discard(token_id)


def decide_exit(triggers: List[EmergencyTrigger]) -> ExitCheckResult:
    """Any critical trigger, or at least two high triggers, forces an exit"""
    critical = [t for t in triggers if t.triggered and t.severity == CRITICAL]
    if critical:
        return ExitCheckResult(
            should_exit=True,
            triggers=triggers,
            critical_reason=", ".join(t.reason or "Critical exit trigger" for t in critical),
        )

    high = [t for t in triggers if t.triggered and t.severity == HIGH]
    if len(high) >= 2:
        return ExitCheckResult(
            should_exit=True,
            triggers=triggers,
            critical_reason=f"Multiple warning signs: {', '.join(t.reason or t.detector or 'unknown' for t in high)}",
        )

    return ExitCheckResult(should_exit=False, triggers=triggers)

"""
Per-token time-windowed price history.

Each token owns a PriceSeries; samples older than the window are pruned on
every insert, so readers never see data older than the window.
"""

import logging
import time
from collections import deque
from dataclasses import dataclass
from typing import Deque, Dict, Iterator, List, Optional

from dexsentry.constants import PRICE_WINDOW_SECONDS

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PricePoint:
    """Single observed value at an epoch timestamp (seconds)"""
    price: float
    timestamp: float


class PriceSeries:
    """Sliding window of samples for one token"""

    def __init__(self, window_seconds: float, max_samples: Optional[int] = None):
        self.window_seconds = window_seconds
        self._points: Deque[PricePoint] = deque(maxlen=max_samples)

    def add(self, price: float, now: Optional[float] = None) -> PricePoint:
        now = time.time() if now is None else now
        point = PricePoint(price=float(price), timestamp=now)
        self._points.append(point)
        self.prune(now)
        return point

    def prune(self, now: float) -> None:
        """Drop samples older than the window relative to `now`"""
        cutoff = now - self.window_seconds
        # Points arrive in time order, so expired ones sit at the left
        while self._points and self._points[0].timestamp < cutoff:
            self._points.popleft()

    def points(self, since: Optional[float] = None) -> List[PricePoint]:
        if since is None:
            return list(self._points)
        return [p for p in self._points if p.timestamp >= since]

    def prices(self) -> List[float]:
        return [p.price for p in self._points]

    def latest(self) -> Optional[PricePoint]:
        return self._points[-1] if self._points else None

    def __len__(self) -> int:
        return len(self._points)

    def __iter__(self) -> Iterator[PricePoint]:
        return iter(list(self._points))


class PriceHistoryStore:
    """
    Price windows keyed by token identifier.

    Owned by the component that writes to it (one writer per token); reads
    and writes for distinct tokens never touch each other's series.
    """

    def __init__(self, window_seconds: float = PRICE_WINDOW_SECONDS, max_samples: Optional[int] = None):
        if window_seconds <= 0:
            raise ValueError("window_seconds must be greater than zero")
        self.window_seconds = window_seconds
        self.max_samples = max_samples
        self._series: Dict[str, PriceSeries] = {}

    def get_or_create(self, token_id: str) -> PriceSeries:
        series = self._series.get(token_id)
        if series is None:
            series = PriceSeries(self.window_seconds, self.max_samples)
            self._series[token_id] = series
        return series

    def record(self, token_id: str, price: float, now: Optional[float] = None) -> List[PricePoint]:
        """Append a sample, prune the window, and return the remaining points"""
        series = self.get_or_create(token_id)
        series.add(price, now)
        return series.points()

    def points(self, token_id: str, since: Optional[float] = None) -> List[PricePoint]:
        series = self._series.get(token_id)
        return series.points(since) if series else []

    def prices(self, token_id: str) -> List[float]:
        series = self._series.get(token_id)
        return series.prices() if series else []

    def latest(self, token_id: str) -> Optional[PricePoint]:
        series = self._series.get(token_id)
        return series.latest() if series else None

    def discard(self, token_id: str) -> None:
        """Forget a token (position closed / token untracked)"""
        if self._series.pop(token_id, None) is not None:
            logger.debug(f"Discarded price history for {token_id[:8]}")

    def tokens(self) -> List[str]:
        return list(self._series.keys())

    def __contains__(self, token_id: str) -> bool:
        return token_id in self._series

    def __len__(self) -> int:
        return len(self._series)

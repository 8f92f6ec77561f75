"""
RugCheck risk report client.

GET {base}/v1/tokens/{mint}/report, cached briefly so the validation
pipeline and repeated sweeps share a single upstream call per token.
"""

import logging
from typing import Any, Dict

import httpx

from dexsentry.cache import TTLCache, api_cache
from dexsentry.data_sources.base import RiskReport, RiskReportSource
from dexsentry.exceptions import DataSourceError

logger = logging.getLogger(__name__)


def parse_report(token_id: str, data: Dict[str, Any]) -> RiskReport:
    """Pull taxes (first market) and risk entries out of a report payload"""
    markets = data.get("markets") or []
    first_market = markets[0] if markets and isinstance(markets[0], dict) else {}
    risks = [r for r in (data.get("risks") or []) if isinstance(r, dict)]
    return RiskReport(
        token_id=token_id,
        buy_tax_pct=float(first_market.get("buyTax") or 0),
        sell_tax_pct=float(first_market.get("sellTax") or 0),
        risks=risks,
    )


class RugCheckClient(RiskReportSource):
    def __init__(
        self,
        base_url: str = "https://api.rugcheck.xyz",
        timeout: float = 5.0,
        cache_ttl_seconds: float = 30,
        cache: TTLCache = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.cache_ttl_seconds = cache_ttl_seconds
        self.cache = cache or api_cache

    async def get_risk_report(self, token_id: str) -> RiskReport:
        return await self.cache.get_or_fetch(
            f"rugcheck_report_{token_id}",
            lambda: self._fetch_report(token_id),
            ttl_seconds=self.cache_ttl_seconds,
        )

    async def _fetch_report(self, token_id: str) -> RiskReport:
        url = f"{self.base_url}/v1/tokens/{token_id}/report"
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.get(url)
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPStatusError as e:
            raise DataSourceError(
                f"RugCheck HTTP {e.response.status_code} for {token_id[:8]}", source="rugcheck"
            ) from e
        except Exception as e:
            raise DataSourceError(f"RugCheck unavailable: {e}", source="rugcheck") from e

        if not isinstance(data, dict):
            raise DataSourceError("RugCheck returned a non-object report", source="rugcheck")

        report = parse_report(token_id, data)
        logger.debug(
            f"RugCheck report for {token_id[:8]}: buy tax {report.buy_tax_pct}%, "
            f"sell tax {report.sell_tax_pct}%, {len(report.risks)} risks"
        )
        return report

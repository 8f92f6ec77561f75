"""Tests for data_sources/rugcheck.py"""

import httpx
import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from dexsentry.cache import TTLCache
from dexsentry.data_sources.rugcheck import RugCheckClient, parse_report
from dexsentry.exceptions import DataSourceError

TOKEN = "TokenMint1111111111111111111111111111111111"

REPORT = {
    "markets": [{"buyTax": 3, "sellTax": 12}],
    "risks": [{"name": "Honeypot", "level": "danger"}, "garbage"],
}


def _mock_client(resp):
    mock_client = AsyncMock()
    mock_client.get = AsyncMock(return_value=resp)
    mock_client.__aenter__ = AsyncMock(return_value=mock_client)
    mock_client.__aexit__ = AsyncMock(return_value=False)
    return mock_client


def _response(body):
    resp = MagicMock()
    resp.status_code = 200
    resp.json.return_value = body
    resp.raise_for_status = MagicMock()
    return resp


class TestParseReport:
    def test_reads_first_market_taxes(self):
        report = parse_report(TOKEN, REPORT)

        assert report.buy_tax_pct == 3.0
        assert report.sell_tax_pct == 12.0
        assert report.risk_names == ["Honeypot"]

    def test_missing_markets_default_to_zero(self):
        report = parse_report(TOKEN, {})

        assert report.buy_tax_pct == 0.0
        assert report.risks == []


class TestRugCheckClient:
    @pytest.mark.asyncio
    async def test_fetches_and_caches_report(self):
        mock_client = _mock_client(_response(REPORT))
        client = RugCheckClient(base_url="https://api.rugcheck.xyz/", cache=TTLCache())

        with patch("dexsentry.data_sources.rugcheck.httpx.AsyncClient", return_value=mock_client):
            first = await client.get_risk_report(TOKEN)
            second = await client.get_risk_report(TOKEN)

        assert first is second
        mock_client.get.assert_awaited_once_with(f"https://api.rugcheck.xyz/v1/tokens/{TOKEN}/report")

    @pytest.mark.asyncio
    async def test_http_error_raises_data_source_error(self):
        resp = _response({})
        resp.raise_for_status.side_effect = httpx.HTTPStatusError(
            "server error", request=MagicMock(), response=MagicMock(status_code=502)
        )
        client = RugCheckClient(cache=TTLCache())

        with patch("dexsentry.data_sources.rugcheck.httpx.AsyncClient", return_value=_mock_client(resp)):
            with pytest.raises(DataSourceError) as exc_info:
                await client.get_risk_report(TOKEN)

        assert "502" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_non_object_payload_rejected(self):
        client = RugCheckClient(cache=TTLCache())

        with patch("dexsentry.data_sources.rugcheck.httpx.AsyncClient", return_value=_mock_client(_response([]))):
            with pytest.raises(DataSourceError):
                await client.get_risk_report(TOKEN)

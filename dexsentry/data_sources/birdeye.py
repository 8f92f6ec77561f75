"""
Birdeye price source.

Looks up each token through /defi/price (with liquidity). Tokens whose
lookup fails are left out of the result instead of failing the batch.
"""

import asyncio
import logging
from typing import Dict, Optional, Sequence

import httpx

from dexsentry.data_sources.base import PriceSource, TokenPrice

logger = logging.getLogger(__name__)

MAX_TOKENS_PER_FETCH = 100


class BirdeyePriceSource(PriceSource):
    def __init__(self, api_key: str, base_url: str = "https://public-api.birdeye.so", timeout: float = 10.0):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def _headers(self) -> Dict[str, str]:
        headers = {"accept": "application/json", "x-chain": "solana"}
        if self.api_key:
            headers["X-API-KEY"] = self.api_key
        return headers

    async def fetch_prices(self, token_ids: Sequence[str]) -> Dict[str, TokenPrice]:
        if not self.api_key:
            logger.warning("BIRDEYE_API_KEY not set - cannot fetch prices")
            return {}

        unique_ids = list(dict.fromkeys(token_ids))[:MAX_TOKENS_PER_FETCH]
        async with httpx.AsyncClient(
            base_url=self.base_url, timeout=self.timeout, headers=self._headers()
        ) as client:
            results = await asyncio.gather(*(self._fetch_one(client, t) for t in unique_ids))

        return {price.token_id: price for price in results if price is not None}

    async def _fetch_one(self, client: httpx.AsyncClient, token_id: str) -> Optional[TokenPrice]:
        try:
            resp = await client.get(
                "/defi/price",
                params={"address": token_id, "address_type": "token", "include_liquidity": "true"},
            )
            resp.raise_for_status()
            data = (resp.json() or {}).get("data") or {}
            price = data.get("value")
            if price is None:
                return None
            return TokenPrice(
                token_id=token_id,
                price=float(price),
                liquidity=float(data["liquidity"]) if data.get("liquidity") is not None else None,
                source="birdeye",
            )
        except Exception as e:
            logger.error(f"Birdeye price lookup failed for {token_id[:8]}: {e}")
            return None

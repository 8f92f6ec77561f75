"""
Solana JSON-RPC reader.

Implements ChainReader over plain HTTP JSON-RPC:
  getAccountInfo            (jsonParsed, for mint authorities and pool lamports)
  getSignaturesForAddress   (recent activity)
  getTransaction            (pre/post lamport balances -> deltas)
"""

import asyncio
import itertools
import logging
from typing import Any, Dict, List, Optional

import httpx

from dexsentry.data_sources.base import AccountInfo, ChainReader, TransactionSummary
from dexsentry.exceptions import DataSourceError

logger = logging.getLogger(__name__)


class SolanaRpcClient(ChainReader):
    """
    Minimal async RPC client.

    Only the newest `detailed_transactions` signatures are expanded with
    balance deltas; older ones carry signature and block time only, which is
    all the recency heuristics need.
    """

    def __init__(
        self,
        rpc_url: str,
        commitment: str = "confirmed",
        timeout: float = 10.0,
        detailed_transactions: int = 1,
    ):
        if not rpc_url.startswith("http"):
            raise ValueError("rpc_url must start with http(s)://")
        self.rpc_url = rpc_url
        self.commitment = commitment
        self.timeout = timeout
        self.detailed_transactions = detailed_transactions
        self._ids = itertools.count(1)

    async def _rpc(self, method: str, params: List[Any]) -> Any:
        """POST one JSON-RPC call, retrying once on transport errors"""
        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}

        for attempt in range(2):
            try:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    resp = await client.post(self.rpc_url, json=payload)

                if resp.status_code == 429 and attempt == 0:
                    logger.warning(f"RPC rate-limited on {method}, backing off 1s")
                    await asyncio.sleep(1.0)
                    continue

                resp.raise_for_status()
                body = resp.json()
                if body.get("error"):
                    raise DataSourceError(f"RPC {method} error: {body['error']}", source="solana_rpc")
                return body.get("result")

            except DataSourceError:
                raise
            except httpx.HTTPStatusError as e:
                raise DataSourceError(
                    f"RPC {method} HTTP {e.response.status_code}", source="solana_rpc"
                ) from e
            except Exception as e:
                if attempt == 0:
                    logger.warning(f"RPC {method} failed ({e}), retrying")
                    await asyncio.sleep(0.3)
                    continue
                raise DataSourceError(f"RPC {method} failed: {e}", source="solana_rpc") from e

        raise DataSourceError(f"RPC {method} failed after retries", source="solana_rpc")

    async def get_account_info(self, address: str) -> Optional[AccountInfo]:
        result = await self._rpc(
            "getAccountInfo",
            [address, {"encoding": "jsonParsed", "commitment": self.commitment}],
        )
        value = (result or {}).get("value")
        if value is None:
            return None

        data = value.get("data")
        return AccountInfo(
            address=address,
            lamports=int(value.get("lamports") or 0),
            owner=value.get("owner"),
            parsed_data=data if isinstance(data, dict) else None,
        )

    async def get_recent_transactions(self, address: str, limit: int = 10) -> List[TransactionSummary]:
        signatures = await self._rpc(
            "getSignaturesForAddress",
            [address, {"limit": limit, "commitment": self.commitment}],
        ) or []

        summaries = []
        for index, entry in enumerate(signatures):
            signature = entry.get("signature")
            if not signature:
                continue
            deltas: List[int] = []
            if index < self.detailed_transactions:
                deltas = await self._get_balance_deltas(signature)
            summaries.append(
                TransactionSummary(
                    signature=signature,
                    block_time=entry.get("blockTime"),
                    balance_deltas=deltas,
                )
            )
        return summaries

    async def _get_balance_deltas(self, signature: str) -> List[int]:
        tx = await self._rpc(
            "getTransaction",
            [signature, {"commitment": "confirmed", "maxSupportedTransactionVersion": 0}],
        )
        meta: Dict[str, Any] = (tx or {}).get("meta") or {}
        pre = meta.get("preBalances") or []
        post = meta.get("postBalances") or []
        return [int(after) - int(before) for before, after in zip(pre, post)]

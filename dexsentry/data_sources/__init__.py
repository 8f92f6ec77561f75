"""
Data Sources Module

Abstract collaborator contracts plus httpx-backed adapters:
- SolanaRpcClient: on-chain account and transaction reads (JSON-RPC)
- RugCheckClient: token risk reports (taxes, honeypot flags)
- BirdeyePriceSource: current token prices
"""

from dexsentry.data_sources.base import (
    AccountInfo,
    AlertSource,
    ChainReader,
    ExecutionGateway,
    Position,
    PositionSource,
    PriceAlert,
    PriceSource,
    RiskReport,
    RiskReportSource,
    TokenPrice,
    TransactionSummary,
)
from dexsentry.data_sources.birdeye import BirdeyePriceSource
from dexsentry.data_sources.rugcheck import RugCheckClient
from dexsentry.data_sources.solana_rpc import SolanaRpcClient

__all__ = [
    "AccountInfo",
    "AlertSource",
    "ChainReader",
    "ExecutionGateway",
    "Position",
    "PositionSource",
    "PriceAlert",
    "PriceSource",
    "RiskReport",
    "RiskReportSource",
    "TokenPrice",
    "TransactionSummary",
    "BirdeyePriceSource",
    "RugCheckClient",
    "SolanaRpcClient",
]

"""
Shared test fixtures for dexsentry tests.

Provides reusable fixtures for:
- Mock chain reader / risk report / price source collaborators
- Mock execution gateway
- Event dispatcher with a recording handler
- Sample pool and mint accounts
"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from dexsentry.constants import LAMPORTS_PER_SOL
from dexsentry.data_sources.base import AccountInfo, RiskReport, TokenPrice
from dexsentry.events import EventDispatcher

TOKEN = "TokenMint1111111111111111111111111111111111"
POOL = "PoolAddr11111111111111111111111111111111111"
CREATOR = "Creator111111111111111111111111111111111111"


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------


def _pool_account(sol=100.0, address=POOL):
    return AccountInfo(address=address, lamports=int(sol * LAMPORTS_PER_SOL))


def _mint_account(mint_authority=None, freeze_authority=None, address=TOKEN):
    return AccountInfo(
        address=address,
        lamports=1_461_600,
        parsed_data={
            "parsed": {
                "type": "mint",
                "info": {
                    "mintAuthority": mint_authority,
                    "freezeAuthority": freeze_authority,
                    "decimals": 6,
                },
            }
        },
    )


# ---------------------------------------------------------------------------
# Collaborator mocks
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_chain():
    """ChainReader mock: healthy pool, renounced mint, no recent transactions"""
    chain = MagicMock()

    async def _account_info(address):
        if address == TOKEN:
            return _mint_account()
        return _pool_account()

    chain.get_account_info = AsyncMock(side_effect=_account_info)
    chain.get_recent_transactions = AsyncMock(return_value=[])
    return chain


@pytest.fixture
def mock_risk_source():
    source = MagicMock()
    source.get_risk_report = AsyncMock(return_value=RiskReport(token_id=TOKEN))
    return source


@pytest.fixture
def mock_price_source():
    source = MagicMock()
    source.fetch_prices = AsyncMock(return_value={TOKEN: TokenPrice(token_id=TOKEN, price=1.0)})
    return source


@pytest.fixture
def mock_execution():
    gateway = MagicMock()
    gateway.execute_entry = AsyncMock(return_value={"signature": "sim-buy"})
    gateway.execute_exit = AsyncMock(return_value={"signature": "sim-sell"})
    return gateway


@pytest.fixture
def recorded_events():
    """Dispatcher plus the list every emitted message lands in"""
    dispatcher = EventDispatcher()
    received = []
    dispatcher.subscribe(received.append)
    return dispatcher, received

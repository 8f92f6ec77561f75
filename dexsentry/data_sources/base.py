"""
Collaborator Interfaces

Abstract contracts for everything the decision core consumes from outside:
prices, on-chain account state, third-party risk reports, open positions,
alerts and trade execution. Concrete adapters live next to this module;
tests substitute mocks.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence


@dataclass
class TokenPrice:
    """Current market price for one token (quoted in SOL unless noted)"""
    token_id: str
    price: float
    liquidity: Optional[float] = None
    volume: Optional[float] = None
    source: str = "unknown"


@dataclass
class AccountInfo:
    """Subset of an on-chain account read"""
    address: str
    lamports: int
    owner: Optional[str] = None
    parsed_data: Optional[Dict[str, Any]] = None

    @property
    def mint_authority(self) -> Optional[str]:
        """Mint authority from parsed SPL mint data (None when disabled)"""
        return self._parsed_info().get("mintAuthority") or None

    @property
    def freeze_authority(self) -> Optional[str]:
        return self._parsed_info().get("freezeAuthority") or None

    def _parsed_info(self) -> Dict[str, Any]:
        data = self.parsed_data or {}
        # jsonParsed payloads nest as {"parsed": {"info": {...}}}
        if "parsed" in data:
            data = data["parsed"] or {}
        info = data.get("info")
        return info if isinstance(info, dict) else {}


@dataclass
class TransactionSummary:
    """Recent transaction touching an address"""
    signature: str
    block_time: Optional[int] = None  # epoch seconds
    balance_deltas: List[int] = field(default_factory=list)  # lamports, per account


@dataclass
class RiskReport:
    """Third-party token risk report"""
    token_id: str
    buy_tax_pct: float = 0.0
    sell_tax_pct: float = 0.0
    risks: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def risk_names(self) -> List[str]:
        return [str(r.get("name") or "") for r in self.risks]


@dataclass
class Position:
    """Open position owned by the persistence layer; read-only here"""
    token_id: str
    entry_price: float
    amount: float
    opened_at: float
    pool_address: Optional[str] = None
    creator_address: Optional[str] = None
    take_profit_pct: Optional[float] = None
    stop_loss_pct: Optional[float] = None


@dataclass
class PriceAlert:
    """User price alert on a watched token"""
    token_id: str
    target_price: float
    condition: str  # "above" or "below"
    symbol: Optional[str] = None
    name: Optional[str] = None
    user_id: Optional[str] = None

    def is_triggered_by(self, price: float) -> bool:
        if self.condition == "above":
            return price >= self.target_price
        if self.condition == "below":
            return price <= self.target_price
        return False


class PriceSource(ABC):
    @abstractmethod
    async def fetch_prices(self, token_ids: Sequence[str]) -> Dict[str, TokenPrice]:
        """
        Look up current prices.

        Tokens with no available price are simply absent from the result.
        """
        pass


class ChainReader(ABC):
    @abstractmethod
    async def get_account_info(self, address: str) -> Optional[AccountInfo]:
        """Read an account; None when the account does not exist"""
        pass

    @abstractmethod
    async def get_recent_transactions(self, address: str, limit: int = 10) -> List[TransactionSummary]:
        """Most recent transactions first"""
        pass


class RiskReportSource(ABC):
    @abstractmethod
    async def get_risk_report(self, token_id: str) -> RiskReport:
        """Raises on service failure; callers decide the fallback"""
        pass


class PositionSource(ABC):
    @abstractmethod
    async def get_open_positions(self) -> List[Position]:
        pass


class AlertSource(ABC):
    @abstractmethod
    async def get_active_alerts(self) -> List[PriceAlert]:
        """Alerts that have a target and have not fired yet"""
        pass

    @abstractmethod
    async def mark_triggered(self, alert: PriceAlert) -> None:
        pass


class ExecutionGateway(ABC):
    """Transaction building, signing and submission live behind this"""

    @abstractmethod
    async def execute_entry(self, token_id: str, amount_sol: float, reason: str) -> Any:
        pass

    @abstractmethod
    async def execute_exit(self, position: Position, reason: str) -> Any:
        pass

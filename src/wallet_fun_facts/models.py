"""
Data models for wallet fun facts.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Generic, List, Optional, TypeVar
from decimal import Decimal

from .exceptions import MalformedResponseError
from .utils import (
    normalize_address,
    parse_timestamp,
    to_decimal,
    to_float,
    to_optional_float,
)

T = TypeVar("T")


def _malformed(record_type: str, raw: Any, error: Exception) -> MalformedResponseError:
    return MalformedResponseError(
        f"Malformed {record_type} record: {error} ({raw!r:.200})",
        source="nansen")


@dataclass
class Holding:
    """A current token balance of a wallet."""
    token_address: str
    chain: str
    symbol: str
    balance: Decimal
    value_usd: float
    price_usd: float

    @classmethod
    def from_api(cls, raw: Dict[str, Any]) -> "Holding":
        try:
            return cls(
                token_address=normalize_address(raw.get("token_address") or ""),
                chain=raw.get("chain") or "",
                symbol=raw.get("token_symbol") or raw.get("symbol") or "",
                balance=to_decimal(raw.get("token_amount", raw.get("balance"))),
                value_usd=to_float(raw.get("value_usd")),
                price_usd=to_float(raw.get("price_usd")),
            )
        except (AttributeError, TypeError, ValueError) as e:
            raise _malformed("balance", raw, e) from e


@dataclass
class TokenTransfer:
    """One token leg of a transaction."""
    token_address: str
    symbol: str = ""
    amount: Optional[float] = None
    price_usd: Optional[float] = None
    value_usd: Optional[float] = None

    @classmethod
    def from_api(cls, raw: Dict[str, Any]) -> "TokenTransfer":
        try:
            return cls(
                token_address=normalize_address(raw.get("token_address") or ""),
                symbol=raw.get("token_symbol") or "",
                amount=to_optional_float(raw.get("token_amount")),
                price_usd=to_optional_float(raw.get("price_usd")),
                value_usd=to_optional_float(raw.get("value_usd")),
            )
        except (AttributeError, TypeError, ValueError) as e:
            raise _malformed("token transfer", raw, e) from e


@dataclass
class Transaction:
    """A wallet transaction with the tokens it sent and received."""
    timestamp: Optional[datetime]
    chain: str
    method: str
    volume_usd: float
    tokens_sent: List[TokenTransfer] = field(default_factory=list)
    tokens_received: List[TokenTransfer] = field(default_factory=list)

    @property
    def is_buy(self) -> bool:
        return bool(self.tokens_received) and self.volume_usd > 0

    @classmethod
    def from_api(cls, raw: Dict[str, Any]) -> "Transaction":
        try:
            return cls(
                timestamp=parse_timestamp(raw.get("block_timestamp")),
                chain=raw.get("chain") or "",
                method=raw.get("method") or "",
                volume_usd=to_float(raw.get("volume_usd")),
                tokens_sent=[TokenTransfer.from_api(t)
                             for t in raw.get("tokens_sent") or []],
                tokens_received=[TokenTransfer.from_api(t)
                                 for t in raw.get("tokens_received") or []],
            )
        except (AttributeError, TypeError, ValueError) as e:
            raise _malformed("transaction", raw, e) from e


@dataclass
class Label:
    """A Nansen wallet label."""
    label: str
    category: str = ""
    definition: str = ""

    @classmethod
    def from_api(cls, raw: Dict[str, Any]) -> "Label":
        try:
            return cls(
                label=raw["label"],
                category=raw.get("category") or "",
                definition=raw.get("definition") or "",
            )
        except (KeyError, AttributeError, TypeError) as e:
            raise _malformed("label", raw, e) from e


@dataclass
class PnlSummary:
    """Realized profit and loss; the percent is a fraction (0.15 == 15%)."""
    realized_pnl_usd: float
    realized_pnl_percent: float

    @classmethod
    def from_api(cls, raw: Dict[str, Any]) -> Optional["PnlSummary"]:
        """Returns None when the summary carries no realized P&L."""
        try:
            if raw.get("realized_pnl_usd") is None:
                return None
            return cls(
                realized_pnl_usd=to_float(raw["realized_pnl_usd"]),
                realized_pnl_percent=to_float(raw.get("realized_pnl_percent")),
            )
        except (AttributeError, TypeError, ValueError) as e:
            raise _malformed("pnl summary", raw, e) from e


@dataclass
class ScreenedToken:
    """A token returned by the token screener."""
    token_address: str
    chain: str
    name: str
    symbol: str
    liquidity_usd: float

    @classmethod
    def from_api(cls, raw: Dict[str, Any]) -> "ScreenedToken":
        try:
            liquidity = raw.get("liquidity_usd")
            if liquidity is None:
                liquidity = raw.get("liquidity")
            return cls(
                token_address=normalize_address(raw.get("token_address") or ""),
                chain=raw.get("chain") or "",
                name=raw.get("token_name") or "",
                symbol=raw.get("token_symbol") or "",
                liquidity_usd=to_float(liquidity),
            )
        except (AttributeError, TypeError, ValueError) as e:
            raise _malformed("screened token", raw, e) from e


@dataclass
class Page(Generic[T]):
    """One page of a paginated Nansen response."""
    data: List[T]
    page: int = 1
    per_page: int = 0
    is_last_page: bool = True


@dataclass(frozen=True)
class AthRecord:
    """All-time high price of a token over a lookback window."""
    ath_price: float = 0.0
    ath_date: Optional[datetime] = None

    @property
    def is_known(self) -> bool:
        return self.ath_price > 0


# ----------------------------------------------------------------------
# Fun fact payloads
# ----------------------------------------------------------------------

@dataclass
class PnlFact:
    realized_pnl_percent: float
    realized_pnl_usd: float
    status: str  # 'GAIN' or 'LOSS'
    timeframe: str


@dataclass
class LabelFact:
    label: str


@dataclass
class SmartMoneyFact:
    is_smart_money: bool
    labels: List[str]


@dataclass
class RuggedToken:
    name: str
    symbol: str
    liquidity_usd: float


@dataclass
class RuggedProjectsFact:
    rugged_count: int
    rugged_tokens: List[RuggedToken] = field(default_factory=list)


@dataclass
class EthBenchmarkFact:
    portfolio_value: float
    eth_equivalent_value: float
    performance_percent: float
    status: str  # 'OUTPERFORMED' or 'UNDERPERFORMED'
    usd_spent: float = 0.0
    eth_equivalent: float = 0.0
    buy_count: int = 0
    priced_count: int = 0


@dataclass
class PortfolioAthFact:
    current_value: float
    ath_value: float
    potential_gain_percent: float
    tokens_priced: int = 0
    tokens_total: int = 0


@dataclass(frozen=True)
class FunFactResult(Generic[T]):
    """Outcome of one fun fact: either data, or a fallback message.

    A failed result with ``fallback=None`` means the card should be skipped.
    """
    kind: str
    success: bool
    data: Optional[T] = None
    fallback: Optional[str] = None

    def __post_init__(self):
        if self.success and self.data is None:
            raise ValueError(f"{self.kind}: successful result requires data")
        if self.success and self.fallback is not None:
            raise ValueError(f"{self.kind}: successful result cannot carry a fallback")
        if not self.success and self.data is not None:
            raise ValueError(f"{self.kind}: failed result cannot carry data")

    @classmethod
    def ok(cls, kind: str, data: T) -> "FunFactResult[T]":
        return cls(kind=kind, success=True, data=data)

    @classmethod
    def fail(cls, kind: str, fallback: Optional[str] = None) -> "FunFactResult[T]":
        return cls(kind=kind, success=False, fallback=fallback)

    @property
    def skipped(self) -> bool:
        return not self.success and self.fallback is None

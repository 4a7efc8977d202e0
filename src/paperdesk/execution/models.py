from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from typing import Any

DEFAULT_CASH_BALANCE = 100_000.0


class Side(StrEnum):
    BUY = "buy"
    SELL = "sell"


class TradeSource(StrEnum):
    MANUAL = "manual"
    STRATEGY = "strategy"


@dataclass(slots=True, frozen=True)
class Holding:
    symbol: str
    quantity: int
    avg_cost: float

    def to_dict(self) -> dict[str, Any]:
        return {"symbol": self.symbol, "quantity": self.quantity, "avg_cost": self.avg_cost}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Holding:
        return cls(
            symbol=str(data["symbol"]),
            quantity=int(data["quantity"]),
            avg_cost=float(data["avg_cost"]),
        )


@dataclass(slots=True, frozen=True)
class Trade:
    id: str
    symbol: str
    side: Side
    quantity: int
    price: float
    fee: float
    total: float
    timestamp: datetime
    source: TradeSource

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "symbol": self.symbol,
            "side": str(self.side),
            "quantity": self.quantity,
            "price": self.price,
            "fee": self.fee,
            "total": self.total,
            "timestamp": self.timestamp.isoformat(),
            "source": str(self.source),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Trade:
        return cls(
            id=str(data["id"]),
            symbol=str(data["symbol"]),
            side=Side(data["side"]),
            quantity=int(data["quantity"]),
            price=float(data["price"]),
            fee=float(data["fee"]),
            total=float(data["total"]),
            timestamp=datetime.fromisoformat(str(data["timestamp"])),
            source=TradeSource(data.get("source", TradeSource.MANUAL)),
        )


@dataclass(slots=True, frozen=True)
class PortfolioState:
    """Immutable ledger snapshot; ``trade_history`` is newest first."""

    cash_balance: float
    holdings: tuple[Holding, ...] = ()
    trade_history: tuple[Trade, ...] = ()
    realized_pl: float = 0.0

    @classmethod
    def default(cls, cash_balance: float = DEFAULT_CASH_BALANCE) -> PortfolioState:
        return cls(cash_balance=cash_balance)

    def holding(self, symbol: str) -> Holding | None:
        for item in self.holdings:
            if item.symbol == symbol:
                return item
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "cash_balance": self.cash_balance,
            "holdings": [item.to_dict() for item in self.holdings],
            "trade_history": [trade.to_dict() for trade in self.trade_history],
            "realized_pl": self.realized_pl,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> PortfolioState:
        return cls(
            cash_balance=float(data.get("cash_balance", DEFAULT_CASH_BALANCE)),
            holdings=tuple(Holding.from_dict(item) for item in data.get("holdings", ())),
            trade_history=tuple(Trade.from_dict(item) for item in data.get("trade_history", ())),
            realized_pl=float(data.get("realized_pl", 0.0)),
        )

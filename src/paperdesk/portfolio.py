from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass

from paperdesk.execution.models import PortfolioState


@dataclass(slots=True)
class AccountSnapshot:
    cash: float
    market_value: float
    equity: float
    unrealized_pl: float
    realized_pl: float


def market_value(state: PortfolioState, prices: Mapping[str, float]) -> float:
    return sum(prices.get(item.symbol, 0.0) * item.quantity for item in state.holdings)


def unrealized_pl(state: PortfolioState, prices: Mapping[str, float]) -> float:
    return sum(
        (prices.get(item.symbol, 0.0) - item.avg_cost) * item.quantity for item in state.holdings
    )


def total_equity(state: PortfolioState, prices: Mapping[str, float]) -> float:
    return state.cash_balance + market_value(state, prices)


def allocation(state: PortfolioState, prices: Mapping[str, float]) -> dict[str, float]:
    values = {item.symbol: prices.get(item.symbol, 0.0) * item.quantity for item in state.holdings}
    return {symbol: value for symbol, value in values.items() if value > 0}


def position_impact(state: PortfolioState, symbol: str, price: float) -> float:
    """Paper gain or loss of the position in ``symbol`` at ``price``."""
    holding = state.holding(symbol)
    if holding is None:
        return 0.0
    return (price - holding.avg_cost) * holding.quantity


def account_snapshot(state: PortfolioState, prices: Mapping[str, float]) -> AccountSnapshot:
    value = market_value(state, prices)
    return AccountSnapshot(
        cash=state.cash_balance,
        market_value=value,
        equity=state.cash_balance + value,
        unrealized_pl=unrealized_pl(state, prices),
        realized_pl=state.realized_pl,
    )

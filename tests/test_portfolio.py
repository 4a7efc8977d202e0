import pytest

from paperdesk.execution.models import Holding, PortfolioState
from paperdesk.portfolio import (
    account_snapshot,
    allocation,
    market_value,
    position_impact,
    total_equity,
    unrealized_pl,
)


def _state() -> PortfolioState:
    return PortfolioState(
        cash_balance=1_000.0,
        holdings=(
            Holding(symbol="AAPL", quantity=10, avg_cost=50.0),
            Holding(symbol="TLT", quantity=4, avg_cost=100.0),
        ),
        realized_pl=12.5,
    )


def test_valuation_at_market_prices() -> None:
    prices = {"AAPL": 55.0, "TLT": 95.0}
    state = _state()

    assert market_value(state, prices) == pytest.approx(930.0)
    assert unrealized_pl(state, prices) == pytest.approx(50.0 - 20.0)
    assert total_equity(state, prices) == pytest.approx(1_930.0)


def test_missing_price_values_holding_at_zero() -> None:
    state = _state()
    assert market_value(state, {"AAPL": 55.0}) == pytest.approx(550.0)
    assert allocation(state, {"AAPL": 55.0}) == {"AAPL": pytest.approx(550.0)}


def test_position_impact() -> None:
    state = _state()
    assert position_impact(state, "AAPL", 60.0) == pytest.approx(100.0)
    assert position_impact(state, "BTC", 60.0) == 0.0


def test_account_snapshot_carries_realized_pl() -> None:
    snapshot = account_snapshot(_state(), {"AAPL": 50.0, "TLT": 100.0})
    assert snapshot.equity == pytest.approx(1_900.0)
    assert snapshot.unrealized_pl == pytest.approx(0.0)
    assert snapshot.realized_pl == 12.5

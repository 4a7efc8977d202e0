from __future__ import annotations

import logging
import math
from collections.abc import Callable
from datetime import UTC, datetime
from threading import Lock
from uuid import uuid4

from paperdesk.errors import (
    InsufficientFunds,
    InsufficientQuantity,
    InvalidOrder,
    LedgerError,
    NoSuchHolding,
)
from paperdesk.execution.models import Holding, PortfolioState, Side, Trade, TradeSource

logger = logging.getLogger(__name__)

TransitionListener = Callable[[PortfolioState, Trade], None]


def order_fee(price: float, quantity: int, fee_pct: float) -> float:
    return price * quantity * fee_pct / 100


def apply_buy(
    state: PortfolioState,
    symbol: str,
    quantity: int,
    price: float,
    fee_pct: float,
    *,
    source: TradeSource,
    timestamp: datetime,
    trade_id: str,
) -> tuple[PortfolioState, Trade]:
    """Return the state after buying ``quantity`` units, or raise a LedgerError."""
    _validate_order(symbol, quantity, price, fee_pct)
    fee = order_fee(price, quantity, fee_pct)
    total_cost = price * quantity + fee
    if total_cost > state.cash_balance:
        raise InsufficientFunds(
            f"Insufficient cash for order: need {total_cost:.2f}, have {state.cash_balance:.2f}"
        )

    existing = state.holding(symbol)
    existing_qty = existing.quantity if existing else 0
    existing_cost = existing.avg_cost if existing else 0.0
    new_qty = existing_qty + quantity
    weighted_cost = (existing_qty * existing_cost) + (quantity * price)
    updated = Holding(symbol=symbol, quantity=new_qty, avg_cost=weighted_cost / new_qty)

    trade = Trade(
        id=trade_id,
        symbol=symbol,
        side=Side.BUY,
        quantity=quantity,
        price=price,
        fee=fee,
        total=total_cost,
        timestamp=timestamp,
        source=source,
    )
    new_state = PortfolioState(
        cash_balance=state.cash_balance - total_cost,
        holdings=_upsert(state.holdings, updated),
        trade_history=(trade, *state.trade_history),
        realized_pl=state.realized_pl,
    )
    return new_state, trade


def apply_sell(
    state: PortfolioState,
    symbol: str,
    quantity: int,
    price: float,
    fee_pct: float,
    *,
    source: TradeSource,
    timestamp: datetime,
    trade_id: str,
) -> tuple[PortfolioState, Trade]:
    """Return the state after selling ``quantity`` units at average cost, or raise."""
    _validate_order(symbol, quantity, price, fee_pct)
    existing = state.holding(symbol)
    if existing is None:
        raise NoSuchHolding(f"No holding for {symbol}")
    if existing.quantity < quantity:
        raise InsufficientQuantity(
            f"Insufficient position to sell: hold {existing.quantity} {symbol}, asked {quantity}"
        )

    fee = order_fee(price, quantity, fee_pct)
    proceeds = price * quantity - fee
    realized = (price - existing.avg_cost) * quantity - fee
    remaining = existing.quantity - quantity
    if remaining:
        holdings = _upsert(
            state.holdings,
            Holding(symbol=symbol, quantity=remaining, avg_cost=existing.avg_cost),
        )
    else:
        holdings = tuple(item for item in state.holdings if item.symbol != symbol)

    trade = Trade(
        id=trade_id,
        symbol=symbol,
        side=Side.SELL,
        quantity=quantity,
        price=price,
        fee=fee,
        total=proceeds,
        timestamp=timestamp,
        source=source,
    )
    new_state = PortfolioState(
        cash_balance=state.cash_balance + proceeds,
        holdings=holdings,
        trade_history=(trade, *state.trade_history),
        realized_pl=state.realized_pl + realized,
    )
    return new_state, trade


class PortfolioLedger:
    """Single-writer owner of a PortfolioState.

    Manual and strategy orders go through the same lock, so concurrent asset
    loops never interleave their read-modify-write of cash and holdings.
    Listeners run after the lock is released, once per accepted trade.
    """

    def __init__(
        self,
        state: PortfolioState | None = None,
        fee_pct: float = 0.2,
        clock: Callable[[], datetime] | None = None,
        id_factory: Callable[[], str] | None = None,
    ) -> None:
        if not 0 <= fee_pct < 100:
            raise ValueError("fee_pct must be in [0, 100)")
        self._state = state or PortfolioState.default()
        if self._state.cash_balance < 0:
            raise ValueError("cash_balance must be non-negative")
        self.fee_pct = fee_pct
        self._clock = clock or (lambda: datetime.now(UTC))
        self._id_factory = id_factory or (lambda: str(uuid4()))
        self._lock = Lock()
        self._listeners: list[TransitionListener] = []

    @property
    def state(self) -> PortfolioState:
        return self._state

    def subscribe(self, listener: TransitionListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def execute_buy(
        self,
        symbol: str,
        quantity: int,
        price: float,
        fee_pct: float | None = None,
        source: TradeSource = TradeSource.MANUAL,
    ) -> Trade:
        return self.execute(Side.BUY, symbol, quantity, price, fee_pct=fee_pct, source=source)

    def execute_sell(
        self,
        symbol: str,
        quantity: int,
        price: float,
        fee_pct: float | None = None,
        source: TradeSource = TradeSource.MANUAL,
    ) -> Trade:
        return self.execute(Side.SELL, symbol, quantity, price, fee_pct=fee_pct, source=source)

    def execute(
        self,
        side: Side,
        symbol: str,
        quantity: int,
        price: float,
        fee_pct: float | None = None,
        source: TradeSource = TradeSource.MANUAL,
    ) -> Trade:
        apply = apply_buy if side == Side.BUY else apply_sell
        effective_fee = self.fee_pct if fee_pct is None else fee_pct

        with self._lock:
            try:
                new_state, trade = apply(
                    self._state,
                    symbol,
                    quantity,
                    price,
                    effective_fee,
                    source=source,
                    timestamp=self._clock(),
                    trade_id=self._id_factory(),
                )
            except LedgerError as exc:
                logger.info("Rejected %s %s x%s @ %s: %s", side, symbol, quantity, price, exc)
                raise
            self._state = new_state

        logger.info(
            "Executed %s %s x%s @ %.2f fee=%.2f cash=%.2f source=%s",
            trade.side,
            trade.symbol,
            trade.quantity,
            trade.price,
            trade.fee,
            new_state.cash_balance,
            trade.source,
        )
        for listener in list(self._listeners):
            try:
                listener(new_state, trade)
            except Exception:
                logger.exception("Listener failed after %s %s", trade.side, trade.id)
        return trade


def _upsert(holdings: tuple[Holding, ...], updated: Holding) -> tuple[Holding, ...]:
    if any(item.symbol == updated.symbol for item in holdings):
        return tuple(updated if item.symbol == updated.symbol else item for item in holdings)
    return (*holdings, updated)


def _validate_order(symbol: str, quantity: int, price: float, fee_pct: float) -> None:
    if not symbol.strip():
        raise InvalidOrder("symbol must be non-empty")
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise InvalidOrder("quantity must be a positive integer")
    if not math.isfinite(price) or price <= 0:
        raise InvalidOrder("price must be greater than zero")
    if not 0 <= fee_pct < 100:
        raise InvalidOrder("fee_pct must be in [0, 100)")

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from threading import Lock

import pandas as pd

from paperdesk.data.base import FeedTick, PriceFeed
from paperdesk.data.history import PriceHistory
from paperdesk.domain.models import Candle, PricePoint
from paperdesk.execution.ledger import PortfolioLedger
from paperdesk.execution.models import Trade
from paperdesk.patterns import Pattern, classify
from paperdesk.portfolio import total_equity
from paperdesk.strategy import SignalLoop, StrategyConfig, TickOutcome


@dataclass(slots=True, frozen=True)
class TimelineStep:
    point: PricePoint
    pattern: Pattern
    outcome: TickOutcome


class AssetTimeline:
    """One asset's strictly ordered sequence of ticks.

    Each tick appends to the bounded history, classifies the new candle against
    the one before it, then runs the signal loop over the updated history.
    """

    def __init__(self, loop: SignalLoop, window: int = 30) -> None:
        self.loop = loop
        self.history = PriceHistory(window)
        self.last_pattern = Pattern.NONE
        self._previous_candle: Candle | None = None
        self._lock = Lock()

    @property
    def symbol(self) -> str:
        return self.loop.symbol

    def advance(self, tick: FeedTick) -> TimelineStep:
        with self._lock:
            self.history.append(tick.point)
            pattern = Pattern.NONE
            if tick.candle is not None:
                pattern = classify(tick.candle, self._previous_candle)
            self._previous_candle = tick.candle
            self.last_pattern = pattern
            outcome = self.loop.on_tick(self.history.points())
        return TimelineStep(point=tick.point, pattern=pattern, outcome=outcome)


@dataclass(slots=True)
class TradingRunResult:
    equity_curve: pd.Series
    trades: tuple[Trade, ...]
    steps: tuple[TimelineStep, ...]

    @property
    def trades_placed(self) -> int:
        return len(self.trades)

    @property
    def last_pattern(self) -> Pattern:
        return self.steps[-1].pattern if self.steps else Pattern.NONE


class TradingEngine:
    """Deterministic replay of a price series through one asset's signal loop."""

    def __init__(
        self,
        ledger: PortfolioLedger,
        symbol: str,
        config: StrategyConfig | None = None,
        window: int = 30,
    ) -> None:
        self.ledger = ledger
        self.symbol = symbol
        self.timeline = AssetTimeline(SignalLoop(symbol, config, ledger), window=window)

    def run(
        self,
        prices: pd.Series,
        candles: Sequence[Candle | None] | None = None,
    ) -> TradingRunResult:
        if candles is not None and len(candles) != len(prices):
            raise ValueError("candles must have the same length as prices")
        candle_list = list(candles) if candles is not None else [None] * len(prices)

        equity_points: list[float] = []
        steps: list[TimelineStep] = []
        for label, price, candle in zip(
            prices.index,
            prices.to_numpy(),
            candle_list,
            strict=True,
        ):
            point = PricePoint(time=str(label), price=float(price))
            steps.append(self.timeline.advance(FeedTick(point=point, candle=candle)))
            equity_points.append(self._mark_to_market(point.price))

        trades = tuple(step.outcome.trade for step in steps if step.outcome.trade is not None)
        return TradingRunResult(
            equity_curve=pd.Series(equity_points, index=prices.index, dtype="float64"),
            trades=trades,
            steps=tuple(steps),
        )

    def run_feed(self, feed: PriceFeed, ticks: int) -> TradingRunResult:
        if ticks <= 0:
            raise ValueError("ticks must be greater than zero")
        labels: list[str] = []
        values: list[float] = []
        candles: list[Candle | None] = []
        for _ in range(ticks):
            tick = feed.next_tick()
            if tick is None:
                break
            labels.append(tick.point.time)
            values.append(tick.point.price)
            candles.append(tick.candle)
        return self.run(pd.Series(values, index=labels, dtype="float64"), candles=candles)

    def _mark_to_market(self, price: float) -> float:
        state = self.ledger.state
        marks = {item.symbol: item.avg_cost for item in state.holdings}
        marks[self.symbol] = price
        return total_equity(state, marks)

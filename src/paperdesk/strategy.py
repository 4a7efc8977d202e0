from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field, replace
from threading import Lock
from typing import Any

from paperdesk.domain.models import PricePoint, Signal
from paperdesk.errors import LedgerError
from paperdesk.execution.ledger import PortfolioLedger
from paperdesk.execution.models import Side, Trade, TradeSource
from paperdesk.indicators import IndicatorSnapshot, compute_snapshot

logger = logging.getLogger(__name__)

RSI_OVERBOUGHT = 70.0


@dataclass(slots=True, frozen=True)
class RuleToggles:
    ma_cross: bool = True
    rsi_overbought: bool = True


@dataclass(slots=True, frozen=True)
class StrategyConfig:
    ma_period: int = 10
    rsi_period: int = 14
    bollinger_period: int = 20
    bollinger_std_multiplier: float = 2.0
    volatility_period: int = 12
    momentum_lookback: int = 6
    trade_quantity: int = 5
    rules: RuleToggles = field(default_factory=RuleToggles)
    auto_execute: bool = True
    enabled: bool = True

    def __post_init__(self) -> None:
        for name in (
            "ma_period",
            "rsi_period",
            "bollinger_period",
            "volatility_period",
            "momentum_lookback",
            "trade_quantity",
        ):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be greater than zero")
        if self.bollinger_std_multiplier < 0:
            raise ValueError("bollinger_std_multiplier must be non-negative")


@dataclass(slots=True, frozen=True)
class SignalMemory:
    last_signal: Signal = Signal.NONE
    last_tick_time: str | None = None


@dataclass(slots=True, frozen=True)
class TickOutcome:
    tick_time: str
    signal: Signal
    snapshot: IndicatorSnapshot
    trade: Trade | None = None
    rejection: str | None = None
    deduplicated: bool = False

    @property
    def executed(self) -> bool:
        return self.trade is not None


def evaluate_rules(
    config: StrategyConfig,
    previous_price: float,
    current_price: float,
    previous_ma: float | None,
    current_ma: float | None,
    current_rsi: float | None,
) -> Signal:
    """Combine the enabled rules into one signal; a sell beats a conflicting buy."""
    signal = Signal.NONE
    if config.rules.ma_cross and previous_ma is not None and current_ma is not None:
        if previous_price <= previous_ma and current_price > current_ma:
            signal = Signal.BUY
        elif previous_price >= previous_ma and current_price < current_ma:
            signal = Signal.SELL
    if config.rules.rsi_overbought and current_rsi is not None and current_rsi > RSI_OVERBOUGHT:
        signal = Signal.SELL
    return signal


class SignalLoop:
    """Per-asset rule evaluation, run once per tick.

    The only state carried between ticks is the SignalMemory; indicator values
    for the current and the prior tick are recomputed from the history each time.
    """

    def __init__(
        self,
        symbol: str,
        config: StrategyConfig | None = None,
        ledger: PortfolioLedger | None = None,
    ) -> None:
        if not symbol.strip():
            raise ValueError("symbol must be non-empty")
        self.symbol = symbol
        self.ledger = ledger
        self._config = config or StrategyConfig()
        self._memory = SignalMemory()
        self._lock = Lock()

    @property
    def config(self) -> StrategyConfig:
        return self._config

    @property
    def memory(self) -> SignalMemory:
        return self._memory

    def update_config(self, **changes: Any) -> StrategyConfig:
        with self._lock:
            self._config = replace(self._config, **changes)
            return self._config

    def on_tick(self, history: Sequence[PricePoint]) -> TickOutcome:
        if not history:
            raise ValueError("history must contain at least one price point")

        with self._lock:
            config = self._config
            current_point = history[-1]
            tick_time = current_point.time
            current = compute_snapshot(history, config)

            if not config.enabled or len(history) < 2:
                return TickOutcome(tick_time=tick_time, signal=Signal.NONE, snapshot=current)

            prior_history = history[: len(history) - 1]
            previous = compute_snapshot(prior_history, config)
            signal = evaluate_rules(
                config,
                previous_price=prior_history[-1].price,
                current_price=current_point.price,
                previous_ma=previous.moving_average,
                current_ma=current.moving_average,
                current_rsi=current.rsi,
            )
            if signal == Signal.NONE:
                return TickOutcome(tick_time=tick_time, signal=signal, snapshot=current)

            if signal == self._memory.last_signal and tick_time == self._memory.last_tick_time:
                return TickOutcome(
                    tick_time=tick_time,
                    signal=signal,
                    snapshot=current,
                    deduplicated=True,
                )

            trade: Trade | None = None
            rejection: str | None = None
            if config.auto_execute and self.ledger is not None:
                try:
                    trade = self.ledger.execute(
                        Side(signal.value),
                        self.symbol,
                        config.trade_quantity,
                        current_point.price,
                        source=TradeSource.STRATEGY,
                    )
                except LedgerError as exc:
                    rejection = str(exc)
                    logger.info("Discarded %s signal for %s at %s: %s", signal, self.symbol, tick_time, exc)

            self._memory = SignalMemory(last_signal=signal, last_tick_time=tick_time)
            return TickOutcome(
                tick_time=tick_time,
                signal=signal,
                snapshot=current,
                trade=trade,
                rejection=rejection,
            )

from __future__ import annotations

import pytest

from paperdesk.domain.models import PricePoint, Signal
from paperdesk.execution.ledger import PortfolioLedger
from paperdesk.execution.models import PortfolioState, Side, TradeSource
from paperdesk.strategy import (
    RuleToggles,
    SignalLoop,
    SignalMemory,
    StrategyConfig,
    evaluate_rules,
)

CROSS_UP = [100.0, 99.0, 98.0, 97.0, 102.0]
CROSS_DOWN = [100.0, 101.0, 102.0, 103.0, 97.0]


def _series(prices: list[float], start: int = 1) -> list[PricePoint]:
    return [PricePoint(time=f"T-{start + i}", price=p) for i, p in enumerate(prices)]


def _config(**overrides: object) -> StrategyConfig:
    values: dict[str, object] = {"ma_period": 3, "trade_quantity": 5}
    values.update(overrides)
    return StrategyConfig(**values)  # type: ignore[arg-type]


def test_evaluate_rules_detects_crossings() -> None:
    config = _config()
    assert evaluate_rules(config, 97.0, 102.0, 98.0, 99.0, None) == Signal.BUY
    assert evaluate_rules(config, 103.0, 97.0, 102.0, 100.5, None) == Signal.SELL
    assert evaluate_rules(config, 103.0, 104.0, 102.0, 103.0, None) == Signal.NONE


def test_evaluate_rules_sell_beats_buy() -> None:
    config = _config()
    assert evaluate_rules(config, 97.0, 102.0, 98.0, 99.0, 75.0) == Signal.SELL


def test_evaluate_rules_respects_toggles_and_missing_values() -> None:
    no_rules = _config(rules=RuleToggles(ma_cross=False, rsi_overbought=False))
    assert evaluate_rules(no_rules, 97.0, 102.0, 98.0, 99.0, 90.0) == Signal.NONE
    assert evaluate_rules(_config(), 97.0, 102.0, None, 99.0, None) == Signal.NONE
    assert evaluate_rules(_config(), 97.0, 102.0, 98.0, 99.0, 70.0) == Signal.BUY


def test_cross_above_executes_one_strategy_buy() -> None:
    ledger = PortfolioLedger(PortfolioState.default())
    loop = SignalLoop("AAPL", _config(), ledger)
    history = _series(CROSS_UP)

    first = loop.on_tick(history)
    second = loop.on_tick(history)

    assert first.signal == Signal.BUY
    assert first.trade is not None
    assert first.trade.source == TradeSource.STRATEGY
    assert first.trade.side == Side.BUY
    assert first.trade.quantity == 5
    assert second.deduplicated is True
    assert second.trade is None
    assert len(ledger.state.trade_history) == 1
    assert loop.memory == SignalMemory(last_signal=Signal.BUY, last_tick_time="T-5")


def test_failing_listener_does_not_cause_double_fire() -> None:
    ledger = PortfolioLedger(PortfolioState.default())
    calls: list[str] = []

    def _fail_once(state: PortfolioState, trade: object) -> None:
        calls.append("called")
        if len(calls) == 1:
            raise RuntimeError("executor shut down")

    ledger.subscribe(_fail_once)
    loop = SignalLoop("AAPL", _config(), ledger)
    history = _series(CROSS_UP)

    first = loop.on_tick(history)
    second = loop.on_tick(history)

    assert first.executed
    assert second.deduplicated is True
    assert len(ledger.state.trade_history) == 1


def test_same_signal_on_new_tick_fires_again() -> None:
    ledger = PortfolioLedger(PortfolioState.default())
    loop = SignalLoop("AAPL", _config(), ledger)
    history = _series(CROSS_UP)
    loop.on_tick(history)

    relabelled = [*history[:-1], PricePoint(time="T-6", price=102.0)]
    outcome = loop.on_tick(relabelled)

    assert outcome.executed
    assert len(ledger.state.trade_history) == 2


def test_rejected_sell_is_discarded_but_remembered() -> None:
    ledger = PortfolioLedger(PortfolioState.default())
    loop = SignalLoop("AAPL", _config(), ledger)
    history = _series(CROSS_DOWN)

    outcome = loop.on_tick(history)
    repeat = loop.on_tick(history)

    assert outcome.signal == Signal.SELL
    assert outcome.trade is None
    assert outcome.rejection is not None
    assert loop.memory.last_signal == Signal.SELL
    assert repeat.deduplicated is True
    assert ledger.state.trade_history == ()


def test_insufficient_funds_is_not_fatal() -> None:
    ledger = PortfolioLedger(PortfolioState.default(100.0))
    loop = SignalLoop("AAPL", _config(), ledger)

    outcome = loop.on_tick(_series(CROSS_UP))

    assert outcome.signal == Signal.BUY
    assert outcome.rejection is not None
    assert ledger.state.cash_balance == 100.0


def test_rsi_overbought_overrides_ma_buy() -> None:
    loop = SignalLoop("AAPL", _config(rsi_period=3))
    # last three deltas: -1, -1, +5 -> RSI ~71.4
    outcome = loop.on_tick(_series(CROSS_UP))
    assert outcome.snapshot.rsi == pytest.approx(100 - 100 / 3.5)
    assert outcome.signal == Signal.SELL


def test_auto_execute_off_records_signal_without_trading() -> None:
    ledger = PortfolioLedger(PortfolioState.default())
    loop = SignalLoop("AAPL", _config(auto_execute=False), ledger)

    outcome = loop.on_tick(_series(CROSS_UP))

    assert outcome.signal == Signal.BUY
    assert outcome.trade is None
    assert outcome.rejection is None
    assert loop.memory.last_signal == Signal.BUY
    assert ledger.state.trade_history == ()


def test_disabled_strategy_emits_nothing() -> None:
    loop = SignalLoop("AAPL", _config(enabled=False))
    outcome = loop.on_tick(_series(CROSS_UP))
    assert outcome.signal == Signal.NONE
    assert loop.memory == SignalMemory()


def test_config_changes_apply_on_next_tick() -> None:
    loop = SignalLoop("AAPL", _config())
    history = _series(CROSS_UP)
    assert loop.on_tick(history).snapshot.moving_average == pytest.approx(99.0)

    loop.update_config(ma_period=10)

    assert loop.config.ma_period == 10
    outcome = loop.on_tick(history)
    assert outcome.snapshot.moving_average is None
    assert outcome.signal == Signal.NONE


def test_single_point_history_has_no_signal() -> None:
    loop = SignalLoop("AAPL", _config(ma_period=1))
    assert loop.on_tick(_series([100.0])).signal == Signal.NONE


def test_empty_history_is_rejected() -> None:
    loop = SignalLoop("AAPL", _config())
    with pytest.raises(ValueError):
        loop.on_tick([])


def test_strategy_config_validation() -> None:
    with pytest.raises(ValueError, match="ma_period"):
        StrategyConfig(ma_period=0)
    with pytest.raises(ValueError, match="bollinger_std_multiplier"):
        StrategyConfig(bollinger_std_multiplier=-1.0)

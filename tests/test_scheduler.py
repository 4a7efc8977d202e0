from __future__ import annotations

import time

import pytest

from paperdesk.data.feeds import SequenceFeed
from paperdesk.execution.ledger import PortfolioLedger
from paperdesk.execution.trading_engine import AssetTimeline, TimelineStep
from paperdesk.scheduler import TickScheduler
from paperdesk.strategy import SignalLoop, StrategyConfig

CROSS_UP = [100.0, 99.0, 98.0, 97.0, 102.0]


def _wait_until_idle(scheduler: TickScheduler, timeout: float = 5.0) -> None:
    deadline = time.monotonic() + timeout
    while scheduler.running and time.monotonic() < deadline:
        time.sleep(0.01)


def test_assets_tick_independently_against_shared_ledger() -> None:
    ledger = PortfolioLedger()
    config = StrategyConfig(ma_period=3, trade_quantity=2)
    steps: list[tuple[str, TimelineStep]] = []
    scheduler = TickScheduler(0.005, on_step=lambda symbol, step: steps.append((symbol, step)))
    timelines = {}
    for symbol in ("AAPL", "TLT"):
        timelines[symbol] = AssetTimeline(SignalLoop(symbol, config, ledger), window=10)
        scheduler.add_asset(SequenceFeed(CROSS_UP), timelines[symbol])

    scheduler.start()
    _wait_until_idle(scheduler)
    scheduler.stop(timeout=1.0)

    assert len(timelines["AAPL"].history) == 5
    assert len(timelines["TLT"].history) == 5
    assert len(steps) == 10
    assert sorted(trade.symbol for trade in ledger.state.trade_history) == ["AAPL", "TLT"]


def test_scheduler_validates_registration() -> None:
    scheduler = TickScheduler(1.0)
    timeline = AssetTimeline(SignalLoop("AAPL"))
    scheduler.add_asset(SequenceFeed([100.0]), timeline)

    with pytest.raises(ValueError, match="already scheduled"):
        scheduler.add_asset(SequenceFeed([100.0]), AssetTimeline(SignalLoop("AAPL")))


def test_scheduler_needs_assets_and_positive_interval() -> None:
    with pytest.raises(ValueError):
        TickScheduler(0)
    with pytest.raises(ValueError, match="No assets"):
        TickScheduler(1.0).start()


def test_stop_interrupts_waiting_threads() -> None:
    scheduler = TickScheduler(60.0)
    scheduler.add_asset(SequenceFeed([100.0]), AssetTimeline(SignalLoop("AAPL")))
    scheduler.start()
    assert scheduler.running

    scheduler.stop(timeout=1.0)

    assert not scheduler.running


def test_failing_step_listener_is_logged_and_ticking_continues(
    caplog: pytest.LogCaptureFixture,
) -> None:
    seen: list[str] = []

    def _on_step(symbol: str, step: TimelineStep) -> None:
        seen.append(step.outcome.tick_time)
        if len(seen) == 1:
            raise RuntimeError("listener broke")

    scheduler = TickScheduler(0.005, on_step=_on_step)
    timeline = AssetTimeline(SignalLoop("AAPL", StrategyConfig(ma_period=3)), window=10)
    scheduler.add_asset(SequenceFeed(CROSS_UP), timeline)

    with caplog.at_level("ERROR", logger="paperdesk.scheduler"):
        scheduler.start()
        _wait_until_idle(scheduler)
        scheduler.stop(timeout=1.0)

    assert len(timeline.history) == 5
    assert len(seen) == 5
    assert "Tick T-1 failed for AAPL" in caplog.text

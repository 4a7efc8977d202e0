from __future__ import annotations

import pytest

from paperdesk.data.feeds import ASSET_UNIVERSE, RandomWalkFeed, SequenceFeed, find_asset
from paperdesk.data.history import PriceHistory
from paperdesk.domain.models import PricePoint


def test_random_walk_is_reproducible_with_seed() -> None:
    first = RandomWalkFeed(seed_price=150.0, seed=42)
    second = RandomWalkFeed(seed_price=150.0, seed=42)
    assert [first.next_tick() for _ in range(20)] == [second.next_tick() for _ in range(20)]


def test_random_walk_respects_price_floor_and_candle_shape() -> None:
    feed = RandomWalkFeed(seed_price=1.5, max_drift=4.0, seed=3)
    for i in range(1, 200):
        tick = feed.next_tick()
        assert tick.point.price >= 1.0
        assert tick.point.time == f"T-{i}"
        candle = tick.candle
        assert candle is not None
        assert candle.low <= min(candle.open, candle.close)
        assert max(candle.open, candle.close) <= candle.high


def test_random_walk_drift_is_bounded() -> None:
    feed = RandomWalkFeed(seed_price=200.0, max_drift=4.0, seed=11)
    previous = 200.0
    for _ in range(50):
        price = feed.next_tick().point.price
        assert abs(price - previous) <= 4.01
        previous = price


def test_feed_for_asset_uses_universe_ranges() -> None:
    asset = find_asset("btc")
    tick = RandomWalkFeed.for_asset("BTC", seed=1).next_tick()
    assert asset.seed_low - asset.max_drift <= tick.point.price <= asset.seed_high + asset.max_drift
    assert {a.symbol for a in ASSET_UNIVERSE} >= {"AAPL", "TLT", "BTC"}


def test_unknown_asset_is_rejected() -> None:
    with pytest.raises(ValueError, match="Unknown symbol"):
        find_asset("NOPE")


def test_sequence_feed_ends_with_none() -> None:
    feed = SequenceFeed([100.0, 101.0])
    assert feed.next_tick().point == PricePoint(time="T-1", price=100.0)
    assert feed.next_tick().point.time == "T-2"
    assert feed.next_tick() is None


def test_price_history_drops_oldest() -> None:
    history = PriceHistory(window=2)
    for i, price in enumerate([10.0, 11.0, 12.0], start=1):
        history.append(PricePoint(time=f"T-{i}", price=price))

    assert len(history) == 2
    assert history.latest == PricePoint(time="T-3", price=12.0)
    series = history.to_series()
    assert list(series.index) == ["T-2", "T-3"]
    assert list(series) == [11.0, 12.0]


def test_price_history_requires_room_for_crossing() -> None:
    with pytest.raises(ValueError):
        PriceHistory(window=1)


def test_price_point_must_be_positive() -> None:
    with pytest.raises(ValueError):
        PricePoint(time="T-1", price=0.0)

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np

from paperdesk.data.base import FeedTick, PriceFeed
from paperdesk.domain.models import Candle, PricePoint

MIN_PRICE = 1.0


@dataclass(slots=True, frozen=True)
class Asset:
    symbol: str
    name: str
    category: str
    seed_low: float
    seed_high: float
    max_drift: float


ASSET_UNIVERSE: tuple[Asset, ...] = (
    Asset("AAPL", "Apple", "Stocks", 140.0, 260.0, 4.0),
    Asset("MSFT", "Microsoft", "Stocks", 140.0, 260.0, 4.0),
    Asset("TLT", "Treasury Bond", "Bonds", 85.0, 120.0, 1.2),
    Asset("LQD", "Corporate Bond", "Bonds", 85.0, 120.0, 1.2),
    Asset("BTC", "Bitcoin", "Crypto", 18_000.0, 32_000.0, 600.0),
    Asset("ETH", "Ethereum", "Crypto", 18_000.0, 32_000.0, 600.0),
)


def find_asset(symbol: str) -> Asset:
    normalized = symbol.strip().upper()
    for asset in ASSET_UNIVERSE:
        if asset.symbol == normalized:
            return asset
    raise ValueError(f"Unknown symbol: {symbol}")


class SequenceFeed(PriceFeed):
    """Replays a fixed list of prices; returns None once exhausted."""

    def __init__(
        self,
        prices: Sequence[float],
        candles: Sequence[Candle | None] | None = None,
        start_index: int = 1,
    ) -> None:
        if candles is not None and len(candles) != len(prices):
            raise ValueError("candles must match prices in length")
        self._prices = list(prices)
        self._candles = list(candles) if candles is not None else [None] * len(self._prices)
        self._start_index = start_index
        self._cursor = 0

    def next_tick(self) -> FeedTick | None:
        if self._cursor >= len(self._prices):
            return None
        index = self._cursor
        self._cursor += 1
        point = PricePoint(time=f"T-{self._start_index + index}", price=float(self._prices[index]))
        return FeedTick(point=point, candle=self._candles[index])


class RandomWalkFeed(PriceFeed):
    """Synthetic demo feed: bounded uniform drift, floored at one, rounded to cents."""

    def __init__(
        self,
        seed_price: float,
        max_drift: float = 4.0,
        candle_spread: float = 4.0,
        max_wick: float = 6.0,
        seed: int | None = None,
        start_index: int = 1,
    ) -> None:
        if seed_price <= 0:
            raise ValueError("seed_price must be greater than zero")
        if max_drift < 0 or candle_spread < 0 or max_wick < 0:
            raise ValueError("drift, spread and wick must be non-negative")
        self.max_drift = max_drift
        self.candle_spread = candle_spread
        self.max_wick = max_wick
        self._rng = np.random.default_rng(seed)
        self._price = float(seed_price)
        self._index = start_index - 1

    @classmethod
    def for_asset(cls, symbol: str, seed: int | None = None) -> RandomWalkFeed:
        asset = find_asset(symbol)
        rng = np.random.default_rng(seed)
        seed_price = _round_cents(float(rng.uniform(asset.seed_low, asset.seed_high)))
        return cls(seed_price=seed_price, max_drift=asset.max_drift, seed=seed)

    def next_tick(self) -> FeedTick:
        drift = float(self._rng.uniform(-self.max_drift, self.max_drift))
        self._price = _round_cents(max(MIN_PRICE, self._price + drift))
        self._index += 1
        point = PricePoint(time=f"T-{self._index}", price=self._price)
        return FeedTick(point=point, candle=self._candle_around(self._price))

    def _candle_around(self, price: float) -> Candle:
        open_ = max(0.01, _round_cents(price + self._rng.uniform(-self.candle_spread, self.candle_spread)))
        close = max(0.01, _round_cents(price + self._rng.uniform(-self.candle_spread, self.candle_spread)))
        high = _round_cents(max(open_, close) + self._rng.uniform(0, self.max_wick))
        low = max(0.0, _round_cents(min(open_, close) - self._rng.uniform(0, self.max_wick)))
        return Candle(open=open_, close=close, high=high, low=low)


def _round_cents(value: float) -> float:
    return round(float(value), 2)

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import StrEnum


class Signal(StrEnum):
    BUY = "buy"
    SELL = "sell"
    NONE = "none"


@dataclass(slots=True, frozen=True)
class PricePoint:
    time: str
    price: float

    def __post_init__(self) -> None:
        if not math.isfinite(self.price) or self.price <= 0:
            raise ValueError("price must be a finite number greater than zero")


@dataclass(slots=True, frozen=True)
class Candle:
    open: float
    close: float
    high: float
    low: float

    def __post_init__(self) -> None:
        if not (self.low <= min(self.open, self.close) <= max(self.open, self.close) <= self.high):
            raise ValueError("candle must satisfy low <= open/close <= high")

    @property
    def is_bullish(self) -> bool:
        return self.close > self.open

    @property
    def is_bearish(self) -> bool:
        return self.close < self.open

"""Technical indicators over an ordered price history (oldest first).

Every function recomputes from the trailing window it needs and returns ``None``
while the history is still too short for that window.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING

import pandas as pd

from paperdesk.domain.models import PricePoint

if TYPE_CHECKING:
    from paperdesk.strategy import StrategyConfig


@dataclass(slots=True, frozen=True)
class BollingerBands:
    mean: float
    upper: float
    lower: float


@dataclass(slots=True, frozen=True)
class IndicatorSnapshot:
    moving_average: float | None
    rsi: float | None
    volatility: float | None
    momentum: float | None
    bollinger: BollingerBands | None


def moving_average(series: Sequence[PricePoint], period: int) -> float | None:
    _validate_period(period, "period")
    if len(series) < period:
        return None
    return float(_tail(series, period).mean())


def rsi(series: Sequence[PricePoint], period: int) -> float | None:
    _validate_period(period, "period")
    if len(series) < period + 1:
        return None

    deltas = _tail(series, period + 1).diff().dropna()
    gains = float(deltas[deltas >= 0].sum())
    losses = float(-deltas[deltas < 0].sum())
    if losses == 0:
        return 100.0
    return 100.0 - 100.0 / (1.0 + gains / losses)


def volatility(series: Sequence[PricePoint], period: int) -> float | None:
    _validate_period(period, "period")
    if len(series) < period:
        return None
    return float(_tail(series, period).std(ddof=0))


def momentum(series: Sequence[PricePoint], lookback: int) -> float | None:
    _validate_period(lookback, "lookback")
    if len(series) < lookback + 1:
        return None
    current = series[-1].price
    previous = series[-1 - lookback].price
    return (current - previous) / previous * 100.0


def bollinger(
    series: Sequence[PricePoint],
    period: int,
    std_multiplier: float,
) -> BollingerBands | None:
    if std_multiplier < 0 or math.isnan(std_multiplier):
        raise ValueError("std_multiplier must be non-negative")
    mean = moving_average(series, period)
    sigma = volatility(series, period)
    if mean is None or sigma is None:
        return None
    return BollingerBands(
        mean=mean,
        upper=mean + std_multiplier * sigma,
        lower=mean - std_multiplier * sigma,
    )


def compute_snapshot(series: Sequence[PricePoint], config: StrategyConfig) -> IndicatorSnapshot:
    return IndicatorSnapshot(
        moving_average=moving_average(series, config.ma_period),
        rsi=rsi(series, config.rsi_period),
        volatility=volatility(series, config.volatility_period),
        momentum=momentum(series, config.momentum_lookback),
        bollinger=bollinger(
            series,
            config.bollinger_period,
            config.bollinger_std_multiplier,
        ),
    )


def _tail(series: Sequence[PricePoint], size: int) -> pd.Series:
    window = series[len(series) - size :]
    return pd.Series([point.price for point in window], dtype="float64")


def _validate_period(value: int, name: str) -> None:
    if value <= 0:
        raise ValueError(f"{name} must be greater than zero")

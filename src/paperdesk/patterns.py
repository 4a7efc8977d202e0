from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from paperdesk.domain.models import Candle

EPSILON = 0.01
DOJI_BODY_RATIO = 0.1
HAMMER_LOWER_WICK_RATIO = 2.0
HAMMER_UPPER_WICK_RATIO = 0.6


class Pattern(StrEnum):
    DOJI = "doji"
    HAMMER = "hammer"
    BULLISH_ENGULFING = "bullish_engulfing"
    BEARISH_ENGULFING = "bearish_engulfing"
    NONE = "none"


PATTERN_DESCRIPTIONS: dict[Pattern, str] = {
    Pattern.DOJI: "Open and close are nearly equal, signaling indecision.",
    Pattern.HAMMER: "Small body with long lower wick after a decline.",
    Pattern.BULLISH_ENGULFING: "Bullish candle fully engulfs prior bearish body.",
    Pattern.BEARISH_ENGULFING: "Bearish candle fully engulfs prior bullish body.",
    Pattern.NONE: "No recognized pattern.",
}


@dataclass(slots=True, frozen=True)
class CandleStats:
    body: float
    range: float
    upper_wick: float
    lower_wick: float


def candle_stats(candle: Candle) -> CandleStats:
    return CandleStats(
        body=abs(candle.close - candle.open),
        range=max(candle.high - candle.low, EPSILON),
        upper_wick=candle.high - max(candle.open, candle.close),
        lower_wick=min(candle.open, candle.close) - candle.low,
    )


def classify(current: Candle, previous: Candle | None = None) -> Pattern:
    """Return the first matching pattern for ``current``.

    Doji and hammer look at the current candle alone; the engulfing patterns
    also need the immediately preceding candle.
    """
    stats = candle_stats(current)

    if stats.body / stats.range <= DOJI_BODY_RATIO:
        return Pattern.DOJI

    if (
        stats.lower_wick >= stats.body * HAMMER_LOWER_WICK_RATIO
        and stats.upper_wick <= stats.body * HAMMER_UPPER_WICK_RATIO
    ):
        return Pattern.HAMMER

    if previous is None:
        return Pattern.NONE

    if (
        previous.is_bearish
        and current.is_bullish
        and current.open <= previous.close
        and current.close >= previous.open
    ):
        return Pattern.BULLISH_ENGULFING

    if (
        previous.is_bullish
        and current.is_bearish
        and current.open >= previous.close
        and current.close <= previous.open
    ):
        return Pattern.BEARISH_ENGULFING

    return Pattern.NONE

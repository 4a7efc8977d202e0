from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from paperdesk.domain.models import Candle, PricePoint


@dataclass(slots=True, frozen=True)
class FeedTick:
    point: PricePoint
    candle: Candle | None = None


class PriceFeed(ABC):
    @abstractmethod
    def next_tick(self) -> FeedTick | None:
        """Return the next observation, or None once the feed has ended."""

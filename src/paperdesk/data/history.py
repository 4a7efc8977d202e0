from __future__ import annotations

from collections import deque

import pandas as pd

from paperdesk.domain.models import PricePoint


class PriceHistory:
    """Bounded, append-only price window; the oldest point drops on overflow."""

    def __init__(self, window: int, points: tuple[PricePoint, ...] = ()) -> None:
        if window < 2:
            raise ValueError("window must be at least 2")
        self.window = window
        self._points: deque[PricePoint] = deque(points, maxlen=window)

    def append(self, point: PricePoint) -> None:
        self._points.append(point)

    def points(self) -> tuple[PricePoint, ...]:
        return tuple(self._points)

    @property
    def latest(self) -> PricePoint | None:
        return self._points[-1] if self._points else None

    def to_series(self) -> pd.Series:
        return pd.Series(
            [point.price for point in self._points],
            index=[point.time for point in self._points],
            dtype="float64",
        )

    def __len__(self) -> int:
        return len(self._points)

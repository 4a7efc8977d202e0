from __future__ import annotations

import logging
from collections.abc import Callable
from threading import Event, Lock, Thread

from paperdesk.data.base import PriceFeed
from paperdesk.execution.trading_engine import AssetTimeline, TimelineStep

logger = logging.getLogger(__name__)

StepListener = Callable[[str, TimelineStep], None]


class TickScheduler:
    """Drives each registered asset on its own fixed-interval thread.

    Assets advance independently; the ledger shared by their signal loops is
    the only state they have in common.
    """

    def __init__(
        self,
        interval_seconds: float,
        on_step: StepListener | None = None,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be greater than zero")
        self.interval_seconds = interval_seconds
        self.on_step = on_step
        self._assets: dict[str, tuple[PriceFeed, AssetTimeline]] = {}
        self._threads: list[Thread] = []
        self._stop = Event()
        self._lock = Lock()

    @property
    def running(self) -> bool:
        return any(thread.is_alive() for thread in self._threads)

    def add_asset(self, feed: PriceFeed, timeline: AssetTimeline) -> None:
        with self._lock:
            if self._threads:
                raise ValueError("Cannot add assets after the scheduler has started")
            if timeline.symbol in self._assets:
                raise ValueError(f"Asset already scheduled: {timeline.symbol}")
            self._assets[timeline.symbol] = (feed, timeline)

    def start(self) -> None:
        with self._lock:
            if self._threads:
                raise ValueError("Scheduler already started")
            if not self._assets:
                raise ValueError("No assets to schedule")
            self._stop.clear()
            for symbol, (feed, timeline) in self._assets.items():
                thread = Thread(
                    target=self._run,
                    args=(feed, timeline),
                    name=f"tick-{symbol}",
                    daemon=True,
                )
                self._threads.append(thread)
                thread.start()
        logger.info("Started ticking %s assets every %.2fs", len(self._assets), self.interval_seconds)

    def stop(self, timeout: float | None = None) -> None:
        self._stop.set()
        with self._lock:
            threads = list(self._threads)
            self._threads.clear()
        for thread in threads:
            thread.join(timeout)
        logger.info("Stopped tick scheduler")

    def _run(self, feed: PriceFeed, timeline: AssetTimeline) -> None:
        while not self._stop.wait(self.interval_seconds):
            tick = feed.next_tick()
            if tick is None:
                logger.info("Feed for %s ended", timeline.symbol)
                return
            try:
                step = timeline.advance(tick)
                if self.on_step is not None:
                    self.on_step(timeline.symbol, step)
            except Exception:
                logger.exception("Tick %s failed for %s", tick.point.time, timeline.symbol)

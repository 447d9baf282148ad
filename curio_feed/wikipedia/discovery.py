"""Per-mode title buffers refilled by randomized search pagination."""
from __future__ import annotations

import logging
import random
import threading
import time
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, Dict, List, Optional

from curio_feed.config.settings import SearchSettings
from curio_feed.telemetry import metrics
from curio_feed.wikipedia.client import WikipediaClient
from curio_feed.wikipedia.errors import SearchExhausted, WikipediaError
from curio_feed.wikipedia.models import Coordinate, FeedMode

logger = logging.getLogger(__name__)


@dataclass
class SearchWindow:
    """Upper bound for offset sampling during a single refill.

    The search API does not report how many results a query really has, so an
    empty page means the offset overshot; each miss quarters the window, never
    going below one batch.
    """

    upper: int
    batch_size: int

    def sample_offset(self, rng: random.Random) -> int:
        return rng.randrange(0, max(1, self.upper - self.batch_size))

    def narrow(self) -> None:
        self.upper = max(self.batch_size, self.upper // 4)


class TitleDiscovery:
    """Own the per-mode queues of candidate titles."""

    def __init__(
        self,
        client: WikipediaClient,
        settings: SearchSettings,
        *,
        rng: Optional[random.Random] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._client = client
        self._settings = settings
        self._rng = rng or random.Random()
        self._sleep = sleep
        self._buffers: Dict[FeedMode, Deque[str]] = {}
        self._location: Optional[Coordinate] = None
        self._generation = 0
        self._lock = threading.RLock()

    @property
    def location(self) -> Optional[Coordinate]:
        return self._location

    def set_location(self, latitude: float, longitude: float) -> None:
        if not -90.0 <= latitude <= 90.0 or not -180.0 <= longitude <= 180.0:
            raise ValueError(f"Coordinate out of range: {latitude}, {longitude}")
        with self._lock:
            self._location = Coordinate(float(latitude), float(longitude))
            # Titles found around the previous position no longer apply.
            self._buffers.pop(FeedMode.NEARBY, None)

    def max_offset(self, mode: FeedMode) -> int:
        configured = self._settings.max_offsets.get(mode.key)
        return configured if configured is not None else (mode.max_offset or 0)

    def pending(self, mode: FeedMode) -> int:
        with self._lock:
            return len(self._buffers.get(mode, ()))

    def pop(self, mode: FeedMode) -> Optional[str]:
        """Take the next untried title for ``mode`` (FIFO), or ``None`` when drained."""

        with self._lock:
            buffer = self._buffers.get(mode)
            if not buffer:
                return None
            return buffer.popleft()

    def reset(self) -> None:
        with self._lock:
            self._buffers.clear()
            self._generation += 1

    def refill(self, mode: FeedMode) -> List[str]:
        """Replace the buffer for ``mode`` with a freshly shuffled batch of titles.

        Returns the stored titles. A mode without a search term is left alone and
        an empty list is returned. Raises ``SearchExhausted`` when every attempt
        came back empty, or the last transport/decode error when the final
        attempt failed.

        Searches run without holding the buffer lock. A batch that arrives after
        ``reset()`` (or, for location-based modes, after the location moved) is
        discarded and an empty list is returned.
        """

        with self._lock:
            generation = self._generation
            location = self._location
        term = mode.search_term(location, radius_km=self._settings.nearby_radius_km)
        if term is None:
            logger.debug("Mode %s has no search term; skipping refill", mode.key)
            return []

        batch_size = self._settings.batch_size
        attempts = self._settings.max_attempts
        window = SearchWindow(upper=max(1, self.max_offset(mode)), batch_size=batch_size)
        start = time.perf_counter()

        for attempt in range(1, attempts + 1):
            offset = window.sample_offset(self._rng)
            try:
                titles = self._client.search(term, limit=batch_size, offset=offset)
            except WikipediaError as exc:
                logger.warning(
                    "Search attempt %d/%d for %s failed: %s",
                    attempt,
                    attempts,
                    mode.key,
                    exc,
                    extra={"event": "discovery.search_failed", "mode": mode.key, "offset": offset},
                )
                if attempt >= attempts:
                    self._record(mode, attempt, 0, start, "error")
                    raise
                self._sleep(self._settings.backoff_seconds)
                continue

            if titles:
                return self._store(mode, titles, generation, location, attempt, start, offset, window)

            logger.debug(
                "Empty search page for %s at offset %d; narrowing window from %d",
                mode.key,
                offset,
                window.upper,
            )
            window.narrow()

        self._record(mode, attempts, 0, start, "exhausted")
        logger.warning(
            "Search for %s returned nothing after %d attempts",
            mode.key,
            attempts,
            extra={"event": "discovery.exhausted", "mode": mode.key},
        )
        raise SearchExhausted(mode, attempts)

    def _store(
        self,
        mode: FeedMode,
        titles: List[str],
        generation: int,
        location: Optional[Coordinate],
        attempt: int,
        start: float,
        offset: int,
        window: SearchWindow,
    ) -> List[str]:
        with self._lock:
            stale = generation != self._generation or (mode.is_location_based and location != self._location)
            if stale:
                self._record(mode, attempt, 0, start, "discarded")
                logger.info(
                    "Discarding %d titles for %s; buffers changed during the search",
                    len(titles),
                    mode.key,
                    extra={"event": "discovery.discarded", "mode": mode.key},
                )
                return []
            self._rng.shuffle(titles)
            self._buffers[mode] = deque(titles)

        self._record(mode, attempt, len(titles), start, "success")
        logger.info(
            "Buffered %d titles for %s (offset %d, window %d)",
            len(titles),
            mode.key,
            offset,
            window.upper,
            extra={"event": "discovery.refilled", "mode": mode.key, "count": len(titles)},
        )
        return list(titles)

    @staticmethod
    def _record(mode: FeedMode, attempts: int, count: int, start: float, status: str) -> None:
        metrics.record_refill(
            mode.key,
            attempts=attempts,
            title_count=count,
            duration_seconds=time.perf_counter() - start,
            status=status,
        )


__all__ = ["SearchWindow", "TitleDiscovery"]

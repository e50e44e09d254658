"""
Alternative-date suggestions for a time range that cannot be booked.

Scans forward day by day from the day after the requested date, up to a
bounded horizon, and keeps the first days on which the identical time
range validates cleanly. Per-day checks run in a thread pool and are
re-assembled in date order, so the outcome equals a sequential scan.

Results are memoized in an injectable TTLCache. The cache only absorbs
repeated queries; a cold cache produces the same answer.
"""

import datetime
import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta
from typing import Any, Callable, Hashable, Optional

from roombook.config import settings
from roombook.schemas.validation_schema import AlternativeDate, ValidationResult
from roombook.utils import format_display_date, local_today, relative_day_label

logger = logging.getLogger(__name__)

DayCheck = Callable[[datetime.date, str, str], ValidationResult]


class TTLCache:
    """Small thread-safe cache whose entries expire after ``ttl_seconds``.

    ``clock`` is injectable so tests can advance time deterministically.
    """

    def __init__(
        self,
        ttl_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: dict[Hashable, tuple[float, Any]] = {}
        self._lock = threading.Lock()

    def get(self, key: Hashable) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            expires_at, value = entry
            if self._clock() >= expires_at:
                del self._entries[key]
                return None
            return value

    def set(self, key: Hashable, value: Any) -> None:
        with self._lock:
            self._entries[key] = (self._clock() + self._ttl, value)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            now = self._clock()
            return sum(1 for expires_at, _ in self._entries.values() if expires_at > now)


class AlternativeDateFinder:
    """Finds the nearest days on which a time range would validate."""

    def __init__(
        self,
        check: DayCheck,
        cache: Optional[TTLCache] = None,
        horizon_days: Optional[int] = None,
        max_workers: Optional[int] = None,
        today: Optional[Callable[[], datetime.date]] = None,
    ) -> None:
        cfg = settings.scheduling
        self._check = check
        self._cache = cache if cache is not None else TTLCache(cfg.alternatives_cache_ttl_sec)
        self._horizon = horizon_days or cfg.alternatives_horizon_days
        self._max_workers = max_workers or cfg.alternatives_workers
        self._today = today or local_today

    @property
    def cache(self) -> TTLCache:
        return self._cache

    def _is_clean(self, day: datetime.date, start_time: str, end_time: str) -> bool:
        try:
            return self._check(day, start_time, end_time).is_valid
        except Exception:
            logger.exception("Alternative-date check failed for %s", day)
            return False

    def find_alternatives(
        self,
        day: datetime.date,
        start_time: str,
        end_time: str,
        max_suggestions: Optional[int] = None,
    ) -> list[AlternativeDate]:
        """Return up to ``max_suggestions`` later days where the range is bookable."""
        limit = max_suggestions or settings.scheduling.alternatives_max_suggestions
        key = (day.isoformat(), start_time, end_time, limit)
        cached = self._cache.get(key)
        if cached is not None:
            logger.debug("Alternative dates cache hit for %s", key)
            return list(cached)

        candidates = [day + timedelta(days=offset) for offset in range(1, self._horizon + 1)]
        with ThreadPoolExecutor(max_workers=self._max_workers) as pool:
            verdicts = list(
                pool.map(lambda d: self._is_clean(d, start_time, end_time), candidates)
            )

        today = self._today()
        found = [
            AlternativeDate(
                date=candidate.isoformat(),
                display_date=format_display_date(candidate),
                relative=relative_day_label(candidate, today),
            )
            for candidate, ok in zip(candidates, verdicts)
            if ok
        ][:limit]

        logger.info(
            "Found %d alternative date(s) for %s %s-%s within %d days",
            len(found), day, start_time, end_time, self._horizon,
        )
        self._cache.set(key, tuple(found))
        return found

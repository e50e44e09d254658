"""Tests for the alternative-date finder and its TTL cache."""

import datetime
import threading

from roombook.schemas.validation_schema import ValidationResult
from roombook.scheduling.alternatives import AlternativeDateFinder, TTLCache
from tests.conftest import MONDAY, TUESDAY


class RecordingCheck:
    """Day check that fails on listed dates and counts calls."""

    def __init__(self, closed=(), explode=()):
        self.closed = set(closed)
        self.explode = set(explode)
        self.calls = 0
        self._lock = threading.Lock()

    def __call__(self, day, start_time, end_time):
        with self._lock:
            self.calls += 1
        if day in self.explode:
            raise RuntimeError("lookup failed")
        if day in self.closed or day.weekday() >= 5:
            return ValidationResult(errors=["closed"])
        return ValidationResult()


def _finder(check, **kwargs):
    kwargs.setdefault("cache", TTLCache(60))
    kwargs.setdefault("horizon_days", 14)
    kwargs.setdefault("max_workers", 4)
    return AlternativeDateFinder(check, today=lambda: MONDAY, **kwargs)


class TestTTLCache:
    def test_get_missing(self, ttl_cache):
        assert ttl_cache.get("nope") is None

    def test_set_then_get(self, ttl_cache):
        ttl_cache.set("k", 1)
        assert ttl_cache.get("k") == 1
        assert len(ttl_cache) == 1

    def test_expires(self, ttl_cache, fake_clock):
        ttl_cache.set("k", 1)
        fake_clock.advance(60)
        assert ttl_cache.get("k") is None
        assert len(ttl_cache) == 0

    def test_clear(self, ttl_cache):
        ttl_cache.set("k", 1)
        ttl_cache.clear()
        assert ttl_cache.get("k") is None


class TestFindAlternatives:
    def test_skips_weekends_and_keeps_date_order(self):
        # Tuesday 20 Oct; weekend 24-25 Oct is closed
        found = _finder(RecordingCheck()).find_alternatives(TUESDAY, "10:00", "11:00")
        assert [a.date for a in found] == [
            "2026-10-21", "2026-10-22", "2026-10-23", "2026-10-26", "2026-10-27",
        ]

    def test_labels(self):
        found = _finder(RecordingCheck()).find_alternatives(TUESDAY, "10:00", "11:00", max_suggestions=1)
        assert found[0].display_date == "Wednesday, October 21"
        assert found[0].relative == "In 2 days"

    def test_tomorrow_label(self):
        found = _finder(RecordingCheck()).find_alternatives(MONDAY, "10:00", "11:00", max_suggestions=1)
        assert found[0].relative == "Tomorrow"

    def test_blackout_day_skipped(self):
        blackout = datetime.date(2026, 10, 21)
        found = _finder(RecordingCheck(closed={blackout})).find_alternatives(
            TUESDAY, "10:00", "11:00", max_suggestions=2
        )
        assert [a.date for a in found] == ["2026-10-22", "2026-10-23"]

    def test_respects_horizon(self):
        found = _finder(RecordingCheck(), horizon_days=3).find_alternatives(
            datetime.date(2026, 10, 22), "10:00", "11:00"
        )
        # 23 Oct only; 24 and 25 are the weekend
        assert [a.date for a in found] == ["2026-10-23"]

    def test_nothing_found(self):
        closed = {TUESDAY + datetime.timedelta(days=i) for i in range(1, 15)}
        assert _finder(RecordingCheck(closed=closed)).find_alternatives(TUESDAY, "10:00", "11:00") == []

    def test_failing_check_counts_as_unavailable(self):
        broken = datetime.date(2026, 10, 21)
        found = _finder(RecordingCheck(explode={broken})).find_alternatives(
            TUESDAY, "10:00", "11:00", max_suggestions=1
        )
        assert [a.date for a in found] == ["2026-10-22"]


class TestCaching:
    def test_repeat_query_served_from_cache(self):
        check = RecordingCheck()
        finder = _finder(check)
        first = finder.find_alternatives(TUESDAY, "10:00", "11:00")
        calls = check.calls
        second = finder.find_alternatives(TUESDAY, "10:00", "11:00")
        assert first == second
        assert check.calls == calls

    def test_different_limit_is_a_different_key(self):
        check = RecordingCheck()
        finder = _finder(check)
        finder.find_alternatives(TUESDAY, "10:00", "11:00", max_suggestions=2)
        calls = check.calls
        finder.find_alternatives(TUESDAY, "10:00", "11:00", max_suggestions=3)
        assert check.calls > calls

    def test_cold_cache_gives_same_answer(self):
        finder = _finder(RecordingCheck())
        warm = finder.find_alternatives(TUESDAY, "10:00", "11:00")
        finder.cache.clear()
        assert finder.find_alternatives(TUESDAY, "10:00", "11:00") == warm

    def test_expired_entry_recomputed(self, fake_clock):
        check = RecordingCheck()
        finder = _finder(check, cache=TTLCache(60, clock=fake_clock))
        finder.find_alternatives(TUESDAY, "10:00", "11:00")
        calls = check.calls
        fake_clock.advance(61)
        finder.find_alternatives(TUESDAY, "10:00", "11:00")
        assert check.calls == calls * 2

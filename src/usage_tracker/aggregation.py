"""Overlap-based usage statistics over half-open time windows."""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Iterator, Optional

from . import timeconv
from .models import AppUsage, DailyUsage, HourlyUsage, PieSlice, Session, WindowUsage
from .store import SessionStore

logger = logging.getLogger(__name__)

OTHER_LABEL = "Other"
DEFAULT_PIE_THRESHOLD_PERCENT = 1.5
_MIN_OTHER_SECONDS = 1e-6


class AggregationEngine:
    """Computes totals, rankings and hourly breakdowns from stored sessions.

    Open sessions count as running until the store's current time. Window
    bounds of ``None`` are unbounded, so ``total_time()`` covers all data.
    """

    def __init__(self, store: SessionStore) -> None:
        self._store = store

    def total_time(self, start: Optional[float] = None, end: Optional[float] = None) -> float:
        return sum(seconds for _, seconds in self._overlaps(start, end))

    def top_applications(
        self,
        start: Optional[float] = None,
        end: Optional[float] = None,
        limit: int = 10,
    ) -> list[AppUsage]:
        if limit <= 0:
            return []
        totals: dict[str, float] = defaultdict(float)
        for session, seconds in self._overlaps(start, end):
            totals[session.process_name] += seconds
        return _rank_apps(totals, limit)

    def top_windows(
        self,
        start: Optional[float] = None,
        end: Optional[float] = None,
        limit: int = 10,
    ) -> list[WindowUsage]:
        if limit <= 0:
            return []
        totals: dict[tuple[str, str], float] = defaultdict(float)
        for session, seconds in self._overlaps(start, end):
            totals[(session.process_name, session.window_title)] += seconds
        ranked = sorted(totals.items(), key=lambda item: item[1], reverse=True)
        return [
            WindowUsage(process_name=process, window_title=title, total_seconds=seconds)
            for (process, title), seconds in ranked[:limit]
        ]

    def hourly_usage(self, day: str) -> list[float]:
        """Fraction of each of the 24 hours of ``day`` covered by sessions."""
        return [hour.fraction_of_hour for hour in self.detailed_hourly_usage(day, limit=0)]

    def detailed_hourly_usage(self, day: str, limit: int = 5) -> list[HourlyUsage]:
        """Hourly fractions plus the top applications inside each hour."""
        usage = [HourlyUsage(hour=hour, fraction_of_hour=0.0) for hour in range(24)]
        try:
            day_start, day_end = timeconv.day_bounds(day)
        except ValueError:
            logger.warning("Ignoring hourly usage request for malformed date %r.", day)
            return usage

        now = self._store.now()
        buckets: list[dict[str, float]] = [defaultdict(float) for _ in range(24)]
        for session, _ in self._overlaps(day_start, day_end, now):
            session_end = session.effective_end(now)
            for hour, bucket in enumerate(buckets):
                hour_start, hour_end = timeconv.hour_bounds(day_start, hour)
                seconds = timeconv.overlap_seconds(
                    session.start_time, session_end, hour_start, hour_end
                )
                if seconds > 0:
                    bucket[session.process_name] += seconds

        for entry, bucket in zip(usage, buckets):
            entry.fraction_of_hour = min(1.0, sum(bucket.values()) / 3600.0)
            if entry.fraction_of_hour > 0 and limit > 0:
                entry.top_apps = _rank_apps(bucket, limit)
        return usage

    def days_tracked(self) -> float:
        first = self._store.min_start_time()
        last = self._store.max_end_or_now()
        if first is None or last is None:
            return 0.0
        return max(0.0, last - first)

    def daily_totals(self, first_day: str, last_day: str) -> list[DailyUsage]:
        """Tracked seconds for each calendar day from ``first_day`` to ``last_day``."""
        try:
            day_start = timeconv.from_calendar_string(first_day)
            stop = timeconv.from_calendar_string(last_day)
        except ValueError:
            logger.warning("Ignoring daily totals for malformed range %r..%r.", first_day, last_day)
            return []

        totals: list[DailyUsage] = []
        day = first_day
        while day_start <= stop:
            totals.append(
                DailyUsage(day=day, total_seconds=self.total_time(day_start, day_start + 1.0))
            )
            following = timeconv.next_day(day)
            if following == day:
                break
            day, day_start = following, timeconv.from_calendar_string(following)
        return totals

    def pie_slices(
        self,
        start: Optional[float] = None,
        end: Optional[float] = None,
        limit: int = 10,
        threshold_percent: float = DEFAULT_PIE_THRESHOLD_PERCENT,
    ) -> list[PieSlice]:
        """Breakdown of tracked time by application for a pie chart.

        Applications below ``threshold_percent`` of the total, and time spent
        outside the top ``limit`` applications, are merged into one trailing
        "Other" slice.
        """
        overall = self.total_time(start, end)
        if overall <= 0:
            return []

        top_apps = self.top_applications(start, end, limit)
        other = overall - sum(app.total_seconds for app in top_apps)
        slices: list[PieSlice] = []
        for app in top_apps:
            percent = app.total_seconds / overall * 100.0
            if percent < threshold_percent:
                other += app.total_seconds
            else:
                slices.append(PieSlice(label=app.process_name, seconds=app.total_seconds, percent=percent))
        if other > _MIN_OTHER_SECONDS:
            slices.append(PieSlice(label=OTHER_LABEL, seconds=other, percent=other / overall * 100.0))
        return slices

    def _overlaps(
        self,
        start: Optional[float],
        end: Optional[float],
        now: Optional[float] = None,
    ) -> Iterator[tuple[Session, float]]:
        if now is None:
            now = self._store.now()
        for session in self._store.sessions_overlapping(start, end):
            seconds = timeconv.overlap_seconds(
                session.start_time, session.effective_end(now), start, end
            )
            if seconds > 0:
                yield session, seconds


def _rank_apps(totals: dict[str, float], limit: int) -> list[AppUsage]:
    # sorted() is stable, so ties keep first-seen (session id) order.
    ranked = sorted(totals.items(), key=lambda item: item[1], reverse=True)
    return [AppUsage(process_name=name, total_seconds=seconds) for name, seconds in ranked[:limit]]

"""Console reports built on the aggregation engine."""

from __future__ import annotations

from . import timeconv
from .aggregation import AggregationEngine
from .store import SessionStore

BAR_WIDTH = 30


class SummaryPrinter:
    """Render human-readable summaries in the console."""

    def __init__(self, store: SessionStore, top_limit: int = 10) -> None:
        self.store = store
        self.engine = AggregationEngine(store)
        self.top_limit = top_limit

    def print_daily_summary(self, day: str) -> None:
        start, end = timeconv.day_bounds(day)
        total = self.engine.total_time(start, end)
        if total <= 0:
            print(f"No activity recorded for {day}.")
            return

        print(f"Summary for {day}")
        print("-" * 40)
        print(f"Tracked time: {format_duration(total)}")
        print()

        print("Top applications:")
        for app in self.engine.top_applications(start, end, self.top_limit):
            print(f"  {app.process_name:<30} {format_duration(app.total_seconds)}")

        slices = self.engine.pie_slices(start, end, self.top_limit)
        if slices:
            print()
            print("Breakdown:")
            for piece in slices:
                print(f"  {piece.label:<30} {piece.percent:5.1f}%")

        windows = self.engine.top_windows(start, end, 5)
        if windows:
            print()
            print("Top windows:")
            for window in windows:
                label = window.window_title or "(untitled)"
                print(
                    f"  {window.process_name:<12} {label[:45]:<45} "
                    f"{format_duration(window.total_seconds)}"
                )

    def print_hourly(self, day: str) -> None:
        print(f"Hourly activity for {day}")
        print("-" * 40)
        for entry in self.engine.detailed_hourly_usage(day, limit=3):
            apps = ", ".join(app.process_name for app in entry.top_apps)
            minutes = int(round(entry.fraction_of_hour * 60))
            print(
                f"  {hour_label(entry.hour):<22} {render_bar(entry.fraction_of_hour)} "
                f"{minutes:>2} min  {apps}"
            )

    def print_top(self, first_day: str, last_day: str, limit: int | None = None) -> None:
        start = timeconv.from_calendar_string(first_day)
        end = timeconv.from_calendar_string(last_day) + 1.0
        apps = self.engine.top_applications(start, end, limit or self.top_limit)
        if not apps:
            print(f"No activity recorded between {first_day} and {last_day}.")
            return
        print(f"Top applications {first_day} .. {last_day}")
        print("-" * 40)
        for rank, app in enumerate(apps, start=1):
            print(f"  {rank:>2}. {app.process_name:<30} {format_duration(app.total_seconds)}")

    def print_stats(self) -> None:
        days = self.engine.days_tracked()
        if days <= 0:
            print("No activity recorded yet.")
            return
        first = self.store.min_start_time()
        total = self.engine.total_time()
        current = self.store.current_open_session()
        print(f"Tracking since: {timeconv.to_calendar_string(first)}")
        print(f"Days tracked:   {days:.2f}")
        print(f"Total tracked:  {format_duration(total)}")
        print(f"Daily average:  {format_duration(total / max(days, 1.0))}")
        if current:
            elapsed = current.duration_seconds(self.store.now())
            print(
                f"Current:        {current.process_name} | {current.window_title} "
                f"({format_duration(elapsed)})"
            )


def format_duration(seconds: float) -> str:
    total_seconds = int(round(seconds))
    hours, remainder = divmod(total_seconds, 3600)
    minutes, secs = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


def hour_label(hour: int) -> str:
    """Twelve-hour label for a one-hour bucket, e.g. ``1:00 PM - 2:00 PM``."""
    return f"{_clock_hour(hour)} - {_clock_hour(hour + 1)}"


def _clock_hour(hour: int) -> str:
    hour %= 24
    suffix = "AM" if hour < 12 else "PM"
    return f"{hour % 12 or 12}:00 {suffix}"


def render_bar(fraction: float, width: int = BAR_WIDTH) -> str:
    filled = int(round(max(0.0, min(1.0, fraction)) * width))
    return "#" * filled + "." * (width - filled)

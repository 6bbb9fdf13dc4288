"""Domain models for recorded activity."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from .timeconv import seconds_between


@dataclass(slots=True)
class Session:
    """A contiguous interval during which one window had focus."""

    id: int
    process_name: str
    window_title: str
    start_time: float
    end_time: Optional[float] = None

    @property
    def is_open(self) -> bool:
        return self.end_time is None

    def effective_end(self, now: float) -> float:
        return now if self.end_time is None else self.end_time

    def duration_seconds(self, now: float) -> float:
        return max(0.0, seconds_between(self.start_time, self.effective_end(now)))

    @classmethod
    def from_row(cls, row: Any) -> "Session":
        return cls(
            id=row["id"],
            process_name=row["process_name"],
            window_title=row["window_title"],
            start_time=row["start_time"],
            end_time=row["end_time"],
        )


@dataclass(slots=True, frozen=True)
class WindowSample:
    """One observation of the foreground window and input idleness."""

    process_name: str = ""
    window_title: str = ""
    idle_millis: int = 0

    @property
    def is_empty(self) -> bool:
        return not self.process_name or not self.window_title


@dataclass(slots=True)
class AppUsage:
    process_name: str
    total_seconds: float


@dataclass(slots=True)
class WindowUsage:
    process_name: str
    window_title: str
    total_seconds: float


@dataclass(slots=True)
class HourlyUsage:
    """Share of one clock hour spent in tracked sessions."""

    hour: int
    fraction_of_hour: float
    top_apps: list[AppUsage] = field(default_factory=list)


@dataclass(slots=True)
class DailyUsage:
    day: str
    total_seconds: float


@dataclass(slots=True)
class PieSlice:
    label: str
    seconds: float
    percent: float

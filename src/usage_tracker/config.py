"""Configuration models and helpers for the usage tracker."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

DEFAULT_TOP_APPS_LIMIT = 10


@dataclass(slots=True)
class CollectorSettings:
    """Runtime configuration for the activity collector."""

    sample_interval: timedelta = timedelta(seconds=1)
    idle_threshold: timedelta = timedelta(minutes=5)
    top_apps_limit: int = DEFAULT_TOP_APPS_LIMIT

    @classmethod
    def from_intervals(
        cls,
        sample_seconds: float,
        idle_minutes: float,
        top_apps_limit: int | None = None,
    ) -> "CollectorSettings":
        return cls(
            sample_interval=timedelta(seconds=sample_seconds),
            idle_threshold=timedelta(minutes=idle_minutes),
            top_apps_limit=(
                top_apps_limit if top_apps_limit is not None else DEFAULT_TOP_APPS_LIMIT
            ),
        )

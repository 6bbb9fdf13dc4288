"""FastAPI application exposing usage statistics as JSON for a presentation layer."""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, ConfigDict

from . import timeconv
from .aggregation import AggregationEngine
from .collector import ActivityCollector, WindowObserver, create_default_observer
from .config import CollectorSettings
from .models import Session
from .paths import get_db_path
from .reporting import hour_label
from .store import SessionStore

logger = logging.getLogger(__name__)


class CollectorRunner:
    """Manage the activity collector in a background thread."""

    def __init__(
        self,
        store: SessionStore,
        settings: CollectorSettings,
        observer_factory: Callable[[], WindowObserver],
    ) -> None:
        self._store = store
        self._settings = settings
        self._observer_factory = observer_factory
        self._lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None
        self._stop_event: Optional[threading.Event] = None
        self.collector: Optional[ActivityCollector] = None
        self.last_error: Optional[str] = None

    def start(self) -> None:
        with self._lock:
            if self._thread and self._thread.is_alive():
                return
            try:
                observer = self._observer_factory()
            except RuntimeError as exc:
                self.last_error = str(exc)
                logger.warning("Collector not started: %s", exc)
                return
            stop_event = threading.Event()
            collector = ActivityCollector(self._store, observer, self._settings)
            thread = threading.Thread(
                target=collector.run_until_stopped,
                args=(stop_event,),
                daemon=True,
            )
            self._thread = thread
            self._stop_event = stop_event
            self.collector = collector
            self.last_error = None
            thread.start()
            logger.info("Collector background thread started.")

    def stop(self) -> None:
        thread: Optional[threading.Thread] = None
        with self._lock:
            if not self._thread or not self._thread.is_alive() or not self._stop_event:
                return
            self._stop_event.set()
            thread = self._thread
            self._thread = None
            self._stop_event = None
        if thread:
            thread.join(timeout=10)
            logger.info("Collector background thread stopped.")

    def is_running(self) -> bool:
        with self._lock:
            return bool(self._thread and self._thread.is_alive())


class AppUsagePayload(BaseModel):
    process_name: str
    total_seconds: float

    model_config = ConfigDict(from_attributes=True)


class WindowUsagePayload(BaseModel):
    process_name: str
    window_title: str
    total_seconds: float

    model_config = ConfigDict(from_attributes=True)


class PieSlicePayload(BaseModel):
    label: str
    seconds: float
    percent: float

    model_config = ConfigDict(from_attributes=True)


class DailyUsagePayload(BaseModel):
    day: str
    total_seconds: float

    model_config = ConfigDict(from_attributes=True)


class HourlyUsagePayload(BaseModel):
    hour: int
    label: str
    fraction_of_hour: float
    top_apps: list[AppUsagePayload]


class SessionPayload(BaseModel):
    id: int
    process_name: str
    window_title: str
    start_time: str
    end_time: Optional[str]
    is_open: bool
    duration_seconds: float


def create_app(
    *,
    db_path: Optional[Path] = None,
    settings: Optional[CollectorSettings] = None,
    store: Optional[SessionStore] = None,
    observer_factory: Callable[[], WindowObserver] = create_default_observer,
    start_collector: bool = True,
) -> FastAPI:
    """Instantiate the FastAPI application.

    When ``store`` is given the caller keeps ownership of it; otherwise the
    database at ``db_path`` is opened here (raising ``StorageUnavailable`` on
    failure) and closed on shutdown.
    """
    resolved_settings = settings or CollectorSettings()
    owns_store = store is None
    resolved_db_path: Optional[Path] = None
    if store is None:
        resolved_db_path = Path(db_path or get_db_path())
        store = SessionStore.open(resolved_db_path)
    elif db_path:
        resolved_db_path = Path(db_path)
    engine = AggregationEngine(store)
    runner = CollectorRunner(store, resolved_settings, observer_factory)

    app = FastAPI(title="Usage Tracker", version="0.3.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.db_path = resolved_db_path
    app.state.store = store
    app.state.engine = engine
    app.state.collector_runner = runner

    @app.on_event("startup")
    async def _startup() -> None:
        if start_collector:
            runner.start()

    @app.on_event("shutdown")
    async def _shutdown() -> None:
        runner.stop()
        if owns_store:
            store.close()

    @app.get("/api/status")
    def status(request: Request) -> Dict[str, Any]:
        state = request.app.state
        collector = state.collector_runner.collector
        return {
            "collector_running": state.collector_runner.is_running(),
            "collector_error": state.collector_runner.last_error,
            "database_path": str(state.db_path) if state.db_path else None,
            "sample_seconds": resolved_settings.sample_interval.total_seconds(),
            "idle_minutes": resolved_settings.idle_threshold.total_seconds() / 60.0,
            "open_sessions": state.store.count_open_sessions(),
            "repairs_total": collector.integrity.repairs_total if collector else 0,
            "uptime_seconds": collector.uptime_seconds() if collector else 0.0,
            "days_tracked": state.engine.days_tracked(),
        }

    @app.get("/api/current")
    def current(request: Request) -> Dict[str, Any]:
        session = request.app.state.store.current_open_session()
        now = request.app.state.store.now()
        return {"session": _session_payload(session, now) if session else None}

    @app.get("/api/summary")
    def summary(
        request: Request,
        date: Optional[str] = Query(
            default=None,
            description="Target date in YYYY-MM-DD format.",
        ),
        limit: int = Query(default=resolved_settings.top_apps_limit, ge=1, le=100),
    ) -> Dict[str, Any]:
        day = _parse_date(date)
        start, end = timeconv.day_bounds(day)
        engine = request.app.state.engine
        return {
            "date": day,
            "total_seconds": engine.total_time(start, end),
            "applications": _dump(AppUsagePayload, engine.top_applications(start, end, limit)),
            "windows": _dump(WindowUsagePayload, engine.top_windows(start, end, limit)),
            "pie": _dump(PieSlicePayload, engine.pie_slices(start, end, limit)),
        }

    @app.get("/api/range")
    def date_range(
        request: Request,
        start: Optional[str] = Query(
            default=None,
            description="Start date in YYYY-MM-DD format (inclusive).",
        ),
        end: Optional[str] = Query(
            default=None,
            description="End date in YYYY-MM-DD format (inclusive).",
        ),
        limit: int = Query(default=resolved_settings.top_apps_limit, ge=1, le=100),
    ) -> Dict[str, Any]:
        first_day = _parse_date(start)
        last_day = _parse_date(end) if end else first_day
        if timeconv.parse_date(last_day) < timeconv.parse_date(first_day):
            raise HTTPException(
                status_code=400, detail="end date must be on or after start date"
            )
        window_start = timeconv.from_calendar_string(first_day)
        window_end = timeconv.from_calendar_string(last_day) + 1.0
        engine = request.app.state.engine
        return {
            "start": first_day,
            "end": last_day,
            "total_seconds": engine.total_time(window_start, window_end),
            "applications": _dump(
                AppUsagePayload, engine.top_applications(window_start, window_end, limit)
            ),
            "days": _dump(DailyUsagePayload, engine.daily_totals(first_day, last_day)),
        }

    @app.get("/api/hourly")
    def hourly(
        request: Request,
        date: Optional[str] = Query(
            default=None,
            description="Target date in YYYY-MM-DD format.",
        ),
        limit: int = Query(default=5, ge=0, le=50),
    ) -> Dict[str, Any]:
        day = _parse_date(date)
        hours = request.app.state.engine.detailed_hourly_usage(day, limit=limit)
        return {
            "date": day,
            "hours": [
                HourlyUsagePayload(
                    hour=entry.hour,
                    label=hour_label(entry.hour),
                    fraction_of_hour=entry.fraction_of_hour,
                    top_apps=_dump(AppUsagePayload, entry.top_apps),
                ).model_dump()
                for entry in hours
            ],
        }

    @app.get("/api/sessions")
    def sessions(
        request: Request,
        date: Optional[str] = Query(
            default=None,
            description="Target date in YYYY-MM-DD format.",
        ),
    ) -> Dict[str, Any]:
        day = _parse_date(date)
        start, end = timeconv.day_bounds(day)
        store = request.app.state.store
        now = store.now()
        return {
            "date": day,
            "sessions": [
                _session_payload(session, now)
                for session in store.sessions_overlapping(start, end)
            ],
        }

    return app


def _parse_date(value: Optional[str]) -> str:
    if not value:
        return timeconv.today()
    try:
        parsed = timeconv.parse_date(value)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail="Invalid date format") from exc
    return parsed.strftime(timeconv.DATE_FMT)


def _dump(model: type[BaseModel], items: list[Any]) -> list[Dict[str, Any]]:
    return [model.model_validate(item).model_dump() for item in items]


def _session_payload(session: Session, now: float) -> Dict[str, Any]:
    return SessionPayload(
        id=session.id,
        process_name=session.process_name,
        window_title=session.window_title,
        start_time=timeconv.to_calendar_string(session.start_time),
        end_time=(
            timeconv.to_calendar_string(session.end_time)
            if session.end_time is not None
            else None
        ),
        is_open=session.is_open,
        duration_seconds=session.duration_seconds(now),
    ).model_dump()

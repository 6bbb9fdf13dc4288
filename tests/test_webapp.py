import pytest
from fastapi.testclient import TestClient

from usage_tracker.models import WindowSample
from usage_tracker.webapp import CollectorRunner, create_app
from usage_tracker.config import CollectorSettings

DAY = "2024-03-10"
HOUR = 1 / 24
MINUTE = HOUR / 60


@pytest.fixture
def client(store):
    app = create_app(store=store, start_collector=False)
    return TestClient(app)


@pytest.fixture
def seeded(record, clock, day_start):
    record("code.exe", "main.py", day_start + 9 * HOUR, day_start + 10 * HOUR)
    record("chrome.exe", "Docs", day_start + 10 * HOUR, day_start + 10 * HOUR + 30 * MINUTE)
    record("code.exe", "test.py", day_start + 11 * HOUR)
    clock.set(day_start + 11 * HOUR + 15 * MINUTE)


def test_status_reports_store_state(client, seeded):
    body = client.get("/api/status").json()

    assert body["collector_running"] is False
    assert body["open_sessions"] == 1
    assert body["idle_minutes"] == 5.0
    assert body["days_tracked"] > 0


def test_current_session(client, seeded):
    session = client.get("/api/current").json()["session"]

    assert session["process_name"] == "code.exe"
    assert session["is_open"] is True
    assert session["end_time"] is None
    assert session["duration_seconds"] == pytest.approx(900, abs=1e-2)


def test_current_session_absent(client):
    assert client.get("/api/current").json() == {"session": None}


def test_summary(client, seeded):
    body = client.get("/api/summary", params={"date": DAY}).json()

    assert body["date"] == DAY
    assert body["total_seconds"] == pytest.approx(3600 + 1800 + 900, abs=1e-2)
    assert [app["process_name"] for app in body["applications"]] == ["code.exe", "chrome.exe"]
    assert body["pie"][0]["label"] == "code.exe"
    assert body["windows"][0]["window_title"] == "main.py"


def test_hourly(client, seeded):
    hours = client.get("/api/hourly", params={"date": DAY}).json()["hours"]

    assert len(hours) == 24
    assert hours[9]["fraction_of_hour"] == pytest.approx(1.0)
    assert hours[9]["label"] == "9:00 AM - 10:00 AM"
    assert hours[10]["fraction_of_hour"] == pytest.approx(0.5, abs=1e-6)
    assert [app["process_name"] for app in hours[10]["top_apps"]] == ["chrome.exe"]
    assert hours[11]["fraction_of_hour"] == pytest.approx(0.25, abs=1e-6)


def test_sessions_for_day(client, seeded):
    sessions = client.get("/api/sessions", params={"date": DAY}).json()["sessions"]

    assert [s["window_title"] for s in sessions] == ["main.py", "Docs", "test.py"]
    assert sessions[0]["start_time"] == "2024-03-10 09:00:00"
    assert sessions[0]["end_time"] == "2024-03-10 10:00:00"


def test_range(client, seeded):
    body = client.get("/api/range", params={"start": "2024-03-09", "end": DAY}).json()

    assert [d["day"] for d in body["days"]] == ["2024-03-09", DAY]
    assert body["days"][0]["total_seconds"] == 0
    assert body["total_seconds"] == pytest.approx(6300, abs=1e-2)


@pytest.mark.parametrize(
    "path, params",
    [
        ("/api/summary", {"date": "2024-02-30"}),
        ("/api/hourly", {"date": "March"}),
        ("/api/range", {"start": DAY, "end": "2024-03-01"}),
    ],
)
def test_bad_dates_are_rejected(client, path, params):
    assert client.get(path, params=params).status_code == 400


def test_runner_reports_missing_observer(store):
    def unavailable():
        raise RuntimeError("no probe here")

    runner = CollectorRunner(store, CollectorSettings(), unavailable)
    runner.start()

    assert not runner.is_running()
    assert runner.last_error == "no probe here"


def test_runner_starts_and_stops_collector(store, observer_factory):
    settings = CollectorSettings.from_intervals(sample_seconds=0.01, idle_minutes=5)
    runner = CollectorRunner(
        store, settings, lambda: observer_factory([WindowSample("A", "w1", 0)])
    )

    runner.start()
    assert runner.is_running()
    runner.stop()

    assert not runner.is_running()
    assert store.count_open_sessions() == 0

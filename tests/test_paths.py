from usage_tracker import paths


def test_home_override_holds_database_and_log(tmp_path, monkeypatch):
    home = tmp_path / "home"
    monkeypatch.setenv(paths.DATA_DIR_ENV, str(home))
    monkeypatch.delenv(paths.DB_PATH_ENV, raising=False)

    assert paths.get_db_path() == home / "sessions.sqlite3"
    assert paths.get_log_path() == home / "tracker.log"
    assert home.is_dir()


def test_database_override_wins(tmp_path, monkeypatch):
    monkeypatch.setenv(paths.DATA_DIR_ENV, str(tmp_path))
    monkeypatch.setenv(paths.DB_PATH_ENV, str(tmp_path / "elsewhere.db"))

    assert paths.get_db_path() == tmp_path / "elsewhere.db"

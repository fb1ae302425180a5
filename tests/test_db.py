from lso.db import EventLog


def test_directory_path_gets_a_db_file(tmp_path):
    log = EventLog(str(tmp_path))

    assert log.path == str(tmp_path / "lso-events.db")


def test_missing_parent_is_created(tmp_path):
    log = EventLog(str(tmp_path / "state" / "journal.db"))

    assert (tmp_path / "state").is_dir()
    assert log.path.endswith("journal.db")


def test_log_and_read_back_newest_first(tmp_path):
    log = EventLog(str(tmp_path / "events.db"))

    log.log_event("info", "Started container from image demo:latest", container_name="svc-1", phase="starting")
    log.log_event("ERROR", "Service did not respond within 90s.", container_name="svc-1", phase="error")

    rows = log.latest_events(10)
    assert [r["level"] for r in rows] == ["ERROR", "INFO"]
    assert rows[0]["phase"] == "error"
    assert rows[1]["container_name"] == "svc-1"
    assert rows[1]["ts"].endswith("Z")

    assert len(log.latest_events(1)) == 1

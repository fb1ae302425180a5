import logging
import sys

from fastapi.testclient import TestClient

import main
from lso.logging_setup import setup_logging
from lso.settings import Settings


def test_build_app_from_environment(monkeypatch, tmp_path):
    root = logging.getLogger()
    monkeypatch.setattr(root, "level", root.level)
    monkeypatch.setenv("LSO_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("LSO_CONTAINER", "svc-from-env")
    monkeypatch.setenv("LSO_PORT", "3300")
    monkeypatch.setattr(main, "settings", Settings(db_path=str(tmp_path / "journal.db"), log_level="debug"))

    client = TestClient(main.build_app())

    body = client.get("/service/status").json()
    assert body["status"]["container_name"] == "svc-from-env"
    assert body["status"]["url"] == "http://127.0.0.1:3300"
    assert body["status"]["data_dir"] == str(tmp_path / "data")
    assert (tmp_path / "journal.db").is_file()
    assert client.get("/events").json() == []
    assert root.level == logging.DEBUG


def test_setup_logging_writes_to_stdout(monkeypatch):
    root = logging.getLogger()
    monkeypatch.setattr(root, "level", root.level)
    monkeypatch.setattr(root, "handlers", [])

    setup_logging("warning")

    assert root.level == logging.WARNING
    assert len(root.handlers) == 1
    assert root.handlers[0].stream is sys.stdout
    assert logging.getLogger("httpx").level == logging.WARNING

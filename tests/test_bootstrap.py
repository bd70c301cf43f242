import logging
import socket
import threading
import time

import pytest
import uvicorn
from fastapi import APIRouter
from fastapi.testclient import TestClient
from pymongo.errors import ServerSelectionTimeoutError

from task_api import server
from task_api.logging_setup import setup_logging
from task_api.main import PORT, create_app
from taskdb import connect_db
from taskdb.create_collections import create_collections
from taskdb.schema import task_schema

from .fakes import FakeClient, FakeDatabase


def _unreachable():
    raise ServerSelectionTimeoutError("localhost:27017: [Errno 111] Connection refused")


def test_startup_without_database_logs_error_and_keeps_serving(caplog):
    caplog.set_level(logging.INFO)
    app = create_app(connect=_unreachable)
    with TestClient(app) as c:
        assert "MongoDB connection error: localhost:27017" in caplog.text
        assert "connected to MongoDB" not in caplog.text

        response = c.get("/tasks")
        assert response.status_code == 503
        assert response.json() == {"detail": "Database not connected"}
        assert c.get("/health").status_code == 503


def test_startup_with_database_logs_success(caplog, fake_db):
    caplog.set_level(logging.INFO)
    app = create_app(connect=lambda: fake_db)
    with TestClient(app):
        assert "connected to MongoDB" in caplog.text
        assert app.state.db is fake_db
    assert fake_db.validators["tasks"] == {"$jsonSchema": task_schema}


def test_shutdown_closes_client(fake_db):
    app = create_app(connect=lambda: fake_db)
    with TestClient(app):
        assert fake_db.client.closed is False
    assert fake_db.client.closed is True
    assert app.state.db is None


def test_validator_failure_is_not_fatal(caplog, fake_db):
    caplog.set_level(logging.INFO)
    fake_db.fail_commands = True
    app = create_app(connect=lambda: fake_db)
    with TestClient(app) as c:
        assert "Failed to apply collection validators" in caplog.text
        assert c.post("/tasks", json={"title": "Buy milk"}).status_code == 201


def test_custom_router_is_mounted_at_root(fake_db):
    router = APIRouter()

    @router.get("/")
    def index():
        return {"message": "Server is running!"}

    app = create_app(connect=lambda: fake_db, router=router)
    with TestClient(app) as c:
        assert c.get("/").json() == {"message": "Server is running!"}
        assert c.get("/tasks").status_code == 404


def test_non_existent_endpoint(client):
    response = client.get("/non-existing-endpoint/")
    assert response.status_code == 404


def test_server_listens_on_port_3000(monkeypatch):
    captured = []
    monkeypatch.setattr(server, "setup_logging", lambda level: None)
    monkeypatch.setattr(server.TaskServer, "run", lambda self, sockets=None: captured.append(self.config))
    server.main()
    assert PORT == 3000
    assert captured[0].port == 3000
    assert captured[0].host == "0.0.0.0"


def test_create_collections_is_idempotent(fake_db):
    create_collections(fake_db)
    create_collections(fake_db)
    assert list(fake_db.validators) == ["tasks"]


def test_get_database_uses_name_from_uri():
    client = connect_db.get_client(connect_db.DEFAULT_MONGO_URI)
    try:
        assert client.get_default_database().name == "taskdb"
    finally:
        client.close()


def test_get_database_closes_client_when_ping_fails(monkeypatch):
    fake = FakeClient()
    fake.reachable = False
    monkeypatch.setattr(connect_db, "get_client", lambda uri, timeout_ms: fake)
    with pytest.raises(ServerSelectionTimeoutError):
        connect_db.get_database()
    assert fake.closed is True


def test_get_database_returns_default_database(monkeypatch):
    db = FakeDatabase()
    db.client.get_default_database = lambda default: db
    monkeypatch.setattr(connect_db, "get_client", lambda uri, timeout_ms: db.client)
    assert connect_db.get_database() is db


def test_server_binds_port_without_database(caplog):
    caplog.set_level(logging.INFO)
    config = uvicorn.Config(create_app(connect=_unreachable), host="127.0.0.1", port=PORT, log_config=None)
    srv = server.TaskServer(config)
    thread = threading.Thread(target=srv.run, daemon=True)
    thread.start()
    try:
        deadline = time.monotonic() + 10
        while not srv.started and time.monotonic() < deadline:
            time.sleep(0.05)
        assert srv.started

        conn = socket.create_connection(("127.0.0.1", PORT), timeout=5)
        conn.close()
    finally:
        srv.should_exit = True
        thread.join(timeout=10)

    assert "MongoDB connection error" in caplog.text
    assert "Server is running on http://localhost:3000" in caplog.text


def test_unknown_log_level_falls_back_to_info():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    try:
        setup_logging("NOISY")
        assert root.level == logging.INFO
    finally:
        for h in list(root.handlers):
            root.removeHandler(h)
        for h in handlers:
            root.addHandler(h)
        root.setLevel(level)
        logging.captureWarnings(False)

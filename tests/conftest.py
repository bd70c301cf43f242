# tests/conftest.py

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from task_api.main import create_app

from .fakes import FakeDatabase


@pytest.fixture()
def fake_db() -> FakeDatabase:
    return FakeDatabase()


@pytest.fixture()
def client(fake_db: FakeDatabase):
    """
    TestClient over an app whose lifespan "connects" to the in-memory fake.

    Used as a context manager so startup and shutdown run.
    """
    app = create_app(connect=lambda: fake_db)
    with TestClient(app) as c:
        yield c

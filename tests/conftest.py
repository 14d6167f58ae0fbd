import os
import sys
import pathlib
import tempfile
import uuid
from datetime import datetime, timedelta, timezone

import pytest

# --- Make the project importable before loading the app ---
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# On-disk SQLite in a temp dir (stable across the TestClient threads)
TEST_DIR = tempfile.mkdtemp(prefix="taskboard_tests_")
DB_PATH = pathlib.Path(TEST_DIR) / "test.db"
os.environ["DATABASE_URL"] = f"sqlite:///{DB_PATH}"

from sqlalchemy.orm import Session

from taskboard_app import database, deps, models
from taskboard_app.main import app


@pytest.fixture(autouse=True)
def _schema():
    """
    Fresh schema for every test so ordering and counts only see this test's rows.
    """
    database.Base.metadata.create_all(bind=database.get_engine())
    yield
    database.Base.metadata.drop_all(bind=database.get_engine())


@pytest.fixture()
def db() -> Session:
    """
    DB session per test.
    """
    s = database.get_sessionmaker()()
    try:
        yield s
    finally:
        s.close()


@pytest.fixture()
def client(db: Session):
    """
    TestClient whose get_db yields the test session.
    """
    def _get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[deps.get_db] = _get_db

    from fastapi.testclient import TestClient
    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture()
def api_user(client):
    """
    Create users through the API.
    """
    def _make(email: str | None = None, name: str | None = "Tester"):
        email = email or f"tester_{uuid.uuid4().hex[:8]}@example.com"
        r = client.post("/users", json={"email": email, "name": name})
        assert r.status_code == 201, r.text
        return r.json()
    return _make


@pytest.fixture()
def api_category(client):
    def _make(name: str | None = None, **extra):
        body = {"name": name or f"cat-{uuid.uuid4().hex[:8]}", **extra}
        r = client.post("/categories", json=body)
        assert r.status_code == 201, r.text
        return r.json()
    return _make


@pytest.fixture()
def api_task(client, api_user):
    """
    Create tasks through the API; a fresh owner is made unless userId is given.
    """
    def _make(title: str = "Task", **fields):
        if "userId" not in fields:
            fields["userId"] = api_user()["id"]
        r = client.post("/tasks", json={"title": title, **fields})
        assert r.status_code == 201, r.text
        return r.json()
    return _make


@pytest.fixture()
def store_task(db: Session):
    """
    Insert a task straight into the store with a controlled creation time.
    """
    base = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def _make(user_id: str, title: str, *, completed=False, priority="MEDIUM",
              category_id=None, minutes: int = 0):
        t = models.Task(
            title=title,
            completed=completed,
            priority=models.Priority(priority),
            user_id=user_id,
            category_id=category_id,
            created_at=base + timedelta(minutes=minutes),
        )
        db.add(t)
        db.commit()
        return t.id
    return _make

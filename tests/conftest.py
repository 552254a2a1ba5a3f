"""
Shared pytest fixtures.

Uses an in-memory SQLite database so no Postgres is required for tests.
Every test gets fresh tables, a frozen wall clock and its own timer
snapshot file.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from signal_app.core import clock
from signal_app.db.base import Base, get_db
from signal_app.main import app
import signal_app.models  # noqa: F401
from signal_app.services.timer import SnapshotStore, TimerMachine
from signal_app.services.timer_session import TimerSessionService, get_timer_service

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Wall-clock "now" for every test unless a test moves it.
NOW = datetime(2024, 3, 15, 22, 0, tzinfo=timezone.utc)


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


class FakeClock:
    """Millisecond clock for TimerMachine; advance() moves it forward."""

    def __init__(self, start_ms: int = 1_700_000_000_000):
        self.now_ms = start_ms

    def __call__(self) -> int:
        return self.now_ms

    def advance(self, ms: int) -> None:
        self.now_ms += ms


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(autouse=True)
def create_tables():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


class Now:
    def __init__(self, value: datetime):
        self.value = value

    def set(self, value: datetime) -> None:
        self.value = value

    def __call__(self) -> datetime:
        return self.value


@pytest.fixture(autouse=True)
def now(monkeypatch):
    frozen = Now(NOW)
    monkeypatch.setattr(clock, "utcnow", frozen)
    return frozen


@pytest.fixture()
def db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def fake_clock():
    return FakeClock()


@pytest.fixture()
def snapshot_store(tmp_path):
    return SnapshotStore(tmp_path / "timer_state.json")


@pytest.fixture()
def machine(snapshot_store, fake_clock):
    return TimerMachine(snapshot_store, clock=fake_clock)


@pytest.fixture()
def timer_service(machine):
    return TimerSessionService(machine)


@pytest.fixture()
def client(timer_service):
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_timer_service] = lambda: timer_service
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()

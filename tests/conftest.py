import sys
from pathlib import Path as _Path
sys.path.insert(0, str(_Path(__file__).resolve().parents[1] / "src"))

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import func, select

from portal.app import create_app
from portal.auth.passwords import PasswordHasher
from portal.auth.service import AuthService
from portal.auth.session import SessionStore
from portal.auth.users import UserStore
from portal.config import Settings
from portal.infra.db import Database


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self) -> None:
        self.now = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    # Cheapest argon2 parameters the library accepts, to keep the suite fast.
    return Settings(
        secret_key="test-secret",
        database_url=f"sqlite:///{tmp_path / 'portal.db'}",
        hash_time_cost=1,
        hash_memory_cost=8,
        hash_parallelism=1,
        log_level="WARNING",
    )


@pytest.fixture()
def database(settings: Settings):
    db = Database(settings.database_url)
    db.create_all()
    yield db
    db.dispose()


@pytest.fixture()
def hasher(settings: Settings) -> PasswordHasher:
    return PasswordHasher(
        time_cost=settings.hash_time_cost,
        memory_cost=settings.hash_memory_cost,
        parallelism=settings.hash_parallelism,
    )


@pytest.fixture()
def user_store(database) -> UserStore:
    return UserStore(database)


@pytest.fixture()
def session_store(database, clock) -> SessionStore:
    return SessionStore(database, ttl=3600, clock=clock)


@pytest.fixture()
def auth(user_store, session_store, hasher) -> AuthService:
    return AuthService(user_store, session_store, hasher)


@pytest.fixture()
def count_rows(database):
    def _count(model) -> int:
        with database.session_scope() as s:
            return s.scalar(select(func.count()).select_from(model))

    return _count


@pytest.fixture()
def client(settings, clock):
    app = create_app(settings, clock=clock)
    with TestClient(app) as c:
        yield c


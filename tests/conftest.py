from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from adms_gateway.database import DatabaseManager
from adms_gateway.main import create_app


class FakeClock:
    """Deterministic stand-in for datetime.now."""

    def __init__(self, start: datetime = datetime(2026, 10, 19, 8, 0, 0)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
def db():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    manager = DatabaseManager(engine=engine)
    manager.create_tables()
    yield manager
    manager.dispose()


@pytest.fixture
def conn(db):
    with db.get_connection() as connection:
        yield connection


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def client(db):
    app = create_app(db_manager=db)
    with TestClient(app) as test_client:
        yield test_client

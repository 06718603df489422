import os

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.api.deps import get_db, get_schedule_generator
from app.db.base import Base
from app.main import app


class FakeScheduleGenerator:
    """Stands in for the external model; returns ``response`` or raises ``error``."""

    def __init__(self) -> None:
        self.response = None
        self.error: Exception | None = None
        self.requests = []

    def generate(self, request):
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return self.response


@pytest.fixture()
def fake_generator():
    return FakeScheduleGenerator()


@pytest.fixture()
def db_session_factory():
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture()
def client(db_session_factory, fake_generator):
    def override_get_db():
        db = db_session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_schedule_generator] = lambda: fake_generator

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()

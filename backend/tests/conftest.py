"""Shared fixtures: an in-memory SQLite database and a FastAPI test client."""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from reputation_monitor.core.database import build_engine, create_tables, get_db


@pytest.fixture
def engine():
    engine = build_engine("sqlite://")
    create_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(db):
    from reputation_monitor.main import app

    def _override_get_db():
        yield db

    app.dependency_overrides[get_db] = _override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()

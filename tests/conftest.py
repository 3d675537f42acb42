"""
- Spins up temp test DB
- Create tables before tests run
- Provide a db_session fixture and override FastAPI's get_db so routes use the test session.
- Provide a client fixture (TestClient(app)) that already has the DB override applied.
"""
import os
import pytest
from typing import Generator

# Settings are read at import time, so set them before importing the app.
# - APP_ENV=test: skip dev-only startup hooks (auto-create tables against a real DB)
# - USE_RANDOM_ORG=0: never reach out to random.org from tests
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ["USE_RANDOM_ORG"] = "0"

from fastapi.testclient import TestClient
from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from rps_api.db import Base, get_db
from rps_api.main import app
from rps_api import models  # noqa: F401

# Use SQLite in-memory for tests (fast, isolated)
TEST_DATABASE_URL = "sqlite+pysqlite:///:memory:"

@pytest.fixture(scope="session")
def engine():
    # StaticPool + check_same_thread=False lets Starlette's TestClient and SQLAlchemy
    # share ONE in-memory SQLite database across threads.
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)

@pytest.fixture
def db_session(engine) -> Generator:
    """Provide a clean session per test with rollback."""
    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)
    db = TestingSessionLocal()
    try:
        yield db
        db.rollback()
    finally:
        db.close()

@pytest.fixture(autouse=True)
def _clean_db(engine):
    """
    The store commits inside requests, so data would leak between tests.
    Delete rows (children first) before each test.
    """
    with engine.begin() as conn:
        conn.execute(text("DELETE FROM match_players"))
        conn.execute(text("DELETE FROM matches"))
        conn.execute(text("DELETE FROM players"))
        conn.execute(text("DELETE FROM leaderboard"))
        conn.execute(text("DELETE FROM games"))
    yield

@pytest.fixture(autouse=True)
def override_dep(db_session):
    """Force the app to use our test session for every request."""
    def _get_db_for_tests():
        yield db_session

    app.dependency_overrides[get_db] = _get_db_for_tests
    yield
    app.dependency_overrides.clear()

@pytest.fixture
def client():
    return TestClient(app)

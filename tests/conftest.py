"""
Pytest fixtures for registry tests.
"""

import os
from typing import Generator

import pytest

# Point the app at SQLite before any app module reads its settings
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["INITIAL_ADMIN"] = "ST1PQHQKV0RJXZFY1DGX8MNSNYVE3VGZJSRTPGZGM"

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.clock import FixedClock, get_clock
from app.core.db import get_db
from app.main import app
from app.models.orm.base import Base
from app.services.randomization_service import RandomizationService

ADMIN = "ST1PQHQKV0RJXZFY1DGX8MNSNYVE3VGZJSRTPGZGM"
OTHER = "ST2CY5V39NHDPWSXMW9QDT3HC3GD6Q6XX4CFRK9AG"

# Constant block time for deterministic draws
BLOCK_TIME = 1000000


class StepClock:
    """Clock that advances by a fixed step on every reading."""

    def __init__(self, start: int = 1, step: int = 1):
        self.value = start
        self.step = step

    def now(self) -> int:
        value = self.value
        self.value += self.step
        return value


# --- Fixtures ---


@pytest.fixture(scope="function")
def engine():
    """Fresh in-memory database per test, shared across threads."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db_session(session_factory) -> Generator[Session, None, None]:
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def fixed_clock() -> FixedClock:
    return FixedClock(BLOCK_TIME)


@pytest.fixture
def step_clock() -> StepClock:
    return StepClock()


@pytest.fixture
def service(db_session, fixed_clock) -> RandomizationService:
    return RandomizationService(db_session, fixed_clock, initial_admin=ADMIN)


@pytest.fixture
def stepping_service(db_session, step_clock) -> RandomizationService:
    return RandomizationService(db_session, step_clock, initial_admin=ADMIN)


@pytest.fixture(scope="function")
def client(session_factory, fixed_clock) -> Generator[TestClient, None, None]:
    """
    Synchronous test client wired to the in-memory database and a fixed clock.
    """

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: fixed_clock
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def admin_headers() -> dict:
    return {"Authorization": f"Bearer {ADMIN}"}


@pytest.fixture
def other_headers() -> dict:
    return {"Authorization": f"Bearer {OTHER}"}

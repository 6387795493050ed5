"""Shared fixtures: in-memory harness, SQLite engine and the FastAPI client."""

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from paygate.api.dependencies import get_payment_facade
from paygate.infrastructure.db.engine import build_sessionmaker, build_sqlite_engine, create_schema
from paygate.main import app
from tests.support import InMemoryHarness, json_responder


@pytest.fixture
def harness() -> InMemoryHarness:
    return InMemoryHarness()


@pytest.fixture
def make_harness():
    """Harness whose gateways answer every HTTP call with the given JSON body."""

    def _make(body: dict | None = None, status_code: int = 200, calls: list | None = None):
        return InMemoryHarness(handler=json_responder(body or {}, status_code, calls))

    return _make


@pytest_asyncio.fixture
async def sqlite_engine(tmp_path):
    engine = build_sqlite_engine(f"sqlite+aiosqlite:///{tmp_path / 'paygate.db'}")
    await create_schema(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(sqlite_engine):
    return build_sessionmaker(sqlite_engine)


@pytest.fixture
def api_harness(harness):
    """TestClient whose routes run against ``harness.facade``."""
    app.dependency_overrides[get_payment_facade] = lambda: harness.facade
    with TestClient(app) as client:
        yield client, harness
    app.dependency_overrides.clear()

from datetime import datetime

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from app.main import app
from app.core.database import get_sandbox
from app.core.sandbox.executor import SqlSandbox
from tests.fakes import MAX_ROWS, SEED_SCRIPT, FakePool


# Pools
@pytest.fixture
def learner_pool():
    return FakePool(
        "learner",
        rows=[
            {"id": 1, "status": "shipped"},
            {"id": 2, "status": "pending"},
        ],
    )


@pytest.fixture
def owner_pool():
    return FakePool("owner", rows=[{"time": datetime(2026, 1, 1, 12, 0)}])


# Sandbox wired to the fake pools
@pytest.fixture
def sandbox(learner_pool, owner_pool):
    return SqlSandbox(learner_pool, owner_pool, SEED_SCRIPT, max_rows=MAX_ROWS)


# Client
@pytest_asyncio.fixture(scope="function")
async def client(sandbox):
    app.dependency_overrides[get_sandbox] = lambda: sandbox

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()

import asyncpg
import pytest

from app import seed_runner
from app.core.config import Settings
from app.core.sandbox.reset import RetryPolicy, SeedExhaustedError
from tests.fakes import SEED_SCRIPT, FakePool, RecordingSleep


@pytest.fixture
def seed_file(tmp_path):
    path = tmp_path / "seed.sql"
    path.write_text(SEED_SCRIPT, encoding="utf-8")
    return path


@pytest.fixture
def fake_owner(monkeypatch):
    pool = FakePool("owner")
    monkeypatch.setattr(seed_runner, "create_owner_engine", lambda config: object())
    monkeypatch.setattr(seed_runner, "RolePool", lambda role, engine: pool)
    return pool


@pytest.mark.asyncio
async def test_run_seed_disposes_pool(seed_file, fake_owner):
    config = Settings(SEED_PATH=seed_file)

    attempts = await seed_runner.run_seed(config)

    assert attempts == 1
    assert fake_owner.scripts == [SEED_SCRIPT]
    assert fake_owner.disposed


@pytest.mark.asyncio
async def test_run_seed_disposes_pool_on_failure(seed_file, fake_owner):
    fake_owner.script_errors = [
        asyncpg.exceptions.CannotConnectNowError("the database system is starting up")
    ] * 2
    policy = RetryPolicy(max_attempts=2, sleep_fn=RecordingSleep())

    with pytest.raises(SeedExhaustedError):
        await seed_runner.run_seed(Settings(SEED_PATH=seed_file), policy)

    assert fake_owner.disposed


def test_main_exit_codes(seed_file, fake_owner):
    assert seed_runner.main(["--seed", str(seed_file)]) == 0

    fake_owner.script_errors = [asyncpg.exceptions.UndefinedObjectError('role "x" does not exist')]
    assert seed_runner.main(["--seed", str(seed_file)]) == 1


def test_main_missing_seed_file(tmp_path, fake_owner):
    assert seed_runner.main(["--seed", str(tmp_path / "missing.sql")]) == 1
    assert fake_owner.scripts == []

import asyncpg
import pytest

from app.core.sandbox.errors import ExecutionError
from app.core.sandbox.reset import (
    ResetCoordinator,
    RetryPolicy,
    SeedExhaustedError,
    SeedState,
    load_seed_script,
)
from tests.fakes import SEED_SCRIPT, FakePool, RecordingSleep


def starting_up():
    return asyncpg.exceptions.CannotConnectNowError("the database system is starting up")


@pytest.mark.asyncio
async def test_interactive_reset_success():
    pool = FakePool("owner")
    assert await ResetCoordinator(pool, SEED_SCRIPT).reset() is None
    assert pool.scripts == [SEED_SCRIPT]


@pytest.mark.asyncio
async def test_interactive_reset_does_not_retry():
    pool = FakePool("owner", script_errors=[starting_up(), None])

    error = await ResetCoordinator(pool, SEED_SCRIPT).reset()

    assert error == ExecutionError("the database system is starting up")
    assert len(pool.scripts) == 1


@pytest.mark.asyncio
async def test_startup_seed_retries_until_ready():
    pool = FakePool("owner", script_errors=[starting_up(), starting_up(), starting_up(), None])
    sleep = RecordingSleep()
    coordinator = ResetCoordinator(pool, SEED_SCRIPT)

    attempts = await coordinator.seed_with_retry(
        RetryPolicy(max_attempts=10, delay_seconds=2.0, sleep_fn=sleep)
    )

    assert attempts == 4
    assert sleep.calls == [2.0, 2.0, 2.0]
    assert pool.scripts == [SEED_SCRIPT] * 4
    assert coordinator.history == [
        SeedState.ATTEMPTING,
        SeedState.RETRYING,
        SeedState.ATTEMPTING,
        SeedState.RETRYING,
        SeedState.ATTEMPTING,
        SeedState.RETRYING,
        SeedState.ATTEMPTING,
        SeedState.SUCCEEDED,
    ]


@pytest.mark.asyncio
async def test_startup_seed_exhausts_attempts():
    pool = FakePool("owner", script_errors=[starting_up() for _ in range(10)])
    sleep = RecordingSleep()
    coordinator = ResetCoordinator(pool, SEED_SCRIPT)

    with pytest.raises(SeedExhaustedError) as exc_info:
        await coordinator.seed_with_retry(
            RetryPolicy(max_attempts=3, delay_seconds=0.5, sleep_fn=sleep)
        )

    assert exc_info.value.attempts == 3
    assert len(pool.scripts) == 3
    assert len(sleep.calls) == 2
    assert coordinator.history[-1] == SeedState.EXHAUSTED


@pytest.mark.asyncio
async def test_startup_seed_fails_fast_on_other_errors():
    error = asyncpg.exceptions.InvalidPasswordError('password authentication failed for user "app"')
    pool = FakePool("owner", script_errors=[error])
    sleep = RecordingSleep()

    with pytest.raises(SeedExhaustedError) as exc_info:
        await ResetCoordinator(pool, SEED_SCRIPT).seed_with_retry(
            RetryPolicy(max_attempts=10, sleep_fn=sleep)
        )

    assert exc_info.value.attempts == 1
    assert "password authentication failed" in str(exc_info.value)
    assert sleep.calls == []


def test_retry_policy_needs_an_attempt():
    with pytest.raises(ValueError):
        RetryPolicy(max_attempts=0)


def test_load_seed_script(tmp_path):
    path = tmp_path / "seed.sql"
    path.write_text(SEED_SCRIPT, encoding="utf-8")
    assert load_seed_script(path) == SEED_SCRIPT
    assert load_seed_script(str(path)) == SEED_SCRIPT

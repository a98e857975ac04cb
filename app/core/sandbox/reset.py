import asyncio
import logging
from enum import Enum
from pathlib import Path
from typing import Awaitable, Callable, List, Optional, Union

from app.core.database import RolePool
from app.core.sandbox.errors import (
    STORE_ERRORS,
    ExecutionError,
    is_store_starting_up,
    store_error_message,
)

# -----------------------------------------------------------------------------
# RESET COORDINATOR
# Purpose: replay the seed script under the owner role.
# Interactive reset runs once and reports failure to the caller. The startup
# seed retries while Postgres says it is still starting up and gives up
# (fatally) on anything else.
# -----------------------------------------------------------------------------

logger = logging.getLogger(__name__)


class SeedState(Enum):
    """States of the startup seed loop."""

    ATTEMPTING = "attempting"
    RETRYING = "retrying"
    SUCCEEDED = "succeeded"
    EXHAUSTED = "exhausted"


class SeedExhaustedError(RuntimeError):
    """Startup seeding failed for good. The process should exit non-zero."""

    def __init__(self, message: str, attempts: int):
        super().__init__(message)
        self.attempts = attempts


class RetryPolicy:
    """Fixed-delay retry bounded by attempt count, for one failure signature."""

    def __init__(
        self,
        max_attempts: int = 10,
        delay_seconds: float = 2.0,
        is_transient: Callable[[BaseException], bool] = is_store_starting_up,
        sleep_fn: Optional[Callable[[float], Awaitable[None]]] = None,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.delay_seconds = delay_seconds
        self.is_transient = is_transient
        self.sleep_fn = sleep_fn or asyncio.sleep

    def should_retry(self, error: BaseException, attempt: int) -> bool:
        return attempt < self.max_attempts and self.is_transient(error)


def load_seed_script(path: Union[str, Path]) -> str:
    return Path(path).read_text(encoding="utf-8")


class ResetCoordinator:
    def __init__(self, owner_pool: RolePool, seed_script: str):
        self.owner_pool = owner_pool
        self.seed_script = seed_script
        # Transitions of the last startup run, handy for logs and tests
        self.history: List[SeedState] = []

    async def reset(self) -> Optional[ExecutionError]:
        """Interactive reset: one attempt, failures go back to the caller."""
        logger.info(f"Resetting dataset on {self.owner_pool.role} pool")
        try:
            await self.owner_pool.run_script(self.seed_script)
        except STORE_ERRORS as e:
            message = store_error_message(e)
            logger.error(f"Dataset reset failed: {message}")
            return ExecutionError(message)
        logger.info("Dataset reset to initial state")
        return None

    async def seed_with_retry(self, policy: RetryPolicy) -> int:
        """
        Startup seed. Returns the number of attempts it took.

        Raises:
            SeedExhaustedError: on a non-transient failure or when the
            attempt bound is reached.
        """
        self.history = []
        attempt = 0
        while True:
            attempt += 1
            self.history.append(SeedState.ATTEMPTING)
            try:
                await self.owner_pool.run_script(self.seed_script)
            except STORE_ERRORS as e:
                message = store_error_message(e)
                if not policy.should_retry(e, attempt):
                    self.history.append(SeedState.EXHAUSTED)
                    logger.error(f"Seed failed after {attempt} attempt(s): {message}")
                    raise SeedExhaustedError(message, attempt) from e

                self.history.append(SeedState.RETRYING)
                logger.warning(
                    f"Database not ready (attempt {attempt}/{policy.max_attempts}), "
                    f"retrying in {policy.delay_seconds}s"
                )
                await policy.sleep_fn(policy.delay_seconds)
                continue

            self.history.append(SeedState.SUCCEEDED)
            logger.info(f"Seed completed successfully after {attempt} attempt(s)")
            return attempt

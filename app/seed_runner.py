"""
Startup seed runner.

    python -m app.seed_runner [--seed PATH]

Exit status 0 when the dataset was seeded, 1 otherwise. A store that cannot
be seeded must stop the deploy instead of serving stale data.
"""
import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from sqlalchemy.exc import ArgumentError

from app.core.config import Settings, settings
from app.core.database import RolePool, create_owner_engine
from app.core.sandbox.reset import (
    ResetCoordinator,
    RetryPolicy,
    SeedExhaustedError,
    load_seed_script,
)

logger = logging.getLogger("app.seed_runner")


async def run_seed(config: Settings, policy: Optional[RetryPolicy] = None) -> int:
    """Seed the dataset with the owner role, retrying while the store starts up."""
    policy = policy or RetryPolicy(
        max_attempts=config.SEED_MAX_ATTEMPTS,
        delay_seconds=config.SEED_RETRY_DELAY_MS / 1000,
    )
    seed_script = load_seed_script(config.SEED_PATH)
    owner_pool = RolePool("owner", create_owner_engine(config))
    try:
        return await ResetCoordinator(owner_pool, seed_script).seed_with_retry(policy)
    finally:
        await owner_pool.dispose()


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Seed the SQL katas dataset.")
    parser.add_argument("--seed", help="path to the seed script", default=None)
    args = parser.parse_args(argv)

    logging.basicConfig(level=settings.LOG_LEVEL)

    config = settings
    if args.seed:
        config = settings.model_copy(update={"SEED_PATH": args.seed})

    try:
        asyncio.run(run_seed(config))
    except SeedExhaustedError as e:
        logger.error(f"Seed failed: {e}")
        return 1
    except (ArgumentError, OSError) as e:
        # Bad connection string or unreadable seed file
        logger.error(f"Seed failed: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

import asyncpg
from fastapi.encoders import jsonable_encoder

from app.core.database import RolePool
from app.core.sandbox.errors import STORE_ERRORS, ExecutionError, store_error_message
from app.core.sandbox.limits import apply_limit
from app.core.sandbox.reset import ResetCoordinator

# -----------------------------------------------------------------------------
# EXECUTION ROUTER
# Purpose: run already-validated learner SQL on the learner pool and turn every
# store failure into a structured error instead of an exception.
# Reset is the only operation that goes to the owner pool.
# -----------------------------------------------------------------------------

logger = logging.getLogger(__name__)


class Operation(Enum):
    """Kinds of work the sandbox routes to a pool."""

    QUERY = "query"
    EXPLAIN = "explain"
    RESET = "reset"
    HEALTH = "health"


# Everything else runs as the learner
OWNER_OPERATIONS = frozenset({Operation.RESET, Operation.HEALTH})


def range_text(value: asyncpg.Range) -> str:
    """Postgres text form of a range, e.g. "[1,5)"."""
    if value.isempty:
        return "empty"
    lower = "" if value.lower is None else jsonable_encoder(value.lower)
    upper = "" if value.upper is None else jsonable_encoder(value.upper)
    opening = "[" if value.lower_inc else "("
    closing = "]" if value.upper_inc else ")"
    return f"{opening}{lower},{upper}{closing}"


# asyncpg types pydantic cannot serialize, rendered the way psql prints them
ROW_ENCODERS = {
    bytes: lambda value: "\\x" + value.hex(),
    asyncpg.Range: range_text,
    asyncpg.BitString: lambda value: value.as_string(),
    asyncpg.Record: lambda value: json_safe_rows(list(value.values())),
}


def json_safe_rows(rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Turn driver values into plain JSON types. Raises ValueError on unknown types."""
    return jsonable_encoder(rows, custom_encoder=ROW_ENCODERS)


@dataclass
class ExecutionResult:
    columns: List[str] = field(default_factory=list)
    rows: List[Dict[str, Any]] = field(default_factory=list)
    row_count: int = 0
    truncated: bool = False


class SqlSandbox:
    """
    Routes learner operations to the learner pool and resets to the owner pool.

    Both pools are built at startup and handed in.
    """

    def __init__(
        self,
        learner_pool: RolePool,
        owner_pool: RolePool,
        seed_script: str,
        max_rows: int = 1000,
    ):
        self.learner_pool = learner_pool
        self.owner_pool = owner_pool
        self.max_rows = max_rows
        self.resetter = ResetCoordinator(self.pool_for(Operation.RESET), seed_script)

    def pool_for(self, operation: Operation) -> RolePool:
        if operation in OWNER_OPERATIONS:
            return self.owner_pool
        return self.learner_pool

    async def execute(self, query: str) -> Union[ExecutionResult, ExecutionError]:
        """Run validated learner SQL with the row cap applied."""
        limited = apply_limit(query, self.max_rows)
        pool = self.pool_for(Operation.QUERY)
        try:
            rows = await pool.fetch(limited, max_rows=self.max_rows)
        except STORE_ERRORS as e:
            message = store_error_message(e)
            logger.warning(f"Query failed on {pool.role} pool: {message}")
            return ExecutionError(message)

        try:
            rows = json_safe_rows(rows)
        except (ValueError, TypeError) as e:
            logger.warning(f"Query result on {pool.role} pool is not displayable: {e}")
            return ExecutionError(f"Result contains a value that cannot be displayed: {e}")

        columns = list(rows[0].keys()) if rows else []
        return ExecutionResult(
            columns=columns,
            rows=rows,
            row_count=len(rows),
            truncated=len(rows) == self.max_rows,
        )

    async def explain(self, query: str) -> Union[Any, ExecutionError]:
        """Return the JSON plan for validated learner SQL without interpreting it."""
        pool = self.pool_for(Operation.EXPLAIN)
        try:
            rows = await pool.fetch(f"EXPLAIN (FORMAT JSON) {query}")
        except STORE_ERRORS as e:
            message = store_error_message(e)
            logger.warning(f"Explain failed on {pool.role} pool: {message}")
            return ExecutionError(message)

        if not rows:
            return None
        plan = rows[0].get("QUERY PLAN")
        # asyncpg returns json columns as text
        if isinstance(plan, str):
            plan = json.loads(plan)
        return plan

    async def reset(self) -> Optional[ExecutionError]:
        """Replay the seed script once. Returns None on success."""
        return await self.resetter.reset()

import logging
from typing import Annotated

from fastapi import APIRouter, Depends

from app.core import schemas
from app.core.database import get_sandbox
from app.core.sandbox.errors import ExecutionError
from app.core.sandbox.executor import SqlSandbox
from app.core.sandbox.validator import validate_query

router = APIRouter(prefix="/api", tags=["Query"])

sandbox_dep = Annotated[SqlSandbox, Depends(get_sandbox)]

logger = logging.getLogger(__name__)


@router.post(
    "/query", response_model=schemas.QueryResponse, response_model_exclude_unset=True
)
async def run_query(payload: schemas.QueryRequest, sandbox: sandbox_dep):
    """
    Validate learner SQL, cap the rows and run it as the learner role.
    Failures come back with success=false, never as an HTTP error.
    """
    validation = validate_query(payload.query)
    if not validation.valid:
        logger.info(f"Rejected query: {validation.reason}")
        return schemas.QueryResponse(
            success=False, error=validation.reason, rows=[], columns=[]
        )

    result = await sandbox.execute(payload.query)
    if isinstance(result, ExecutionError):
        return schemas.QueryResponse(
            success=False, error=result.message, rows=[], columns=[]
        )

    return schemas.QueryResponse(
        success=True,
        columns=result.columns,
        rows=result.rows,
        row_count=result.row_count,
        limited=result.truncated,
    )


@router.post(
    "/explain", response_model=schemas.ExplainResponse, response_model_exclude_unset=True
)
async def explain_query(payload: schemas.QueryRequest, sandbox: sandbox_dep):
    """Return the JSON query plan for learner SQL."""
    validation = validate_query(payload.query)
    if not validation.valid:
        logger.info(f"Rejected explain: {validation.reason}")
        return schemas.ExplainResponse(success=False, error=validation.reason, plan=None)

    plan = await sandbox.explain(payload.query)
    if isinstance(plan, ExecutionError):
        return schemas.ExplainResponse(success=False, error=plan.message, plan=None)

    return schemas.ExplainResponse(success=True, plan=plan)


@router.post(
    "/reset", response_model=schemas.ResetResponse, response_model_exclude_unset=True
)
async def reset_dataset(sandbox: sandbox_dep):
    """Replay the seed script. No retries here, the database is already up."""
    error = await sandbox.reset()
    if error is not None:
        return schemas.ResetResponse(success=False, error=error.message)
    return schemas.ResetResponse(success=True, message="Dataset reset to initial state.")

from typing import Annotated

from fastapi import APIRouter, Depends

from app.core import schemas
from app.core.database import get_sandbox
from app.core.sandbox.errors import STORE_ERRORS, store_error_message
from app.core.sandbox.executor import Operation, SqlSandbox

router = APIRouter(prefix="/api", tags=["Health"])

sandbox_dep = Annotated[SqlSandbox, Depends(get_sandbox)]


@router.get(
    "/health", response_model=schemas.HealthResponse, response_model_exclude_unset=True
)
async def health_check(sandbox: sandbox_dep):
    """Check that the owner connection can reach the database."""
    try:
        rows = await sandbox.pool_for(Operation.HEALTH).fetch("SELECT NOW() AS time")
    except STORE_ERRORS as e:
        return schemas.HealthResponse(
            status="error", database="disconnected", error=store_error_message(e)
        )
    return schemas.HealthResponse(status="ok", database="connected", time=rows[0]["time"])

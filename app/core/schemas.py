from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


# =========================
# QUERY
# =========================
class QueryRequest(BaseModel):
    query: str


class QueryResponse(BaseModel):
    success: bool
    columns: List[str] = []
    rows: List[Dict[str, Any]] = []
    # Only present on success
    row_count: Optional[int] = Field(default=None, alias="rowCount")
    limited: Optional[bool] = None
    error: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True)


# =========================
# EXPLAIN
# =========================
class ExplainResponse(BaseModel):
    success: bool
    plan: Optional[Any] = None
    error: Optional[str] = None


# =========================
# RESET
# =========================
class ResetResponse(BaseModel):
    success: bool
    message: Optional[str] = None
    error: Optional[str] = None


# =========================
# HEALTH
# =========================
class HealthResponse(BaseModel):
    status: str
    database: str
    time: Optional[datetime] = None
    error: Optional[str] = None

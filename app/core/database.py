from typing import Any, Dict, List, Optional

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from app.core.config import Settings


def create_owner_engine(settings: Settings) -> AsyncEngine:
    """Privileged engine. Only the reset path and the health check use it."""
    return create_async_engine(
        settings.owner_url,
        echo=settings.SQL_ECHO,
        pool_size=1,
        max_overflow=1,
        pool_pre_ping=True,
    )


def create_learner_engine(settings: Settings) -> AsyncEngine:
    """
    Restricted engine for learner SQL.

    The statement timeout is a server setting on every connection, so
    Postgres itself cancels runaway queries. The pool never grows past
    LEARNER_POOL_MAX; extra requests wait for a free connection.
    """
    return create_async_engine(
        settings.learner_url,
        echo=settings.SQL_ECHO,
        pool_size=settings.LEARNER_POOL_MAX,
        max_overflow=0,
        pool_timeout=settings.POOL_TIMEOUT_SECONDS,
        pool_pre_ping=True,
        connect_args={
            "server_settings": {
                "statement_timeout": str(settings.STATEMENT_TIMEOUT_MS),
            }
        },
    )


class RolePool:
    """
    Connection pool bound to a single database role.

    The sandbox only ever talks to the store through one of these, so which
    identity a statement runs under is decided by which pool it is handed to.
    """

    def __init__(self, role: str, engine: AsyncEngine):
        self.role = role
        self.engine = engine

    async def fetch(self, sql: str, max_rows: Optional[int] = None) -> List[Dict[str, Any]]:
        """
        Run one statement verbatim and return up to max_rows rows as dicts.

        With a cap the statement runs through an asyncpg portal inside a
        read-only transaction, so only max_rows rows ever leave the server.
        """
        async with self.engine.connect() as conn:
            if max_rows is None:
                # exec_driver_sql skips SQLAlchemy's ":name" bind parsing
                result = await conn.exec_driver_sql(sql)
                return [dict(row) for row in result.mappings()]

            raw = await conn.get_raw_connection()
            driver = raw.driver_connection
            async with driver.transaction(readonly=True):
                cursor = await driver.cursor(sql)
                records = await cursor.fetch(max_rows)
            return [dict(record) for record in records]

    async def run_script(self, script: str) -> None:
        """
        Run a multi-statement script through the simple query protocol.

        Prepared statements reject more than one command, so this goes to the
        asyncpg connection directly. Postgres runs the whole script as one
        implicit transaction.
        """
        async with self.engine.connect() as conn:
            raw = await conn.get_raw_connection()
            await raw.driver_connection.execute(script)

    async def dispose(self) -> None:
        await self.engine.dispose()


# This is the "Bridge" that gives my routes access to the sandbox built at startup
def get_sandbox(request: Request):
    return request.app.state.sandbox

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from app.core.config import settings
from app.core.database import RolePool, create_learner_engine, create_owner_engine
from app.core.sandbox.executor import SqlSandbox
from app.core.sandbox.reset import load_seed_script
from app.api.router import api_router

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


def build_sandbox() -> SqlSandbox:
    """Build both role pools. Nothing connects until the first query."""
    return SqlSandbox(
        learner_pool=RolePool("learner", create_learner_engine(settings)),
        owner_pool=RolePool("owner", create_owner_engine(settings)),
        seed_script=load_seed_script(settings.SEED_PATH),
        max_rows=settings.MAX_ROWS,
    )


# Build the pools on startup and dispose them once everything is done
@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.sandbox = build_sandbox()
    logger.info(
        f"Sandbox ready (learner pool max {settings.LEARNER_POOL_MAX}, "
        f"statement timeout {settings.STATEMENT_TIMEOUT_MS}ms, row cap {settings.MAX_ROWS})"
    )

    yield
    await app.state.sandbox.learner_pool.dispose()
    await app.state.sandbox.owner_pool.dispose()


app = FastAPI(title="SQL Katas API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include the master router containing all our endpoints
app.include_router(api_router)


@app.get("/")
async def root():
    return {"message": "Welcome to the SQL Katas API"}

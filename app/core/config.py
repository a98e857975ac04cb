from pathlib import Path
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import URL, make_url

DEFAULT_SEED_PATH = Path(__file__).resolve().parent.parent / "seeds" / "001-ecommerce.sql"

ASYNC_DRIVER = "postgresql+asyncpg"


class Settings(BaseSettings):
    # Owner connection (full privileges, used only for seeding/reset)
    DATABASE_URL: Optional[str] = None
    DB_HOST: str = "localhost"
    DB_PORT: int = 5432
    DB_NAME: str = "sql_katas"

    # Learner connection (read-only role)
    LEARNER_DATABASE_URL: Optional[str] = None
    LEARNER_DB_USER: str = "sql_katas_learner"
    LEARNER_DB_PASSWORD: str = "learner"

    STATEMENT_TIMEOUT_MS: int = 5000
    LEARNER_POOL_MAX: int = 5
    POOL_TIMEOUT_SECONDS: float = 30
    MAX_ROWS: int = 1000

    SEED_PATH: Path = DEFAULT_SEED_PATH
    SEED_MAX_ATTEMPTS: int = 10
    SEED_RETRY_DELAY_MS: int = 2000

    SQL_ECHO: bool = False
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: List[str] = ["*"]

    # This tells Pydantic to read from the .env file
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @property
    def owner_url(self) -> URL:
        if self.DATABASE_URL:
            return normalize_url(self.DATABASE_URL)
        return URL.create(
            ASYNC_DRIVER,
            host=self.DB_HOST,
            port=self.DB_PORT,
            database=self.DB_NAME,
        )

    @property
    def learner_url(self) -> URL:
        """
        Learner URL: the explicit one if given, otherwise the owner URL
        with the learner credentials swapped in.
        """
        if self.LEARNER_DATABASE_URL:
            return normalize_url(self.LEARNER_DATABASE_URL)
        return self.owner_url.set(
            username=self.LEARNER_DB_USER, password=self.LEARNER_DB_PASSWORD
        )


def normalize_url(raw: str) -> URL:
    """Parse a connection string and force the asyncpg driver for postgres URLs."""
    url = make_url(raw)
    if url.drivername in ("postgres", "postgresql"):
        url = url.set(drivername=ASYNC_DRIVER)
    return url


# Create a single instance of the settings to use everywhere
settings = Settings()

from dataclasses import dataclass
from typing import Optional

import asyncpg
from sqlalchemy.exc import DBAPIError, SQLAlchemyError

# Failures we expect from the store or from acquiring a pooled connection
STORE_ERRORS = (SQLAlchemyError, asyncpg.PostgresError, OSError)

# SQLSTATE 57P03 cannot_connect_now
STARTING_UP_SQLSTATE = "57P03"
STARTING_UP_MESSAGE = "the database system is starting up"


@dataclass(frozen=True)
class ExecutionError:
    message: str


def error_chain(error: BaseException):
    """
    Yield the exception and everything it wraps.
    SQLAlchemy keeps the driver error on .orig, the asyncpg adapter keeps
    the real asyncpg error on __cause__.
    """
    seen = set()
    current: Optional[BaseException] = error
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        yield current
        if isinstance(current, DBAPIError) and current.orig is not None:
            current = current.orig
        else:
            current = current.__cause__ or current.__context__


def store_error_message(error: BaseException) -> str:
    """The store's own message, without SQL echo or SQLAlchemy decorations."""
    for link in error_chain(error):
        if isinstance(link, asyncpg.PostgresError):
            return str(link)
    if isinstance(error, DBAPIError) and error.orig is not None:
        return str(error.orig)
    return str(error) or error.__class__.__name__


def is_store_starting_up(error: BaseException) -> bool:
    """True when Postgres is up but not accepting connections yet."""
    for link in error_chain(error):
        if getattr(link, "sqlstate", None) == STARTING_UP_SQLSTATE:
            return True
        if STARTING_UP_MESSAGE in str(link):
            return True
    return False

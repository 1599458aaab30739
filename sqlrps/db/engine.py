"""Database engine configuration for the query benchmark."""

import asyncio
import time
from typing import Awaitable, Callable

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

# Executors run one statement and raise on failure; the deadline is a
# time.monotonic() timestamp.
QueryExecutor = Callable[[str, float], None]
AsyncQueryExecutor = Callable[[str, float], Awaitable[None]]

ASYNC_DRIVERS = {
    "sqlite": "sqlite+aiosqlite",
    "postgresql": "postgresql+asyncpg",
}


class ConnectionFailed(Exception):
    """Raised when a database handle cannot be established."""


def normalize_dsn(dsn: str) -> str:
    """Accept libpq style ``postgres://`` URLs alongside SQLAlchemy URLs."""
    if dsn.startswith("postgres://"):
        return "postgresql://" + dsn[len("postgres://"):]
    return dsn


def _pool_args(url, workers: int, is_async: bool = False) -> dict:
    args = {}
    if url.get_backend_name() == "sqlite":
        args["connect_args"] = {"check_same_thread": False}
        # in-memory and aiosqlite pools vary by SQLAlchemy release and may take no sizing
        if is_async or url.database in (None, "", ":memory:"):
            return args
    args["pool_size"] = max(workers, 1)
    args["max_overflow"] = 0
    return args


def create_sync_engine(dsn: str, workers: int = 1) -> Engine:
    """Create a pooled engine with room for one connection per worker.

    Connections run in autocommit mode without pre-ping or reset-on-return
    rollback, so each benchmark iteration sends only the benchmarked statement.
    """
    try:
        url = make_url(normalize_dsn(dsn))
        return create_engine(
            url, echo=False, isolation_level="AUTOCOMMIT", pool_reset_on_return=None, **_pool_args(url, workers)
        )
    except (SQLAlchemyError, ImportError) as e:
        raise ConnectionFailed(f"Invalid DSN {dsn!r}: {e}") from e


def create_async_engine_for(dsn: str, workers: int = 1) -> AsyncEngine:
    """Create an async engine, picking an async driver for bare URLs."""
    try:
        url = make_url(normalize_dsn(dsn))
        if url.drivername in ASYNC_DRIVERS:
            url = url.set(drivername=ASYNC_DRIVERS[url.drivername])
        return create_async_engine(
            url,
            echo=False,
            isolation_level="AUTOCOMMIT",
            pool_reset_on_return=None,
            **_pool_args(url, workers, is_async=True),
        )
    except (SQLAlchemyError, ImportError) as e:
        raise ConnectionFailed(f"Invalid DSN {dsn!r}: {e}") from e


def check_connection(engine: Engine) -> None:
    """Open and release one connection so a bad DSN fails before benchmarking."""
    try:
        with engine.connect():
            pass
    except SQLAlchemyError as e:
        raise ConnectionFailed(str(e)) from e


async def check_async_connection(engine: AsyncEngine) -> None:
    """Async counterpart of check_connection."""
    try:
        async with engine.connect():
            pass
    except (SQLAlchemyError, OSError) as e:
        raise ConnectionFailed(str(e)) from e


def engine_executor(engine: Engine) -> QueryExecutor:
    """Wrap an engine into an executor that runs the query on a pooled connection.

    A blocking driver call cannot be interrupted from another thread, so the
    deadline is only checked by the caller between calls.
    """
    def execute(query: str, deadline: float) -> None:
        with engine.connect() as conn:
            conn.execute(text(query))

    return execute


def async_engine_executor(engine: AsyncEngine) -> AsyncQueryExecutor:
    """Wrap an async engine into an executor that is cancelled at the deadline."""
    async def execute(query: str, deadline: float) -> None:
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise asyncio.TimeoutError("deadline exceeded before query start")

        async def _run() -> None:
            async with engine.connect() as conn:
                await conn.execute(text(query))

        await asyncio.wait_for(_run(), timeout=remaining)

    return execute

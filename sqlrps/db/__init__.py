"""Database package for the query benchmark."""

from .engine import (
    ConnectionFailed,
    async_engine_executor,
    check_async_connection,
    check_connection,
    create_async_engine_for,
    create_sync_engine,
    engine_executor,
    normalize_dsn,
)

__all__ = [
    "ConnectionFailed",
    "async_engine_executor",
    "check_async_connection",
    "check_connection",
    "create_async_engine_for",
    "create_sync_engine",
    "engine_executor",
    "normalize_dsn",
]

"""
Benchmark runner: execute one SQL statement from many concurrent workers until a deadline.

Every worker loops independently:
- stop once the deadline has passed or cancellation was requested
- otherwise execute the query once
- count the execution on success, log and retry immediately on failure

Failed executions are never counted and never delay the loop, so a query that
always fails keeps its workers spinning until the deadline.
"""

import asyncio
import logging
import threading
import time
from dataclasses import dataclass
from typing import Optional, Union

from sqlalchemy.engine import Engine
from sqlalchemy.ext.asyncio import AsyncEngine

from sqlrps.db.engine import (
    AsyncQueryExecutor,
    QueryExecutor,
    async_engine_executor,
    engine_executor,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BenchmarkRequest:
    """What to run, for how long (seconds) and with how many workers."""

    query: str
    duration: float
    workers: int

    def __post_init__(self):
        if not self.query:
            raise ValueError("query must be a non-empty string")
        if self.workers < 0:
            raise ValueError(f"workers must be >= 0, got {self.workers}")

    @classmethod
    def from_milliseconds(cls, query: str, duration_ms: int, workers: int) -> "BenchmarkRequest":
        return cls(query=query, duration=duration_ms / 1000.0, workers=workers)


@dataclass(frozen=True)
class BenchmarkResult:
    """Outcome of one run. Unpacks as ``count, elapsed, rps``."""

    count: int
    elapsed: float

    @property
    def rps(self) -> float:
        if self.elapsed <= 0:
            return 0.0
        return self.count / self.elapsed

    def __iter__(self):
        return iter((self.count, self.elapsed, self.rps))

    def as_dict(self) -> dict:
        return {"count": self.count, "elapsed_s": self.elapsed, "rps": self.rps}


class SharedCounter:
    """Increment-only counter shared by the workers of a single run."""

    def __init__(self) -> None:
        self._value = 0
        self._lock = threading.Lock()

    def increment(self) -> None:
        with self._lock:
            self._value += 1

    @property
    def value(self) -> int:
        with self._lock:
            return self._value


def _as_executor(connection: Union[Engine, QueryExecutor]) -> QueryExecutor:
    if isinstance(connection, Engine):
        return engine_executor(connection)
    if callable(connection):
        return connection
    raise TypeError(f"Expected an Engine or a query executor, got {type(connection).__name__}")


def _as_async_executor(connection: Union[AsyncEngine, AsyncQueryExecutor]) -> AsyncQueryExecutor:
    if isinstance(connection, AsyncEngine):
        return async_engine_executor(connection)
    if callable(connection):
        return connection
    raise TypeError(f"Expected an AsyncEngine or an async query executor, got {type(connection).__name__}")


def run(
    query: str,
    connection: Union[Engine, QueryExecutor],
    duration: float,
    workers: int,
    cancel: Optional[threading.Event] = None,
) -> BenchmarkResult:
    """Run ``query`` from ``workers`` threads for ``duration`` seconds.

    ``connection`` is a pooled SQLAlchemy engine or any callable taking
    ``(query, deadline)`` that raises on failure. Setting ``cancel`` stops the
    workers at their next iteration. Elapsed time is measured until the last
    worker has finished, so it can exceed ``duration`` by one in-flight query.
    """
    request = BenchmarkRequest(query=query, duration=duration, workers=workers)
    execute = _as_executor(connection)
    cancel = cancel or threading.Event()
    counter = SharedCounter()

    start = time.perf_counter()
    deadline = time.monotonic() + request.duration

    def worker() -> None:
        while not cancel.is_set() and time.monotonic() < deadline:
            try:
                execute(request.query, deadline)
            except Exception as e:
                logger.warning("Query execution failed: %s", e)
                continue
            counter.increment()

    threads = [
        threading.Thread(target=worker, name=f"sqlrps-worker-{i}", daemon=True)
        for i in range(request.workers)
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    elapsed = time.perf_counter() - start
    return BenchmarkResult(count=counter.value, elapsed=elapsed)


async def run_async(
    query: str,
    connection: Union[AsyncEngine, AsyncQueryExecutor],
    duration: float,
    workers: int,
    cancel: Optional[asyncio.Event] = None,
) -> BenchmarkResult:
    """Asyncio variant of :func:`run` with one task per worker.

    Statements still running at the deadline are cancelled by the engine
    executor and count as failures.
    """
    request = BenchmarkRequest(query=query, duration=duration, workers=workers)
    execute = _as_async_executor(connection)
    cancel = cancel or asyncio.Event()
    counter = SharedCounter()

    start = time.perf_counter()
    deadline = time.monotonic() + request.duration

    async def worker() -> None:
        while not cancel.is_set() and time.monotonic() < deadline:
            try:
                await execute(request.query, deadline)
            except Exception as e:
                logger.warning("Query execution failed: %s", e)
            else:
                counter.increment()
            # executors that never suspend would otherwise starve sibling tasks
            await asyncio.sleep(0)

    await asyncio.gather(*(worker() for _ in range(request.workers)))

    elapsed = time.perf_counter() - start
    return BenchmarkResult(count=counter.value, elapsed=elapsed)

import threading

import pytest
from sqlalchemy import event

from sqlrps.db import check_connection, create_sync_engine


@pytest.fixture
def sqlite_dsn(tmp_path):
    return f"sqlite:///{tmp_path / 'bench.db'}"


@pytest.fixture
def sqlite_engine(sqlite_dsn):
    engine = create_sync_engine(sqlite_dsn, workers=10)
    yield engine
    engine.dispose()


class CountingExecutor:
    """Fake query executor that records calls and can fail on demand."""

    def __init__(self, fail_every=None, error=None):
        self.fail_every = fail_every
        self.error = error
        self.calls = 0
        self.successes = 0
        self.queries = set()
        self._lock = threading.Lock()

    def __call__(self, query, deadline):
        with self._lock:
            self.calls += 1
            self.queries.add(query)
            call = self.calls
            failing = self.error is not None or (self.fail_every and call % self.fail_every == 0)
            if not failing:
                self.successes += 1
        if failing:
            raise self.error or RuntimeError(f"failure on call {call}")


@pytest.fixture
def counting_executor():
    return CountingExecutor()


@pytest.fixture
def traced_statements(sqlite_engine):
    """SQL text sent to SQLite by every connection of ``sqlite_engine``."""
    statements = []

    def trace(dbapi_connection, connection_record):
        dbapi_connection.set_trace_callback(statements.append)

    event.listen(sqlite_engine, "connect", trace)
    # the first connection runs dialect setup, which is not benchmark traffic
    check_connection(sqlite_engine)
    statements.clear()
    yield statements
    event.remove(sqlite_engine, "connect", trace)

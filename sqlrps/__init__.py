"""Measure sustained queries-per-second of a SQL statement under concurrent load."""

from .runner import BenchmarkRequest, BenchmarkResult, run, run_async

__version__ = "0.1.0"

__all__ = [
    "BenchmarkRequest",
    "BenchmarkResult",
    "run",
    "run_async",
]

import time

import pytest

from sqlrps.monitor import ProcessMonitor

SUMMARY_KEYS = {"avg_cpu", "max_cpu", "avg_memory_mb", "max_memory_mb"}


def test_summary_without_samples_is_zero():
    summary = ProcessMonitor().summary()

    assert set(summary) == SUMMARY_KEYS
    assert all(value == 0.0 for value in summary.values())


def test_summary_of_recorded_samples():
    monitor = ProcessMonitor()
    monitor.record(cpu_percent=50.0, rss_mb=100.0)
    monitor.record(cpu_percent=100.0, rss_mb=120.0)

    assert monitor.summary() == {
        "avg_cpu": pytest.approx(75.0),
        "max_cpu": 100.0,
        "avg_memory_mb": pytest.approx(110.0),
        "max_memory_mb": 120.0,
    }
    assert [s["cpu_percent"] for s in monitor.samples] == [50.0, 100.0]


def test_monitor_samples_current_process():
    with ProcessMonitor(interval=0.05) as monitor:
        end = time.monotonic() + 0.3
        while time.monotonic() < end:
            sum(range(1000))

    assert monitor.samples
    summary = monitor.summary()
    assert summary["max_memory_mb"] > 0
    assert summary["max_cpu"] >= summary["avg_cpu"] >= 0

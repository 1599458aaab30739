"""CPU and memory sampling of the benchmarking process."""

import statistics
import threading
import time
from typing import Dict, List, Optional

import psutil


class ProcessMonitor:
    """Sample CPU usage and RSS of a process in a background thread."""

    def __init__(self, interval: float = 0.25, pid: Optional[int] = None) -> None:
        self.interval = interval
        self._process = psutil.Process(pid)
        self._samples: List[Dict[str, float]] = []
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def samples(self) -> List[Dict[str, float]]:
        return list(self._samples)

    def start(self) -> None:
        # First cpu_percent call only primes the counters and always returns 0.0
        self._process.cpu_percent(interval=None)
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._sample_loop, name="sqlrps-monitor", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=5)
            self._thread = None

    def __enter__(self) -> "ProcessMonitor":
        self.start()
        return self

    def __exit__(self, *exc_info) -> None:
        self.stop()

    def _sample_loop(self) -> None:
        while not self._stop_event.wait(timeout=self.interval):
            try:
                cpu_percent = self._process.cpu_percent(interval=None)
                rss_mb = self._process.memory_info().rss / (1024 * 1024)
            except (psutil.NoSuchProcess, psutil.AccessDenied):
                break
            self.record(cpu_percent, rss_mb)

    def record(self, cpu_percent: float, rss_mb: float) -> None:
        self._samples.append({"timestamp": time.time(), "cpu_percent": cpu_percent, "rss_mb": rss_mb})

    def summary(self) -> Dict[str, float]:
        """Average and peak CPU/memory over the collected samples, zeros before any sample."""
        summary = {}
        for key, label in (("cpu_percent", "cpu"), ("rss_mb", "memory_mb")):
            values = [sample[key] for sample in self._samples] or [0.0]
            summary[f"avg_{label}"] = statistics.fmean(values)
            summary[f"max_{label}"] = max(values)
        return summary

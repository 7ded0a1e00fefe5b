"""
Citation lookup metrics.

Tracks: jump latency, outcomes, winning strategies, pages scanned, memory usage.
Logs structured metrics to <METRICS_DIR>/metrics.jsonl.
"""
from __future__ import annotations

import json
import os
import threading
import time
from collections import Counter
from pathlib import Path

import psutil

from .config import METRICS_DIR, METRICS_LOG_ENABLED
from .models import JumpOutcome, JumpResult


class MetricsCollector:
    """Thread-safe jump metrics tracker with JSONL file logging."""

    def __init__(self, log_dir: str | Path = METRICS_DIR, *, log_enabled: bool = METRICS_LOG_ENABLED):
        self._lock = threading.Lock()
        self._start_time: float = time.time()

        # Counters.
        self._total_jumps: int = 0
        self._total_latency_ms: float = 0.0
        self._min_latency_ms: float = float("inf")
        self._max_latency_ms: float = 0.0
        self._total_pages_scanned: int = 0
        self._outcomes: Counter[str] = Counter()
        self._strategies: Counter[str] = Counter()

        # Logging.
        self._log_enabled = bool(log_enabled)
        self._log_dir = Path(log_dir)
        if self._log_enabled:
            self._log_dir.mkdir(parents=True, exist_ok=True)
        self._log_path = self._log_dir / "metrics.jsonl"

        # Process handle for memory tracking.
        self._process = psutil.Process(os.getpid())

    @property
    def log_path(self) -> Path:
        return self._log_path

    def record_jump(self, result: JumpResult, latency_ms: float) -> None:
        """Records a finished jump and appends it to the JSONL log."""
        strategy = result.match.strategy.value if result.match is not None else None
        entry = {
            "timestamp": time.strftime("%Y-%m-%dT%H:%M:%S%z"),
            "latency_ms": round(latency_ms, 2),
            "outcome": result.outcome.value,
            "strategy": strategy,
            "page": result.page,
            "pages_scanned": result.pages_scanned,
        }

        with self._lock:
            self._total_jumps += 1
            self._total_latency_ms += latency_ms
            if latency_ms < self._min_latency_ms:
                self._min_latency_ms = latency_ms
            if latency_ms > self._max_latency_ms:
                self._max_latency_ms = latency_ms
            self._total_pages_scanned += result.pages_scanned
            self._outcomes[result.outcome.value] += 1
            if strategy is not None:
                self._strategies[strategy] += 1

        if not self._log_enabled:
            return
        # Append to JSONL file outside the lock.
        try:
            with open(self._log_path, "a", encoding="utf-8") as fh:
                fh.write(json.dumps(entry, ensure_ascii=True) + "\n")
        except OSError:
            pass

    def get_summary(self) -> dict:
        """Returns comprehensive metrics snapshot."""
        with self._lock:
            total = self._total_jumps
            avg_lat = (self._total_latency_ms / total) if total > 0 else 0.0
            min_lat = self._min_latency_ms if total > 0 else 0.0
            max_lat = self._max_latency_ms if total > 0 else 0.0
            outcomes = dict(self._outcomes)
            strategies = dict(self._strategies)
            scanned = self._total_pages_scanned

        # Hit rate over searches that actually looked for a quote.
        found = outcomes.get(JumpOutcome.FOUND.value, 0)
        searched = found + outcomes.get(JumpOutcome.QUOTE_NOT_FOUND.value, 0)
        hit_rate = (found / searched * 100) if searched > 0 else 0.0

        # Throughput.
        uptime_s = time.time() - self._start_time
        throughput = (total / uptime_s) if uptime_s > 0 else 0.0

        # Memory usage.
        mem_info = self._process.memory_info()
        mem_rss_mb = mem_info.rss / (1024 * 1024)
        mem_vms_mb = mem_info.vms / (1024 * 1024)

        return {
            "latency": {
                "avg_ms": round(avg_lat, 2),
                "min_ms": round(min_lat, 2),
                "max_ms": round(max_lat, 2),
            },
            "throughput": {
                "total_jumps": total,
                "jumps_per_second": round(throughput, 4),
                "uptime_seconds": round(uptime_s, 1),
            },
            "memory": {
                "rss_mb": round(mem_rss_mb, 1),
                "vms_mb": round(mem_vms_mb, 1),
            },
            "matching": {
                "outcomes": outcomes,
                "strategies": strategies,
                "hit_rate_percent": round(hit_rate, 2),
                "avg_pages_scanned": round((scanned / total) if total > 0 else 0.0, 2),
            },
        }


# Module-level singleton used by the API server.
metrics_collector = MetricsCollector()

#!/usr/bin/env python3

"""
Performance monitoring for the guide selection pipeline.

Each pipeline phase (parsing, filtering, selection, output) is timed and its
resident memory sampled through psutil. The pipeline checks the configured
memory limit between batches of targets.
"""

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Dict, Iterator, Optional

import psutil

from ..core.exceptions import MemoryLimitError


@dataclass
class PhaseMetrics:
    """Timing, memory and item count for one pipeline phase."""
    name: str
    started: float
    finished: Optional[float] = None
    peak_rss_mb: float = 0.0
    items: int = 0

    @property
    def elapsed(self) -> float:
        end = self.finished if self.finished is not None else time.time()
        return end - self.started

    @property
    def items_per_second(self) -> float:
        elapsed = self.elapsed
        return self.items / elapsed if elapsed > 0 else 0.0

    def as_dict(self) -> Dict[str, Any]:
        return {
            "elapsed_time": self.elapsed,
            "items": self.items,
            "items_per_second": self.items_per_second,
            "peak_memory_mb": self.peak_rss_mb,
        }


class PerformanceMonitor:
    """Per-phase timing and RSS tracking with a hard memory ceiling."""

    def __init__(self, memory_limit_mb: int = 4096, enabled: bool = True):
        self.memory_limit_mb = memory_limit_mb
        self.enabled = enabled
        self.created = time.time()
        self.phases: Dict[str, PhaseMetrics] = {}
        self._active: Optional[PhaseMetrics] = None
        self._process = psutil.Process() if enabled else None

    @property
    def current_phase(self) -> Optional[str]:
        return self._active.name if self._active else None

    def rss_mb(self) -> float:
        """Resident memory of this process in MB (0.0 when monitoring is off)."""
        if self._process is None:
            return 0.0
        try:
            rss = self._process.memory_info().rss / (1024 * 1024)
        except psutil.Error as e:
            logging.warning(f"Could not read process memory: {e}")
            return 0.0

        if self._active is not None:
            self._active.peak_rss_mb = max(self._active.peak_rss_mb, rss)
        return rss

    def check_memory_limit(self) -> bool:
        """Raise MemoryLimitError once RSS passes the configured limit."""
        rss = self.rss_mb()
        if rss > self.memory_limit_mb:
            logging.warning(f"Memory usage {rss:.1f}MB exceeds limit of {self.memory_limit_mb}MB")
            raise MemoryLimitError("Memory usage exceeded limit", rss, self.memory_limit_mb)
        return True

    @contextmanager
    def phase_context(self, name: str) -> Iterator[PhaseMetrics]:
        """Time a phase; the yielded metrics object takes the phase's item count."""
        metrics = PhaseMetrics(name=name, started=time.time())
        self.phases[name] = metrics
        self._active = metrics
        self.rss_mb()
        logging.info(f"Started phase: {name}")
        try:
            yield metrics
        finally:
            self.rss_mb()
            metrics.finished = time.time()
            self._active = None
            logging.info(f"Completed phase {name} in {metrics.elapsed:.2f}s "
                         f"({metrics.items} items, peak memory {metrics.peak_rss_mb:.1f}MB)")

    @property
    def peak_memory_mb(self) -> float:
        if not self.phases:
            return self.rss_mb()
        return max(metrics.peak_rss_mb for metrics in self.phases.values())

    def summary(self) -> Dict[str, Any]:
        return {
            "total_elapsed_time": time.time() - self.created,
            "peak_memory_mb": self.peak_memory_mb,
            "memory_limit_mb": self.memory_limit_mb,
            "phases": {name: metrics.as_dict() for name, metrics in self.phases.items()},
        }

    def log_report(self) -> None:
        summary = self.summary()
        logging.info(f"Total time: {summary['total_elapsed_time']:.2f}s, "
                     f"peak memory: {summary['peak_memory_mb']:.1f}MB "
                     f"(limit {summary['memory_limit_mb']}MB)")
        for name, phase in summary['phases'].items():
            logging.info(f"  {name}: {phase['elapsed_time']:.2f}s, {phase['items']} items "
                         f"({phase['items_per_second']:.1f}/s), {phase['peak_memory_mb']:.1f}MB")

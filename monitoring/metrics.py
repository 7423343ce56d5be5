#!/usr/bin/env python3
"""
Performance metric snapshots and placeholder figures.

Only disk capacity and usage (and load average when the diagnostic pod
reports it) are measured. The remaining figures come from a fallback
provider chosen when monitoring starts: deterministic, bounded values derived
from the wall-clock second, clearly marked by the snapshot source.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import NamedTuple, Optional

MIB = 1024 * 1024

SOURCE_NONE = "none"
SOURCE_DIAGNOSTIC_POD = "diagnostic-pod"
SOURCE_SIMULATED = "simulated"
SOURCE_FALLBACK = "fallback"


@dataclass(frozen=True)
class MetricsSnapshot:
    """
    Performance metrics of a PVC at one point in time

    used_bytes and used_percent are None when no real disk usage was
    available for the cycle.
    """
    timestamp: Optional[datetime] = None
    iops: int = 0
    throughput: int = 0  # bytes per second
    latency_ms: int = 0
    disk_util_pct: float = 0.0
    capacity_bytes: int = 0
    used_bytes: Optional[int] = None
    used_percent: Optional[float] = None
    read_only: bool = False
    system_load: float = 0.0
    cpu_wait_pct: float = 0.0
    source: str = SOURCE_NONE

    @property
    def has_usage(self) -> bool:
        return self.used_bytes is not None


class PlaceholderFigures(NamedTuple):
    iops: int
    throughput: int
    latency_ms: int
    disk_util_pct: float
    system_load: float
    cpu_wait_pct: float


class FallbackMetricsProvider(ABC):
    """Supplies figures that are not measured"""

    source = SOURCE_SIMULATED

    @abstractmethod
    def figures(self, now: datetime) -> PlaceholderFigures:
        """Return placeholder figures for the given time"""


class SimulatedMetricsProvider(FallbackMetricsProvider):
    """Used while a diagnostic pod is running"""

    source = SOURCE_SIMULATED

    def figures(self, now: datetime) -> PlaceholderFigures:
        second = now.second
        return PlaceholderFigures(
            iops=100 + second,                      # 100-159 ops/sec
            throughput=MIB * (5 + second % 10),     # 5-14 MiB/s
            latency_ms=1 + second % 5,              # 1-5ms
            disk_util_pct=float(30 + second % 40),  # 30-69%
            system_load=1.0 + (second % 100) / 50.0,
            cpu_wait_pct=float(1 + second % 30),    # 1-30%
        )


class DegradedMetricsProvider(FallbackMetricsProvider):
    """Used when no diagnostic pod could be provisioned; more conservative"""

    source = SOURCE_FALLBACK

    def figures(self, now: datetime) -> PlaceholderFigures:
        second = now.second
        return PlaceholderFigures(
            iops=50 + second % 50,                        # 50-99 ops/sec
            throughput=(MIB // 2) * (2 + second % 5),     # 1-3 MiB/s
            latency_ms=5 + second % 10,                   # 5-14ms
            disk_util_pct=20.0 + second % 30,             # 20-49%
            system_load=0.5 + (second % 50) / 100.0,
            cpu_wait_pct=float(second % 5),               # 0-4%
        )

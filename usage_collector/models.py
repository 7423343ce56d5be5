#!/usr/bin/env python3
"""
Data models for PVC usage collection.

The kubelet stats summary is validated with pydantic models that only carry
the fields needed here; unknown fields are ignored. Usage records produced
from it are immutable.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class PVCRef(BaseModel):
    """Claim reference attached to a volume in the stats summary"""
    model_config = ConfigDict(extra='ignore')

    namespace: str
    name: str


class SummaryVolume(BaseModel):
    """Volume entry of a pod in the stats summary"""
    model_config = ConfigDict(extra='ignore', populate_by_name=True)

    name: Optional[str] = None
    pvc_ref: Optional[PVCRef] = Field(default=None, alias='pvcRef')
    capacity_bytes: int = Field(default=0, alias='capacityBytes')
    used_bytes: int = Field(default=0, alias='usedBytes')
    available_bytes: int = Field(default=0, alias='availableBytes')


class SummaryPod(BaseModel):
    """Pod entry of the stats summary"""
    model_config = ConfigDict(extra='ignore')

    volume: List[SummaryVolume] = Field(default_factory=list)


class Summary(BaseModel):
    """Per-node stats summary as served by /api/v1/nodes/<node>/proxy/stats/summary"""
    model_config = ConfigDict(extra='ignore')

    pods: List[SummaryPod] = Field(default_factory=list)


@dataclass(frozen=True)
class VolumeStat:
    """Usage figures for one claim-backed volume reported by a node"""
    namespace: str
    pvc: str
    capacity_bytes: int
    used_bytes: int
    available_bytes: int


@dataclass(frozen=True)
class UsageRecord:
    """Usage of one claim as seen in one node report"""
    namespace: str
    pvc: str
    capacity_bytes: int
    used_bytes: int
    available_bytes: int
    percentage_used: float

    @classmethod
    def from_volume_stat(cls, stat: VolumeStat) -> Optional['UsageRecord']:
        """
        Build a record from a volume stat

        Args:
            stat: Volume stat reported by a node

        Returns:
            Optional[UsageRecord]: The record, or None when capacity is zero
        """
        if stat.capacity_bytes == 0:
            return None
        return cls(
            namespace=stat.namespace,
            pvc=stat.pvc,
            capacity_bytes=stat.capacity_bytes,
            used_bytes=stat.used_bytes,
            available_bytes=stat.available_bytes,
            percentage_used=stat.used_bytes / stat.capacity_bytes * 100,
        )


def volume_stats_from_summary(summary: Summary) -> List[VolumeStat]:
    """
    Extract claim-backed volume stats from a node summary

    Volumes without a claim reference (emptyDir, configMap, projected
    tokens...) are skipped.
    """
    stats = []
    for pod in summary.pods:
        for volume in pod.volume:
            if volume.pvc_ref is None:
                continue
            stats.append(VolumeStat(
                namespace=volume.pvc_ref.namespace,
                pvc=volume.pvc_ref.name,
                capacity_bytes=volume.capacity_bytes,
                used_bytes=volume.used_bytes,
                available_bytes=volume.available_bytes,
            ))
    return stats


class StatsSource(ABC):
    """Source of node names and per-node claim usage figures"""

    @abstractmethod
    def list_nodes(self) -> List[str]:
        """Return the names of all cluster nodes"""

    @abstractmethod
    def get_volume_stats(self, node: str) -> List[VolumeStat]:
        """Return usage figures for every claim-backed volume on a node"""

#!/usr/bin/env python3
"""
Kubernetes tools for PVC monitoring.

This module contains:
- core: Kubernetes API client wrapper (nodes, kubelet stats, pods, claims, logs)
- pod_matcher: Locating the pod that consumes a claim
"""

from tools.kubernetes.core import (
    KubernetesClient,
    StatsSource,
    PodInfo,
    ClaimInfo
)

from tools.kubernetes.pod_matcher import (
    PodMatcher,
    MatchStrategy,
    DirectClaimMatch,
    StatefulSetNameMatch,
    SharedTokenMatch,
    RunningWorkloadFallback
)

__all__ = [
    'KubernetesClient',
    'StatsSource',
    'PodInfo',
    'ClaimInfo',

    'PodMatcher',
    'MatchStrategy',
    'DirectClaimMatch',
    'StatefulSetNameMatch',
    'SharedTokenMatch',
    'RunningWorkloadFallback'
]

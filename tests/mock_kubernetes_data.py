#!/usr/bin/env python3
"""
Mock Kubernetes data for testing

Kubelet stats summaries, pod lists and diagnostic pod log samples, plus an
in-memory cluster double implementing the client operations the tools use.
"""

import json
from typing import Dict, Any, List, Optional

from tools.core.errors import ConnectivityError, PVCUsageError, ResourceCapacityError, ProvisionError
from tools.kubernetes.core import ClaimInfo, PodInfo
from usage_collector.models import Summary, StatsSource, VolumeStat, volume_stats_from_summary

GIB = 1024 ** 3

# Stats summaries keyed by node name, in the kubelet's JSON shape
MOCK_NODE_SUMMARIES: Dict[str, Dict[str, Any]] = {
    "node-a": {
        "node": {"nodeName": "node-a"},
        "pods": [
            {
                "podRef": {"name": "db-0", "namespace": "prod"},
                "volume": [
                    {
                        "name": "data",
                        "pvcRef": {"name": "data-db-0", "namespace": "prod"},
                        "capacityBytes": 10 * GIB,
                        "usedBytes": 9 * GIB,
                        "availableBytes": 1 * GIB,
                    },
                    {
                        "name": "kube-api-access-abcde",
                        "capacityBytes": 1024,
                        "usedBytes": 12,
                        "availableBytes": 1012,
                    },
                ],
            },
            {
                "podRef": {"name": "web-1", "namespace": "default"},
                "volume": [
                    {
                        "name": "cache",
                        "pvcRef": {"name": "cache", "namespace": "default"},
                        "capacityBytes": 4 * GIB,
                        "usedBytes": 1 * GIB,
                        "availableBytes": 3 * GIB,
                    },
                ],
            },
        ],
    },
    "node-b": {
        "node": {"nodeName": "node-b"},
        "pods": [
            {
                "podRef": {"name": "logs-0", "namespace": "ops"},
                "volume": [
                    {
                        "name": "logs",
                        "pvcRef": {"name": "logs", "namespace": "ops"},
                        "capacityBytes": 2 * GIB,
                        "usedBytes": 1 * GIB,
                        "availableBytes": 1 * GIB,
                    },
                    {
                        "name": "unbound",
                        "pvcRef": {"name": "pending", "namespace": "ops"},
                        "capacityBytes": 0,
                        "usedBytes": 0,
                        "availableBytes": 0,
                    },
                ],
            },
        ],
    },
}

# Kafka namespace with claim-template naming (data-<ordinal>-<cluster>-<component>)
MOCK_KAFKA_PODS: List[PodInfo] = [
    PodInfo(name="kafka-entity-operator-6d9f", phase="Running", node_name="node-a"),
    PodInfo(name="kafka-zookeeper-0", phase="Running", node_name="node-a"),
    PodInfo(name="kafka-kafka-0", phase="Running", node_name="node-b"),
    PodInfo(name="kafka-kafka-1", phase="Running", node_name="node-c"),
]

MOCK_DIRECT_PODS: List[PodInfo] = [
    PodInfo(name="web-0", phase="Running", claim_names=["other"], node_name="node-a"),
    PodInfo(name="db-0", phase="Running", claim_names=["data-db-0"], node_name="node-b"),
]

DF_LINE = "/dev/sdb1        20G   5.0G   15G  25% /mnt/pvc"

MOCK_DIAGNOSTIC_LOG = """Starting PVC Performance Monitor (Read-Only mode)
PVC mounted successfully at /mnt/pvc in read-only mode
------- PVC Monitor Mon Jan  1 00:00:00 UTC 2024 -------
DISK_USAGE_BEGIN
/dev/sdb1        20G   4.0G   16G  20% /mnt/pvc
DISK_USAGE_END
SYSTEM_STATS_BEGIN
top - 00:00:00 up 1 day,  2:03,  0 users,  load average: 0.50, 0.40, 0.30
SYSTEM_STATS_END
------- PVC Monitor Mon Jan  1 00:00:01 UTC 2024 -------
DISK_USAGE_BEGIN
""" + DF_LINE + """
DISK_USAGE_END
SYSTEM_STATS_BEGIN
top - 00:00:01 up 1 day,  2:03,  0 users,  load average: 1.25, 0.90, 0.70
SYSTEM_STATS_END
IO_STATS_BEGIN
IO_STATS_END
"""

MOCK_WRAPPED_DF_LOG = """DISK_USAGE_BEGIN
/dev/mapper/very-long-volume-group-name-logical-volume
                 100G    60G    40G  60% /mnt/pvc
DISK_USAGE_END
"""

MOCK_UNPARSEABLE_LOG = """DISK_USAGE_BEGIN
df: /mnt/pvc: No such file or directory
DISK_USAGE_END
"""


def get_mock_summary_json(node: str) -> bytes:
    """Return the raw stats summary body for a node"""
    return json.dumps(MOCK_NODE_SUMMARIES[node]).encode()


class MockStatsSource(StatsSource):
    """StatsSource over MOCK_NODE_SUMMARIES; failing_nodes raise on fetch"""

    def __init__(self, summaries: Optional[Dict[str, Dict[str, Any]]] = None, failing_nodes=()):
        self.summaries = MOCK_NODE_SUMMARIES if summaries is None else summaries
        self.failing_nodes = set(failing_nodes)

    def list_nodes(self) -> List[str]:
        return list(self.summaries) + sorted(self.failing_nodes - set(self.summaries))

    def get_volume_stats(self, node: str) -> List[VolumeStat]:
        if node in self.failing_nodes:
            raise PVCUsageError("error fetching stats summary: connection refused")
        return volume_stats_from_summary(Summary.model_validate(self.summaries[node]))


class MockCluster:
    """
    In-memory stand-in for KubernetesClient's pod, claim and log operations

    Pods are PodInfo objects keyed by (namespace, name). Created pods start in
    the phase given by created_pod_phase.
    """

    def __init__(self, pods: Optional[Dict[tuple, PodInfo]] = None, claims: Optional[Dict[tuple, int]] = None):
        self.pods: Dict[tuple, PodInfo] = dict(pods or {})
        self.claims: Dict[tuple, int] = dict(claims or {})
        self.logs: Dict[tuple, str] = {}
        self.created_pod_phase = "Running"
        self.create_errors: List[Exception] = []
        self.created_manifests: List[Dict[str, Any]] = []
        self.deleted: List[tuple] = []
        self.delete_error: Optional[Exception] = None
        self.claim_error: Optional[Exception] = None

    def list_pods(self, namespace: str) -> List[PodInfo]:
        return [pod for (ns, _), pod in self.pods.items() if ns == namespace]

    def get_pod(self, namespace: str, name: str) -> Optional[PodInfo]:
        return self.pods.get((namespace, name))

    def get_claim(self, namespace: str, name: str) -> ClaimInfo:
        if self.claim_error is not None:
            raise self.claim_error
        if (namespace, name) not in self.claims:
            raise ConnectivityError(f"error getting PVC {namespace}/{name}: not found")
        return ClaimInfo(requested_bytes=self.claims[(namespace, name)], access_modes=["ReadWriteOnce"])

    def get_logs(self, namespace: str, pod_name: str, tail_lines: int = 100) -> str:
        if (namespace, pod_name) not in self.pods:
            raise PVCUsageError(f"error getting logs for pod {namespace}/{pod_name}: not found")
        return self.logs.get((namespace, pod_name), "")

    def create_pod(self, namespace: str, manifest: Dict[str, Any]) -> str:
        if self.create_errors:
            raise self.create_errors.pop(0)
        self.created_manifests.append(manifest)
        name = manifest['metadata']['name']
        self.pods[(namespace, name)] = PodInfo(
            name=name,
            phase=self.created_pod_phase,
            claim_names=[manifest['spec']['volumes'][0]['persistentVolumeClaim']['claimName']],
            node_name=manifest['spec'].get('nodeName'),
        )
        return name

    def delete_pod(self, namespace: str, name: str,
                   grace_period_seconds: Optional[int] = None,
                   propagation_policy: Optional[str] = None) -> bool:
        if self.delete_error is not None:
            raise self.delete_error
        self.deleted.append((namespace, name, grace_period_seconds, propagation_policy))
        return self.pods.pop((namespace, name), None) is not None


def capacity_error() -> ResourceCapacityError:
    reason = "0/3 nodes are available: not enough resource on node"
    return ResourceCapacityError(f"error creating performance pod: {reason}", reason=reason)


def quota_error() -> ProvisionError:
    reason = "pods \"x\" is forbidden: admission webhook denied the request"
    return ProvisionError(f"error creating performance pod: {reason}", reason=reason)

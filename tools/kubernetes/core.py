#!/usr/bin/env python3
"""
Kubernetes client wrapper for PVC usage and performance monitoring.

KubernetesClient implements the StatsSource contract (node list and per-node
volume stats) and the pod/claim operations used by the pod matcher, the
diagnostic pod provisioner and the performance monitor. API exceptions are
translated into the project's error types here so callers never handle
kubernetes.client.rest.ApiException directly.
"""

import json
import logging
import os
from dataclasses import dataclass, field
from typing import Dict, List, Any, Optional

import urllib3
from kubernetes import client, config
from kubernetes.client.rest import ApiException
from kubernetes.utils import parse_quantity
from pydantic import ValidationError

from tools.core.errors import (
    PVCUsageError,
    ConnectivityError,
    ProvisionError,
    ResourceCapacityError,
    TeardownError,
    is_resource_capacity_message
)
from usage_collector.models import Summary, StatsSource, VolumeStat, volume_stats_from_summary

logger = logging.getLogger(__name__)

POD_RUNNING = "Running"


@dataclass(frozen=True)
class PodInfo:
    """The parts of a pod needed for consumer matching and placement"""
    name: str
    phase: Optional[str] = None
    claim_names: List[str] = field(default_factory=list)
    node_name: Optional[str] = None

    @property
    def is_running(self) -> bool:
        return self.phase == POD_RUNNING


@dataclass(frozen=True)
class ClaimInfo:
    """Requested capacity and access modes of a claim"""
    requested_bytes: int
    access_modes: List[str] = field(default_factory=list)


def api_error_message(error: Exception) -> str:
    """
    Extract the human-readable message from an API exception

    Args:
        error: Exception raised by the kubernetes client

    Returns:
        str: The API server's message if present, else the exception text
    """
    body = getattr(error, 'body', None)
    if body:
        try:
            message = json.loads(body).get('message')
            if message:
                return message
        except (ValueError, AttributeError):
            pass
    reason = getattr(error, 'reason', None)
    return reason or str(error)


def _to_pod_info(pod: Any) -> PodInfo:
    volumes = (pod.spec.volumes if pod.spec else None) or []
    claim_names = [
        volume.persistent_volume_claim.claim_name
        for volume in volumes
        if volume.persistent_volume_claim is not None
    ]
    return PodInfo(
        name=pod.metadata.name,
        phase=pod.status.phase if pod.status else None,
        claim_names=claim_names,
        node_name=pod.spec.node_name if pod.spec else None,
    )


class KubernetesClient(StatsSource):
    """Thin wrapper around CoreV1Api"""

    def __init__(self, config_data: Optional[Dict[str, Any]] = None, core_v1: Optional[client.CoreV1Api] = None):
        """
        Initialize the client

        Args:
            config_data: Configuration data (uses the 'kubernetes' section)
            core_v1: Preconfigured API object; credentials are loaded when omitted

        Raises:
            ConnectivityError: If cluster credentials cannot be loaded
        """
        self.config = config_data or {}
        if core_v1 is None:
            self._load_credentials()
            core_v1 = client.CoreV1Api()
        self.core_v1 = core_v1

    def _load_credentials(self) -> None:
        """Load in-cluster configuration when running in a pod, else kubeconfig"""
        k8s_config = self.config.get('kubernetes', {})
        try:
            if 'KUBERNETES_SERVICE_HOST' in os.environ:
                config.load_incluster_config()
                logger.info("Using in-cluster Kubernetes configuration")
            else:
                config.load_kube_config(
                    config_file=k8s_config.get('kubeconfig'),
                    context=k8s_config.get('context')
                )
                logger.info("Using kubeconfig file for Kubernetes configuration")
        except Exception as e:
            raise ConnectivityError(f"Failed to initialize Kubernetes client: {e}") from e

    # StatsSource

    def list_nodes(self) -> List[str]:
        try:
            node_list = self.core_v1.list_node()
        except (ApiException, urllib3.exceptions.HTTPError) as e:
            raise ConnectivityError(f"error getting nodes: {api_error_message(e)}") from e
        return [node.metadata.name for node in node_list.items]

    def get_volume_stats(self, node: str) -> List[VolumeStat]:
        try:
            response = self.core_v1.connect_get_node_proxy_with_path(
                node, 'stats/summary', _preload_content=False
            )
            summary = Summary.model_validate_json(response.data)
        except (ApiException, urllib3.exceptions.HTTPError) as e:
            raise PVCUsageError(f"error fetching stats summary: {api_error_message(e)}") from e
        except ValidationError as e:
            raise PVCUsageError(f"malformed stats summary: {e}") from e
        return volume_stats_from_summary(summary)

    # Pods and claims

    def list_pods(self, namespace: str) -> List[PodInfo]:
        """
        List pods of a namespace

        Raises:
            ConnectivityError: If the pods cannot be listed
        """
        try:
            pods = self.core_v1.list_namespaced_pod(namespace=namespace)
        except (ApiException, urllib3.exceptions.HTTPError) as e:
            raise ConnectivityError(f"error listing pods: {api_error_message(e)}") from e
        return [_to_pod_info(pod) for pod in pods.items]

    def get_pod(self, namespace: str, name: str) -> Optional[PodInfo]:
        """
        Read a pod

        Returns:
            Optional[PodInfo]: The pod, or None if it does not exist
        """
        try:
            pod = self.core_v1.read_namespaced_pod(name=name, namespace=namespace)
        except ApiException as e:
            if e.status == 404:
                return None
            raise ConnectivityError(f"error getting pod {namespace}/{name}: {api_error_message(e)}") from e
        except urllib3.exceptions.HTTPError as e:
            raise ConnectivityError(f"error getting pod {namespace}/{name}: {e}") from e
        return _to_pod_info(pod)

    def get_claim(self, namespace: str, name: str) -> ClaimInfo:
        """
        Read a claim's requested capacity

        Falls back to the bound capacity in the claim status when no storage
        request is set.
        """
        try:
            pvc = self.core_v1.read_namespaced_persistent_volume_claim(name=name, namespace=namespace)
        except (ApiException, urllib3.exceptions.HTTPError) as e:
            raise ConnectivityError(f"error getting PVC {namespace}/{name}: {api_error_message(e)}") from e

        requests = {}
        if pvc.spec and pvc.spec.resources and pvc.spec.resources.requests:
            requests = pvc.spec.resources.requests
        quantity = requests.get('storage')
        if quantity is None and pvc.status and pvc.status.capacity:
            quantity = pvc.status.capacity.get('storage')

        requested_bytes = int(parse_quantity(quantity)) if quantity is not None else 0
        access_modes = list(pvc.spec.access_modes or []) if pvc.spec else []
        return ClaimInfo(requested_bytes=requested_bytes, access_modes=access_modes)

    def get_logs(self, namespace: str, pod_name: str, tail_lines: int = 100) -> str:
        """Return the last tail_lines lines of a pod's log"""
        try:
            return self.core_v1.read_namespaced_pod_log(
                name=pod_name, namespace=namespace, tail_lines=tail_lines
            ) or ""
        except (ApiException, urllib3.exceptions.HTTPError) as e:
            raise PVCUsageError(f"error getting logs for pod {namespace}/{pod_name}: {api_error_message(e)}") from e

    def create_pod(self, namespace: str, manifest: Dict[str, Any]) -> str:
        """
        Create a pod from a manifest

        Returns:
            str: Name of the created pod

        Raises:
            ResourceCapacityError: If the rejection reason is a resource shortage
            ProvisionError: For any other rejection
        """
        try:
            created = self.core_v1.create_namespaced_pod(namespace=namespace, body=manifest)
        except (ApiException, urllib3.exceptions.HTTPError) as e:
            reason = api_error_message(e)
            message = f"error creating performance pod: {reason}"
            if is_resource_capacity_message(reason):
                raise ResourceCapacityError(message, reason=reason) from e
            raise ProvisionError(message, reason=reason) from e
        return created.metadata.name

    def delete_pod(self, namespace: str, name: str,
                   grace_period_seconds: Optional[int] = None,
                   propagation_policy: Optional[str] = None) -> bool:
        """
        Delete a pod

        Returns:
            bool: True if a delete was issued, False if the pod did not exist

        Raises:
            TeardownError: If the API server refused the deletion
        """
        body = client.V1DeleteOptions(
            grace_period_seconds=grace_period_seconds,
            propagation_policy=propagation_policy
        )
        try:
            self.core_v1.delete_namespaced_pod(name=name, namespace=namespace, body=body)
        except ApiException as e:
            if e.status == 404:
                return False
            raise TeardownError(f"error deleting pod {namespace}/{name}: {api_error_message(e)}") from e
        except urllib3.exceptions.HTTPError as e:
            raise TeardownError(f"error deleting pod {namespace}/{name}: {e}") from e
        return True

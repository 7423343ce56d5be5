#!/usr/bin/env python3
"""
PVC performance monitoring

A PerformanceMonitor provisions a read-only diagnostic pod next to the
claim's consumer, then collects a metrics snapshot every interval on a
background thread until stopped. When the pod cannot be created because the
node is short on resources, or never starts, the monitor keeps running in
fallback mode with figures derived from the claim alone.

State: PROVISIONING -> COLLECTING -> STOPPED, with use_fallback recording
whether a diagnostic pod is in use.
"""

import logging
import threading
import time
from datetime import datetime
from enum import Enum
from typing import Dict, Any, Callable, Optional

from tools.core.config import get_performance_config
from tools.core.errors import PVCUsageError, ResourceCapacityError, PodNotReadyError
from tools.testing.pod_creation import DiagnosticPodProvisioner
from tools.testing.resource_cleanup import delete_diagnostic_pod
from monitoring.extractor import extract_disk_usage, extract_system_load
from monitoring.metrics import (
    MetricsSnapshot,
    FallbackMetricsProvider,
    SimulatedMetricsProvider,
    DegradedMetricsProvider,
    SOURCE_DIAGNOSTIC_POD
)

logger = logging.getLogger(__name__)

# Upper bound for waiting on the collection thread during stop()
STOP_JOIN_TIMEOUT_SECONDS = 30


class MonitorState(Enum):
    PROVISIONING = "Provisioning"
    READY = "Ready"
    COLLECTING = "Collecting"
    STOPPED = "Stopped"


class PerformanceMonitor:
    """Watches the performance of one PVC"""

    def __init__(self, kube_client, namespace: str, pod_name: str, pvc_name: str,
                 config_data: Optional[Dict[str, Any]] = None,
                 provisioner: Optional[DiagnosticPodProvisioner] = None,
                 sleep: Callable[[float], None] = time.sleep,
                 clock: Callable[[], datetime] = datetime.now):
        """
        Initialize the monitor; nothing is created until start()

        Args:
            kube_client: Cluster client (get_claim, get_logs, pod operations)
            namespace: Namespace of the claim
            pod_name: Pod consuming the claim
            pvc_name: Claim to monitor
            config_data: Configuration data (uses the 'performance' section)
            provisioner: Diagnostic pod provisioner (built from kube_client if omitted)
            sleep: Sleep function used for provisioning backoff
            clock: Source of snapshot timestamps
        """
        self.kube_client = kube_client
        self.namespace = namespace
        self.pod_name = pod_name
        self.pvc_name = pvc_name
        self.perf_config = get_performance_config(config_data)
        self.provisioner = provisioner or DiagnosticPodProvisioner(kube_client, config_data, sleep=sleep)
        self.sleep = sleep
        self.clock = clock

        self.state = MonitorState.PROVISIONING
        self.use_fallback = False
        self.perf_pod: Optional[str] = None
        self.fallback_provider: FallbackMetricsProvider = SimulatedMetricsProvider()

        self._capacity_bytes = 0
        self._extraction_failing = False
        self._snapshot = MetricsSnapshot()
        self._snapshot_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    # Lifecycle

    def start(self) -> None:
        """
        Provision the diagnostic pod and start collecting

        Raises:
            PVCUsageError: If provisioning fails for a reason other than node
                resource capacity
        """
        self.perf_pod = self._provision_with_retry()

        if self.perf_pod is None:
            self._enter_fallback("Using fallback monitoring mode (limited metrics available)")
        else:
            logger.info(f"Waiting for performance pod {self.perf_pod} to be ready...")
            try:
                self.provisioner.wait_until_ready(self.namespace, self.perf_pod)
                self.state = MonitorState.READY
            except PodNotReadyError as e:
                self._discard_unready_pod()
                self._enter_fallback(f"Performance pod not ready: {e}. Using fallback monitoring.")

        self._thread = threading.Thread(
            target=self._collect_loop,
            name=f"pvc-perf-{self.namespace}-{self.pvc_name}",
            daemon=True
        )
        self.state = MonitorState.COLLECTING
        self._thread.start()

    def _provision_with_retry(self) -> Optional[str]:
        """Return the diagnostic pod name, or None when capacity retries ran out"""
        attempts = self.perf_config['provision_attempts']
        backoff = self.perf_config['provision_backoff_seconds']

        for attempt in range(1, attempts + 1):
            try:
                return self.provisioner.provision(self.namespace, self.pod_name, self.pvc_name)
            except ResourceCapacityError as e:
                if attempt < attempts:
                    logger.warning(f"Resource constraints detected (attempt {attempt}/{attempts}). "
                                   f"Waiting {backoff} seconds before retry...")
                    self.sleep(backoff)
                else:
                    logger.warning(f"Failed to create performance pod after {attempts} attempts: {e.reason}")
        return None

    def _enter_fallback(self, message: str) -> None:
        logger.warning(message)
        self.use_fallback = True
        self.perf_pod = None
        self.fallback_provider = DegradedMetricsProvider()

    def _discard_unready_pod(self) -> None:
        """Best-effort removal of a pod that never started, so it does not outlive the monitor"""
        try:
            delete_diagnostic_pod(self.kube_client, self.namespace, self.perf_pod)
        except PVCUsageError as e:
            logger.warning(f"Could not remove unready performance pod {self.perf_pod}: {e}")

    def stop(self) -> None:
        """
        Stop collecting and delete the diagnostic pod

        The collection thread finishes its current cycle before exiting. In
        fallback mode there is no pod and nothing is deleted.

        Raises:
            TeardownError: If the diagnostic pod could not be deleted
        """
        if self.state == MonitorState.STOPPED:
            logger.warning(f"Monitor for {self.namespace}/{self.pvc_name} already stopped")
            return
        self.state = MonitorState.STOPPED

        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=STOP_JOIN_TIMEOUT_SECONDS)
            if self._thread.is_alive():
                logger.warning("Collection thread did not exit in time")

        if self.use_fallback or self.perf_pod is None:
            return
        delete_diagnostic_pod(self.kube_client, self.namespace, self.perf_pod)

    # Collection

    def _collect_loop(self) -> None:
        interval = self.perf_config['collect_interval_seconds']
        while not self._stop_event.is_set():
            try:
                snapshot = self.collect_once()
            except Exception as e:
                logger.error(f"Error collecting metrics: {e}")
            else:
                with self._snapshot_lock:
                    self._snapshot = snapshot
            self._stop_event.wait(interval)

    def _refresh_capacity(self) -> int:
        try:
            self._capacity_bytes = self.kube_client.get_claim(self.namespace, self.pvc_name).requested_bytes
        except PVCUsageError as e:
            logger.warning(f"Error getting PVC {self.namespace}/{self.pvc_name}: {e}")
        return self._capacity_bytes

    def _read_pod_logs(self) -> str:
        try:
            return self.kube_client.get_logs(
                self.namespace, self.perf_pod, self.perf_config['log_tail_lines']
            )
        except PVCUsageError as e:
            logger.debug(f"Could not read performance pod logs: {e}")
            return ""

    def collect_once(self) -> MetricsSnapshot:
        """
        Build one metrics snapshot

        Never raises for unavailable data: a missing claim, missing logs or
        unparseable logs only reduce the snapshot to placeholder figures.

        Returns:
            MetricsSnapshot: Snapshot for the current time
        """
        now = self.clock()
        capacity = self._refresh_capacity()
        figures = self.fallback_provider.figures(now)
        source = self.fallback_provider.source
        used_bytes = None
        used_percent = None
        system_load = figures.system_load

        if not self.use_fallback:
            logs = self._read_pod_logs()
            usage = extract_disk_usage(logs)
            if usage.ok:
                capacity = usage.total_bytes
                used_bytes = usage.used_bytes
                used_percent = usage.used_percent
                source = SOURCE_DIAGNOSTIC_POD
                if self._extraction_failing:
                    logger.info("Real metrics available again from performance pod logs")
                self._extraction_failing = False
            elif not self._extraction_failing:
                logger.warning("Could not get real metrics from pod logs, using simulated values")
                self._extraction_failing = True

            load, ok = extract_system_load(logs)
            if ok:
                system_load = load

        return MetricsSnapshot(
            timestamp=now,
            iops=figures.iops,
            throughput=figures.throughput,
            latency_ms=figures.latency_ms,
            disk_util_pct=figures.disk_util_pct,
            capacity_bytes=capacity,
            used_bytes=used_bytes,
            used_percent=used_percent,
            read_only=True,
            system_load=system_load,
            cpu_wait_pct=figures.cpu_wait_pct,
            source=source,
        )

    def get_latest_metrics(self) -> MetricsSnapshot:
        """Return the most recently completed snapshot"""
        with self._snapshot_lock:
            return self._snapshot


def start_monitoring(kube_client, namespace: str, pod_name: str, pvc_name: str,
                     config_data: Optional[Dict[str, Any]] = None, **kwargs) -> PerformanceMonitor:
    """
    Create a performance monitor for a PVC and start it

    Args:
        kube_client: Cluster client
        namespace: Namespace of the claim
        pod_name: Pod consuming the claim
        pvc_name: Claim to monitor
        config_data: Configuration data
        **kwargs: Passed to PerformanceMonitor (provisioner, sleep, clock)

    Returns:
        PerformanceMonitor: Running monitor; the caller must stop() it
    """
    monitor = PerformanceMonitor(kube_client, namespace, pod_name, pvc_name, config_data, **kwargs)
    monitor.start()
    return monitor

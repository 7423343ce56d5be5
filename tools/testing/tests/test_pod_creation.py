import logging
import unittest
from unittest.mock import Mock

from tools.core.config import get_performance_config
from tools.core.errors import ConnectivityError, PodNotFoundError, PodNotReadyError
from tools.kubernetes.core import PodInfo
from tools.testing.pod_creation import (
    DiagnosticPodProvisioner,
    build_diagnostic_pod_manifest,
    diagnostic_pod_name,
    truncate_name
)
from tests.mock_kubernetes_data import MockCluster

logging.disable(logging.CRITICAL)


class TestNaming(unittest.TestCase):
    def test_short_claim(self):
        self.assertEqual(diagnostic_pod_name("data-0"), "pvc-perf-monitor-data-0")

    def test_claim_truncated_to_fifty(self):
        claim = "c" * 80
        name = diagnostic_pod_name(claim)
        self.assertEqual(name, "pvc-perf-monitor-" + "c" * 46)
        self.assertEqual(len(name), 63)

    def test_trailing_dash_stripped(self):
        # 46th claim character lands on the 63 character boundary
        claim = "a" * 45 + "-" + "b" * 10
        name = diagnostic_pod_name(claim)
        self.assertFalse(name.endswith("-"))
        self.assertEqual(len(name), 62)

    def test_truncate_label_value(self):
        self.assertEqual(truncate_name("x" * 70), "x" * 63)
        self.assertEqual(truncate_name("abc-"), "abc")


class TestManifest(unittest.TestCase):
    def setUp(self):
        self.perf_config = get_performance_config({})
        self.manifest = build_diagnostic_pod_manifest(
            "kafka", "pvc-perf-monitor-data", "node-b", "kafka-kafka-0", "data", self.perf_config
        )

    def test_metadata(self):
        metadata = self.manifest['metadata']
        self.assertEqual(metadata['name'], "pvc-perf-monitor-data")
        self.assertEqual(metadata['namespace'], "kafka")
        self.assertEqual(metadata['labels'], {
            'app': 'pvc-perf-monitor',
            'target-pod': 'kafka-kafka-0',
            'pvc-name': 'data',
        })

    def test_read_only_mount(self):
        spec = self.manifest['spec']
        container = spec['containers'][0]
        self.assertEqual(container['image'], 'nicolaka/netshoot')
        self.assertEqual(container['volumeMounts'][0], {
            'name': 'pvc-volume', 'mountPath': '/mnt/pvc', 'readOnly': True
        })
        self.assertEqual(spec['volumes'][0]['persistentVolumeClaim'], {'claimName': 'data', 'readOnly': True})

    def test_security_and_resources(self):
        container = self.manifest['spec']['containers'][0]
        self.assertFalse(container['securityContext']['privileged'])
        self.assertFalse(container['securityContext']['allowPrivilegeEscalation'])
        self.assertTrue(container['securityContext']['readOnlyRootFilesystem'])
        self.assertEqual(container['resources'], {
            'requests': {'cpu': '50m', 'memory': '64Mi'},
            'limits': {'cpu': '100m', 'memory': '128Mi'},
        })

    def test_placement_and_restart_policy(self):
        self.assertEqual(self.manifest['spec']['nodeName'], 'node-b')
        self.assertEqual(self.manifest['spec']['restartPolicy'], 'Never')

    def test_script_prints_marker_blocks(self):
        script = self.manifest['spec']['containers'][0]['command'][2]
        for marker in ("DISK_USAGE_BEGIN", "DISK_USAGE_END", "SYSTEM_STATS_BEGIN", "IO_STATS_BEGIN",
                       "THROUGHPUT_BEGIN"):
            self.assertIn(marker, script)
        self.assertIn("df -h /mnt/pvc", script)

    def test_no_node_name(self):
        manifest = build_diagnostic_pod_manifest("ns", "p", None, "t", "c", self.perf_config)
        self.assertNotIn('nodeName', manifest['spec'])

    def test_long_label_values_truncated(self):
        manifest = build_diagnostic_pod_manifest("ns", "p", None, "t" * 80, "c" * 80, self.perf_config)
        labels = manifest['metadata']['labels']
        self.assertEqual(len(labels['target-pod']), 63)
        self.assertEqual(len(labels['pvc-name']), 63)


class TestDiagnosticPodProvisioner(unittest.TestCase):
    def setUp(self):
        self.cluster = MockCluster(pods={("ns", "app-0"): PodInfo(name="app-0", phase="Running", node_name="n1")})
        self.sleep = Mock()
        config_data = {"performance": {"readiness_poll_attempts": 4, "deletion_poll_attempts": 2}}
        self.provisioner = DiagnosticPodProvisioner(self.cluster, config_data, sleep=self.sleep)

    def test_provision(self):
        name = self.provisioner.provision("ns", "app-0", "data")
        self.assertEqual(name, "pvc-perf-monitor-data")
        self.assertEqual(self.cluster.created_manifests[0]['spec']['nodeName'], "n1")

    def test_missing_consumer(self):
        with self.assertRaises(PodNotFoundError):
            self.provisioner.provision("ns", "gone", "data")
        self.assertEqual(self.cluster.created_manifests, [])

    def test_existing_pod_is_replaced(self):
        self.cluster.pods[("ns", "pvc-perf-monitor-data")] = PodInfo(name="pvc-perf-monitor-data", phase="Running")
        self.provisioner.provision("ns", "app-0", "data")

        self.assertEqual(self.cluster.deleted[0][:2], ("ns", "pvc-perf-monitor-data"))
        self.assertEqual(len(self.cluster.created_manifests), 1)

    def test_wait_until_ready_polls(self):
        kube_client = Mock()
        kube_client.get_pod.side_effect = [
            PodInfo(name="p", phase="Pending"),
            PodInfo(name="p", phase="Pending"),
            PodInfo(name="p", phase="Running"),
        ]
        provisioner = DiagnosticPodProvisioner(kube_client, {}, sleep=self.sleep)
        provisioner.wait_until_ready("ns", "p")
        self.assertEqual(self.sleep.call_count, 2)

    def test_wait_until_ready_bound(self):
        self.cluster.pods[("ns", "p")] = PodInfo(name="p", phase="Pending")
        with self.assertRaises(PodNotReadyError):
            self.provisioner.wait_until_ready("ns", "p")
        self.assertEqual(self.sleep.call_count, 4)

    def test_wait_until_ready_terminal_phase(self):
        self.cluster.pods[("ns", "p")] = PodInfo(name="p", phase="Succeeded")
        with self.assertRaises(PodNotReadyError):
            self.provisioner.wait_until_ready("ns", "p")
        self.sleep.assert_not_called()

    def test_wait_until_ready_api_error(self):
        kube_client = Mock()
        kube_client.get_pod.side_effect = ConnectivityError("error getting pod ns/p: 503 Service Unavailable")
        provisioner = DiagnosticPodProvisioner(kube_client, {}, sleep=self.sleep)
        with self.assertRaises(PodNotReadyError) as ctx:
            provisioner.wait_until_ready("ns", "p")
        self.assertIn("503", str(ctx.exception))
        self.assertIsInstance(ctx.exception.__cause__, ConnectivityError)

    def test_wait_until_ready_pod_gone(self):
        with self.assertRaises(PodNotReadyError):
            self.provisioner.wait_until_ready("ns", "missing")


if __name__ == '__main__':
    unittest.main()

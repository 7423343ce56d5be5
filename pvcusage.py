#!/usr/bin/env python3
"""
PVC usage and performance monitor

Shows claim-backed volume usage across all nodes, ranked by percentage used,
optionally filtered and limited, once or in watch mode. With --perf it
monitors one claim through a read-only diagnostic pod instead.

Usage:
    pvcusage.py [--filter '>80'] [--top 10] [--watch [-s 5]]
    pvcusage.py --perf NAMESPACE/PVC [--pod POD]
    pvcusage.py --perf PVC --namespace NAMESPACE
"""

import argparse
import logging
import signal
import sys
import time
from typing import Dict, Any, Optional, Tuple

from tools.core.config import load_config, setup_logging, DEFAULT_CONFIG_PATH
from tools.core.errors import PVCUsageError, FilterParseError
from tools.kubernetes.core import KubernetesClient
from tools.kubernetes.pod_matcher import PodMatcher
from usage_collector.aggregator import UsageAggregator
from usage_collector.filters import parse_filter
from monitoring.monitor import PerformanceMonitor
from monitoring.ui import UsageUI

logger = logging.getLogger("pvcusage")


def parse_arguments(argv=None):
    """Parse command line arguments"""
    parser = argparse.ArgumentParser(description="Show PVC usage across the cluster or monitor one PVC")
    parser.add_argument("--config", "-c", default=DEFAULT_CONFIG_PATH,
                        help=f"Path to configuration file (default: {DEFAULT_CONFIG_PATH})")
    parser.add_argument("--filter", "-f",
                        help="Usage filter, e.g. '>80', '<=10', '=50' (bare number means '>')")
    parser.add_argument("--top", "-t", type=int,
                        help="Show only the N most used PVCs (0 for all)")
    parser.add_argument("--watch", "-w", action="store_true",
                        help="Refresh the usage table until interrupted")
    parser.add_argument("--interval", "-s", type=int,
                        help="Refresh interval in seconds for watch and perf modes")
    parser.add_argument("--perf", "-p", metavar="[NAMESPACE/]PVC",
                        help="Monitor performance of one PVC")
    parser.add_argument("--namespace", "-n",
                        help="Namespace of the PVC for --perf")
    parser.add_argument("--pod",
                        help="Pod using the PVC for --perf (inferred when omitted)")
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Enable verbose logging")
    return parser.parse_args(argv)


def resolve_perf_target(perf: str, namespace: Optional[str]) -> Tuple[str, str]:
    """
    Split the --perf argument into namespace and claim name

    Raises:
        ValueError: If no namespace was given either way
    """
    if "/" in perf:
        ns, pvc = perf.split("/", 1)
        if not ns or not pvc:
            raise ValueError(f"invalid PVC reference '{perf}', expected NAMESPACE/PVC")
        return ns, pvc
    if not namespace:
        raise ValueError("namespace is required: use --perf NAMESPACE/PVC or --namespace")
    return namespace, perf


def apply_overrides(config_data: Dict[str, Any], args) -> Dict[str, Any]:
    """Apply command line flags over the loaded configuration"""
    usage = config_data.setdefault('usage', {})
    if args.filter is not None:
        usage['filter'] = args.filter
    if args.top is not None:
        usage['top'] = args.top
    if args.interval is not None:
        usage['watch_interval_seconds'] = args.interval
    if args.verbose:
        config_data.setdefault('logging', {})['level'] = 'DEBUG'
    return config_data


def show_usage(aggregator: UsageAggregator, ui: UsageUI) -> None:
    records = aggregator.collect()
    ui.display_usage(records, aggregator.errors)


def run_usage(kube_client, config_data: Dict[str, Any], watch: bool, ui: UsageUI,
              sleep=time.sleep) -> None:
    """Render the usage table once, or repeatedly in watch mode"""
    aggregator = UsageAggregator(kube_client, config_data)
    if not watch:
        show_usage(aggregator, ui)
        return

    interval = config_data['usage']['watch_interval_seconds']
    while True:
        ui.clear()
        ui.console.print(f"[dim]Every {interval}s: PVC usage ({time.strftime('%Y-%m-%d %H:%M:%S')})[/dim]")
        try:
            show_usage(aggregator, ui)
        except PVCUsageError as e:
            logger.error(f"Error collecting PVC usage: {e}")
        sleep(interval)


def run_performance(kube_client, config_data: Dict[str, Any], namespace: str, pvc_name: str,
                    pod_name: Optional[str], ui: UsageUI, sleep=time.sleep) -> None:
    """Monitor one PVC until interrupted, then remove the diagnostic pod"""
    if not pod_name:
        pod_name = PodMatcher(kube_client, config_data).find_consumer(namespace, pvc_name)
    logger.info(f"Monitoring PVC {namespace}/{pvc_name} used by pod {pod_name}")

    monitor = PerformanceMonitor(kube_client, namespace, pod_name, pvc_name, config_data)
    interval = config_data['usage'].get('watch_interval_seconds', 5)
    try:
        # stop() also runs when start() is interrupted or fails part way
        monitor.start()
        if monitor.use_fallback:
            ui.display_banner("FALLBACK MODE",
                              "No diagnostic pod could be started; figures are estimates", style="yellow")
        while True:
            sleep(interval)
            ui.clear()
            ui.display_metrics(namespace, pvc_name, monitor.get_latest_metrics())
    finally:
        logger.info("Stopping performance monitor")
        monitor.stop()


def _raise_keyboard_interrupt(signum, frame):
    raise KeyboardInterrupt


def main(argv=None) -> int:
    """Main function"""
    args = parse_arguments(argv)

    try:
        config_data = apply_overrides(load_config(args.config), args)
    except PVCUsageError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    setup_logging(config_data)

    signal.signal(signal.SIGTERM, _raise_keyboard_interrupt)
    ui = UsageUI()

    try:
        # Reject a bad filter before touching the cluster
        parse_filter(config_data['usage'].get('filter', '') or '')

        kube_client = KubernetesClient(config_data)
        if args.perf:
            namespace, pvc_name = resolve_perf_target(args.perf, args.namespace)
            run_performance(kube_client, config_data, namespace, pvc_name, args.pod, ui)
        else:
            run_usage(kube_client, config_data, args.watch, ui)
    except KeyboardInterrupt:
        logger.info("Stopped by user")
        return 0
    except (FilterParseError, ValueError) as e:
        logger.error(f"Invalid argument: {e}")
        return 2
    except PVCUsageError as e:
        logger.error(f"{type(e).__name__}: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())

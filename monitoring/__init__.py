"""
Monitoring module for PVC performance

Provides the performance monitor with its diagnostic pod lifecycle, log metric
extraction, placeholder metric providers and the rich display.
"""

from .metrics import MetricsSnapshot
from .monitor import PerformanceMonitor, MonitorState, start_monitoring
from .extractor import parse_human_size, extract_disk_usage, extract_system_load

__all__ = [
    'MetricsSnapshot',
    'PerformanceMonitor',
    'MonitorState',
    'start_monitoring',
    'parse_human_size',
    'extract_disk_usage',
    'extract_system_load',
]

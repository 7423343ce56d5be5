#!/usr/bin/env python3
"""
Diagnostic pod tools for PVC performance monitoring.

This module provides creation of read-only diagnostic pods next to a claim's
consumer and their cleanup when monitoring stops.
"""

from .pod_creation import (
    DiagnosticPodProvisioner,
    build_diagnostic_pod_manifest,
    diagnostic_pod_name
)

from .resource_cleanup import (
    delete_diagnostic_pod,
    remove_existing_pod,
    wait_for_pod_deletion
)

__all__ = [
    'DiagnosticPodProvisioner',
    'build_diagnostic_pod_manifest',
    'diagnostic_pod_name',
    'delete_diagnostic_pod',
    'remove_existing_pod',
    'wait_for_pod_deletion'
]

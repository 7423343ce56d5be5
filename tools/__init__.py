#!/usr/bin/env python3
"""
Tools package for PVC usage and performance monitoring.

This package is organized by category:
- core: Configuration, logging setup and error types
- kubernetes: Kubernetes API access and consumer pod matching
- testing: Diagnostic pod creation and cleanup
"""

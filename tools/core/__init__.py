#!/usr/bin/env python3
"""
Core utilities shared by the PVC tools.

This module contains:
- config: Configuration loading and logging setup
- errors: Error hierarchy raised by the tools
"""

from .config import (
    load_config,
    setup_logging,
    get_performance_config,
    DEFAULT_CONFIG
)

from .errors import (
    PVCUsageError,
    ConfigError,
    ConnectivityError,
    FilterParseError,
    PodNotFoundError,
    ProvisionError,
    ResourceCapacityError,
    PodNotReadyError,
    TeardownError
)

__all__ = [
    # Configuration utilities
    'load_config',
    'setup_logging',
    'get_performance_config',
    'DEFAULT_CONFIG',

    # Errors
    'PVCUsageError',
    'ConfigError',
    'ConnectivityError',
    'FilterParseError',
    'PodNotFoundError',
    'ProvisionError',
    'ResourceCapacityError',
    'PodNotReadyError',
    'TeardownError'
]

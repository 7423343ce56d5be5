#!/usr/bin/env python3
"""
Configuration loading and logging setup.

The configuration is a plain dictionary loaded from config.yaml and merged
over DEFAULT_CONFIG. It is passed explicitly to every component; nothing
here keeps module-level state besides the shared rich console.
"""

import copy
import logging
import os
from typing import Dict, Any, Optional

import yaml
from rich.console import Console
from rich.logging import RichHandler

from tools.core.errors import ConfigError

# Shared console for log output and rendered tables
console = Console()

DEFAULT_CONFIG_PATH = "config.yaml"

DEFAULT_CONFIG: Dict[str, Any] = {
    'logging': {
        'file': None,
        'stdout': True,
        'level': 'INFO',
    },
    'kubernetes': {
        'kubeconfig': None,
        'context': None,
    },
    'usage': {
        'filter': '',
        'top': 0,
        'watch_interval_seconds': 5,
    },
    'performance': {
        'image': 'nicolaka/netshoot',
        'mount_path': '/mnt/pvc',
        'name_prefix': 'pvc-perf-monitor',
        'collect_interval_seconds': 1,
        'provision_attempts': 3,
        'provision_backoff_seconds': 5,
        'readiness_poll_attempts': 60,
        'readiness_poll_interval_seconds': 1,
        'deletion_poll_attempts': 30,
        'deletion_poll_interval_seconds': 1,
        'log_tail_lines': 100,
        'workload_keywords': ['kafka'],
        'resources': {
            'requests': {'cpu': '50m', 'memory': '64Mi'},
            'limits': {'cpu': '100m', 'memory': '128Mi'},
        },
    },
}

# Third-party loggers that are too chatty at INFO
NOISY_LOGGERS = ['kubernetes', 'urllib3']


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Return a copy of base with override merged in, recursing into dicts"""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load configuration from a YAML file merged over the defaults

    Args:
        path: Path to the configuration file (default: config.yaml)

    Returns:
        Dict[str, Any]: Configuration data

    Raises:
        ConfigError: If the file exists but cannot be parsed
    """
    path = path or DEFAULT_CONFIG_PATH
    if not os.path.exists(path):
        logging.warning(f"Configuration file {path} not found, using defaults")
        return copy.deepcopy(DEFAULT_CONFIG)

    try:
        with open(path, 'r') as f:
            loaded = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Failed to load configuration from {path}: {e}") from e

    if not isinstance(loaded, dict):
        raise ConfigError(f"Configuration in {path} must be a mapping, got {type(loaded).__name__}")

    return _deep_merge(DEFAULT_CONFIG, loaded)


def setup_logging(config_data: Dict[str, Any]) -> None:
    """
    Configure logging based on configuration with rich formatting

    Args:
        config_data: Configuration data containing a 'logging' section
    """
    log_config = config_data.get('logging', {})
    log_file = log_config.get('file')
    log_to_stdout = log_config.get('stdout', True)
    level = getattr(logging, str(log_config.get('level', 'INFO')).upper(), logging.INFO)

    handlers = []
    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        ))
        handlers.append(file_handler)

    if log_to_stdout:
        handlers.append(RichHandler(
            rich_tracebacks=True,
            console=console,
            show_time=True,
            show_level=True,
            show_path=False,
            enable_link_path=False
        ))

    if not handlers:
        handlers.append(logging.NullHandler())

    logging.basicConfig(
        level=level,
        format='%(message)s',
        datefmt='[%X]',
        handlers=handlers,
        force=True
    )

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_performance_config(config_data: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Return the performance section with defaults filled in"""
    return _deep_merge(DEFAULT_CONFIG['performance'], (config_data or {}).get('performance', {}))

#!/usr/bin/env python3
"""
Error types for PVC usage and performance monitoring.

Setup failures (configuration, connectivity, non-capacity pod creation errors)
propagate to the caller. Partial failures are logged by the components that
hit them and never reach this hierarchy.
"""

from typing import Optional


class PVCUsageError(Exception):
    """Base class for all errors raised by this project"""


class ConfigError(PVCUsageError):
    """Configuration file could not be read or parsed"""


class ConnectivityError(PVCUsageError):
    """Cluster credentials could not be loaded or the control plane is unreachable"""


class FilterParseError(PVCUsageError, ValueError):
    """Malformed usage filter expression"""


class PodNotFoundError(PVCUsageError):
    """No pod could be found for the request"""


class ProvisionError(PVCUsageError):
    """The diagnostic pod could not be created"""

    def __init__(self, message: str, reason: Optional[str] = None):
        super().__init__(message)
        self.reason = reason or message


class ResourceCapacityError(ProvisionError):
    """The diagnostic pod was rejected because the node lacks resources"""


class PodNotReadyError(PVCUsageError):
    """The diagnostic pod did not reach the Running phase in time"""


class TeardownError(PVCUsageError):
    """The diagnostic pod could not be deleted"""


# Substrings of API rejection messages that point at node capacity problems
RESOURCE_CAPACITY_MARKERS = (
    "enough resource",
    "insufficient cpu",
    "insufficient memory",
    "exceeded quota",
)


def is_resource_capacity_message(message: str) -> bool:
    """
    Check whether an API rejection message describes a resource shortage

    Args:
        message: Error message or reason returned by the API server

    Returns:
        bool: True if the message matches a known capacity marker
    """
    lowered = (message or "").lower()
    return any(marker in lowered for marker in RESOURCE_CAPACITY_MARKERS)

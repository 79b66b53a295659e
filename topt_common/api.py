"""Public API surface for topt_common."""

from topt_common.errors import (
    AlreadyActive,
    ElevationMissing,
    NoActiveSession,
    PrivilegeUnavailable,
    ResourceUnavailable,
    SnapshotStoreError,
    TaskOptimizerError,
    UsageError,
    error_to_payload,
)
from topt_common.logging import configure_logging

__all__ = [
    "AlreadyActive",
    "ElevationMissing",
    "NoActiveSession",
    "PrivilegeUnavailable",
    "ResourceUnavailable",
    "SnapshotStoreError",
    "TaskOptimizerError",
    "UsageError",
    "configure_logging",
    "error_to_payload",
]

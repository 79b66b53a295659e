"""Public API surface for topt_engine."""

from topt_engine.applier import PRIVILEGE_REASON, ProfileApplier
from topt_engine.inventory import HostPaths, TunableInventory, resolve_priority_target
from topt_engine.lifecycle import SessionLifecycle, SessionState
from topt_engine.models import (
    OperationReport,
    OutcomeStatus,
    ResourceKey,
    ResourceKind,
    ResourceOutcome,
    Session,
    SnapshotRecord,
    TunableResource,
)
from topt_engine.profile import OptimizationProfile
from topt_engine.resources import DeviceClass, Resource, SchedulerChoice
from topt_engine.restorer import Restorer
from topt_engine.store import SnapshotStore
from topt_engine.writers import DirectWriter, HostWriter, SudoWriter

__all__ = [
    "DeviceClass",
    "DirectWriter",
    "HostPaths",
    "HostWriter",
    "OperationReport",
    "OptimizationProfile",
    "OutcomeStatus",
    "PRIVILEGE_REASON",
    "ProfileApplier",
    "Resource",
    "ResourceKey",
    "ResourceKind",
    "ResourceOutcome",
    "Restorer",
    "SchedulerChoice",
    "Session",
    "SessionLifecycle",
    "SessionState",
    "SnapshotRecord",
    "SnapshotStore",
    "SudoWriter",
    "TunableInventory",
    "TunableResource",
    "resolve_priority_target",
]

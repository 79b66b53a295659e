"""Snapshot/apply/restore engine for host performance tunables.

The engine enumerates tunables, records their pre-change values, applies the
optimization profile and later reverts each tunable to its recorded value.
It re-exports the most used types so callers can depend on a single module.
"""

from topt_engine.api import (
    OptimizationProfile,
    ProfileApplier,
    Restorer,
    SnapshotStore,
    TunableInventory,
)

__all__ = [
    "OptimizationProfile",
    "ProfileApplier",
    "Restorer",
    "SnapshotStore",
    "TunableInventory",
]

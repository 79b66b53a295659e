"""Profile applier: pushes the optimization profile onto the host.

Every resource is captured into the snapshot store, and the store committed,
before the first write to that resource. Writes are best effort: a failure is
turned into a skipped outcome and processing moves on to the next resource.
"""

from __future__ import annotations

import logging
import shutil
from typing import Optional, Sequence

from topt_common.errors import PrivilegeUnavailable, ResourceUnavailable
from topt_engine.inventory import TunableInventory
from topt_engine.models import (
    OperationReport,
    OutcomeStatus,
    ResourceKey,
    ResourceKind,
    ResourceOutcome,
)
from topt_engine.profile import OptimizationProfile, clamp_nice
from topt_engine.resources import IoSchedulerResource, Resource
from topt_engine.store import SnapshotStore

logger = logging.getLogger(__name__)

PRIVILEGE_REASON = "requires elevated privileges"
BULK_GOVERNOR_TOOL = "cpupower"


def process_aux_name(pid: int | str) -> str:
    return f"processes/{pid}.json"


class ProfileApplier:
    """Applies an :class:`OptimizationProfile` with capture-before-mutate."""

    def __init__(
        self,
        inventory: TunableInventory,
        store: SnapshotStore,
        profile: Optional[OptimizationProfile] = None,
        bulk_tool: Optional[str] = BULK_GOVERNOR_TOOL,
    ) -> None:
        self.inventory = inventory
        self.store = store
        self.profile = profile or OptimizationProfile()
        self.bulk_tool = bulk_tool

    @property
    def elevated(self) -> bool:
        return bool(self.inventory.writer.elevated)

    # -- orchestration -------------------------------------------------------

    def apply_profile(self, priority_pid: Optional[int] = None) -> OperationReport:
        """Apply every family in a fixed order; never raises for one resource."""
        report = OperationReport()
        report.extend(self.apply_governor(self.profile.governor))
        report.add(self.apply_swappiness(self.profile.swappiness))
        for device, _, _ in self.inventory.list_io_schedulers():
            report.add(self.apply_io_scheduler(device))
        if priority_pid is not None:
            report.add(self.raise_priority(priority_pid, self.profile.priority_delta))
        return report

    # -- families ------------------------------------------------------------

    def apply_governor(self, target: str = "performance") -> list[ResourceOutcome]:
        governors = self.inventory.governors()
        if not governors:
            logger.info("No CPU exposes a frequency governor")
            return []
        if not self.elevated:
            logger.warning("Skipping CPU optimization (%s)", PRIVILEGE_REASON)
            return [ResourceOutcome.skipped(r.key, PRIVILEGE_REASON) for r in governors]

        priors: dict[ResourceKey, Optional[str]] = {}
        for resource in governors:
            priors[resource.key] = self._capture(resource)

        pending = [
            r for r in governors
            if priors[r.key] is not None and priors[r.key] != target
        ]
        # The bulk tool switches every CPU, so it may only run when all were captured.
        uncaptured = [r for r in governors if priors[r.key] is None]
        if uncaptured and pending:
            logger.info("Governor of %s unreadable; writing governors per CPU", uncaptured[0].key)
        elif pending and self._run_bulk_governor(target):
            pending = [r for r in pending if r.read() != target]

        outcomes: list[ResourceOutcome] = []
        for resource in governors:
            prior = priors[resource.key]
            if prior is None:
                outcomes.append(ResourceOutcome.skipped(resource.key, "current governor unreadable"))
            elif resource in pending:
                outcomes.append(self._mutate(resource, target, prior))
            elif prior == target:
                outcomes.append(self._unchanged(resource.key, target))
            else:
                outcomes.append(
                    ResourceOutcome(
                        key=resource.key,
                        status=OutcomeStatus.APPLIED,
                        value=target,
                        previous=prior,
                    )
                )
        return outcomes

    def apply_swappiness(self, target: int = 1) -> ResourceOutcome:
        key = ResourceKey(ResourceKind.SWAPPINESS)
        resource = self.inventory.swappiness()
        if resource is None:
            return ResourceOutcome.skipped(key, "swappiness control is not present")
        if not self.elevated:
            logger.warning("Skipping memory optimization (%s)", PRIVILEGE_REASON)
            return ResourceOutcome.skipped(key, PRIVILEGE_REASON)
        prior = self._capture(resource)
        if prior is None:
            return ResourceOutcome.skipped(key, "current swappiness unreadable")
        return self._mutate(resource, str(target), prior)

    def apply_io_scheduler(
        self, device: str, preference_order: Optional[Sequence[str]] = None
    ) -> ResourceOutcome:
        key = ResourceKey(ResourceKind.IO_SCHEDULER, device)
        resource = self.inventory.resolve(key)
        if not isinstance(resource, IoSchedulerResource):
            return ResourceOutcome.skipped(key, "scheduler control is not present")
        choice = resource.choice()
        if choice is None:
            return ResourceOutcome.skipped(key, "scheduler control is unreadable")

        order = list(preference_order or self.profile.scheduler_preference(resource.device_class))
        selected = next((name for name in order if choice.offers(name)), None)
        if selected is None:
            logger.warning(
                "No preferred scheduler available for %s (wanted %s, offered %s)",
                device, ", ".join(order), ", ".join(choice.available) or "nothing",
            )
            return ResourceOutcome.skipped(
                key, f"none of {', '.join(order)} offered (available: {', '.join(choice.available)})"
            )
        if not self.elevated:
            logger.warning("Skipping I/O optimization for %s (%s)", device, PRIVILEGE_REASON)
            return ResourceOutcome.skipped(key, PRIVILEGE_REASON)
        prior = self._capture(resource)
        if prior is None:
            return ResourceOutcome.skipped(key, "no active scheduler reported")
        return self._mutate(resource, selected, prior)

    def raise_priority(self, pid: int, delta: int = -10) -> ResourceOutcome:
        key = ResourceKey(ResourceKind.PROCESS_PRIORITY, str(pid))
        resource = self.inventory.process(pid)
        if resource is None:
            return ResourceOutcome.skipped(key, f"process {pid} does not exist")
        if delta < 0 and not self.elevated:
            logger.warning("Skipping process priority optimization (%s)", PRIVILEGE_REASON)
            return ResourceOutcome.skipped(key, PRIVILEGE_REASON)
        prior = self._capture(resource)
        if prior is None:
            return ResourceOutcome.skipped(key, "current nice value unreadable")
        self.store.save_aux(process_aux_name(pid), resource.identity())
        return self._mutate(resource, str(clamp_nice(int(prior) + delta)), prior)

    # -- helpers -------------------------------------------------------------

    def _capture(self, resource: Resource) -> Optional[str]:
        """Record and commit the resource's current value; return the prior value."""
        session = self.store.session
        existing = session.record_for(resource.key) if session else None
        if existing is not None:
            return existing.prior_value
        value = resource.read()
        if value is None:
            logger.warning("Cannot read %s; leaving it untouched", resource.key)
            return None
        self.store.record(resource.key, value)
        self.store.commit()
        return value

    def _mutate(self, resource: Resource, target: str, prior: str) -> ResourceOutcome:
        if prior == target:
            return self._unchanged(resource.key, target)
        try:
            resource.write(target)
        except (PrivilegeUnavailable, ResourceUnavailable) as exc:
            logger.warning("Could not set %s to %s: %s", resource.key, target, exc)
            return ResourceOutcome(
                key=resource.key, status=OutcomeStatus.SKIPPED, reason=str(exc), previous=prior
            )
        logger.info("Set %s: %s -> %s", resource.key, prior, target)
        return ResourceOutcome(
            key=resource.key, status=OutcomeStatus.APPLIED, value=target, previous=prior
        )

    @staticmethod
    def _unchanged(key: ResourceKey, value: str) -> ResourceOutcome:
        return ResourceOutcome(key=key, status=OutcomeStatus.UNCHANGED, value=value, previous=value)

    def _run_bulk_governor(self, target: str) -> bool:
        """Try the governor-wide tool; False means fall back to per-CPU writes."""
        if not self.bulk_tool or shutil.which(self.bulk_tool) is None:
            logger.debug("%s not installed; writing governors per CPU", self.bulk_tool)
            return False
        ok = self.inventory.writer.run([self.bulk_tool, "frequency-set", "-g", target])
        if not ok:
            logger.warning("Could not set CPU governor using %s", self.bulk_tool)
        return ok

"""
Service implementing the start/stop/status commands.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from topt_app.services.optimizer_types import (
    StartReport,
    StatusEntry,
    StatusReport,
    StopReport,
)
from topt_app.services.privilege import PrivilegeBroker
from topt_app.services.settings import OptimizerSettings, resolve_owner, resolve_user_id
from topt_common.errors import AlreadyActive, UsageError
from topt_engine.api import (
    DirectWriter,
    HostWriter,
    ProfileApplier,
    ResourceKind,
    Restorer,
    SessionLifecycle,
    SnapshotStore,
    TunableInventory,
    resolve_priority_target,
)
from topt_engine.applier import BULK_GOVERNOR_TOOL, process_aux_name

logger = logging.getLogger(__name__)


class OptimizerService:
    """Coordinates inventory, snapshot store, applier and restorer for one user."""

    def __init__(
        self,
        settings: Optional[OptimizerSettings] = None,
        privilege_broker: Optional[PrivilegeBroker] = None,
        user_id: Optional[int] = None,
        priority_target: Callable[[], Optional[int]] = resolve_priority_target,
        bulk_tool: Optional[str] = BULK_GOVERNOR_TOOL,
    ):
        self.settings = settings or OptimizerSettings.from_env()
        self.privilege_broker = privilege_broker or PrivilegeBroker(
            interactive=self.settings.interactive
        )
        self.user_id = resolve_user_id() if user_id is None else user_id
        self.priority_target = priority_target
        self.bulk_tool = bulk_tool
        self.store = SnapshotStore(
            self.settings.state_dir, self.user_id, owner=resolve_owner(self.user_id)
        )
        self.lifecycle = SessionLifecycle.from_store(self.store)

    def _inventory(self, writer: HostWriter) -> TunableInventory:
        return TunableInventory(writer, self.settings.host_paths())

    def start(self, task_label: str) -> StartReport:
        """Capture the current state and apply the optimization profile."""
        if not task_label or not task_label.strip():
            raise UsageError("Please provide a task description")
        if self.lifecycle.active:
            session = self.store.load()
            raise AlreadyActive(
                f"System is already optimized for: {session.task_label or 'unknown task'}. "
                "Run 'stop' first.",
                context={"state_file": self.store.state_path},
            )

        privilege = self.privilege_broker.probe()
        inventory = self._inventory(privilege.writer())
        session = self.store.begin_session(task_label)
        self.lifecycle.begin(task_label)
        logger.info("Optimizing system for task: %s", task_label)

        applier = ProfileApplier(inventory, self.store, self.settings.profile, self.bulk_tool)
        priority_pid = self.priority_target()
        report = applier.apply_profile(priority_pid=priority_pid)
        return StartReport(
            task_label=task_label,
            started_at=session.started_at,
            privilege=privilege,
            report=report,
            priority_pid=priority_pid,
        )

    def stop(self) -> StopReport:
        """Restore every recorded value and discard the session."""
        if not self.lifecycle.active:
            logger.info("No optimization state found. Nothing to restore.")
            return StopReport(session=None)

        privilege = self.privilege_broker.probe()
        session = self.store.load()
        restorer = Restorer(self._inventory(privilege.writer()), self.store)
        report = restorer.restore_all(session)
        self.store.discard()
        self.lifecycle.end()
        return StopReport(session=session, report=report, privilege=privilege)

    def status(self) -> StatusReport:
        """Live tunable values next to recorded ones; never mutates anything."""
        inventory = self._inventory(DirectWriter(elevated=False))
        session = self.store.load() if self.lifecycle.active else None

        entries: list[StatusEntry] = []
        seen = set()
        for tunable in inventory.snapshot(self.priority_target()):
            record = session.record_for(tunable.key) if session else None
            entries.append(
                StatusEntry(
                    key=tunable.key,
                    live_value=tunable.current_value,
                    recorded_value=record.prior_value if record else None,
                    available=tunable.available,
                )
            )
            seen.add(tunable.key)

        if session is not None:
            for record in session.records:
                if record.key in seen:
                    continue
                identity = None
                if record.key.kind is ResourceKind.PROCESS_PRIORITY:
                    identity = self.store.load_aux(process_aux_name(record.key.identifier))
                resource = inventory.resolve(record.key, identity)
                entries.append(
                    StatusEntry(
                        key=record.key,
                        live_value=resource.read() if resource else None,
                        recorded_value=record.prior_value,
                    )
                )

        return StatusReport(
            active=session is not None,
            task_label=session.task_label if session else None,
            started_at=session.started_at if session else None,
            entries=entries,
            record_count=len(session.records) if session else 0,
        )

"""Restorer: writes recorded prior values back, one resource at a time."""

from __future__ import annotations

import logging

from topt_common.errors import PrivilegeUnavailable, ResourceUnavailable
from topt_engine.applier import PRIVILEGE_REASON, process_aux_name
from topt_engine.inventory import TunableInventory
from topt_engine.models import (
    OperationReport,
    OutcomeStatus,
    ResourceKind,
    ResourceOutcome,
    Session,
    SnapshotRecord,
)
from topt_engine.store import SnapshotStore

logger = logging.getLogger(__name__)


class Restorer:
    """Best-effort revert of a captured session.

    Each record is re-validated against the live host (still present, still
    writable, value still offered) before writing; a record that fails any
    check is reported as skipped and never blocks the ones after it.
    """

    def __init__(self, inventory: TunableInventory, store: SnapshotStore) -> None:
        self.inventory = inventory
        self.store = store

    def restore_all(self, session: Session) -> OperationReport:
        report = OperationReport()
        for record in session.records:
            report.add(self.restore_one(record))
        if session.task_label:
            logger.info("Task completed: %s", session.task_label)
        return report

    def restore_one(self, record: SnapshotRecord) -> ResourceOutcome:
        key = record.key
        identity = None
        if key.kind is ResourceKind.PROCESS_PRIORITY:
            identity = self.store.load_aux(process_aux_name(key.identifier))
            if not identity or "create_time" not in identity:
                return self._skip(record, "process identity was not recorded")

        resource = self.inventory.resolve(key, identity)
        if resource is None or not resource.exists():
            return self._skip(record, "resource no longer exists")
        if not resource.writable():
            if not self.inventory.writer.elevated:
                return self._skip(record, f"control is not writable ({PRIVILEGE_REASON})")
            return self._skip(record, "control is not writable")
        candidates = resource.candidates()
        if key.kind is ResourceKind.IO_SCHEDULER and candidates is None:
            return self._skip(record, "scheduler control is unreadable")
        if key.kind is ResourceKind.IO_SCHEDULER and record.prior_value not in candidates:
            return self._skip(
                record,
                f"scheduler {record.prior_value} is no longer available",
            )

        current = resource.read()
        if current == record.prior_value:
            return ResourceOutcome(
                key=key,
                status=OutcomeStatus.UNCHANGED,
                value=record.prior_value,
                previous=current,
            )
        try:
            resource.write(record.prior_value)
        except (PrivilegeUnavailable, ResourceUnavailable) as exc:
            return self._skip(record, str(exc))
        logger.info("Restored %s to %s", key, record.prior_value)
        return ResourceOutcome(
            key=key,
            status=OutcomeStatus.RESTORED,
            value=record.prior_value,
            previous=current,
        )

    @staticmethod
    def _skip(record: SnapshotRecord, reason: str) -> ResourceOutcome:
        logger.warning("Not restoring %s to %s: %s", record.key, record.prior_value, reason)
        return ResourceOutcome(
            key=record.key,
            status=OutcomeStatus.SKIPPED,
            value=record.prior_value,
            reason=reason,
        )

"""Data models for the snapshot/apply/restore engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Iterable, Optional


class ResourceKind(str, Enum):
    """Families of mutable host settings."""

    CPU_GOVERNOR = "cpu_governor"
    IO_SCHEDULER = "io_scheduler"
    SWAPPINESS = "swappiness"
    PROCESS_PRIORITY = "process_priority"


@dataclass(frozen=True)
class ResourceKey:
    """Identity of a tunable: its kind plus a name unique within that kind."""

    kind: ResourceKind
    identifier: str = ""

    def __str__(self) -> str:
        if not self.identifier:
            return self.kind.value
        return f"{self.kind.value}:{self.identifier}"


@dataclass
class TunableResource:
    """A tunable together with the value read from the host at query time."""

    key: ResourceKey
    current_value: Optional[str]
    available: Optional[list[str]] = None


@dataclass(frozen=True)
class SnapshotRecord:
    key: ResourceKey
    prior_value: str


@dataclass
class Session:
    """The single in-flight optimization of one user."""

    user_id: int
    task_label: Optional[str]
    started_at: Optional[str]
    records: list[SnapshotRecord] = field(default_factory=list)

    @staticmethod
    def now() -> str:
        return datetime.now(timezone.utc).isoformat()

    def record_for(self, key: ResourceKey) -> Optional[SnapshotRecord]:
        for record in self.records:
            if record.key == key:
                return record
        return None

    def has(self, key: ResourceKey) -> bool:
        return self.record_for(key) is not None

    def add(self, record: SnapshotRecord) -> bool:
        """Add a record unless one already exists for its key."""
        if self.has(record.key):
            return False
        self.records.append(record)
        return True


class OutcomeStatus(str, Enum):
    APPLIED = "applied"
    RESTORED = "restored"
    UNCHANGED = "unchanged"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class ResourceOutcome:
    """Result of acting on a single resource."""

    key: ResourceKey
    status: OutcomeStatus
    value: Optional[str] = None
    reason: Optional[str] = None
    previous: Optional[str] = None

    @classmethod
    def skipped(cls, key: ResourceKey, reason: str) -> "ResourceOutcome":
        return cls(key=key, status=OutcomeStatus.SKIPPED, reason=reason)

    @property
    def ok(self) -> bool:
        return self.status is not OutcomeStatus.SKIPPED


@dataclass
class OperationReport:
    """Aggregated per-resource outcomes of an apply or restore pass."""

    outcomes: list[ResourceOutcome] = field(default_factory=list)

    def add(self, outcome: ResourceOutcome) -> ResourceOutcome:
        self.outcomes.append(outcome)
        return outcome

    def extend(self, outcomes: Iterable[ResourceOutcome]) -> None:
        self.outcomes.extend(outcomes)

    def _with_status(self, status: OutcomeStatus) -> list[ResourceOutcome]:
        return [o for o in self.outcomes if o.status is status]

    @property
    def applied(self) -> list[ResourceOutcome]:
        return self._with_status(OutcomeStatus.APPLIED)

    @property
    def restored(self) -> list[ResourceOutcome]:
        return self._with_status(OutcomeStatus.RESTORED)

    @property
    def unchanged(self) -> list[ResourceOutcome]:
        return self._with_status(OutcomeStatus.UNCHANGED)

    @property
    def skipped(self) -> list[ResourceOutcome]:
        return self._with_status(OutcomeStatus.SKIPPED)

    @property
    def write_count(self) -> int:
        return len(self.applied) + len(self.restored)

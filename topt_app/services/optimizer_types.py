from dataclasses import dataclass, field
from typing import List, Optional

from topt_app.services.privilege import PrivilegeStatus
from topt_engine.api import OperationReport, ResourceKey, Session


@dataclass
class StartReport:
    task_label: str
    started_at: Optional[str]
    privilege: PrivilegeStatus
    report: OperationReport
    priority_pid: Optional[int] = None

    @property
    def degraded(self) -> bool:
        return not self.privilege.elevated


@dataclass
class StopReport:
    session: Optional[Session]
    report: OperationReport = field(default_factory=OperationReport)
    privilege: Optional[PrivilegeStatus] = None

    @property
    def nothing_to_restore(self) -> bool:
        return self.session is None

    @property
    def task_label(self) -> Optional[str]:
        return self.session.task_label if self.session else None


@dataclass
class StatusEntry:
    key: ResourceKey
    live_value: Optional[str]
    recorded_value: Optional[str] = None
    available: Optional[List[str]] = None


@dataclass
class StatusReport:
    active: bool
    task_label: Optional[str] = None
    started_at: Optional[str] = None
    entries: List[StatusEntry] = field(default_factory=list)
    record_count: int = 0

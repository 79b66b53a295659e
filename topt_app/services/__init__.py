"""Application-facing services for the CLI."""

from topt_app.services.optimizer_service import OptimizerService
from topt_app.services.optimizer_types import StartReport, StatusEntry, StatusReport, StopReport
from topt_app.services.privilege import PrivilegeBroker, PrivilegeMode, PrivilegeStatus
from topt_app.services.settings import OptimizerSettings, resolve_owner, resolve_user_id

__all__ = [
    "OptimizerService",
    "OptimizerSettings",
    "PrivilegeBroker",
    "PrivilegeMode",
    "PrivilegeStatus",
    "StartReport",
    "StatusEntry",
    "StatusReport",
    "StopReport",
    "resolve_owner",
    "resolve_user_id",
]

"""Presenters turning optimizer reports into UI output."""

from __future__ import annotations

from typing import List, Sequence

from topt_app.api import PrivilegeMode, StartReport, StatusReport, StopReport
from topt_engine.api import OperationReport, OutcomeStatus, ResourceKey, ResourceKind, ResourceOutcome
from topt_ui.ui.interfaces import UIAdapter
from topt_ui.ui.utils import display_value

SERVICE_HINT = "Consider stopping services like bluetooth, cups-browsed, if not needed manually."

_KIND_LABELS = {
    ResourceKind.CPU_GOVERNOR: "CPU Governor",
    ResourceKind.IO_SCHEDULER: "I/O Scheduler",
    ResourceKind.SWAPPINESS: "Swappiness",
    ResourceKind.PROCESS_PRIORITY: "Process priority",
}


def describe_key(key: ResourceKey) -> str:
    label = _KIND_LABELS[key.kind]
    if key.kind is ResourceKind.PROCESS_PRIORITY:
        return f"{label} (pid {key.identifier})"
    if key.identifier:
        return f"{label} ({key.identifier})"
    return label


def _change(outcome: ResourceOutcome) -> str:
    if outcome.status is OutcomeStatus.SKIPPED:
        return display_value(outcome.value, "-")
    if outcome.status is OutcomeStatus.UNCHANGED:
        return display_value(outcome.value)
    return f"{display_value(outcome.previous)} -> {display_value(outcome.value)}"


def build_outcome_rows(report: OperationReport) -> List[List[str]]:
    return [
        [describe_key(o.key), o.status.value, _change(o), o.reason or ""]
        for o in report.outcomes
    ]


def _show_outcomes(ui: UIAdapter, title: str, report: OperationReport) -> None:
    if report.outcomes:
        ui.show_table(title, ["Setting", "Result", "Value", "Note"], build_outcome_rows(report))


def render_start_report(ui: UIAdapter, result: StartReport) -> None:
    privilege = result.privilege
    if privilege.mode is PrivilegeMode.ROOT and privilege.message:
        ui.show_info(privilege.message)
    elif result.degraded and privilege.message:
        ui.show_warning(privilege.message)

    ui.show_success(f"Optimizing system for task: {result.task_label}")
    for outcome in result.report.outcomes:
        key = outcome.key
        if key.kind is ResourceKind.SWAPPINESS and outcome.previous is not None:
            ui.show_info(f"Previous swappiness: {outcome.previous}")
        if key.kind is ResourceKind.IO_SCHEDULER and outcome.status is OutcomeStatus.APPLIED:
            ui.show_info(f"Set scheduler for {key.identifier} to {outcome.value}")

    _show_outcomes(ui, "Optimizations", result.report)
    for outcome in result.report.skipped:
        ui.show_warning(f"Skipped {describe_key(outcome.key)}: {outcome.reason}")

    ui.show_warning("Disabling non-essential services not implemented in this version.")
    ui.show_warning(SERVICE_HINT)
    ui.show_success("Optimization complete!")
    ui.show_info(f"System is now optimized for: {result.task_label}")


def render_stop_report(ui: UIAdapter, result: StopReport) -> None:
    if result.nothing_to_restore:
        ui.show_warning("No optimization state found. Nothing to restore.")
        return

    ui.show_success("Restoring original system state...")
    if result.privilege is not None and not result.privilege.elevated and result.privilege.message:
        ui.show_warning(result.privilege.message)
    for outcome in result.report.restored:
        ui.show_info(f"Restored {describe_key(outcome.key)} to {outcome.value}")
    _show_outcomes(ui, "Restoration", result.report)
    for outcome in result.report.skipped:
        ui.show_warning(
            f"Could not restore {describe_key(outcome.key)} to {display_value(outcome.value)}: {outcome.reason}"
        )
    if result.task_label:
        ui.show_info(f"Task completed: {result.task_label}")
    if result.report.skipped:
        ui.show_warning(
            f"System state restored with {len(result.report.skipped)} setting(s) skipped."
        )
    else:
        ui.show_success("System state restored successfully!")


def build_status_rows(status: StatusReport) -> List[Sequence[str]]:
    rows: List[Sequence[str]] = []
    for entry in status.entries:
        row = [describe_key(entry.key), display_value(entry.live_value)]
        if status.active:
            row.append(display_value(entry.recorded_value, "-"))
        rows.append(row)
    return rows


def render_status_report(ui: UIAdapter, status: StatusReport) -> None:
    if status.active:
        ui.show_warning("System is currently optimized for a task:")
        if status.task_label:
            ui.show_info(f"Task: {status.task_label}")
        if status.started_at:
            ui.show_info(f"Optimization started: {status.started_at}")
        ui.show_info(f"Recorded settings: {status.record_count}")
        columns = ["Setting", "Current", "Original"]
    else:
        ui.show_success("System is in normal state (not optimized for any specific task)")
        columns = ["Setting", "Current"]
    ui.show_table("Current system settings", columns, build_status_rows(status))


def render_help(ui: UIAdapter, name: str, version: str) -> None:
    ui.show_panel(f"{name} v{version}", title="Task Optimizer")
    ui.show_rule("Usage")
    ui.show_info(
        "Usage:\n"
        '  task-optimizer start "task description"  - Start optimization for a task\n'
        "  task-optimizer stop                     - Restore original system state\n"
        "  task-optimizer status                   - Show current optimization status\n"
        "  task-optimizer help                     - Show this help message"
    )
    ui.show_info(
        "This tool optimizes your system resources for specific tasks and can restore\n"
        "the original state when the task is completed."
    )
    ui.show_info(
        "Features:\n"
        "  - CPU performance optimization (governor -> performance)\n"
        "  - Memory management tuning (swappiness -> 1)\n"
        "  - I/O scheduler optimization (deadline/none per disk type)\n"
        "  - Process priority adjustment (renice the invoking shell)"
    )
    ui.show_info(
        "Examples:\n"
        '  task-optimizer start "Compiling kernel"\n'
        '  task-optimizer start "Building Docker images"\n'
        "  task-optimizer stop"
    )

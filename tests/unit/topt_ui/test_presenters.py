from __future__ import annotations

import io
import sys

import pytest

from topt_app.api import PrivilegeMode, PrivilegeStatus, StatusEntry, StatusReport, StopReport
from topt_engine.api import (
    OperationReport,
    OutcomeStatus,
    ResourceKey,
    ResourceKind,
    ResourceOutcome,
    Session,
)
from topt_ui.presenters.optimizer import (
    build_outcome_rows,
    build_status_rows,
    describe_key,
    render_stop_report,
)
from topt_ui.ui.adapters import HeadlessUIAdapter
from topt_ui.wrapper import build_command

pytestmark = pytest.mark.unit_ui


def test_describe_key() -> None:
    assert describe_key(ResourceKey(ResourceKind.CPU_GOVERNOR, "cpu3")) == "CPU Governor (cpu3)"
    assert describe_key(ResourceKey(ResourceKind.SWAPPINESS)) == "Swappiness"
    assert describe_key(ResourceKey(ResourceKind.IO_SCHEDULER, "sda")) == "I/O Scheduler (sda)"
    assert describe_key(ResourceKey(ResourceKind.PROCESS_PRIORITY, "42")) == "Process priority (pid 42)"


def test_outcome_rows() -> None:
    report = OperationReport()
    report.add(
        ResourceOutcome(
            key=ResourceKey(ResourceKind.SWAPPINESS),
            status=OutcomeStatus.APPLIED,
            value="1",
            previous="60",
        )
    )
    report.add(ResourceOutcome.skipped(ResourceKey(ResourceKind.IO_SCHEDULER, "sdc"), "nothing offered"))

    assert build_outcome_rows(report) == [
        ["Swappiness", "applied", "60 -> 1", ""],
        ["I/O Scheduler (sdc)", "skipped", "-", "nothing offered"],
    ]


def test_status_rows_show_original_only_when_active() -> None:
    entry = StatusEntry(key=ResourceKey(ResourceKind.SWAPPINESS), live_value="1", recorded_value="60")
    gone = StatusEntry(key=ResourceKey(ResourceKind.CPU_GOVERNOR, "cpu9"), live_value=None, recorded_value="powersave")

    assert build_status_rows(StatusReport(active=True, entries=[entry, gone])) == [
        ["Swappiness", "1", "60"],
        ["CPU Governor (cpu9)", "unknown", "powersave"],
    ]
    assert build_status_rows(StatusReport(active=False, entries=[entry])) == [["Swappiness", "1"]]


def test_stop_report_with_skips() -> None:
    stream = io.StringIO()
    report = OperationReport()
    report.add(
        ResourceOutcome(
            key=ResourceKey(ResourceKind.IO_SCHEDULER, "sda"),
            status=OutcomeStatus.SKIPPED,
            value="bfq",
            reason="scheduler bfq is no longer available",
        )
    )
    session = Session(user_id=1000, task_label="render", started_at=None)

    render_stop_report(
        HeadlessUIAdapter(stream),
        StopReport(session=session, report=report, privilege=PrivilegeStatus(PrivilegeMode.ROOT)),
    )

    text = stream.getvalue()
    assert "[WARN] Could not restore I/O Scheduler (sda) to bfq: scheduler bfq is no longer available" in text
    assert "[INFO] Task completed: render" in text
    assert "[WARN] System state restored with 1 setting(s) skipped." in text


def test_wrapper_reexecutes_module_under_sudo() -> None:
    assert build_command("/usr/bin/sudo", ["start", "build"]) == [
        "/usr/bin/sudo",
        sys.executable,
        "-m",
        "topt_ui",
        "start",
        "build",
    ]

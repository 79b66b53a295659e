from __future__ import annotations

import os

import pydantic
import pytest

from topt_common.errors import AlreadyActive, NoActiveSession
from topt_engine.api import (
    DeviceClass,
    OperationReport,
    OptimizationProfile,
    OutcomeStatus,
    ResourceKey,
    ResourceKind,
    ResourceOutcome,
    SessionLifecycle,
    SessionState,
    SnapshotStore,
)
from topt_engine.profile import clamp_nice

pytestmark = pytest.mark.unit_engine

UID = os.getuid()


def test_lifecycle_start_stop_cycle() -> None:
    lifecycle = SessionLifecycle(1000)

    lifecycle.begin("build")
    assert lifecycle.active
    lifecycle.end()

    assert lifecycle.state is SessionState.IDLE


def test_lifecycle_rejects_double_begin_and_idle_end() -> None:
    lifecycle = SessionLifecycle(1000, SessionState.ACTIVE)
    with pytest.raises(AlreadyActive):
        lifecycle.begin("again")

    idle = SessionLifecycle(1000)
    with pytest.raises(NoActiveSession):
        idle.end()
    with pytest.raises(ValueError):
        idle.transition(SessionState.IDLE)


def test_lifecycle_hydrates_from_store(state_dir) -> None:
    store = SnapshotStore(state_dir, UID)
    assert SessionLifecycle.from_store(store).state is SessionState.IDLE

    store.begin_session("build")
    assert SessionLifecycle.from_store(SnapshotStore(state_dir, UID)).active


def test_profile_defaults() -> None:
    profile = OptimizationProfile()

    assert profile.governor == "performance"
    assert profile.swappiness == 1
    assert profile.priority_delta == -10
    assert profile.scheduler_preference(DeviceClass.NVME) == ["none", "mq-deadline"]
    assert profile.scheduler_preference(DeviceClass.SATA) == ["deadline", "none", "mq-deadline"]


def test_profile_validation() -> None:
    assert OptimizationProfile(nvme_schedulers=["none", " none", "kyber"]).nvme_schedulers == ["none", "kyber"]
    with pytest.raises(pydantic.ValidationError):
        OptimizationProfile(swappiness=101)
    with pytest.raises(pydantic.ValidationError):
        OptimizationProfile(sata_schedulers=[])


@pytest.mark.parametrize("value,expected", [(-35, -20), (-10, -10), (0, 0), (25, 19)])
def test_clamp_nice(value, expected) -> None:
    assert clamp_nice(value) == expected


def test_operation_report_views() -> None:
    swap = ResourceKey(ResourceKind.SWAPPINESS)
    cpu = ResourceKey(ResourceKind.CPU_GOVERNOR, "cpu0")
    report = OperationReport()
    report.add(ResourceOutcome(key=cpu, status=OutcomeStatus.APPLIED, value="performance"))
    report.add(ResourceOutcome.skipped(swap, "requires elevated privileges"))

    assert str(cpu) == "cpu_governor:cpu0"
    assert str(swap) == "swappiness"
    assert report.write_count == 1
    assert report.unchanged == []
    assert [o.key for o in report.skipped] == [swap]
    assert not report.skipped[0].ok

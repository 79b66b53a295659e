"""CLI behavior tests using Typer's CliRunner."""

from __future__ import annotations

import io
import os

import pytest
from typer.testing import CliRunner

import topt_ui.cli as cli
from topt_app.api import OptimizerService, OptimizerSettings
from topt_ui import __version__
from topt_ui.ui.adapters import HeadlessUIAdapter
from topt_ui.wiring import UIContext

pytestmark = pytest.mark.unit_ui

runner = CliRunner()


@pytest.fixture
def output() -> io.StringIO:
    return io.StringIO()


def _install(monkeypatch, output, fake_host, state_dir, broker) -> UIContext:
    settings = OptimizerSettings(
        state_dir=state_dir,
        sysfs_root=fake_host.sysfs,
        procfs_root=fake_host.procfs,
        interactive=False,
    )
    ctx = UIContext(headless=True)
    ctx.ui = HeadlessUIAdapter(output)
    ctx.settings = settings
    ctx.service = OptimizerService(
        settings=settings,
        privilege_broker=broker,
        user_id=os.getuid(),
        priority_target=lambda: None,
        bulk_tool=None,
    )
    monkeypatch.setattr(cli, "ctx_store", ctx)
    return ctx


@pytest.fixture
def cli_env(monkeypatch, output, fake_host, state_dir, root_broker):
    fake_host.add_cpu(0)
    fake_host.set_swappiness(60)
    fake_host.add_block_device("nvme0n1", "[mq-deadline] none")
    return _install(monkeypatch, output, fake_host, state_dir, root_broker)


def test_start_status_stop(cli_env, output, fake_host) -> None:
    result = runner.invoke(cli.app, ["start", "Compiling kernel"])
    assert result.exit_code == 0, result.output
    text = output.getvalue()
    assert "[SUCCESS] Optimizing system for task: Compiling kernel" in text
    assert "[INFO] Previous swappiness: 60" in text
    assert "[INFO] Set scheduler for nvme0n1 to none" in text
    assert "[SUCCESS] Optimization complete!" in text
    assert fake_host.swappiness() == 1

    result = runner.invoke(cli.app, ["status"])
    assert result.exit_code == 0
    assert "System is currently optimized for a task:" in output.getvalue()
    assert "Task: Compiling kernel" in output.getvalue()

    result = runner.invoke(cli.app, ["stop"])
    assert result.exit_code == 0
    text = output.getvalue()
    assert "[INFO] Task completed: Compiling kernel" in text
    assert "[SUCCESS] System state restored successfully!" in text
    assert fake_host.swappiness() == 60
    assert fake_host.active_scheduler("nvme0n1") == "mq-deadline"


def test_stop_without_session(cli_env, output) -> None:
    result = runner.invoke(cli.app, ["stop"])

    assert result.exit_code == 0
    assert "[WARN] No optimization state found. Nothing to restore." in output.getvalue()


def test_status_when_idle(cli_env, output) -> None:
    result = runner.invoke(cli.app, ["status"])

    assert result.exit_code == 0
    text = output.getvalue()
    assert "System is in normal state (not optimized for any specific task)" in text
    assert "CPU Governor (cpu0)" in text


def test_second_start_fails(cli_env, output) -> None:
    assert runner.invoke(cli.app, ["start", "first"]).exit_code == 0

    result = runner.invoke(cli.app, ["start", "second"])

    assert result.exit_code == 1
    assert "[ERROR] Error: System is already optimized for: first" in output.getvalue()


def test_missing_task_label_is_usage_error(cli_env) -> None:
    assert runner.invoke(cli.app, ["start"]).exit_code == 2


def test_blank_task_label_is_usage_error(cli_env, output) -> None:
    result = runner.invoke(cli.app, ["start", "  "])

    assert result.exit_code == 2
    assert "Please provide a task description" in output.getvalue()


def test_degraded_start_exits_cleanly(monkeypatch, output, fake_host, state_dir, degraded_broker) -> None:
    fake_host.set_swappiness(60)
    _install(monkeypatch, output, fake_host, state_dir, degraded_broker)

    result = runner.invoke(cli.app, ["--non-interactive", "start", "render"])

    assert result.exit_code == 0
    text = output.getvalue()
    assert "[WARN] Unable to obtain sudo privileges" in text
    assert "[WARN] Skipped Swappiness: requires elevated privileges" in text
    assert fake_host.swappiness() == 60


def test_help_and_version(cli_env, output) -> None:
    result = runner.invoke(cli.app, ["help"])
    assert result.exit_code == 0
    assert f"Task Optimizer v{__version__}" in output.getvalue()
    assert 'task-optimizer start "Compiling kernel"' in output.getvalue()

    result = runner.invoke(cli.app, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output

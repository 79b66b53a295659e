from __future__ import annotations

from collections import defaultdict
from pathlib import Path
from typing import Iterable, Optional

import pytest
from rich.console import Console
from rich.table import Table

from topt_common.errors import ResourceUnavailable
from topt_app.api import PrivilegeMode, PrivilegeStatus
from topt_engine.api import DirectWriter, HostPaths, HostWriter

KNOWN_MARKERS = {"unit_common", "unit_engine", "unit_app", "unit_ui"}


def pytest_terminal_summary(terminalreporter, exitstatus, config):
    """Print statistics by marker at the end of the test session."""
    _ = (exitstatus, config)
    marker_stats = defaultdict(lambda: {"passed": 0, "failed": 0, "skipped": 0, "total": 0, "duration": 0.0})

    for outcome in ["passed", "failed", "skipped"]:
        for report in terminalreporter.stats.get(outcome, []):
            # Only count the actual test call, or setup skips
            if report.when == "call" or (report.when == "setup" and report.outcome == "skipped"):
                duration = getattr(report, "duration", 0.0)
                for marker in KNOWN_MARKERS:
                    if marker in report.keywords:
                        stats = marker_stats[marker]
                        stats[outcome] += 1
                        stats["total"] += 1
                        stats["duration"] += duration

    if not marker_stats:
        return

    table = Table(title="Test Statistics by Marker", show_header=True, header_style="bold magenta")
    table.add_column("Marker", style="cyan")
    table.add_column("Total", justify="right")
    table.add_column("Passed", justify="right", style="green")
    table.add_column("Failed", justify="right", style="red")
    table.add_column("Skipped", justify="right", style="yellow")
    table.add_column("Duration (s)", justify="right", style="blue")

    for marker in sorted(marker_stats):
        stats = marker_stats[marker]
        table.add_row(
            marker,
            str(stats["total"]),
            str(stats["passed"]),
            str(stats["failed"]),
            str(stats["skipped"]),
            f"{stats['duration']:.2f}",
        )

    console = Console()
    console.print("\n")
    console.print(table)


class FakeHost:
    """A sysfs/procfs tree under a temporary directory."""

    def __init__(self, root: Path) -> None:
        self.sysfs = root / "sys"
        self.procfs = root / "proc"
        (self.sysfs / "devices" / "system" / "cpu").mkdir(parents=True)
        (self.sysfs / "block").mkdir(parents=True)
        (self.procfs / "sys" / "vm").mkdir(parents=True)

    @property
    def paths(self) -> HostPaths:
        return HostPaths(sysfs_root=self.sysfs, procfs_root=self.procfs)

    def governor_path(self, cpu: str) -> Path:
        return self.sysfs / "devices" / "system" / "cpu" / cpu / "cpufreq" / "scaling_governor"

    def scheduler_path(self, device: str) -> Path:
        return self.sysfs / "block" / device / "queue" / "scheduler"

    @property
    def swappiness_path(self) -> Path:
        return self.procfs / "sys" / "vm" / "swappiness"

    def add_cpu(
        self,
        index: int,
        governor: str = "powersave",
        available: Iterable[str] = ("performance", "powersave"),
    ) -> Path:
        path = self.governor_path(f"cpu{index}")
        path.parent.mkdir(parents=True)
        path.write_text(governor + "\n")
        (path.parent / "scaling_available_governors").write_text(" ".join(available) + "\n")
        return path

    def add_block_device(self, name: str, schedulers: str, rotational: Optional[bool] = None) -> Path:
        path = self.scheduler_path(name)
        path.parent.mkdir(parents=True)
        path.write_text(schedulers + "\n")
        if rotational is not None:
            (path.parent / "rotational").write_text("1\n" if rotational else "0\n")
        return path

    def set_swappiness(self, value: int) -> Path:
        self.swappiness_path.write_text(f"{value}\n")
        return self.swappiness_path

    def governor(self, cpu: str) -> str:
        return self.governor_path(cpu).read_text().strip()

    def active_scheduler(self, device: str) -> Optional[str]:
        for token in self.scheduler_path(device).read_text().split():
            if token.startswith("["):
                return token.strip("[]")
        return None

    def swappiness(self) -> int:
        return int(self.swappiness_path.read_text().strip())


class SysfsWriter(DirectWriter):
    """Direct writer that mimics kernel control-file semantics.

    Scheduler files keep offering every scheduler and move the brackets to the
    selected one. Paths listed in ``denied`` refuse every write.
    """

    def __init__(self, elevated: bool = True) -> None:
        super().__init__(elevated=elevated)
        self.writes: list[tuple[Path, str]] = []
        self.nice_calls: list[tuple[int, int]] = []
        self.commands: list[list[str]] = []
        self.denied: set[Path] = set()
        self.command_ok = True

    def can_write(self, path: Path) -> bool:
        return path not in self.denied and path.is_file()

    def write_text(self, path: Path, value: str) -> None:
        if path in self.denied:
            raise ResourceUnavailable(f"{path} refused the write")
        if path.name == "scheduler" and path.exists():
            tokens = [t.strip("[]") for t in path.read_text().split()]
            if value not in tokens:
                raise ResourceUnavailable(f"{value} is not offered by {path}")
            value = " ".join(f"[{t}]" if t == value else t for t in tokens)
        super().write_text(path, value + "\n")
        self.writes.append((path, value))

    def set_nice(self, pid: int, value: int) -> None:
        self.nice_calls.append((pid, value))

    def run(self, argv) -> bool:
        self.commands.append(list(argv))
        return self.command_ok


@pytest.fixture
def fake_host(tmp_path: Path) -> FakeHost:
    return FakeHost(tmp_path / "host")


@pytest.fixture
def writer() -> SysfsWriter:
    return SysfsWriter(elevated=True)


@pytest.fixture
def unprivileged_writer() -> SysfsWriter:
    return SysfsWriter(elevated=False)


@pytest.fixture
def state_dir(tmp_path: Path) -> Path:
    path = tmp_path / "state"
    path.mkdir()
    return path


class StubPrivilege(PrivilegeStatus):
    """Privilege status handing out a prepared writer."""

    def __init__(self, writer: HostWriter, mode: PrivilegeMode, message: Optional[str] = None) -> None:
        super().__init__(mode, message)
        self._writer = writer

    def writer(self) -> HostWriter:
        return self._writer


class StubBroker:
    def __init__(self, status: PrivilegeStatus) -> None:
        self.status = status
        self.probes = 0

    def probe(self) -> PrivilegeStatus:
        self.probes += 1
        return self.status


@pytest.fixture
def root_broker(writer) -> StubBroker:
    return StubBroker(StubPrivilege(writer, PrivilegeMode.ROOT, "Running in privileged mode (root)"))


@pytest.fixture
def degraded_broker(unprivileged_writer) -> StubBroker:
    return StubBroker(
        StubPrivilege(
            unprivileged_writer,
            PrivilegeMode.NONE,
            "Unable to obtain sudo privileges in non-interactive mode.",
        )
    )

"""Tunable inventory: discovers the mutable resources present on this host.

The inventory is read-only and rebuilt on every invocation. A CPU or block
device without a control file is simply omitted, and unreadable files are
skipped rather than failing the scan.
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional

import psutil

from topt_engine.models import ResourceKey, ResourceKind, TunableResource
from topt_engine.resources import (
    GovernorResource,
    IoSchedulerResource,
    ProcessPriorityResource,
    Resource,
    SchedulerChoice,
    SwappinessResource,
    read_text,
)
from topt_engine.writers import HostWriter

logger = logging.getLogger(__name__)

_CPU_DIR_RE = re.compile(r"^cpu(\d+)$")
ELEVATION_PROGRAMS = frozenset({"sudo", "doas", "pkexec", "su"})


@dataclass(frozen=True)
class HostPaths:
    """Roots of the kernel pseudo-filesystems; overridable for tests."""

    sysfs_root: Path = Path("/sys")
    procfs_root: Path = Path("/proc")

    @property
    def cpu_dir(self) -> Path:
        return self.sysfs_root / "devices" / "system" / "cpu"

    @property
    def block_dir(self) -> Path:
        return self.sysfs_root / "block"

    @property
    def swappiness(self) -> Path:
        return self.procfs_root / "sys" / "vm" / "swappiness"


def resolve_priority_target(start_pid: Optional[int] = None) -> Optional[int]:
    """Return the pid of the invoking shell.

    Starts from the parent of this process and walks past elevation helpers
    such as ``sudo`` so the nice value lands on the operator's shell, whose
    later children inherit it.
    """
    pid = start_pid if start_pid is not None else os.getppid()
    try:
        proc: Optional[psutil.Process] = psutil.Process(pid)
        while proc is not None and proc.name() in ELEVATION_PROGRAMS:
            proc = proc.parent()
    except psutil.Error as exc:
        logger.debug("Cannot resolve priority target from pid %s: %s", pid, exc)
        return None
    if proc is None:
        return None
    return proc.pid


class TunableInventory:
    """Enumerates CPUs, block devices and global knobs that can be tuned."""

    def __init__(self, writer: HostWriter, paths: Optional[HostPaths] = None) -> None:
        self.writer = writer
        self.paths = paths or HostPaths()

    # -- contract -----------------------------------------------------------

    def list_governors(self) -> list[tuple[str, Path]]:
        """Return ``(cpu_id, path)`` for every CPU exposing a governor file."""
        found: list[tuple[int, str, Path]] = []
        for entry in self._iterdir(self.paths.cpu_dir):
            match = _CPU_DIR_RE.match(entry.name)
            if not match:
                continue
            path = entry / "cpufreq" / "scaling_governor"
            if path.is_file():
                found.append((int(match.group(1)), entry.name, path))
        return [(name, path) for _, name, path in sorted(found)]

    def list_io_schedulers(self) -> list[tuple[str, Path, SchedulerChoice]]:
        """Return ``(device, path, choice)`` for every readable scheduler file."""
        found: list[tuple[str, Path, SchedulerChoice]] = []
        for entry in sorted(self._iterdir(self.paths.block_dir)):
            path = entry / "queue" / "scheduler"
            raw = read_text(path)
            if raw is None:
                continue
            found.append((entry.name, path, SchedulerChoice.parse(raw)))
        return found

    def read_swappiness(self) -> Optional[int]:
        raw = read_text(self.paths.swappiness)
        if raw is None:
            return None
        try:
            return int(raw)
        except ValueError:
            logger.warning("Unexpected swappiness value %r", raw)
            return None

    def is_writable(self, path: Path) -> bool:
        return self.writer.can_write(path)

    # -- resource construction ---------------------------------------------

    def governors(self) -> list[GovernorResource]:
        return [GovernorResource(cpu, path, self.writer) for cpu, path in self.list_governors()]

    def schedulers(self) -> list[IoSchedulerResource]:
        return [
            IoSchedulerResource(device, path, self.writer)
            for device, path, _ in self.list_io_schedulers()
        ]

    def swappiness(self) -> Optional[SwappinessResource]:
        if not self.paths.swappiness.is_file():
            return None
        return SwappinessResource(self.paths.swappiness, self.writer)

    def process(
        self, pid: int, expected_create_time: Optional[float] = None
    ) -> Optional[ProcessPriorityResource]:
        resource = ProcessPriorityResource(pid, self.writer, expected_create_time)
        return resource if resource.exists() else None

    def discover(self, priority_pid: Optional[int] = None) -> list[Resource]:
        """Every resource present right now, in processing order."""
        resources: list[Resource] = []
        resources.extend(self.governors())
        swappiness = self.swappiness()
        if swappiness is not None:
            resources.append(swappiness)
        resources.extend(self.schedulers())
        if priority_pid is not None:
            process = self.process(priority_pid)
            if process is not None:
                resources.append(process)
        return resources

    def resolve(
        self, key: ResourceKey, identity: Optional[dict] = None
    ) -> Optional[Resource]:
        """Re-find a previously captured resource, or None if it disappeared."""
        if key.kind is ResourceKind.CPU_GOVERNOR:
            path = self.paths.cpu_dir / key.identifier / "cpufreq" / "scaling_governor"
            return GovernorResource(key.identifier, path, self.writer) if path.is_file() else None
        if key.kind is ResourceKind.IO_SCHEDULER:
            path = self.paths.block_dir / key.identifier / "queue" / "scheduler"
            return IoSchedulerResource(key.identifier, path, self.writer) if path.is_file() else None
        if key.kind is ResourceKind.SWAPPINESS:
            return self.swappiness()
        if key.kind is ResourceKind.PROCESS_PRIORITY:
            try:
                pid = int(key.identifier)
            except ValueError:
                return None
            create_time = (identity or {}).get("create_time")
            if not isinstance(create_time, (int, float)):
                # Without the captured identity any process could own this pid.
                return None
            return self.process(pid, create_time)
        return None

    def snapshot(self, priority_pid: Optional[int] = None) -> list[TunableResource]:
        """Live values of all discovered resources, for status reporting."""
        return [
            TunableResource(
                key=resource.key,
                current_value=resource.read(),
                available=resource.candidates() if isinstance(resource, IoSchedulerResource) else None,
            )
            for resource in self.discover(priority_pid)
        ]

    @staticmethod
    def _iterdir(directory: Path) -> Iterator[Path]:
        try:
            yield from directory.iterdir()
        except OSError as exc:
            logger.debug("Cannot list %s: %s", directory, exc)

"""Tunable resources behind a common read/write/candidates interface.

Every resource is bound to a :class:`~topt_engine.writers.HostWriter`, so the
applier and restorer never touch the filesystem or processes directly and can
be exercised against fake resources.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional, Protocol

import psutil

from topt_common.errors import ResourceUnavailable
from topt_engine.models import ResourceKey, ResourceKind
from topt_engine.writers import HostWriter

logger = logging.getLogger(__name__)


def read_text(path: Path) -> Optional[str]:
    """Return the stripped contents of a control file, or None if unreadable."""
    try:
        return path.read_text(encoding="utf-8").strip()
    except (OSError, UnicodeDecodeError) as exc:
        logger.debug("Cannot read %s: %s", path, exc)
        return None


@dataclass
class SchedulerChoice:
    """Schedulers offered by a block device; the kernel brackets the active one."""

    available: list[str] = field(default_factory=list)
    active: Optional[str] = None

    @classmethod
    def parse(cls, raw: str) -> "SchedulerChoice":
        choice = cls()
        for token in raw.split():
            if token.startswith("[") and token.endswith("]"):
                token = token[1:-1]
                choice.active = token
            if token:
                choice.available.append(token)
        return choice

    def offers(self, name: str) -> bool:
        return name in self.available


class DeviceClass(str, Enum):
    NVME = "nvme"
    SATA = "sata"


class Resource(Protocol):
    key: ResourceKey

    def exists(self) -> bool: ...

    def read(self) -> Optional[str]: ...

    def writable(self) -> bool: ...

    def candidates(self) -> Optional[list[str]]: ...

    def write(self, value: str) -> None: ...


class FileResource:
    """A tunable backed by a single sysfs/procfs control file."""

    def __init__(self, key: ResourceKey, path: Path, writer: HostWriter) -> None:
        self.key = key
        self.path = path
        self.writer = writer

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.key}, {self.path})"

    def exists(self) -> bool:
        return self.path.is_file()

    def read(self) -> Optional[str]:
        return read_text(self.path)

    def writable(self) -> bool:
        return self.writer.can_write(self.path)

    def candidates(self) -> Optional[list[str]]:
        return None

    def write(self, value: str) -> None:
        self.writer.write_text(self.path, value)


class GovernorResource(FileResource):
    """``cpufreq/scaling_governor`` of one CPU."""

    def __init__(self, cpu_id: str, path: Path, writer: HostWriter) -> None:
        super().__init__(ResourceKey(ResourceKind.CPU_GOVERNOR, cpu_id), path, writer)

    def candidates(self) -> Optional[list[str]]:
        raw = read_text(self.path.with_name("scaling_available_governors"))
        return raw.split() if raw else None


class IoSchedulerResource(FileResource):
    """``queue/scheduler`` of one block device."""

    def __init__(self, device: str, path: Path, writer: HostWriter) -> None:
        super().__init__(ResourceKey(ResourceKind.IO_SCHEDULER, device), path, writer)
        self.device = device

    def choice(self) -> Optional[SchedulerChoice]:
        raw = read_text(self.path)
        if raw is None:
            return None
        return SchedulerChoice.parse(raw)

    def read(self) -> Optional[str]:
        choice = self.choice()
        return choice.active if choice else None

    def candidates(self) -> Optional[list[str]]:
        choice = self.choice()
        return list(choice.available) if choice else None

    @property
    def rotational(self) -> Optional[bool]:
        raw = read_text(self.path.with_name("rotational"))
        if raw not in ("0", "1"):
            return None
        return raw == "1"

    @property
    def device_class(self) -> DeviceClass:
        if self.device.startswith("nvme"):
            return DeviceClass.NVME
        return DeviceClass.SATA


class SwappinessResource(FileResource):
    """Global ``vm.swappiness``."""

    def __init__(self, path: Path, writer: HostWriter) -> None:
        super().__init__(ResourceKey(ResourceKind.SWAPPINESS), path, writer)

    def write(self, value: str) -> None:
        try:
            int(value)
        except ValueError as exc:
            raise ResourceUnavailable(f"Invalid swappiness value {value!r}", cause=exc) from exc
        super().write(value)


class ProcessPriorityResource:
    """Nice value of one process.

    ``expected_create_time`` pins the resource to a specific process so that a
    recycled pid is reported as gone rather than reniced.
    """

    def __init__(
        self,
        pid: int,
        writer: HostWriter,
        expected_create_time: Optional[float] = None,
    ) -> None:
        self.key = ResourceKey(ResourceKind.PROCESS_PRIORITY, str(pid))
        self.pid = pid
        self.writer = writer
        self.expected_create_time = expected_create_time

    def __repr__(self) -> str:
        return f"ProcessPriorityResource({self.pid})"

    def _process(self) -> Optional[psutil.Process]:
        try:
            proc = psutil.Process(self.pid)
            if (
                self.expected_create_time is not None
                and abs(proc.create_time() - self.expected_create_time) > 0.01
            ):
                return None
            return proc
        except (psutil.NoSuchProcess, psutil.ZombieProcess):
            return None

    def exists(self) -> bool:
        return self._process() is not None

    def read(self) -> Optional[str]:
        proc = self._process()
        if proc is None:
            return None
        try:
            return str(proc.nice())
        except psutil.Error:
            return None

    def writable(self) -> bool:
        return self.exists()

    def candidates(self) -> Optional[list[str]]:
        return None

    def write(self, value: str) -> None:
        try:
            nice = int(value)
        except ValueError as exc:
            raise ResourceUnavailable(f"Invalid nice value {value!r}", cause=exc) from exc
        self.writer.set_nice(self.pid, nice)

    def identity(self) -> dict[str, object]:
        """Name and create time of the process, for pid-reuse detection."""
        proc = self._process()
        if proc is None:
            return {}
        try:
            return {"pid": self.pid, "name": proc.name(), "create_time": proc.create_time()}
        except psutil.Error:
            return {"pid": self.pid}

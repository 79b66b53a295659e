"""Host writers: the only code paths that mutate host state.

A writer decides *how* a value reaches a control file or a process: directly
from this process (root, or files the user owns) or through ``sudo -n``.
Engine components never open control files for writing themselves.
"""

from __future__ import annotations

import logging
import os
import stat
import subprocess
from pathlib import Path
from typing import Protocol, Sequence

import psutil

from topt_common.errors import PrivilegeUnavailable, ResourceUnavailable

logger = logging.getLogger(__name__)

_WRITE_BITS = stat.S_IWUSR | stat.S_IWGRP | stat.S_IWOTH


class HostWriter(Protocol):
    elevated: bool

    def can_write(self, path: Path) -> bool: ...

    def write_text(self, path: Path, value: str) -> None: ...

    def set_nice(self, pid: int, value: int) -> None: ...

    def run(self, argv: Sequence[str]) -> bool: ...


def _run(argv: Sequence[str], *, input_text: str | None = None, timeout: float = 10.0) -> subprocess.CompletedProcess[str] | None:
    """Run a command, returning the completed process or None when it cannot start."""
    try:
        return subprocess.run(
            list(argv),
            input=input_text,
            check=False,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except (OSError, subprocess.TimeoutExpired) as exc:
        logger.debug("Command %s failed to run: %s", argv[0], exc)
        return None


class DirectWriter:
    """Write from the current process.

    ``elevated`` only changes how refusals are classified: without elevation a
    permission failure is a missing capability, with it the resource itself is
    at fault.
    """

    def __init__(self, elevated: bool = False) -> None:
        self.elevated = elevated

    def can_write(self, path: Path) -> bool:
        return path.is_file() and os.access(path, os.W_OK)

    def _refusal(self, what: str, exc: Exception | None = None) -> Exception:
        if self.elevated:
            return ResourceUnavailable(f"{what} refused the write", cause=exc)
        return PrivilegeUnavailable(f"{what} requires elevated privileges", cause=exc)

    def write_text(self, path: Path, value: str) -> None:
        if not path.exists():
            raise ResourceUnavailable(f"{path} does not exist", context={"path": path})
        try:
            with open(path, "w", encoding="utf-8") as handle:
                handle.write(value)
        except PermissionError as exc:
            raise self._refusal(str(path), exc) from exc
        except OSError as exc:
            raise ResourceUnavailable(
                f"Writing {value!r} to {path} failed: {exc.strerror or exc}",
                context={"path": path, "value": value},
                cause=exc,
            ) from exc

    def set_nice(self, pid: int, value: int) -> None:
        try:
            psutil.Process(pid).nice(value)
        except psutil.NoSuchProcess as exc:
            raise ResourceUnavailable(f"Process {pid} no longer exists", cause=exc) from exc
        except psutil.AccessDenied as exc:
            raise self._refusal(f"Setting nice {value} on process {pid}", exc) from exc

    def run(self, argv: Sequence[str]) -> bool:
        result = _run(argv)
        return result is not None and result.returncode == 0


class SudoWriter:
    """Write through non-interactive sudo (``sudo -n tee``, ``sudo -n renice --priority``).

    ``--priority`` sets an absolute nice value on every util-linux release;
    newer releases read ``-n`` as a relative increment.
    """

    elevated = True

    def __init__(self, sudo: str = "sudo") -> None:
        self.sudo = sudo

    def can_write(self, path: Path) -> bool:
        try:
            mode = path.stat().st_mode
        except OSError:
            return False
        return stat.S_ISREG(mode) and bool(mode & _WRITE_BITS)

    def write_text(self, path: Path, value: str) -> None:
        if not path.exists():
            raise ResourceUnavailable(f"{path} does not exist", context={"path": path})
        result = _run([self.sudo, "-n", "tee", str(path)], input_text=value)
        if result is None:
            raise PrivilegeUnavailable(f"{self.sudo} could not be executed")
        if result.returncode != 0:
            raise ResourceUnavailable(
                f"Writing {value!r} to {path} failed: {result.stderr.strip() or 'tee exited ' + str(result.returncode)}",
                context={"path": path, "value": value},
            )

    def set_nice(self, pid: int, value: int) -> None:
        if not psutil.pid_exists(pid):
            raise ResourceUnavailable(f"Process {pid} no longer exists")
        result = _run([self.sudo, "-n", "renice", "--priority", str(value), "-p", str(pid)])
        if result is None or result.returncode != 0:
            detail = result.stderr.strip() if result is not None else "sudo unavailable"
            raise ResourceUnavailable(f"renice of process {pid} failed: {detail}")

    def run(self, argv: Sequence[str]) -> bool:
        result = _run([self.sudo, "-n", *argv])
        return result is not None and result.returncode == 0

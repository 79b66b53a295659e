"""Detection of the elevated-write capability."""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import sys
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Sequence

from topt_common.errors import ElevationMissing
from topt_engine.api import DirectWriter, HostWriter, SudoWriter

logger = logging.getLogger(__name__)


class PrivilegeMode(str, Enum):
    ROOT = "root"
    SUDO = "sudo"
    NONE = "none"


@dataclass
class PrivilegeStatus:
    mode: PrivilegeMode
    message: Optional[str] = None
    sudo: str = "sudo"

    @property
    def elevated(self) -> bool:
        return self.mode is not PrivilegeMode.NONE

    def writer(self) -> HostWriter:
        if self.mode is PrivilegeMode.ROOT:
            return DirectWriter(elevated=True)
        if self.mode is PrivilegeMode.SUDO:
            return SudoWriter(self.sudo)
        return DirectWriter(elevated=False)


def _default_runner(argv: Sequence[str], interactive: bool) -> int:
    try:
        if interactive:
            return subprocess.run(list(argv), check=False).returncode
        return subprocess.run(
            list(argv), check=False, capture_output=True, timeout=10
        ).returncode
    except (OSError, subprocess.TimeoutExpired) as exc:
        logger.debug("%s failed: %s", argv[0], exc)
        return 1


def _stdio_is_tty() -> bool:
    return sys.stdin.isatty() and sys.stdout.isatty()


class PrivilegeBroker:
    """Decides how (and whether) host writes can be elevated.

    Root writes directly. Otherwise ``sudo`` must at least be installed; when
    it needs a password we prompt on a terminal and degrade to read-only
    reporting elsewhere.
    """

    def __init__(
        self,
        interactive: bool = True,
        sudo: str = "sudo",
        runner: Callable[[Sequence[str], bool], int] = _default_runner,
        is_tty: Callable[[], bool] = _stdio_is_tty,
        geteuid: Callable[[], int] = os.geteuid,
        which: Callable[[str], Optional[str]] = shutil.which,
    ) -> None:
        self.interactive = interactive
        self.sudo = sudo
        self._runner = runner
        self._is_tty = is_tty
        self._geteuid = geteuid
        self._which = which

    def probe(self) -> PrivilegeStatus:
        if self._geteuid() == 0:
            return PrivilegeStatus(PrivilegeMode.ROOT, "Running in privileged mode (root)")
        if self._which(self.sudo) is None:
            raise ElevationMissing(
                f"{self.sudo} is required but not found",
                context={"sudo": self.sudo},
            )
        if self._runner([self.sudo, "-n", "true"], False) == 0:
            return PrivilegeStatus(PrivilegeMode.SUDO, sudo=self.sudo)

        if self.interactive and self._is_tty():
            logger.debug("Prompting for sudo credentials")
            if self._runner([self.sudo, "-v"], True) == 0:
                return PrivilegeStatus(PrivilegeMode.SUDO, sudo=self.sudo)
            return PrivilegeStatus(
                PrivilegeMode.NONE,
                "Unable to obtain sudo privileges. Some optimizations will be skipped.",
                sudo=self.sudo,
            )
        return PrivilegeStatus(
            PrivilegeMode.NONE,
            "Unable to obtain sudo privileges in non-interactive mode. "
            "Some optimizations may not work. Please run with proper sudo privileges for full functionality.",
            sudo=self.sudo,
        )

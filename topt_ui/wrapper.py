"""Run the task-optimizer CLI with elevated privileges.

Installed as ``task-optimizer-sudo``: re-executes the CLI under ``sudo`` so
every optimization can be applied. The invoking user is still resolved
through ``SUDO_UID``, so state stays scoped to that user.
"""

from __future__ import annotations

import os
import shutil
import sys
from typing import Optional, Sequence

from rich.console import Console

from topt_ui.ui.adapters.console import THEME


def build_command(sudo: str, argv: Sequence[str]) -> list[str]:
    return [sudo, sys.executable, "-m", "topt_ui", *argv]


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = list(sys.argv[1:] if argv is None else argv)
    console = Console(theme=THEME, stderr=True, highlight=False)

    if os.geteuid() == 0:
        from topt_ui.cli import app

        app(args=args)
        return

    sudo = shutil.which("sudo")
    if sudo is None:
        console.print("Error: sudo is required but not found", style="error")
        sys.exit(1)

    console.print("Executing task-optimizer with elevated privileges...", style="accent")
    os.execv(sudo, build_command(sudo, args))


if __name__ == "__main__":
    main()

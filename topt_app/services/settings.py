"""Runtime settings for the optimizer, resolved from the environment."""

from __future__ import annotations

import os
import pwd
import tempfile
from pathlib import Path
from typing import Mapping, Optional

from pydantic import BaseModel, Field

from topt_common.config import parse_bool_env, parse_int_env, parse_path_env
from topt_engine.api import HostPaths, OptimizationProfile


def _default_state_dir() -> Path:
    return Path(tempfile.gettempdir())


class OptimizerSettings(BaseModel):
    """Where state lives, which host trees to tune, and what to apply."""

    state_dir: Path = Field(default_factory=_default_state_dir, description="Directory holding per-user state")
    sysfs_root: Path = Field(default=Path("/sys"), description="Mount point of sysfs")
    procfs_root: Path = Field(default=Path("/proc"), description="Mount point of procfs")
    interactive: bool = Field(default=True, description="Allow prompting for a sudo password")
    profile: OptimizationProfile = Field(default_factory=OptimizationProfile)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "OptimizerSettings":
        env = os.environ if environ is None else environ
        values: dict[str, object] = {}
        state_dir = parse_path_env(env.get("TOPT_STATE_DIR"))
        if state_dir is not None:
            values["state_dir"] = state_dir
        sysfs_root = parse_path_env(env.get("TOPT_SYSFS_ROOT"))
        if sysfs_root is not None:
            values["sysfs_root"] = sysfs_root
        procfs_root = parse_path_env(env.get("TOPT_PROCFS_ROOT"))
        if procfs_root is not None:
            values["procfs_root"] = procfs_root
        if parse_bool_env(env.get("TOPT_NON_INTERACTIVE")):
            values["interactive"] = False
        return cls(**values)

    def host_paths(self) -> HostPaths:
        return HostPaths(sysfs_root=self.sysfs_root, procfs_root=self.procfs_root)


def resolve_user_id(environ: Optional[Mapping[str, str]] = None) -> int:
    """Return the id of the invoking user, looking through ``sudo``."""
    env = os.environ if environ is None else environ
    if os.geteuid() == 0:
        sudo_uid = parse_int_env(env.get("SUDO_UID"))
        if sudo_uid is not None:
            return sudo_uid
    return os.getuid()


def resolve_owner(user_id: int, environ: Optional[Mapping[str, str]] = None) -> Optional[tuple[int, int]]:
    """Return ``(uid, gid)`` that root-created state must be handed over to.

    None unless running as root on behalf of another user, typically through
    ``task-optimizer-sudo``.
    """
    if os.geteuid() != 0 or user_id == 0:
        return None
    env = os.environ if environ is None else environ
    gid = parse_int_env(env.get("SUDO_GID"))
    if gid is None:
        try:
            gid = pwd.getpwuid(user_id).pw_gid
        except KeyError:
            gid = user_id
    return user_id, gid

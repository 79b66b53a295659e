"""Durable per-user snapshot store.

Layout under ``state_dir``::

    task_optimizer_state_<uid>.jsonl   session header + one line per record
    task_optimizer_backups_<uid>/      auxiliary captured data (owner-only)

Records are appended and fsynced as they are committed, so a run killed
half-way through capture leaves a shorter but still loadable file.

State is only trusted when it is a regular file owned by the user (or root)
with no group or other permission bits. When root writes on behalf of a sudo
user, ``owner`` hands every created path over to that user.
"""

from __future__ import annotations

import json
import logging
import os
import shutil
import stat
from pathlib import Path
from typing import Any, Optional

from topt_common.errors import AlreadyActive, NoActiveSession, SnapshotStoreError
from topt_engine.models import ResourceKey, ResourceKind, Session, SnapshotRecord

logger = logging.getLogger(__name__)

STATE_FILE_TEMPLATE = "task_optimizer_state_{uid}.jsonl"
BACKUP_DIR_TEMPLATE = "task_optimizer_backups_{uid}"

_FILE_MODE = 0o600
_DIR_MODE = 0o700


class SnapshotStore:
    """Records prior values of tunables for one user's session."""

    def __init__(
        self,
        state_dir: Path,
        user_id: int,
        owner: Optional[tuple[int, int]] = None,
    ) -> None:
        self.state_dir = Path(state_dir)
        self.user_id = user_id
        self.owner = owner
        self.state_path = self.state_dir / STATE_FILE_TEMPLATE.format(uid=user_id)
        self.backup_dir = self.state_dir / BACKUP_DIR_TEMPLATE.format(uid=user_id)
        self._session: Optional[Session] = None
        self._pending: list[SnapshotRecord] = []

    @property
    def session(self) -> Optional[Session]:
        return self._session

    def exists(self) -> bool:
        return os.path.lexists(self.state_path)

    def begin_session(self, task_label: str) -> Session:
        """Create the session file; refuse when one is already present."""
        if self.exists():
            raise AlreadyActive(
                "A task optimization session is already active",
                context={"state_file": self.state_path},
            )
        session = Session(user_id=self.user_id, task_label=task_label, started_at=Session.now())
        header = {
            "type": "session",
            "task_label": session.task_label,
            "started_at": session.started_at,
            "user_id": session.user_id,
        }
        try:
            self.state_dir.mkdir(parents=True, exist_ok=True)
            fd = os.open(self.state_path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, _FILE_MODE)
        except FileExistsError as exc:
            raise AlreadyActive(
                "A task optimization session is already active",
                context={"state_file": self.state_path},
                cause=exc,
            ) from exc
        except OSError as exc:
            raise SnapshotStoreError(
                f"Cannot create state file {self.state_path}: {exc.strerror or exc}",
                cause=exc,
            ) from exc
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(json.dumps(header) + "\n")
            handle.flush()
            os.fsync(handle.fileno())
        self._hand_over(self.state_path)
        self._ensure_backup_dir()
        self._session = session
        self._pending = []
        logger.debug("Session started for uid %s at %s", self.user_id, self.state_path)
        return session

    def record(self, key: ResourceKey, value: str) -> bool:
        """Stage a prior value; the first value captured for a key wins."""
        if self._session is None:
            raise NoActiveSession("No session to record into")
        record = SnapshotRecord(key=key, prior_value=value)
        if not self._session.add(record):
            return False
        self._pending.append(record)
        return True

    def commit(self) -> None:
        """Append staged records to the state file."""
        if not self._pending:
            return
        lines = "".join(json.dumps(self._encode(record)) + "\n" for record in self._pending)
        try:
            fd = os.open(self.state_path, os.O_WRONLY | os.O_APPEND | os.O_NOFOLLOW)
            with os.fdopen(fd, "a", encoding="utf-8") as handle:
                handle.write(lines)
                handle.flush()
                os.fsync(handle.fileno())
        except OSError as exc:
            raise SnapshotStoreError(
                f"Cannot append to state file {self.state_path}: {exc.strerror or exc}",
                cause=exc,
            ) from exc
        self._pending = []

    def load(self) -> Session:
        """Read the session back, tolerating truncated or partial files."""
        try:
            text = self._read_owned(self.state_path)
        except FileNotFoundError as exc:
            raise NoActiveSession("No optimization state found", cause=exc) from exc
        except OSError as exc:
            raise SnapshotStoreError(
                f"Cannot read state file {self.state_path}: {exc.strerror or exc}",
                cause=exc,
            ) from exc

        session = Session(user_id=self.user_id, task_label=None, started_at=None)
        for lineno, line in enumerate(text.splitlines(), start=1):
            if not line.strip():
                continue
            try:
                entry = json.loads(line)
                if entry.get("type") == "session":
                    session.task_label = entry.get("task_label")
                    session.started_at = entry.get("started_at")
                elif entry.get("type") == "record":
                    session.add(self._decode(entry))
                else:
                    raise ValueError(f"unknown entry type {entry.get('type')!r}")
            except (ValueError, KeyError, TypeError, AttributeError) as exc:
                logger.warning("Skipping malformed line %d in %s: %s", lineno, self.state_path, exc)
        self._session = session
        self._pending = []
        return session

    def discard(self) -> None:
        """Remove the session and auxiliary data; a no-op if already gone."""
        try:
            self.state_path.unlink(missing_ok=True)
            if self.backup_dir.exists():
                shutil.rmtree(self.backup_dir)
        except OSError as exc:
            raise SnapshotStoreError(
                f"Cannot remove optimization state {self.state_path}: {exc.strerror or exc}",
                context={"state_file": self.state_path, "backup_dir": self.backup_dir},
                cause=exc,
            ) from exc
        self._session = None
        self._pending = []

    # -- auxiliary data ------------------------------------------------------

    def save_aux(self, name: str, data: dict[str, Any]) -> Path:
        path = self.backup_dir / name
        self._ensure_backup_dir(path.parent)
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC | os.O_NOFOLLOW, _FILE_MODE)
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            json.dump(data, handle, indent=2)
        self._hand_over(path)
        return path

    def load_aux(self, name: str) -> Optional[dict[str, Any]]:
        path = self.backup_dir / name
        try:
            data = json.loads(self._read_owned(path))
        except FileNotFoundError:
            return None
        except (OSError, ValueError, SnapshotStoreError) as exc:
            logger.warning("Ignoring unreadable auxiliary file %s: %s", path, exc)
            return None
        return data if isinstance(data, dict) else None

    # -- helpers -------------------------------------------------------------

    def _read_owned(self, path: Path) -> str:
        """Read a state file, refusing symlinks and files others could have written."""
        fd = os.open(path, os.O_RDONLY | os.O_NOFOLLOW)
        with os.fdopen(fd, "r", encoding="utf-8") as handle:
            info = os.fstat(handle.fileno())
            if not stat.S_ISREG(info.st_mode):
                raise SnapshotStoreError(f"{path} is not a regular file")
            if info.st_uid not in (self.user_id, 0):
                raise SnapshotStoreError(
                    f"{path} is owned by uid {info.st_uid}, not {self.user_id}; refusing to use it",
                    context={"path": path, "owner": info.st_uid},
                )
            if info.st_mode & 0o077:
                raise SnapshotStoreError(
                    f"{path} is accessible by other users (mode {stat.S_IMODE(info.st_mode):o}); "
                    "refusing to use it",
                    context={"path": path},
                )
            return handle.read()

    def _hand_over(self, path: Path) -> None:
        if self.owner is None:
            return
        try:
            os.chown(path, *self.owner, follow_symlinks=False)
        except OSError as exc:
            raise SnapshotStoreError(
                f"Cannot hand {path} over to uid {self.owner[0]}: {exc.strerror or exc}",
                cause=exc,
            ) from exc

    def _ensure_backup_dir(self, directory: Optional[Path] = None) -> None:
        target = directory or self.backup_dir
        try:
            target.mkdir(mode=_DIR_MODE, parents=True, exist_ok=True)
            os.chmod(self.backup_dir, _DIR_MODE)
        except OSError as exc:
            raise SnapshotStoreError(
                f"Cannot create backup directory {target}: {exc.strerror or exc}",
                cause=exc,
            ) from exc
        self._hand_over(self.backup_dir)
        if target != self.backup_dir:
            self._hand_over(target)

    @staticmethod
    def _encode(record: SnapshotRecord) -> dict[str, str]:
        return {
            "type": "record",
            "kind": record.key.kind.value,
            "identifier": record.key.identifier,
            "prior_value": record.prior_value,
        }

    @staticmethod
    def _decode(entry: dict[str, Any]) -> SnapshotRecord:
        key = ResourceKey(ResourceKind(entry["kind"]), str(entry.get("identifier", "")))
        return SnapshotRecord(key=key, prior_value=str(entry["prior_value"]))

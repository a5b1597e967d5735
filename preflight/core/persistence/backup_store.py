"""
Backup store — timestamped snapshots of the managed config file.

Snapshots live in one directory, one file each, named
``<basename>-YYYYmmdd-HHMMSS``. When a name for the current second is
already taken a ``-N`` counter is appended, so two snapshots in the
same second still order deterministically. There is no index file:
enumeration is always derived from the directory listing, sorted by
the parsed ``(timestamp, counter)`` key, newest first.

Snapshots are never modified after creation. Restores overwrite the
destination with the snapshot's exact bytes, through ``sudo install``
when the destination is not writable by the operator.
"""

from __future__ import annotations

import logging
import re
import shutil
from datetime import datetime
from pathlib import Path
from typing import Callable

from preflight.adapters.shell.command import Runner, run_command
from preflight.core.errors import BackupNotFound, RestorePathRejected, StorageError
from preflight.core.models.ledger import ConfigBackupEntry
from preflight.core.persistence.atomic import install_file
from preflight.core.persistence.ledger_file import Ledger

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y%m%d-%H%M%S"
RESTORED_FILE_MODE = 0o644

_INDEX_RE = re.compile(r"^[0-9]+$")


class BackupStore:
    """Snapshots of one managed file, addressable by index or path.

    Args:
        backup_dir: Directory holding the snapshots.
        ledger: Ledger that receives a ``WSLCONF_BACKUP:`` entry per snapshot.
        basename: Base name embedded in snapshot names (``wsl.conf``).
        dry_run: Resolve and decide, but never write.
        clock: Returns "now"; injectable for deterministic tests.
        runner: Runs ``sudo install`` when the destination is not writable.
    """

    def __init__(
        self,
        backup_dir: Path,
        ledger: Ledger,
        *,
        basename: str = "wsl.conf",
        dry_run: bool = False,
        clock: Callable[[], datetime] = datetime.now,
        runner: Runner = run_command,
    ):
        self._dir = backup_dir
        self._ledger = ledger
        self._basename = basename
        self._dry_run = dry_run
        self._clock = clock
        self._runner = runner
        self._name_re = re.compile(
            rf"^{re.escape(basename)}-(\d{{8}}-\d{{6}})(?:-(\d+))?$"
        )

    @property
    def backup_dir(self) -> Path:
        return self._dir

    # ── Naming ──────────────────────────────────────────────────

    def _next_path(self) -> Path:
        stamp = self._clock().strftime(TIMESTAMP_FORMAT)
        candidate = self._dir / f"{self._basename}-{stamp}"
        counter = 1
        while candidate.exists():
            candidate = self._dir / f"{self._basename}-{stamp}-{counter}"
            counter += 1
        return candidate

    # ── Operations ──────────────────────────────────────────────

    def snapshot(self, source: Path) -> Path:
        """Copy ``source`` into a new snapshot and record it in the ledger.

        A missing source produces an empty placeholder snapshot, so a
        later restore puts the file back to "empty".

        Returns:
            Path of the new snapshot (hypothetical in dry-run mode).

        Raises:
            StorageError: If the copy fails.
        """
        dest = self._next_path()

        if self._dry_run:
            logger.info("[dry-run] Would back up %s to %s", source, dest)
            self._ledger.record([ConfigBackupEntry(path=str(dest))])
            return dest

        try:
            self._dir.mkdir(parents=True, exist_ok=True)
            if source.is_file():
                shutil.copy2(source, dest)
            else:
                dest.touch(exist_ok=False)
        except OSError as e:
            raise StorageError(dest, f"Cannot create backup ({e.strerror or e})") from e

        self._ledger.record([ConfigBackupEntry(path=str(dest))])
        logger.info("Backed up %s to %s", source, dest)
        return dest

    def list_backups(self) -> list[Path]:
        """All snapshots, newest first."""
        if not self._dir.is_dir():
            return []
        keyed = []
        for path in self._dir.iterdir():
            m = self._name_re.match(path.name)
            if m and path.is_file():
                keyed.append(((m.group(1), int(m.group(2) or 0)), path))
        keyed.sort(reverse=True)
        return [path for _, path in keyed]

    def latest(self) -> Path | None:
        backups = self.list_backups()
        return backups[0] if backups else None

    def resolve(self, value: str | int) -> Path:
        """Resolve an index (``0`` = newest) or a path to a snapshot.

        Relative paths are taken relative to the backup directory.
        Any path that lands outside it, or that is not one of this
        store's snapshot names, is rejected before anything is read.

        Raises:
            RestorePathRejected: Path escapes the backup directory.
            BackupNotFound: Index out of range, or path does not exist.
        """
        text = str(value).strip()
        if not text:
            raise RestorePathRejected("A backup index or path is required")

        if _INDEX_RE.match(text):
            index = int(text)
            backups = self.list_backups()
            if index >= len(backups):
                if not backups:
                    raise BackupNotFound(f"No backups found in {self._dir}")
                raise BackupNotFound(
                    f"Index {index} out of range (0..{len(backups) - 1})"
                )
            return backups[index]

        candidate = Path(text).expanduser()
        if not candidate.is_absolute():
            candidate = self._dir / candidate
        resolved = candidate.resolve()
        root = self._dir.resolve()

        try:
            relative = resolved.relative_to(root)
        except ValueError:
            raise RestorePathRejected(f"Backup must be under {self._dir}: {text}") from None

        if len(relative.parts) != 1 or not self._name_re.match(relative.name):
            raise RestorePathRejected(f"Not a {self._basename} backup: {text}")
        if not resolved.is_file():
            raise BackupNotFound(f"Backup not found: {text}")
        return resolved

    def restore_latest(self, dest: Path) -> Path | None:
        """Restore the newest snapshot over ``dest``.

        Returns:
            The snapshot used, or None if there is none (the caller warns).
        """
        latest = self.latest()
        if latest is None:
            logger.info("No backups found in %s", self._dir)
            return None
        self._copy_over(latest, dest)
        return latest

    def restore(self, value: str | int, dest: Path) -> Path:
        """Restore the snapshot named by index or path over ``dest``."""
        backup = self.resolve(value)
        self._copy_over(backup, dest)
        return backup

    def _copy_over(self, backup: Path, dest: Path) -> None:
        if self._dry_run:
            logger.info("[dry-run] Would restore %s -> %s", backup, dest)
            return
        try:
            data = backup.read_bytes()
        except OSError as e:
            raise StorageError(backup, f"Cannot read backup ({e.strerror or e})") from e
        install_file(dest, data, mode=RESTORED_FILE_MODE, runner=self._runner)
        logger.info("Restored %s from %s", dest, backup)

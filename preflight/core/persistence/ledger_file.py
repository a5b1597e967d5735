"""
Ledger — durable record of every reversible mutation made on the host.

Stored as plain text, one tagged entry per line, in
``<state_dir>/installed-packages.txt``. The ledger is append-only with
exact-match deletion:

- ``record`` adds entries not already present (exact text match).
- ``remove_exact`` deletes lines equal to a pattern, never prefix
  matches, so removing ``PKG:git`` leaves ``PKG:git-lfs`` alone.

Every mutating call rewrites the file atomically and fsyncs before
returning, so a crash right after a real-world change cannot lose the
record of it. No locking: concurrent runs are not supported.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, TypeVar

from preflight.core.errors import StorageError
from preflight.core.models.ledger import LedgerEntry, parse_entry
from preflight.core.persistence.atomic import atomic_write_text, printable, read_text

logger = logging.getLogger(__name__)

DEFAULT_LEDGER_FILE = "installed-packages.txt"

E = TypeVar("E")


def _as_line(entry: LedgerEntry | str) -> str:
    return entry if isinstance(entry, str) else entry.line


class Ledger:
    """Plain-text ledger of tracked mutations.

    With ``dry_run=True`` every read works normally but no write ever
    reaches the disk; mutating calls only log what they would do.
    """

    def __init__(self, path: Path, *, dry_run: bool = False):
        self._path = path
        self._dry_run = dry_run

    @property
    def path(self) -> Path:
        return self._path

    @property
    def dry_run(self) -> bool:
        return self._dry_run

    # ── Reads ───────────────────────────────────────────────────

    def lines(self) -> list[str]:
        """All entry lines in file order (blank lines ignored)."""
        if not self._path.is_file():
            return []
        try:
            raw = read_text(self._path)
        except OSError as e:
            raise StorageError(self._path, f"Cannot read ledger ({e.strerror or e})") from e
        return [line for line in raw.splitlines() if line.strip()]

    def entries(self) -> list[LedgerEntry]:
        """All entries, parsed into their typed form.

        Bytes that are not UTF-8 show up as U+FFFD here; ``lines()``
        keeps them so rewrites leave hand-edited lines intact.
        """
        return [parse_entry(printable(line)) for line in self.lines()]

    def entries_with_prefix(self, prefix: str) -> list[str]:
        """Entry lines starting with ``prefix``, in file order."""
        return [line for line in self.lines() if line.startswith(prefix)]

    def entries_of(self, kind: type[E]) -> list[E]:
        """Typed entries of one kind, in file order."""
        return [e for e in self.entries() if isinstance(e, kind)]

    def contains(self, entry: LedgerEntry | str) -> bool:
        return _as_line(entry) in self.lines()

    def is_empty(self) -> bool:
        return not self.lines()

    # ── Writes ──────────────────────────────────────────────────

    def ensure_exists(self) -> None:
        """Create the ledger file empty if it is missing."""
        if self._dry_run or self._path.is_file():
            return
        atomic_write_text(self._path, "")
        logger.debug("Created empty ledger at %s", self._path)

    def record(self, entries: Iterable[LedgerEntry | str]) -> list[str]:
        """Append each entry that is not already present.

        Returns:
            The lines actually added (duplicates are dropped, including
            duplicates within ``entries`` itself).
        """
        current = self.lines()
        seen = set(current)
        added: list[str] = []
        for entry in entries:
            line = _as_line(entry)
            if line in seen:
                continue
            seen.add(line)
            added.append(line)

        if not added:
            return []
        if self._dry_run:
            for line in added:
                logger.info("[dry-run] Would record: %s", line)
            return added

        self._write(current + added)
        for line in added:
            logger.debug("Recorded: %s", line)
        return added

    def remove_exact(self, entries: Iterable[LedgerEntry | str]) -> list[str]:
        """Delete lines exactly equal to each entry; absent ones are ignored.

        Returns:
            The distinct lines that were removed.
        """
        patterns = {_as_line(e) for e in entries}
        current = self.lines()
        kept = [line for line in current if line not in patterns]
        removed = sorted({line for line in current if line in patterns})

        if not removed:
            return []
        if self._dry_run:
            for line in removed:
                logger.info("[dry-run] Would clear: %s", line)
            return removed

        self._write(kept)
        for line in removed:
            logger.debug("Cleared: %s", line)
        return removed

    def delete_if_empty(self) -> bool:
        """Delete the ledger file once nothing is tracked any more."""
        if not self._path.is_file() or not self.is_empty():
            return False
        if self._dry_run:
            logger.info("[dry-run] Would delete empty ledger %s", self._path)
            return True
        try:
            self._path.unlink()
        except OSError as e:
            raise StorageError(self._path, f"Cannot delete ledger ({e.strerror or e})") from e
        logger.info("Ledger empty, removed %s", self._path)
        return True

    def _write(self, lines: list[str]) -> None:
        content = "".join(f"{line}\n" for line in lines)
        atomic_write_text(self._path, content)

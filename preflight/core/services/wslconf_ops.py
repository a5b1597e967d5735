"""
wsl.conf operations — enable systemd and restore earlier versions.

Editing always follows the same sequence: snapshot the current file
(even when nothing will change), compute the patched text, show the
diff, then replace the file atomically. Reverting is never done by
inverse-patching; it restores a snapshot so arbitrary earlier content
comes back byte for byte.
"""

from __future__ import annotations

import logging
from pathlib import Path

from preflight.core.context import PreflightContext
from preflight.core.errors import (
    BackupNotFound,
    RestorePathRejected,
    StorageError,
)
from preflight.core.models.report import OperationReport
from preflight.core.persistence.atomic import encode, install_file, printable, read_text
from preflight.core.services.config_patch import config_diff, ensure_key_in_section

logger = logging.getLogger(__name__)

SECTION = "boot"
KEY = "systemd"
VALUE = "true"
CONFIG_FILE_MODE = 0o644

RESTART_HINT = "In Windows PowerShell:  wsl --shutdown"


def read_config(path: Path) -> str:
    """Current content of the managed file ("" when it does not exist).

    Bytes that are not UTF-8 are kept (surrogate-escaped) so they are
    written back unchanged.
    """
    if not path.exists():
        return ""
    try:
        return read_text(path)
    except OSError as e:
        raise StorageError(path, f"Cannot read ({e.strerror or e})") from e


def set_systemd(ctx: PreflightContext) -> OperationReport:
    """Back up wsl.conf, then ensure ``[boot] systemd=true``.

    Idempotent: running it on an already-patched file leaves the file
    byte-identical (a snapshot is still taken).
    """
    report = OperationReport(operation="wslconf.set_systemd", dry_run=ctx.dry_run)
    path = ctx.wslconf_path

    try:
        backup = ctx.backups.snapshot(path)
    except StorageError as e:
        return report.fail(f"Backup failed; aborting edit. {e}")

    if ctx.dry_run:
        report.would(f"back up {path} to {backup}")
    else:
        report.info(f"Backed up {path} to {backup}")
    report.metadata["backup"] = str(backup)

    try:
        current = read_config(path)
    except StorageError as e:
        return report.fail(str(e))

    patched = ensure_key_in_section(current, SECTION, KEY, VALUE)
    diff = config_diff(current, patched, str(path))
    report.metadata["changed"] = bool(diff)
    report.metadata["diff"] = printable(diff)

    if ctx.dry_run:
        report.would(f"ensure [{SECTION}] {KEY}={VALUE} in {path}")
        return report.finish()

    if not diff:
        report.passed(f"{path} already has [{SECTION}] {KEY}={VALUE}")
        return report.finish()

    try:
        install_file(path, encode(patched), mode=CONFIG_FILE_MODE, runner=ctx.runner)
    except StorageError as e:
        return report.fail(str(e))

    report.passed(f"{path} updated with [{SECTION}] {KEY}={VALUE}")
    report.info(RESTART_HINT)
    return report.finish()


def show_backups(ctx: PreflightContext) -> OperationReport:
    """List snapshots with their restore indices, newest first."""
    report = OperationReport(operation="wslconf.backups", dry_run=ctx.dry_run)
    backups = ctx.backups.list_backups()
    report.metadata["backups"] = [str(p) for p in backups]

    if not backups:
        return report.skip(f"No backups found in {ctx.backups.backup_dir}")

    report.info("Available backups (newest first):")
    for index, path in enumerate(backups):
        report.info(f"  [{index}] {path}")
    return report.finish()


def restore_latest(ctx: PreflightContext) -> OperationReport:
    """Put the newest snapshot back; a warning (not an error) if there is none."""
    report = OperationReport(operation="wslconf.restore_latest", dry_run=ctx.dry_run)
    path = ctx.wslconf_path

    try:
        latest = ctx.backups.restore_latest(path)
    except StorageError as e:
        return report.fail(str(e))

    if latest is None:
        report.warn(f"No backups found in {ctx.backups.backup_dir}")
        report.status = "skipped"
        return report.finish()

    return _restored(report, ctx, latest)


def restore_backup(ctx: PreflightContext, value: str) -> OperationReport:
    """Restore a snapshot chosen by index (0 = newest) or by path."""
    report = OperationReport(operation="wslconf.restore", dry_run=ctx.dry_run)
    path = ctx.wslconf_path

    try:
        backup = ctx.backups.restore(value, path)
    except (RestorePathRejected, BackupNotFound) as e:
        return report.fail(str(e))
    except StorageError as e:
        return report.fail(str(e))

    return _restored(report, ctx, backup)


def _restored(report: OperationReport, ctx: PreflightContext, backup: Path) -> OperationReport:
    report.metadata["backup"] = str(backup)
    if ctx.dry_run:
        report.would(f"restore {backup} -> {ctx.wslconf_path}")
        return report.finish()
    report.passed(f"Restored {ctx.wslconf_path} from {backup}")
    report.info(RESTART_HINT)
    return report.finish()

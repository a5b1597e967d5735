"""
Error taxonomy — every failure the core can raise.

Failures originate only at I/O or collaborator boundaries. The config
patcher is a total function and never raises. Services raise these;
orchestration code turns them into failed ``OperationReport`` objects
per category so one failing category never aborts the others.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any


class PreflightError(Exception):
    """Base class for all preflight failures."""


class StorageError(PreflightError):
    """Disk or permission failure touching the ledger, backups, or config file."""

    def __init__(self, path: Path | str, message: str):
        self.path = Path(path)
        super().__init__(f"{message}: {path}")


class BackupNotFound(PreflightError):
    """A restore index or path does not resolve to an existing snapshot."""


class RestorePathRejected(PreflightError):
    """A restore path argument escapes the backup directory."""


class CollaboratorError(PreflightError):
    """An external tool (package manager, container runtime) reported failure."""

    def __init__(self, action: str, error: str, stderr: str = ""):
        self.action = action
        self.error = error
        self.stderr = stderr
        detail = f"{action}: {error}"
        if stderr:
            detail += f"\n{stderr.strip()}"
        super().__init__(detail)


def require_ok(result: dict[str, Any], action: str) -> dict[str, Any]:
    """Return a collaborator result, raising ``CollaboratorError`` if it failed."""
    if not result.get("ok"):
        raise CollaboratorError(
            action,
            result.get("error", "unknown error"),
            result.get("stderr", ""),
        )
    return result

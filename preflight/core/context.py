"""
Run context — the stores and collaborators one invocation works with.

Nothing in the core reaches for a hidden global: the ledger, the
backup store, the managed file path and the external collaborators
all travel in a ``PreflightContext``. The CLI builds one from the
settings; the self-test and the tests build one rooted in a temporary
directory with mock collaborators.
"""

from __future__ import annotations

import getpass
import os
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable

from preflight.adapters.base import ContainerRuntime, PackageManager
from preflight.adapters.containers.docker import DockerRuntime
from preflight.adapters.packages.apt import AptPackageManager
from preflight.adapters.shell.command import Runner, run_command
from preflight.core.config.loader import Settings
from preflight.core.persistence.backup_store import BackupStore
from preflight.core.persistence.ledger_file import Ledger


def current_user() -> str:
    """The operator's login name, also when running under sudo."""
    return os.environ.get("SUDO_USER") or os.environ.get("USER") or getpass.getuser()


@dataclass
class PreflightContext:
    settings: Settings
    ledger: Ledger
    backups: BackupStore
    packages: PackageManager
    containers: ContainerRuntime
    runner: Runner = run_command
    dry_run: bool = False
    user: str = ""

    @property
    def wslconf_path(self) -> Path:
        return self.settings.wslconf_path


def build_context(
    settings: Settings,
    *,
    dry_run: bool = False,
    packages: PackageManager | None = None,
    containers: ContainerRuntime | None = None,
    runner: Runner | None = None,
    clock: Callable[[], datetime] = datetime.now,
    user: str | None = None,
) -> PreflightContext:
    """Wire a context from settings; collaborators default to the real ones."""
    run = runner or run_command
    ledger = Ledger(settings.ledger_path, dry_run=dry_run)
    backups = BackupStore(
        settings.backup_dir,
        ledger,
        basename=settings.wslconf_path.name,
        dry_run=dry_run,
        clock=clock,
        runner=run,
    )
    return PreflightContext(
        settings=settings,
        ledger=ledger,
        backups=backups,
        packages=packages or AptPackageManager(run),
        containers=containers or DockerRuntime(run),
        runner=run,
        dry_run=dry_run,
        user=user or current_user(),
    )

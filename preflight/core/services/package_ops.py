"""
Package operations — tracked install and purge.

A package is recorded in the ledger only after the package manager
confirmed the install, and its entry is cleared only once the package
is verifiably gone. A package that is already absent when a purge is
requested counts as reverted: its entry is cleared without calling
the package manager, so ledger and host never drift apart.
"""

from __future__ import annotations

import logging
from typing import Iterable

from preflight.core.context import PreflightContext
from preflight.core.errors import CollaboratorError, StorageError, require_ok
from preflight.core.models.ledger import PackageEntry
from preflight.core.models.report import OperationReport

logger = logging.getLogger(__name__)


def install_if_missing(ctx: PreflightContext, packages: Iterable[str]) -> OperationReport:
    """Install whichever of ``packages`` are not present yet, then record them.

    An install failure is a hard failure: nothing is recorded.
    """
    report = OperationReport(operation="packages.install", dry_run=ctx.dry_run)

    to_install: list[str] = []
    for pkg in dict.fromkeys(packages):
        if ctx.packages.is_installed(pkg):
            report.info(f"Already installed: {pkg}")
        else:
            to_install.append(pkg)

    if not to_install:
        return report.skip("No new packages to install.")

    names = " ".join(to_install)
    report.metadata["packages"] = to_install

    if ctx.dry_run:
        report.would(f"update the package index and install: {names}")
        report.would(f"record: {names}")
        return report.finish()

    report.info(f"Installing: {names}")
    try:
        require_ok(ctx.packages.update(), f"{ctx.packages.name} update")
        require_ok(ctx.packages.install(to_install), f"{ctx.packages.name} install {names}")
    except CollaboratorError as e:
        return report.fail(str(e))

    try:
        ctx.ledger.record(PackageEntry(name=pkg) for pkg in to_install)
    except StorageError as e:
        return report.fail(f"Installed {names} but could not record them: {e}")

    report.passed(f"Installed: {names}")
    return report.finish()


def purge_tracked(ctx: PreflightContext, packages: Iterable[str]) -> OperationReport:
    """Purge ``packages`` and clear their ledger entries.

    Purge errors are warnings, not failures: whatever did get removed
    is cleared from the ledger, the rest stays tracked for a later run.
    """
    report = OperationReport(operation="packages.purge", dry_run=ctx.dry_run)
    wanted = list(dict.fromkeys(packages))

    if not wanted:
        return report.skip("No tracked packages to uninstall.")

    try:
        installed: list[str] = []
        for pkg in wanted:
            if ctx.packages.is_installed(pkg):
                installed.append(pkg)
                continue
            report.info(f"Skipping (not installed): {pkg}")
            if ctx.ledger.remove_exact([PackageEntry(name=pkg)]) and ctx.dry_run:
                report.would(f"clear ledger entry PKG:{pkg}")

        if not installed:
            return report.finish()

        names = " ".join(installed)
        if ctx.dry_run:
            report.would(f"purge: {names}")
            report.would("remove unused dependencies (autoremove)")
            return report.finish()

        result = ctx.packages.purge(installed)
        if not result["ok"]:
            report.warn(f"Purge completed with some errors: {result.get('error', 'unknown')}")
        autoremove = ctx.packages.autoremove()
        if not autoremove["ok"]:
            report.warn(f"autoremove failed: {autoremove.get('error', 'unknown')}")

        gone = [pkg for pkg in installed if not ctx.packages.is_installed(pkg)]
        remaining = [pkg for pkg in installed if pkg not in gone]
        ctx.ledger.remove_exact(PackageEntry(name=pkg) for pkg in gone)
    except StorageError as e:
        return report.fail(str(e))

    if gone:
        report.passed(f"Purged: {' '.join(gone)}")
    if remaining:
        report.warn(f"Still installed (kept in ledger): {' '.join(remaining)}")
    report.metadata["purged"] = gone
    report.metadata["remaining"] = remaining
    return report.finish()


def uninstall_all(ctx: PreflightContext) -> OperationReport:
    """Purge every package the ledger says this tool installed.

    When the ledger ends up empty its file is deleted; otherwise the
    remaining entries are listed so the operator can see what is left.
    """
    report = OperationReport(operation="packages.uninstall", dry_run=ctx.dry_run)

    try:
        tracked = [entry.name for entry in ctx.ledger.entries_of(PackageEntry)]
    except StorageError as e:
        return report.fail(str(e))

    report.merge(purge_tracked(ctx, tracked))
    if report.failed or ctx.dry_run:
        return report.finish()

    try:
        if ctx.ledger.delete_if_empty():
            report.info("All tracked packages removed. State cleared.")
            return report.finish()
        remaining = [entry.line for entry in ctx.ledger.entries()]
    except StorageError as e:
        return report.fail(str(e))

    if remaining:
        report.info(f"Remaining tracked entries in {ctx.ledger.path}:")
        for number, line in enumerate(remaining, start=1):
            report.info(f"  {number:>4}  {line}")
    return report.finish()

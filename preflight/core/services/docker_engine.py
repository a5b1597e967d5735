"""
Docker Engine — install and purge Docker CE from the official apt repo.

Install runs a fixed sequence of categories: prerequisite packages,
the repository signing key, the repository file, the Docker CE
packages, the service, the docker group, and a final probe. Every
artifact is recorded in the ledger right after it is created, so a
failure part-way leaves an accurate ledger for ``purge`` to work from.
An earlier category is never rolled back because a later one failed.

Purge reverses whatever the ledger says was done. Keys, repository
files and group grants that are already gone count as reverted.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from preflight.core.context import PreflightContext
from preflight.core.errors import CollaboratorError, StorageError, require_ok
from preflight.core.models.ledger import (
    GroupMembershipEntry,
    KeyringEntry,
    PackageEntry,
    RepositoryEntry,
)
from preflight.core.models.report import OperationReport
from preflight.core.services.host_probe import systemd_active, ubuntu_codename, user_groups
from preflight.core.services.package_ops import install_if_missing, purge_tracked

logger = logging.getLogger(__name__)

DOWNLOAD_TIMEOUT = 120
SERVICE_TIMEOUT = 120


def _sudo(ctx: PreflightContext, cmd: list[str], **kwargs: Any) -> dict[str, Any]:
    return ctx.runner(cmd, needs_sudo=True, **kwargs)


# ── Install ─────────────────────────────────────────────────────


def install_docker_engine(ctx: PreflightContext, *, no_group: bool = False) -> OperationReport:
    """Install Docker CE and record every artifact it creates.

    Args:
        ctx: Run context.
        no_group: Leave group membership alone (no ``usermod``).

    Returns:
        Report for the whole sequence. Failure of a required category
        (prerequisites, key, repository, packages) stops the sequence;
        service and group problems are warnings.
    """
    report = OperationReport(operation="docker.install", dry_run=ctx.dry_run)
    settings = ctx.settings

    if not systemd_active():
        report.warn(
            "systemd not active; Docker Engine will not start on boot. "
            "Run 'preflight wslconf set-systemd' then 'wsl --shutdown' in Windows."
        )

    prereqs = install_if_missing(ctx, settings.docker_prereq_packages)
    report.merge(prereqs)
    if prereqs.failed:
        return report.finish()

    codename = ubuntu_codename(ctx.runner)
    if not codename:
        return report.fail("Cannot determine the Ubuntu release codename.")
    report.metadata["codename"] = codename

    try:
        if ctx.dry_run:
            report.would(f"add the Docker apt repository and key for '{codename}'")
        else:
            _install_keyring(ctx, report)
            _install_repo_file(ctx, report, codename)
    except (CollaboratorError, StorageError) as e:
        return report.fail(str(e))

    packages = install_if_missing(ctx, settings.docker_packages)
    report.merge(packages)
    if packages.failed:
        return report.fail("Failed to install Docker packages.")

    _start_service(ctx, report)

    if no_group:
        report.info("Skipping docker group modification (--no-group).")
    else:
        try:
            _grant_group(ctx, report)
        except StorageError as e:
            return report.fail(str(e))

    if ctx.dry_run:
        report.would("run 'docker version'")
    elif ctx.containers.is_available():
        if ctx.runner(["docker", "version"], timeout=30)["ok"]:
            report.passed("Docker CLI/daemon appears functional.")
        else:
            report.warn("'docker version' failed; the daemon may need a restart.")

    return report.finish()


def _install_keyring(ctx: PreflightContext, report: OperationReport) -> None:
    keyring = ctx.settings.docker_keyring
    if keyring.exists():
        report.info(f"Keyring already present: {keyring}")
        return

    require_ok(
        _sudo(ctx, ["install", "-m", "0755", "-d", str(keyring.parent)]),
        f"create {keyring.parent}",
    )
    download = require_ok(
        ctx.runner(
            ["curl", "-fsSL", ctx.settings.docker_gpg_url],
            binary=True,
            timeout=DOWNLOAD_TIMEOUT,
        ),
        f"download {ctx.settings.docker_gpg_url}",
    )
    require_ok(
        _sudo(
            ctx,
            ["gpg", "--dearmor", "--yes", "-o", str(keyring)],
            input_data=download.get("stdout_bytes", b""),
            binary=True,
        ),
        f"write {keyring}",
    )
    ctx.ledger.record([KeyringEntry(path=str(keyring))])
    require_ok(_sudo(ctx, ["chmod", "a+r", str(keyring)]), f"chmod {keyring}")

    report.passed(f"Installed keyring: {keyring}")


def _install_repo_file(ctx: PreflightContext, report: OperationReport, codename: str) -> None:
    settings = ctx.settings
    repo_file = settings.docker_repo_file
    if repo_file.exists():
        report.info(f"Repository file already present: {repo_file}")
        return

    arch = require_ok(
        ctx.runner(["dpkg", "--print-architecture"], timeout=10),
        "dpkg --print-architecture",
    ).get("stdout", "").strip()
    line = (
        f"deb [arch={arch} signed-by={settings.docker_keyring}] "
        f"{settings.docker_repo_url} {codename} stable\n"
    )
    require_ok(_sudo(ctx, ["tee", str(repo_file)], input_data=line), f"write {repo_file}")

    ctx.ledger.record([RepositoryEntry(repo_id=settings.docker_repo_id)])
    report.passed(f"Added Docker apt repository: {repo_file}")


def _start_service(ctx: PreflightContext, report: OperationReport) -> None:
    if ctx.dry_run:
        report.would("enable and start the docker service")
        return

    if systemd_active():
        result = _sudo(ctx, ["systemctl", "enable", "--now", "docker"], timeout=SERVICE_TIMEOUT)
        if not result["ok"]:
            report.warn(f"systemctl enable/start failed: {result.get('error', '')}")
            return
    else:
        result = _sudo(ctx, ["service", "docker", "start"], timeout=SERVICE_TIMEOUT)
        if not result["ok"]:
            report.warn("Could not start docker service (no systemd).")
            return
    report.passed("docker service started.")


def _grant_group(ctx: PreflightContext, report: OperationReport) -> None:
    group = ctx.settings.docker_group
    user = ctx.user

    if group in user_groups(user, ctx.runner):
        report.info(f"User '{user}' already in {group} group.")
        return
    if ctx.dry_run:
        report.would(f"add {user} to the {group} group")
        return

    result = _sudo(ctx, ["usermod", "-aG", group, user])
    if not result["ok"]:
        report.warn(f"Failed to add {user} to the {group} group: {result.get('error', '')}")
        return
    ctx.ledger.record([GroupMembershipEntry(group=group, user=user)])
    report.passed(f"Added {user} to the {group} group.")
    report.info(f"Use 'newgrp {group}' or restart your shell.")


# ── Purge ───────────────────────────────────────────────────────


def purge_docker_engine(
    ctx: PreflightContext,
    *,
    nuke_data: bool = False,
    tracked_only: bool = False,
) -> OperationReport:
    """Reverse a Docker Engine install.

    Args:
        ctx: Run context.
        nuke_data: Also delete the Docker data directories.
        tracked_only: Purge only Docker packages the ledger says were
            installed here. By default every known Docker CE package is
            purged, tracked or not.
    """
    report = OperationReport(operation="docker.purge", dry_run=ctx.dry_run)
    settings = ctx.settings

    _stop_services(ctx, report)

    try:
        tracked = [
            e.name for e in ctx.ledger.entries_of(PackageEntry)
            if e.name in settings.docker_packages
        ]
    except StorageError as e:
        return report.fail(str(e))
    targets = tracked if tracked_only else list(dict.fromkeys(tracked + settings.docker_packages))
    report.merge(purge_tracked(ctx, targets))

    try:
        _remove_keyrings(ctx, report)
        _remove_repo_files(ctx, report)
        if ctx.dry_run:
            report.would("refresh the package index")
        else:
            result = ctx.packages.update()
            if not result["ok"]:
                report.warn(f"Package index refresh failed: {result.get('error', '')}")
        _revoke_groups(ctx, report)
    except StorageError as e:
        return report.fail(str(e))

    _remove_data(ctx, report, nuke_data)
    return report.finish()


def _stop_services(ctx: PreflightContext, report: OperationReport) -> None:
    if ctx.dry_run:
        report.would("stop the docker and containerd services")
        return
    if systemd_active():
        for service in ("docker", "containerd"):
            _sudo(ctx, ["systemctl", "stop", service], timeout=SERVICE_TIMEOUT)
    else:
        _sudo(ctx, ["service", "docker", "stop"], timeout=SERVICE_TIMEOUT)


def _remove_file(
    ctx: PreflightContext,
    report: OperationReport,
    path: Path,
    entry: KeyringEntry | RepositoryEntry,
    label: str,
) -> None:
    if ctx.dry_run:
        report.would(f"remove {label}: {path}")
        ctx.ledger.remove_exact([entry])
        return
    if not path.exists():
        report.info(f"{label.capitalize()} already absent: {path}")
        ctx.ledger.remove_exact([entry])
        return

    result = _sudo(ctx, ["rm", "-f", str(path)])
    if not result["ok"]:
        report.warn(f"Could not remove {label} {path}: {result.get('error', '')}")
        return
    ctx.ledger.remove_exact([entry])
    report.info(f"Removed {label}: {path}")


def _remove_keyrings(ctx: PreflightContext, report: OperationReport) -> None:
    for entry in ctx.ledger.entries_of(KeyringEntry):
        _remove_file(ctx, report, Path(entry.path), entry, "keyring")


def _remove_repo_files(ctx: PreflightContext, report: OperationReport) -> None:
    settings = ctx.settings
    for entry in ctx.ledger.entries_of(RepositoryEntry):
        if entry.repo_id != settings.docker_repo_id:
            logger.debug("Leaving repository entry %s alone", entry.line)
            continue
        _remove_file(ctx, report, settings.docker_repo_file, entry, "Docker apt repository")


def _revoke_groups(ctx: PreflightContext, report: OperationReport) -> None:
    group = ctx.settings.docker_group
    for entry in ctx.ledger.entries_of(GroupMembershipEntry):
        if entry.group != group:
            continue
        if ctx.dry_run:
            report.would(f"remove {entry.user} from the {group} group")
            ctx.ledger.remove_exact([entry])
            continue

        result = _sudo(ctx, ["gpasswd", "-d", entry.user, group])
        if not result["ok"]:
            report.warn(f"Run manually: sudo gpasswd -d {entry.user} {group}")
            continue
        ctx.ledger.remove_exact([entry])
        report.info(f"Removed {entry.user} from the {group} group.")


def _remove_data(ctx: PreflightContext, report: OperationReport, nuke_data: bool) -> None:
    dirs = [str(d) for d in ctx.settings.docker_data_dirs]
    if not nuke_data:
        report.info("Docker data preserved. Use --nuke-data to remove it.")
        return
    if ctx.dry_run:
        report.would(f"remove {' '.join(dirs)}")
        return

    result = _sudo(ctx, ["rm", "-rf", *dirs], timeout=SERVICE_TIMEOUT)
    if result["ok"]:
        report.info("Removed Docker data directories.")
    else:
        report.warn(f"Could not remove Docker data directories: {result.get('error', '')}")

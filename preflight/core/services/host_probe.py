"""
Host probes — small read-only questions about the machine.

Shared by the checks and the Docker Engine installer. Nothing here
changes the host.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from preflight.adapters.shell.command import Runner, run_command

logger = logging.getLogger(__name__)

OS_RELEASE = Path("/etc/os-release")
SYSTEMD_RUNTIME_DIR = Path("/run/systemd/system")


def read_os_release(path: Path = OS_RELEASE) -> dict[str, str]:
    """Parse ``/etc/os-release`` into a dict ({} if unreadable)."""
    values: dict[str, str] = {}
    try:
        text = path.read_text(encoding="utf-8")
    except OSError:
        logger.debug("Cannot read %s", path)
        return values
    for line in text.splitlines():
        key, sep, value = line.partition("=")
        if not sep or not key or key.startswith("#"):
            continue
        values[key.strip()] = value.strip().strip('"').strip("'")
    return values


def ubuntu_codename(
    runner: Runner = run_command,
    os_release: Path = OS_RELEASE,
) -> str:
    """Release codename (``jammy``, ``noble`` ...) or "" if unknown."""
    codename = read_os_release(os_release).get("VERSION_CODENAME", "")
    if not codename and shutil.which("lsb_release"):
        result = runner(["lsb_release", "-cs"], timeout=10)
        if result["ok"]:
            codename = result.get("stdout", "").strip()
    return codename


def systemd_active(runtime_dir: Path = SYSTEMD_RUNTIME_DIR) -> bool:
    return runtime_dir.is_dir()


def user_groups(user: str, runner: Runner = run_command) -> list[str]:
    """Groups ``user`` belongs to ([] if the lookup fails)."""
    result = runner(["id", "-nG", user], timeout=10)
    if not result["ok"]:
        return []
    return result.get("stdout", "").split()


def command_version(cmd: list[str], runner: Runner = run_command) -> str | None:
    """First line of a ``--version`` style call, or None if the tool is missing."""
    if shutil.which(cmd[0]) is None:
        return None
    result = runner(cmd, timeout=15)
    output = result.get("stdout", "") if result["ok"] else ""
    lines = output.strip().splitlines()
    return lines[0] if lines else ""

"""
APT adapter — Debian/Ubuntu packages via dpkg-query and apt-get.

Mutating calls run through sudo and with a non-interactive frontend
so apt never stops to ask a question mid-run.
"""

from __future__ import annotations

import logging
import shutil
from typing import Any

from preflight.adapters.base import PackageManager
from preflight.adapters.shell.command import Runner, run_command

logger = logging.getLogger(__name__)

_APT_ENV = {"DEBIAN_FRONTEND": "noninteractive"}


class AptPackageManager(PackageManager):
    """apt-get / dpkg implementation of :class:`PackageManager`."""

    def __init__(self, runner: Runner = run_command):
        self._run = runner

    @property
    def name(self) -> str:
        return "apt"

    def is_available(self) -> bool:
        return shutil.which("apt-get") is not None

    def is_installed(self, package: str) -> bool:
        # `dpkg -s` also succeeds for removed-but-not-purged packages,
        # so read the status word instead.
        result = self._run(["dpkg-query", "-W", "-f=${Status}", package])
        return bool(result["ok"]) and result.get("stdout", "").strip().endswith(" installed")

    def update(self) -> dict[str, Any]:
        return self._apt(["update", "-y"])

    def install(self, packages: list[str]) -> dict[str, Any]:
        return self._apt(["install", "-y", *packages])

    def purge(self, packages: list[str]) -> dict[str, Any]:
        return self._apt(["purge", "-y", *packages])

    def autoremove(self) -> dict[str, Any]:
        return self._apt(["autoremove", "-y"])

    def _apt(self, args: list[str]) -> dict[str, Any]:
        logger.debug("apt-get %s", " ".join(args))
        return self._run(
            ["apt-get", *args],
            needs_sudo=True,
            env_overrides=_APT_ENV,
        )

"""
Docker adapter — the container operations used by the smoke test.

Uses the docker CLI, never the Docker API directly.
"""

from __future__ import annotations

import shutil
from typing import Any

from preflight.adapters.base import ContainerRuntime
from preflight.adapters.shell.command import Runner, run_command


class DockerRuntime(ContainerRuntime):
    """docker CLI implementation of :class:`ContainerRuntime`."""

    def __init__(self, runner: Runner = run_command):
        self._run = runner

    @property
    def name(self) -> str:
        return "docker"

    def is_available(self) -> bool:
        return shutil.which("docker") is not None

    def daemon_reachable(self) -> bool:
        return bool(self._run(["docker", "info"], timeout=30)["ok"])

    def version(self) -> str:
        result = self._run(["docker", "--version"], timeout=10)
        return result.get("stdout", "").strip() if result["ok"] else ""

    def image_exists(self, image: str) -> bool:
        return bool(self._run(["docker", "image", "inspect", image], timeout=30)["ok"])

    def pull(self, image: str) -> dict[str, Any]:
        return self._run(["docker", "pull", image])

    def run(self, image: str, container_name: str) -> dict[str, Any]:
        return self._run(["docker", "run", "--name", container_name, "--rm", image])

    def remove_image(self, image: str) -> dict[str, Any]:
        return self._run(["docker", "rmi", image], timeout=60)

    def remove_container(self, container_name: str) -> dict[str, Any]:
        return self._run(["docker", "rm", "-f", container_name], timeout=60)

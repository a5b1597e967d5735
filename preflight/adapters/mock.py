"""
Mock collaborators — in-memory package manager and container runtime.

Used by the self-test and the test suite to exercise the services
without touching real packages or a real docker daemon. Each mock
keeps a call log and can be told to fail specific operations.
"""

from __future__ import annotations

from typing import Any

from preflight.adapters.base import ContainerRuntime, PackageManager


def _ok(output: str = "[mock] ok") -> dict[str, Any]:
    return {"ok": True, "stdout": output, "returncode": 0}


def _failed(error: str) -> dict[str, Any]:
    return {"ok": False, "error": error, "stderr": error, "returncode": 1}


class MockPackageManager(PackageManager):
    """Package manager backed by a set of installed names.

    Args:
        installed: Packages present at start.
        fail_install: Packages whose install fails (the whole batch fails).
        fail_purge: Packages that survive a purge (the batch reports failure).
    """

    def __init__(
        self,
        installed: set[str] | None = None,
        fail_install: set[str] | None = None,
        fail_purge: set[str] | None = None,
        available: bool = True,
    ):
        self.installed: set[str] = set(installed or ())
        self.fail_install: set[str] = set(fail_install or ())
        self.fail_purge: set[str] = set(fail_purge or ())
        self._available = available
        self.calls: list[tuple[str, tuple[str, ...]]] = []

    @property
    def name(self) -> str:
        return "mock"

    def is_available(self) -> bool:
        return self._available

    def is_installed(self, package: str) -> bool:
        return package in self.installed

    def update(self) -> dict[str, Any]:
        self.calls.append(("update", ()))
        return _ok()

    def install(self, packages: list[str]) -> dict[str, Any]:
        self.calls.append(("install", tuple(packages)))
        bad = sorted(self.fail_install.intersection(packages))
        if bad:
            return _failed(f"Unable to locate package {bad[0]}")
        self.installed.update(packages)
        return _ok()

    def purge(self, packages: list[str]) -> dict[str, Any]:
        self.calls.append(("purge", tuple(packages)))
        stuck = self.fail_purge.intersection(packages)
        self.installed.difference_update(set(packages) - stuck)
        if stuck:
            return _failed(f"dpkg: error processing package {sorted(stuck)[0]}")
        return _ok()

    def autoremove(self) -> dict[str, Any]:
        self.calls.append(("autoremove", ()))
        return _ok()

    def call_names(self) -> list[str]:
        return [name for name, _ in self.calls]


class MockContainerRuntime(ContainerRuntime):
    """Container runtime backed by sets of images and containers."""

    def __init__(
        self,
        images: set[str] | None = None,
        available: bool = True,
        daemon: bool = True,
        fail_pull: bool = False,
        fail_run: bool = False,
    ):
        self.images: set[str] = set(images or ())
        self.containers: set[str] = set()
        self._available = available
        self._daemon = daemon
        self.fail_pull = fail_pull
        self.fail_run = fail_run
        self.calls: list[tuple[str, str]] = []

    @property
    def name(self) -> str:
        return "mock-docker"

    def is_available(self) -> bool:
        return self._available

    def daemon_reachable(self) -> bool:
        return self._daemon

    def version(self) -> str:
        return "Docker version 0.0.0-mock" if self._available else ""

    def image_exists(self, image: str) -> bool:
        return image in self.images

    def pull(self, image: str) -> dict[str, Any]:
        self.calls.append(("pull", image))
        if self.fail_pull:
            return _failed(f"pull access denied for {image}")
        self.images.add(image)
        return _ok()

    def run(self, image: str, container_name: str) -> dict[str, Any]:
        self.calls.append(("run", image))
        if self.fail_run or image not in self.images:
            return _failed(f"cannot run {image}")
        return _ok("Hello from Docker!")

    def remove_image(self, image: str) -> dict[str, Any]:
        self.calls.append(("rmi", image))
        if image not in self.images:
            return _failed(f"No such image: {image}")
        self.images.discard(image)
        return _ok()

    def remove_container(self, container_name: str) -> dict[str, Any]:
        self.calls.append(("rm", container_name))
        self.containers.discard(container_name)
        return _ok()

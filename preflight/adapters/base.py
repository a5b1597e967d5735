"""
Collaborator contracts — what the core needs from external tools.

The services only talk to the package manager and the container
runtime through these interfaces, never to apt or docker directly.
Implementations return the runner's result dicts
(``{"ok": bool, "error": str, ...}``) and never raise.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class PackageManager(ABC):
    """Install / purge / query system packages."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Identifier (e.g., 'apt')."""

    @abstractmethod
    def is_available(self) -> bool:
        """Whether the underlying tool exists on this host."""

    @abstractmethod
    def is_installed(self, package: str) -> bool:
        """Whether ``package`` is currently installed."""

    @abstractmethod
    def update(self) -> dict[str, Any]:
        """Refresh package indexes."""

    @abstractmethod
    def install(self, packages: list[str]) -> dict[str, Any]:
        """Install all of ``packages`` in one transaction."""

    @abstractmethod
    def purge(self, packages: list[str]) -> dict[str, Any]:
        """Remove ``packages`` including their configuration."""

    @abstractmethod
    def autoremove(self) -> dict[str, Any]:
        """Remove dependencies nothing needs any more."""


class ContainerRuntime(ABC):
    """The handful of container operations the smoke test needs."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Identifier (e.g., 'docker')."""

    @abstractmethod
    def is_available(self) -> bool:
        """Whether the runtime CLI is installed."""

    @abstractmethod
    def daemon_reachable(self) -> bool:
        """Whether the runtime daemon answers."""

    @abstractmethod
    def version(self) -> str:
        """Version banner, or "" when unavailable."""

    @abstractmethod
    def image_exists(self, image: str) -> bool: ...

    @abstractmethod
    def pull(self, image: str) -> dict[str, Any]: ...

    @abstractmethod
    def run(self, image: str, container_name: str) -> dict[str, Any]:
        """Run ``image`` once as ``container_name`` (removed on exit)."""

    @abstractmethod
    def remove_image(self, image: str) -> dict[str, Any]: ...

    @abstractmethod
    def remove_container(self, container_name: str) -> dict[str, Any]: ...

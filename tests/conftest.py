"""
Shared test fixtures and configuration.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Callable

import pytest

from preflight.adapters.mock import MockContainerRuntime, MockPackageManager
from preflight.core.config.loader import Settings
from preflight.core.context import PreflightContext, build_context


class FakeRunner:
    """Stands in for ``run_command``: records every call, answers ok by default.

    ``responses`` maps a command prefix (tuple of leading args) to the
    result dict to return; the longest matching prefix wins. ``hooks``
    maps a prefix to a callable run with the command when it matches,
    for commands whose side effect a test needs to observe.
    """

    def __init__(self, responses: dict[tuple[str, ...], dict[str, Any]] | None = None):
        self.responses = dict(responses or {})
        self.calls: list[tuple[list[str], dict[str, Any]]] = []
        self.hooks: dict[tuple[str, ...], Callable[[list[str]], None]] = {}

    def __call__(self, cmd: list[str], **kwargs: Any) -> dict[str, Any]:
        self.calls.append((list(cmd), kwargs))
        for prefix, hook in self.hooks.items():
            if tuple(cmd[: len(prefix)]) == prefix:
                hook(list(cmd))
        best: tuple[str, ...] | None = None
        for prefix in self.responses:
            if tuple(cmd[: len(prefix)]) == prefix and (best is None or len(prefix) > len(best)):
                best = prefix
        if best is not None:
            return self.responses[best]
        return {"ok": True, "stdout": "", "returncode": 0}

    def commands(self) -> list[list[str]]:
        return [cmd for cmd, _ in self.calls]

    def ran(self, *prefix: str) -> bool:
        return any(tuple(cmd[: len(prefix)]) == prefix for cmd in self.commands())


def ticking_clock(start: datetime = datetime(2024, 5, 1, 12, 0, 0)) -> Callable[[], datetime]:
    """Clock that advances one second per call."""
    state = {"now": start}

    def tick() -> datetime:
        now = state["now"]
        state["now"] = now + timedelta(seconds=1)
        return now

    return tick


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings with every host path redirected under tmp_path."""
    return Settings(
        state_dir=tmp_path / "state",
        wslconf_path=tmp_path / "etc" / "wsl.conf",
        docker_keyring=tmp_path / "keyrings" / "docker.gpg",
        docker_repo_file=tmp_path / "sources" / "docker.list",
        docker_data_dirs=[tmp_path / "var" / "lib" / "docker"],
    )


@pytest.fixture
def packages() -> MockPackageManager:
    return MockPackageManager()


@pytest.fixture
def containers() -> MockContainerRuntime:
    return MockContainerRuntime()


@pytest.fixture
def runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def make_ctx(
    settings: Settings,
    packages: MockPackageManager,
    containers: MockContainerRuntime,
    runner: FakeRunner,
) -> Callable[..., PreflightContext]:
    """Factory for contexts sharing the fixture collaborators and state dir."""

    def _make(dry_run: bool = False, clock: Callable[[], datetime] | None = None) -> PreflightContext:
        ctx = build_context(
            settings,
            dry_run=dry_run,
            packages=packages,
            containers=containers,
            runner=runner,
            clock=clock or ticking_clock(),
            user="alice",
        )
        if not dry_run:
            ctx.ledger.ensure_exists()
        return ctx

    return _make


@pytest.fixture
def ctx(make_ctx: Callable[..., PreflightContext]) -> PreflightContext:
    return make_ctx()

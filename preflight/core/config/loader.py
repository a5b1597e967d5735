"""
Settings loader — reads the optional ``config.yml`` into ``Settings``.

Resolution order (later wins):

    built-in defaults  <  config.yml  <  PREFLIGHT_* env vars  <  CLI options

The file is optional; with no file every default applies. A file that
exists but is unreadable or invalid is an error, never silently ignored.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from preflight.core.errors import PreflightError

logger = logging.getLogger(__name__)

STATE_DIR_NAME = ".bettlebox-preflight"
SETTINGS_FILE = "config.yml"
LEDGER_FILE = "installed-packages.txt"
BACKUP_SUBDIR = "backups"

ENV_STATE_DIR = "PREFLIGHT_STATE_DIR"
ENV_WSLCONF_PATH = "PREFLIGHT_WSLCONF_PATH"


class ConfigError(PreflightError):
    """Raised when the settings file is invalid or unreadable."""


def default_state_dir() -> Path:
    return Path.home() / STATE_DIR_NAME


class Settings(BaseModel):
    """Everything the tool needs to know about this host's layout."""

    model_config = ConfigDict(extra="forbid")

    # ── Tracked state ────────────────────────────────────────────
    state_dir: Path = Field(default_factory=default_state_dir)

    # ── Managed config file ──────────────────────────────────────
    wslconf_path: Path = Path("/etc/wsl.conf")

    # ── Package sets ─────────────────────────────────────────────
    basics_packages: list[str] = Field(
        default_factory=lambda: ["git", "curl", "build-essential", "python3", "python3-pip"]
    )
    qemu_packages: list[str] = Field(default_factory=lambda: ["qemu-system"])
    docker_prereq_packages: list[str] = Field(
        default_factory=lambda: ["ca-certificates", "curl", "gnupg"]
    )
    docker_packages: list[str] = Field(
        default_factory=lambda: [
            "docker-ce",
            "docker-ce-cli",
            "containerd.io",
            "docker-buildx-plugin",
            "docker-compose-plugin",
        ]
    )

    # ── Docker Engine repository ─────────────────────────────────
    docker_keyring: Path = Path("/etc/apt/keyrings/docker.gpg")
    docker_repo_file: Path = Path("/etc/apt/sources.list.d/docker.list")
    docker_repo_id: str = "docker"
    docker_repo_url: str = "https://download.docker.com/linux/ubuntu"
    docker_gpg_url: str = "https://download.docker.com/linux/ubuntu/gpg"
    docker_group: str = "docker"
    docker_data_dirs: list[Path] = Field(
        default_factory=lambda: [Path("/var/lib/docker"), Path("/var/lib/containerd")]
    )

    # ── Smoke test ───────────────────────────────────────────────
    hello_image: str = "hello-world"
    hello_container: str = "bettlebox-preflight-hello"

    # ── Checks ───────────────────────────────────────────────────
    probe_host: str = "beetlebox.org"
    min_cpus: int = 2
    min_mem_gb: int = 4
    min_disk_gb: int = 15

    @property
    def ledger_path(self) -> Path:
        return self.state_dir / LEDGER_FILE

    @property
    def backup_dir(self) -> Path:
        return self.state_dir / BACKUP_SUBDIR


def default_settings_path() -> Path:
    return default_state_dir() / SETTINGS_FILE


def _read_settings_file(path: Path) -> dict[str, Any]:
    logger.debug("Loading settings from %s", path)
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    # Allow everything nested under a top-level "preflight" key
    if "preflight" in data and isinstance(data["preflight"], dict):
        data = data["preflight"]
    return data


def load_settings(
    path: Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> Settings:
    """Load settings from file, environment, and explicit overrides.

    Args:
        path: Explicit settings file. Must exist when given. If None,
            ``~/.bettlebox-preflight/config.yml`` is used when present.
        overrides: Values from the command line; ``None`` values are ignored.

    Returns:
        Validated Settings.

    Raises:
        ConfigError: If the file is missing (explicit path), unreadable,
            or fails validation.
    """
    data: dict[str, Any] = {}

    if path is not None:
        if not path.is_file():
            raise ConfigError(f"Settings file not found: {path}")
        data.update(_read_settings_file(path))
    else:
        candidate = default_settings_path()
        if candidate.is_file():
            data.update(_read_settings_file(candidate))

    env_map = {ENV_STATE_DIR: "state_dir", ENV_WSLCONF_PATH: "wslconf_path"}
    for env_name, field_name in env_map.items():
        value = os.environ.get(env_name)
        if value:
            data[field_name] = value

    for key, value in (overrides or {}).items():
        if value is not None:
            data[key] = value

    try:
        settings = Settings.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid settings: {e}") from e

    settings.state_dir = settings.state_dir.expanduser()
    settings.wslconf_path = settings.wslconf_path.expanduser()
    logger.debug(
        "Settings: state_dir=%s wslconf_path=%s", settings.state_dir, settings.wslconf_path
    )
    return settings

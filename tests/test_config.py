"""
Tests for the settings loader.
"""

from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from preflight.core.config.loader import ConfigError, Settings, load_settings


@pytest.fixture(autouse=True)
def _isolated_home(monkeypatch, tmp_path: Path):
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    monkeypatch.delenv("PREFLIGHT_STATE_DIR", raising=False)
    monkeypatch.delenv("PREFLIGHT_WSLCONF_PATH", raising=False)


class TestDefaults:
    def test_no_file_gives_defaults(self, tmp_path: Path):
        settings = load_settings()
        assert settings.state_dir == tmp_path / "home" / ".bettlebox-preflight"
        assert settings.wslconf_path == Path("/etc/wsl.conf")
        assert settings.ledger_path == settings.state_dir / "installed-packages.txt"
        assert settings.backup_dir == settings.state_dir / "backups"
        assert settings.docker_packages[0] == "docker-ce"

    def test_default_file_is_picked_up(self, tmp_path: Path):
        cfg = tmp_path / "home" / ".bettlebox-preflight" / "config.yml"
        cfg.parent.mkdir(parents=True)
        cfg.write_text("hello_image: busybox\n")
        assert load_settings().hello_image == "busybox"


class TestFile:
    def test_values_loaded(self, tmp_path: Path):
        cfg = tmp_path / "config.yml"
        cfg.write_text(textwrap.dedent("""\
            state_dir: ~/custom-state
            wslconf_path: /tmp/wsl.conf
            basics_packages: [git, jq]
            min_disk_gb: 30
        """))
        settings = load_settings(cfg)
        assert settings.state_dir == tmp_path / "home" / "custom-state"
        assert settings.wslconf_path == Path("/tmp/wsl.conf")
        assert settings.basics_packages == ["git", "jq"]
        assert settings.min_disk_gb == 30

    def test_nested_under_preflight_key(self, tmp_path: Path):
        cfg = tmp_path / "config.yml"
        cfg.write_text("preflight:\n  probe_host: example.org\n")
        assert load_settings(cfg).probe_host == "example.org"

    def test_empty_file(self, tmp_path: Path):
        cfg = tmp_path / "config.yml"
        cfg.write_text("")
        assert load_settings(cfg) == load_settings()

    def test_missing_explicit_file(self, tmp_path: Path):
        with pytest.raises(ConfigError, match="not found"):
            load_settings(tmp_path / "nope.yml")

    def test_invalid_yaml(self, tmp_path: Path):
        cfg = tmp_path / "config.yml"
        cfg.write_text("state_dir: [unclosed\n")
        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_settings(cfg)

    def test_not_a_mapping(self, tmp_path: Path):
        cfg = tmp_path / "config.yml"
        cfg.write_text("- a\n- b\n")
        with pytest.raises(ConfigError, match="mapping"):
            load_settings(cfg)

    def test_unknown_key_rejected(self, tmp_path: Path):
        cfg = tmp_path / "config.yml"
        cfg.write_text("no_such_setting: 1\n")
        with pytest.raises(ConfigError, match="Invalid settings"):
            load_settings(cfg)

    def test_wrong_type_rejected(self, tmp_path: Path):
        cfg = tmp_path / "config.yml"
        cfg.write_text("min_cpus: lots\n")
        with pytest.raises(ConfigError):
            load_settings(cfg)


class TestPrecedence:
    def test_env_beats_file(self, tmp_path: Path, monkeypatch):
        cfg = tmp_path / "config.yml"
        cfg.write_text("wslconf_path: /from/file\n")
        monkeypatch.setenv("PREFLIGHT_WSLCONF_PATH", "/from/env")
        assert load_settings(cfg).wslconf_path == Path("/from/env")

    def test_overrides_beat_env(self, tmp_path: Path, monkeypatch):
        monkeypatch.setenv("PREFLIGHT_STATE_DIR", str(tmp_path / "env"))
        settings = load_settings(overrides={"state_dir": str(tmp_path / "cli")})
        assert settings.state_dir == tmp_path / "cli"

    def test_none_overrides_ignored(self, tmp_path: Path, monkeypatch):
        monkeypatch.setenv("PREFLIGHT_STATE_DIR", str(tmp_path / "env"))
        settings = load_settings(overrides={"state_dir": None, "wslconf_path": None})
        assert settings.state_dir == tmp_path / "env"
        assert settings.wslconf_path == Settings().wslconf_path

    def test_home_expanded_in_both_paths(self, tmp_path: Path, monkeypatch):
        monkeypatch.setenv("PREFLIGHT_STATE_DIR", "~/state")
        monkeypatch.setenv("PREFLIGHT_WSLCONF_PATH", "~/wsl.conf")
        settings = load_settings()
        assert settings.state_dir == tmp_path / "home" / "state"
        assert settings.wslconf_path == tmp_path / "home" / "wsl.conf"

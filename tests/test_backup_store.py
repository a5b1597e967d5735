"""
Tests for the backup store — snapshots, ordering, resolve and restore.
"""

from __future__ import annotations

import itertools
from datetime import datetime, timedelta
from pathlib import Path

import pytest

from preflight.core.errors import BackupNotFound, RestorePathRejected
from preflight.core.models import ConfigBackupEntry
from preflight.core.persistence import atomic
from preflight.core.persistence.backup_store import BackupStore
from preflight.core.persistence.ledger_file import Ledger


def _ticking(start: datetime = datetime(2024, 5, 1, 12, 0, 0)):
    moments = iter(start + timedelta(seconds=n) for n in itertools.count())
    return lambda: next(moments)


def _store(tmp_path: Path, *, clock=None, dry_run: bool = False) -> BackupStore:
    ledger = Ledger(tmp_path / "state" / "installed-packages.txt", dry_run=dry_run)
    return BackupStore(
        tmp_path / "state" / "backups",
        ledger,
        dry_run=dry_run,
        clock=clock or _ticking(),
    )


def _frozen(moment: datetime):
    return lambda: moment


class TestSnapshot:
    def test_copies_source_bytes(self, tmp_path: Path):
        src = tmp_path / "wsl.conf"
        src.write_bytes(b"[boot]\r\nsystemd=false\r\n")
        store = _store(tmp_path)
        backup = store.snapshot(src)
        assert backup.read_bytes() == src.read_bytes()
        assert backup.name == "wsl.conf-20240501-120000"

    def test_missing_source_gives_empty_placeholder(self, tmp_path: Path):
        store = _store(tmp_path)
        backup = store.snapshot(tmp_path / "absent.conf")
        assert backup.is_file()
        assert backup.read_bytes() == b""

    def test_records_ledger_entry(self, tmp_path: Path):
        store = _store(tmp_path)
        backup = store.snapshot(tmp_path / "absent.conf")
        ledger = Ledger(tmp_path / "state" / "installed-packages.txt")
        assert ledger.contains(ConfigBackupEntry(path=str(backup)))

    def test_same_second_gets_counter(self, tmp_path: Path):
        store = _store(tmp_path, clock=_frozen(datetime(2024, 1, 2, 3, 4, 5)))
        first = store.snapshot(tmp_path / "absent.conf")
        second = store.snapshot(tmp_path / "absent.conf")
        third = store.snapshot(tmp_path / "absent.conf")
        assert first.name == "wsl.conf-20240102-030405"
        assert second.name == "wsl.conf-20240102-030405-1"
        assert third.name == "wsl.conf-20240102-030405-2"
        assert store.list_backups() == [third, second, first]

    def test_dry_run_writes_nothing(self, tmp_path: Path):
        src = tmp_path / "wsl.conf"
        src.write_text("x\n")
        store = _store(tmp_path, dry_run=True)
        backup = store.snapshot(src)
        assert not backup.exists()
        assert not (tmp_path / "state").exists()


class TestListing:
    def test_empty_when_no_directory(self, tmp_path: Path):
        store = _store(tmp_path)
        assert store.list_backups() == []
        assert store.latest() is None

    def test_newest_first(self, tmp_path: Path):
        store = _store(tmp_path)
        a = store.snapshot(tmp_path / "absent.conf")
        b = store.snapshot(tmp_path / "absent.conf")
        assert store.list_backups() == [b, a]
        assert store.latest() == b

    def test_foreign_files_ignored(self, tmp_path: Path):
        store = _store(tmp_path)
        store.snapshot(tmp_path / "absent.conf")
        (store.backup_dir / "notes.txt").write_text("hi")
        (store.backup_dir / "wsl.conf-garbage").write_text("hi")
        assert len(store.list_backups()) == 1

    def test_directory_with_backup_name_ignored(self, tmp_path: Path):
        store = _store(tmp_path)
        kept = store.snapshot(tmp_path / "absent.conf")
        (store.backup_dir / "wsl.conf-20990101-000000").mkdir()
        assert store.list_backups() == [kept]


class TestResolve:
    def _two(self, tmp_path: Path) -> tuple[BackupStore, Path, Path]:
        store = _store(tmp_path)
        older = store.snapshot(tmp_path / "absent.conf")
        newer = store.snapshot(tmp_path / "absent.conf")
        return store, older, newer

    def test_index(self, tmp_path: Path):
        store, older, newer = self._two(tmp_path)
        assert store.resolve("0") == newer
        assert store.resolve(1) == older

    def test_index_out_of_range(self, tmp_path: Path):
        store, _, _ = self._two(tmp_path)
        with pytest.raises(BackupNotFound, match=r"0\.\.1"):
            store.resolve("5")

    def test_index_without_backups(self, tmp_path: Path):
        with pytest.raises(BackupNotFound, match="No backups"):
            _store(tmp_path).resolve("0")

    def test_absolute_path(self, tmp_path: Path):
        store, older, _ = self._two(tmp_path)
        assert store.resolve(str(older)) == older.resolve()

    def test_relative_name(self, tmp_path: Path):
        store, older, _ = self._two(tmp_path)
        assert store.resolve(older.name) == older.resolve()

    @pytest.mark.parametrize("value", [
        "/etc/passwd",
        "../../etc/passwd",
        "../installed-packages.txt",
        "wsl.conf-20240501-120000/../../installed-packages.txt",
    ])
    def test_escaping_paths_rejected(self, tmp_path: Path, value: str):
        store, _, _ = self._two(tmp_path)
        with pytest.raises(RestorePathRejected):
            store.resolve(value)

    def test_non_backup_name_inside_dir_rejected(self, tmp_path: Path):
        store, _, _ = self._two(tmp_path)
        (store.backup_dir / "notes.txt").write_text("hi")
        with pytest.raises(RestorePathRejected):
            store.resolve("notes.txt")

    def test_missing_backup_path(self, tmp_path: Path):
        store, _, _ = self._two(tmp_path)
        with pytest.raises(BackupNotFound):
            store.resolve("wsl.conf-19990101-000000")

    def test_empty_value_rejected(self, tmp_path: Path):
        with pytest.raises(RestorePathRejected):
            _store(tmp_path).resolve("  ")


class TestRestore:
    def test_restore_latest_round_trip(self, tmp_path: Path):
        dest = tmp_path / "wsl.conf"
        dest.write_bytes(b"original\n")
        store = _store(tmp_path)
        store.snapshot(dest)
        dest.write_bytes(b"edited\n")

        used = store.restore_latest(dest)
        assert used == store.latest()
        assert dest.read_bytes() == b"original\n"
        assert dest.stat().st_mode & 0o777 == 0o644

    def test_restore_latest_without_backups(self, tmp_path: Path):
        dest = tmp_path / "wsl.conf"
        dest.write_text("keep\n")
        assert _store(tmp_path).restore_latest(dest) is None
        assert dest.read_text() == "keep\n"

    def test_restore_by_index(self, tmp_path: Path):
        dest = tmp_path / "wsl.conf"
        store = _store(tmp_path)
        dest.write_text("v1\n")
        store.snapshot(dest)
        dest.write_text("v2\n")
        store.snapshot(dest)
        dest.write_text("v3\n")

        store.restore("1", dest)
        assert dest.read_text() == "v1\n"

    def test_three_snapshots_restore_oldest_by_index(self, tmp_path: Path):
        dest = tmp_path / "wsl.conf"
        store = _store(tmp_path)
        for version in ("v1\n", "v2\n", "v3\n"):
            dest.write_text(version)
            store.snapshot(dest)
        dest.write_text("v4\n")

        assert len(store.list_backups()) == 3
        used = store.restore("2", dest)
        assert used == store.list_backups()[2]
        assert dest.read_text() == "v1\n"

    def test_unwritable_dest_restored_with_sudo_install(self, tmp_path: Path, monkeypatch):
        dest = tmp_path / "wsl.conf"
        dest.write_text("v1\n")
        calls = []

        def runner(cmd, **kwargs):
            calls.append((cmd, kwargs, Path(cmd[3]).read_bytes()))
            return {"ok": True, "stdout": "", "returncode": 0}

        ledger = Ledger(tmp_path / "state" / "installed-packages.txt")
        store = BackupStore(tmp_path / "state" / "backups", ledger, clock=_ticking(), runner=runner)
        store.snapshot(dest)
        dest.write_text("v2\n")

        monkeypatch.setattr(atomic, "is_writable", lambda path: False)
        store.restore_latest(dest)

        [(cmd, kwargs, staged)] = calls
        assert cmd[:3] == ["install", "-m", "0644"]
        assert cmd[4] == str(dest)
        assert kwargs["needs_sudo"] is True
        assert staged == b"v1\n"
        assert dest.read_text() == "v2\n"

    def test_restore_placeholder_empties_file(self, tmp_path: Path):
        dest = tmp_path / "wsl.conf"
        store = _store(tmp_path)
        store.snapshot(dest)
        dest.write_text("[boot]\nsystemd=true\n")
        store.restore_latest(dest)
        assert dest.read_bytes() == b""

    def test_rejected_path_never_touches_dest(self, tmp_path: Path):
        dest = tmp_path / "wsl.conf"
        dest.write_text("keep\n")
        store = _store(tmp_path)
        store.snapshot(dest)
        with pytest.raises(RestorePathRejected):
            store.restore("/etc/passwd", dest)
        assert dest.read_text() == "keep\n"

    def test_dry_run_restore_does_not_write(self, tmp_path: Path):
        dest = tmp_path / "wsl.conf"
        dest.write_text("v1\n")
        _store(tmp_path).snapshot(dest)
        dest.write_text("v2\n")

        dry = _store(tmp_path, dry_run=True)
        assert dry.restore("0", dest) is not None
        assert dest.read_text() == "v2\n"

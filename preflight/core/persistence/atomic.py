"""
Atomic file replacement.

Writes go to a temp file in the destination directory, are fsynced,
then renamed over the target. A process dying mid-write leaves either
the old content or the new content, never a partial file.

Text is UTF-8 with ``surrogateescape``: bytes that are not valid UTF-8
(a Latin-1 comment in a hand-edited file) survive a read-modify-write
unchanged instead of aborting it.

Files the operator cannot write directly (``/etc/wsl.conf``) are staged
in a private temp file and put in place with ``sudo install``.
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

from preflight.adapters.shell.command import Runner, run_command
from preflight.core.errors import StorageError

logger = logging.getLogger(__name__)

ENCODING = "utf-8"
ENCODING_ERRORS = "surrogateescape"
INSTALL_TIMEOUT = 60


def decode(data: bytes) -> str:
    return data.decode(ENCODING, ENCODING_ERRORS)


def encode(text: str) -> bytes:
    return text.encode(ENCODING, ENCODING_ERRORS)


def printable(text: str) -> str:
    """``text`` with escaped foreign bytes shown as U+FFFD, safe to print or serialise."""
    return encode(text).decode(ENCODING, "replace")


def read_text(path: Path) -> str:
    """Read ``path`` as text, keeping undecodable bytes.

    Raises:
        OSError: If the file cannot be read.
    """
    return decode(path.read_bytes())


def atomic_write_bytes(path: Path, data: bytes, *, mode: int | None = None) -> None:
    """Replace ``path`` with ``data`` atomically.

    Args:
        path: Target file. Its parent directory is created if missing.
        data: Exact bytes to write.
        mode: Optional permission bits applied before the rename.

    Raises:
        StorageError: If any step of the write fails.
    """
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(
            dir=path.parent,
            prefix=f".{path.name}_",
            suffix=".tmp",
        )
    except OSError as e:
        raise StorageError(path, f"Cannot create temp file ({e.strerror or e})") from e

    tmp = Path(tmp_path)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        if mode is not None:
            os.chmod(tmp, mode)
        os.replace(tmp, path)
        logger.debug("Wrote %d bytes to %s", len(data), path)
    except OSError as e:
        tmp.unlink(missing_ok=True)
        raise StorageError(path, f"Cannot write ({e.strerror or e})") from e


def atomic_write_text(path: Path, content: str, *, mode: int | None = None) -> None:
    """Text variant of :func:`atomic_write_bytes`."""
    atomic_write_bytes(path, encode(content), mode=mode)


def is_writable(path: Path) -> bool:
    """Whether this process can replace ``path`` in place without sudo."""
    if path.exists() and not os.access(path, os.W_OK):
        return False
    ancestor = path.parent
    while not ancestor.exists() and ancestor != ancestor.parent:
        ancestor = ancestor.parent
    return os.access(ancestor, os.W_OK | os.X_OK)


def install_file(
    path: Path,
    data: bytes,
    *,
    mode: int = 0o644,
    runner: Runner = run_command,
) -> None:
    """Put ``data`` at ``path`` with ``mode``, escalating through sudo when needed.

    Writable targets get :func:`atomic_write_bytes`. Anything else is
    staged in a private temp file and copied with ``sudo install``,
    which writes the destination in one step.

    Raises:
        StorageError: If the write or the ``install`` command fails.
    """
    if is_writable(path):
        atomic_write_bytes(path, data, mode=mode)
        return

    try:
        fd, tmp_path = tempfile.mkstemp(prefix=f"preflight-{path.name}_", suffix=".tmp")
        with os.fdopen(fd, "wb") as f:
            f.write(data)
    except OSError as e:
        raise StorageError(path, f"Cannot stage content ({e.strerror or e})") from e

    try:
        result = runner(
            ["install", "-m", f"{mode:04o}", tmp_path, str(path)],
            needs_sudo=True,
            timeout=INSTALL_TIMEOUT,
        )
    finally:
        Path(tmp_path).unlink(missing_ok=True)

    if not result["ok"]:
        detail = result.get("stderr", "").strip() or result.get("error", "")
        raise StorageError(path, f"sudo install failed ({detail})")
    logger.debug("Installed %d bytes to %s via sudo", len(data), path)

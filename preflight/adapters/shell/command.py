"""
Core subprocess runner.

The SINGLE PLACE where ``subprocess.run`` is called for host
mutations and probes. Logging, sudo handling, and error capture are
centralised here. The runner never raises: every outcome, including
a missing binary, comes back as a result dict.
"""

from __future__ import annotations

import logging
import os
import subprocess
import time
from typing import Any, Callable

logger = logging.getLogger(__name__)

Runner = Callable[..., dict[str, Any]]


def run_command(
    cmd: list[str],
    *,
    needs_sudo: bool = False,
    timeout: int | None = None,
    input_data: str | bytes | None = None,
    binary: bool = False,
    env_overrides: dict[str, str] | None = None,
    cwd: str | None = None,
) -> dict[str, Any]:
    """Run a command and capture its outcome.

    Args:
        cmd: Command list for ``subprocess.run()``.
        needs_sudo: Prefix ``sudo`` unless already running as root.
            sudo prompts on the controlling terminal if it needs to.
        timeout: Seconds before giving up. None blocks until the
            command exits.
        input_data: Data piped to stdin (``bytes`` when ``binary``).
        binary: Exchange raw bytes; the result then also carries
            ``stdout_bytes`` with the untruncated output.
        env_overrides: Extra environment variables.
        cwd: Working directory for the command.

    Returns:
        ``{"ok": True, "stdout": "...", "elapsed_ms": N}`` on success,
        ``{"ok": False, "error": "...", "stderr": "...", ...}`` on failure.
    """
    if needs_sudo and os.geteuid() != 0:
        cmd = ["sudo"] + cmd

    env = os.environ.copy()
    if env_overrides:
        env.update(env_overrides)

    logger.debug("Running: %s", " ".join(cmd))
    start = time.monotonic()
    try:
        result = subprocess.run(
            cmd,
            capture_output=True,
            text=not binary,
            timeout=timeout,
            input=input_data,
            env=env,
            cwd=cwd,
        )
    except FileNotFoundError:
        return {"ok": False, "error": f"Command not found: {cmd[0]}", "returncode": 127}
    except subprocess.TimeoutExpired:
        return {"ok": False, "error": f"Command timed out ({timeout}s)"}
    except OSError as e:
        logger.exception("Subprocess error: %s", cmd)
        return {"ok": False, "error": str(e)}

    elapsed_ms = int((time.monotonic() - start) * 1000)
    if binary:
        stdout = result.stdout.decode("utf-8", "replace")
        stderr = result.stderr.decode("utf-8", "replace")
    else:
        stdout = result.stdout or ""
        stderr = result.stderr or ""

    if result.returncode == 0:
        outcome: dict[str, Any] = {
            "ok": True,
            "stdout": stdout[-2000:],
            "returncode": 0,
            "elapsed_ms": elapsed_ms,
        }
        if binary:
            outcome["stdout_bytes"] = result.stdout
        return outcome

    logger.debug("Command failed (exit %d): %s", result.returncode, " ".join(cmd))
    return {
        "ok": False,
        "error": f"Command failed (exit {result.returncode})",
        "returncode": result.returncode,
        "stderr": stderr[-2000:],
        "stdout": stdout[-2000:],
        "elapsed_ms": elapsed_ms,
    }

"""
Logging setup — diagnostics on stderr, an optional audit trail on disk.

The CLI prints every operation result on stdout itself, so the
console handler only carries diagnostics from adapters and stores:
a failed ``sudo install``, a skipped ledger line, the apt command
about to run. It stays quiet unless ``--log-level`` or
PREFLIGHT_LOG_LEVEL lowers it.

The log file (PREFLIGHT_LOG_FILE) is the audit trail of a host
session. It gets the diagnostics plus every report message logged
under ``preflight.ops``, with dates, so an install/uninstall cycle can
be reconstructed afterwards.
"""

from __future__ import annotations

import logging
import sys

# ── Formats ─────────────────────────────────────────────────────

# stderr, default: reads like a CLI error line
_CONSOLE_FMT = "preflight: %(levelname)s: %(message)s"

# stderr at INFO/DEBUG: which layer said it
_CONSOLE_FMT_DETAIL = "preflight: %(levelname)s [%(name)s:%(lineno)d] %(message)s"

# file: dated, one record per line
_FILE_FMT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"
_FILE_DATEFMT = "%Y-%m-%d %H:%M:%S"

REPORT_LOGGER = "preflight.ops"


class _SkipReportEcho(logging.Filter):
    """Keep ``preflight.ops`` records off stderr; they already went to stdout."""

    def filter(self, record: logging.LogRecord) -> bool:
        return not (record.name == REPORT_LOGGER or record.name.startswith(REPORT_LOGGER + "."))


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    log_file_level: str | None = None,
) -> None:
    """Install the stderr handler and, when asked, the audit log file.

    Replaces any handlers already on the root logger, so calling it
    again (as the tests do) does not stack output.

    Args:
        level: stderr threshold. Unknown names fall back to WARNING.
        log_file: Audit log path, opened in append mode.
        log_file_level: Threshold for the audit log. Defaults to ``level``.
    """
    console_level = _parse_level(level)
    console_fmt = _CONSOLE_FMT_DETAIL if console_level <= logging.INFO else _CONSOLE_FMT

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(logging.Formatter(console_fmt))
    console.addFilter(_SkipReportEcho())

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(console)
    root_level = console_level

    if log_file:
        file_level = _parse_level(log_file_level) if log_file_level else console_level
        audit = logging.FileHandler(log_file, encoding="utf-8", errors="replace")
        audit.setLevel(file_level)
        audit.setFormatter(logging.Formatter(_FILE_FMT, datefmt=_FILE_DATEFMT))
        root.addHandler(audit)
        root_level = min(root_level, file_level)

    # handlers filter by their own level; the root must admit the lower one
    root.setLevel(root_level)

    # logging failures are not fatal
    logging.raiseExceptions = False


def _parse_level(level: str | None) -> int:
    """Level name to number; blank or unknown means WARNING."""
    numeric = getattr(logging, level.upper(), None) if level else None
    return numeric if isinstance(numeric, int) else logging.WARNING

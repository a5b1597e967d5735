"""
Operation reports — the result contract between services and the CLI.

Services never print. They return an ``OperationReport`` carrying the
ordered messages the operator should see plus an overall status, and
log each message as they go. In dry-run mode the same messages are
produced, prefixed with ``[dry-run] Would``.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

MessageLevel = Literal["info", "pass", "warn", "fail"]

_LOG_LEVELS = {
    "info": logging.INFO,
    "pass": logging.INFO,
    "warn": logging.WARNING,
    "fail": logging.ERROR,
}


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class ReportMessage(BaseModel):
    level: MessageLevel = "info"
    text: str


class OperationReport(BaseModel):
    """Outcome of one tracked-category operation.

    ``status`` is ``ok`` unless ``fail()`` was called; ``skipped`` is
    used when there was nothing to do.
    """

    operation: str
    status: Literal["ok", "skipped", "failed"] = "ok"
    dry_run: bool = False

    started_at: str = Field(default_factory=_now_iso)
    ended_at: str = ""

    messages: list[ReportMessage] = Field(default_factory=list)
    error: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status != "failed"

    @property
    def failed(self) -> bool:
        return self.status == "failed"

    def _add(self, level: MessageLevel, text: str) -> None:
        self.messages.append(ReportMessage(level=level, text=text))
        logging.getLogger(f"preflight.ops.{self.operation}").log(_LOG_LEVELS[level], text)

    def info(self, text: str) -> None:
        self._add("info", text)

    def passed(self, text: str) -> None:
        self._add("pass", text)

    def warn(self, text: str) -> None:
        self._add("warn", text)

    def would(self, text: str) -> None:
        """Record an action suppressed by dry-run mode."""
        self._add("info", f"[dry-run] Would {text}")

    def fail(self, error: str) -> OperationReport:
        """Mark the operation failed; returns self so callers can ``return report.fail(...)``."""
        self.status = "failed"
        self.error = error
        self._add("fail", error)
        return self.finish()

    def skip(self, reason: str) -> OperationReport:
        if self.status != "failed":
            self.status = "skipped"
        self._add("info", reason)
        return self.finish()

    def finish(self) -> OperationReport:
        self.ended_at = _now_iso()
        return self

    def merge(self, other: OperationReport) -> None:
        """Fold a sub-operation's messages and failure into this report."""
        self.messages.extend(other.messages)
        if other.failed and not self.failed:
            self.status = "failed"
            self.error = other.error


class CheckResult(BaseModel):
    """One host check outcome."""

    name: str
    level: Literal["pass", "warn", "fail"]
    message: str
    required: bool = True


class CheckReport(BaseModel):
    """All host checks of one run."""

    results: list[CheckResult] = Field(default_factory=list)

    def add(self, result: CheckResult) -> None:
        self.results.append(result)

    @property
    def required_failures(self) -> int:
        return sum(1 for r in self.results if r.required and r.level == "fail")

    @property
    def optional_misses(self) -> int:
        return sum(1 for r in self.results if not r.required and r.level != "pass")

    @property
    def ok(self) -> bool:
        return self.required_failures == 0

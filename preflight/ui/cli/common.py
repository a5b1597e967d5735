"""
Shared CLI plumbing — build the run context and render reports.

Collaborators can be injected through ``ctx.obj`` (keys ``packages``,
``containers``, ``runner``, ``clock``, ``user``); tests use that to run
commands against the mock adapters.
"""

from __future__ import annotations

import json
import sys
from typing import Iterable

import click

from preflight.core.context import PreflightContext
from preflight.core.models.report import OperationReport

_STYLE = {
    "info": ("ℹ️ ", None),
    "pass": ("✅", "green"),
    "warn": ("⚠️ ", "yellow"),
    "fail": ("❌", "red"),
}


def get_context(ctx: click.Context) -> PreflightContext:
    """Load settings and wire a ``PreflightContext``; exit 1 on config errors."""
    from preflight.core.config.loader import load_settings
    from preflight.core.context import build_context
    from preflight.core.errors import PreflightError

    obj = ctx.obj
    overrides = {
        "state_dir": obj.get("state_dir"),
        "wslconf_path": obj.get("wslconf_path"),
    }
    dry_run = obj.get("dry_run", False)

    try:
        settings = load_settings(obj.get("config_path"), overrides=overrides)
        extra = {"clock": obj["clock"]} if obj.get("clock") else {}
        pctx = build_context(
            settings,
            dry_run=dry_run,
            packages=obj.get("packages"),
            containers=obj.get("containers"),
            runner=obj.get("runner"),
            user=obj.get("user"),
            **extra,
        )
        if not dry_run:
            pctx.ledger.ensure_exists()
    except PreflightError as e:
        click.secho(f"❌ {e}", fg="red")
        sys.exit(1)

    if dry_run and not obj.get("quiet"):
        click.secho("🧪 Dry run: nothing will be changed.", fg="cyan")
    return pctx


def echo_report(report: OperationReport) -> None:
    for message in report.messages:
        icon, color = _STYLE[message.level]
        click.secho(f"{icon} {message.text}", fg=color)


def render_reports(reports: Iterable[OperationReport], *, as_json: bool = False) -> None:
    """Print reports (or dump them as JSON) and exit 1 if any failed."""
    reports = list(reports)
    if as_json:
        payload = [r.model_dump() for r in reports]
        click.echo(json.dumps(payload[0] if len(payload) == 1 else payload, indent=2))
    else:
        for report in reports:
            echo_report(report)

    if any(r.failed for r in reports):
        sys.exit(1)

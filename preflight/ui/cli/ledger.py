"""
CLI commands for inspecting the ledger.
"""

from __future__ import annotations

import json
import sys

import click

from preflight.ui.cli.common import get_context


@click.group()
def ledger() -> None:
    """Ledger — what this tool has changed on the host."""


@ledger.command("show")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def show(ctx: click.Context, as_json: bool) -> None:
    """List every tracked entry in file order."""
    from preflight.core.errors import StorageError

    pctx = get_context(ctx)
    try:
        entries = pctx.ledger.entries()
    except StorageError as e:
        click.secho(f"❌ {e}", fg="red")
        sys.exit(1)

    if as_json:
        click.echo(json.dumps({
            "path": str(pctx.ledger.path),
            "entries": [{"line": e.line, **e.model_dump()} for e in entries],
        }, indent=2))
        return

    if not entries:
        click.secho(f"Nothing tracked in {pctx.ledger.path}", fg="yellow")
        return

    click.secho(f"📒 {pctx.ledger.path} ({len(entries)}):", fg="cyan", bold=True)
    for number, entry in enumerate(entries, start=1):
        click.echo(f"   {number:>4}  {entry.line}  ({entry.kind})")

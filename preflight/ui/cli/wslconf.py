"""
CLI commands for the managed wsl.conf.

Thin wrappers over ``preflight.core.services.wslconf_ops``.
"""

from __future__ import annotations

import sys

import click

from preflight.ui.cli.common import echo_report, get_context, render_reports


@click.group()
def wslconf() -> None:
    """wsl.conf — enable systemd, list and restore backups."""


@wslconf.command("set-systemd")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def set_systemd_cmd(ctx: click.Context, as_json: bool) -> None:
    """Back up wsl.conf, then ensure [boot] systemd=true."""
    from preflight.core.services.wslconf_ops import set_systemd

    report = set_systemd(get_context(ctx))

    if not as_json and report.metadata.get("diff"):
        for line in report.metadata["diff"].splitlines():
            click.echo(f"    {line}")
    render_reports([report], as_json=as_json)


@wslconf.command("backups")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def backups_cmd(ctx: click.Context, as_json: bool) -> None:
    """List wsl.conf backups (newest first, with restore indices)."""
    from preflight.core.services.wslconf_ops import show_backups

    report = show_backups(get_context(ctx))
    if as_json:
        render_reports([report], as_json=True)
        return

    if report.status == "skipped":
        click.secho(report.messages[-1].text, fg="yellow")
        return
    click.secho(f"📦 {report.messages[0].text}", fg="cyan", bold=True)
    for message in report.messages[1:]:
        click.echo(message.text)


@wslconf.command("restore-latest")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def restore_latest_cmd(ctx: click.Context, as_json: bool) -> None:
    """Restore the newest wsl.conf backup."""
    from preflight.core.services.wslconf_ops import restore_latest

    render_reports([restore_latest(get_context(ctx))], as_json=as_json)


@wslconf.command("restore")
@click.argument("value")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def restore_cmd(ctx: click.Context, value: str, as_json: bool) -> None:
    """Restore a wsl.conf backup by INDEX (0 = newest) or PATH.

    Examples:

        preflight wslconf restore 0

        preflight wslconf restore ~/.bettlebox-preflight/backups/wsl.conf-20240101-120000
    """
    from preflight.core.services.wslconf_ops import restore_backup

    report = restore_backup(get_context(ctx), value)
    if report.failed and not as_json:
        echo_report(report)
        click.echo("   List backups with: preflight wslconf backups")
        sys.exit(1)
    render_reports([report], as_json=as_json)

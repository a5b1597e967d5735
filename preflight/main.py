"""
Bettlebox Preflight — CLI entrypoint.

Usage:
    preflight --help
    preflight check
    preflight install --basics --docker-engine
    preflight --dry-run wslconf set-systemd
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path

import click

from preflight import __version__
from preflight.core.observability.logging_config import setup_logging
from preflight.ui.cli.common import get_context, render_reports


@click.group()
@click.version_option(version=__version__, prog_name="preflight")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to config.yml (default: ~/.bettlebox-preflight/config.yml).",
)
@click.option("--dry-run", is_flag=True, help="Simulate: report what would change, change nothing.")
@click.option("--state-dir", type=click.Path(), default=None, help="Ledger and backup directory.")
@click.option("--wslconf-path", type=click.Path(), default=None, help="Managed wsl.conf path.")
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
    dry_run: bool,
    state_dir: str | None,
    wslconf_path: str | None,
) -> None:
    """Bettlebox Preflight — prepare Ubuntu on WSL2 for embedded CI, reversibly."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = Path(config_path) if config_path else None
    ctx.obj["dry_run"] = dry_run
    ctx.obj["state_dir"] = state_dir
    ctx.obj["wslconf_path"] = wslconf_path

    # ── Logging setup (once, at process start) ──────────────────
    if debug:
        level = "DEBUG"
    elif verbose:
        level = "INFO"
    elif quiet:
        level = "ERROR"
    else:
        level = os.environ.get("PREFLIGHT_LOG_LEVEL", "WARNING")

    setup_logging(
        level=level,
        log_file=os.environ.get("PREFLIGHT_LOG_FILE"),
        log_file_level=os.environ.get("PREFLIGHT_LOG_FILE_LEVEL"),
    )


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def check(ctx: click.Context, as_json: bool) -> None:
    """Check that this host is ready for embedded CI work."""
    from preflight.core.services.checks import TIPS, gather_facts, run_checks

    pctx = get_context(ctx)
    report = run_checks(pctx.settings, gather_facts(pctx))

    if as_json:
        payload = report.model_dump()
        payload.update(
            ok=report.ok,
            required_failures=report.required_failures,
            optional_misses=report.optional_misses,
        )
        click.echo(json.dumps(payload, indent=2))
        sys.exit(0 if report.ok else 1)
        return

    icons = {"pass": ("✅", "green"), "warn": ("⚠️ ", "yellow"), "fail": ("❌", "red")}
    click.secho("Beetlebox/Embedded CI Preflight for Ubuntu (WSL2)", bold=True)
    click.echo("─" * 65)
    for result in report.results:
        icon, color = icons[result.level]
        click.secho(f"{icon} {result.message}", fg=color)
    click.echo("─" * 65)

    if report.ok:
        click.secho("✅ All REQUIRED checks passed.", fg="green", bold=True)
    else:
        click.secho(
            f"❌ There were {report.required_failures} REQUIRED failures.", fg="red", bold=True,
        )
    if report.optional_misses:
        click.secho(
            f"⚠️  {report.optional_misses} OPTIONAL items missing (consider installing).",
            fg="yellow",
        )

    if not ctx.obj.get("quiet"):
        click.echo()
        click.secho("💡 Tips:", fg="cyan")
        for tip in TIPS:
            click.echo(f"   • {tip}")
    click.echo()

    if not report.ok:
        sys.exit(1)


@cli.command()
@click.option("--basics", is_flag=True, help="git curl build-essential python3 python3-pip.")
@click.option("--qemu", is_flag=True, help="qemu-system.")
@click.option("--docker-engine", is_flag=True, help="Docker CE from the official apt repository.")
@click.option("--no-group", is_flag=True, help="Do not add the current user to the docker group.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def install(
    ctx: click.Context,
    basics: bool,
    qemu: bool,
    docker_engine: bool,
    no_group: bool,
    as_json: bool,
) -> None:
    """Install package sets, recording everything in the ledger.

    Each set is independent: a failing set does not undo or stop the others.
    """
    from preflight.core.services.docker_engine import install_docker_engine
    from preflight.core.services.package_ops import install_if_missing

    if not (basics or qemu or docker_engine):
        click.secho("Nothing selected. Use --basics, --qemu and/or --docker-engine.", fg="yellow")
        return

    pctx = get_context(ctx)
    reports = []
    if basics:
        reports.append(install_if_missing(pctx, pctx.settings.basics_packages))
    if qemu:
        reports.append(install_if_missing(pctx, pctx.settings.qemu_packages))
    if docker_engine:
        reports.append(install_docker_engine(pctx, no_group=no_group))

    render_reports(reports, as_json=as_json)


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def uninstall(ctx: click.Context, as_json: bool) -> None:
    """Purge every package this tool installed."""
    from preflight.core.services.package_ops import uninstall_all

    render_reports([uninstall_all(get_context(ctx))], as_json=as_json)


@cli.command("self-test")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
def self_test(as_json: bool) -> None:
    """Exercise ledger, backups and patcher in a throwaway directory."""
    from preflight.core.services.self_test import run_self_test

    report = run_self_test()

    if as_json:
        click.echo(json.dumps(report.to_dict(), indent=2))
        sys.exit(0 if report.ok else 1)
        return

    for result in report.results:
        if result.ok:
            click.secho(f"✅ {result.name}", fg="green")
        else:
            detail = f": {result.detail}" if result.detail else ""
            click.secho(f"❌ {result.name}{detail}", fg="red")

    click.echo("──── SELF-TEST SUMMARY ────")
    click.echo(f"Passed: {report.passed}  Failed: {report.failed}")
    if not report.ok:
        sys.exit(1)


# ── Register sub-groups ─────────────────────────────────────────

from preflight.ui.cli.docker import docker  # noqa: E402
from preflight.ui.cli.ledger import ledger  # noqa: E402
from preflight.ui.cli.wslconf import wslconf  # noqa: E402

cli.add_command(wslconf)
cli.add_command(docker)
cli.add_command(ledger)


if __name__ == "__main__":
    cli()

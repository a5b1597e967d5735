"""
CLI commands for Docker Engine purge and the hello-world smoke test.

Thin wrappers over ``preflight.core.services.docker_engine`` and
``preflight.core.services.docker_smoke``.
"""

from __future__ import annotations

import click

from preflight.ui.cli.common import get_context, render_reports


@click.group()
def docker() -> None:
    """Docker — purge the engine, run and clean up the smoke test."""


@docker.command("purge")
@click.option("--nuke-data", is_flag=True, help="Also delete /var/lib/docker and /var/lib/containerd.")
@click.option(
    "--tracked-only", is_flag=True,
    help="Only purge Docker packages this tool installed.",
)
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def purge_cmd(ctx: click.Context, nuke_data: bool, tracked_only: bool, as_json: bool) -> None:
    """Purge Docker CE and remove the apt repository, key and group grant."""
    from preflight.core.services.docker_engine import purge_docker_engine

    report = purge_docker_engine(
        get_context(ctx), nuke_data=nuke_data, tracked_only=tracked_only,
    )
    render_reports([report], as_json=as_json)


@docker.command("hello")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def hello_cmd(ctx: click.Context, as_json: bool) -> None:
    """Pull and run hello-world, tracking what was pulled."""
    from preflight.core.services.docker_smoke import hello

    render_reports([hello(get_context(ctx))], as_json=as_json)


@docker.command("cleanup-test")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def cleanup_test_cmd(ctx: click.Context, as_json: bool) -> None:
    """Remove the hello-world image, only if this tool pulled it."""
    from preflight.core.services.docker_smoke import cleanup_test

    render_reports([cleanup_test(get_context(ctx))], as_json=as_json)

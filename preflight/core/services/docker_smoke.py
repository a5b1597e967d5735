"""
Docker smoke test — run hello-world and clean up after it.

The test image is recorded only when this tool pulled it, so cleanup
never removes an image the operator already had.
"""

from __future__ import annotations

import logging

from preflight.core.context import PreflightContext
from preflight.core.errors import StorageError
from preflight.core.models.ledger import DockerTestEntry
from preflight.core.models.report import OperationReport

logger = logging.getLogger(__name__)


def hello(ctx: PreflightContext) -> OperationReport:
    """Pull (if needed) and run the smoke-test image once."""
    report = OperationReport(operation="docker.hello", dry_run=ctx.dry_run)
    image = ctx.settings.hello_image
    container = ctx.settings.hello_container
    runtime = ctx.containers

    if not runtime.is_available():
        return report.fail(f"{runtime.name} CLI not found.")
    if not runtime.daemon_reachable():
        return report.fail("Docker daemon not reachable.")

    try:
        if runtime.image_exists(image):
            report.info(f"Image already present: {image}")
        elif ctx.dry_run:
            report.would(f"pull {image}")
        else:
            report.info(f"Pulling {image} ...")
            pulled = runtime.pull(image)
            if not pulled["ok"]:
                return report.fail(f"Failed to pull {image}: {pulled.get('error', '')}")
            ctx.ledger.record([DockerTestEntry(name=image, artifact="IMAGE")])

        if ctx.dry_run:
            report.would(f"run {image} as {container}")
            return report.finish()

        report.info(f"Running {image} ...")
        runtime.remove_container(container)
        result = runtime.run(image, container)
        if not result["ok"]:
            return report.fail(f"{image} run failed: {result.get('error', '')}")
        ctx.ledger.record([DockerTestEntry(name=image, artifact="CONTAINER")])
    except StorageError as e:
        return report.fail(str(e))

    report.passed(f"{image} ran successfully.")
    return report.finish()


def cleanup_test(ctx: PreflightContext) -> OperationReport:
    """Remove the smoke-test container and image, but only if this tool pulled the image."""
    report = OperationReport(operation="docker.cleanup_test", dry_run=ctx.dry_run)
    image = ctx.settings.hello_image
    container = ctx.settings.hello_container
    runtime = ctx.containers
    image_entry = DockerTestEntry(name=image, artifact="IMAGE")
    container_entry = DockerTestEntry(name=image, artifact="CONTAINER")

    try:
        if not ctx.ledger.contains(image_entry):
            return report.skip("No recorded test image to clean.")
    except StorageError as e:
        return report.fail(str(e))

    if not runtime.is_available():
        report.warn(f"{runtime.name} CLI not found; cannot clean.")
        report.status = "skipped"
        return report.finish()

    if ctx.dry_run:
        report.would(f"remove container {container} and image {image}")
        ctx.ledger.remove_exact([image_entry, container_entry])
        return report.finish()

    runtime.remove_container(container)
    result = runtime.remove_image(image)
    if result["ok"]:
        report.info(f"Removed image: {image}")
    else:
        report.warn(f"Failed to remove image {image}: {result.get('error', '')}")

    if runtime.image_exists(image):
        report.warn(f"{image} still present; keeping its ledger entries.")
        return report.finish()

    try:
        ctx.ledger.remove_exact([image_entry, container_entry])
    except StorageError as e:
        return report.fail(str(e))
    return report.finish()

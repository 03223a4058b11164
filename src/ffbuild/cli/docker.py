"""Docker commands: docker-build, docker-package, docker-logs, clean-docker."""

from __future__ import annotations

import click

from ffbuild.cli.context import get_pipeline_context
from ffbuild.cli.output import CLIResult, report_errors, success_output
from ffbuild.config.models import VALID_BASE_IMAGES
from ffbuild.docker import DockerBuilder
from ffbuild.pipeline.context import PipelineContext


def _builder(pipeline: PipelineContext) -> DockerBuilder:
    return DockerBuilder(
        pipeline.config,
        pipeline.executor(),
        sleep=pipeline.sleep,
        detect=pipeline.detect,
    )


@click.command("docker-build")
@click.option("--no-cache", is_flag=True, help="Build the image without cache.")
@click.option("--pull", is_flag=True, help="Pull the latest base image.")
@click.option(
    "--base",
    type=click.Choice(VALID_BASE_IMAGES),
    default=None,
    help="Force an Ubuntu base image (default: 22.04, falling back to 20.04).",
)
@click.pass_context
def docker_build_command(
    ctx: click.Context, no_cache: bool, pull: bool, base: str | None
) -> None:
    """Build FFmpeg inside a Docker container."""
    pipeline = get_pipeline_context(ctx)
    with report_errors():
        summary = _builder(pipeline).build(base, no_cache=no_cache, pull=pull)
    message = f"Docker build completed on Ubuntu {summary['base_image']}"
    if summary["image_fallback"]:
        message += " (fallback image)"
    success_output(CLIResult(success=True, message=message))


@click.command("docker-package")
@click.pass_context
def docker_package_command(ctx: click.Context) -> None:
    """Create packages inside Docker from the last docker-build."""
    pipeline = get_pipeline_context(ctx)
    builder = _builder(pipeline)
    with report_errors():
        builder.check_docker()
        builder.package()
        builder.extract_artifacts()
    success_output(
        CLIResult(
            success=True,
            message=f"Packages written to {pipeline.config.paths.dist_dir}",
        )
    )


@click.command("docker-logs")
@click.pass_context
def docker_logs_command(ctx: click.Context) -> None:
    """Show output of the build container."""
    pipeline = get_pipeline_context(ctx)
    with report_errors():
        output = _builder(pipeline).logs()
    if output is None:
        click.echo(f"Container {pipeline.config.docker.container} not found")
        return
    click.echo(output)


@click.command("clean-docker")
@click.pass_context
def clean_docker_command(ctx: click.Context) -> None:
    """Remove the build container and image."""
    pipeline = get_pipeline_context(ctx)
    with report_errors():
        _builder(pipeline).clean()
    success_output(CLIResult(success=True, message="Docker artifacts cleaned"))

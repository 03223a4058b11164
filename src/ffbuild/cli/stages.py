"""Pipeline stage commands: setup, build, package, install, test, full-pipeline."""

from __future__ import annotations

from pathlib import Path

import click

from ffbuild.cli.context import get_pipeline_context
from ffbuild.cli.output import (
    CLIResult,
    report_errors,
    success_output,
    warning_output,
)
from ffbuild.core.formatting import format_duration
from ffbuild.pipeline import (
    BuildOptions,
    InstallOptions,
    PackageOptions,
    SetupOptions,
    run_build,
    run_install,
    run_package,
    run_pipeline,
    run_setup,
    run_test,
)

_setup_options = [
    click.option(
        "--minimal",
        is_flag=True,
        help="Skip optional header packages.",
    ),
    click.option(
        "--no-hwaccel",
        is_flag=True,
        help="Skip hardware acceleration development packages.",
    ),
    click.option(
        "--skip-install",
        is_flag=True,
        help="Do not install system packages; only check the host.",
    ),
]


def setup_flags(func):
    """Attach the setup flags to a command."""
    for option in reversed(_setup_options):
        func = option(func)
    return func


def _features_line(record: dict) -> str:
    features = record.get("features", {})
    line = f"Enabled codecs: {', '.join(features.get('enabled', [])) or 'none'}"
    if features.get("omitted"):
        line += f"\nOmitted: {', '.join(features['omitted'])}"
    if features.get("suspected_dropped"):
        line += (
            f"\nDropped after configure failure (suspected cause): "
            f"{features['suspected_dropped']}"
        )
    return line


@click.command("setup")
@setup_flags
@click.pass_context
def setup_command(
    ctx: click.Context, minimal: bool, no_hwaccel: bool, skip_install: bool
) -> None:
    """Check the host and install build dependencies."""
    pipeline = get_pipeline_context(ctx)
    options = SetupOptions(
        minimal=minimal, no_hwaccel=no_hwaccel, skip_install=skip_install
    )
    with report_errors():
        record = run_setup(pipeline, options)
    missing = [name for name, tool in record["tools"].items() if not tool["available"]]
    success_output(CLIResult(success=True, message="Setup complete."))
    if missing:
        warning_output(f"Optional tools not found: {', '.join(missing)}")


@click.command("build")
@click.option("--force", is_flag=True, help="Rebuild even if outputs exist.")
@click.pass_context
def build_command(ctx: click.Context, force: bool) -> None:
    """Build codec libraries and FFmpeg."""
    pipeline = get_pipeline_context(ctx)
    with report_errors():
        record = run_build(pipeline, BuildOptions(force=force))
    success_output(
        CLIResult(
            success=True,
            message=(
                f"Built FFmpeg {record['ffmpeg_version']}.\n"
                f"{_features_line(record)}"
            ),
        )
    )


@click.command("package")
@click.option("--revision", default=None, help="Debian package revision.")
@click.option("--maintainer", default=None, help="Debian Maintainer field.")
@click.pass_context
def package_command(
    ctx: click.Context, revision: str | None, maintainer: str | None
) -> None:
    """Create the portable archive and the .deb package."""
    pipeline = get_pipeline_context(ctx)
    with report_errors():
        record = run_package(
            pipeline, PackageOptions(revision=revision, maintainer=maintainer)
        )
    success_output(
        CLIResult(
            success=True,
            message=(
                f"Created {Path(record['archive']).name} and "
                f"{Path(record['deb']).name} "
                f"({record['installed_size_kb']} KB installed)"
            ),
        )
    )


@click.command("install")
@click.option(
    "--install-root",
    type=click.Path(path_type=Path, file_okay=False),
    default=Path("/"),
    show_default=True,
    help="Root directory to install into.",
)
@click.option("--no-backup", is_flag=True, help="Do not back up an existing FFmpeg.")
@click.option("--no-deps", is_flag=True, help="Skip runtime dependency installation.")
@click.pass_context
def install_command(
    ctx: click.Context, install_root: Path, no_backup: bool, no_deps: bool
) -> None:
    """Install the portable archive on this system."""
    pipeline = get_pipeline_context(ctx)
    options = InstallOptions(
        install_root=install_root, backup=not no_backup, install_deps=not no_deps
    )
    with report_errors():
        record = run_install(pipeline, options)
    message = f"Installed FFmpeg {record['ffmpeg_version']} into {install_root}."
    if record["backup_dir"]:
        message += f" Previous files saved in {record['backup_dir']}."
    message += f"\nTo uninstall: {record['uninstall_script']}"
    success_output(CLIResult(success=True, message=message))


@click.command("test")
@click.pass_context
def test_command(ctx: click.Context) -> None:
    """Smoke-test the staged ffmpeg binary."""
    pipeline = get_pipeline_context(ctx)
    with report_errors():
        record = run_test(pipeline)
    success_output(
        CLIResult(
            success=True,
            message=f"Test passed ({record['encoder']}): {record['version_line']}",
        )
    )


@click.command("full-pipeline")
@setup_flags
@click.option("--force", is_flag=True, help="Rebuild even if outputs exist.")
@click.pass_context
def full_pipeline_command(
    ctx: click.Context,
    minimal: bool,
    no_hwaccel: bool,
    skip_install: bool,
    force: bool,
) -> None:
    """Run setup, build, package and test."""
    pipeline = get_pipeline_context(ctx)
    with report_errors():
        result = run_pipeline(
            pipeline,
            setup=SetupOptions(
                minimal=minimal, no_hwaccel=no_hwaccel, skip_install=skip_install
            ),
            build=BuildOptions(force=force),
        )
    package = result.records["package"]
    success_output(
        CLIResult(
            success=True,
            message=(
                f"Pipeline finished in {format_duration(result.elapsed_seconds)}.\n"
                f"{_features_line(result.records['build'])}\n"
                f"Packages: {Path(package['archive']).name}, "
                f"{Path(package['deb']).name}"
            ),
        )
    )

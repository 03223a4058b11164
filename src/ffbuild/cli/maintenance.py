"""Housekeeping commands: clean, info, logs, backup."""

from __future__ import annotations

import json

import click

from ffbuild.cli.context import get_pipeline_context
from ffbuild.cli.output import CLIResult, report_errors, success_output
from ffbuild.pipeline import collect_info, run_backup, run_clean, tail_log


@click.command("clean")
@click.pass_context
def clean_command(ctx: click.Context) -> None:
    """Remove build and dist directories."""
    pipeline = get_pipeline_context(ctx)
    removed = run_clean(pipeline.config)
    if removed:
        message = "Removed " + ", ".join(str(p) for p in removed)
    else:
        message = "Nothing to clean."
    success_output(CLIResult(success=True, message=message))


def _format_info(info: dict) -> str:
    build = info["build"]
    features = info["features"]
    system = info["system"]
    lines = [
        "FFmpeg Build Information",
        "=" * 40,
        f"ffbuild:        {info['ffbuild_version']}",
        f"FFmpeg version: {info['ffmpeg_version']}",
        f"Build status:   {build['status']}",
        f"Build dir:      {build['build_dir']} ({build['size']})",
        "",
        "Stages:",
    ]
    for stage, done in info["stages"].items():
        lines.append(f"  {'✓' if done else '·'} {stage}")
    lines += ["", f"Enabled codecs: {', '.join(features['enabled']) or 'none'}"]
    if features["omitted"]:
        lines.append(f"Omitted codecs: {', '.join(features['omitted'])}")
    if features["suspected_dropped"]:
        lines.append(f"Dropped (suspected): {features['suspected_dropped']}")
    lines += ["", "Packages:"]
    if info["packages"]:
        lines += [f"  {p['name']} ({p['size']})" for p in info["packages"]]
    else:
        lines.append("  none")
    lines += [
        "",
        "System:",
        f"  OS:     {system['os']}",
        f"  Arch:   {system['architecture']}",
        f"  CPUs:   {system['cpu_count']}",
        f"  Memory: {system['memory']}",
        f"  Disk:   {system['disk_free']} free",
    ]
    return "\n".join(lines)


@click.command("info")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON.")
@click.pass_context
def info_command(ctx: click.Context, json_output: bool) -> None:
    """Show build status, packages and system information."""
    pipeline = get_pipeline_context(ctx, json_output=json_output)
    info = collect_info(pipeline)
    if json_output:
        click.echo(json.dumps(info, indent=2, default=str))
    else:
        click.echo(_format_info(info))


@click.command("logs")
@click.option(
    "--lines",
    "-n",
    type=click.IntRange(min=1),
    default=50,
    show_default=True,
    help="Number of lines to show.",
)
@click.pass_context
def logs_command(ctx: click.Context, lines: int) -> None:
    """Show the end of the build log."""
    pipeline = get_pipeline_context(ctx)
    log_file = pipeline.config.paths.log_file
    output = tail_log(log_file, lines)
    if not output:
        click.echo(f"No build log at {log_file}")
        return
    click.echo("\n".join(output))


@click.command("backup")
@click.pass_context
def backup_command(ctx: click.Context) -> None:
    """Archive build and dist directories (without object files)."""
    pipeline = get_pipeline_context(ctx)
    with report_errors():
        archive = run_backup(pipeline.config)
    success_output(CLIResult(success=True, message=f"Backup written to {archive}"))

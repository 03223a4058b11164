"""CLI module for ffbuild."""

from pathlib import Path

import click


@click.group()
@click.version_option(package_name="ffbuild")
@click.option(
    "--log-level",
    type=click.Choice(["debug", "info", "warning", "error"], case_sensitive=False),
    default=None,
    help="Override log level (default: info).",
)
@click.option(
    "--log-file",
    type=click.Path(path_type=Path),
    default=None,
    help="Override log file path (default: stderr only).",
)
@click.option(
    "--log-json",
    is_flag=True,
    default=False,
    help="Use JSON log format.",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(path_type=Path, dir_okay=False),
    default=None,
    help="Config file (default: ~/.ffbuild/config.toml).",
)
@click.option(
    "--recipe",
    "recipe_path",
    type=click.Path(path_type=Path, dir_okay=False),
    default=None,
    help="Build recipe YAML (default: bundled recipe).",
)
@click.pass_context
def main(
    ctx: click.Context,
    log_level: str | None,
    log_file: Path | None,
    log_json: bool,
    config_path: Path | None,
    recipe_path: Path | None,
) -> None:
    """ffbuild - Build portable FFmpeg packages with bundled codecs."""
    ctx.ensure_object(dict)
    ctx.obj["log_level"] = log_level.lower() if log_level else None
    ctx.obj["log_file"] = log_file
    ctx.obj["log_json"] = log_json
    ctx.obj["config_path"] = config_path
    ctx.obj["recipe_path"] = recipe_path


# Defer import to avoid circular dependency
def _register_commands():
    from ffbuild.cli.docker import (
        clean_docker_command,
        docker_build_command,
        docker_logs_command,
        docker_package_command,
    )
    from ffbuild.cli.maintenance import (
        backup_command,
        clean_command,
        info_command,
        logs_command,
    )
    from ffbuild.cli.stages import (
        build_command,
        full_pipeline_command,
        install_command,
        package_command,
        setup_command,
        test_command,
    )

    main.add_command(setup_command)
    main.add_command(build_command)
    main.add_command(package_command)
    main.add_command(install_command)
    main.add_command(test_command)
    main.add_command(full_pipeline_command)
    main.add_command(clean_command)
    main.add_command(info_command)
    main.add_command(logs_command)
    main.add_command(backup_command)
    main.add_command(docker_build_command)
    main.add_command(docker_package_command)
    main.add_command(docker_logs_command)
    main.add_command(clean_docker_command)


_register_commands()

"""Per-invocation pipeline context for CLI commands."""

from __future__ import annotations

import logging
from pathlib import Path

import click

from ffbuild.cli.exit_codes import ExitCode
from ffbuild.cli.output import error_exit
from ffbuild.config import ConfigSource, get_config
from ffbuild.config.toml_parser import TomlParseError
from ffbuild.logging import configure_logging
from ffbuild.pipeline.context import PipelineContext
from ffbuild.recipe import RecipeValidationError, load_recipe

logger = logging.getLogger(__name__)


def cli_config_source(obj: dict) -> ConfigSource:
    """ConfigSource holding the global CLI options."""
    log_json = obj.get("log_json")
    return ConfigSource(
        recipe_path=obj.get("recipe_path"),
        logging_level=obj.get("log_level"),
        logging_file=obj.get("log_file"),
        logging_format="json" if log_json else None,
    )


def get_pipeline_context(
    ctx: click.Context, json_output: bool = False
) -> PipelineContext:
    """Load config and recipe once per invocation.

    A PipelineContext already stored in ctx.obj (tests) is used as is.
    Invalid configuration or recipes exit with CONFIG_ERROR.
    """
    obj = ctx.ensure_object(dict)
    existing = obj.get("pipeline_context")
    if existing is not None:
        return existing

    config_path: Path | None = obj.get("config_path")
    try:
        config = get_config(
            config_path, cli_source=cli_config_source(obj), strict=True
        )
    except TomlParseError as e:
        error_exit(e.message, ExitCode.CONFIG_ERROR, json_output)
    except ValueError as e:
        error_exit(f"Invalid configuration: {e}", ExitCode.CONFIG_ERROR, json_output)

    configure_logging(config.logging)

    try:
        recipe = load_recipe(config.recipe_path)
    except RecipeValidationError as e:
        error_exit(e.message, ExitCode.CONFIG_ERROR, json_output)

    pipeline = PipelineContext(config=config, recipe=recipe)
    ctx.call_on_close(pipeline.close)
    obj["pipeline_context"] = pipeline
    logger.debug(
        "ffbuild starting: build_dir=%s, recipe=%s",
        config.paths.build_dir,
        config.recipe_path or "default",
    )
    return pipeline

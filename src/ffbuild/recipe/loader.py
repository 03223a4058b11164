"""Recipe file loading and validation.

Recipes are YAML documents validated with the Pydantic models in
ffbuild.recipe.models. The bundled default recipe reproduces the portable
Ubuntu x64 build: x264, mp3lame and opus are required, x265 is optional
and negotiated last.
"""

from __future__ import annotations

import logging
from importlib import resources
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from ffbuild.recipe.models import RecipeModel

logger = logging.getLogger(__name__)

DEFAULT_RECIPE_RESOURCE = "default.yaml"


class RecipeValidationError(Exception):
    """Error during recipe validation."""

    def __init__(self, message: str, field: str | None = None) -> None:
        self.message = message
        self.field = field
        super().__init__(message)


def _format_validation_error(error: ValidationError) -> tuple[str, str | None]:
    """Reduce a pydantic ValidationError to a message and the first field path."""
    details = error.errors()
    if not details:
        return str(error), None
    first = details[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    message = first.get("msg", "invalid value")
    extra = f" (and {len(details) - 1} more)" if len(details) > 1 else ""
    if location:
        return f"{location}: {message}{extra}", location
    return f"{message}{extra}", None


def parse_recipe(data: Any, source: str = "<recipe>") -> RecipeModel:
    """Validate a parsed YAML document as a recipe.

    Args:
        data: Parsed YAML (must be a mapping).
        source: Name used in error messages.

    Returns:
        Validated RecipeModel.

    Raises:
        RecipeValidationError: If the document is not a valid recipe.
    """
    if not isinstance(data, dict):
        raise RecipeValidationError(f"{source}: recipe must be a YAML mapping")
    try:
        return RecipeModel.model_validate(data)
    except ValidationError as e:
        message, field = _format_validation_error(e)
        raise RecipeValidationError(f"{source}: {message}", field=field) from e


def load_default_recipe() -> RecipeModel:
    """Load the recipe bundled with the package."""
    text = (
        resources.files("ffbuild.recipe")
        .joinpath(DEFAULT_RECIPE_RESOURCE)
        .read_text(encoding="utf-8")
    )
    return parse_recipe(yaml.safe_load(text), source="default recipe")


def load_recipe(path: Path | None = None) -> RecipeModel:
    """Load a recipe file, or the bundled default when path is None.

    Raises:
        RecipeValidationError: If the file is missing, not valid YAML, or
            fails validation.
    """
    if path is None:
        return load_default_recipe()

    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise RecipeValidationError(f"Cannot read recipe {path}: {e}") from e

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise RecipeValidationError(f"{path}: invalid YAML: {e}") from e

    recipe = parse_recipe(data, source=str(path))
    logger.debug(
        "Loaded recipe %s with %d codec libraries", path, len(recipe.codec_libraries)
    )
    return recipe

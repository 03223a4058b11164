"""Build recipes: what to fetch, build, enable and package."""

from ffbuild.recipe.loader import (
    RecipeValidationError,
    load_default_recipe,
    load_recipe,
    parse_recipe,
)
from ffbuild.recipe.models import (
    SCHEMA_VERSION,
    ArchiveSourceModel,
    BuildSystem,
    CodecLibraryModel,
    FFmpegSourceModel,
    GitSourceModel,
    PackageMetadataModel,
    RecipeModel,
    SetupModel,
    SourceModel,
)

__all__ = [
    "SCHEMA_VERSION",
    "ArchiveSourceModel",
    "BuildSystem",
    "CodecLibraryModel",
    "FFmpegSourceModel",
    "GitSourceModel",
    "PackageMetadataModel",
    "RecipeModel",
    "RecipeValidationError",
    "SetupModel",
    "SourceModel",
    "load_default_recipe",
    "load_recipe",
    "parse_recipe",
]

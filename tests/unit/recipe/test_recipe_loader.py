"""Tests for recipe loading and validation."""

import copy
from pathlib import Path

import pytest
import yaml

from ffbuild.recipe import (
    BuildSystem,
    RecipeValidationError,
    load_default_recipe,
    load_recipe,
    parse_recipe,
)

MINIMAL = {
    "codec_libraries": [
        {
            "name": "x264",
            "feature_flag": "--enable-libx264",
            "artifact": "lib/libx264.so",
            "source": {"git": {"url": "https://example.test/x264.git"}},
        }
    ]
}


def minimal(**library_overrides) -> dict:
    data = copy.deepcopy(MINIMAL)
    data["codec_libraries"][0].update(library_overrides)
    return data


class TestDefaultRecipe:
    def test_loads(self):
        recipe = load_default_recipe()

        names = [lib.name for lib in recipe.libraries_by_priority()]
        assert names == ["x264", "mp3lame", "opus", "x265"]

    def test_x265_is_optional_cmake_and_last(self):
        recipe = load_default_recipe()

        x265 = recipe.libraries_by_priority()[-1]
        assert x265.optional
        assert x265.build_system == BuildSystem.CMAKE
        assert x265.cmake_source_dir == "source"
        assert x265.salvage

    def test_load_recipe_without_path_is_default(self):
        assert load_recipe(None) == load_default_recipe()


class TestParseRecipe:
    def test_defaults_filled_in(self):
        recipe = parse_recipe(MINIMAL)

        library = recipe.codec_libraries[0]
        assert library.build_system == BuildSystem.AUTOTOOLS
        assert library.optional is False
        assert library.bundle == ["lib/libx264.so*"]
        assert library.source.git.branch == "master"
        assert recipe.package.bundled_lib_dir == "lib/ffmpeg-codecs"

    def test_not_a_mapping(self):
        with pytest.raises(RecipeValidationError, match="must be a YAML mapping"):
            parse_recipe(["x264"])

    def test_unknown_key_rejected(self):
        with pytest.raises(RecipeValidationError) as exc_info:
            parse_recipe(minimal(colour="blue"))

        assert exc_info.value.field == "codec_libraries.0.colour"

    def test_feature_flag_must_enable(self):
        with pytest.raises(RecipeValidationError, match="--enable-"):
            parse_recipe(minimal(feature_flag="--disable-libx264"))

    def test_source_needs_exactly_one_kind(self):
        both = {
            "git": {"url": "https://example.test/x264.git"},
            "archive": {"url": "https://example.test/x.tar.gz", "directory": "x"},
        }
        with pytest.raises(RecipeValidationError, match="exactly one"):
            parse_recipe(minimal(source=both))
        with pytest.raises(RecipeValidationError, match="exactly one"):
            parse_recipe(minimal(source={}))

    def test_duplicate_names_rejected(self):
        data = copy.deepcopy(MINIMAL)
        data["codec_libraries"].append(
            dict(data["codec_libraries"][0], feature_flag="--enable-other")
        )

        with pytest.raises(RecipeValidationError, match="Duplicate codec library"):
            parse_recipe(data)

    def test_duplicate_flags_rejected(self):
        data = copy.deepcopy(MINIMAL)
        data["codec_libraries"].append(dict(data["codec_libraries"][0], name="x264b"))

        with pytest.raises(RecipeValidationError, match="distinct feature_flag"):
            parse_recipe(data)

    def test_unsupported_schema_version(self):
        with pytest.raises(RecipeValidationError, match="schema_version"):
            parse_recipe({"schema_version": 99})

    def test_source_url_needs_placeholder(self):
        with pytest.raises(RecipeValidationError, match="placeholder"):
            parse_recipe({"ffmpeg": {"source_url": "https://example.test/ffmpeg.tar"}})

    def test_priority_orders_libraries(self, test_recipe):
        names = [lib.name for lib in test_recipe.libraries_by_priority()]

        assert names == ["x264", "opus", "x265"]


class TestLoadRecipe:
    def test_from_file(self, tmp_path: Path):
        path = tmp_path / "recipe.yaml"
        path.write_text(yaml.safe_dump(MINIMAL))

        recipe = load_recipe(path)

        assert recipe.codec_libraries[0].name == "x264"

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(RecipeValidationError, match="Cannot read recipe"):
            load_recipe(tmp_path / "absent.yaml")

    def test_invalid_yaml(self, tmp_path: Path):
        path = tmp_path / "recipe.yaml"
        path.write_text("codec_libraries: [unclosed\n")

        with pytest.raises(RecipeValidationError, match="invalid YAML"):
            load_recipe(path)

    def test_error_names_file(self, tmp_path: Path):
        path = tmp_path / "recipe.yaml"
        path.write_text("schema_version: 2\n")

        with pytest.raises(RecipeValidationError) as exc_info:
            load_recipe(path)

        assert str(path) in exc_info.value.message

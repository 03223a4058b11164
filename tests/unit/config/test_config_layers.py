"""Tests for layered configuration (file < env < CLI)."""

from pathlib import Path

import pytest

from ffbuild.config import (
    ConfigBuilder,
    ConfigSource,
    EnvReader,
    TomlParseError,
    clear_config_cache,
    get_config,
    load_config_file,
    source_from_env,
    source_from_file,
)
from ffbuild.config.models import BuildConfig, LoggingConfig, RetryConfig

CONFIG_TOML = """
[paths]
build_dir = "/srv/ffbuild/build"
dist_dir = "/srv/ffbuild/dist"

[build]
ffmpeg_version = "6.0"
threads = 4

[retry]
max_retries = 3
delay_seconds = 1.5

[package]
revision = 7

[logging]
level = "debug"
"""


@pytest.fixture(autouse=True)
def _clear_cache():
    clear_config_cache()
    yield
    clear_config_cache()


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    path = tmp_path / "config.toml"
    path.write_text(CONFIG_TOML)
    return path


class TestEnvReader:
    def test_typed_values(self):
        reader = EnvReader(
            {"A": "3", "B": "2.5", "C": "yes", "D": "off", "E": "~/x", "F": ""}
        )

        assert reader.get_int("A") == 3
        assert reader.get_float("B") == 2.5
        assert reader.get_bool("C") is True
        assert reader.get_bool("D") is False
        assert reader.get_path("E") == Path("~/x").expanduser()
        assert reader.get_str("F") is None

    def test_invalid_values_are_ignored(self):
        reader = EnvReader({"A": "many", "B": "maybe"})

        assert reader.get_int("A") is None
        assert reader.get_bool("B") is None


class TestSources:
    def test_source_from_file(self, config_file: Path):
        source = source_from_file(load_config_file(config_file))

        assert source.build_dir == Path("/srv/ffbuild/build")
        assert source.ffmpeg_version == "6.0"
        assert source.threads == 4
        assert source.max_retries == 3
        assert source.retry_delay == 1.5
        assert source.package_revision == "7"
        assert source.logging_level == "debug"

    def test_source_from_env_fallback_names(self):
        source = source_from_env(EnvReader({"THREADS": "6", "DOCKER_BUILD": "1"}))

        assert source.threads == 6
        assert source.in_docker is True

    def test_prefixed_env_wins_over_fallback(self):
        source = source_from_env(
            EnvReader({"FFBUILD_DOCKER_BUILD": "0", "DOCKER_BUILD": "1"})
        )

        assert source.in_docker is False


class TestPrecedence:
    def test_defaults(self, tmp_path: Path):
        config = get_config(tmp_path / "missing.toml", env_reader=EnvReader({}))

        assert config.build.ffmpeg_version == BuildConfig().ffmpeg_version
        assert config.retry.max_retries == RetryConfig().max_retries
        assert config.logging.level == LoggingConfig().level
        assert config.in_docker is False

    def test_file_env_cli_order(self, config_file: Path):
        env = EnvReader({"FFBUILD_THREADS": "8", "FFBUILD_FFMPEG_VERSION": "6.1"})
        cli = ConfigSource(ffmpeg_version="7.0")

        config = get_config(config_file, cli_source=cli, env_reader=env)

        assert config.paths.build_dir == Path("/srv/ffbuild/build")  # file
        assert config.build.threads == 8  # env over file
        assert config.build.ffmpeg_version == "7.0"  # cli over env
        assert config.retry.delay_seconds == 1.5

    def test_builder_tracks_sources(self):
        builder = ConfigBuilder()
        builder.apply(ConfigSource(threads=2), source_name="file")
        builder.apply(ConfigSource(threads=3), source_name="env")

        assert builder.build().build.threads == 3
        assert builder.source_of("threads") == "env"
        assert builder.source_of("ffmpeg_version") == "default"

    def test_invalid_value_raises(self):
        builder = ConfigBuilder()
        builder.apply(ConfigSource(max_retries=0))

        with pytest.raises(ValueError, match="max_retries"):
            builder.build()


class TestConfigFile:
    def test_missing_file_is_empty(self, tmp_path: Path):
        assert load_config_file(tmp_path / "nope.toml") == {}

    def test_invalid_toml_lenient(self, tmp_path: Path):
        path = tmp_path / "bad.toml"
        path.write_text("[build\nthreads = ")

        assert load_config_file(path) == {}

    def test_invalid_toml_strict(self, tmp_path: Path):
        path = tmp_path / "bad.toml"
        path.write_text("[build\nthreads = ")

        with pytest.raises(TomlParseError):
            load_config_file(path, strict=True)

    def test_config_path_from_env(self, config_file: Path, monkeypatch):
        monkeypatch.setenv("FFBUILD_CONFIG_PATH", str(config_file))

        config = get_config(env_reader=EnvReader({}))

        assert config.build.threads == 4

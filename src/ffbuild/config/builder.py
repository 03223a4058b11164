"""Configuration builder with explicit layering.

This module provides ConfigBuilder for building FFBuildConfig by composing
multiple configuration sources with explicit precedence handling.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

from ffbuild.config.env import EnvReader
from ffbuild.config.models import (
    BuildConfig,
    DockerConfig,
    FFBuildConfig,
    LoggingConfig,
    PackageConfig,
    PathsConfig,
    RetryConfig,
)


@dataclass
class ConfigSource:
    """Configuration values from a single source.

    None values indicate "not specified in this source" and will not
    override values from lower-precedence sources.
    """

    # Paths
    build_dir: Path | None = None
    dist_dir: Path | None = None
    recipe_path: Path | None = None

    # Build
    ffmpeg_version: str | None = None
    install_prefix: str | None = None
    threads: int | None = None
    extra_version: str | None = None
    min_free_disk_gb: float | None = None
    step_timeout: float | None = None

    # Retry
    max_retries: int | None = None
    retry_delay: float | None = None

    # Docker
    docker_image: str | None = None
    docker_container: str | None = None
    dockerfile_primary: Path | None = None
    dockerfile_fallback: Path | None = None
    docker_max_retries: int | None = None
    docker_retry_delay: float | None = None
    in_docker: bool | None = None

    # Package
    package_name: str | None = None
    package_revision: str | None = None
    package_architecture: str | None = None
    package_maintainer: str | None = None

    # Logging
    logging_level: str | None = None
    logging_file: Path | None = None
    logging_format: str | None = None
    logging_include_stderr: bool | None = None
    logging_max_bytes: int | None = None
    logging_backup_count: int | None = None


class ConfigBuilder:
    """Builds FFBuildConfig by layering ConfigSources with precedence.

    Later sources override earlier ones (for non-None values).

    Example:
        builder = ConfigBuilder()
        builder.apply(source_from_file(file_config))
        builder.apply(source_from_env(reader))
        builder.apply(cli_source)
        config = builder.build()
    """

    def __init__(self) -> None:
        self._values: dict[str, Any] = {}
        self._sources: dict[str, str] = {}

    def apply(self, source: ConfigSource, source_name: str = "unknown") -> None:
        """Apply configuration source, overriding existing values.

        Args:
            source: Configuration source to apply.
            source_name: Label recorded for each value set (file, env, cli).
        """
        for field_obj in fields(source):
            value = getattr(source, field_obj.name)
            if value is not None:
                self._values[field_obj.name] = value
                self._sources[field_obj.name] = source_name

    def source_of(self, key: str) -> str:
        """Return which source supplied a key ("default" if none did)."""
        return self._sources.get(key, "default")

    def _get(self, key: str, default: Any) -> Any:
        return self._values.get(key, default)

    def build(self) -> FFBuildConfig:
        """Build the final FFBuildConfig with defaults for unset values.

        Raises:
            ValueError: If a section rejects a value during validation.
        """
        paths_defaults = PathsConfig()
        paths = PathsConfig(
            build_dir=self._get("build_dir", paths_defaults.build_dir),
            dist_dir=self._get("dist_dir", paths_defaults.dist_dir),
        )

        build_defaults = BuildConfig()
        build = BuildConfig(
            ffmpeg_version=self._get("ffmpeg_version", build_defaults.ffmpeg_version),
            install_prefix=self._get("install_prefix", build_defaults.install_prefix),
            threads=self._get("threads", build_defaults.threads),
            extra_version=self._get("extra_version", build_defaults.extra_version),
            min_free_disk_gb=self._get(
                "min_free_disk_gb", build_defaults.min_free_disk_gb
            ),
            step_timeout=self._get("step_timeout", build_defaults.step_timeout),
        )

        retry = RetryConfig(
            max_retries=self._get("max_retries", RetryConfig.max_retries),
            delay_seconds=self._get("retry_delay", RetryConfig.delay_seconds),
        )

        docker = DockerConfig(
            image=self._get("docker_image", DockerConfig.image),
            container=self._get("docker_container", DockerConfig.container),
            dockerfile_primary=self._get(
                "dockerfile_primary", DockerConfig.dockerfile_primary
            ),
            dockerfile_fallback=self._get(
                "dockerfile_fallback", DockerConfig.dockerfile_fallback
            ),
            max_retries=self._get("docker_max_retries", DockerConfig.max_retries),
            retry_delay=self._get("docker_retry_delay", DockerConfig.retry_delay),
        )

        package = PackageConfig(
            name=self._get("package_name", PackageConfig.name),
            revision=self._get("package_revision", PackageConfig.revision),
            architecture=self._get(
                "package_architecture", PackageConfig.architecture
            ),
            maintainer=self._get("package_maintainer", PackageConfig.maintainer),
        )

        logging_config = LoggingConfig(
            level=self._get("logging_level", LoggingConfig.level),
            file=self._get("logging_file", None),
            format=self._get("logging_format", LoggingConfig.format),
            include_stderr=self._get(
                "logging_include_stderr", LoggingConfig.include_stderr
            ),
            max_bytes=self._get("logging_max_bytes", LoggingConfig.max_bytes),
            backup_count=self._get("logging_backup_count", LoggingConfig.backup_count),
        )

        return FFBuildConfig(
            paths=paths,
            build=build,
            retry=retry,
            docker=docker,
            package=package,
            logging=logging_config,
            recipe_path=self._get("recipe_path", None),
            in_docker=self._get("in_docker", False),
        )


def _first_set(*values: Any) -> Any:
    """First value that is not None."""
    return next((v for v in values if v is not None), None)


def _path_or_none(value: Any) -> Path | None:
    if value is None or value == "":
        return None
    return Path(str(value)).expanduser()


def source_from_file(file_config: dict[str, Any]) -> ConfigSource:
    """Create a ConfigSource from a parsed config file.

    Args:
        file_config: Parsed TOML dict with [paths], [build], [retry],
            [docker], [package] and [logging] sections.

    Returns:
        ConfigSource with the values present in the file.
    """
    paths = file_config.get("paths", {})
    build = file_config.get("build", {})
    retry = file_config.get("retry", {})
    docker = file_config.get("docker", {})
    package = file_config.get("package", {})
    logging_section = file_config.get("logging", {})

    return ConfigSource(
        build_dir=_path_or_none(paths.get("build_dir")),
        dist_dir=_path_or_none(paths.get("dist_dir")),
        recipe_path=_path_or_none(paths.get("recipe")),
        ffmpeg_version=build.get("ffmpeg_version"),
        install_prefix=build.get("install_prefix"),
        threads=build.get("threads"),
        extra_version=build.get("extra_version"),
        min_free_disk_gb=build.get("min_free_disk_gb"),
        step_timeout=build.get("step_timeout"),
        max_retries=retry.get("max_retries"),
        retry_delay=retry.get("delay_seconds"),
        docker_image=docker.get("image"),
        docker_container=docker.get("container"),
        dockerfile_primary=_path_or_none(docker.get("dockerfile_primary")),
        dockerfile_fallback=_path_or_none(docker.get("dockerfile_fallback")),
        docker_max_retries=docker.get("max_retries"),
        docker_retry_delay=docker.get("retry_delay"),
        package_name=package.get("name"),
        package_revision=(
            str(package["revision"]) if package.get("revision") is not None else None
        ),
        package_architecture=package.get("architecture"),
        package_maintainer=package.get("maintainer"),
        logging_level=logging_section.get("level"),
        logging_file=_path_or_none(logging_section.get("file")),
        logging_format=logging_section.get("format"),
        logging_include_stderr=logging_section.get("include_stderr"),
        logging_max_bytes=logging_section.get("max_bytes"),
        logging_backup_count=logging_section.get("backup_count"),
    )


def source_from_env(reader: EnvReader) -> ConfigSource:
    """Create a ConfigSource from FFBUILD_* environment variables.

    Args:
        reader: Environment reader.

    Returns:
        ConfigSource with the values present in the environment.
    """
    return ConfigSource(
        build_dir=reader.get_path("FFBUILD_BUILD_DIR"),
        dist_dir=reader.get_path("FFBUILD_DIST_DIR"),
        recipe_path=reader.get_path("FFBUILD_RECIPE"),
        ffmpeg_version=reader.get_str("FFBUILD_FFMPEG_VERSION"),
        install_prefix=reader.get_str("FFBUILD_INSTALL_PREFIX"),
        threads=_first_set(
            reader.get_int("FFBUILD_THREADS"), reader.get_int("THREADS")
        ),
        max_retries=reader.get_int("FFBUILD_MAX_RETRIES"),
        retry_delay=reader.get_float("FFBUILD_RETRY_DELAY"),
        docker_image=reader.get_str("FFBUILD_DOCKER_IMAGE"),
        docker_container=reader.get_str("FFBUILD_DOCKER_CONTAINER"),
        in_docker=_first_set(
            reader.get_bool("FFBUILD_DOCKER_BUILD"), reader.get_bool("DOCKER_BUILD")
        ),
        package_maintainer=reader.get_str("FFBUILD_MAINTAINER"),
        logging_level=reader.get_str("FFBUILD_LOG_LEVEL"),
        logging_file=reader.get_path("FFBUILD_LOG_FILE"),
        logging_format=reader.get_str("FFBUILD_LOG_FORMAT"),
    )

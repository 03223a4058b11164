"""Configuration data models.

All configuration sections are plain dataclasses with validation in
__post_init__. FFBuildConfig aggregates them and is passed explicitly to
every stage instead of relying on ambient environment variables.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

VALID_LOG_LEVELS = ("debug", "info", "warning", "error")
VALID_LOG_FORMATS = ("text", "json")
VALID_BASE_IMAGES = ("22.04", "20.04")


def default_thread_count() -> int:
    """Return the number of CPUs usable for compilation (at least 1)."""
    return os.cpu_count() or 4


@dataclass
class PathsConfig:
    """Build and distribution roots."""

    build_dir: Path = field(default_factory=lambda: Path.cwd() / "build")
    dist_dir: Path = field(default_factory=lambda: Path.cwd() / "dist")

    @property
    def codec_prefix(self) -> Path:
        """Install prefix for bundled codec libraries."""
        return self.build_dir / "codec-libs"

    @property
    def sources_dir(self) -> Path:
        """Directory holding cloned or extracted codec sources."""
        return self.build_dir / "libs"

    @property
    def staging_dir(self) -> Path:
        """DESTDIR for `make install`."""
        return self.build_dir / "staging"

    @property
    def packaging_dir(self) -> Path:
        """Scratch directory for the package root."""
        return self.build_dir / "packaging"

    @property
    def state_dir(self) -> Path:
        """Directory holding per-stage completion records."""
        return self.build_dir / ".ffbuild"

    @property
    def log_file(self) -> Path:
        """Combined output of every external build command."""
        return self.build_dir / "build.log"


@dataclass
class BuildConfig:
    """FFmpeg build settings."""

    ffmpeg_version: str = "5.1.2"
    install_prefix: str = "/usr/local"
    threads: int = field(default_factory=default_thread_count)
    extra_version: str = "ubuntu-x64-bundled"
    min_free_disk_gb: float = 5.0
    step_timeout: float | None = None

    def __post_init__(self) -> None:
        if self.threads < 1:
            raise ValueError(f"threads must be at least 1, got {self.threads}")
        if not self.install_prefix.startswith("/"):
            raise ValueError(
                f"install_prefix must be absolute, got {self.install_prefix!r}"
            )
        if self.min_free_disk_gb < 0:
            raise ValueError("min_free_disk_gb cannot be negative")


@dataclass
class RetryConfig:
    """Retry policy for transient step failures."""

    max_retries: int = 2
    delay_seconds: float = 5.0

    def __post_init__(self) -> None:
        if self.max_retries < 1:
            raise ValueError(f"max_retries must be at least 1, got {self.max_retries}")
        if self.delay_seconds < 0:
            raise ValueError("delay_seconds cannot be negative")


@dataclass
class DockerConfig:
    """Docker build settings."""

    image: str = "ffmpeg-builder-ubuntu"
    container: str = "ffmpeg-build-container"
    dockerfile_primary: Path = Path("Dockerfile.ubuntu22")
    dockerfile_fallback: Path = Path("Dockerfile")
    max_retries: int = 2
    retry_delay: float = 5.0

    def __post_init__(self) -> None:
        if self.max_retries < 1:
            raise ValueError(
                f"docker max_retries must be at least 1, got {self.max_retries}"
            )


@dataclass
class PackageConfig:
    """Debian package metadata overrides."""

    name: str = "ffmpeg-portable"
    revision: str = "2"
    architecture: str = "amd64"
    maintainer: str = "FFmpeg Build Script <build@example.com>"


@dataclass
class LoggingConfig:
    """Logging settings."""

    level: str = "info"
    file: Path | None = None
    format: str = "text"
    include_stderr: bool = True
    max_bytes: int = 10_485_760
    backup_count: int = 5

    def __post_init__(self) -> None:
        self.level = self.level.lower()
        if self.level not in VALID_LOG_LEVELS:
            raise ValueError(
                f"Invalid log level {self.level!r}. "
                f"Must be one of: {', '.join(VALID_LOG_LEVELS)}"
            )
        if self.format not in VALID_LOG_FORMATS:
            raise ValueError(
                f"Invalid log format {self.format!r}. "
                f"Must be one of: {', '.join(VALID_LOG_FORMATS)}"
            )


@dataclass
class FFBuildConfig:
    """Complete configuration for one orchestrator run."""

    paths: PathsConfig = field(default_factory=PathsConfig)
    build: BuildConfig = field(default_factory=BuildConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)
    docker: DockerConfig = field(default_factory=DockerConfig)
    package: PackageConfig = field(default_factory=PackageConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    recipe_path: Path | None = None
    in_docker: bool = False

"""Configuration loader with precedence handling.

Configuration is loaded with the following precedence (highest to lowest):
1. CLI arguments (passed directly to get_config)
2. Environment variables (FFBUILD_*)
3. Config file (~/.ffbuild/config.toml)
4. Default values

Environment variables:
- FFBUILD_CONFIG_PATH: Path to config file (overrides default location)
- FFBUILD_BUILD_DIR / FFBUILD_DIST_DIR: Build and distribution roots
- FFBUILD_RECIPE: Path to a build recipe YAML file
- FFBUILD_FFMPEG_VERSION: FFmpeg release to build
- FFBUILD_THREADS (or THREADS): Parallel compilation jobs
- FFBUILD_MAX_RETRIES / FFBUILD_RETRY_DELAY: Retry policy
- FFBUILD_DOCKER_BUILD (or DOCKER_BUILD): Running inside the build container
- FFBUILD_LOG_LEVEL / FFBUILD_LOG_FILE / FFBUILD_LOG_FORMAT: Logging
"""

from __future__ import annotations

import logging
import os
import threading
from pathlib import Path

from ffbuild.config.builder import (
    ConfigBuilder,
    ConfigSource,
    source_from_env,
    source_from_file,
)
from ffbuild.config.env import EnvReader
from ffbuild.config.models import FFBuildConfig
from ffbuild.config.toml_parser import load_toml_file

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_DIR = Path.home() / ".ffbuild"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.toml"

# Cache for loaded config files (path -> (parsed dict, mtime))
_config_cache: dict[Path, tuple[dict, float]] = {}
_config_cache_lock = threading.Lock()


def get_default_config_path() -> Path:
    """Get the default config file path.

    Can be overridden by FFBUILD_CONFIG_PATH environment variable.
    """
    env_path = os.environ.get("FFBUILD_CONFIG_PATH")
    if env_path:
        return Path(env_path).expanduser()
    return DEFAULT_CONFIG_FILE


def load_config_file(path: Path | None = None, *, strict: bool = False) -> dict:
    """Load configuration from TOML file.

    Results are cached with mtime-based invalidation.

    Args:
        path: Path to config file. If None, uses default location.
        strict: If True, raise TomlParseError on parse failures.

    Returns:
        Parsed configuration dict. Empty dict if file doesn't exist.

    Raises:
        TomlParseError: When strict=True and the file cannot be parsed.
    """
    if path is None:
        path = get_default_config_path()

    try:
        current_mtime = path.stat().st_mtime
    except FileNotFoundError:
        current_mtime = 0.0

    with _config_cache_lock:
        if path in _config_cache:
            cached_config, cached_mtime = _config_cache[path]
            if current_mtime == cached_mtime:
                return cached_config

        result = load_toml_file(path, strict=strict)
        _config_cache[path] = (result, current_mtime)
        return result


def clear_config_cache() -> None:
    """Clear the config file cache. Primarily useful for testing."""
    with _config_cache_lock:
        _config_cache.clear()


def get_config(
    config_path: Path | None = None,
    cli_source: ConfigSource | None = None,
    env_reader: EnvReader | None = None,
    *,
    strict: bool = False,
) -> FFBuildConfig:
    """Get configuration with full precedence handling.

    Args:
        config_path: Path to config file (overrides FFBUILD_CONFIG_PATH).
        cli_source: Values from CLI flags (highest precedence).
        env_reader: Optional EnvReader for testing (uses os.environ if None).
        strict: If True, raise TomlParseError on config file parse failures.

    Returns:
        FFBuildConfig with merged configuration.

    Raises:
        TomlParseError: When strict=True and the config file cannot be parsed.
        ValueError: When a merged value fails validation.
    """
    reader = env_reader or EnvReader()
    file_config = load_config_file(config_path, strict=strict)

    builder = ConfigBuilder()
    builder.apply(source_from_file(file_config), source_name="file")
    builder.apply(source_from_env(reader), source_name="env")
    if cli_source is not None:
        builder.apply(cli_source, source_name="cli")

    config = builder.build()
    logger.debug(
        "Configuration resolved: build_dir=%s (%s), dist_dir=%s (%s), threads=%d (%s)",
        config.paths.build_dir,
        builder.source_of("build_dir"),
        config.paths.dist_dir,
        builder.source_of("dist_dir"),
        config.build.threads,
        builder.source_of("threads"),
    )
    return config

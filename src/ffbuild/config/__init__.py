"""Configuration management for the build orchestrator.

Configuration is loaded with precedence handling:
1. CLI flags (highest priority)
2. Environment variables (FFBUILD_*)
3. Config file (~/.ffbuild/config.toml)
4. Default values (lowest priority)
"""

from ffbuild.config.builder import (
    ConfigBuilder,
    ConfigSource,
    source_from_env,
    source_from_file,
)
from ffbuild.config.env import EnvReader
from ffbuild.config.loader import (
    clear_config_cache,
    get_config,
    get_default_config_path,
    load_config_file,
)
from ffbuild.config.models import (
    BuildConfig,
    DockerConfig,
    FFBuildConfig,
    LoggingConfig,
    PackageConfig,
    PathsConfig,
    RetryConfig,
)
from ffbuild.config.toml_parser import TomlParseError, load_toml_file, parse_toml

__all__ = [
    # Models
    "BuildConfig",
    "DockerConfig",
    "FFBuildConfig",
    "LoggingConfig",
    "PackageConfig",
    "PathsConfig",
    "RetryConfig",
    # Loader
    "clear_config_cache",
    "get_config",
    "get_default_config_path",
    "load_config_file",
    # Layering
    "ConfigBuilder",
    "ConfigSource",
    "EnvReader",
    "source_from_env",
    "source_from_file",
    # TOML
    "TomlParseError",
    "load_toml_file",
    "parse_toml",
]

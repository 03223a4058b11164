"""External tool detection and version parsing."""

import logging
import re
import shutil
import subprocess  # nosec B404 - subprocess is required for tool detection
from collections.abc import Iterable
from datetime import datetime, timezone
from pathlib import Path

from ffbuild.core.subprocess_utils import run_command
from ffbuild.tools.models import (
    ToolDetectionConfig,
    ToolInfo,
    ToolRegistry,
    ToolStatus,
)

logger = logging.getLogger(__name__)

# Timeout for version detection commands (seconds)
DETECTION_TIMEOUT = 10

# Tools whose version flag differs from --version
TOOL_DETECTION_CONFIGS: dict[str, ToolDetectionConfig] = {
    "gcc": ToolDetectionConfig("gcc"),
    "g++": ToolDetectionConfig("g++"),
    "make": ToolDetectionConfig("make"),
    "cmake": ToolDetectionConfig("cmake"),
    "pkg-config": ToolDetectionConfig(
        "pkg-config", version_pattern=r"(\d+(?:\.\d+)*)"
    ),
    "yasm": ToolDetectionConfig("yasm"),
    "nasm": ToolDetectionConfig("nasm", version_flag="-v"),
    "git": ToolDetectionConfig("git"),
    "tar": ToolDetectionConfig("tar"),
    "dpkg-deb": ToolDetectionConfig("dpkg-deb"),
    "docker": ToolDetectionConfig("docker"),
    "ldd": ToolDetectionConfig("ldd"),
    "apt-get": ToolDetectionConfig("apt-get"),
    "ldconfig": ToolDetectionConfig("ldconfig", version_flag="--version"),
}


def parse_version_string(version_str: str) -> tuple[int, ...] | None:
    """Parse a version string into a comparable tuple.

    - "3.22.1" -> (3, 22, 1)
    - "n5.1.2" -> (5, 1, 2)
    - "2.16.03" -> (2, 16, 3)

    Returns:
        Tuple of version components, or None if parsing fails.
    """
    if not version_str:
        return None

    version_str = version_str.lstrip("nv")
    match = re.match(r"(\d+(?:\.\d+)*)", version_str)
    if not match:
        return None

    return tuple(int(p) for p in match.group(1).split("."))


def find_tool(name: str) -> Path | None:
    """Find a tool executable on PATH."""
    which_result = shutil.which(name)
    return Path(which_result) if which_result else None


def detect_tool(config: ToolDetectionConfig) -> ToolInfo:
    """Detect one tool: locate it, run its version flag, parse the version.

    Args:
        config: Tool-specific detection configuration.

    Returns:
        ToolInfo with detection results. Never raises.
    """
    info = ToolInfo(name=config.name, detected_at=datetime.now(timezone.utc))

    path = find_tool(config.name)
    if not path:
        info.status = ToolStatus.MISSING
        info.status_message = f"{config.name} not found in PATH"
        return info

    info.path = path

    try:
        stdout, stderr, rc = run_command(
            [path, config.version_flag], timeout=DETECTION_TIMEOUT
        )
    except (subprocess.TimeoutExpired, OSError) as e:
        info.status = ToolStatus.ERROR
        info.status_message = f"Failed to run {config.name}: {e}"
        return info

    if rc != 0:
        info.status = ToolStatus.ERROR
        info.status_message = f"Failed to get {config.name} version: {stderr.strip()}"
        return info

    version_match = re.search(config.version_pattern, stdout or stderr)
    if version_match:
        info.version = version_match.group(1)
        info.version_tuple = parse_version_string(info.version)
    else:
        logger.debug("Could not find a version in %s output", config.name)

    info.status = ToolStatus.AVAILABLE
    return info


def detect_tools(names: Iterable[str]) -> ToolRegistry:
    """Detect a set of tools.

    Args:
        names: Tool names. Unknown names use default detection settings.

    Returns:
        ToolRegistry with one entry per name.
    """
    registry = ToolRegistry()
    for name in names:
        config = TOOL_DETECTION_CONFIGS.get(name, ToolDetectionConfig(name))
        info = detect_tool(config)
        registry.tools[name] = info
        if info.is_available():
            logger.debug("%s: %s (%s)", name, info.version or "unknown", info.path)
        else:
            logger.debug("%s: %s", name, info.status_message)
    return registry

"""External tool detection and stage requirements."""

from ffbuild.tools.detection import (
    TOOL_DETECTION_CONFIGS,
    detect_tool,
    detect_tools,
    find_tool,
    parse_version_string,
)
from ffbuild.tools.models import (
    ToolDetectionConfig,
    ToolInfo,
    ToolRegistry,
    ToolStatus,
)
from ffbuild.tools.requirements import (
    BUILD_REQUIREMENTS,
    DOCKER_REQUIREMENTS,
    INSTALL_REQUIREMENTS,
    PACKAGE_REQUIREMENTS,
    SETUP_REQUIREMENTS,
    RequirementLevel,
    RequirementsReport,
    ToolRequirement,
    check_requirements,
    ensure_requirements,
    requirement_tool_names,
)

__all__ = [
    # Models
    "ToolDetectionConfig",
    "ToolInfo",
    "ToolRegistry",
    "ToolStatus",
    # Detection
    "TOOL_DETECTION_CONFIGS",
    "detect_tool",
    "detect_tools",
    "find_tool",
    "parse_version_string",
    # Requirements
    "BUILD_REQUIREMENTS",
    "DOCKER_REQUIREMENTS",
    "INSTALL_REQUIREMENTS",
    "PACKAGE_REQUIREMENTS",
    "SETUP_REQUIREMENTS",
    "RequirementLevel",
    "RequirementsReport",
    "ToolRequirement",
    "check_requirements",
    "ensure_requirements",
    "requirement_tool_names",
]

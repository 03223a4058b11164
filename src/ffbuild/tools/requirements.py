"""Tool requirements per pipeline stage.

Each stage declares the external tools it needs. Checking them up front
turns an obscure mid-build "command not found" into a missing-prerequisite
error that names the tool and how to install it.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum

from ffbuild.errors import MissingPrerequisiteError
from ffbuild.tools.models import ToolRegistry

logger = logging.getLogger(__name__)


class RequirementLevel(Enum):
    """Severity level of a requirement."""

    REQUIRED = "required"  # Stage cannot run without this
    RECOMMENDED = "recommended"  # Stage runs with reduced checks


@dataclass(frozen=True)
class ToolRequirement:
    """A single tool requirement specification."""

    tool_name: str
    description: str
    level: RequirementLevel = RequirementLevel.REQUIRED
    min_version: tuple[int, ...] | None = None
    install_hint: str | None = None


@dataclass
class RequirementCheckResult:
    """Result of checking a single requirement."""

    requirement: ToolRequirement
    satisfied: bool
    current_version: str | None = None
    message: str = ""


@dataclass
class RequirementsReport:
    """Full report of requirement checks for a stage."""

    results: list[RequirementCheckResult] = field(default_factory=list)

    @property
    def required_satisfied(self) -> bool:
        """Check if all REQUIRED requirements are satisfied."""
        return all(
            r.satisfied
            for r in self.results
            if r.requirement.level == RequirementLevel.REQUIRED
        )

    def get_unsatisfied(
        self, level: RequirementLevel | None = None
    ) -> list[RequirementCheckResult]:
        """Get unsatisfied requirements, optionally filtered by level."""
        results = [r for r in self.results if not r.satisfied]
        if level:
            results = [r for r in results if r.requirement.level == level]
        return results

    def get_messages(self, level: RequirementLevel | None = None) -> list[str]:
        """Get messages for unsatisfied requirements."""
        return [r.message for r in self.get_unsatisfied(level) if r.message]


_APT_HINT = "Run 'ffbuild setup' or install with: sudo apt-get install {package}"

BUILD_REQUIREMENTS = [
    ToolRequirement(
        "gcc",
        "C compiler",
        install_hint=_APT_HINT.format(package="build-essential"),
    ),
    ToolRequirement(
        "g++",
        "C++ compiler (x265)",
        install_hint=_APT_HINT.format(package="build-essential"),
    ),
    ToolRequirement(
        "make",
        "Build driver",
        install_hint=_APT_HINT.format(package="make"),
    ),
    ToolRequirement(
        "cmake",
        "CMake build system (x265)",
        min_version=(3, 5),
        install_hint=_APT_HINT.format(package="cmake"),
    ),
    ToolRequirement(
        "pkg-config",
        "Library discovery",
        install_hint=_APT_HINT.format(package="pkg-config"),
    ),
    ToolRequirement(
        "nasm",
        "Assembler for x264/x265/lame",
        install_hint=_APT_HINT.format(package="nasm"),
    ),
    ToolRequirement(
        "yasm",
        "Legacy assembler",
        level=RequirementLevel.RECOMMENDED,
        install_hint=_APT_HINT.format(package="yasm"),
    ),
    ToolRequirement(
        "git",
        "Source checkout",
        install_hint=_APT_HINT.format(package="git"),
    ),
    ToolRequirement(
        "ldd",
        "Shared library link verification",
        level=RequirementLevel.RECOMMENDED,
        install_hint=_APT_HINT.format(package="libc-bin"),
    ),
]

PACKAGE_REQUIREMENTS = [
    ToolRequirement(
        "dpkg-deb",
        "Debian package builder",
        install_hint=_APT_HINT.format(package="dpkg-dev"),
    ),
]

INSTALL_REQUIREMENTS = [
    ToolRequirement(
        "ldconfig",
        "Shared library cache refresh",
        install_hint=_APT_HINT.format(package="libc-bin"),
    ),
]

DOCKER_REQUIREMENTS = [
    ToolRequirement(
        "docker",
        "Container runtime",
        install_hint="Install Docker: https://docs.docker.com/engine/install/",
    ),
]

SETUP_REQUIREMENTS = [
    ToolRequirement(
        "apt-get",
        "Package installation",
        install_hint="setup requires an apt-based system",
    ),
]


def requirement_tool_names(requirements: list[ToolRequirement]) -> list[str]:
    """Tool names referenced by a requirement list, in order, deduplicated."""
    return list(dict.fromkeys(r.tool_name for r in requirements))


def _check_requirement(
    registry: ToolRegistry, requirement: ToolRequirement
) -> RequirementCheckResult:
    tool = registry.get_tool(requirement.tool_name)

    if tool is None or not tool.is_available():
        message = (
            f"{requirement.tool_name} is not available ({requirement.description})"
        )
        if requirement.install_hint:
            message += f". {requirement.install_hint}"
        return RequirementCheckResult(requirement, satisfied=False, message=message)

    if requirement.min_version and not tool.meets_version(requirement.min_version):
        wanted = ".".join(str(v) for v in requirement.min_version)
        return RequirementCheckResult(
            requirement,
            satisfied=False,
            current_version=tool.version,
            message=(
                f"{requirement.tool_name} {tool.version or 'unknown'} is older than "
                f"required {wanted}"
            ),
        )

    return RequirementCheckResult(
        requirement, satisfied=True, current_version=tool.version
    )


def check_requirements(
    registry: ToolRegistry, requirements: list[ToolRequirement]
) -> RequirementsReport:
    """Check a list of requirements against detected tools.

    Args:
        registry: Detected tools.
        requirements: Requirements to check.

    Returns:
        RequirementsReport with one result per requirement.
    """
    return RequirementsReport(
        results=[_check_requirement(registry, r) for r in requirements]
    )


def ensure_requirements(
    registry: ToolRegistry,
    requirements: list[ToolRequirement],
    stage: str | None = None,
) -> RequirementsReport:
    """Check requirements, warning on recommended gaps.

    Raises:
        MissingPrerequisiteError: If a required tool is missing or too old.
    """
    report = check_requirements(registry, requirements)
    for message in report.get_messages(RequirementLevel.RECOMMENDED):
        logger.warning(message)
    if not report.required_satisfied:
        raise MissingPrerequisiteError(
            "; ".join(report.get_messages(RequirementLevel.REQUIRED)), stage=stage
        )
    return report

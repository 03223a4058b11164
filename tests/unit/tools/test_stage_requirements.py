"""Tests for per-stage tool requirements."""

from pathlib import Path

import pytest

from ffbuild.errors import MissingPrerequisiteError
from ffbuild.tools.models import ToolInfo, ToolRegistry, ToolStatus
from ffbuild.tools.requirements import (
    BUILD_REQUIREMENTS,
    RequirementLevel,
    ToolRequirement,
    check_requirements,
    ensure_requirements,
    requirement_tool_names,
)


def make_tool(name: str, version_tuple: tuple[int, ...] | None = (9, 0)) -> ToolInfo:
    return ToolInfo(
        name=name,
        path=Path(f"/usr/bin/{name}"),
        version=".".join(str(v) for v in version_tuple) if version_tuple else None,
        version_tuple=version_tuple,
        status=ToolStatus.AVAILABLE,
    )


def registry_with(*tools: ToolInfo) -> ToolRegistry:
    return ToolRegistry(tools={t.name: t for t in tools})


REQUIREMENTS = [
    ToolRequirement("cmake", "CMake", min_version=(3, 5), install_hint="apt it"),
    ToolRequirement("yasm", "Assembler", level=RequirementLevel.RECOMMENDED),
]


class TestCheckRequirements:
    def test_all_satisfied(self):
        report = check_requirements(
            registry_with(make_tool("cmake", (3, 22)), make_tool("yasm")), REQUIREMENTS
        )

        assert report.required_satisfied
        assert report.get_unsatisfied() == []

    def test_missing_required_tool_includes_hint(self):
        report = check_requirements(registry_with(make_tool("yasm")), REQUIREMENTS)

        assert not report.required_satisfied
        (message,) = report.get_messages(RequirementLevel.REQUIRED)
        assert "cmake is not available" in message
        assert "apt it" in message

    def test_old_version_unsatisfied(self):
        report = check_requirements(
            registry_with(make_tool("cmake", (3, 2)), make_tool("yasm")), REQUIREMENTS
        )

        (result,) = report.get_unsatisfied()
        assert result.current_version == "3.2"
        assert "older than required 3.5" in result.message

    def test_missing_recommended_keeps_required_satisfied(self):
        report = check_requirements(registry_with(make_tool("cmake")), REQUIREMENTS)

        assert report.required_satisfied
        assert len(report.get_unsatisfied(RequirementLevel.RECOMMENDED)) == 1


class TestEnsureRequirements:
    def test_raises_with_stage(self):
        with pytest.raises(MissingPrerequisiteError) as exc_info:
            ensure_requirements(registry_with(), REQUIREMENTS, stage="build")

        assert exc_info.value.stage == "build"
        assert "cmake" in exc_info.value.message
        assert "yasm" not in exc_info.value.message

    def test_warns_on_recommended(self, caplog: pytest.LogCaptureFixture):
        with caplog.at_level("WARNING"):
            report = ensure_requirements(registry_with(make_tool("cmake")), REQUIREMENTS)

        assert report.required_satisfied
        assert "yasm is not available" in caplog.text


def test_requirement_tool_names_deduplicates():
    doubled = BUILD_REQUIREMENTS + BUILD_REQUIREMENTS

    names = requirement_tool_names(doubled)

    assert len(names) == len(set(names))
    assert names[0] == BUILD_REQUIREMENTS[0].tool_name

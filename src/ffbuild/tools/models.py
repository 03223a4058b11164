"""Data models for external build tool detection."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path


class ToolStatus(Enum):
    """Status of an external tool."""

    AVAILABLE = "available"  # Tool found and version detected
    MISSING = "missing"  # Tool not found in PATH
    ERROR = "error"  # Tool found but version query failed


@dataclass
class ToolInfo:
    """Detection result for one external tool."""

    name: str
    path: Path | None = None
    version: str | None = None
    version_tuple: tuple[int, ...] | None = None
    status: ToolStatus = ToolStatus.MISSING
    status_message: str | None = None
    detected_at: datetime | None = None

    def is_available(self) -> bool:
        """Return True if the tool is available and usable."""
        return self.status == ToolStatus.AVAILABLE

    def meets_version(self, min_version: tuple[int, ...]) -> bool:
        """Check if tool version meets minimum requirement.

        Args:
            min_version: Minimum version as tuple (e.g., (3, 16) for 3.16).

        Returns:
            True if tool version >= min_version, False otherwise.
        """
        if self.version_tuple is None:
            return False
        max_len = max(len(self.version_tuple), len(min_version))
        v1 = self.version_tuple + (0,) * (max_len - len(self.version_tuple))
        v2 = min_version + (0,) * (max_len - len(min_version))
        return v1 >= v2


@dataclass(frozen=True)
class ToolDetectionConfig:
    """How to detect a specific tool."""

    name: str  # Executable name (e.g., "cmake")
    version_flag: str = "--version"
    version_pattern: str = r"(\d+(?:\.\d+)+)"


@dataclass
class ToolRegistry:
    """Aggregated detection results keyed by tool name."""

    tools: dict[str, ToolInfo] = field(default_factory=dict)
    detected_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def get_tool(self, name: str) -> ToolInfo | None:
        """Get tool info by name, or None if it was never probed."""
        return self.tools.get(name)

    def is_available(self, name: str) -> bool:
        """Check if a tool was detected and is usable."""
        tool = self.get_tool(name)
        return tool is not None and tool.is_available()

    def get_available_tools(self) -> list[str]:
        """Names of available tools, sorted."""
        return sorted(name for name in self.tools if self.is_available(name))

    def get_missing_tools(self) -> list[str]:
        """Names of probed tools that are not available, sorted."""
        return sorted(name for name in self.tools if not self.is_available(name))

    def summary(self) -> dict[str, dict[str, str | bool]]:
        """Get summary of all tools for display."""
        return {
            name: {
                "available": tool.is_available(),
                "version": tool.version or "not found",
                "path": str(tool.path) if tool.path else "not found",
            }
            for name, tool in sorted(self.tools.items())
        }

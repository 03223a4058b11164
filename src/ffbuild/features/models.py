"""Feature flag model."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from ffbuild.recipe.models import CodecLibraryModel
from ffbuild.steps.models import CapabilityResult


@dataclass(frozen=True)
class FeatureFlag:
    """An FFmpeg configure flag gated on a built library.

    Attributes:
        name: Feature name, matching the codec library name.
        flag: Configure flag (e.g., "--enable-libx265").
        artifact: Library file relative to the codec prefix.
        priority: Negotiation order, lower first.
        optional: Whether the build may proceed without it.
    """

    name: str
    flag: str
    artifact: Path
    priority: int = 100
    optional: bool = False

    @classmethod
    def from_library(cls, library: CodecLibraryModel) -> FeatureFlag:
        return cls(
            name=library.name,
            flag=library.feature_flag,
            artifact=Path(library.artifact),
            priority=library.priority,
            optional=library.optional,
        )

    def is_available(self, capabilities: Mapping[str, CapabilityResult]) -> bool:
        """True when a capability for this feature reports available."""
        capability = capabilities.get(self.name)
        return capability is not None and capability.available


def features_from_libraries(libraries: list[CodecLibraryModel]) -> list[FeatureFlag]:
    """Feature flags for recipe codec libraries, in priority order."""
    return sorted(
        (FeatureFlag.from_library(lib) for lib in libraries),
        key=lambda feature: feature.priority,
    )

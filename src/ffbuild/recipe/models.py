"""Pydantic models for build recipes.

A recipe describes what to build: the FFmpeg source and base configure
flags, the codec libraries to bundle (each mapped to a configure feature
flag), the apt package groups used by setup, and Debian package metadata.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

SCHEMA_VERSION = 1


class BuildSystem(str, Enum):
    """How a codec library is configured."""

    AUTOTOOLS = "autotools"
    CMAKE = "cmake"


class GitSourceModel(BaseModel):
    """Shallow git checkout."""

    model_config = ConfigDict(extra="forbid")

    url: str
    branch: str = "master"


class ArchiveSourceModel(BaseModel):
    """Downloadable source tarball."""

    model_config = ConfigDict(extra="forbid")

    url: str
    directory: str = Field(
        description="Top-level directory name inside the archive",
    )


class SourceModel(BaseModel):
    """Exactly one of git or archive."""

    model_config = ConfigDict(extra="forbid")

    git: GitSourceModel | None = None
    archive: ArchiveSourceModel | None = None

    @model_validator(mode="after")
    def _exactly_one(self) -> SourceModel:
        if (self.git is None) == (self.archive is None):
            raise ValueError("source must define exactly one of 'git' or 'archive'")
        return self


class CodecLibraryModel(BaseModel):
    """One bundled codec library and the FFmpeg feature it enables."""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(pattern=r"^[a-z0-9][a-z0-9_+-]*$")
    feature_flag: str
    artifact: str = Field(description="Library file relative to the codec prefix")
    optional: bool = False
    priority: int = 100
    source: SourceModel
    build_system: BuildSystem = BuildSystem.AUTOTOOLS
    configure_args: list[str] = Field(default_factory=list)
    cmake_source_dir: str = "."
    salvage: list[str] = Field(
        default_factory=list,
        description=(
            "Glob patterns copied from the build directory into the codec "
            "prefix when make install leaves them out"
        ),
    )
    bundle: list[str] = Field(
        default_factory=list,
        description="Globs relative to the codec prefix that ship in the package",
    )

    @field_validator("feature_flag")
    @classmethod
    def _flag_is_enable(cls, value: str) -> str:
        if not value.startswith("--enable-"):
            raise ValueError(f"feature_flag must start with '--enable-', got {value!r}")
        return value

    @model_validator(mode="after")
    def _default_bundle(self) -> CodecLibraryModel:
        if not self.bundle:
            self.bundle = [f"{self.artifact}*"]
        return self


class FFmpegSourceModel(BaseModel):
    """FFmpeg source release and base configure flags."""

    model_config = ConfigDict(extra="forbid")

    source_url: str = "https://ffmpeg.org/releases/ffmpeg-{version}.tar.xz"
    configure_flags: list[str] = Field(default_factory=list)
    extra_ldflags: str = ""

    @field_validator("source_url")
    @classmethod
    def _has_version_placeholder(cls, value: str) -> str:
        if "{version}" not in value:
            raise ValueError("source_url must contain a '{version}' placeholder")
        return value


class PackageMetadataModel(BaseModel):
    """Debian control metadata not derived from the staged tree."""

    model_config = ConfigDict(extra="forbid")

    section: str = "multimedia"
    priority: str = "optional"
    homepage: str = "https://ffmpeg.org/"
    summary: str = "FFmpeg multimedia framework"
    description: str = ""
    depends: list[str] = Field(default_factory=list)
    runtime_packages: list[str] = Field(
        default_factory=list,
        description="apt packages installed by 'ffbuild install' before unpacking",
    )
    conflicts: list[str] = Field(default_factory=list)
    provides: list[str] = Field(default_factory=list)
    symlink_binaries: list[str] = Field(default_factory=lambda: ["ffmpeg", "ffprobe"])
    bundled_lib_dir: str = "lib/ffmpeg-codecs"


class SetupModel(BaseModel):
    """apt package groups installed by the setup stage."""

    model_config = ConfigDict(extra="forbid")

    build_tools: list[str] = Field(default_factory=list)
    codec_dev: list[str] = Field(default_factory=list)
    system: list[str] = Field(default_factory=list)
    hwaccel: list[str] = Field(default_factory=list)
    headers: list[str] = Field(default_factory=list)


class RecipeModel(BaseModel):
    """Top-level recipe document."""

    model_config = ConfigDict(extra="forbid")

    schema_version: int = SCHEMA_VERSION
    ffmpeg: FFmpegSourceModel = Field(default_factory=FFmpegSourceModel)
    codec_libraries: list[CodecLibraryModel] = Field(default_factory=list)
    package: PackageMetadataModel = Field(default_factory=PackageMetadataModel)
    setup: SetupModel = Field(default_factory=SetupModel)

    @field_validator("schema_version")
    @classmethod
    def _supported_version(cls, value: int) -> int:
        if value != SCHEMA_VERSION:
            raise ValueError(
                f"Unsupported schema_version {value}; expected {SCHEMA_VERSION}"
            )
        return value

    @model_validator(mode="after")
    def _unique_names(self) -> RecipeModel:
        seen: set[str] = set()
        for library in self.codec_libraries:
            if library.name in seen:
                raise ValueError(f"Duplicate codec library name: {library.name!r}")
            seen.add(library.name)
        flags = [lib.feature_flag for lib in self.codec_libraries]
        if len(flags) != len(set(flags)):
            raise ValueError("Each codec library must use a distinct feature_flag")
        return self

    def libraries_by_priority(self) -> list[CodecLibraryModel]:
        """Codec libraries in build and negotiation order."""
        return sorted(self.codec_libraries, key=lambda lib: lib.priority)

"""Explicit build environment.

Compiler and library search paths are carried in a BuildEnvironment
value and turned into a child-process environment per command. Nothing
here mutates os.environ.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path

SYSTEM_PKG_CONFIG_PATHS = (
    Path("/usr/lib/x86_64-linux-gnu/pkgconfig"),
    Path("/usr/lib/pkgconfig"),
    Path("/usr/share/pkgconfig"),
)


def _join(paths: tuple[Path, ...], inherited: str | None = None) -> str:
    parts = [str(p) for p in paths]
    if inherited:
        parts.append(inherited)
    return os.pathsep.join(parts)


@dataclass(frozen=True)
class BuildEnvironment:
    """Search paths and flags for one build.

    Attributes:
        codec_prefix: Install prefix of bundled codec libraries.
        threads: Parallel make jobs.
        pkg_config_paths: Searched before the inherited PKG_CONFIG_PATH.
        library_paths: Prepended to LD_LIBRARY_PATH.
        include_paths: Emitted as -I flags in CPPFLAGS.
        ldflags: Extra linker flags appended after -L flags.
        extra: Additional variables set verbatim.
    """

    codec_prefix: Path
    threads: int = 1
    pkg_config_paths: tuple[Path, ...] = ()
    library_paths: tuple[Path, ...] = ()
    include_paths: tuple[Path, ...] = ()
    ldflags: tuple[str, ...] = ()
    extra: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def for_codec_prefix(
        cls, codec_prefix: Path, threads: int, rpath: str | None = None
    ) -> BuildEnvironment:
        """Environment that finds libraries installed under codec_prefix first."""
        ldflags = (f"-Wl,-rpath,{rpath}",) if rpath else ()
        return cls(
            codec_prefix=codec_prefix,
            threads=threads,
            pkg_config_paths=(
                codec_prefix / "lib" / "pkgconfig",
                *SYSTEM_PKG_CONFIG_PATHS,
            ),
            library_paths=(codec_prefix / "lib",),
            include_paths=(codec_prefix / "include",),
            ldflags=ldflags,
        )

    def with_extra(self, **variables: str) -> BuildEnvironment:
        """Copy with additional verbatim variables."""
        merged = dict(self.extra)
        merged.update(variables)
        return replace(self, extra=merged)

    def to_env(self, base: Mapping[str, str] | None = None) -> dict[str, str]:
        """Build a complete child environment.

        Args:
            base: Environment to start from (os.environ when None). It is
                copied, never modified.

        Returns:
            New environment mapping.
        """
        env = dict(os.environ if base is None else base)

        if self.pkg_config_paths:
            env["PKG_CONFIG_PATH"] = _join(
                self.pkg_config_paths, env.get("PKG_CONFIG_PATH")
            )
        if self.library_paths:
            env["LD_LIBRARY_PATH"] = _join(
                self.library_paths, env.get("LD_LIBRARY_PATH")
            )
        if self.include_paths:
            env["CPPFLAGS"] = " ".join(f"-I{p}" for p in self.include_paths)
        lib_flags = [f"-L{p}" for p in self.library_paths]
        if lib_flags or self.ldflags:
            env["LDFLAGS"] = " ".join([*lib_flags, *self.ldflags])
        env["MAKEFLAGS"] = f"-j{self.threads}"
        env.update(self.extra)
        return env

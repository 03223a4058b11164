"""Codec library builds.

Every library in the recipe yields a CapabilityResult. Required
libraries are retried through the RetryController and a final failure is
fatal. Optional libraries get one attempt and a failure only disables
their feature.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from ffbuild.errors import OptionalFeatureError, StepExecutionError
from ffbuild.logging.context import step_context
from ffbuild.orchestration.retry import RetryController
from ffbuild.pipeline.context import PipelineContext
from ffbuild.pipeline.sources import archive_filename, extract_archive, git_clone_step
from ffbuild.recipe.models import BuildSystem, CodecLibraryModel
from ffbuild.steps.models import BuildStep, CapabilityResult, StepResult, StepStatus

logger = logging.getLogger(__name__)

CMAKE_BUILD_DIR = "ffbuild-cmake"


class CodecBuilder:
    """Fetches and builds codec libraries into the codec prefix."""

    def __init__(self, ctx: PipelineContext, force: bool = False) -> None:
        self.ctx = ctx
        self.force = force
        self.paths = ctx.config.paths
        self.executor = ctx.executor()

    def source_dir(self, library: CodecLibraryModel) -> Path:
        if library.source.archive is not None:
            return self.paths.sources_dir / library.source.archive.directory
        return self.paths.sources_dir / library.name

    def artifact_path(self, library: CodecLibraryModel) -> Path:
        return self.paths.codec_prefix / library.artifact

    def fetch(self, library: CodecLibraryModel) -> Path:
        """Clone or download and extract the library source.

        Raises:
            StepExecutionError: If the source cannot be obtained.
        """
        src = self.source_dir(library)
        source = library.source
        if source.git is not None:
            step = git_clone_step(library.name, source.git.url, source.git.branch, src)
            self.executor.run(step, self.ctx.prober).raise_for_status()
            return src

        assert source.archive is not None
        if src.is_dir():
            logger.debug("Source for %s already extracted", library.name)
            return src
        tarball = self.paths.sources_dir / archive_filename(source.archive.url)
        self.ctx.fetcher.download(source.archive.url, tarball)
        try:
            extract_archive(tarball, self.paths.sources_dir)
        except StepExecutionError:
            tarball.unlink(missing_ok=True)
            raise
        if not src.is_dir():
            raise StepExecutionError(
                f"{tarball.name} did not contain {source.archive.directory}/",
                step_name=f"{library.name}-extract",
            )
        return src

    def build_step(self, library: CodecLibraryModel, src: Path) -> BuildStep:
        """Configure, compile and install one library."""
        prefix = self.paths.codec_prefix
        threads = str(self.ctx.config.build.threads)
        if library.build_system == BuildSystem.CMAKE:
            build_dir = src / CMAKE_BUILD_DIR
            commands: list[list[str | Path]] = [
                [
                    "cmake",
                    "-S",
                    src / library.cmake_source_dir,
                    "-B",
                    build_dir,
                    f"-DCMAKE_INSTALL_PREFIX={prefix}",
                    *library.configure_args,
                ],
                ["cmake", "--build", build_dir, "--parallel", threads],
                ["cmake", "--install", build_dir],
            ]
        else:
            commands = [
                ["./configure", f"--prefix={prefix}", *library.configure_args],
                ["make", f"-j{threads}"],
                ["make", "install"],
            ]
        return BuildStep.create(
            f"{library.name}-build",
            commands,
            cwd=src,
            inputs=[src],
            outputs=[self.artifact_path(library)],
            optional=library.optional,
            description=f"Build {library.name}",
        )

    def salvage(self, library: CodecLibraryModel, src: Path) -> list[Path]:
        """Copy files that `install` left out into the codec prefix."""
        if not library.salvage:
            return []
        search_root = (
            src / CMAKE_BUILD_DIR if library.build_system == BuildSystem.CMAKE else src
        )
        copied = []
        for pattern in library.salvage:
            for found in sorted(search_root.glob(pattern)):
                subdir = "lib/pkgconfig" if found.suffix == ".pc" else "lib"
                target = self.paths.codec_prefix / subdir / found.name
                if target.exists() or target.is_symlink():
                    continue
                target.parent.mkdir(parents=True, exist_ok=True)
                shutil.copy2(found, target, follow_symlinks=False)
                copied.append(target)
        if copied:
            logger.info("Recovered %d file(s) for %s", len(copied), library.name)
        return copied

    def build_once(self, library: CodecLibraryModel) -> CapabilityResult:
        """One fetch-and-build attempt.

        Raises:
            StepExecutionError: If fetching or building fails.
        """
        artifact = self.artifact_path(library)
        if artifact.exists() and not self.force:
            logger.info("%s already built", library.name)
            skipped = StepResult(f"{library.name}-build", StepStatus.SKIPPED)
            return CapabilityResult.from_step(library.name, skipped, artifact)

        src = self.fetch(library)
        result = self.executor.run(
            self.build_step(library, src), self.ctx.prober, force=self.force
        )
        if result.succeeded:
            self.salvage(library, src)
        else:
            # make install can fail after the library itself was produced
            if self.salvage(library, src) and artifact.exists():
                logger.warning("%s install failed; using salvaged files", library.name)
                result = StepResult(result.step_name, StepStatus.SUCCEEDED)
        result.raise_for_status()
        capability = CapabilityResult.from_step(library.name, result, artifact)
        if not capability.available:
            raise StepExecutionError(
                f"{library.name}: {capability.reason}",
                step_name=result.step_name,
            )
        return capability

    def teardown(self, library: CodecLibraryModel) -> None:
        """Remove a partially fetched or built source tree."""
        src = self.source_dir(library)
        if src.exists():
            logger.debug("Removing %s before retry", src)
            shutil.rmtree(src, ignore_errors=True)

    def build_optional(self, library: CodecLibraryModel) -> CapabilityResult:
        """Single attempt at an optional library.

        Raises:
            OptionalFeatureError: If any step fails.
        """
        try:
            return self.build_once(library)
        except StepExecutionError as e:
            raise OptionalFeatureError(e.message, feature=library.name) from e

    def build(self, library: CodecLibraryModel) -> CapabilityResult:
        """Build one library and report its availability.

        Raises:
            RetryExhaustedError: If a required library fails every attempt.
        """
        with step_context(step=library.name):
            if library.optional:
                try:
                    return self.build_optional(library)
                except OptionalFeatureError as e:
                    logger.warning(
                        "Optional library %s failed to build; its feature will be "
                        "disabled: %s",
                        e.feature,
                        e.message,
                    )
                    return CapabilityResult(e.feature, False, None, e.message)

            retry = self.ctx.config.retry
            controller = RetryController(
                retry.max_retries,
                teardown=lambda: self.teardown(library),
                delay_seconds=retry.delay_seconds,
                sleep=self.ctx.sleep,
                name=f"{library.name} build",
            )
            return controller.run(lambda: self.build_once(library)).value

    def build_all(self) -> dict[str, CapabilityResult]:
        """Build every recipe library in priority order."""
        capabilities: dict[str, CapabilityResult] = {}
        for library in self.ctx.recipe.libraries_by_priority():
            capabilities[library.name] = self.build(library)
        return capabilities

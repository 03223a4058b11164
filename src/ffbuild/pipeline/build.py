"""Build stage: codec libraries, FFmpeg configure negotiation, compile, stage."""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path

from ffbuild.errors import StepExecutionError
from ffbuild.features.models import features_from_libraries
from ffbuild.features.negotiator import FeatureNegotiator, NegotiationResult
from ffbuild.logging.context import step_context
from ffbuild.orchestration.retry import RetryController
from ffbuild.pipeline.codecs import CodecBuilder
from ffbuild.pipeline.context import PipelineContext
from ffbuild.pipeline.records import read_record, require_record, write_record
from ffbuild.pipeline.sources import archive_filename, extract_archive
from ffbuild.steps.environment import BuildEnvironment
from ffbuild.steps.models import BuildStep, CapabilityResult, StepResult

logger = logging.getLogger(__name__)

STAGE = "build"


@dataclass(frozen=True)
class BuildOptions:
    """Flags for the build stage."""

    force: bool = False


def ffmpeg_source_dir(ctx: PipelineContext) -> Path:
    return ctx.config.paths.build_dir / f"ffmpeg-{ctx.config.build.ffmpeg_version}"


def staged_prefix(ctx: PipelineContext) -> Path:
    prefix = ctx.config.build.install_prefix.lstrip("/")
    return ctx.config.paths.staging_dir / prefix


def staged_binary(ctx: PipelineContext, name: str = "ffmpeg") -> Path:
    return staged_prefix(ctx) / "bin" / name


def staged_library_paths(ctx: PipelineContext) -> tuple[Path, ...]:
    """Library directories inside the staging tree."""
    lib = staged_prefix(ctx) / "lib"
    return (lib, staged_prefix(ctx) / ctx.recipe.package.bundled_lib_dir)


class FFmpegBuilder:
    """Fetches, configures, compiles and stages FFmpeg."""

    def __init__(self, ctx: PipelineContext) -> None:
        self.ctx = ctx
        self.executor = ctx.executor()
        self.src = ffmpeg_source_dir(ctx)

    def _controller(self, name: str) -> RetryController:
        retry = self.ctx.config.retry
        return RetryController(
            retry.max_retries,
            delay_seconds=retry.delay_seconds,
            sleep=self.ctx.sleep,
            name=name,
        )

    def fetch(self) -> Path:
        """Download and extract the FFmpeg release tarball."""
        if self.src.is_dir():
            logger.info("Using existing FFmpeg source %s", self.src.name)
            return self.src

        version = self.ctx.config.build.ffmpeg_version
        url = self.ctx.recipe.ffmpeg.source_url.format(version=version)
        tarball = self.ctx.config.paths.build_dir / archive_filename(url)

        def attempt() -> Path:
            self.ctx.fetcher.download(url, tarball)
            try:
                extract_archive(tarball, self.ctx.config.paths.build_dir)
            except StepExecutionError:
                tarball.unlink(missing_ok=True)
                raise
            if not self.src.is_dir():
                raise StepExecutionError(
                    f"{tarball.name} did not contain {self.src.name}/",
                    step_name="ffmpeg-extract",
                )
            return self.src

        return self._controller("FFmpeg download").run(attempt).value

    def configure_step(self, feature_flags: list[str]) -> BuildStep:
        config = self.ctx.config
        codec_prefix = config.paths.codec_prefix
        recipe = self.ctx.recipe.ffmpeg
        ldflags = " ".join(
            f
            for f in (
                f"-L{codec_prefix}/lib",
                recipe.extra_ldflags,
                f"-Wl,-rpath,{self.ctx.bundled_rpath}",
            )
            if f
        )
        command = [
            "./configure",
            f"--prefix={config.build.install_prefix}",
            f"--extra-version={config.build.extra_version}",
            *recipe.configure_flags,
            *feature_flags,
            f"--extra-cflags=-I{codec_prefix}/include",
            f"--extra-ldflags={ldflags}",
        ]
        return BuildStep.create(
            "ffmpeg-configure",
            [command],
            cwd=self.src,
            inputs=[self.src / "configure"],
            description="Configure FFmpeg",
        )

    def configure(self, feature_flags: list[str]) -> StepResult:
        return self.executor.run(self.configure_step(feature_flags), self.ctx.prober)

    def negotiate(self, capabilities: dict[str, CapabilityResult]) -> NegotiationResult:
        features = features_from_libraries(self.ctx.recipe.codec_libraries)
        with step_context(step="configure"):
            return FeatureNegotiator(features).negotiate(capabilities, self.configure)

    def compile_and_stage(self) -> None:
        staging = self.ctx.config.paths.staging_dir
        step = BuildStep.create(
            "ffmpeg-make",
            [
                ["make", f"-j{self.ctx.config.build.threads}"],
                ["make", f"DESTDIR={staging}", "install"],
            ],
            cwd=self.src,
            inputs=[self.src / "Makefile"],
            description="Compile and stage FFmpeg",
        )

        def attempt() -> StepResult:
            result = self.executor.run(step, self.ctx.prober)
            result.raise_for_status()
            return result

        with step_context(step="make"):
            self._controller("FFmpeg compile").run(attempt)

    def bundle_codec_libraries(self, enabled: list[str]) -> list[str]:
        """Copy enabled codec libraries into the staged bundle directory."""
        codec_prefix = self.ctx.config.paths.codec_prefix
        target_dir = staged_prefix(self.ctx) / self.ctx.recipe.package.bundled_lib_dir
        target_dir.mkdir(parents=True, exist_ok=True)
        bundled = []
        for library in self.ctx.recipe.libraries_by_priority():
            if library.name not in enabled:
                continue
            for pattern in library.bundle:
                for found in sorted(codec_prefix.glob(pattern)):
                    target = target_dir / found.name
                    if target.exists() or target.is_symlink():
                        target.unlink()
                    shutil.copy2(found, target, follow_symlinks=False)
                    bundled.append(found.name)
        logger.info("Bundled %d codec library file(s)", len(bundled))
        return bundled

    def verify_linkage(self) -> bool:
        """Check the staged binary resolves libavcodec.

        Returns:
            False when ldd is unavailable and the check was skipped.

        Raises:
            StepExecutionError: If ldd shows no libavcodec dependency.
        """
        binary = staged_binary(self.ctx)
        if not self.ctx.detect(["ldd"]).is_available("ldd"):
            logger.warning("ldd not available; skipping linkage check")
            return False

        env = BuildEnvironment(
            codec_prefix=self.ctx.config.paths.codec_prefix,
            threads=self.ctx.config.build.threads,
            library_paths=staged_library_paths(self.ctx),
        )
        step = BuildStep.create("ldd-check", [["ldd", binary]], inputs=[binary])
        result = self.ctx.executor(env).run(step, self.ctx.prober)
        result.raise_for_status()
        if "libavcodec" not in result.output:
            raise StepExecutionError(
                f"{binary.name} is not linked against libavcodec",
                step_name=step.name,
                output=result.output_tail(),
            )
        unresolved = [
            line.split()[0]
            for line in result.output.splitlines()
            if "not found" in line
        ]
        if unresolved:
            logger.warning("Unresolved libraries: %s", ", ".join(unresolved))
        return True


def record_matches_config(record: dict, ctx: PipelineContext) -> bool:
    """True when a build record was made for the configured version and prefix."""
    build = ctx.config.build
    return (
        record.get("ffmpeg_version") == build.ffmpeg_version
        and record.get("install_prefix") == build.install_prefix
    )


def run_build(ctx: PipelineContext, options: BuildOptions | None = None) -> dict:
    """Build codec libraries and FFmpeg into the staging tree.

    Returns:
        The build record.

    Raises:
        MissingPrerequisiteError: If setup has not run (outside Docker).
        RetryExhaustedError: If a required step keeps failing.
        StepExecutionError: If configure fails with and without the
            suspected feature.
    """
    options = options or BuildOptions()
    config = ctx.config
    state_dir = config.paths.state_dir

    with step_context(STAGE):
        if not config.in_docker:
            require_record(state_dir, "setup", STAGE)

        existing = read_record(state_dir, STAGE)
        if existing and not options.force:
            if not record_matches_config(existing, ctx):
                logger.info(
                    "Existing build (FFmpeg %s, prefix %s) does not match the "
                    "configuration; rebuilding",
                    existing.get("ffmpeg_version"),
                    existing.get("install_prefix"),
                )
            elif staged_binary(ctx).exists():
                logger.info("FFmpeg %s already built", existing.get("ffmpeg_version"))
                return existing

        capabilities = CodecBuilder(ctx, force=options.force).build_all()

        ffmpeg = FFmpegBuilder(ctx)
        ffmpeg.fetch()
        negotiation = ffmpeg.negotiate(capabilities)
        ffmpeg.compile_and_stage()
        bundled = ffmpeg.bundle_codec_libraries(negotiation.enabled)
        linkage_checked = ffmpeg.verify_linkage()

        record = {
            "ffmpeg_version": config.build.ffmpeg_version,
            "install_prefix": config.build.install_prefix,
            "staging_dir": str(config.paths.staging_dir),
            "features": negotiation.to_dict(),
            "capabilities": {
                name: {"available": cap.available, "reason": cap.reason}
                for name, cap in capabilities.items()
            },
            "bundled": bundled,
            "linkage_checked": linkage_checked,
        }
        write_record(state_dir, STAGE, record)
        if negotiation.dropped:
            logger.warning(
                "Built without %s; configure failed with it enabled",
                negotiation.dropped,
            )
        logger.info("Build complete: FFmpeg %s", config.build.ffmpeg_version)
        return record

"""Test stage: run the staged ffmpeg binary."""

from __future__ import annotations

import logging

from ffbuild.errors import MissingPrerequisiteError
from ffbuild.logging.context import step_context
from ffbuild.pipeline.build import staged_binary, staged_library_paths
from ffbuild.pipeline.context import PipelineContext
from ffbuild.pipeline.records import read_record, write_record
from ffbuild.steps.environment import BuildEnvironment
from ffbuild.steps.models import BuildStep

logger = logging.getLogger(__name__)

STAGE = "test"
PREFERRED_ENCODER = ("x264", "libx264")
FALLBACK_ENCODER = "mpeg4"


def choose_encoder(enabled: list[str]) -> str:
    """Encoder for the smoke test, libx264 when it was enabled."""
    feature, encoder = PREFERRED_ENCODER
    return encoder if feature in enabled else FALLBACK_ENCODER


def run_test(ctx: PipelineContext) -> dict:
    """Smoke-test the staged build.

    Returns:
        The test record.

    Raises:
        MissingPrerequisiteError: If there is no staged binary.
        StepExecutionError: If ffmpeg fails to run or encode.
    """
    config = ctx.config
    binary = staged_binary(ctx)

    with step_context(STAGE):
        if not binary.exists():
            raise MissingPrerequisiteError(
                f"No staged ffmpeg at {binary}; run 'ffbuild build' first",
                stage="build",
                artifact=binary,
            )

        build_record = read_record(config.paths.state_dir, "build") or {}
        enabled = build_record.get("features", {}).get("enabled", [])
        encoder = choose_encoder(enabled)

        env = BuildEnvironment(
            codec_prefix=config.paths.codec_prefix,
            threads=config.build.threads,
            library_paths=staged_library_paths(ctx),
        )
        step = BuildStep.create(
            "ffmpeg-smoke-test",
            [
                [binary, "-hide_banner", "-version"],
                [
                    binary,
                    "-hide_banner",
                    "-f",
                    "lavfi",
                    "-i",
                    "testsrc=duration=1:size=320x240:rate=25",
                    "-c:v",
                    encoder,
                    "-f",
                    "null",
                    "-",
                ],
            ],
            description=f"Run ffmpeg -version and a {encoder} test encode",
        )
        result = ctx.executor(env).execute(step)
        result.raise_for_status()

        version_line = result.output.splitlines()[0] if result.output else ""
        record = {"encoder": encoder, "version_line": version_line}
        write_record(config.paths.state_dir, STAGE, record)
        logger.info("Smoke test passed (%s)", encoder)
        return record

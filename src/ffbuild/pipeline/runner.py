"""Full pipeline: setup, build, package, test."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field

from ffbuild.core.formatting import format_duration
from ffbuild.pipeline.build import BuildOptions, run_build
from ffbuild.pipeline.context import PipelineContext
from ffbuild.pipeline.package import PackageOptions, run_package
from ffbuild.pipeline.setup import SetupOptions, run_setup
from ffbuild.pipeline.verify import run_test

logger = logging.getLogger(__name__)

PIPELINE_STAGES = ("setup", "build", "package", "test")


@dataclass
class PipelineResult:
    """Stage records of a completed pipeline run, in order."""

    records: dict[str, dict] = field(default_factory=dict)
    elapsed_seconds: float = 0.0


def run_pipeline(
    ctx: PipelineContext,
    setup: SetupOptions | None = None,
    build: BuildOptions | None = None,
    package: PackageOptions | None = None,
) -> PipelineResult:
    """Run every stage in order, stopping at the first error.

    Errors from a stage propagate unchanged; later stages do not run.
    """
    result = PipelineResult()
    start = time.monotonic()

    result.records["setup"] = run_setup(ctx, setup)
    result.records["build"] = run_build(ctx, build)
    result.records["package"] = run_package(ctx, package)
    result.records["test"] = run_test(ctx)

    result.elapsed_seconds = time.monotonic() - start
    logger.info("Pipeline finished in %s", format_duration(result.elapsed_seconds))
    return result

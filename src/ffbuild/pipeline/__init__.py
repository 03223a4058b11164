"""Pipeline stages.

Stages run strictly in order and hand results to each other through
JSON records in the build state directory.
"""

from ffbuild.pipeline.build import BuildOptions, run_build
from ffbuild.pipeline.context import PipelineContext
from ffbuild.pipeline.info import collect_info
from ffbuild.pipeline.install import InstallOptions, run_install
from ffbuild.pipeline.maintenance import run_backup, run_clean, tail_log
from ffbuild.pipeline.package import PackageOptions, run_package
from ffbuild.pipeline.runner import PIPELINE_STAGES, PipelineResult, run_pipeline
from ffbuild.pipeline.setup import SetupOptions, run_setup
from ffbuild.pipeline.sources import SourceDownloadError, SourceFetcher
from ffbuild.pipeline.verify import run_test

__all__ = [
    "PIPELINE_STAGES",
    "BuildOptions",
    "InstallOptions",
    "PackageOptions",
    "PipelineContext",
    "PipelineResult",
    "SetupOptions",
    "SourceDownloadError",
    "SourceFetcher",
    "collect_info",
    "run_backup",
    "run_build",
    "run_clean",
    "run_install",
    "run_package",
    "run_pipeline",
    "run_setup",
    "run_test",
    "tail_log",
]

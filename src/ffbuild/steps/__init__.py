"""Build steps: model, environment, prober and executor."""

from ffbuild.steps.environment import BuildEnvironment
from ffbuild.steps.executor import StepExecutor
from ffbuild.steps.models import (
    BuildStep,
    CapabilityResult,
    StepLog,
    StepResult,
    StepStatus,
)
from ffbuild.steps.prober import DependencyProber, ProbeAction, ProbeDecision

__all__ = [
    "BuildEnvironment",
    "BuildStep",
    "CapabilityResult",
    "DependencyProber",
    "ProbeAction",
    "ProbeDecision",
    "StepExecutor",
    "StepLog",
    "StepResult",
    "StepStatus",
]

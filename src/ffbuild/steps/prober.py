"""Dependency Prober: decide whether a step needs to run.

The prober only reads the filesystem. A step is skipped when every
artifact it declares already exists; anything unreadable counts as
missing so the step runs again.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from ffbuild.steps.models import BuildStep

logger = logging.getLogger(__name__)


class ProbeAction(Enum):
    RUN = "run"
    SKIP = "skip"


@dataclass(frozen=True)
class ProbeDecision:
    """Prober verdict for one step."""

    action: ProbeAction
    reason: str

    @property
    def should_run(self) -> bool:
        return self.action == ProbeAction.RUN


def _exists(path: Path) -> bool:
    try:
        return path.exists()
    except OSError:
        return False


class DependencyProber:
    """Checks step outputs and inputs against the filesystem."""

    def probe(self, step: BuildStep, force: bool = False) -> ProbeDecision:
        """Decide whether a step must run.

        Args:
            step: Step to check.
            force: Run even when all outputs are present.

        Returns:
            SKIP only if the step declares outputs, all of them exist and
            force is False; RUN otherwise.
        """
        if force:
            return ProbeDecision(ProbeAction.RUN, "forced")
        if not step.is_idempotent:
            return ProbeDecision(ProbeAction.RUN, "no declared outputs")

        missing = [p for p in step.outputs if not _exists(p)]
        if missing:
            return ProbeDecision(ProbeAction.RUN, f"missing output {missing[0]}")

        logger.debug("All outputs present for %s", step.name)
        return ProbeDecision(ProbeAction.SKIP, "outputs already exist")

    def missing_inputs(self, step: BuildStep) -> list[Path]:
        """Declared inputs that do not exist."""
        return [p for p in step.inputs if not _exists(p)]

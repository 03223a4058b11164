"""Feature Negotiator: pick configure flags and recover from one failure.

Flags are chosen from capability results in priority order. If configure
fails with the chosen set, the most recently added optional flag is
removed and configure is retried exactly once. Required flags are never
dropped. The removed flag is only a suspect: configure output does not
say which library broke it.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field

from ffbuild.errors import StepExecutionError
from ffbuild.features.models import FeatureFlag
from ffbuild.steps.models import CapabilityResult, StepResult

logger = logging.getLogger(__name__)

ConfigureFn = Callable[[list[str]], StepResult]


@dataclass
class NegotiationResult:
    """Outcome of flag negotiation.

    Attributes:
        flags: Feature flags passed to the successful configure run.
        enabled: Names of enabled features.
        omitted: Features left out because they were unavailable.
        dropped: Feature removed after the first configure failure, if any.
            It is the suspected cause, not a confirmed one.
        result: Step result of the successful configure run.
    """

    flags: list[str] = field(default_factory=list)
    enabled: list[str] = field(default_factory=list)
    omitted: list[str] = field(default_factory=list)
    dropped: str | None = None
    result: StepResult | None = None

    def to_dict(self) -> dict[str, object]:
        return {
            "flags": list(self.flags),
            "enabled": list(self.enabled),
            "omitted": list(self.omitted),
            "suspected_dropped": self.dropped,
        }


class FeatureNegotiator:
    """Negotiates configure flags for a set of features."""

    def __init__(self, features: Iterable[FeatureFlag]) -> None:
        self.features = sorted(features, key=lambda f: f.priority)

    def select_flags(
        self, capabilities: Mapping[str, CapabilityResult]
    ) -> NegotiationResult:
        """Choose flags for available features.

        Unavailable features are omitted with a warning, whether optional
        or not. Codec availability never aborts the build.
        """
        selection = NegotiationResult()
        for feature in self.features:
            if feature.is_available(capabilities):
                selection.flags.append(feature.flag)
                selection.enabled.append(feature.name)
                continue

            capability = capabilities.get(feature.name)
            reason = capability.reason if capability else "not built"
            kind = "optional feature" if feature.optional else "feature"
            logger.warning(
                "Disabling %s %s (%s): %s",
                kind,
                feature.name,
                feature.flag,
                reason,
            )
            selection.omitted.append(feature.name)
        return selection

    def _last_optional(self, enabled: list[str]) -> FeatureFlag | None:
        """The most recently added enabled feature that is optional."""
        by_name = {feature.name: feature for feature in self.features}
        for name in reversed(enabled):
            feature = by_name.get(name)
            if feature is not None and feature.optional:
                return feature
        return None

    def negotiate(
        self,
        capabilities: Mapping[str, CapabilityResult],
        configure: ConfigureFn,
    ) -> NegotiationResult:
        """Run configure with negotiated flags.

        Args:
            capabilities: Capability results keyed by feature name.
            configure: Callable running configure with the given feature
                flags and returning its StepResult.

        Returns:
            NegotiationResult for the successful configure run.

        Raises:
            StepExecutionError: If configure fails with no optional feature
                enabled, or fails again after dropping one.
        """
        selection = self.select_flags(capabilities)
        logger.info(
            "Configuring with features: %s",
            ", ".join(selection.enabled) or "none",
        )

        result = configure(list(selection.flags))
        if result.succeeded:
            selection.result = result
            return selection

        feature = self._last_optional(selection.enabled)
        if feature is None:
            raise StepExecutionError(
                "Configure failed with no optional feature left to drop: "
                f"{result.message}",
                step_name=result.step_name,
                returncode=result.returncode,
                output=result.output_tail(),
            )

        suspect = feature.name
        selection.enabled.remove(suspect)
        selection.flags.remove(feature.flag)
        selection.dropped = suspect
        logger.warning(
            "Configure failed; retrying without %s (%s), the suspected cause",
            suspect,
            feature.flag,
        )

        retry = configure(list(selection.flags))
        if not retry.succeeded:
            raise StepExecutionError(
                f"Configure failed twice; second attempt without {suspect} "
                f"also failed: {retry.message}",
                step_name=retry.step_name,
                returncode=retry.returncode,
                output=retry.output_tail(),
            )
        selection.result = retry
        return selection

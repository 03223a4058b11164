"""Feature flags and configure negotiation."""

from ffbuild.features.models import FeatureFlag, features_from_libraries
from ffbuild.features.negotiator import FeatureNegotiator, NegotiationResult

__all__ = [
    "FeatureFlag",
    "FeatureNegotiator",
    "NegotiationResult",
    "features_from_libraries",
]

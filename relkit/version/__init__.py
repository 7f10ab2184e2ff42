"""Version computation and resolution."""

from .computer import INCREMENTS, Increment, VersionComputer, is_increment
from .recommend import CONVENTIONAL, PRESETS, RecommendationEngine, classify_commit, parse_recommendation
from .resolver import VersionDecision, VersionError, VersionResolver, is_recommendation
from .semver import DEFAULT_VERSION, SemVer, is_valid, parse_version, strip_prefix

__all__ = [
    "CONVENTIONAL",
    "DEFAULT_VERSION",
    "INCREMENTS",
    "Increment",
    "PRESETS",
    "RecommendationEngine",
    "SemVer",
    "VersionComputer",
    "VersionDecision",
    "VersionError",
    "VersionResolver",
    "classify_commit",
    "is_increment",
    "is_recommendation",
    "is_valid",
    "parse_recommendation",
    "parse_version",
    "strip_prefix",
]

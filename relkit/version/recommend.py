"""Increment recommendation from conventional commit history."""

from __future__ import annotations

import logging
import re
from typing import Protocol

from relkit.core.result import Err, Result

from .computer import Increment

__all__ = [
    "CONVENTIONAL",
    "PRESETS",
    "CommitSource",
    "RecommendationEngine",
    "classify_commit",
    "parse_recommendation",
]

logger = logging.getLogger(__name__)

CONVENTIONAL = "conventional"
PRESETS = frozenset({"angular", "conventionalcommits"})
_DEFAULT_PRESET = "conventionalcommits"

_HEADER_RE = re.compile(r"^(?P<type>[A-Za-z]+)(?:\([^)]*\))?(?P<bang>!)?:\s")
_BREAKING_RE = re.compile(r"^BREAKING[ -]CHANGE:", re.MULTILINE)
_FEATURE_TYPES = frozenset({"feat", "feature"})

_RANK: dict[Increment, int] = {"patch": 0, "minor": 1, "major": 2}


class CommitSource(Protocol):
    def commit_messages(self, since: str | None) -> Result[list[str], object]: ...


def parse_recommendation(increment: str | None) -> str | None:
    """Return the preset for ``conventional[:preset]``, else None."""
    if not increment:
        return None
    name, sep, preset = increment.partition(":")
    if name != CONVENTIONAL:
        return None
    return preset if sep and preset else _DEFAULT_PRESET


def classify_commit(message: str, preset: str = _DEFAULT_PRESET) -> Increment:
    header, _, body = message.strip().partition("\n")
    match = _HEADER_RE.match(header)

    if _BREAKING_RE.search(body):
        return "major"
    if match is None:
        return "patch"
    if match.group("bang") and preset != "angular":
        return "major"
    if match.group("type").lower() in _FEATURE_TYPES:
        return "minor"
    return "patch"


class RecommendationEngine:
    """Derives an increment from the commits since the latest tag.

    Breaking markers (``type!:`` or a ``BREAKING CHANGE:`` footer) give
    ``major``, ``feat`` gives ``minor``, anything else ``patch``. No commits
    means no recommendation.
    """

    def __init__(self, preset: str = _DEFAULT_PRESET) -> None:
        self.preset = preset

    def recommend(self, git: CommitSource, latest_tag: str | None) -> Increment | None:
        messages = git.commit_messages(latest_tag)
        if isinstance(messages, Err):
            logger.debug("no recommendation, commit history unavailable: %s", messages.error)
            return None

        best: Increment | None = None
        for message in messages.value:
            kind = classify_commit(message, self.preset)
            if best is None or _RANK[kind] > _RANK[best]:
                best = kind
            if best == "major":
                break

        logger.debug("recommended increment (%s): %s", self.preset, best)
        return best

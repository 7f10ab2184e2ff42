"""Version resolution state machine.

States: ``uninitialized`` → ``latest-known`` (``set_latest_version``) →
``decided`` (``bump`` or ``set_version``) → ``validated`` (``validate``).
``bump`` may leave the version undecided; the caller then prompts, or
``validate`` fails.

Usage:
    resolver = VersionResolver(pre_release_id="beta")
    resolver.set_latest_version(use=None, git_tag="v1.2.3", pkg_version=None, is_root_dir=True)
    resolver.bump("minor")
    match resolver.validate():
        case Ok(decision):
            print(decision.version)  # 1.3.0
        case Err(error):
            print(error.message)
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass, replace
from typing import Literal

from relkit.core.result import Err, Ok, Result

from .computer import Increment, VersionComputer, is_increment
from .recommend import PRESETS, parse_recommendation
from .semver import DEFAULT_VERSION, SemVer, parse_version

__all__ = [
    "ResolverState",
    "VersionDecision",
    "VersionError",
    "VersionErrorKind",
    "VersionResolver",
    "is_recommendation",
]

logger = logging.getLogger(__name__)

ResolverState = Literal["uninitialized", "latest-known", "decided", "validated"]
VersionErrorKind = Literal["invalid", "not-greater", "unknown-increment", "unknown-preset"]

_CORE_RE = re.compile(r"(\d+)\.(\d+)\.(\d+)")

Recommend = Callable[[str], Increment | None]


@dataclass(frozen=True, slots=True)
class VersionError:
    kind: VersionErrorKind
    message: str
    hint: str | None = None


@dataclass(frozen=True, slots=True)
class VersionDecision:
    latest_version: str
    increment: str | None = None
    pre_release_id: str | None = None
    version: str | None = None
    is_pre_release: bool = False
    is_recommendation: bool = False

    def as_runtime(self) -> dict[str, object]:
        """Fields exposed to templates (``${version}``, ``${latest_version}``)."""
        return {
            "latest_version": self.latest_version,
            "increment": self.increment,
            "pre_release_id": self.pre_release_id,
            "version": self.version,
            "is_pre_release": self.is_pre_release,
        }


def is_recommendation(increment: str | None) -> bool:
    """True when ``increment`` asks for a commit-history recommendation."""
    return parse_recommendation(increment) is not None


def _coerce(value: str | None, prefix: str) -> SemVer | None:
    if not value:
        return None
    parsed = parse_version(value, prefix)
    if parsed is not None:
        return parsed
    match = _CORE_RE.search(value)
    if match is None:
        return None
    return SemVer(int(match.group(1)), int(match.group(2)), int(match.group(3)))


class VersionResolver:
    """Decides the latest and next version of one release.

    Attributes:
        state: Current resolver state.
        decision: Latest decision (``None`` before ``set_latest_version``).
    """

    def __init__(self, *, pre_release_id: str | None = None, computer: VersionComputer | None = None) -> None:
        self.pre_release_id = pre_release_id
        self.state: ResolverState = "uninitialized"
        self.decision: VersionDecision | None = None
        self._computer = computer or VersionComputer()
        self._latest = SemVer(0, 0, 0)

    @property
    def latest_version(self) -> str:
        return self._require_decision().latest_version

    @property
    def version(self) -> str | None:
        return self.decision.version if self.decision else None

    def _require_decision(self) -> VersionDecision:
        if self.decision is None:
            raise RuntimeError("set_latest_version() must be called first")
        return self.decision

    def set_latest_version(
        self,
        *,
        use: str | None,
        git_tag: str | None,
        pkg_version: str | None,
        is_root_dir: bool,
        tag_prefix: str = "",
    ) -> str:
        """Pick the current version.

        Priority: ``use`` (``git.tag`` | ``pkg.version``) > manifest version
        (only in the manifest's root dir) > latest tag > ``0.0.0``. A tag
        prefix such as ``v`` is stripped.
        """
        match use:
            case "git.tag":
                candidate = git_tag
            case "pkg.version":
                candidate = pkg_version
            case _:
                candidate = (pkg_version if is_root_dir else None) or git_tag

        latest = _coerce(candidate, tag_prefix)
        if latest is None:
            if candidate:
                logger.warning("could not parse version from %r, using %s", candidate, DEFAULT_VERSION)
            latest = SemVer(0, 0, 0)

        self._latest = latest
        self.decision = VersionDecision(latest_version=str(latest), pre_release_id=self.pre_release_id)
        self.state = "latest-known"
        logger.debug("latest version: %s (use=%s, tag=%s, pkg=%s)", latest, use, git_tag, pkg_version)
        return str(latest)

    def bump(
        self,
        increment: str | None,
        *,
        pre_release: bool = False,
        recommend: Recommend | None = None,
    ) -> Result[VersionDecision, VersionError]:
        """Decide the next version from an increment token or version string.

        ``conventional[:preset]`` asks ``recommend(preset)`` for the
        increment. With ``pre_release`` set, ``major|minor|patch`` become
        ``pre*``, and a missing increment on a prerelease becomes
        ``prerelease``. An undecidable request leaves ``version`` unset.
        """
        decision = self._require_decision()
        latest = self._latest
        recommendation = is_recommendation(increment)
        decision = replace(decision, increment=increment, is_recommendation=recommendation)

        if increment is not None and not recommendation and not is_increment(increment):
            explicit = parse_version(increment)
            if explicit is None:
                return Err(
                    VersionError(
                        kind="unknown-increment",
                        message=f"Invalid version or increment: {increment}",
                        hint="Use major, minor, patch, premajor, preminor, prepatch, prerelease or x.y.z",
                    )
                )
            if explicit <= latest:
                return Err(
                    VersionError(
                        kind="not-greater",
                        message=f"Version {explicit} is not greater than {latest}",
                    )
                )
            return Ok(self._decide(decision, explicit))

        token: str | None = increment
        if recommendation:
            preset = parse_recommendation(increment)
            if preset not in PRESETS:
                return Err(
                    VersionError(
                        kind="unknown-preset",
                        message=f"Unknown recommendation preset: {preset}",
                        hint=f"Use one of {', '.join(sorted(PRESETS))}",
                    )
                )
            token = recommend(preset) if recommend is not None else None
            if token is None:
                logger.debug("no recommendation available")
                self.decision = decision
                return Ok(decision)

        if token is None and pre_release and latest.is_prerelease:
            token = "prerelease"
        elif token in ("major", "minor", "patch") and pre_release:
            token = f"pre{token}"

        if token is None:
            self.decision = decision
            return Ok(decision)

        next_version = self._computer.increment(latest, token, self.pre_release_id)  # type: ignore[arg-type]
        return Ok(self._decide(replace(decision, increment=token), next_version))

    def set_version(self, value: str) -> Result[VersionDecision, VersionError]:
        """Set the version directly (interactive prompt answer)."""
        decision = self._require_decision()
        parsed = parse_version(value)
        if parsed is None:
            return Err(VersionError(kind="invalid", message=f"Invalid version: {value}"))
        return Ok(self._decide(decision, parsed))

    def _decide(self, decision: VersionDecision, version: SemVer) -> VersionDecision:
        decided = replace(decision, version=str(version), is_pre_release=version.is_prerelease)
        self.decision = decided
        self.state = "decided"
        logger.debug("next version: %s", decided.version)
        return decided

    def validate(self) -> Result[VersionDecision, VersionError]:
        """Require a decided version before anything is mutated."""
        decision = self.decision
        if decision is None or decision.version is None:
            return Err(
                VersionError(
                    kind="invalid",
                    message="No valid version to release.",
                    hint="Pass an increment (patch, minor, major) or an explicit version.",
                )
            )
        self.state = "validated"
        return Ok(decision)

"""Explicit version increments."""

from __future__ import annotations

from dataclasses import replace
from typing import Literal, get_args

from .semver import Identifier, SemVer

__all__ = ["Increment", "INCREMENTS", "VersionComputer", "is_increment"]

Increment = Literal["major", "minor", "patch", "premajor", "preminor", "prepatch", "prerelease"]
INCREMENTS: tuple[Increment, ...] = get_args(Increment)


def is_increment(value: str | None) -> bool:
    return value in INCREMENTS


class VersionComputer:
    """Pure increment rules (node-semver ``inc`` semantics).

    - ``major``/``minor``/``patch`` on a prerelease that already targets
      that release just drop the prerelease (``1.0.0-1`` + major = ``1.0.0``).
    - ``premajor``/``preminor``/``prepatch`` bump, then start a prerelease
      (``<id>.0`` or ``0``).
    - ``prerelease`` bumps the trailing number of a prerelease; on a stable
      version it behaves like ``prepatch``.
    """

    def increment(self, version: SemVer, increment: Increment, pre_release_id: str | None = None) -> SemVer:
        match increment:
            case "major":
                if version.minor or version.patch or not version.prerelease:
                    return SemVer(version.major + 1, 0, 0)
                return SemVer(version.major, 0, 0)
            case "minor":
                if version.patch or not version.prerelease:
                    return SemVer(version.major, version.minor + 1, 0)
                return SemVer(version.major, version.minor, 0)
            case "patch":
                if not version.prerelease:
                    return SemVer(version.major, version.minor, version.patch + 1)
                return SemVer(version.major, version.minor, version.patch)
            case "premajor":
                return self._pre(SemVer(version.major + 1, 0, 0), pre_release_id)
            case "preminor":
                return self._pre(SemVer(version.major, version.minor + 1, 0), pre_release_id)
            case "prepatch":
                return self._pre(SemVer(version.major, version.minor, version.patch + 1), pre_release_id)
            case "prerelease":
                if not version.prerelease:
                    version = SemVer(version.major, version.minor, version.patch + 1)
                return self._pre(version, pre_release_id)

    def _pre(self, version: SemVer, pre_release_id: str | None) -> SemVer:
        parts: list[Identifier] = list(version.prerelease)
        if not parts:
            parts = [0]
        else:
            for i in range(len(parts) - 1, -1, -1):
                part = parts[i]
                if isinstance(part, int):
                    parts[i] = part + 1
                    break
            else:
                parts.append(0)

        if pre_release_id:
            if parts[0] != pre_release_id or len(parts) < 2 or not isinstance(parts[1], int):
                parts = [pre_release_id, 0]

        return replace(version, prerelease=tuple(parts), build=())

"""Semantic versions (semver 2.0.0).

Only what the release flow needs: parsing (with an optional leading ``v``
or tag prefix), formatting, ordering and the prerelease identifier list.
Build metadata is parsed and kept but ignored for ordering.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from functools import total_ordering

__all__ = ["SemVer", "parse_version", "strip_prefix", "is_valid", "DEFAULT_VERSION"]

DEFAULT_VERSION = "0.0.0"

_SEMVER_RE = re.compile(
    r"^(?P<major>0|[1-9]\d*)\.(?P<minor>0|[1-9]\d*)\.(?P<patch>0|[1-9]\d*)"
    r"(?:-(?P<pre>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?"
    r"(?:\+(?P<build>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?$"
)

Identifier = int | str


def _identifier(part: str) -> Identifier:
    return int(part) if part.isdigit() else part


@total_ordering
@dataclass(frozen=True, slots=True)
class SemVer:
    major: int
    minor: int
    patch: int
    prerelease: tuple[Identifier, ...] = ()
    build: tuple[str, ...] = field(default=(), compare=False)

    @classmethod
    def parse(cls, value: str) -> SemVer | None:
        match = _SEMVER_RE.match(value.strip())
        if match is None:
            return None
        pre = match.group("pre")
        build = match.group("build")
        return cls(
            major=int(match.group("major")),
            minor=int(match.group("minor")),
            patch=int(match.group("patch")),
            prerelease=tuple(_identifier(p) for p in pre.split(".")) if pre else (),
            build=tuple(build.split(".")) if build else (),
        )

    @property
    def is_prerelease(self) -> bool:
        return bool(self.prerelease)

    @property
    def core(self) -> tuple[int, int, int]:
        return (self.major, self.minor, self.patch)

    def __str__(self) -> str:
        text = f"{self.major}.{self.minor}.{self.patch}"
        if self.prerelease:
            text += "-" + ".".join(str(p) for p in self.prerelease)
        if self.build:
            text += "+" + ".".join(self.build)
        return text

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, SemVer):
            return NotImplemented
        if self.core != other.core:
            return self.core < other.core
        # a prerelease sorts before its release
        if not self.prerelease or not other.prerelease:
            return bool(self.prerelease) and not other.prerelease
        for a, b in zip(self.prerelease, other.prerelease, strict=False):
            if a == b:
                continue
            if isinstance(a, int) and isinstance(b, int):
                return a < b
            if isinstance(a, int):
                return True
            if isinstance(b, int):
                return False
            return a < b
        return len(self.prerelease) < len(other.prerelease)


def strip_prefix(value: str, prefix: str = "") -> str:
    """Drop a tag prefix (``v``, ``release-``) in front of a version."""
    text = value.strip()
    if prefix and text.startswith(prefix):
        text = text[len(prefix) :]
    if text[:1] in ("v", "V") and _SEMVER_RE.match(text[1:]):
        text = text[1:]
    return text


def parse_version(value: str | None, prefix: str = "") -> SemVer | None:
    if not value:
        return None
    return SemVer.parse(strip_prefix(value, prefix))


def is_valid(value: str | None) -> bool:
    return value is not None and SemVer.parse(value) is not None

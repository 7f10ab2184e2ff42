"""Release context: configuration plus values computed during the run.

Hook commands and collaborators read from the context through
``${field.path}`` templates. The orchestrator is the only writer; it builds
a new context between stages with ``with_runtime``.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field, fields, is_dataclass, replace
from types import MappingProxyType
from typing import Any

from .config import GitConfig, GitHubConfig, GitLabConfig, NpmConfig, ReleaseConfig
from .structured import snake_case

__all__ = ["ReleaseContext", "render_template"]

_PLACEHOLDER = re.compile(r"\$\{([^}]+)\}")

_EMPTY: Mapping[str, object] = MappingProxyType({})


def _empty_runtime() -> Mapping[str, object]:
    return _EMPTY


@dataclass(frozen=True, slots=True)
class ReleaseContext:
    config: ReleaseConfig
    runtime: Mapping[str, object] = field(default_factory=_empty_runtime)

    def with_runtime(
        self,
        *,
        overwrite: frozenset[str] = frozenset(),
        **values: object,
    ) -> ReleaseContext:
        """Return a copy with ``values`` set.

        A field that already holds a different value may only be replaced
        when it is named in ``overwrite``.

        Raises:
            ValueError: On an unlisted overwrite (a programming error).
        """
        for key, value in values.items():
            current = self.runtime.get(key)
            if current is not None and current != value and key not in overwrite:
                raise ValueError(f"runtime field already set: {key}")
        merged = {**self.runtime, **values}
        return replace(self, runtime=MappingProxyType(merged))

    def for_run(
        self,
        *,
        git: GitConfig,
        github: GitHubConfig,
        gitlab: GitLabConfig,
        npm: NpmConfig,
    ) -> ReleaseContext:
        """Context seen by one pipeline run (primary or distribution)."""
        config = replace(self.config, git=git, github=github, gitlab=gitlab, npm=npm)
        return replace(self, config=config)

    def get(self, key: str) -> object | None:
        return self.runtime.get(key)

    def lookup(self, path: str) -> object | None:
        """Resolve a dotted path; runtime fields shadow configuration."""
        parts = [snake_case(p.strip()) for p in path.split(".") if p.strip()]
        if not parts:
            return None

        head, rest = parts[0], parts[1:]
        current: Any
        if head in self.runtime:
            current = self.runtime[head]
        elif head in {f.name for f in fields(self.config)}:
            current = getattr(self.config, head)
        else:
            return None

        for part in rest:
            if isinstance(current, Mapping):
                current = current.get(part)  # pyright: ignore[reportUnknownMemberType]
            elif is_dataclass(current) and part in {f.name for f in fields(current)}:
                current = getattr(current, part)
            else:
                return None
            if current is None:
                return None
        return current

    def render(self, template: str) -> str:
        return render_template(template, self)


def _format(value: object) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, tuple | list):
        return " ".join(str(v) for v in value)  # pyright: ignore[reportUnknownVariableType]
    return str(value)


def render_template(template: str, context: ReleaseContext) -> str:
    """Replace ``${path}`` placeholders; unknown paths are left literal."""

    def substitute(match: re.Match[str]) -> str:
        value = context.lookup(match.group(1))
        if value is None or is_dataclass(value) or isinstance(value, Mapping):
            return match.group(0)
        return _format(value)

    return _PLACEHOLDER.sub(substitute, template)

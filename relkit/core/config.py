"""Typed configuration loading and access.

Configuration is merged once at startup from, lowest precedence first:

1. built-in defaults (the dataclass defaults below);
2. ``[tool.relkit]`` in ``pyproject.toml``;
3. ``.relkit.toml`` (or an explicit ``--config`` path);
4. environment (``CI``, ``RELKIT_DRY_RUN``, ``RELKIT_VERBOSE``);
5. command line overrides.

Keys are snake_case; camelCase spellings (``pushRepo``) are accepted.
Unknown keys are rejected so that a typo never silently falls back to a
default.
"""

from __future__ import annotations

import json
import os
from collections.abc import Mapping
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, TypeVar

from .result import Err, Ok, Result
from .structured import StrDict, as_str_dict, get_str, normalize_keys

__all__ = [
    "ConfigError",
    "DistConfig",
    "DistScriptsConfig",
    "GitConfig",
    "GitHubConfig",
    "GitLabConfig",
    "NpmConfig",
    "ReleaseConfig",
    "ScriptsConfig",
    "load_config",
    "DEFAULT_CHANGELOG",
    "CONFIG_FILE_NAME",
]

CONFIG_FILE_NAME = ".relkit.toml"
DEFAULT_CHANGELOG = 'git log --pretty=format:"* %s (%h)" [REV_RANGE]'
VERSION_SOURCES = frozenset({"git.tag", "pkg.version"})

_TRUTHY = frozenset({"1", "true", "yes", "on"})


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Error when config cannot be loaded, parsed or validated."""

    message: str
    path: Path | None = None


@dataclass(frozen=True, slots=True)
class ScriptsConfig:
    """Hook commands run at fixed points of the release."""

    before_start: str | None = None
    before_bump: str | None = None
    after_bump: str | None = None
    before_stage: str | None = None
    after_release: str | None = None
    changelog: str = DEFAULT_CHANGELOG


@dataclass(frozen=True, slots=True)
class GitConfig:
    require_clean_working_dir: bool = True
    require_upstream: bool = False
    require_branch: str | None = None
    require_root_dir: bool = False
    add_untracked_files: bool = False
    commit: bool = True
    commit_message: str = "Release ${version}"
    commit_args: str = ""
    allow_empty_commit: bool = False
    tag: bool = True
    tag_name: str = "v${version}"
    tag_annotation: str = "Release ${version}"
    tag_args: str = ""
    push: bool = True
    push_args: str = ""
    push_repo: str = "origin"


@dataclass(frozen=True, slots=True)
class GitHubConfig:
    release: bool = False
    release_name: str = "Release ${version}"
    release_notes: str | None = None
    draft: bool = False
    pre_release: bool | None = None
    assets: tuple[str, ...] = ()
    repo: str | None = None
    token_ref: str = "GITHUB_TOKEN"


@dataclass(frozen=True, slots=True)
class GitLabConfig:
    release: bool = False
    release_name: str = "Release ${version}"
    release_notes: str | None = None
    assets: tuple[str, ...] = ()
    repo: str | None = None
    token_ref: str = "GITLAB_TOKEN"


@dataclass(frozen=True, slots=True)
class NpmConfig:
    publish: bool = False
    publish_path: str = "."
    tag: str = "latest"
    access: str | None = None
    otp: str | None = None


@dataclass(frozen=True, slots=True)
class DistScriptsConfig:
    before_stage: str | None = None
    after_release: str | None = None


@dataclass(frozen=True, slots=True)
class DistConfig:
    """Secondary ("distribution") repository pass.

    ``git``/``github``/``gitlab``/``npm`` are already merged over the
    primary sections; ``explicit_git_keys`` lists the git keys the user set
    for the distribution repo so inherited values can be told apart.
    """

    repo: str | None = None
    stage_dir: str = ".stage"
    base_dir: str = "dist"
    files: tuple[str, ...] = ("**/*",)
    pkg_files: tuple[str, ...] | None = None
    git: GitConfig = field(default_factory=GitConfig)
    github: GitHubConfig = field(default_factory=GitHubConfig)
    gitlab: GitLabConfig = field(default_factory=GitLabConfig)
    npm: NpmConfig = field(default_factory=NpmConfig)
    scripts: DistScriptsConfig = field(default_factory=DistScriptsConfig)
    explicit_git_keys: frozenset[str] = frozenset()

    @property
    def enabled(self) -> bool:
        return self.repo is not None


@dataclass(frozen=True, slots=True)
class ReleaseConfig:
    """Main configuration container."""

    name: str = ""
    increment: str | None = None
    pre_release: bool = False
    pre_release_id: str | None = None
    use: str | None = None
    pkg_files: tuple[str, ...] = ("package.json",)
    dry_run: bool = False
    verbose: bool = False
    interactive: bool = True
    scripts: ScriptsConfig = field(default_factory=ScriptsConfig)
    git: GitConfig = field(default_factory=GitConfig)
    github: GitHubConfig = field(default_factory=GitHubConfig)
    gitlab: GitLabConfig = field(default_factory=GitLabConfig)
    npm: NpmConfig = field(default_factory=NpmConfig)
    dist: DistConfig = field(default_factory=DistConfig)

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> Result[ReleaseConfig, ConfigError]:
        """Create a validated config from a mapping (parsed TOML + overrides)."""
        table = normalize_keys(data)
        sections = {"scripts", "git", "github", "gitlab", "npm", "dist"}

        top: StrDict = {k: v for k, v in table.items() if k not in sections}
        pre_release = top.get("pre_release")
        if isinstance(pre_release, str):
            top["pre_release"] = True
            top.setdefault("pre_release_id", pre_release)

        base = _overlay(cls(), top, where="")
        if isinstance(base, Err):
            return base

        built: dict[str, Any] = {}
        for name, default in (
            ("scripts", ScriptsConfig()),
            ("git", GitConfig()),
            ("github", GitHubConfig()),
            ("gitlab", GitLabConfig()),
            ("npm", NpmConfig()),
        ):
            section = _section(table, name)
            if isinstance(section, Err):
                return section
            merged = _overlay(default, section.value, where=name)
            if isinstance(merged, Err):
                return merged
            built[name] = merged.value

        dist = _dist_from_table(table, built)
        if isinstance(dist, Err):
            return dist

        config = replace(base.value, dist=dist.value, **built)
        return config.validate()

    def validate(self) -> Result[ReleaseConfig, ConfigError]:
        if self.use is not None and self.use not in VERSION_SOURCES:
            return Err(
                ConfigError(f"invalid use: {self.use} (expected one of {sorted(VERSION_SOURCES)})")
            )
        if self.dist.enabled:
            stage_dir = self.dist.stage_dir.strip()
            if not stage_dir:
                return Err(ConfigError("dist.stage_dir is required when dist.repo is set"))
            if not _is_subdirectory(stage_dir):
                return Err(
                    ConfigError(f"dist.stage_dir must be a subdirectory of the project: {stage_dir}")
                )
        return Ok(self)


def _is_subdirectory(path: str) -> bool:
    """True when a relative ``path`` stays strictly below the directory it is resolved from."""
    if Path(path).is_absolute():
        return False
    parts = Path(os.path.normpath(path)).parts
    return bool(parts) and parts[0] not in (".", "..")


def _section(table: Mapping[str, object], name: str) -> Result[StrDict, ConfigError]:
    value = table.get(name)
    if value is None:
        return Ok({})
    section = as_str_dict(value)
    if section is None:
        return Err(ConfigError(f"[{name}] must be a table"))
    return Ok(normalize_keys(section))


def _coerce(type_name: str, value: object, *, key: str) -> Result[object, ConfigError]:
    """Check ``value`` against a dataclass field annotation (as a string)."""
    optional = type_name.endswith("| None")
    if value is None:
        if optional:
            return Ok(None)
        return Err(ConfigError(f"{key} cannot be empty"))

    if type_name.startswith("tuple[str"):
        if isinstance(value, str):
            return Ok((value,))
        if isinstance(value, list) and all(isinstance(v, str) for v in value):
            return Ok(tuple(value))
        return Err(ConfigError(f"{key} must be a string or a list of strings"))
    if type_name.startswith("bool"):
        if isinstance(value, bool):
            return Ok(value)
        return Err(ConfigError(f"{key} must be true or false"))
    if type_name.startswith("str"):
        if isinstance(value, str):
            return Ok(value)
        return Err(ConfigError(f"{key} must be a string"))
    return Err(ConfigError(f"{key} cannot be set from configuration"))


C = TypeVar("C")


def _overlay(base: C, table: Mapping[str, object], *, where: str) -> Result[C, ConfigError]:
    known = {f.name: f for f in fields(base)}  # type: ignore[arg-type]
    changes: dict[str, object] = {}
    for key, value in table.items():
        qualified = f"{where}.{key}" if where else key
        f = known.get(key)
        if f is None or not isinstance(f.type, str) or f.name == "explicit_git_keys":
            return Err(ConfigError(f"unknown option: {qualified}"))
        coerced = _coerce(f.type, value, key=qualified)
        if isinstance(coerced, Err):
            return coerced
        changes[key] = coerced.value
    return Ok(replace(base, **changes))  # type: ignore[type-var]


def _dist_from_table(
    table: Mapping[str, object], primary: Mapping[str, Any]
) -> Result[DistConfig, ConfigError]:
    section = _section(table, "dist")
    if isinstance(section, Err):
        return section
    dist = dict(section.value)

    built: dict[str, Any] = {}
    explicit_git: frozenset[str] = frozenset()
    for name in ("git", "github", "gitlab", "npm"):
        sub = _section(dist, name)
        if isinstance(sub, Err):
            return Err(ConfigError(f"[dist.{name}] must be a table"))
        merged = _overlay(primary[name], sub.value, where=f"dist.{name}")
        if isinstance(merged, Err):
            return merged
        built[name] = merged.value
        if name == "git":
            explicit_git = frozenset(sub.value)
        dist.pop(name, None)

    scripts = _section(dist, "scripts")
    if isinstance(scripts, Err):
        return Err(ConfigError("[dist.scripts] must be a table"))
    merged_scripts = _overlay(DistScriptsConfig(), scripts.value, where="dist.scripts")
    if isinstance(merged_scripts, Err):
        return merged_scripts
    dist.pop("scripts", None)

    result = _overlay(DistConfig(), dist, where="dist")
    if isinstance(result, Err):
        return result
    return Ok(
        replace(
            result.value,
            scripts=merged_scripts.value,
            explicit_git_keys=explicit_git,
            **built,
        )
    )


def _parse_toml(path: Path) -> Result[StrDict, ConfigError]:
    """Parse a TOML file, handling read and parse errors."""
    import tomllib

    try:
        data_obj: object = tomllib.loads(path.read_bytes().decode("utf-8"))
    except FileNotFoundError:
        return Err(ConfigError(f"Config file not found: {path}", path=path))
    except PermissionError:
        return Err(ConfigError(f"Permission denied reading: {path}", path=path))
    except tomllib.TOMLDecodeError as e:
        return Err(ConfigError(f"Invalid TOML syntax: {e}", path=path))
    except UnicodeDecodeError as e:
        return Err(ConfigError(f"Error reading config: {e}", path=path))

    data = as_str_dict(data_obj)
    if data is None:
        return Err(ConfigError("Config root must be a TOML table", path=path))
    return Ok(data)


def _deep_merge(base: StrDict, extra: Mapping[str, object]) -> StrDict:
    out = dict(base)
    for key, value in extra.items():
        current_table = as_str_dict(out.get(key))
        value_table = as_str_dict(value)
        if current_table is not None and value_table is not None:
            out[key] = _deep_merge(normalize_keys(current_table), normalize_keys(value_table))
        else:
            out[key] = value
    return out


def _env_overrides(env: Mapping[str, str]) -> StrDict:
    out: StrDict = {}
    if env.get("CI", "").strip().lower() in _TRUTHY:
        out["interactive"] = False
    if env.get("RELKIT_DRY_RUN", "").strip().lower() in _TRUTHY:
        out["dry_run"] = True
    if env.get("RELKIT_VERBOSE", "").strip().lower() in _TRUTHY:
        out["verbose"] = True
    return out


def _manifest_name(root: Path, pkg_files: object) -> str | None:
    files = pkg_files if isinstance(pkg_files, list | tuple) else ("package.json",)
    for name in files:
        if not isinstance(name, str):
            continue
        path = root / name
        if path.suffix == ".json":
            try:
                obj: object = json.loads(path.read_text(encoding="utf-8"))
            except (OSError, json.JSONDecodeError):
                continue
            data = as_str_dict(obj)
            found = get_str(data, "name") if data is not None else None
        else:
            parsed = _parse_toml(path)
            if isinstance(parsed, Err):
                continue
            project = as_str_dict(parsed.value.get("project")) or {}
            found = get_str(project, "name")
        if found:
            return found
    return None


def load_config(
    root: Path,
    *,
    config_path: Path | None = None,
    overrides: Mapping[str, object] | None = None,
    env: Mapping[str, str] | None = None,
) -> Result[ReleaseConfig, ConfigError]:
    """Load, merge and validate the release configuration for ``root``.

    Args:
        root: Directory of the primary repository.
        config_path: Explicit config file; must exist when given.
        overrides: Command line values (highest precedence).
        env: Environment mapping (defaults to ``os.environ``).

    Returns:
        Ok(ReleaseConfig) on success, Err(ConfigError) on failure.
    """
    data: StrDict = {}

    pyproject = root / "pyproject.toml"
    if pyproject.is_file():
        parsed = _parse_toml(pyproject)
        if isinstance(parsed, Err):
            return parsed
        tool = as_str_dict(parsed.value.get("tool")) or {}
        section = as_str_dict(tool.get("relkit"))
        if section is not None:
            data = _deep_merge(data, normalize_keys(section))

    path = config_path if config_path is not None else root / CONFIG_FILE_NAME
    if config_path is not None or path.is_file():
        parsed = _parse_toml(path)
        if isinstance(parsed, Err):
            return parsed
        data = _deep_merge(data, normalize_keys(parsed.value))

    data = _deep_merge(data, _env_overrides(os.environ if env is None else env))
    if overrides:
        data = _deep_merge(data, normalize_keys(overrides))

    if not get_str(data, "name"):
        data["name"] = _manifest_name(root, data.get("pkg_files")) or root.resolve().name

    return ReleaseConfig.from_dict(data)

"""Manifest version bumping.

Supported documents:
- JSON manifests (``package.json`` and friends): top-level ``version``.
- TOML manifests (``pyproject.toml``, ``Cargo.toml``): ``[project].version``,
  then ``[tool.poetry].version``, then ``[package].version``, then a
  top-level ``version``.

JSON keeps its indentation and trailing newline; TOML is edited through
tomlkit so comments and layout are kept.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from pathlib import Path

import tomlkit
from tomlkit.exceptions import TOMLKitError

from relkit.core.result import Err, Ok, Result
from relkit.core.structured import as_str_dict
from relkit.platform.files import atomic_write_text

__all__ = ["BumpError", "bump_manifest", "read_manifest_version"]

_INDENT_RE = re.compile(r"^\{\s*?\n([ \t]+)\S", re.MULTILINE)
_TOML_VERSION_TABLES = (("project",), ("tool", "poetry"), ("package",))


@dataclass(frozen=True, slots=True)
class BumpError:
    path: Path
    reason: str


def _json_indent(text: str) -> str | int:
    match = _INDENT_RE.match(text)
    if match is None:
        return 2
    indent = match.group(1)
    return indent if "\t" in indent else len(indent)


def _bump_json(text: str, version: str) -> str | None:
    try:
        obj: object = json.loads(text)
    except json.JSONDecodeError:
        return None
    data = as_str_dict(obj)
    if data is None:
        return None
    data["version"] = version
    out = json.dumps(data, indent=_json_indent(text), ensure_ascii=False)
    return out + "\n" if text.endswith("\n") else out


def _toml_version_table(doc: tomlkit.TOMLDocument) -> object | None:
    for path in _TOML_VERSION_TABLES:
        table: object = doc
        for key in path:
            if not isinstance(table, dict) or key not in table:
                table = None
                break
            table = table[key]  # pyright: ignore[reportUnknownVariableType]
        if isinstance(table, dict) and "version" in table:
            return table  # pyright: ignore[reportUnknownVariableType]
    if "version" in doc:
        return doc
    return None


def _bump_toml(text: str, version: str) -> str | None:
    try:
        doc = tomlkit.parse(text)
    except TOMLKitError:
        return None
    table = _toml_version_table(doc)
    if table is None:
        return None
    table["version"] = version  # type: ignore[index]
    return tomlkit.dumps(doc)


def _is_toml(path: Path) -> bool:
    return path.suffix == ".toml"


def read_manifest_version(path: Path) -> str | None:
    """Version declared by a manifest, or None if unreadable/absent."""
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        return None

    if _is_toml(path):
        try:
            doc = tomlkit.parse(text)
        except TOMLKitError:
            return None
        table = _toml_version_table(doc)
        value = table.get("version") if isinstance(table, dict) else None  # pyright: ignore[reportUnknownMemberType]
    else:
        try:
            obj: object = json.loads(text)
        except json.JSONDecodeError:
            return None
        data = as_str_dict(obj)
        value = data.get("version") if data is not None else None

    return str(value) if isinstance(value, str) and value.strip() else None


def bump_manifest(path: Path, version: str) -> Result[None, BumpError]:
    """Rewrite the version field of one manifest in place."""
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return Err(BumpError(path=path, reason="file not found"))
    except (OSError, UnicodeDecodeError) as e:
        return Err(BumpError(path=path, reason=str(e)))

    if _is_toml(path):
        updated = _bump_toml(text, version)
    else:
        updated = _bump_json(text, version)
        if updated is None and path.suffix != ".json":
            updated = _bump_toml(text, version)

    if updated is None:
        return Err(BumpError(path=path, reason="not a recognized manifest"))

    try:
        atomic_write_text(path, updated)
    except OSError as e:
        return Err(BumpError(path=path, reason=str(e)))
    return Ok(None)

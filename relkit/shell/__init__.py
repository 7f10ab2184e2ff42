"""Command execution and manifest editing."""

from .manifest import BumpError, bump_manifest, read_manifest_version
from .runner import BUILTIN_MARKER, CommandRunner

__all__ = [
    "BUILTIN_MARKER",
    "BumpError",
    "CommandRunner",
    "bump_manifest",
    "read_manifest_version",
]

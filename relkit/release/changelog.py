"""Changelog collaborator."""

from __future__ import annotations

from relkit.core.result import Ok, Result
from relkit.git.client import GitClient, GitError

__all__ = ["Changelog"]


class Changelog:
    """Builds release notes from commit history through a git client."""

    def __init__(self, git: GitClient) -> None:
        self._git = git

    def create(self, command: str | None, latest_tag: str | None) -> Result[str, GitError]:
        """Run the changelog ``command``; an unset command yields no notes."""
        if not command:
            return Ok("")
        return self._git.get_changelog(command, latest_tag=latest_tag)

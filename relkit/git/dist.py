"""Git client for the distribution repository checkout."""

from __future__ import annotations

import logging
from dataclasses import replace
from pathlib import Path

from relkit.core.config import GitConfig
from relkit.git.client import GitClient
from relkit.output.console import ConsoleProtocol
from relkit.shell.runner import CommandRunner

__all__ = ["DistGitClient"]

logger = logging.getLogger(__name__)


class DistGitClient(GitClient):
    """Client for the cloned distribution repository.

    Differs from the primary client in two places: staging always includes
    untracked files (the build output is new), and tag options are derived
    from the primary release by ``handle_tag_options``.
    """

    def __init__(
        self,
        options: GitConfig,
        *,
        runner: CommandRunner,
        console: ConsoleProtocol,
        cwd: Path | None = None,
        explicit_keys: frozenset[str] = frozenset(),
    ) -> None:
        super().__init__(options, runner=runner, console=console, cwd=cwd)
        self.explicit_keys = explicit_keys

    def stage_dir(self, directory: str = ".") -> bool:
        result = self._git("add", directory, "--all", write=True)
        if result.is_err():
            self._console.warning(f"Could not stage {directory}")
            return False
        return True

    def handle_tag_options(self, primary: GitClient) -> None:
        """Align tagging with the primary release.

        Without an explicit ``tag_name`` the distribution repo reuses the
        primary's resolved tag name. When both passes push to the same
        remote and that tag already exists there, tagging is disabled.
        """
        if "tag_name" not in self.explicit_keys:
            inherited = primary.tag_name or self._runner.render(primary.options.tag_name)
            self.options = replace(self.options, tag_name=inherited)

        if not self.options.tag:
            return

        same_remote = self.remote_url is not None and self.remote_url == primary.remote_url
        tag_name = self._runner.render(self.options.tag_name)
        if same_remote and (primary.tag_exists(tag_name) or self.tag_exists(tag_name)):
            logger.info("tag %s already exists on %s, not tagging the distribution repo", tag_name, self.remote_url)
            self._console.info(f"Tag {tag_name} already exists, skipping tag for distribution repository")
            self.options = replace(self.options, tag=False)

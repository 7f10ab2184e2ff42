"""Remote release collaborators (GitHub via ``gh``, GitLab via ``glab``).

Both clients shell out to the vendor CLI through the Command Runner, so
dry-run echoes the ``release create`` / ``release upload`` calls instead of
running them. Only exit status and stdout are interpreted.
"""

from __future__ import annotations

import logging
import os
import shutil
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Protocol

from relkit.core.config import GitConfig, GitHubConfig, GitLabConfig
from relkit.core.result import Err, Ok, Result
from relkit.git.remote import RepoInfo, parse_repo
from relkit.output.console import ConsoleProtocol
from relkit.release.errors import ReleaseError
from relkit.shell.runner import CommandRunner

__all__ = ["GitHubClient", "GitLabClient", "HostingClient"]

logger = logging.getLogger(__name__)


class HostingClient(Protocol):
    is_released: bool

    def validate(self) -> Result[None, ReleaseError]: ...

    def get_notes(self) -> Result[str | None, ReleaseError]: ...

    def release(
        self,
        *,
        version: str,
        is_pre_release: bool,
        changelog: str | None,
        tag_name: str | None = None,
    ) -> Result[bool, ReleaseError]: ...

    def upload_assets(self) -> Result[bool, ReleaseError]: ...

    def get_release_url(self) -> str | None: ...


class _CliHostingClient(ABC):
    """Shared plumbing of the CLI-driven hosting clients."""

    label = ""
    cli = ""
    install_hint = ""

    def __init__(
        self,
        options: GitHubConfig | GitLabConfig,
        git_options: GitConfig,
        *,
        runner: CommandRunner,
        console: ConsoleProtocol,
        remote_url: str | None,
        cwd: Path | None = None,
    ) -> None:
        self.options = options
        self.git_options = git_options
        self.cwd = cwd or runner.cwd
        self.is_released = False
        self.tag_name: str | None = None
        self.release_url: str | None = None
        self._runner = runner
        self._console = console
        self._remote_url = remote_url

    @property
    def repo(self) -> RepoInfo | None:
        remote = parse_repo(self._remote_url)
        if not self.options.repo:
            return remote
        owner, _, project = self.options.repo.rpartition("/")
        if not owner or not project:
            return None
        host = remote.host if remote is not None else ""
        return RepoInfo(remote=self._remote_url or "", host=host, owner=owner, project=project)

    def validate(self) -> Result[None, ReleaseError]:
        """Check the CLI and a repository slug when releases are enabled."""
        if not self.options.release:
            return Ok(None)
        if shutil.which(self.cli) is None:
            return Err(
                ReleaseError(
                    kind="cli-missing",
                    message=f"{self.cli}: missing",
                    hint=self.install_hint,
                )
            )
        if self.repo is None:
            return Err(
                ReleaseError(
                    kind="invalid-input",
                    message=f"Could not determine the {self.label} repository from {self._remote_url}",
                    hint=f"Set {self.cli_section}.repo to owner/project",
                )
            )
        if not self._runner.dry_run and not os.environ.get(self.options.token_ref):
            status = self._runner.run([self.cli, "auth", "status"], cwd=self.cwd)
            if isinstance(status, Err):
                return Err(
                    ReleaseError(
                        kind="release-failed",
                        message=f"{self.cli} auth required",
                        hint=f"Set {self.options.token_ref} or run: {self.cli} auth login",
                    )
                )
        return Ok(None)

    @property
    def cli_section(self) -> str:
        return self.label.lower()

    def get_notes(self) -> Result[str | None, ReleaseError]:
        """Output of the ``release_notes`` command, if one is configured."""
        if not self.options.release_notes:
            return Ok(None)
        result = self._runner.run(self.options.release_notes, cwd=self.cwd)
        if isinstance(result, Err):
            return Err(
                ReleaseError(
                    kind="release-failed",
                    message="Could not create release notes",
                    hint=result.error.details or None,
                )
            )
        return Ok(result.value)

    def _resolve(self, changelog: str | None, tag_name: str | None) -> Result[tuple[str, str, str], ReleaseError]:
        notes = self.get_notes()
        if isinstance(notes, Err):
            return notes
        tag = tag_name or self._runner.render(self.git_options.tag_name)
        title = self._runner.render(self.options.release_name)
        return Ok((tag, title, notes.value if notes.value is not None else (changelog or "")))

    def _assets(self) -> list[str]:
        found: list[str] = []
        for pattern in self.options.assets:
            found.extend(str(p) for p in sorted(self.cwd.glob(pattern)) if p.is_file())
        return found

    def upload_assets(self) -> Result[bool, ReleaseError]:
        if not self.options.assets:
            return Ok(True)
        files = self._assets()
        if not files:
            self._console.warning(f"No {self.label} assets matched {', '.join(self.options.assets)}")
            return Ok(False)
        tag = self.tag_name or self._runner.render(self.git_options.tag_name)
        result = self._runner.run(self._upload_command(tag, files), write=True, cwd=self.cwd)
        if isinstance(result, Err):
            return Err(
                ReleaseError(
                    kind="upload-failed",
                    message=f"Could not upload assets to {self.label} release {tag}",
                    hint=result.error.details or None,
                )
            )
        return Ok(True)

    def _slug(self) -> str:
        repo = self.repo
        return repo.slug if repo is not None else ""

    @abstractmethod
    def _upload_command(self, tag: str, files: list[str]) -> list[str]:
        """Command that attaches ``files`` to the release tagged ``tag``."""

    def get_release_url(self) -> str | None:
        return self.release_url


class GitHubClient(_CliHostingClient):
    label = "GitHub"
    cli = "gh"
    install_hint = "Install GitHub CLI: https://cli.github.com/"

    options: GitHubConfig

    def release(
        self,
        *,
        version: str,
        is_pre_release: bool,
        changelog: str | None,
        tag_name: str | None = None,
    ) -> Result[bool, ReleaseError]:
        resolved = self._resolve(changelog, tag_name)
        if isinstance(resolved, Err):
            return resolved
        tag, title, notes = resolved.value

        prerelease = self.options.pre_release if self.options.pre_release is not None else is_pre_release
        cmd = ["gh", "release", "create", tag, "--repo", self._slug(), "--title", title, "--notes", notes]
        if self.options.draft:
            cmd.append("--draft")
        if prerelease:
            cmd.append("--prerelease")

        result = self._runner.run(cmd, write=True, cwd=self.cwd)
        if isinstance(result, Err):
            return Err(
                ReleaseError(
                    kind="release-failed",
                    message=f"GitHub release {tag} failed",
                    hint=result.error.details or None,
                )
            )

        self.tag_name = tag
        if result.value is not None:
            self.is_released = True
            self.release_url = result.value.splitlines()[-1] if result.value else self._default_url(tag)
        logger.debug("github release %s (%s): %s", tag, version, self.release_url)
        return Ok(True)

    def _default_url(self, tag: str) -> str | None:
        repo = self.repo
        if repo is None:
            return None
        return f"https://{repo.host or 'github.com'}/{repo.slug}/releases/tag/{tag}"

    def _upload_command(self, tag: str, files: list[str]) -> list[str]:
        return ["gh", "release", "upload", tag, *files, "--repo", self._slug(), "--clobber"]


class GitLabClient(_CliHostingClient):
    label = "GitLab"
    cli = "glab"
    install_hint = "Install GitLab CLI: https://gitlab.com/gitlab-org/cli"

    options: GitLabConfig

    def release(
        self,
        *,
        version: str,
        is_pre_release: bool,
        changelog: str | None,
        tag_name: str | None = None,
    ) -> Result[bool, ReleaseError]:
        resolved = self._resolve(changelog, tag_name)
        if isinstance(resolved, Err):
            return resolved
        tag, title, notes = resolved.value

        cmd = ["glab", "release", "create", tag, "--repo", self._slug(), "--name", title, "--notes", notes]
        result = self._runner.run(cmd, write=True, cwd=self.cwd)
        if isinstance(result, Err):
            return Err(
                ReleaseError(
                    kind="release-failed",
                    message=f"GitLab release {tag} failed",
                    hint=result.error.details or None,
                )
            )

        self.tag_name = tag
        if result.value is not None:
            self.is_released = True
            repo = self.repo
            if repo is not None:
                self.release_url = f"https://{repo.host or 'gitlab.com'}/{repo.slug}/-/releases/{tag}"
        logger.debug("gitlab release %s (%s): %s", tag, version, self.release_url)
        return Ok(True)

    def _upload_command(self, tag: str, files: list[str]) -> list[str]:
        return ["glab", "release", "upload", tag, *files, "--repo", self._slug()]

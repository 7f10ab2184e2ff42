"""Git client for one working directory.

All git commands run through the shared ``CommandRunner`` with an explicit
``cwd``, so dry-run and verbose handling apply uniformly and two clients
never depend on the process working directory.

Queries are re-derived on every call. ``init()`` stores a
``RepositoryState`` snapshot for values that must stay stable during a run
(latest tag, remote URL); mutating operations refresh it.

Usage:
    client = GitClient(config.git, runner=runner, console=console, cwd=root)
    client.init()
    match client.validate():
        case Err(error):
            console.error(error.message)
        case Ok(_):
            client.stage(["package.json"])
"""

from __future__ import annotations

import logging
import os
import shlex
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from relkit.core.config import GitConfig
from relkit.core.result import Err, Ok, Result
from relkit.git.remote import is_url
from relkit.output.console import ConsoleProtocol
from relkit.platform.process import ProcessError
from relkit.shell.runner import CommandRunner

__all__ = [
    "GitClient",
    "GitError",
    "GitErrorKind",
    "RepositoryState",
    "REV_RANGE",
]

logger = logging.getLogger(__name__)

REV_RANGE = "[REV_RANGE]"

_GIT_NETWORK_TIMEOUT_SECONDS = 3 * 60.0

GitErrorKind = Literal[
    "not-a-repo",
    "not-root-dir",
    "no-permission",
    "dirty-working-dir",
    "no-upstream",
    "wrong-branch",
    "commit-failed",
    "tag-failed",
    "push-failed",
    "clone-failed",
    "changelog-failed",
]


@dataclass(frozen=True, slots=True)
class GitError:
    """Error from a git operation.

    Attributes:
        kind: Failure category.
        message: Human readable summary.
        command: The git subcommand involved (may be empty).
        hint: Details from git's stderr, or a suggestion.
    """

    kind: GitErrorKind
    message: str
    command: str = ""
    hint: str | None = None

    def pretty(self) -> str:
        if self.hint:
            return f"{self.message} ({self.hint})"
        return self.message


@dataclass(frozen=True, slots=True)
class RepositoryState:
    current_branch: str | None
    latest_tag: str | None
    remote_url: str | None
    has_upstream_branch: bool
    is_working_dir_clean: bool
    is_git_repo: bool
    is_root_dir: bool


def _failure(kind: GitErrorKind, message: str, command: str, error: ProcessError) -> Err[GitError]:
    return Err(GitError(kind=kind, message=message, command=command, hint=error.details or None))


class GitClient:
    """Git operations on a single working directory.

    Attributes:
        options: Git section of the configuration for this repository.
        cwd: Working directory all commands run in.
        state: Snapshot taken by ``init()`` and refreshed after mutations.
        tag_name: Tag created by ``tag()`` during this run, if any.
        is_committed: Whether ``commit()`` succeeded during this run.
    """

    def __init__(
        self,
        options: GitConfig,
        *,
        runner: CommandRunner,
        console: ConsoleProtocol,
        cwd: Path | None = None,
    ) -> None:
        self.options = options
        self.cwd = (cwd or runner.cwd).resolve()
        self.state: RepositoryState | None = None
        self.tag_name: str | None = None
        self.is_committed = False
        self._runner = runner
        self._console = console

    # ------------------------------------------------------------------
    # low-level helpers
    # ------------------------------------------------------------------

    def _git(self, *args: str, write: bool = False, network: bool = False) -> Result[str | None, ProcessError]:
        if network:
            return self._runner.run(
                ["git", *args], write=write, cwd=self.cwd, timeout=_GIT_NETWORK_TIMEOUT_SECONDS
            )
        return self._runner.run(["git", *args], write=write, cwd=self.cwd)

    def _succeeds(self, *args: str) -> bool:
        return isinstance(self._git(*args), Ok)

    def _read(self, *args: str) -> str | None:
        result = self._git(*args)
        if isinstance(result, Err):
            return None
        return result.value or None

    # ------------------------------------------------------------------
    # queries
    # ------------------------------------------------------------------

    def is_git_repo(self) -> bool:
        return self.cwd.is_dir() and self._succeeds("rev-parse", "--git-dir")

    def is_in_repo_root_dir(self) -> bool:
        if not self.cwd.is_dir():
            return False
        top = self._read("rev-parse", "--show-toplevel")
        return top is not None and Path(top).resolve() == self.cwd

    def get_branch_name(self) -> str | None:
        """Current branch; None when detached or before the first commit."""
        branch = self._read("rev-parse", "--abbrev-ref", "HEAD")
        return None if branch in (None, "HEAD") else branch

    def has_upstream_branch(self) -> bool:
        return self._succeeds("rev-parse", "--abbrev-ref", "--symbolic-full-name", "@{u}")

    def tag_exists(self, name: str) -> bool:
        return self._succeeds("show-ref", "--tags", "--quiet", "--verify", "--", f"refs/tags/{name}")

    def is_working_dir_clean(self) -> bool:
        """No staged or unstaged changes to tracked files.

        A repository without commits is never clean.
        """
        self._git("update-index", "-q", "--refresh")
        return self._succeeds("diff-index", "--quiet", "HEAD", "--")

    def get_latest_tag(self) -> str | None:
        return self._read("describe", "--tags", "--abbrev=0")

    def get_remote_url(self, remote: str | None = None) -> str | None:
        """URL of ``remote`` (default: the configured push target).

        A push target that already is a URL is returned as-is.
        """
        name = remote or self.options.push_repo
        if is_url(name):
            return name
        return self._read("config", "--get", f"remote.{name}.url")

    def status(self) -> str:
        """Short status of tracked files, e.g. ``"M file1\\nA  file2"``."""
        return self._read("status", "--short", "--untracked-files=no") or ""

    def snapshot(self) -> RepositoryState:
        is_repo = self.is_git_repo()
        return RepositoryState(
            current_branch=self.get_branch_name() if is_repo else None,
            latest_tag=self.get_latest_tag() if is_repo else None,
            remote_url=self.get_remote_url() if is_repo else None,
            has_upstream_branch=is_repo and self.has_upstream_branch(),
            is_working_dir_clean=is_repo and self.is_working_dir_clean(),
            is_git_repo=is_repo,
            is_root_dir=is_repo and self.is_in_repo_root_dir(),
        )

    @property
    def latest_tag(self) -> str | None:
        return self.state.latest_tag if self.state else self.get_latest_tag()

    @property
    def remote_url(self) -> str | None:
        return self.state.remote_url if self.state else self.get_remote_url()

    @property
    def is_root_dir(self) -> bool:
        return self.state.is_root_dir if self.state else self.is_in_repo_root_dir()

    def is_same_repo(self, other: GitClient) -> bool:
        return self.remote_url == other.remote_url and self.cwd == other.cwd

    # ------------------------------------------------------------------
    # lifecycle
    # ------------------------------------------------------------------

    def init(self) -> RepositoryState:
        """Snapshot the repository; call once before any mutation."""
        self.state = self.snapshot()
        logger.debug("git state (%s): %s", self.cwd, self.state)
        return self.state

    def refresh(self) -> RepositoryState:
        self.state = self.snapshot()
        return self.state

    def validate(self) -> Result[None, GitError]:
        """Check the configured preconditions before anything is changed."""
        if not self.is_git_repo():
            return Err(GitError(kind="not-a-repo", message=f"Not a git repository: {self.cwd}"))

        if self.options.require_root_dir and not self.is_in_repo_root_dir():
            return Err(
                GitError(
                    kind="not-root-dir",
                    message=f"Not in the root directory of the repository: {self.cwd}",
                )
            )

        if not os.access(self.cwd, os.W_OK):
            return Err(
                GitError(kind="no-permission", message=f"Working directory is not writable: {self.cwd}")
            )

        if self.options.require_clean_working_dir and not self.is_working_dir_clean():
            return Err(
                GitError(
                    kind="dirty-working-dir",
                    message="Working dir must be clean.",
                    hint="Please stage and commit your changes.",
                )
            )

        if (
            self.options.push
            and self.options.require_upstream
            and not is_url(self.options.push_repo)
            and not self.has_upstream_branch()
        ):
            return Err(
                GitError(
                    kind="no-upstream",
                    message="No upstream configured for current branch.",
                    hint="Please set an upstream branch, or disable git.require_upstream.",
                )
            )

        required = self.options.require_branch
        if required is not None:
            branch = self.get_branch_name()
            if branch != required:
                return Err(
                    GitError(
                        kind="wrong-branch",
                        message=f"Must be on branch {required} (currently on {branch or 'no branch'}).",
                    )
                )

        return Ok(None)

    # ------------------------------------------------------------------
    # recoverable mutations
    # ------------------------------------------------------------------

    def stage(self, files: str | Sequence[str] | None) -> bool:
        """Add paths to the index; failures are reported, not fatal."""
        names = _as_list(files)
        if not names:
            return True
        result = self._git("add", "--", *names, write=True)
        if isinstance(result, Err):
            self._console.warning(f"Could not stage {', '.join(names)}")
            return False
        return True

    def stage_dir(self, directory: str = ".") -> bool:
        mode = "--all" if self.options.add_untracked_files else "--update"
        result = self._git("add", directory, mode, write=True)
        if isinstance(result, Err):
            self._console.warning(f"Could not stage {directory}")
            return False
        return True

    def reset(self, files: str | Sequence[str] | None) -> bool:
        """Discard local modifications; failures are reported, not fatal."""
        names = _as_list(files)
        if not names:
            return True
        result = self._git("checkout", "HEAD", "--", *names, write=True)
        if isinstance(result, Err):
            self._console.warning(f"Could not reset {', '.join(names)}")
            return False
        return True

    # ------------------------------------------------------------------
    # fatal mutations
    # ------------------------------------------------------------------

    def _has_staged_changes(self) -> bool:
        # exit 1 means differences
        return not self._succeeds("diff", "--cached", "--quiet")

    def commit(self, message: str | None = None) -> Result[None, GitError]:
        msg = self._runner.render(message or self.options.commit_message)
        args = ["commit", "--message", msg, *shlex.split(self.options.commit_args)]

        if self.options.allow_empty_commit:
            args.append("--allow-empty")
        elif not self._runner.dry_run and not self._has_staged_changes():
            return Err(
                GitError(
                    kind="commit-failed",
                    message="Nothing to commit.",
                    command="commit",
                    hint="Stage changes first, or enable git.allow_empty_commit.",
                )
            )

        result = self._git(*args, write=True)
        if isinstance(result, Err):
            return _failure("commit-failed", "Git commit failed.", "commit", result.error)
        self.is_committed = True
        self.refresh()
        return Ok(None)

    def tag(self, name: str | None = None, annotation: str | None = None) -> Result[str, GitError]:
        """Create an annotated tag and return its resolved name."""
        tag_name = self._runner.render(name or self.options.tag_name)
        message = self._runner.render(annotation or self.options.tag_annotation)
        args = ["tag", "--annotate", "--message", message, *shlex.split(self.options.tag_args), tag_name]

        result = self._git(*args, write=True)
        if isinstance(result, Err):
            return _failure("tag-failed", f"Could not create tag {tag_name}.", "tag", result.error)
        self.tag_name = tag_name
        self.refresh()
        return Ok(tag_name)

    def push(self) -> Result[str | None, GitError]:
        """Push commits and annotated tags.

        A URL target is pushed to directly. A named remote without an
        upstream gets ``-u <remote> <branch>`` once; later pushes find the
        upstream and use plain ``--follow-tags``.
        """
        target = self.options.push_repo
        args = ["push", "--follow-tags", *shlex.split(self.options.push_args)]

        if is_url(target):
            args.append(target)
        elif not self.has_upstream_branch() and (branch := self.get_branch_name()):
            args.extend(["-u", target, branch])
        else:
            args.append(target)

        result = self._git(*args, write=True, network=True)
        if isinstance(result, Err):
            return _failure("push-failed", f"Git push to {target} failed.", "push", result.error)
        self.refresh()
        return Ok(result.value)

    def clone(self, repo_url: str, target_dir: str | Path) -> Result[Path, GitError]:
        target = self.cwd / target_dir
        result = self._runner.run(
            ["git", "clone", repo_url, str(target)],
            write=True,
            cwd=self.cwd,
            timeout=_GIT_NETWORK_TIMEOUT_SECONDS,
        )
        if isinstance(result, Err):
            return _failure("clone-failed", f"Could not clone {repo_url}.", "clone", result.error)
        return Ok(target)

    def commit_messages(self, since: str | None) -> Result[list[str], GitError]:
        """Full commit messages after ``since`` (whole history if None), newest first."""
        args = ["log", "--format=%B%x00"]
        if since:
            args.append(f"{since}..HEAD")
        result = self._git(*args)
        if isinstance(result, Err):
            return _failure("changelog-failed", "Could not read commit history", "log", result.error)
        return Ok([m.strip() for m in (result.value or "").split("\0") if m.strip()])

    def get_changelog(self, command: str, *, latest_tag: str | None = None) -> Result[str, GitError]:
        """Run a changelog command; ``[REV_RANGE]`` becomes ``<tag>..HEAD``.

        Without a tag the placeholder is dropped and the whole history is
        used.
        """
        if REV_RANGE in command:
            tag = latest_tag if latest_tag is not None else self.latest_tag
            command = command.replace(REV_RANGE, f"{tag}..HEAD" if tag else "")

        result = self._runner.run(command, cwd=self.cwd)
        if isinstance(result, Err):
            return _failure("changelog-failed", "Could not create changelog", "log", result.error)
        return Ok(result.value or "")


def _as_list(files: str | Sequence[str] | None) -> list[str]:
    if not files:
        return []
    if isinstance(files, str):
        return [files]
    return [f for f in files if f]

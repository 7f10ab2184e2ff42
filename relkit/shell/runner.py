"""Command runner shared by the git client, hooks and collaborators.

The runner owns an explicit directory stack instead of changing the
process working directory: two repositories (primary and distribution) can
be driven from one process without racing on ``os.chdir``.

Commands:
- an argv list runs as-is;
- a string is a template (``${version}``, ``${git.pushRepo}``) rendered
  against the current ``ReleaseContext`` and run by the shell;
- a string starting with ``!`` is a builtin run in-process
  (``pwd``, ``pushd``, ``popd``, ``cp``, ``mkdir``, ``rm``).

In dry-run mode commands flagged ``write=True`` (and the mutating
builtins) are echoed but not executed.
"""

from __future__ import annotations

import logging
import shlex
import shutil
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from pathlib import Path

from relkit.core.context import ReleaseContext
from relkit.core.result import Err, Ok, Result
from relkit.output.console import ConsoleProtocol, Style
from relkit.platform.process import ProcessError
from relkit.platform.process import run as run_process
from relkit.shell.manifest import bump_manifest

__all__ = ["CommandRunner", "BUILTIN_MARKER"]

logger = logging.getLogger(__name__)

BUILTIN_MARKER = "!"
_WRITE_BUILTINS = frozenset({"cp", "mkdir", "rm"})
_READ_BUILTINS = frozenset({"pwd", "pushd", "popd"})

_COMMAND_TIMEOUT_SECONDS = 10 * 60.0


def _builtin_error(command: str, message: str) -> Err[ProcessError]:
    return Err(ProcessError(command=(command,), returncode=1, stdout="", stderr=message))


class CommandRunner:
    """Runs external commands for one release.

    Attributes:
        dry_run: Echo mutating commands instead of running them.
        verbose: Echo every command and its output.
    """

    def __init__(
        self,
        *,
        cwd: Path,
        console: ConsoleProtocol,
        dry_run: bool = False,
        verbose: bool = False,
        context: ReleaseContext | None = None,
    ) -> None:
        self.dry_run = dry_run
        self.verbose = verbose
        self._console = console
        self._context = context
        self._stack: list[Path] = [cwd.resolve()]

    @property
    def cwd(self) -> Path:
        return self._stack[-1]

    @property
    def context(self) -> ReleaseContext | None:
        return self._context

    def set_context(self, context: ReleaseContext) -> None:
        self._context = context

    def render(self, template: str) -> str:
        if self._context is None:
            return template
        return self._context.render(template)

    # ------------------------------------------------------------------
    # execution
    # ------------------------------------------------------------------

    def run(
        self,
        command: str | Sequence[str],
        *,
        write: bool = False,
        cwd: Path | None = None,
        timeout: float | None = _COMMAND_TIMEOUT_SECONDS,
    ) -> Result[str | None, ProcessError]:
        """Run a command and return its trimmed stdout.

        Returns:
            Ok(stdout), Ok(None) for an empty command or a skipped dry-run
            write, Err(ProcessError) on failure.
        """
        if isinstance(command, str):
            if not command.strip():
                return Ok(None)
            resolved: str | list[str] = self.render(command).strip()
        else:
            resolved = list(command)

        display = resolved if isinstance(resolved, str) else shlex.join(resolved)

        if isinstance(resolved, str) and resolved.startswith(BUILTIN_MARKER):
            return self._run_builtin(resolved[len(BUILTIN_MARKER) :].strip(), cwd=cwd)

        skipped = self.dry_run and write
        self._echo(display, skipped=skipped)
        if skipped:
            return Ok(None)

        result = run_process(resolved, cwd=cwd or self.cwd, timeout=timeout)
        if isinstance(result, Err):
            logger.debug("command failed: %s (%s)", display, result.error.details)
            return result

        output = result.value.strip()
        if self.verbose and output:
            self._console.print(output, Style.DIM)
        return Ok(output)

    def _echo(self, display: str, *, skipped: bool) -> None:
        logger.debug("$ %s", display)
        if skipped:
            self._console.print(f"$ {display} (not executed in dry run)", Style.DIM)
        elif self.verbose or self.dry_run:
            self._console.print(f"$ {display}", Style.DIM)

    # ------------------------------------------------------------------
    # builtins
    # ------------------------------------------------------------------

    def _run_builtin(self, line: str, *, cwd: Path | None) -> Result[str | None, ProcessError]:
        try:
            argv = shlex.split(line)
        except ValueError as e:
            return _builtin_error(line, str(e))
        if not argv:
            return Ok(None)

        name, args = argv[0], [a for a in argv[1:] if not a.startswith("-")]
        if name not in _WRITE_BUILTINS | _READ_BUILTINS:
            return _builtin_error(line, f"unknown builtin: {name}")

        skipped = self.dry_run and name in _WRITE_BUILTINS
        self._echo(line, skipped=skipped)
        if skipped:
            return Ok(None)

        base = cwd or self.cwd
        try:
            match name:
                case "pwd":
                    output: str | None = str(base)
                case "pushd":
                    output = str(self.pushd(base / args[0]) if args else self.cwd)
                case "popd":
                    output = str(self.popd())
                case "mkdir":
                    for arg in args:
                        (base / arg).mkdir(parents=True, exist_ok=True)
                    output = None
                case "rm":
                    for arg in args:
                        _remove(base / arg)
                    output = None
                case _:
                    if len(args) < 2:
                        return _builtin_error(line, "cp needs a source and a target")
                    _copy_paths([base / a for a in args[:-1]], base / args[-1])
                    output = None
        except (OSError, ValueError) as e:
            logger.debug("builtin failed: %s (%s)", line, e)
            return _builtin_error(line, str(e))

        if self.verbose and output:
            self._console.print(output, Style.DIM)
        return Ok(output)

    # ------------------------------------------------------------------
    # directory stack
    # ------------------------------------------------------------------

    def pushd(self, directory: Path) -> Path:
        """Enter ``directory`` (relative to the current one).

        Raises:
            NotADirectoryError: If the target does not exist.
        """
        target = (self.cwd / directory).resolve()
        if not target.is_dir():
            raise NotADirectoryError(f"not a directory: {target}")
        self._stack.append(target)
        return target

    def popd(self) -> Path:
        """Leave the current directory; the base directory is never popped.

        Raises:
            ValueError: If the stack only holds the base directory.
        """
        if len(self._stack) == 1:
            raise ValueError("directory stack empty")
        self._stack.pop()
        return self.cwd

    @contextmanager
    def scoped(self, directory: Path) -> Iterator[Path]:
        """Run the block with ``directory`` as the current directory."""
        target = self.pushd(directory)
        try:
            yield target
        finally:
            self.popd()

    # ------------------------------------------------------------------
    # file operations
    # ------------------------------------------------------------------

    def copy(
        self,
        patterns: Sequence[str],
        target: Path,
        *,
        cwd: Path | None = None,
    ) -> Result[list[Path], ProcessError]:
        """Copy files matching glob ``patterns`` (relative paths kept)."""
        base = (self.cwd / cwd) if cwd is not None else self.cwd
        dest = self.cwd / target
        display = f"cp {' '.join(patterns)} {dest}"
        self._echo(display, skipped=self.dry_run)
        if self.dry_run:
            return Ok([])

        copied: list[Path] = []
        try:
            for pattern in patterns:
                for source in sorted(base.glob(pattern)):
                    if not source.is_file():
                        continue
                    out = dest / source.relative_to(base)
                    out.parent.mkdir(parents=True, exist_ok=True)
                    shutil.copy2(source, out)
                    copied.append(out)
        except OSError as e:
            return _builtin_error(display, str(e))
        return Ok(copied)

    def bump(self, files: str | Sequence[str] | None, version: str) -> list[Path]:
        """Set ``version`` in each manifest; unbumpable files are skipped.

        Returns:
            The manifests that were rewritten.
        """
        if not files:
            return []
        names = [files] if isinstance(files, str) else list(files)

        bumped: list[Path] = []
        for name in names:
            path = self.cwd / name
            if self.dry_run:
                self._echo(f"bump {name} to {version}", skipped=True)
                continue
            result = bump_manifest(path, version)
            if isinstance(result, Err):
                logger.debug("bump failed: %s (%s)", path, result.error.reason)
                self._console.warning(f"Could not bump {name}")
                continue
            bumped.append(path)
        return bumped


def _remove(path: Path) -> None:
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    else:
        path.unlink(missing_ok=True)


def _copy_paths(sources: list[Path], target: Path) -> None:
    for source in sources:
        if source.is_dir():
            shutil.copytree(source, target / source.name, dirs_exist_ok=True)
        else:
            dest = target / source.name if target.is_dir() else target
            shutil.copy2(source, dest)

from __future__ import annotations

import os
from pathlib import Path

import typer

from relkit import __version__
from relkit.core.config import ConfigError, load_config
from relkit.core.errors import ErrorCode
from relkit.core.result import Err
from relkit.git.client import GitError
from relkit.output.console import ConsoleProtocol, RichConsole
from relkit.output.logging import configure_logging
from relkit.release.errors import ReleaseError
from relkit.release.pipeline import PipelineError, ReleasePipeline
from relkit.release.prompt import Prompter
from relkit.version.resolver import VersionError

app = typer.Typer(
    add_completion=False,
    no_args_is_help=False,
    rich_markup_mode="rich",
)


def exit_code_for(error: PipelineError) -> ErrorCode:
    match error:
        case ConfigError():
            return ErrorCode.CONFIG_ERROR
        case VersionError():
            return ErrorCode.VERSION_ERROR
        case GitError():
            return ErrorCode.GIT_ERROR
        case ReleaseError(kind="aborted" | "invalid-input"):
            return ErrorCode.USER_ERROR
        case _:
            return ErrorCode.REMOTE_ERROR


def build_overrides(
    *,
    increment: str | None,
    dry_run: bool,
    verbose: bool,
    ci: bool | None,
    pre_release: bool,
    pre_release_id: str | None,
    use: str | None,
    no_commit: bool,
    no_tag: bool,
    no_push: bool,
    no_publish: bool,
) -> dict[str, object]:
    """Config overrides from command line flags; unset flags are omitted."""
    overrides: dict[str, object] = {}
    git: dict[str, object] = {}
    if increment:
        overrides["increment"] = increment
    if dry_run:
        overrides["dry_run"] = True
    if verbose:
        overrides["verbose"] = True
    if ci is not None:
        overrides["interactive"] = not ci
    if pre_release or pre_release_id:
        overrides["pre_release"] = True
    if pre_release_id:
        overrides["pre_release_id"] = pre_release_id
    if use:
        overrides["use"] = use
    if no_commit:
        git["commit"] = False
    if no_tag:
        git["tag"] = False
    if no_push:
        git["push"] = False
    if git:
        overrides["git"] = git
    if no_publish:
        overrides["npm"] = {"publish": False}
    return overrides


def run_release(
    root: Path,
    overrides: dict[str, object],
    *,
    console: ConsoleProtocol,
    config_path: Path | None = None,
    prompter: Prompter | None = None,
    env: dict[str, str] | None = None,
) -> ErrorCode:
    """Load config for ``root`` and run the pipeline; returns the exit code."""
    config = load_config(root, config_path=config_path, overrides=overrides, env=env)
    if isinstance(config, Err):
        where = f" ({config.error.path})" if config.error.path else ""
        console.error(f"{config.error.message}{where}")
        return ErrorCode.CONFIG_ERROR

    pipeline = ReleasePipeline(config.value, console=console, root=root, prompter=prompter)
    result = pipeline.run()
    if isinstance(result, Err):
        return exit_code_for(result.error)
    return ErrorCode.OK


@app.command()
def release(
    increment: str | None = typer.Argument(
        None,
        help="major, minor, patch, pre*, conventional[:preset] or an explicit version",
    ),
    dry_run: bool = typer.Option(False, "--dry-run", "-d", help="Show what would be done without changing anything."),
    verbose: bool = typer.Option(False, "--verbose", "-V", help="Echo commands and their output."),
    debug: bool = typer.Option(False, "--debug", help="Show diagnostic logs."),
    ci: bool | None = typer.Option(None, "--ci/--no-ci", help="Run without prompts (default: from CI env)."),
    pre_release: bool = typer.Option(False, "--pre-release", help="Release a prerelease version."),
    pre_release_id: str | None = typer.Option(None, "--pre-release-id", help="Prerelease identifier (alpha, beta, rc)."),
    use: str | None = typer.Option(None, "--use", help="Latest version source: git.tag or pkg.version."),
    config: Path | None = typer.Option(None, "--config", "-c", help="Config file (default: .relkit.toml)."),
    no_commit: bool = typer.Option(False, "--no-commit", help="Do not commit."),
    no_tag: bool = typer.Option(False, "--no-tag", help="Do not tag."),
    no_push: bool = typer.Option(False, "--no-push", help="Do not push."),
    no_publish: bool = typer.Option(False, "--no-publish", help="Do not publish to npm."),
    version: bool = typer.Option(False, "--version", help="Show version and exit."),
) -> None:
    """Release the repository in the current directory."""
    if version:
        typer.echo(__version__)
        raise typer.Exit(code=0)

    configure_logging(verbose=verbose, debug=debug)
    overrides = build_overrides(
        increment=increment,
        dry_run=dry_run,
        verbose=verbose,
        ci=ci,
        pre_release=pre_release,
        pre_release_id=pre_release_id,
        use=use,
        no_commit=no_commit,
        no_tag=no_tag,
        no_push=no_push,
        no_publish=no_publish,
    )

    try:
        root = Path(os.getcwd()).resolve()
    except OSError as e:
        typer.echo(f"error: invalid working directory: {e}", err=True)
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))

    code = run_release(root, overrides, console=RichConsole(), config_path=config)
    raise typer.Exit(code=int(code))


def main() -> None:
    app()

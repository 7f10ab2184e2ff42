"""Tests for the relkit command line."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from relkit import __version__
from relkit.cli.app import app, build_overrides, exit_code_for, run_release
from relkit.core.config import ConfigError
from relkit.core.errors import ErrorCode
from relkit.git.client import GitError
from relkit.output.console import MockConsole
from relkit.release.errors import ReleaseError
from relkit.test.gitrepo import commit_file, git
from relkit.version.resolver import VersionError

runner = CliRunner()


def overrides(**flags: object) -> dict[str, object]:
    defaults: dict[str, object] = {
        "increment": None,
        "dry_run": False,
        "verbose": False,
        "ci": None,
        "pre_release": False,
        "pre_release_id": None,
        "use": None,
        "no_commit": False,
        "no_tag": False,
        "no_push": False,
        "no_publish": False,
    }
    defaults.update(flags)
    return build_overrides(**defaults)  # type: ignore[arg-type]


class TestExitCodes:
    def test_mapping(self) -> None:
        assert exit_code_for(ConfigError("bad")) == ErrorCode.CONFIG_ERROR
        assert exit_code_for(VersionError(kind="invalid", message="x")) == ErrorCode.VERSION_ERROR
        assert exit_code_for(GitError(kind="push-failed", message="x")) == ErrorCode.GIT_ERROR
        assert exit_code_for(ReleaseError(kind="aborted", message="x")) == ErrorCode.USER_ERROR
        assert exit_code_for(ReleaseError(kind="publish-failed", message="x")) == ErrorCode.REMOTE_ERROR

    def test_str(self) -> None:
        assert str(ErrorCode.GIT_ERROR) == "git error"
        assert ErrorCode.OK.is_success


class TestBuildOverrides:
    def test_empty(self) -> None:
        assert overrides() == {}

    def test_flags(self) -> None:
        result = overrides(increment="minor", dry_run=True, ci=True, no_tag=True, no_push=True, no_publish=True)
        assert result == {
            "increment": "minor",
            "dry_run": True,
            "interactive": False,
            "git": {"tag": False, "push": False},
            "npm": {"publish": False},
        }

    def test_pre_release_id_implies_pre_release(self) -> None:
        assert overrides(pre_release_id="beta") == {"pre_release": True, "pre_release_id": "beta"}

    def test_no_ci(self) -> None:
        assert overrides(ci=False) == {"interactive": True}


class TestRunRelease:
    def test_release(self, repo: Path, remote: Path, console: MockConsole) -> None:
        commit_file(repo, "package.json", '{"name": "demo", "version": "0.1.0"}\n', "init")

        code = run_release(repo, overrides(increment="minor", ci=True), console=console, env={})

        assert code == ErrorCode.OK
        assert json.loads((repo / "package.json").read_text())["version"] == "0.2.0"
        assert "v0.2.0" in git(remote, "tag").split()
        assert console.find("Let's release demo (0.1.0...0.2.0)")

    def test_git_error_code(self, repo: Path, console: MockConsole) -> None:
        code = run_release(repo, overrides(increment="minor", ci=True), console=console, env={})
        assert code == ErrorCode.GIT_ERROR

    def test_config_error(self, tmp_path: Path, console: MockConsole) -> None:
        (tmp_path / ".relkit.toml").write_text("[git]\npussh = true\n")

        code = run_release(tmp_path, overrides(ci=True), console=console, env={})

        assert code == ErrorCode.CONFIG_ERROR
        assert console.find("unknown option: git.pussh")


class TestCommand:
    def test_version(self) -> None:
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.stdout

    def test_invalid_use(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.chdir(tmp_path)
        result = runner.invoke(app, ["patch", "--ci", "--use", "changelog"])
        assert result.exit_code == int(ErrorCode.CONFIG_ERROR)

"""Tests for the hosting (gh/glab) and registry (npm) collaborators."""

from __future__ import annotations

import json
import subprocess
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from relkit.core.config import GitConfig, GitHubConfig, GitLabConfig, NpmConfig, ReleaseConfig
from relkit.core.context import ReleaseContext
from relkit.core.result import Err, Ok
from relkit.output.console import MockConsole
from relkit.release.hosting import GitHubClient, GitLabClient, _CliHostingClient
from relkit.release.registry import NpmClient
from relkit.shell.runner import CommandRunner

REMOTE = "git@github.com:owner/project.git"


def make_completed_process(
    returncode: int = 0, stdout: str = "", stderr: str = ""
) -> subprocess.CompletedProcess[str]:
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout, stderr=stderr)


def make_runner(cwd: Path, console: MockConsole, *, dry_run: bool = False) -> CommandRunner:
    context = ReleaseContext(ReleaseConfig(name="demo")).with_runtime(version="1.2.4")
    return CommandRunner(cwd=cwd, console=console, dry_run=dry_run, context=context)


def github(tmp_path: Path, console: MockConsole, *, dry_run: bool = False, **options: object) -> GitHubClient:
    return GitHubClient(
        GitHubConfig(release=True, **options),  # type: ignore[arg-type]
        GitConfig(),
        runner=make_runner(tmp_path, console, dry_run=dry_run),
        console=console,
        remote_url=REMOTE,
    )


# =============================================================================
# GitHub
# =============================================================================


class TestGitHubClient:
    """Tests for GitHubClient."""

    @patch("shutil.which")
    def test_validate_missing_cli(self, mock_which: MagicMock, tmp_path: Path, console: MockConsole) -> None:
        mock_which.return_value = None

        result = github(tmp_path, console).validate()

        assert isinstance(result, Err)
        assert result.error.kind == "cli-missing"

    def test_validate_disabled(self, tmp_path: Path, console: MockConsole) -> None:
        client = GitHubClient(
            GitHubConfig(),
            GitConfig(),
            runner=make_runner(tmp_path, console),
            console=console,
            remote_url=None,
        )
        assert client.validate() == Ok(None)

    @patch("subprocess.run")
    @patch("shutil.which")
    def test_validate_checks_auth(
        self,
        mock_which: MagicMock,
        mock_run: MagicMock,
        tmp_path: Path,
        console: MockConsole,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.delenv("GITHUB_TOKEN", raising=False)
        mock_which.return_value = "/usr/bin/gh"
        mock_run.return_value = make_completed_process(returncode=1, stderr="not logged in")

        result = github(tmp_path, console).validate()

        assert isinstance(result, Err)
        assert "auth" in result.error.message
        assert mock_run.call_args.args[0] == ["gh", "auth", "status"]

    @patch("subprocess.run")
    @patch("shutil.which")
    def test_validate_token_skips_auth(
        self,
        mock_which: MagicMock,
        mock_run: MagicMock,
        tmp_path: Path,
        console: MockConsole,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.setenv("GITHUB_TOKEN", "secret")
        mock_which.return_value = "/usr/bin/gh"

        assert github(tmp_path, console).validate() == Ok(None)
        mock_run.assert_not_called()

    def test_repo_override(self, tmp_path: Path, console: MockConsole) -> None:
        client = github(tmp_path, console, repo="other/thing")
        assert client.repo is not None
        assert client.repo.slug == "other/thing"
        assert client.repo.host == "github.com"

    @patch("subprocess.run")
    def test_release(self, mock_run: MagicMock, tmp_path: Path, console: MockConsole) -> None:
        mock_run.return_value = make_completed_process(
            stdout="https://github.com/owner/project/releases/tag/v1.2.4\n"
        )
        client = github(tmp_path, console)

        result = client.release(version="1.2.4", is_pre_release=True, changelog="* fix (abc)")

        assert result == Ok(True)
        cmd = mock_run.call_args.args[0]
        assert cmd[:4] == ["gh", "release", "create", "v1.2.4"]
        assert cmd[cmd.index("--repo") + 1] == "owner/project"
        assert cmd[cmd.index("--title") + 1] == "Release 1.2.4"
        assert cmd[cmd.index("--notes") + 1] == "* fix (abc)"
        assert "--prerelease" in cmd
        assert client.is_released is True
        assert client.get_release_url() == "https://github.com/owner/project/releases/tag/v1.2.4"

    @patch("subprocess.run")
    def test_release_notes_command(self, mock_run: MagicMock, tmp_path: Path, console: MockConsole) -> None:
        mock_run.side_effect = [
            make_completed_process(stdout="custom notes\n"),
            make_completed_process(stdout="https://example.com/r\n"),
        ]
        client = github(tmp_path, console, release_notes="echo custom notes", pre_release=False)

        client.release(version="1.2.4", is_pre_release=True, changelog="ignored")

        cmd = mock_run.call_args.args[0]
        assert cmd[cmd.index("--notes") + 1] == "custom notes"
        assert "--prerelease" not in cmd

    @patch("subprocess.run")
    def test_release_failure(self, mock_run: MagicMock, tmp_path: Path, console: MockConsole) -> None:
        mock_run.return_value = make_completed_process(returncode=1, stderr="HTTP 422")

        result = github(tmp_path, console).release(version="1.2.4", is_pre_release=False, changelog="")

        assert isinstance(result, Err)
        assert result.error.kind == "release-failed"
        assert result.error.hint == "HTTP 422"

    def test_dry_run_does_not_release(self, tmp_path: Path, console: MockConsole) -> None:
        client = github(tmp_path, console, dry_run=True)

        assert client.release(version="1.2.4", is_pre_release=False, changelog="") == Ok(True)

        assert client.is_released is False
        assert console.find("gh release create v1.2.4")

    @patch("subprocess.run")
    def test_upload_assets(self, mock_run: MagicMock, tmp_path: Path, console: MockConsole) -> None:
        (tmp_path / "dist").mkdir()
        (tmp_path / "dist" / "app.zip").write_text("zip")
        mock_run.return_value = make_completed_process()

        result = github(tmp_path, console, assets=("dist/*.zip",)).upload_assets()

        assert result == Ok(True)
        cmd = mock_run.call_args.args[0]
        assert cmd[:4] == ["gh", "release", "upload", "v1.2.4"]
        assert str(tmp_path.resolve() / "dist" / "app.zip") in cmd

    def test_upload_no_match_warns(self, tmp_path: Path, console: MockConsole) -> None:
        result = github(tmp_path, console, assets=("*.zip",)).upload_assets()
        assert result == Ok(False)
        assert console.has_warning()


class TestCliHostingClient:
    def test_base_requires_upload_command(self, tmp_path: Path, console: MockConsole) -> None:
        with pytest.raises(TypeError):
            _CliHostingClient(  # type: ignore[abstract]
                GitHubConfig(),
                GitConfig(),
                runner=make_runner(tmp_path, console),
                console=console,
                remote_url=REMOTE,
            )


# =============================================================================
# GitLab
# =============================================================================


class TestGitLabClient:
    """Tests for GitLabClient."""

    @patch("subprocess.run")
    def test_release(self, mock_run: MagicMock, tmp_path: Path, console: MockConsole) -> None:
        mock_run.return_value = make_completed_process(stdout="created")
        client = GitLabClient(
            GitLabConfig(release=True),
            GitConfig(tag_name="release-${version}"),
            runner=make_runner(tmp_path, console),
            console=console,
            remote_url="https://gitlab.example.com/group/project.git",
        )

        assert client.release(version="1.2.4", is_pre_release=False, changelog="notes") == Ok(True)

        cmd = mock_run.call_args.args[0]
        assert cmd[:4] == ["glab", "release", "create", "release-1.2.4"]
        assert cmd[cmd.index("--name") + 1] == "Release 1.2.4"
        assert client.get_release_url() == "https://gitlab.example.com/group/project/-/releases/release-1.2.4"


# =============================================================================
# npm
# =============================================================================


def write_package(path: Path, **fields: object) -> None:
    path.mkdir(parents=True, exist_ok=True)
    (path / "package.json").write_text(json.dumps({"name": "demo", "version": "1.2.3", **fields}))


class TestNpmClient:
    """Tests for NpmClient."""

    def test_dist_tag(self, tmp_path: Path, console: MockConsole) -> None:
        client = NpmClient(NpmConfig(publish=True), runner=make_runner(tmp_path, console), console=console)
        assert client.dist_tag("1.2.4", False) == "latest"
        assert client.dist_tag("2.0.0-beta.1", True) == "beta"
        assert client.dist_tag("2.0.0-0", True) == "latest"

    def test_private_package_skipped(self, tmp_path: Path, console: MockConsole) -> None:
        write_package(tmp_path, private=True)
        client = NpmClient(NpmConfig(publish=True), runner=make_runner(tmp_path, console), console=console)

        assert client.enabled is False
        assert client.publish(version="1.2.4", is_pre_release=False) == Ok(False)
        assert console.find("private package")

    @patch("subprocess.run")
    def test_publish(self, mock_run: MagicMock, tmp_path: Path, console: MockConsole) -> None:
        write_package(tmp_path)
        mock_run.return_value = make_completed_process(stdout="+ demo@1.2.4")
        client = NpmClient(
            NpmConfig(publish=True, access="public"), runner=make_runner(tmp_path, console), console=console
        )

        assert client.publish(version="1.2.4", is_pre_release=False) == Ok(True)

        assert mock_run.call_args.args[0] == ["npm", "publish", ".", "--tag", "latest", "--access", "public"]
        assert client.is_published is True
        assert client.get_package_url() == "https://www.npmjs.com/package/demo"

    @patch("subprocess.run")
    def test_otp_prompt_retries(self, mock_run: MagicMock, tmp_path: Path, console: MockConsole) -> None:
        write_package(tmp_path)
        mock_run.side_effect = [
            make_completed_process(returncode=1, stderr="npm ERR! code EOTP"),
            make_completed_process(stdout="+ demo@1.2.4"),
        ]
        client = NpmClient(NpmConfig(publish=True), runner=make_runner(tmp_path, console), console=console)

        result = client.publish(version="1.2.4", is_pre_release=False, otp_prompt=lambda task: task("123456"))

        assert result == Ok(True)
        assert mock_run.call_args.args[0][-2:] == ["--otp", "123456"]

    @patch("subprocess.run")
    def test_publish_failure(self, mock_run: MagicMock, tmp_path: Path, console: MockConsole) -> None:
        write_package(tmp_path)
        mock_run.return_value = make_completed_process(returncode=1, stderr="403 Forbidden")
        client = NpmClient(NpmConfig(publish=True), runner=make_runner(tmp_path, console), console=console)

        result = client.publish(version="1.2.4", is_pre_release=False)

        assert isinstance(result, Err)
        assert result.error.kind == "publish-failed"

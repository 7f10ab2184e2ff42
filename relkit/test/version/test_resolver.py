"""Tests for version/resolver.py and version/recommend.py."""

from __future__ import annotations

from pathlib import Path

from relkit.core.result import Err, Ok, Result
from relkit.output.console import MockConsole
from relkit.test.gitrepo import commit_file, git, make_client
from relkit.version.recommend import RecommendationEngine, classify_commit, parse_recommendation
from relkit.version.resolver import VersionResolver, is_recommendation


class FakeHistory:
    def __init__(self, messages: list[str]) -> None:
        self.messages = messages
        self.since: list[str | None] = []

    def commit_messages(self, since: str | None) -> Result[list[str], object]:
        self.since.append(since)
        return Ok(self.messages)


def resolver_at(version: str | None, *, pre_release_id: str | None = None) -> VersionResolver:
    resolver = VersionResolver(pre_release_id=pre_release_id)
    resolver.set_latest_version(use=None, git_tag=version, pkg_version=None, is_root_dir=True, tag_prefix="v")
    return resolver


class TestSetLatestVersion:
    """Source priority for the current version."""

    def test_default(self) -> None:
        resolver = VersionResolver()
        assert resolver.state == "uninitialized"
        resolver.set_latest_version(use=None, git_tag=None, pkg_version=None, is_root_dir=True)
        assert resolver.latest_version == "0.0.0"
        assert resolver.state == "latest-known"

    def test_manifest_wins_in_root_dir(self) -> None:
        resolver = VersionResolver()
        resolver.set_latest_version(use=None, git_tag="v1.0.0", pkg_version="1.1.0", is_root_dir=True)
        assert resolver.latest_version == "1.1.0"

    def test_tag_outside_root_dir(self) -> None:
        resolver = VersionResolver()
        resolver.set_latest_version(use=None, git_tag="v1.0.0", pkg_version="1.1.0", is_root_dir=False)
        assert resolver.latest_version == "1.0.0"

    def test_use_overrides(self) -> None:
        resolver = VersionResolver()
        resolver.set_latest_version(use="git.tag", git_tag="v1.0.0", pkg_version="1.1.0", is_root_dir=True)
        assert resolver.latest_version == "1.0.0"

    def test_tag_prefix_stripped(self) -> None:
        resolver = VersionResolver()
        resolver.set_latest_version(
            use=None, git_tag="release-2.0.0", pkg_version=None, is_root_dir=True, tag_prefix="release-"
        )
        assert resolver.latest_version == "2.0.0"


class TestBump:
    """Next version decisions."""

    def test_explicit_increment(self) -> None:
        result = resolver_at("v1.2.3").bump("minor")
        assert isinstance(result, Ok)
        assert result.value.version == "1.3.0"
        assert result.value.is_pre_release is False

    def test_explicit_version(self) -> None:
        result = resolver_at("v1.2.3").bump("2.0.0-rc.0")
        assert isinstance(result, Ok)
        assert result.value.version == "2.0.0-rc.0"
        assert result.value.is_pre_release is True

    def test_version_not_greater(self) -> None:
        result = resolver_at("v1.2.3").bump("1.2.3")
        assert isinstance(result, Err)
        assert result.error.kind == "not-greater"

    def test_unknown_increment(self) -> None:
        result = resolver_at("v1.2.3").bump("huge")
        assert isinstance(result, Err)
        assert result.error.kind == "unknown-increment"

    def test_pre_release_flag(self) -> None:
        result = resolver_at("v1.2.3", pre_release_id="beta").bump("minor", pre_release=True)
        assert isinstance(result, Ok)
        assert result.value.version == "1.3.0-beta.0"

    def test_pre_release_continues(self) -> None:
        result = resolver_at("v1.3.0-beta.0", pre_release_id="beta").bump(None, pre_release=True)
        assert isinstance(result, Ok)
        assert result.value.version == "1.3.0-beta.1"

    def test_no_increment_undecided(self) -> None:
        resolver = resolver_at("v1.2.3")
        result = resolver.bump(None)
        assert isinstance(result, Ok)
        assert result.value.version is None
        assert resolver.state == "latest-known"

    def test_recommendation(self) -> None:
        resolver = resolver_at("v1.2.3")
        history = FakeHistory(["fix: a", "feat(ui): b"])

        result = resolver.bump(
            "conventional",
            recommend=lambda preset: RecommendationEngine(preset).recommend(history, "v1.2.3"),
        )

        assert isinstance(result, Ok)
        assert result.value.version == "1.3.0"
        assert result.value.is_recommendation is True
        assert history.since == ["v1.2.3"]

    def test_recommendation_without_commits(self) -> None:
        resolver = resolver_at("v1.2.3")
        result = resolver.bump("conventional", recommend=lambda preset: None)
        assert isinstance(result, Ok)
        assert result.value.version is None
        assert result.value.is_recommendation is True

    def test_unknown_preset(self) -> None:
        result = resolver_at("v1.2.3").bump("conventional:nope", recommend=lambda preset: "patch")
        assert isinstance(result, Err)
        assert result.error.kind == "unknown-preset"


class TestValidate:
    def test_undecided_fails(self) -> None:
        resolver = resolver_at("v1.2.3")
        resolver.bump(None)
        result = resolver.validate()
        assert isinstance(result, Err)
        assert result.error.kind == "invalid"

    def test_set_version_then_validate(self) -> None:
        resolver = resolver_at("v1.2.3")
        resolver.bump(None)
        assert isinstance(resolver.set_version("1.5.0"), Ok)
        result = resolver.validate()
        assert isinstance(result, Ok)
        assert result.value.version == "1.5.0"
        assert resolver.state == "validated"

    def test_set_version_invalid(self) -> None:
        result = resolver_at("v1.2.3").set_version("one")
        assert isinstance(result, Err)


class TestRecommendation:
    """Conventional commit classification."""

    def test_is_recommendation(self) -> None:
        assert is_recommendation("conventional") is True
        assert is_recommendation("conventional:angular") is True
        assert is_recommendation("minor") is False
        assert is_recommendation(None) is False
        assert parse_recommendation("conventional") == "conventionalcommits"
        assert parse_recommendation("conventional:angular") == "angular"

    def test_classify(self) -> None:
        assert classify_commit("fix: typo") == "patch"
        assert classify_commit("feat: new thing") == "minor"
        assert classify_commit("feat(api)!: drop v1") == "major"
        assert classify_commit("refactor: x\n\nBREAKING CHANGE: removed y") == "major"
        assert classify_commit("Update readme") == "patch"

    def test_angular_ignores_bang(self) -> None:
        assert classify_commit("feat!: drop v1", "angular") == "minor"

    def test_highest_wins(self) -> None:
        history = FakeHistory(["fix: a", "feat!: b", "feat: c"])
        assert RecommendationEngine().recommend(history, None) == "major"

    def test_no_commits(self) -> None:
        assert RecommendationEngine().recommend(FakeHistory([]), "v1.0.0") is None

    def test_from_git_history(self, repo: Path, console: MockConsole) -> None:
        commit_file(repo, "a.txt", "a", "feat: old feature")
        git(repo, "tag", "-a", "v1.0.0", "-m", "v1.0.0")
        commit_file(repo, "b.txt", "b", "fix: small fix")

        client = make_client(repo, console)
        assert RecommendationEngine().recommend(client, "v1.0.0") == "patch"

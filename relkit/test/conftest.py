"""Shared fixtures: real temporary git repositories."""

from __future__ import annotations

from pathlib import Path

import pytest

from relkit.output.console import MockConsole
from relkit.test.gitrepo import git, init_bare, init_repo


@pytest.fixture
def repo(tmp_path: Path) -> Path:
    """Empty repository (no commits) on branch ``main``."""
    return init_repo(tmp_path / "repo")


@pytest.fixture
def remote(tmp_path: Path, repo: Path) -> Path:
    """Bare repository registered as ``origin`` of ``repo``."""
    bare = init_bare(tmp_path / "remote.git")
    git(repo, "remote", "add", "origin", str(bare))
    return bare


@pytest.fixture
def console() -> MockConsole:
    return MockConsole()

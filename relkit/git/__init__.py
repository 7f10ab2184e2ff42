"""Git repository access."""

from .client import REV_RANGE, GitClient, GitError, GitErrorKind, RepositoryState
from .dist import DistGitClient
from .remote import RepoInfo, is_url, parse_repo

__all__ = [
    "REV_RANGE",
    "DistGitClient",
    "GitClient",
    "GitError",
    "GitErrorKind",
    "RepoInfo",
    "RepositoryState",
    "is_url",
    "parse_repo",
]

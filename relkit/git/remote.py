"""Remote URL helpers."""

from __future__ import annotations

import re
from dataclasses import dataclass

__all__ = ["RepoInfo", "is_url", "parse_repo"]

# scheme://... or scp-like user@host:path
_URL_RE = re.compile(r"^(?:[a-z][a-z0-9+.-]*://|[\w.-]+@[\w.-]+:)", re.IGNORECASE)
_REPO_RE = re.compile(
    r"^(?:[a-z][a-z0-9+.-]*://(?:[^@/]+@)?(?P<host>[^/:]+)(?::\d+)?/"
    r"|[\w.-]+@(?P<scp_host>[\w.-]+):)"
    r"(?P<path>.+?)(?:\.git)?/?$",
    re.IGNORECASE,
)


def is_url(value: str | None) -> bool:
    """True if ``value`` looks like a remote URL rather than a remote name."""
    return bool(value) and _URL_RE.match(value or "") is not None


@dataclass(frozen=True, slots=True)
class RepoInfo:
    """Hosting coordinates derived from a remote URL.

    ``owner`` may contain slashes (GitLab subgroups).
    """

    remote: str
    host: str
    owner: str
    project: str

    @property
    def slug(self) -> str:
        return f"{self.owner}/{self.project}"


def parse_repo(url: str | None) -> RepoInfo | None:
    """Parse ``https://host/owner/project.git`` or ``git@host:owner/project``."""
    if not url:
        return None
    match = _REPO_RE.match(url.strip())
    if match is None:
        return None
    host = match.group("host") or match.group("scp_host") or ""
    owner, _, project = match.group("path").rpartition("/")
    if not owner or not project:
        return None
    return RepoInfo(remote=url, host=host, owner=owner, project=project)

"""Error types for the release pipeline and its collaborators."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

ReleaseErrorKind = Literal[
    "hook-failed",
    "release-failed",
    "upload-failed",
    "publish-failed",
    "cli-missing",
    "invalid-input",
    "aborted",
]


@dataclass(frozen=True, slots=True)
class ReleaseError:
    """Failure of a hook, a remote collaborator or a prompt.

    This format is shared by the pipeline stages and the collaborators, so
    the CLI can render it without knowing which stage produced it.
    """

    kind: ReleaseErrorKind
    message: str
    hint: str | None = None

    def pretty(self) -> str:
        if self.hint:
            return f"{self.message} (hint: {self.hint})"
        return self.message

"""Release orchestration and its collaborators."""

from .cancel import CancellationToken, interrupt_scope
from .changelog import Changelog
from .errors import ReleaseError, ReleaseErrorKind
from .hosting import GitHubClient, GitLabClient, HostingClient
from .pipeline import PipelineError, PipelineRun, ReleaseOutcome, ReleasePipeline, describe_error
from .prompt import PROMPTS, Prompter, ScriptedPrompter, TyperPrompter
from .registry import NpmClient, RegistryClient

__all__ = [
    "PROMPTS",
    "CancellationToken",
    "Changelog",
    "GitHubClient",
    "GitLabClient",
    "HostingClient",
    "NpmClient",
    "PipelineError",
    "PipelineRun",
    "Prompter",
    "RegistryClient",
    "ReleaseError",
    "ReleaseErrorKind",
    "ReleaseOutcome",
    "ReleasePipeline",
    "ScriptedPrompter",
    "TyperPrompter",
    "describe_error",
    "interrupt_scope",
]

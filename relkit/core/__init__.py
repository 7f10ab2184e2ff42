"""Core domain types: results, configuration and the release context."""

from .config import (
    ConfigError,
    DistConfig,
    GitConfig,
    GitHubConfig,
    GitLabConfig,
    NpmConfig,
    ReleaseConfig,
    ScriptsConfig,
    load_config,
)
from .context import ReleaseContext, render_template
from .errors import ErrorCode
from .result import Err, Ok, Result, is_err, is_ok

__all__ = [
    # config
    "ConfigError",
    "DistConfig",
    "GitConfig",
    "GitHubConfig",
    "GitLabConfig",
    "NpmConfig",
    "ReleaseConfig",
    "ScriptsConfig",
    "load_config",
    # context
    "ReleaseContext",
    "render_template",
    # errors
    "ErrorCode",
    # result
    "Err",
    "Ok",
    "Result",
    "is_err",
    "is_ok",
]

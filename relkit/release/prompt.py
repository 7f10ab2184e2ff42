"""Interactive prompt collaborator.

``prompt(enabled, context, name, on_answer)`` asks the named question and
hands the answer to ``on_answer``, which applies it (e.g. runs the commit).
A disabled prompt, or a declined confirmation, does nothing.

``TyperPrompter`` asks on the terminal; ``ScriptedPrompter`` answers from a
mapping and is used by tests and non-terminal callers.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any, Literal, Protocol

import typer

from relkit.core.context import ReleaseContext
from relkit.core.result import Err, Ok, Result
from relkit.output.console import ConsoleProtocol
from relkit.release.errors import ReleaseError
from relkit.version.computer import VersionComputer
from relkit.version.semver import SemVer, parse_version

__all__ = [
    "PROMPTS",
    "OnAnswer",
    "PromptSpec",
    "Prompter",
    "ScriptedPrompter",
    "TyperPrompter",
    "increment_choices",
]

OnAnswer = Callable[[Any], Result[Any, Any]]
PromptKind = Literal["confirm", "choice", "text"]


@dataclass(frozen=True, slots=True)
class PromptSpec:
    kind: PromptKind
    message: str
    default: bool = True


PROMPTS: Mapping[str, PromptSpec] = {
    "increment_list": PromptSpec("choice", "Select increment (next version):"),
    "version": PromptSpec("text", "Please enter a valid version:"),
    "commit": PromptSpec("confirm", "Commit (${git.commit_message})?"),
    "tag": PromptSpec("confirm", "Tag (${git.tag_name})?"),
    "push": PromptSpec("confirm", "Push?"),
    "gh_release": PromptSpec("confirm", "Create a release on GitHub (${github.release_name})?"),
    "gl_release": PromptSpec("confirm", "Create a release on GitLab (${gitlab.release_name})?"),
    "publish": PromptSpec("confirm", "Publish ${name} to npm?"),
    "otp": PromptSpec("text", "Please enter OTP for npm:"),
}


class Prompter(Protocol):
    def prompt(
        self,
        enabled: bool,
        context: ReleaseContext,
        name: str,
        on_answer: OnAnswer,
    ) -> Result[None, Any]: ...


def increment_choices(latest_version: str, pre_release_id: str | None = None) -> list[tuple[str, str]]:
    """``(increment, next version)`` pairs offered by the increment list."""
    latest = parse_version(latest_version) or SemVer(0, 0, 0)
    computer = VersionComputer()
    names = ["patch", "minor", "major"]
    if latest.is_prerelease:
        names.insert(0, "prerelease")
    names.extend(["prepatch", "preminor", "premajor"])
    return [(name, str(computer.increment(latest, name, pre_release_id))) for name in names]  # type: ignore[arg-type]


def _apply(on_answer: OnAnswer, answer: object) -> Result[None, Any]:
    result = on_answer(answer)
    if isinstance(result, Err):
        return result
    return Ok(None)


def _spec(name: str) -> Result[PromptSpec, ReleaseError]:
    spec = PROMPTS.get(name)
    if spec is None:
        return Err(ReleaseError(kind="invalid-input", message=f"unknown prompt: {name}"))
    return Ok(spec)


class TyperPrompter:
    """Terminal prompts via ``typer.confirm`` / ``typer.prompt``."""

    def __init__(self, console: ConsoleProtocol) -> None:
        self._console = console

    def prompt(
        self,
        enabled: bool,
        context: ReleaseContext,
        name: str,
        on_answer: OnAnswer,
    ) -> Result[None, Any]:
        if not enabled:
            return Ok(None)
        spec = _spec(name)
        if isinstance(spec, Err):
            return spec

        # twice: configured templates such as git.tag_name hold ${version}
        message = context.render(context.render(spec.value.message))
        try:
            match spec.value.kind:
                case "confirm":
                    if not typer.confirm(message, default=spec.value.default):
                        return Ok(None)
                    return _apply(on_answer, True)
                case "choice":
                    return _apply(on_answer, self._choose(message, context))
                case _:
                    return _apply(on_answer, typer.prompt(message).strip())
        except typer.Abort:
            return Err(ReleaseError(kind="aborted", message="Release aborted by user"))

    def _choose(self, message: str, context: ReleaseContext) -> str | None:
        latest = str(context.get("latest_version") or "0.0.0")
        pre_id = context.config.pre_release_id
        choices = increment_choices(latest, pre_id)

        self._console.print(message)
        for i, (increment, version) in enumerate(choices, start=1):
            self._console.print(f"  [{i}] {increment} ({version})")
        other = len(choices) + 1
        self._console.print(f"  [{other}] Other, please specify...")

        while True:
            raw = typer.prompt("Pick increment number", default="1")
            try:
                idx = int(raw)
            except ValueError:
                self._console.warning(f"not a number: {raw}")
                continue
            if idx == other:
                return None
            if 1 <= idx <= len(choices):
                return choices[idx - 1][0]
            self._console.warning(f"pick 1..{other}")


class ScriptedPrompter:
    """Answers prompts from a mapping; unanswered prompts are declined.

    Attributes:
        asked: Names of the prompts that were shown, in order.
    """

    def __init__(self, answers: Mapping[str, object] | None = None) -> None:
        self._answers = dict(answers or {})
        self.asked: list[str] = []

    def prompt(
        self,
        enabled: bool,
        context: ReleaseContext,
        name: str,
        on_answer: OnAnswer,
    ) -> Result[None, Any]:
        if not enabled:
            return Ok(None)
        spec = _spec(name)
        if isinstance(spec, Err):
            return spec
        self.asked.append(name)

        answer = self._answers.get(name, False if spec.value.kind == "confirm" else None)
        if spec.value.kind == "confirm" and not answer:
            return Ok(None)
        if spec.value.kind == "text" and answer is None:
            return Err(ReleaseError(kind="aborted", message=f"no answer for prompt: {name}"))
        return _apply(on_answer, answer)

"""Tests for relkit.release.prompt module."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import typer

from relkit.core.config import ReleaseConfig
from relkit.core.context import ReleaseContext
from relkit.core.result import Err, Ok, Result
from relkit.output.console import MockConsole
from relkit.release.errors import ReleaseError
from relkit.release.prompt import ScriptedPrompter, TyperPrompter, increment_choices


def make_context() -> ReleaseContext:
    return ReleaseContext(ReleaseConfig(name="demo")).with_runtime(latest_version="1.2.3", version="1.2.4")


class _Recorder:
    def __init__(self) -> None:
        self.answers: list[object] = []

    def __call__(self, answer: object) -> Result[object, ReleaseError]:
        self.answers.append(answer)
        return Ok(answer)


class TestIncrementChoices:
    def test_release(self) -> None:
        choices = dict(increment_choices("1.2.3"))
        assert list(choices) == ["patch", "minor", "major", "prepatch", "preminor", "premajor"]
        assert choices["minor"] == "1.3.0"
        assert choices["premajor"] == "2.0.0-0"

    def test_prerelease_first(self) -> None:
        choices = increment_choices("1.3.0-beta.0", "beta")
        assert choices[0] == ("prerelease", "1.3.0-beta.1")


class TestScriptedPrompter:
    def test_disabled_prompt_does_nothing(self) -> None:
        prompter = ScriptedPrompter({"commit": True})
        on_answer = _Recorder()

        assert prompter.prompt(False, make_context(), "commit", on_answer) == Ok(None)
        assert on_answer.answers == []
        assert prompter.asked == []

    def test_confirm_accepted(self) -> None:
        prompter = ScriptedPrompter({"commit": True})
        on_answer = _Recorder()

        prompter.prompt(True, make_context(), "commit", on_answer)

        assert on_answer.answers == [True]
        assert prompter.asked == ["commit"]

    def test_unanswered_confirm_declined(self) -> None:
        on_answer = _Recorder()
        assert ScriptedPrompter().prompt(True, make_context(), "push", on_answer) == Ok(None)
        assert on_answer.answers == []

    def test_unanswered_text_aborts(self) -> None:
        result = ScriptedPrompter().prompt(True, make_context(), "otp", _Recorder())
        assert isinstance(result, Err)
        assert result.error.kind == "aborted"

    def test_handler_error_returned(self) -> None:
        def failing(_: object) -> Result[None, ReleaseError]:
            return Err(ReleaseError(kind="release-failed", message="push rejected"))

        result = ScriptedPrompter({"push": True}).prompt(True, make_context(), "push", failing)

        assert isinstance(result, Err)
        assert result.error.message == "push rejected"

    def test_unknown_prompt(self) -> None:
        result = ScriptedPrompter().prompt(True, make_context(), "deploy", _Recorder())
        assert isinstance(result, Err)
        assert result.error.kind == "invalid-input"


class TestTyperPrompter:
    @patch("typer.confirm")
    def test_confirm_renders_templates(self, mock_confirm: MagicMock) -> None:
        mock_confirm.return_value = True
        on_answer = _Recorder()

        TyperPrompter(MockConsole()).prompt(True, make_context(), "tag", on_answer)

        message = mock_confirm.call_args.args[0]
        assert message == "Tag (v1.2.4)?"
        assert on_answer.answers == [True]

    @patch("typer.confirm")
    def test_abort(self, mock_confirm: MagicMock) -> None:
        mock_confirm.side_effect = typer.Abort()

        result = TyperPrompter(MockConsole()).prompt(True, make_context(), "push", _Recorder())

        assert isinstance(result, Err)
        assert result.error.kind == "aborted"

    @patch("typer.prompt")
    def test_choice_list(self, mock_prompt: MagicMock) -> None:
        mock_prompt.side_effect = ["x", "2"]
        console = MockConsole()
        on_answer = _Recorder()

        TyperPrompter(console).prompt(True, make_context(), "increment_list", on_answer)

        assert on_answer.answers == ["minor"]
        assert console.find("[2] minor (1.3.0)")
        assert console.has_warning()

    @patch("typer.prompt")
    def test_choice_other(self, mock_prompt: MagicMock) -> None:
        mock_prompt.return_value = "7"
        on_answer = _Recorder()

        TyperPrompter(MockConsole()).prompt(True, make_context(), "increment_list", on_answer)

        assert on_answer.answers == [None]

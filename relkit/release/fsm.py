"""Tiny step state machine driving a release run.

A handler receives the current session and either advances to a new one
(``advance(session)``) or finishes (``FINISH``). ``get_step`` maps a
session to the name of its next handler, so a session value alone decides
what runs next.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Generic, TypeVar

from relkit.core.result import Err, Ok, Result
from relkit.release.errors import ReleaseError

S = TypeVar("S")
E = TypeVar("E")


@dataclass(frozen=True, slots=True)
class StepAdvance(Generic[S]):
    session: S


@dataclass(frozen=True, slots=True)
class StepFinish:
    pass


StepOutcome = StepAdvance[S] | StepFinish
StepHandler = Callable[[S], Result[StepOutcome[S], E]]
OnAdvance = Callable[[S], None]
GetStep = Callable[[S], str]


FINISH = StepFinish()


def advance(session: S) -> StepAdvance[S]:
    return StepAdvance(session=session)


def run_state_machine(
    *,
    initial_state: S,
    get_step: GetStep[S],
    handlers: Mapping[str, StepHandler[S, E]],
    on_advance: OnAdvance[S] | None = None,
) -> Result[S, E | ReleaseError]:
    """Run handlers until one finishes or fails.

    Returns:
        Ok(last session) on finish, the handler's Err on failure.
    """
    current = initial_state

    while True:
        step = get_step(current)
        handler = handlers.get(step)
        if handler is None:
            return Err(
                ReleaseError(
                    kind="invalid-input",
                    message=f"unknown release step: {step}",
                )
            )

        outcome = handler(current)
        if isinstance(outcome, Err):
            return outcome

        if isinstance(outcome.value, StepFinish):
            return Ok(current)

        current = outcome.value.session
        if on_advance is not None:
            on_advance(current)

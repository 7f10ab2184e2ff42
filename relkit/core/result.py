"""Result type used by every release step.

Steps never raise for expected failures (a dirty working directory, a push
that was rejected, a hook that exited non-zero). They return ``Ok(value)``
or ``Err(error)`` and the caller decides whether the failure is fatal.

Usage:
    match client.push():
        case Ok(_):
            console.success("pushed")
        case Err(error):
            console.error(error.message)

    # or, when only the failure matters
    staged = client.commit()
    if isinstance(staged, Err):
        return staged
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Generic, TypeAlias, TypeGuard, TypeVar

T = TypeVar("T")
U = TypeVar("U")
E = TypeVar("E")

__all__ = ["Err", "Ok", "Result", "is_err", "is_ok"]


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """Successful outcome of a step.

    Attributes:
        value: What the step produced (``None`` for pure side effects).
    """

    value: T

    def is_ok(self) -> bool:
        """Always True for ``Ok``."""
        return True

    def is_err(self) -> bool:
        """Always False for ``Ok``."""
        return False

    def unwrap(self) -> T:
        """Return the carried value.

        Returns:
            The value the step produced.
        """
        return self.value

    def unwrap_or(self, default: T) -> T:
        """Return the carried value, ignoring ``default``.

        Args:
            default: Fallback used only by ``Err``.

        Returns:
            The value the step produced.
        """
        return self.value

    def map(self, f: Callable[[T], U]) -> Ok[U]:
        """Transform the carried value.

        Args:
            f: Function applied to the value.

        Returns:
            A new ``Ok`` holding ``f(value)``.
        """
        return Ok(f(self.value))

    def __repr__(self) -> str:
        return f"Ok({self.value!r})"


@dataclass(frozen=True, slots=True)
class Err(Generic[E]):
    """Failed outcome of a step.

    Attributes:
        error: Error dataclass describing the failure (``GitError``,
            ``ReleaseError``, ...).
    """

    error: E

    def is_ok(self) -> bool:
        """Always False for ``Err``."""
        return False

    def is_err(self) -> bool:
        """Always True for ``Err``."""
        return True

    def unwrap(self) -> None:
        """Raise, since a failed step has no value.

        Raises:
            ValueError: Always, with the error in the message.
        """
        raise ValueError(f"called unwrap on Err: {self.error}")

    def unwrap_or(self, default: T) -> T:
        """Return ``default`` in place of the missing value.

        Args:
            default: Value to hand back.

        Returns:
            ``default`` unchanged.
        """
        return default

    def map(self, f: Callable[[T], U]) -> Err[E]:
        """Skip the transform; the error passes through.

        Args:
            f: Not called.

        Returns:
            This same ``Err``.
        """
        return self

    def __repr__(self) -> str:
        return f"Err({self.error!r})"


Result: TypeAlias = Ok[T] | Err[E]


def is_ok(result: Result[T, E]) -> TypeGuard[Ok[T]]:
    """Narrow ``result`` to ``Ok`` for type checkers.

    Args:
        result: Outcome of a step.

    Returns:
        True when the step succeeded.

    Example:
        version = resolver.bump(increment="patch")
        if is_ok(version):
            print(version.value.version)
    """
    return isinstance(result, Ok)


def is_err(result: Result[T, E]) -> TypeGuard[Err[E]]:
    """Narrow ``result`` to ``Err`` for type checkers.

    Args:
        result: Outcome of a step.

    Returns:
        True when the step failed.

    Example:
        pushed = git.push()
        if is_err(pushed):
            print(pushed.error.kind)
    """
    return isinstance(result, Err)

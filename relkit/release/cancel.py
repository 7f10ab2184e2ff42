"""Explicit cancellation for a release run.

The pipeline owns a ``CancellationToken``; cleanup actions (resetting bumped
manifests) are registered on the token for the duration of an
``interrupt_scope``. SIGINT inside the scope cancels the token, which runs
the cleanup once, then the interrupt propagates as usual. Callers may also
cancel the token themselves when the block ends in failure. The previous
SIGINT handler is restored when the scope exits.
"""

from __future__ import annotations

import logging
import signal
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from types import FrameType

__all__ = ["CancellationToken", "interrupt_scope"]

logger = logging.getLogger(__name__)

Cleanup = Callable[[], object]


class CancellationToken:
    def __init__(self) -> None:
        self._cancelled = False
        self._callbacks: list[Cleanup] = []

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def on_cancel(self, callback: Cleanup) -> Callable[[], None]:
        """Register ``callback``; returns a function that unregisters it."""
        self._callbacks.append(callback)

        def unregister() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return unregister

    def cancel(self) -> None:
        """Mark cancelled and run the registered callbacks (once)."""
        if self._cancelled:
            return
        self._cancelled = True
        callbacks, self._callbacks = self._callbacks, []
        for callback in reversed(callbacks):
            callback()


@contextmanager
def interrupt_scope(
    token: CancellationToken,
    cleanup: Cleanup | None = None,
    *,
    enabled: bool = True,
) -> Iterator[CancellationToken]:
    """Run the block with SIGINT wired to ``token``.

    Any exception escaping the block (``KeyboardInterrupt``, ``typer.Abort``)
    cancels the token before it propagates. Outside the main thread no
    signal handler is installed, but escaping exceptions still cancel.
    A disabled scope yields the token untouched: no cleanup is registered
    and nothing is cancelled.

    Args:
        token: Token that runs the cleanup when cancelled.
        cleanup: Callback registered on ``token`` for the scope only.
        enabled: Whether the scope is active at all.

    Yields:
        The same ``token``.
    """
    if not enabled:
        yield token
        return

    unregister = token.on_cancel(cleanup) if cleanup is not None else None
    install = threading.current_thread() is threading.main_thread()
    previous = signal.getsignal(signal.SIGINT) if install else None

    def handle_sigint(signum: int, frame: FrameType | None) -> None:
        logger.debug("interrupted, running cleanup")
        token.cancel()
        raise KeyboardInterrupt

    if install:
        signal.signal(signal.SIGINT, handle_sigint)
    try:
        yield token
    except BaseException:
        token.cancel()
        raise
    finally:
        if install:
            signal.signal(signal.SIGINT, previous if previous is not None else signal.default_int_handler)
        if unregister is not None:
            unregister()

"""Error types and the fail-fast concurrent runner.

``until_error_concurrent`` starts one task per coroutine function and reports
the first failure as soon as it happens. Tasks still running at that point
are not cancelled; they are kept in a module level set so the event loop owner
can let them finish with ``wait_background``.
"""

import asyncio
from typing import Any, Awaitable, Callable, Optional, Sequence, Set

from core.logger import get_logger

logger = get_logger(__name__)

_background: Set["asyncio.Task[Any]"] = set()


class KrustkindError(Exception):
    """Base class of every error raised by krustkind itself."""
    pass


class WrappedError(KrustkindError):
    """An error annotated with the step that failed.

    Renders as ``<message>: <cause>``; the cause is also chained with
    ``raise ... from`` by callers so tracebacks keep the original frame.
    """

    def __init__(self, message: str, cause: BaseException) -> None:
        self.message = message
        self.cause = cause
        super().__init__(f"{message}: {cause}")


def wrap(err: BaseException, message: str) -> WrappedError:
    """Annotate err with message, e.g. ``raise wrap(err, "failed to ...") from err``."""
    return WrappedError(message, err)


def cause_of(err: BaseException) -> BaseException:
    """Unwrap nested WrappedError values down to the root cause."""
    while isinstance(err, WrappedError):
        err = err.cause
    return err


async def until_error_concurrent(fns: Sequence[Callable[[], Awaitable[Any]]]) -> None:
    """Run every fn concurrently and return once all succeed.

    Raises the first exception any of them raises, without waiting for or
    cancelling the others.

    Args:
        fns: Zero-argument coroutine functions
    """
    if not fns:
        return

    tasks = [asyncio.ensure_future(fn()) for fn in fns]
    pending = set(tasks)
    while pending:
        done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
        errors = [task.exception() for task in tasks if task in done and task.exception() is not None]
        if errors:
            _keep_running(pending)
            raise errors[0]


def _keep_running(tasks: Set["asyncio.Task[Any]"]) -> None:
    for task in tasks:
        _background.add(task)
        task.add_done_callback(_forget)


def _forget(task: "asyncio.Task[Any]") -> None:
    _background.discard(task)
    if not task.cancelled() and task.exception() is not None:
        logger.debug(f"background task failed after an earlier error: {task.exception()}")


async def wait_background(timeout: Optional[float] = None) -> None:
    """Wait for tasks left running by a failed until_error_concurrent call."""
    if not _background:
        return
    await asyncio.wait(set(_background), timeout=timeout)

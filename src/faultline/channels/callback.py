"""CallbackSlot channel — error-first completion handlers for deferred operations.

A completion handler is called as ``callback(err, *results)``. When ``err`` is
not None the operation failed and no results follow; consumers check it
before reading anything else.

The handler always executes after the triggering call has returned, on a
later run-loop turn. By then the caller's try/except has exited, so a raise
inside the handler cannot reach it: the runtime sends it to the
UncaughtExceptionBoundary instead.
"""

from __future__ import annotations

import asyncio
import functools
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any

import structlog

from faultline import ChannelStateError
from faultline.errors.model import ErrorObject, coerce
from faultline.runtime import DeferredCall, Runtime

logger = structlog.get_logger(__name__)

Callback = Callable[..., None]


class CompletionState(Enum):
    PENDING = "pending"
    SETTLED = "settled"  # outcome queued, handler not yet run
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class Completion:
    """One-shot error-first slot. Settles at most once; cancel suppresses it."""

    def __init__(self, callback: Callback, runtime: Runtime) -> None:
        if not callable(callback):
            raise TypeError("callback must be callable")
        self._callback = callback
        self._runtime = runtime
        self._state = CompletionState.PENDING
        self._calls: list[DeferredCall] = []

    @property
    def state(self) -> CompletionState:
        return self._state

    def succeed(self, *results: Any) -> None:
        self._settle(None, results)

    def fail(self, exc: BaseException) -> None:
        self._settle(coerce(exc), ())

    def cancel(self) -> bool:
        """Cancel before delivery. The handler will not be invoked at all."""
        if self._state not in (CompletionState.PENDING, CompletionState.SETTLED):
            return False
        for call in self._calls:
            call.cancel()
        self._state = CompletionState.CANCELLED
        logger.debug("completion_cancelled")
        return True

    def _attach(self, call: DeferredCall) -> None:
        self._calls.append(call)

    def _settle(self, err: ErrorObject | None, results: tuple[Any, ...]) -> None:
        if self._state is CompletionState.CANCELLED:
            logger.debug("completion_settled_after_cancel", failed=err is not None)
            return
        if self._state is not CompletionState.PENDING:
            raise ChannelStateError(f"completion already {self._state.value}")

        if err is not None and err.fatal:
            # Unrecoverable failures skip the slot and go straight to the boundary
            self._state = CompletionState.DELIVERED
            self._runtime.boundary.handle(err)
            return

        self._state = CompletionState.SETTLED
        self._attach(self._runtime.defer(self._deliver, err, results))

    def _deliver(self, err: ErrorObject | None, results: tuple[Any, ...]) -> None:
        self._state = CompletionState.DELIVERED
        if err is not None:
            logger.debug("completion_failed", kind=err.kind.value, code=err.code)
            self._callback(err)
        else:
            self._callback(None, *results)


def defer_call(
    runtime: Runtime,
    work: Callable[..., Any],
    callback: Callback,
    *args: Any,
) -> Completion:
    """
    Run work(*args) on a later turn and report through `callback`.

    A tuple return value spreads into several results; None means no results.
    A raise inside `work` is delivered in the error slot.
    """
    completion = Completion(callback, runtime)

    def _run() -> None:
        try:
            result = work(*args)
        except Exception as exc:
            completion.fail(exc)
            return
        if result is None:
            completion.succeed()
        elif isinstance(result, tuple):
            completion.succeed(*result)
        else:
            completion.succeed(result)

    completion._attach(runtime.defer(_run))
    return completion


def promisify(fn: Callable[..., Any]) -> Callable[..., Awaitable[Any]]:
    """
    Adapt fn(*args, callback, **kwargs) into an async function.

    The awaited value is the single result, a tuple for several, or None.
    An error in the slot is raised from the await.
    """

    @functools.wraps(fn)
    async def wrapper(*args: Any, **kwargs: Any) -> Any:
        loop = asyncio.get_running_loop()
        future: asyncio.Future[Any] = loop.create_future()

        def _callback(err: ErrorObject | None, *results: Any) -> None:
            if future.done():
                return
            if err is not None:
                future.set_exception(err)
            elif not results:
                future.set_result(None)
            elif len(results) == 1:
                future.set_result(results[0])
            else:
                future.set_result(results)

        fn(*args, _callback, **kwargs)
        return await future

    return wrapper

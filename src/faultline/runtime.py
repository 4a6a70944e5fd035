"""Runtime — single-threaded cooperative run loop.

Deferred work is queued on an asyncio event loop and executes on later turns,
first-scheduled-first-run. Exactly one piece of application logic runs at a
time. Anything that escapes a turn has no caller frame left to receive it, so
the runtime hands it to the UncaughtExceptionBoundary.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Coroutine
from typing import Any

import structlog

from faultline.boundary import UncaughtExceptionBoundary, get_boundary

logger = structlog.get_logger(__name__)


class DeferredCall:
    """Handle for work queued with Runtime.defer / Runtime.call_later."""

    def __init__(self, runtime: Runtime, fn: Callable[..., Any]) -> None:
        self._runtime = runtime
        self._fn = fn
        self._handle: asyncio.Handle | asyncio.TimerHandle | None = None
        self._done = False

    @property
    def done(self) -> bool:
        return self._done

    @property
    def cancelled(self) -> bool:
        return self._handle is not None and self._handle.cancelled()

    def cancel(self) -> bool:
        """Drop the call if it has not run yet. Returns True if it was dropped."""
        if self._done or self._handle is None or self._handle.cancelled():
            return False
        self._handle.cancel()
        self._runtime._release()
        return True


class Runtime:
    """Cooperative scheduler routing escaped errors to the boundary."""

    def __init__(
        self,
        boundary: UncaughtExceptionBoundary | None = None,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self._boundary = boundary
        self._loop = loop or asyncio.new_event_loop()
        self._loop.set_exception_handler(self._on_loop_exception)
        self._pending = 0
        self._running = False

    @property
    def boundary(self) -> UncaughtExceptionBoundary:
        return self._boundary if self._boundary is not None else get_boundary()

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        return self._loop

    @property
    def pending(self) -> int:
        return self._pending

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------

    def defer(self, fn: Callable[..., Any], *args: Any) -> DeferredCall:
        """Run fn(*args) on a later turn. Never runs before this call returns."""
        call = DeferredCall(self, fn)
        self._pending += 1
        call._handle = self._loop.call_soon(self._run_turn, call, args)
        return call

    def call_later(self, delay: float, fn: Callable[..., Any], *args: Any) -> DeferredCall:
        call = DeferredCall(self, fn)
        self._pending += 1
        call._handle = self._loop.call_later(delay, self._run_turn, call, args)
        return call

    def spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task[Any]:
        """Run a coroutine on the loop; an exception it ends with is unhandled."""
        task = self._loop.create_task(coro)
        self._pending += 1
        task.add_done_callback(self._on_task_done)
        return task

    # ------------------------------------------------------------------
    # Driving the loop
    # ------------------------------------------------------------------

    def run(self, main: Callable[..., Any] | None = None, *args: Any) -> None:
        """Run `main` on the first turn, then drain until nothing is pending."""
        if self._running:
            raise RuntimeError("Runtime.run() is not reentrant")
        if main is not None:
            self.defer(main, *args)
        if self._pending == 0:
            return
        self._running = True
        log = logger.bind(pending=self._pending)
        log.debug("runtime_started")
        try:
            self._loop.run_forever()
        finally:
            self._running = False
            logger.debug("runtime_stopped", pending=self._pending)

    def close(self) -> None:
        if not self._loop.is_closed():
            self._loop.close()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _run_turn(self, call: DeferredCall, args: tuple[Any, ...]) -> None:
        call._done = True
        try:
            call._fn(*args)
        except Exception as exc:
            logger.debug("runtime_turn_raised", fn=getattr(call._fn, "__qualname__", repr(call._fn)))
            self.boundary.handle(exc)
        finally:
            self._release()

    def _on_task_done(self, task: asyncio.Task[Any]) -> None:
        try:
            if not task.cancelled() and task.exception() is not None:
                self.boundary.handle(task.exception())  # type: ignore[arg-type]
        finally:
            self._release()

    def _on_loop_exception(self, loop: asyncio.AbstractEventLoop, context: dict[str, Any]) -> None:
        exc = context.get("exception")
        if exc is None:
            logger.warning("runtime_loop_message", message=context.get("message"))
            return
        self.boundary.handle(exc)

    def _release(self) -> None:
        self._pending -= 1
        if self._pending <= 0 and self._running:
            self._loop.stop()


# Module-level default, used by producers called without an explicit runtime
_runtime: Runtime | None = None


def get_runtime() -> Runtime:
    global _runtime
    if _runtime is None or _runtime.loop.is_closed():
        _runtime = Runtime()
    return _runtime


def reset_runtime() -> None:
    global _runtime
    if _runtime is not None:
        _runtime.close()
    _runtime = None

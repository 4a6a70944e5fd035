"""UncaughtExceptionBoundary — process-wide terminal handler for unhandled errors.

States:
    UNHANDLED_FATAL (initial): any error reaching the boundary is reported to
        stderr and the process exits with a non-zero status.
    HANDLED: a registered handler receives the error and the process keeps
        running. Continuing is the handler's responsibility; the recommended
        pattern is clean up, then exit deliberately.

Fatal errors (AssertionError kind or the explicit fatal marker) are checked
before the handler is consulted and always terminate.
"""

from __future__ import annotations

import threading
import weakref
from collections.abc import Callable
from enum import Enum
from typing import NoReturn

import structlog

from faultline.errors.model import ErrorObject, coerce
from faultline.observability.report import print_fatal_report

logger = structlog.get_logger(__name__)

UncaughtHandler = Callable[[ErrorObject], None]
Monitor = Callable[[ErrorObject], None]


class BoundaryState(Enum):
    UNHANDLED_FATAL = "unhandled_fatal"
    HANDLED = "handled"


class UncaughtExceptionBoundary:
    """Holds zero-or-one handler. Registration replaces, last write wins."""

    def __init__(
        self,
        exit_code: int = 1,
        handler_failure_exit_code: int = 7,
        show_origin: bool = True,
    ) -> None:
        self._handler: UncaughtHandler | None = None
        self._monitors: list[Monitor] = []
        self._lock = threading.Lock()
        self._escalated: weakref.WeakSet[ErrorObject] = weakref.WeakSet()
        self._exit_code = exit_code
        self._handler_failure_exit_code = handler_failure_exit_code
        self._show_origin = show_origin

    @property
    def state(self) -> BoundaryState:
        return BoundaryState.HANDLED if self._handler is not None else BoundaryState.UNHANDLED_FATAL

    def set_handler(self, handler: UncaughtHandler | None) -> UncaughtHandler | None:
        """Install `handler` and return the one it replaced."""
        with self._lock:
            previous, self._handler = self._handler, handler
        logger.info("uncaught_handler_registered", replaced=previous is not None, cleared=handler is None)
        return previous

    def clear_handler(self) -> UncaughtHandler | None:
        return self.set_handler(None)

    def add_monitor(self, monitor: Monitor) -> None:
        """Observe every error reaching the boundary, before the handler decides."""
        with self._lock:
            self._monitors.append(monitor)

    def handle(self, exc: BaseException) -> None:
        """Entry point for an error no channel consumed."""
        err = coerce(exc)
        with self._lock:
            if err in self._escalated:
                logger.debug("uncaught_error_already_escalated", kind=err.kind.value)
                return
            self._escalated.add(err)
            handler = self._handler
            monitors = list(self._monitors)

        log = logger.bind(kind=err.kind.value, code=err.code, error=err.message)

        for monitor in monitors:
            try:
                monitor(err)
            except Exception:
                log.exception("uncaught_monitor_failed", monitor=getattr(monitor, "__name__", repr(monitor)))

        if err.fatal:
            log.critical("uncaught_error_fatal", reason="unrecoverable")
            self._terminate(err, self._exit_code)

        if handler is None:
            log.critical("uncaught_error_fatal", reason="no_handler")
            self._terminate(err, self._exit_code)

        log.warning("uncaught_error_handled")
        try:
            handler(err)
        except Exception as secondary:
            log.critical("uncaught_handler_failed", secondary_error=str(secondary))
            self._terminate(coerce(secondary), self._handler_failure_exit_code)

    def _terminate(self, err: ErrorObject, exit_code: int) -> NoReturn:
        print_fatal_report(err, show_origin=self._show_origin)
        raise SystemExit(exit_code)


# Module-level singleton
_boundary: UncaughtExceptionBoundary | None = None
_boundary_lock = threading.Lock()


def get_boundary() -> UncaughtExceptionBoundary:
    global _boundary
    with _boundary_lock:
        if _boundary is None:
            from faultline.config import get_settings

            cfg = get_settings().boundary
            _boundary = UncaughtExceptionBoundary(
                exit_code=cfg.exit_code,
                handler_failure_exit_code=cfg.handler_failure_exit_code,
                show_origin=cfg.show_origin,
            )
        return _boundary


def set_uncaught_handler(handler: UncaughtHandler | None) -> UncaughtHandler | None:
    """The single process registration point for the fallback handler."""
    return get_boundary().set_handler(handler)


def reset_boundary() -> None:
    """Drop the process boundary; the next get_boundary() starts fresh."""
    global _boundary
    with _boundary_lock:
        _boundary = None

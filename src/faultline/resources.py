"""Resource — base for long-lived objects that report failures as events."""

from __future__ import annotations

import structlog

from faultline.boundary import UncaughtExceptionBoundary
from faultline.channels.events import ERROR_EVENT, Emitter
from faultline.errors.model import ErrorObject, coerce

logger = structlog.get_logger(__name__)

CLOSE_EVENT = "close"


class Resource(Emitter):
    """
    A persistent handle (connection, stream, watcher) handed to the caller
    before it can fail. Every failure during its lifetime is emitted on
    "error"; subscribe to it for as long as the resource lives.
    """

    def __init__(self, name: str = "", boundary: UncaughtExceptionBoundary | None = None) -> None:
        super().__init__(boundary=boundary)
        self.name = name or type(self).__name__
        self._destroyed = False

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    def fail(self, exc: BaseException) -> bool:
        """Report a failure. May be called any number of times until destroyed."""
        if self._destroyed:
            logger.debug("resource_fail_after_destroy", resource=self.name)
            return False
        err = coerce(exc)
        logger.info("resource_error", resource=self.name, kind=err.kind.value, code=err.code)
        return self.emit(ERROR_EVENT, err)

    def destroy(self, exc: BaseException | None = None) -> None:
        """Tear down: emit the final error (if any), then "close", then drop subscribers."""
        if self._destroyed:
            return
        err: ErrorObject | None = coerce(exc) if exc is not None else None
        try:
            if err is not None:
                self.emit(ERROR_EVENT, err)
            self.emit(CLOSE_EVENT, err is not None)
        finally:
            self._destroyed = True
            self.close()
            logger.debug("resource_destroyed", resource=self.name, had_error=err is not None)

"""SyncRaise channel — native raise plus scoped catch boundaries.

Used only by operations whose whole execution completes before they return.
"""

from __future__ import annotations

import contextlib
import functools
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import Any, NoReturn, TypeVar

import structlog

from faultline.boundary import UncaughtExceptionBoundary, get_boundary
from faultline.errors.model import ErrorKind, ErrorObject, assertion_error, coerce

logger = structlog.get_logger(__name__)

T = TypeVar("T")


@dataclass
class Caught:
    """Holder yielded by catch(); `error` is set when the scope intercepted one."""

    error: ErrorObject | None = None

    def __bool__(self) -> bool:
        return self.error is not None


def raise_error(err: ErrorObject, boundary: UncaughtExceptionBoundary | None = None) -> NoReturn:
    """Raise `err` in the caller's stack. Fatal errors go straight to the boundary."""
    if err.fatal:
        (boundary or get_boundary()).handle(err)
    raise err


@contextlib.contextmanager
def catch(*kinds: ErrorKind) -> Iterator[Caught]:
    """
    Scoped boundary for SyncRaise.

    Intercepts errors of the given kinds (all kinds when none are given),
    records them on the yielded holder, and resumes after the `with` block.
    Native exceptions are classified and coerced first. Fatal errors are
    never intercepted.
    """
    caught = Caught()
    try:
        yield caught
    except Exception as exc:
        err = coerce(exc)
        if err.fatal or (kinds and err.kind not in kinds):
            raise
        caught.error = err
        logger.debug("sync_error_caught", kind=err.kind.value, code=err.code)


def invariant(
    condition: object, message: str, boundary: UncaughtExceptionBoundary | None = None
) -> None:
    """Raise a fatal AssertionError-kind error when `condition` is false."""
    if not condition:
        raise_error(assertion_error(message), boundary)


def guarded(
    fn: Callable[..., T], boundary: UncaughtExceptionBoundary | None = None
) -> Callable[..., T | None]:
    """Wrap a top-level entry point so an escaping raise reaches the boundary."""

    @functools.wraps(fn)
    def wrapper(*args: Any, **kwargs: Any) -> T | None:
        try:
            return fn(*args, **kwargs)
        except Exception as exc:
            (boundary or get_boundary()).handle(exc)
            return None

    return wrapper

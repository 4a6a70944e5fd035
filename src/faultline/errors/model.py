"""ErrorObject — canonical failure record carried across every channel.

An ErrorObject is a regular Python exception (so SyncRaise is plain `raise`)
with a closed `kind` tag instead of a subclass hierarchy. Consumers match on
`err.kind`, never on `isinstance` against per-kind classes.

Invariants:
    - `kind` is fixed at construction.
    - `code` is set if and only if kind is SYSTEM_ERROR.
    - `cause` is given at construction only, so the chain is acyclic.
    - `origin` is captured once and never replaced.
"""

from __future__ import annotations

import os
import traceback
from collections.abc import Iterator, Mapping
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any

from faultline.errors.registry import SystemErrorInfo, get_registry

_PACKAGE_DIR = str(Path(__file__).resolve().parent.parent) + os.sep
_COERCED_ATTR = "_faultline_error"


class ErrorKind(Enum):
    STANDARD_RUNTIME_ERROR = "StandardRuntimeError"
    SYSTEM_ERROR = "SystemError"
    USER_ERROR = "UserError"
    ASSERTION_ERROR = "AssertionError"


# Builtin OSError subclasses raised without an errno (asyncio streams, bare raises)
_OS_ERROR_CODES: tuple[tuple[type[OSError], str], ...] = (
    (FileNotFoundError, "ENOENT"),
    (ConnectionResetError, "ECONNRESET"),
    (ConnectionRefusedError, "ECONNREFUSED"),
    (BrokenPipeError, "EPIPE"),
    (TimeoutError, "ETIMEDOUT"),
    (PermissionError, "EACCES"),
    (IsADirectoryError, "EISDIR"),
    (NotADirectoryError, "ENOTDIR"),
    (FileExistsError, "EEXIST"),
)

# Native exceptions that signal a language-level invalid operation
_RUNTIME_EXCEPTIONS: tuple[type[BaseException], ...] = (
    TypeError,
    ValueError,  # includes UnicodeError (malformed URI equivalent)
    NameError,
    LookupError,
    ArithmeticError,
    AttributeError,
    SyntaxError,
    RecursionError,
)


def _capture_origin() -> traceback.StackSummary:
    """Stack at the call site, without faultline's own frames."""
    frames = [
        f for f in traceback.extract_stack()
        if not f.filename.startswith(_PACKAGE_DIR)
    ]
    return traceback.StackSummary.from_list(frames)


class ErrorObject(Exception):
    """A classified failure. Attributes are read-only."""

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        *,
        code: str | None = None,
        cause: ErrorObject | None = None,
        fatal: bool = False,
        details: Mapping[str, Any] | None = None,
        origin: traceback.StackSummary | None = None,
    ) -> None:
        if not isinstance(kind, ErrorKind):
            raise TypeError(f"kind must be an ErrorKind, got {kind!r}")
        if (kind is ErrorKind.SYSTEM_ERROR) != (code is not None):
            raise ValueError("code must be set if and only if kind is SYSTEM_ERROR")
        if cause is not None and not isinstance(cause, ErrorObject):
            raise TypeError("cause must be an ErrorObject (use coerce() for native exceptions)")

        super().__init__(message)
        self._kind = kind
        self._code = code
        self._message = message
        self._cause = cause
        self._fatal = fatal or kind is ErrorKind.ASSERTION_ERROR
        self._details: Mapping[str, Any] = MappingProxyType(dict(details or {}))
        self._origin = origin if origin is not None else _capture_origin()
        self.__cause__ = cause

    @property
    def kind(self) -> ErrorKind:
        return self._kind

    @property
    def code(self) -> str | None:
        return self._code

    @property
    def message(self) -> str:
        return self._message

    @property
    def cause(self) -> ErrorObject | None:
        return self._cause

    @property
    def fatal(self) -> bool:
        """True for failures that are unrecoverable at this layer."""
        return self._fatal

    @property
    def details(self) -> Mapping[str, Any]:
        return self._details

    @property
    def origin(self) -> traceback.StackSummary:
        return self._origin

    def chain(self) -> Iterator[ErrorObject]:
        """Yield this error followed by each cause, outermost first."""
        current: ErrorObject | None = self
        while current is not None:
            yield current
            current = current.cause

    def describe(self) -> SystemErrorInfo | None:
        """Registry metadata for a system error; None for other kinds."""
        if self._code is None:
            return None
        return get_registry().lookup(self._code)

    def format_origin(self) -> str:
        return "".join(self._origin.format())

    def __str__(self) -> str:
        return self._message

    def __repr__(self) -> str:
        code = f", code={self._code!r}" if self._code else ""
        return f"ErrorObject(kind={self._kind.value}{code}, message={self._message!r})"


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------


def runtime_error(message: str, *, cause: ErrorObject | None = None) -> ErrorObject:
    return ErrorObject(ErrorKind.STANDARD_RUNTIME_ERROR, message, cause=cause)


def user_error(
    message: str, *, cause: ErrorObject | None = None, fatal: bool = False
) -> ErrorObject:
    return ErrorObject(ErrorKind.USER_ERROR, message, cause=cause, fatal=fatal)


def assertion_error(message: str, *, cause: ErrorObject | None = None) -> ErrorObject:
    return ErrorObject(ErrorKind.ASSERTION_ERROR, message, cause=cause)


def system_error(
    code: str,
    message: str | None = None,
    *,
    syscall: str | None = None,
    path: str | None = None,
    errno: int | None = None,
    cause: ErrorObject | None = None,
    origin: traceback.StackSummary | None = None,
    **details: Any,
) -> ErrorObject:
    """
    Build a SystemError for `code`.

    Without an explicit message the text follows the "<CODE>: <label>, <syscall> '<path>'"
    shape, e.g. "ENOENT: no such file or directory, open '/tmp/x'".
    """
    info = get_registry().lookup(code)
    if message is None:
        message = f"{code}: {info.label.lower()}"
        if syscall:
            message += f", {syscall}"
            if path is not None:
                message += f" '{path}'"
        elif path is not None:
            message += f", '{path}'"

    extra: dict[str, Any] = {k: v for k, v in details.items() if v is not None}
    if errno is not None:
        extra["errno"] = errno
    if syscall is not None:
        extra["syscall"] = syscall
    if path is not None:
        extra["path"] = path
    return ErrorObject(
        ErrorKind.SYSTEM_ERROR, message, code=code, cause=cause, details=extra, origin=origin
    )


def from_os_error(
    exc: OSError, *, syscall: str | None = None, path: str | None = None
) -> ErrorObject:
    """Convert a native OSError into a SystemError ErrorObject."""
    if exc.errno is not None:
        code, _ = get_registry().lookup_errno(exc.errno)
    else:
        mapped = _os_error_code(exc)
        if mapped is None:
            return coerce(exc)
        code = mapped
    if path is None and exc.filename is not None:
        path = str(exc.filename)
    return system_error(
        code,
        syscall=syscall,
        path=path,
        errno=exc.errno,
        reason=(str(exc) or None) if exc.errno is None else None,
        origin=traceback.extract_tb(exc.__traceback__) if exc.__traceback__ else None,
    )


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------


def _os_error_code(exc: OSError) -> str | None:
    for exc_type, code in _OS_ERROR_CODES:
        if isinstance(exc, exc_type):
            return code
    return None


def classify(exc: BaseException) -> ErrorKind:
    """Map any exception onto one of the four kinds."""
    if isinstance(exc, ErrorObject):
        return exc.kind
    if isinstance(exc, AssertionError):
        return ErrorKind.ASSERTION_ERROR
    if isinstance(exc, OSError) and (exc.errno is not None or _os_error_code(exc) is not None):
        return ErrorKind.SYSTEM_ERROR
    if isinstance(exc, _RUNTIME_EXCEPTIONS):
        return ErrorKind.STANDARD_RUNTIME_ERROR
    return ErrorKind.USER_ERROR


def coerce(exc: BaseException, _seen: set[int] | None = None) -> ErrorObject:
    """
    Return `exc` as an ErrorObject, converting native exceptions.

    The conversion is cached on the native exception, so coercing the same
    exception twice yields the same ErrorObject.
    """
    if isinstance(exc, ErrorObject):
        return exc
    cached = getattr(exc, _COERCED_ATTR, None)
    if isinstance(cached, ErrorObject):
        return cached
    err = _convert(exc, _seen)
    setattr(exc, _COERCED_ATTR, err)
    return err


def _convert(exc: BaseException, _seen: set[int] | None) -> ErrorObject:
    kind = classify(exc)
    if kind is ErrorKind.SYSTEM_ERROR:
        return from_os_error(exc)  # type: ignore[arg-type]

    seen = _seen if _seen is not None else set()
    seen.add(id(exc))
    native_cause = exc.__cause__
    cause = None
    if native_cause is not None and id(native_cause) not in seen:
        cause = coerce(native_cause, seen)

    message = str(exc) or type(exc).__name__
    origin = traceback.extract_tb(exc.__traceback__) if exc.__traceback__ else None
    return ErrorObject(
        kind,
        message,
        cause=cause,
        details={"exception_type": type(exc).__name__},
        origin=origin,
    )

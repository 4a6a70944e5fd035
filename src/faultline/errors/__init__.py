"""Error model and system error registry."""

from __future__ import annotations

from faultline.errors.model import (
    ErrorKind,
    ErrorObject,
    assertion_error,
    classify,
    coerce,
    from_os_error,
    runtime_error,
    system_error,
    user_error,
)
from faultline.errors.registry import (
    UNKNOWN_SYSTEM_ERROR,
    SystemErrorInfo,
    SystemErrorRegistry,
    get_registry,
    lookup,
)

__all__ = [
    "ErrorKind",
    "ErrorObject",
    "SystemErrorInfo",
    "SystemErrorRegistry",
    "UNKNOWN_SYSTEM_ERROR",
    "assertion_error",
    "classify",
    "coerce",
    "from_os_error",
    "get_registry",
    "lookup",
    "runtime_error",
    "system_error",
    "user_error",
]

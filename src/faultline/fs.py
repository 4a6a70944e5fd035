"""Filesystem producers — reference operations on the SyncRaise and CallbackSlot channels."""

from __future__ import annotations

from pathlib import Path

import structlog

from faultline.channels.callback import Callback, Completion, defer_call
from faultline.errors.model import from_os_error
from faultline.runtime import Runtime, get_runtime

logger = structlog.get_logger(__name__)


def read_file_sync(path: str, encoding: str | None = "utf-8") -> str | bytes:
    """Read a whole file. OS failures are raised as SystemError ErrorObjects."""
    p = Path(path)
    try:
        if encoding is None:
            return p.read_bytes()
        return p.read_text(encoding=encoding)
    except OSError as exc:
        err = from_os_error(exc, syscall="open", path=path)
        logger.debug("read_file_failed", path=path, code=err.code)
        raise err from None


def read_file(
    path: str,
    callback: Callback,
    runtime: Runtime | None = None,
    encoding: str | None = "utf-8",
) -> Completion:
    """
    Read a whole file on a later turn; report as callback(err) or callback(None, data).

    Returns the Completion so the caller may cancel it.
    """
    return defer_call(runtime or get_runtime(), read_file_sync, callback, path, encoding)

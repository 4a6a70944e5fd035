"""System error registry — maps OS-level error codes to label/description."""

from __future__ import annotations

import errno
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from types import MappingProxyType

import structlog

from faultline import RegistryConflictError

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class SystemErrorInfo:
    label: str
    description: str


UNKNOWN_SYSTEM_ERROR = SystemErrorInfo(
    label="Unknown system error",
    description="The operating system reported a failure code that is not in the registry.",
)

# Published entries. Codes may be added; existing entries never change meaning.
_DEFAULT_TABLE: dict[str, SystemErrorInfo] = {
    "EACCES": SystemErrorInfo(
        "Permission denied",
        "An attempt was made to access a file in a way forbidden by its file access permissions.",
    ),
    "EADDRINUSE": SystemErrorInfo(
        "Address already in use",
        "An attempt to bind a server to a local address failed due to another server "
        "on the local system already occupying that address.",
    ),
    "ECONNREFUSED": SystemErrorInfo(
        "Connection refused",
        "No connection could be made because the target machine actively refused it. "
        "This usually results from trying to connect to a service that is inactive on "
        "the foreign host.",
    ),
    "ECONNRESET": SystemErrorInfo(
        "Connection reset by peer",
        "A connection was forcibly closed by a peer. This normally results from a loss "
        "of the connection on the remote socket due to a timeout or reboot.",
    ),
    "EEXIST": SystemErrorInfo(
        "File exists",
        "An existing file was the target of an operation that required that the target not exist.",
    ),
    "EISDIR": SystemErrorInfo(
        "Is a directory",
        "An operation expected a file, but the given pathname was a directory.",
    ),
    "EMFILE": SystemErrorInfo(
        "Too many open files in system",
        "Maximum number of file descriptors allowable on the system has been reached, "
        "and requests for another descriptor cannot be fulfilled until at least one "
        "has been closed.",
    ),
    "ENOENT": SystemErrorInfo(
        "No such file or directory",
        "A component of the specified pathname does not exist. No entity (file or "
        "directory) could be found by the given path.",
    ),
    "ENOTDIR": SystemErrorInfo(
        "Not a directory",
        "A component of the given pathname existed, but was not a directory as expected.",
    ),
    "ENOTEMPTY": SystemErrorInfo(
        "Directory not empty",
        "A directory with entries was the target of an operation that requires an empty directory.",
    ),
    "EPERM": SystemErrorInfo(
        "Operation not permitted",
        "An attempt was made to perform an operation that requires elevated privileges.",
    ),
    "EPIPE": SystemErrorInfo(
        "Broken pipe",
        "A write on a pipe, socket, or FIFO for which there is no process to read the data.",
    ),
    "ETIMEDOUT": SystemErrorInfo(
        "Operation timed out",
        "A connect or send request failed because the connected party did not properly "
        "respond after a period of time.",
    ),
}


class SystemErrorRegistry:
    """Read-only code table. Extension happens only at construction."""

    def __init__(self, extra: Mapping[str, SystemErrorInfo] | None = None) -> None:
        table = dict(_DEFAULT_TABLE)
        for code, info in (extra or {}).items():
            existing = table.get(code)
            if existing is not None and existing != info:
                raise RegistryConflictError(
                    f"{code} is already published as {existing.label!r}"
                )
            table[code] = info
        self._table: Mapping[str, SystemErrorInfo] = MappingProxyType(table)

    def lookup(self, code: str) -> SystemErrorInfo:
        """Return metadata for `code`; unknown codes get UNKNOWN_SYSTEM_ERROR."""
        info = self._table.get(code)
        if info is None:
            logger.debug("system_error_code_unknown", code=code)
            return UNKNOWN_SYSTEM_ERROR
        return info

    def lookup_errno(self, number: int) -> tuple[str, SystemErrorInfo]:
        """Resolve a numeric errno to (code, info)."""
        code = errno.errorcode.get(number, f"E{number}")
        return code, self.lookup(code)

    def __contains__(self, code: object) -> bool:
        return code in self._table

    def __iter__(self) -> Iterator[str]:
        return iter(self._table)

    def __len__(self) -> int:
        return len(self._table)

    def items(self) -> Iterator[tuple[str, SystemErrorInfo]]:
        return iter(self._table.items())


_registry: SystemErrorRegistry | None = None


def get_registry() -> SystemErrorRegistry:
    """Process-wide registry, built once from settings on first use."""
    global _registry
    if _registry is None:
        from faultline.config import get_settings

        extra = {
            code: SystemErrorInfo(entry["label"], entry.get("description", ""))
            for code, entry in get_settings().system_errors.items()
        }
        _registry = SystemErrorRegistry(extra)
        logger.debug("system_error_registry_loaded", codes=len(_registry))
    return _registry


def lookup(code: str) -> SystemErrorInfo:
    return get_registry().lookup(code)

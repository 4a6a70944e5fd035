"""Diagnostic report printed to stderr when an unhandled error terminates the process."""

from __future__ import annotations

from rich.console import Console
from rich.markup import escape

from faultline.errors.model import ErrorObject

_ERR = "bold red"
_DIM = "grey50"
_ACCENT = "#7C3AED"


def _headline(err: ErrorObject) -> str:
    code = f" [{_ACCENT}]\\[{escape(err.code)}][/]" if err.code else ""
    return f"[{_ERR}]{err.kind.value}[/]{code}: {escape(err.message)}"


def print_fatal_report(
    err: ErrorObject,
    console: Console | None = None,
    show_origin: bool = True,
) -> None:
    """Write kind, code, message, cause chain and origin of `err` to stderr."""
    console = console or Console(stderr=True, highlight=False, soft_wrap=True)

    console.print(f"Uncaught {_headline(err)}")
    for cause in list(err.chain())[1:]:
        console.print(f"  [{_DIM}]caused by[/] {_headline(cause)}")

    if show_origin:
        origin = err.format_origin()
        if origin:
            console.print(f"[{_DIM}]Origin (most recent call last):[/]")
            console.print(escape(origin.rstrip("\n")), markup=True)

"""Entrypoint — python -m faultline.

    python -m faultline codes          list the system error registry
    python -m faultline lookup ENOENT  show one registry entry
"""

from __future__ import annotations

import sys

import structlog
from rich.console import Console
from rich.table import Table

logger = structlog.get_logger(__name__)

_ACCENT = "#7C3AED"
_DIM = "grey50"

_USAGE = "usage: python -m faultline (codes | lookup CODE)"


def _print_codes(console: Console) -> None:
    from faultline.errors.registry import get_registry

    table = Table(title="System error codes", title_style=f"bold {_ACCENT}")
    table.add_column("code", style="bold")
    table.add_column("label")
    table.add_column("description", style=_DIM)
    for code, info in sorted(get_registry().items()):
        table.add_row(code, info.label, info.description)
    console.print(table)


def _print_lookup(console: Console, code: str) -> int:
    from faultline.errors.registry import UNKNOWN_SYSTEM_ERROR, get_registry

    info = get_registry().lookup(code.upper())
    console.print(f"[bold]{code.upper()}[/]  {info.label}")
    console.print(f"  [{_DIM}]{info.description}[/]")
    return 1 if info is UNKNOWN_SYSTEM_ERROR else 0


def main(argv: list[str] | None = None) -> int:
    from faultline.config import get_settings
    from faultline.observability.logconfig import configure_logging

    args = sys.argv[1:] if argv is None else argv
    settings = get_settings()
    obs = settings.observability
    configure_logging(log_level=obs.log_level, log_format=obs.log_format, log_file=obs.log_file)

    console = Console(highlight=False)
    if args == ["codes"]:
        _print_codes(console)
        return 0
    if len(args) == 2 and args[0] == "lookup":
        return _print_lookup(console, args[1])

    print(_USAGE, file=sys.stderr)
    return 2


if __name__ == "__main__":
    sys.exit(main())

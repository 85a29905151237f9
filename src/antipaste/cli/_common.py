"""Shared utilities for the CLI command modules.

Provides the Rich consoles, the error reporter, and the application
loader used by every command.
"""

from __future__ import annotations

import sys
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator

from rich.console import Console
from rich.markup import escape

from .. import ANTIPASTE_HOME
from ..app import Antipaste
from ..errors import AntipasteError
from ..models import NEVER_EXPIRES

console = Console()
err_console = Console(stderr=True)

__all__ = ["ANTIPASTE_HOME", "console", "err_console", "fail_on_error", "format_timestamp", "open_app"]


@contextmanager
def fail_on_error() -> Iterator[None]:
    """Print known errors in red and exit with status 1."""
    try:
        yield
    except (AntipasteError, OSError, ValueError) as exc:
        err_console.print(f"[bold red]Error:[/] {escape(str(exc))}")
        sys.exit(1)


def open_app(home: str) -> Antipaste:
    """Load the antipaste home, exiting cleanly on a bad key ring."""
    with fail_on_error():
        return Antipaste(Path(home).expanduser())


def format_timestamp(value: int) -> str:
    """Render an HKP timestamp: 0 is unknown, NEVER_EXPIRES is never."""
    if value == NEVER_EXPIRES:
        return "never"
    if value == 0:
        return "-"
    try:
        return datetime.fromtimestamp(value, tz=timezone.utc).strftime("%Y-%m-%d")
    except (OverflowError, OSError, ValueError):
        return str(value)

"""Printing of environment diagnostics."""

from __future__ import annotations

import logging
from typing import Iterable, TextIO

from rich.console import Console
from rich.markup import escape

from environments.models import Diagnostic

logger = logging.getLogger(__name__)

_SEVERITY_STYLE = {"error": "bold red", "warning": "yellow"}


def write_diagnostics(out: TextIO, diags: Iterable[Diagnostic]) -> int:
    """Print one line per diagnostic under a ``Diagnostics:`` header.

    Returns the number of error-severity diagnostics.
    """
    console = Console(file=out, highlight=False, soft_wrap=True)
    console.print("[bold]Diagnostics:[/bold]")
    errors = 0
    for diag in diags:
        style = _SEVERITY_STYLE.get(diag.severity, "")
        location = diag.location()
        text = f"{location}: {diag.summary}" if location else diag.summary
        console.print(f"  {diag.severity}: {escape(text)}", style=style)
        logger.warning("Environment diagnostic (%s): %s", diag.severity, text)
        if diag.severity == "error":
            errors += 1
    return errors

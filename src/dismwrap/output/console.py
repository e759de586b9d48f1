"""Rich Console factory and theme for dismwrap diagnostics.

Creates Console instances that render to a StringIO buffer, so renderers
return plain strings.  In non-TTY environments (tests, pipes) Rich
automatically disables color codes.
"""

from __future__ import annotations

from io import StringIO

from rich.console import Console
from rich.theme import Theme

WRAPPER_THEME = Theme(
    {
        "dw.tag": "bold cyan",
        "dw.ok": "bold green",
        "dw.error": "bold red",
        "dw.warning": "bold yellow",
        "dw.op": "bold cyan",
        "dw.cmd": "bold",
        "dw.feature": "magenta",
        "dw.key": "dim",
    }
)


def create_console(*, no_color: bool = False, width: int | None = None) -> Console:
    """Create a Console that renders to a StringIO buffer.

    Args:
        no_color: Disable ANSI escape codes (used in tests).
        width: Override terminal width (useful for consistent test output).
    """
    return Console(
        file=StringIO(),
        theme=WRAPPER_THEME,
        no_color=no_color,
        highlight=False,
        soft_wrap=True,
        width=width or 120,
    )


def get_output(console: Console) -> str:
    """Extract rendered text from a StringIO-backed Console."""
    assert isinstance(console.file, StringIO)
    return console.file.getvalue()

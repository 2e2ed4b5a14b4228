"""Rich Console factory and theme for formctl output.

Consoles render to a StringIO buffer so renderers keep a ``-> str``
contract.  In non-TTY environments (tests, pipes) Rich disables color codes.
"""

from __future__ import annotations

from io import StringIO

from rich.console import Console
from rich.theme import Theme

FORM_THEME = Theme(
    {
        "form.ok": "bold green",
        "form.error": "bold red",
        "form.warning": "bold yellow",
        "form.op": "bold cyan",
        "form.key": "dim",
        "form.path": "blue",
        "form.code": "bold blue",
        "form.kind.field": "green",
        "form.kind.group": "magenta",
        "form.kind.rowset": "yellow",
        "form.true": "green",
        "form.false": "red",
    }
)


def create_console(*, no_color: bool = False, width: int | None = None) -> Console:
    """Create a Console that renders to a StringIO buffer."""
    return Console(
        file=StringIO(),
        theme=FORM_THEME,
        no_color=no_color,
        highlight=False,
        width=width or 120,
    )


def get_output(console: Console) -> str:
    """Extract rendered text from a StringIO-backed Console."""
    assert isinstance(console.file, StringIO)
    return console.file.getvalue()


def bool_style(value: bool) -> str:
    return "form.true" if value else "form.false"

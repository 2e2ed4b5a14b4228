"""Command: check the control library for reference cycles."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from formctl.commands._base import FormCommand
from formctl.domain.errors import DocumentError

if TYPE_CHECKING:
    from formctl.commands._context import AppContext


@click.command(
    cls=FormCommand,
    examples="""\
  formctl check
  formctl --json check
  formctl -c ./formctl.toml check""",
)
@click.pass_obj
def check(app: AppContext) -> None:
    """Check the control library for reference cycles and unknown references."""
    from formctl.services.forms import document_failure

    try:
        service = app.service
    except DocumentError as exc:
        app.emit(document_failure("check", exc))
        return
    app.emit(service.check())

"""Command: list domain options of a category."""

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
  formctl options country
  formctl options state --parent US
  formctl options department --tree --filter eng""",
)
@click.argument("category")
@click.option("--parent", default=None, help="Only children of this parent code.")
@click.option("--tree", is_flag=True, help="Show the options as a hierarchy.")
@click.option("--filter", "filter_text", default="", help="Tree filter text (implies --tree).")
@click.pass_obj
def options(
    app: AppContext,
    category: str,
    parent: str | None,
    tree: bool,
    filter_text: str,
) -> None:
    """List the options of CATEGORY from the configured domain file."""
    from formctl.services.forms import document_failure

    try:
        service = app.service
    except DocumentError as exc:
        app.emit(document_failure("options", exc))
        return
    app.emit(
        service.options(category, parent, tree=tree or bool(filter_text), filter_text=filter_text)
    )

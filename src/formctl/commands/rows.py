"""Command: run a table's filter/sort/paginate pipeline over form data."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import click

from formctl.commands._base import FormCommand
from formctl.domain.errors import DocumentError

if TYPE_CHECKING:
    from formctl.commands._context import AppContext


@click.command(
    cls=FormCommand,
    examples="""\
  formctl rows order-form.json lines --data order.json
  formctl rows order-form.json lines --data order.json --sort qty --desc
  formctl rows order-form.json lines --data order.json --search widget --page 2""",
)
@click.argument("schema", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("table")
@click.option(
    "--data",
    "data_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    required=True,
    help="JSON/YAML document holding the table rows.",
)
@click.option("--search", default="", help="Search term (searchable tables).")
@click.option("--sort", "sort_column", default=None, help="Sort column (sortable tables).")
@click.option("--desc", is_flag=True, help="Sort descending.")
@click.option("--page", type=click.IntRange(min=1), default=1, help="Page number.")
@click.pass_obj
def rows(
    app: AppContext,
    schema: Path,
    table: str,
    data_file: Path,
    search: str,
    sort_column: str | None,
    desc: bool,
    page: int,
) -> None:
    """Show the current page of table TABLE in SCHEMA."""
    from formctl.services.forms import document_failure

    try:
        raw = app.read_mapping(schema)
        data = app.read_mapping(data_file)
        service = app.service
    except DocumentError as exc:
        app.emit(document_failure("rows", exc))
        return
    app.emit(
        service.rows(
            raw,
            table,
            data,
            search=search,
            sort=sort_column,
            descending=desc,
            page=page,
        )
    )

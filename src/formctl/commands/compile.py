"""Command: compile a schema into a form model and report its state."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import click

from formctl.commands._base import FormCommand
from formctl.domain.errors import DocumentError

if TYPE_CHECKING:
    from formctl.commands._context import AppContext


@click.command(
    "compile",
    cls=FormCommand,
    examples="""\
  formctl compile employee-form.json
  formctl compile employee-form.json --data employee.json
  formctl --json compile employee-form.json --data employee.yaml""",
)
@click.argument("schema", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--data",
    "data_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="JSON/YAML document patched into the form.",
)
@click.pass_obj
def compile_cmd(app: AppContext, schema: Path, data_file: Path | None) -> None:
    """Compile SCHEMA: data paths, conditional state, options, and validity."""
    from formctl.services.forms import document_failure

    try:
        raw = app.read_mapping(schema)
        data = app.read_mapping(data_file) if data_file is not None else None
        service = app.service
    except DocumentError as exc:
        app.emit(document_failure("compile", exc))
        return
    app.emit(service.compile(raw, data))

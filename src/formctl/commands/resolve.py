"""Command: resolve library references in a schema document."""

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
  formctl resolve employee-form.json
  formctl --json resolve employee-form.yaml
  formctl -c ./formctl.toml resolve forms/onboarding.json""",
)
@click.argument("schema", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_obj
def resolve(app: AppContext, schema: Path) -> None:
    """Expand string references and library overrides in SCHEMA."""
    from formctl.services.forms import document_failure

    try:
        raw = app.read_mapping(schema)
        service = app.service
    except DocumentError as exc:
        app.emit(document_failure("resolve", exc))
        return
    app.emit(service.resolve(raw))

"""Command: evaluate a condition expression against a JSON context."""

from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING, Any

import click

from formctl.commands._base import FormCommand
from formctl.domain.errors import DocumentError

if TYPE_CHECKING:
    from formctl.commands._context import AppContext


@click.command(
    "eval",
    cls=FormCommand,
    examples="""\
  formctl eval "model.age > 18" --context '{"model": {"age": 20}}'
  formctl eval "row.status != 'closed'" --context '{"row": {"status": "open"}}'
  formctl -q eval "model.country == null" --context-file state.json""",
)
@click.argument("expression")
@click.option("--context", "context_json", default=None, help="Context object as JSON.")
@click.option(
    "--context-file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Context object from a JSON/YAML file.",
)
@click.pass_obj
def eval_cmd(
    app: AppContext,
    expression: str,
    context_json: str | None,
    context_file: Path | None,
) -> None:
    """Evaluate EXPRESSION (a && conjunction of comparisons)."""
    from formctl.services.forms import FormService, document_failure

    context: dict[str, Any] = {}
    try:
        if context_file is not None:
            context = app.read_mapping(context_file)
        if context_json:
            parsed = json.loads(context_json)
            if not isinstance(parsed, dict):
                raise DocumentError("--context must be a JSON object")
            context = parsed
    except (DocumentError, ValueError) as exc:
        app.emit(document_failure("eval", DocumentError(str(exc))))
        return
    app.emit(FormService.evaluate(expression, context))

"""Form compilation facade and lifecycle.

:class:`FormCompiler` runs the whole pipeline for one schema document::

    raw schema -> SchemaResolver -> FormModelGenerator -> FormModel
               -> ConditionBinder + OptionBindings + TableViews

and hands back a :class:`FormInstance` that owns every subscription it
created.  Closing the instance (or leaving its ``with`` block) unsubscribes
all of them and cancels pending option fetches.

:class:`FormService` wraps the same operations in :class:`ServiceResult`
values for the CLI, collecting developer warnings logged while each
operation runs.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import networkx as nx
from pydantic import ValidationError

from formctl.domain.controls import ControlDefinition, FormSchema
from formctl.domain.errors import DocumentError, ExpressionError, SchemaCycleError
from formctl.domain.expressions import evaluate, parse_expression
from formctl.domain.hierarchy import TreeState
from formctl.domain.library import ControlLibrary
from formctl.domain.model import FormModel, RowSetNode
from formctl.domain.types import ControlKind
from formctl.domain.width import parse_responsive_width
from formctl.services.conditions import ConditionBinder
from formctl.services.generator import FormModelGenerator
from formctl.services.options import OptionBinding, OptionProvider, bind_options, cache_key
from formctl.services.resolver import DEFAULT_MAX_DEPTH, SchemaResolver
from formctl.services.result import ServiceError, ServiceResult
from formctl.services.rows import DEFAULT_PAGE_SIZE, TableView

if TYPE_CHECKING:
    from formctl.plugins.manager import PluginManager

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Library check
# ---------------------------------------------------------------------------


@dataclass
class LibraryReport:
    """Reference graph findings for a control library."""

    entries: int
    cycles: list[list[str]] = field(default_factory=list)
    unknown: dict[str, list[str]] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.cycles


def reference_graph(library: ControlLibrary) -> nx.DiGraph:
    """Directed graph: library code -> every library code its children reference."""
    graph: nx.DiGraph = nx.DiGraph()
    for code in library:
        graph.add_node(code)
        for ref in library.references(code):
            if ref in library:
                graph.add_edge(code, ref)
    return graph


def check_library(library: ControlLibrary) -> LibraryReport:
    """Find reference cycles and references to unknown codes."""
    graph = reference_graph(library)
    cycles = sorted(
        (_rotate(cycle) for cycle in nx.simple_cycles(graph)), key=lambda c: (len(c), c)
    )
    unknown: dict[str, list[str]] = {}
    for code in library:
        missing = [ref for ref in library.references(code) if ref not in library]
        if missing:
            unknown[code] = missing
    return LibraryReport(entries=len(library), cycles=cycles, unknown=unknown)


def _rotate(cycle: list[str]) -> list[str]:
    """Start a cycle at its smallest code so reports are stable."""
    start = cycle.index(min(cycle))
    return cycle[start:] + cycle[:start]


# ---------------------------------------------------------------------------
# FormInstance
# ---------------------------------------------------------------------------


class FormInstance:
    """One live form: model plus the bindings observing it.

    Attributes:
        schema: The resolved schema.
        model: The value store; ``model.path_map`` maps keys to data paths.
        conditions: Visible/disabled/required state per keyed control.
        options: Option bindings per select/tree key (started by :meth:`start`).
        tables: Row views per table key.
    """

    def __init__(
        self,
        schema: FormSchema,
        model: FormModel,
        generator: FormModelGenerator,
        *,
        provider: OptionProvider | None = None,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> None:
        self.schema = schema
        self.model = model
        self._generator = generator
        self.conditions = ConditionBinder(model)
        self.options: dict[str, OptionBinding] = bind_options(model, provider)
        self.tables: dict[str, TableView] = {}
        for control in schema.iter_controls():
            if control.kind is not ControlKind.ROWSET or not control.key:
                continue
            node = model.get_control(control.key)
            if isinstance(node, RowSetNode):
                self.tables[control.key] = TableView(
                    node, control, model, default_page_size=page_size
                )
        self._started = False
        self._closed = False

    @property
    def path_map(self) -> Mapping[str, str]:
        return self.model.path_map

    @property
    def value(self) -> dict[str, Any]:
        return self.model.value

    @property
    def closed(self) -> bool:
        return self._closed

    def start(self) -> None:
        """Start every option binding; call from a running event loop."""
        if self._started:
            return
        self._started = True
        for binding in self.options.values():
            binding.start()

    async def settle(self) -> None:
        """Wait until no option binding has a fetch in flight."""
        while True:
            pending = [b for b in self.options.values() if b.loading]
            if not pending:
                return
            await asyncio.gather(*(b.wait() for b in pending))

    def patch(self, data: Mapping[str, Any]) -> None:
        self._generator.patch_form(self.model, data, self.schema)

    def table(self, key: str) -> TableView | None:
        return self.tables.get(key)

    def control(self, key: str) -> ControlDefinition | None:
        for control in self.schema.iter_controls():
            if control.key == key:
                return control
        return None

    def close(self) -> None:
        """Unsubscribe every observer and cancel pending fetches."""
        if self._closed:
            return
        self._closed = True
        for binding in self.options.values():
            binding.close()
        for view in self.tables.values():
            view.close()
        self.conditions.close()
        self.model.close()

    def __enter__(self) -> FormInstance:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


# ---------------------------------------------------------------------------
# FormCompiler
# ---------------------------------------------------------------------------


class FormCompiler:
    """Compiles schema documents against one library and option provider.

    Parameters:
        library: Control library for string references and overrides.
        provider: Option provider for category-backed controls.
        max_depth: Resolver nesting limit.
        page_size: Default table page size.
        plugins: Receives ``post_compile`` notifications.
    """

    def __init__(
        self,
        library: ControlLibrary,
        provider: OptionProvider | None = None,
        *,
        max_depth: int = DEFAULT_MAX_DEPTH,
        page_size: int = DEFAULT_PAGE_SIZE,
        plugins: PluginManager | None = None,
    ) -> None:
        self.resolver = SchemaResolver(library, max_depth=max_depth)
        self.generator = FormModelGenerator()
        self.provider = provider
        self.page_size = page_size
        self._plugins = plugins

    @property
    def library(self) -> ControlLibrary:
        return self.resolver.library

    def resolve(self, raw: Mapping[str, Any] | FormSchema) -> FormSchema:
        return self.resolver.resolve(raw)

    def compile(
        self,
        raw: Mapping[str, Any] | FormSchema,
        data: Mapping[str, Any] | None = None,
        *,
        warnings: list[str] | None = None,
    ) -> FormInstance:
        """Resolve, build the model, load *data*, and bind everything.

        Raises:
            SchemaCycleError: If library references loop.
        """
        schema = self.resolve(raw)
        model = self.generator.to_model(schema)
        if data:
            self.generator.patch_form(model, data, schema)
        instance = FormInstance(
            schema, model, self.generator, provider=self.provider, page_size=self.page_size
        )
        if self._plugins is not None:
            self._plugins.notify_compiled(
                schema.code, len(model.path_map), warnings if warnings is not None else []
            )
        return instance


# ---------------------------------------------------------------------------
# FormService
# ---------------------------------------------------------------------------


class _WarningCollector(logging.Handler):
    def __init__(self) -> None:
        super().__init__(level=logging.WARNING)
        self.messages: list[str] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.messages.append(record.getMessage())


@contextmanager
def collect_warnings() -> Iterator[list[str]]:
    """Collect WARNING+ records of the ``formctl`` loggers into a list."""
    collector = _WarningCollector()
    package_logger = logging.getLogger("formctl")
    package_logger.addHandler(collector)
    try:
        yield collector.messages
    finally:
        package_logger.removeHandler(collector)


def _state_dict(instance: FormInstance) -> dict[str, dict[str, bool]]:
    return {
        key: {"visible": s.visible, "disabled": s.disabled, "required": s.required}
        for key, s in instance.conditions.states.items()
    }


def _width_dict(schema: FormSchema) -> dict[str, dict[str, int]]:
    """Responsive grid width per keyed control."""
    return {
        control.key: parse_responsive_width(control.width).to_dict()
        for control in schema.iter_controls()
        if control.key
    }


def _option_dicts(values: Any) -> list[dict[str, Any]]:
    return [v.model_dump(by_alias=True, exclude_none=True, mode="json") for v in values]


class FormService:
    """ServiceResult-returning operations for the CLI."""

    def __init__(self, compiler: FormCompiler) -> None:
        self._compiler = compiler

    @property
    def compiler(self) -> FormCompiler:
        return self._compiler

    # --- resolve ---

    def resolve(self, raw: Mapping[str, Any]) -> ServiceResult:
        op = "resolve"
        with collect_warnings() as warnings:
            try:
                schema = self._compiler.resolve(raw)
            except SchemaCycleError as exc:
                return ServiceResult.failure(op, "SCHEMA_CYCLE", str(exc), chain=exc.chain)
            except ValidationError as exc:
                return ServiceResult.failure(op, "INVALID_SCHEMA", str(exc))
        return ServiceResult(
            ok=True,
            op=op,
            data={"schema": schema.to_raw(), "widths": _width_dict(schema)},
            warnings=list(warnings),
            meta={"controls": len(schema.iter_controls())},
        )

    # --- compile ---

    def compile(
        self, raw: Mapping[str, Any], data: Mapping[str, Any] | None = None
    ) -> ServiceResult:
        """Compile, load *data*, settle option cascades, and report the form state."""
        op = "compile"
        with collect_warnings() as warnings:
            try:
                payload = asyncio.run(self._compile_report(raw, data, warnings))
            except SchemaCycleError as exc:
                return ServiceResult.failure(op, "SCHEMA_CYCLE", str(exc), chain=exc.chain)
            except ValidationError as exc:
                return ServiceResult.failure(op, "INVALID_SCHEMA", str(exc))
        return ServiceResult(ok=True, op=op, data=payload, warnings=list(warnings))

    async def _compile_report(
        self,
        raw: Mapping[str, Any],
        data: Mapping[str, Any] | None,
        warnings: list[str],
    ) -> dict[str, Any]:
        with self._compiler.compile(raw, data, warnings=warnings) as form:
            form.start()
            await form.settle()
            return {
                "code": form.schema.code,
                "paths": dict(form.path_map),
                "value": form.model.snapshot(),
                "valid": form.model.valid,
                "errors": form.model.errors(),
                "states": _state_dict(form),
                "widths": _width_dict(form.schema),
                "options": {
                    key: [str(v.code) for v in binding.options]
                    for key, binding in form.options.items()
                },
            }

    # --- eval ---

    @staticmethod
    def evaluate(expression: str | None, context: Mapping[str, Any]) -> ServiceResult:
        op = "eval"
        warnings: list[str] = []
        if expression and expression.strip():
            try:
                parse_expression(expression)
            except ExpressionError as exc:
                warnings.append(f"Malformed expression: {exc}")
        result = evaluate(expression, context)
        return ServiceResult(
            ok=True,
            op=op,
            data={"expression": expression or "", "result": result},
            warnings=warnings,
        )

    # --- options ---

    def options(
        self,
        category: str,
        parent: str | None = None,
        *,
        tree: bool = False,
        filter_text: str = "",
    ) -> ServiceResult:
        op = "options"
        provider = self._compiler.provider
        if provider is None:
            return ServiceResult.failure(
                op, "FETCH_FAILED", "No domain data source configured", category=category
            )
        try:
            values = asyncio.run(provider.fetch(category, parent))
        except Exception as exc:
            return ServiceResult.failure(
                op, "FETCH_FAILED", str(exc), category=category, parent=parent
            )

        data: dict[str, Any] = {
            "category": category,
            "parent": parent,
            "cache_key": cache_key(category, parent),
            "items": _option_dicts(values),
        }
        if tree:
            state = TreeState(values)
            state.filter(filter_text)
            data["tree"] = [
                {"code": row.code, "displayText": row.display_text, "level": row.level}
                for row in state.visible()
            ]
        return ServiceResult(ok=True, op=op, data=data, meta={"count": len(values)})

    # --- rows ---

    def rows(
        self,
        raw: Mapping[str, Any],
        table_key: str,
        data: Mapping[str, Any] | None = None,
        *,
        search: str = "",
        sort: str | None = None,
        descending: bool = False,
        page: int = 1,
    ) -> ServiceResult:
        """Run the filter/sort/paginate pipeline of one table over *data*."""
        op = "rows"
        with collect_warnings() as warnings:
            try:
                form = self._compiler.compile(raw, data, warnings=warnings)
            except SchemaCycleError as exc:
                return ServiceResult.failure(op, "SCHEMA_CYCLE", str(exc), chain=exc.chain)
            except ValidationError as exc:
                return ServiceResult.failure(op, "INVALID_SCHEMA", str(exc))

            with form:
                view = form.table(table_key)
                if view is None:
                    return ServiceResult.failure(
                        op, "NOT_FOUND", f"No table with key {table_key!r}", key=table_key
                    )
                if search:
                    view.set_search(search)
                if sort:
                    view.sort_by(sort)
                    if descending:
                        view.sort_by(sort)
                view.set_page(page)
                rows = [
                    {
                        "index": index,
                        "value": row.value,
                        "actions": [a.id for a in view.visible_actions(index)],
                    }
                    for index, row in view.view_rows()
                ]
                payload = {
                    "table": table_key,
                    "columns": [c.key for c in view.rowset.columns if c.key],
                    "page": view.page,
                    "page_count": view.page_count,
                    "filtered_count": view.filtered_count,
                    "start_item": view.start_item,
                    "end_item": view.end_item,
                    "sort": view.sort_column,
                    "direction": str(view.sort_direction) if view.sort_column else None,
                    "rows": rows,
                }
        return ServiceResult(ok=True, op=op, data=payload, warnings=list(warnings))

    # --- check ---

    def check(self) -> ServiceResult:
        """Report library reference cycles (errors) and unknown references (warnings)."""
        op = "check"
        report = check_library(self._compiler.library)
        warnings = [
            f"{code} references unknown control {ref!r}"
            for code, refs in report.unknown.items()
            for ref in refs
        ]
        data = {"entries": report.entries, "cycles": report.cycles, "unknown": report.unknown}
        if not report.ok:
            chains = ", ".join(" -> ".join([*cycle, cycle[0]]) for cycle in report.cycles)
            return ServiceResult(
                ok=False,
                op=op,
                data=data,
                warnings=warnings,
                error=ServiceError(
                    code="SCHEMA_CYCLE",
                    message=f"Reference cycles: {chains}",
                    detail={"cycles": report.cycles},
                ),
            )
        return ServiceResult(ok=True, op=op, data=data, warnings=warnings)


def document_failure(op: str, exc: DocumentError) -> ServiceResult:
    """ServiceResult for an unreadable input document."""
    return ServiceResult.failure(op, "INVALID_DOCUMENT", str(exc))

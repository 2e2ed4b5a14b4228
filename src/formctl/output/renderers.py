"""Operation-specific Rich renderers for ServiceResult.

Each renderer writes to a Rich Console (backed by StringIO).  Renderers are
dispatched by ``result.op`` in :func:`render_result`; unknown ops fall
through to a generic key-value renderer.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from rich.markup import escape
from rich.table import Table
from rich.text import Text
from rich.tree import Tree

from formctl.output.console import bool_style, create_console, get_output

if TYPE_CHECKING:
    from rich.console import Console

    from formctl.services.result import ServiceResult


# ── Public API ────────────────────────────────────────────────────────


def render_result(result: ServiceResult, *, verbose: bool = False) -> str:
    """Render a ServiceResult to text via Rich (plain when not on a TTY)."""
    console = create_console()
    if result.ok:
        renderer = _OP_RENDERERS.get(result.op, _render_generic)
        renderer(result, console, verbose=verbose)
    else:
        _render_error(result, console, verbose=verbose)
    return get_output(console).rstrip("\n")


def render_quiet(result: ServiceResult) -> str:
    """Minimal output for ``--quiet``: codes, indexes, or a bare status."""
    if not result.ok:
        msg = result.error.message if result.error else "Unknown error"
        return f"ERROR: {result.op} — {msg}"
    data = result.data
    if result.op == "eval":
        return "true" if data.get("result") else "false"
    if result.op == "options":
        return "\n".join(str(item.get("code", "")) for item in data.get("items", []))
    if result.op == "rows":
        return "\n".join(str(row["index"]) for row in data.get("rows", []))
    return f"OK: {result.op}"


# ── Helpers ───────────────────────────────────────────────────────────


def _status_line(console: Console, result: ServiceResult) -> None:
    console.print(Text("OK", style="form.ok"), Text(f"  {result.op}", style="form.op"))


def _field(console: Console, key: str, value: Any) -> None:
    k = Text(f"  {key}: ", style="form.key")
    if isinstance(value, bool):
        v = Text(str(value).lower(), style=bool_style(value))
    elif isinstance(value, (dict, list)):
        v = Text(json.dumps(value, separators=(",", ":"), default=str))
    else:
        v = Text(str(value))
    console.print(k, v)


def _render_meta(console: Console, result: ServiceResult) -> None:
    if not result.meta:
        return
    console.print()
    console.print(Text("  meta:", style="dim"))
    for k, v in result.meta.items():
        console.print(f"    {k}: {v}")


def _flag(value: bool) -> Text:
    return Text("yes" if value else "no", style=bool_style(value))


# ── Error renderer ────────────────────────────────────────────────────


def _render_error(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    err = result.error
    msg = err.message if err else "Unknown error"
    console.print(
        Text("ERROR", style="form.error"),
        Text(f"  {result.op}", style="form.op"),
        " — ",
        Text(msg),
    )
    if err and err.detail and (verbose or err.code == "SCHEMA_CYCLE"):
        console.print(Text("  detail:", style="dim"))
        for k, v in err.detail.items():
            console.print(Text(f"    {k}: {v}"))


# ── resolve ───────────────────────────────────────────────────────────


def _width_text(width: dict[str, int]) -> str:
    return f"{width['mobile']}/{width['tablet']}/{width['desktop']}"


def _control_label(control: Any, widths: dict[str, dict[str, int]]) -> Text:
    if isinstance(control, str):
        return Text(control, style="form.code")
    key = control.get("key")
    ctype = str(control.get("type", "text"))
    label = Text()
    label.append(key or "(section)", style="bold" if key else "dim")
    label.append(f"  {ctype}", style="form.kind.group" if ctype == "group" else "dim")
    if control.get("code"):
        label.append(f"  [{control['code']}]", style="form.code")
    if control.get("dataPath"):
        label.append(f"  -> {control['dataPath']}", style="form.path")
    if control.get("label"):
        label.append(f"  {control['label']}")
    if key in widths and control.get("width") is not None:
        label.append(f"  w={_width_text(widths[key])}", style="dim")
    return label


def _add_controls(node: Tree, controls: list[Any], widths: dict[str, dict[str, int]]) -> None:
    for control in controls:
        branch = node.add(_control_label(control, widths))
        if isinstance(control, dict):
            _add_controls(branch, control.get("controls") or [], widths)


def _render_resolve(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    _status_line(console, result)
    schema = result.data.get("schema", {})
    title = Text(str(schema.get("code") or "form"), style="bold")
    if schema.get("version"):
        title.append(f"  v{schema['version']}", style="dim")
    tree = Tree(title)
    _add_controls(tree, schema.get("sections") or [], result.data.get("widths", {}))
    console.print(tree)
    if verbose:
        _render_meta(console, result)


# ── compile ───────────────────────────────────────────────────────────


def _render_compile(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    _status_line(console, result)
    d = result.data
    _field(console, "code", d.get("code", ""))
    _field(console, "valid", bool(d.get("valid")))

    states = d.get("states", {})
    options = d.get("options", {})
    widths = d.get("widths", {})
    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    table.add_column("Key", style="bold", no_wrap=True)
    table.add_column("Path", style="form.path")
    table.add_column("Visible")
    table.add_column("Disabled")
    table.add_column("Required")
    table.add_column("Options", justify="right")
    table.add_column("Width", style="dim")
    for key, path in d.get("paths", {}).items():
        state = states.get(key, {})
        table.add_row(
            Text(key),
            Text(path),
            _flag(state.get("visible", True)),
            _flag(state.get("disabled", False)),
            _flag(state.get("required", False)),
            str(len(options[key])) if key in options else "",
            _width_text(widths[key]) if key in widths else "",
        )
    console.print(table)

    errors = d.get("errors", {})
    for path, detail in errors.items():
        console.print(
            f"  [form.error]invalid[/form.error] {escape(path)}: {escape(json.dumps(detail))}"
        )
    if verbose:
        console.print()
        console.print(Text("  value:", style="dim"))
        console.print(json.dumps(d.get("value", {}), indent=2, default=str))


# ── eval ──────────────────────────────────────────────────────────────


def _render_eval(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    _status_line(console, result)
    _field(console, "expression", result.data.get("expression", ""))
    _field(console, "result", bool(result.data.get("result")))


# ── options ───────────────────────────────────────────────────────────


def _render_options(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    d = result.data
    rows = d.get("tree")
    if rows is not None:
        for row in rows:
            indent = "  " * int(row.get("level", 0))
            console.print(
                f"{indent}[form.code]{escape(str(row['code']))}[/form.code]"
                f"  {escape(str(row['displayText']))}"
            )
    else:
        table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
        table.add_column("Code", style="form.code", no_wrap=True)
        table.add_column("Display Text")
        table.add_column("Parent", style="dim")
        for item in d.get("items", []):
            table.add_row(
                Text(str(item.get("code", ""))),
                Text(str(item.get("displayText", ""))),
                Text(str(item.get("parentCode", "") or "")),
            )
        console.print(table)
    count = len(d.get("items", []))
    console.print(Text(f"\n{count} options ({d.get('cache_key', d.get('category', ''))})"))


# ── rows ──────────────────────────────────────────────────────────────


def _render_rows(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    d = result.data
    columns: list[str] = d.get("columns", [])
    rows: list[dict[str, Any]] = d.get("rows", [])
    sort = d.get("sort")

    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    table.add_column("#", style="dim", justify="right")
    for col in columns:
        header = col
        if col == sort:
            header += " ▲" if d.get("direction") == "asc" else " ▼"
        table.add_column(Text(header))
    if any(row.get("actions") for row in rows):
        table.add_column("Actions", style="dim")
        show_actions = True
    else:
        show_actions = False

    for row in rows:
        value = row.get("value", {})
        cells = [Text(str(row["index"]))]
        for col in columns:
            cell = value.get(col)
            cells.append(Text("" if cell is None else str(cell)))
        if show_actions:
            cells.append(Text(", ".join(row.get("actions", []))))
        table.add_row(*cells)
    console.print(table)

    filtered = d.get("filtered_count", 0)
    console.print(
        f"\n{d.get('start_item', 0)}-{d.get('end_item', 0)} of {filtered} rows"
        f"  (page {d.get('page', 1)}/{d.get('page_count', 1)})"
    )


# ── check ─────────────────────────────────────────────────────────────


def _render_check(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    _status_line(console, result)
    d = result.data
    _field(console, "entries", d.get("entries", 0))
    unknown: dict[str, list[str]] = d.get("unknown", {})
    for code, refs in unknown.items():
        for ref in refs:
            line = Text("  ")
            line.append("warning", style="form.warning")
            line.append(f" {code} references unknown {ref!r}")
            console.print(line)
    if not unknown:
        console.print("  no issues found")


# ── generic ───────────────────────────────────────────────────────────


def _render_generic(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    _status_line(console, result)
    for key, value in result.data.items():
        _field(console, key, value)
    if verbose:
        _render_meta(console, result)


_OP_RENDERERS: dict[str, Any] = {
    "resolve": _render_resolve,
    "compile": _render_compile,
    "eval": _render_eval,
    "options": _render_options,
    "rows": _render_rows,
    "check": _render_check,
}

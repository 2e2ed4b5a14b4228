"""JSON/YAML document loading for schemas, libraries, and domain data.

The format is picked by suffix: ``.json`` is parsed as JSON, anything else
with ruamel.yaml's safe loader (YAML is a superset of JSON, so this also
accepts JSON files with unusual suffixes).
"""

from __future__ import annotations

import json
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from formctl.domain.errors import DocumentError

JSON_SUFFIXES = frozenset({".json"})


def parse_document(text: str, *, fmt: str = "yaml", source: str = "<string>") -> Any:
    """Parse *text* as JSON or YAML.

    Raises:
        DocumentError: If the text is not well-formed.
    """
    try:
        if fmt == "json":
            return json.loads(text)
        return YAML(typ="safe").load(text)
    except (ValueError, YAMLError) as exc:
        raise DocumentError(f"Invalid document {source}: {exc}") from exc


def load_document(path: Path) -> Any:
    """Read and parse one document file.

    Raises:
        DocumentError: If the file is missing, unreadable, or malformed.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeError) as exc:
        raise DocumentError(f"Cannot read {path}: {exc}") from exc
    fmt = "json" if path.suffix.lower() in JSON_SUFFIXES else "yaml"
    return parse_document(text, fmt=fmt, source=str(path))


def load_mapping(path: Path) -> dict[str, Any]:
    """Load a document whose top level must be a mapping."""
    data = load_document(path)
    if not isinstance(data, dict):
        raise DocumentError(f"{path}: expected a mapping at the top level")
    return data


def load_library_files(paths: Iterable[Path]) -> dict[str, dict[str, Any]]:
    """Merge library files ``{code: definition}`` in order; later files win."""
    entries: dict[str, dict[str, Any]] = {}
    for path in paths:
        data = load_mapping(path)
        for code, definition in data.items():
            if not isinstance(definition, dict):
                raise DocumentError(f"{path}: entry {code!r} is not a mapping")
            entries[str(code)] = definition
    return entries

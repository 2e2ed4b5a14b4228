"""Dot-separated data paths.

Pure helpers shared by the model generator (placement and patching) and the
expression evaluator (context traversal).
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

SEPARATOR = "."


def split_path(path: str) -> list[str]:
    """Split ``"a.b.c"`` into segments, dropping empty ones."""
    return [part for part in path.split(SEPARATOR) if part]


def join_path(parent: str | None, key: str) -> str:
    """``parent.key``, or ``key`` at the root."""
    return f"{parent}{SEPARATOR}{key}" if parent else key


def get_by_path(obj: Any, path: str | Sequence[str], default: Any = None) -> Any:
    """Traverse *obj* along *path*.

    Mappings are indexed by key, lists and tuples by integer segment. Any
    missing segment yields *default* instead of raising.

    Examples:
        >>> get_by_path({"a": {"b": [10, 20]}}, "a.b.1")
        20
        >>> get_by_path({"a": None}, "a.b") is None
        True
    """
    parts = split_path(path) if isinstance(path, str) else list(path)
    current = obj
    for part in parts:
        if isinstance(current, Mapping):
            if part not in current:
                return default
            current = current[part]
        elif isinstance(current, (list, tuple)) and part.lstrip("-").isdigit():
            index = int(part)
            if not -len(current) <= index < len(current):
                return default
            current = current[index]
        else:
            return default
    return current

"""Control types and model node kinds.

Schema documents spell types loosely (``text``, ``TEXT``, ``Group``); every
spelling normalizes to one :class:`ControlType`. Each type maps to exactly one
:class:`ControlKind`, the shape of the model node it compiles to.
"""

from __future__ import annotations

from enum import StrEnum


class ControlType(StrEnum):
    """Control types understood by the compiler."""

    TEXT = "text"
    NUMBER = "number"
    CHECKBOX = "checkbox"
    SELECT = "select"
    DATE = "date"
    TREE = "tree"
    GROUP = "group"
    TABLE = "table"


class ControlKind(StrEnum):
    """Shape of the model node a control compiles to."""

    FIELD = "field"
    GROUP = "group"
    ROWSET = "rowset"


class SortDirection(StrEnum):
    """Row-view sort direction."""

    ASC = "asc"
    DESC = "desc"


_KINDS: dict[ControlType, ControlKind] = {
    ControlType.GROUP: ControlKind.GROUP,
    ControlType.TABLE: ControlKind.ROWSET,
}

# Types whose option list comes from static options or a domain category.
OPTION_TYPES: frozenset[ControlType] = frozenset({ControlType.SELECT, ControlType.TREE})


def normalize_type(raw: str | None) -> ControlType | None:
    """Normalize a raw type spelling. Returns None for unknown types.

    A missing type is ``text``.
    """
    if raw is None or raw == "":
        return ControlType.TEXT
    try:
        return ControlType(str(raw).strip().lower())
    except ValueError:
        return None


def kind_of(control_type: ControlType) -> ControlKind:
    """Model node kind for *control_type*."""
    return _KINDS.get(control_type, ControlKind.FIELD)


def initial_value(control_type: ControlType) -> bool | str:
    """Initial field value: ``False`` for checkboxes, empty string otherwise."""
    return False if control_type == ControlType.CHECKBOX else ""

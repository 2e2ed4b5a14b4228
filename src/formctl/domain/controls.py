"""Control definitions — the schema contract.

ControlDefinition attributes map 1:1 to the camelCase keys of a schema
document (``dataPath``, ``categoryCode``, ``visibleWhen`` ...).  Documents may
also use the snake_case field names.  Unknown keys are preserved as extras so
that UI-only attributes survive resolution untouched.

Sections are ordinary controls, usually typed ``group``.  A ``group`` without
a key is a purely visual section whose children live in the parent's
namespace.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from formctl.domain.types import ControlKind, ControlType, kind_of, normalize_type

logger = logging.getLogger(__name__)

_MODEL_CONFIG = ConfigDict(
    frozen=True,
    extra="allow",
    populate_by_name=True,
    alias_generator=to_camel,
)


class StaticOption(BaseModel):
    """Inline ``{label, value}`` option."""

    model_config = _MODEL_CONFIG

    label: str
    value: Any = None


class TablePagination(BaseModel):
    """``pagination`` block of a table control."""

    model_config = _MODEL_CONFIG

    enabled: bool = False
    page_size: int | None = None


class TableAction(BaseModel):
    """Header or per-row table action button."""

    model_config = _MODEL_CONFIG

    id: str
    label: str | None = None
    icon: str | None = None
    css_class: str | None = None
    visible_when: str | None = None
    aria_label: str | None = None


class ControlDefinition(BaseModel):
    """One schema node: a leaf field, a group, or a table."""

    model_config = _MODEL_CONFIG

    code: str | None = None
    key: str | None = None
    type: ControlType = ControlType.TEXT
    label: str | None = None
    placeholder: str | None = None
    hidden: bool | None = None
    readonly: bool | None = None
    width: Any = None

    data_path: str | None = None

    # Option sources
    options: list[StaticOption] | None = None
    category_code: str | None = None
    dependent_on: str | None = None

    # Conditional expressions
    visible_when: str | None = None
    disabled_when: str | None = None
    required_when: str | None = None

    # Validation, legacy object and direct properties
    validators: dict[str, Any] | None = None
    required: bool | None = None
    min_length: int | None = None
    max_length: int | None = None
    min: int | float | None = None
    max: int | float | None = None
    pattern: str | None = None
    email: bool | None = None

    # Children (groups) or column schema (tables)
    controls: list[ControlDefinition] | None = None

    # Table presentation
    pagination: TablePagination | None = None
    searchable: bool | None = None
    sortable: bool | None = None
    row_actions: list[TableAction] | None = None
    header_actions: list[TableAction] | None = None
    add_label: str | None = None
    max_inline_actions: int | None = None
    mobile_behavior: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _lift_domain_config(cls, data: Any) -> Any:
        """Lift legacy ``domainConfig: {categoryCode, dependentOn}`` to the top level."""
        if not isinstance(data, dict) or "domainConfig" not in data:
            return data
        data = dict(data)
        domain_config = data.pop("domainConfig") or {}
        for name in ("categoryCode", "dependentOn"):
            if name in domain_config and name not in data:
                data[name] = domain_config[name]
        return data

    @field_validator("type", mode="before")
    @classmethod
    def _normalize_type(cls, value: Any) -> ControlType:
        normalized = normalize_type(value)
        if normalized is None:
            logger.warning("Unknown control type %r, treating as text", value)
            return ControlType.TEXT
        return normalized

    # ------------------------------------------------------------------
    # Capabilities
    # ------------------------------------------------------------------

    @property
    def kind(self) -> ControlKind:
        """Model node kind this control compiles to."""
        return kind_of(self.type)

    @property
    def is_transparent(self) -> bool:
        """Keyless group: children splice into the parent's namespace."""
        return self.kind is ControlKind.GROUP and not self.key

    @property
    def children(self) -> list[ControlDefinition]:
        return list(self.controls or [])

    @property
    def conditions(self) -> dict[str, str]:
        """Non-empty conditional expressions keyed by ``visible``/``disabled``/``required``."""
        found = {
            "visible": self.visible_when,
            "disabled": self.disabled_when,
            "required": self.required_when,
        }
        return {name: expr for name, expr in found.items() if expr and expr.strip()}

    def to_raw(self) -> dict[str, Any]:
        """Document form: camelCase keys, only the fields that were set."""
        return self.model_dump(by_alias=True, exclude_unset=True, mode="json")


class FormSchema(BaseModel):
    """A form document: header plus ordered top-level controls."""

    model_config = _MODEL_CONFIG

    code: str = ""
    version: str = ""
    label: str = ""
    sections: list[ControlDefinition] = Field(default_factory=list)

    @field_validator("version", mode="before")
    @classmethod
    def _version_as_text(cls, value: Any) -> str:
        return "" if value is None else str(value)

    def to_raw(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_unset=True, mode="json")

    def iter_controls(self) -> list[ControlDefinition]:
        """All controls, depth-first in document order (table columns included)."""
        found: list[ControlDefinition] = []
        stack = list(reversed(self.sections))
        while stack:
            control = stack.pop()
            found.append(control)
            stack.extend(reversed(control.children))
        return found


class DomainValue(BaseModel):
    """An option entry from a domain category (flat list or tree node)."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    code: str | int
    display_text: str = ""
    parent_code: str | int | None = None
    extension: Any = None

    @classmethod
    def from_option(cls, option: StaticOption) -> DomainValue:
        """Static ``{label, value}`` option as a domain value."""
        code = option.value if isinstance(option.value, (str, int)) else str(option.value)
        return cls(code=code, display_text=option.label)


_ALIASES: dict[str, str] = {
    name: field.alias or name for name, field in ControlDefinition.model_fields.items()
}


def normalize_keys(raw: dict[str, Any]) -> dict[str, Any]:
    """Rename snake_case field names in a raw control dict to their document aliases.

    Keeps the dict shallow; nested ``controls`` are normalized as they are visited.
    """
    return {_ALIASES.get(name, name): value for name, value in raw.items()}

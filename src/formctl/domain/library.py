"""Control library — symbolic code -> base control definition.

Schemas reference shared business fields tersely (``"employee.email"``) or
override them inline (``{"code": "employee.email", "label": "Work email"}``).
The library is plain data: entries are stored as raw document dicts because
their ``controls`` may themselves hold string references that only the
resolver can expand.

Libraries are passed explicitly down the compilation pipeline; there is no
global registry.  :meth:`ControlLibrary.builtin` returns a fresh copy of the
built-in entries each time.
"""

from __future__ import annotations

import copy
from collections.abc import Iterator, Mapping
from typing import Any

from formctl.domain.controls import ControlDefinition, normalize_keys

BUILTIN_CONTROLS: dict[str, dict[str, Any]] = {
    "employee.firstName": {
        "key": "firstName",
        "type": "text",
        "label": "First Name",
        "placeholder": "Enter first name",
        "validators": {"required": True, "minLength": 2},
    },
    "employee.lastName": {
        "key": "lastName",
        "type": "text",
        "label": "Last Name",
        "validators": {"required": True},
    },
    "employee.hasNickName": {
        "key": "hasNickName",
        "type": "checkbox",
        "label": "Has Nickname",
    },
    "employee.email": {
        "key": "email",
        "type": "text",
        "label": "Email Address",
        "validators": {"required": True, "email": True},
    },
    "employee.department": {
        "key": "department",
        "type": "tree",
        "label": "Department",
        "categoryCode": "department",
        "validators": {"required": True},
    },
    "address.street": {
        "key": "street",
        "type": "text",
        "label": "Street Address",
    },
    "address.city": {
        "key": "city",
        "type": "text",
        "label": "City",
    },
    "address.countryCode": {
        "key": "countryCode",
        "type": "select",
        "label": "Country",
        "categoryCode": "country",
    },
    "address.stateCode": {
        "key": "stateCode",
        "type": "select",
        "label": "State/Province",
        "categoryCode": "state",
        "dependentOn": "countryCode",
        "disabledWhen": "model.countryCode == null",
    },
    "organization.division": {
        "key": "division",
        "type": "tree",
        "label": "Division",
        "options": [
            {"label": "Engineering", "value": "ENG"},
            {"label": "Frontend", "value": "ENG-FE"},
            {"label": "Backend", "value": "ENG-BE"},
            {"label": "Sales", "value": "SALES"},
            {"label": "Enterprise", "value": "SALES-ENT"},
        ],
    },
}


def _normalize_entry(definition: Mapping[str, Any] | ControlDefinition) -> dict[str, Any]:
    if isinstance(definition, ControlDefinition):
        return definition.to_raw()
    if not isinstance(definition, Mapping):
        msg = f"Library entry must be a mapping, got {type(definition).__name__}"
        raise TypeError(msg)
    return normalize_keys(copy.deepcopy(dict(definition)))


class ControlLibrary:
    """Mapping of library code -> raw base definition."""

    def __init__(
        self,
        entries: Mapping[str, Mapping[str, Any] | ControlDefinition] | None = None,
    ) -> None:
        self._entries: dict[str, dict[str, Any]] = {}
        if entries:
            self.update(entries)

    @classmethod
    def builtin(cls) -> ControlLibrary:
        return cls(BUILTIN_CONTROLS)

    def register(self, code: str, definition: Mapping[str, Any] | ControlDefinition) -> None:
        """Add or replace one entry.

        Raises:
            TypeError: If *definition* is not a mapping.
            ValueError: If *code* is empty.
        """
        if not code:
            raise ValueError("Library code must be non-empty")
        self._entries[code] = _normalize_entry(definition)

    def update(self, entries: Mapping[str, Mapping[str, Any] | ControlDefinition]) -> None:
        for code, definition in entries.items():
            self.register(code, definition)

    def raw(self, code: str | None) -> dict[str, Any] | None:
        """Deep copy of the entry for *code*, or None."""
        if code is None or code not in self._entries:
            return None
        return copy.deepcopy(self._entries[code])

    def __contains__(self, code: object) -> bool:
        return code in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def references(self, code: str) -> list[str]:
        """String references anywhere inside the entry's children, in order."""
        entry = self._entries.get(code)
        if entry is None:
            return []
        found: list[str] = []
        stack: list[Any] = list(reversed(entry.get("controls") or []))
        while stack:
            child = stack.pop()
            if isinstance(child, str):
                found.append(child)
            elif isinstance(child, Mapping):
                if isinstance(child.get("code"), str) and child["code"] in self._entries:
                    found.append(child["code"])
                stack.extend(reversed(child.get("controls") or []))
        return found

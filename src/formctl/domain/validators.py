"""Validator derivation and checks.

A control's validators are collected from two sources, both applied
unconditionally when present:

- New-style direct properties: ``required``, ``minLength``, ``maxLength``,
  ``min``, ``max``, ``pattern``, ``email``.
- The legacy ``validators`` object with the same names.

Neither source takes precedence; conflicting constraints (``required: false``
plus ``validators: {required: true}``) union, so the stricter rule applies.

Checks follow the usual form-library semantics: only ``required`` rejects an
empty value, every other validator passes on empty input.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from formctl.domain.controls import ControlDefinition

# Same address syntax as the common browser/form-library email check.
_EMAIL = re.compile(
    r"^(?=.{1,254}$)(?=.{1,64}@)[a-zA-Z0-9!#$%&'*+/=?^_`{|}~-]+"
    r"(?:\.[a-zA-Z0-9!#$%&'*+/=?^_`{|}~-]+)*@[a-zA-Z0-9]"
    r"(?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?"
    r"(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)*$"
)


def is_empty(value: Any) -> bool:
    """None, empty string, or an empty collection."""
    if value is None:
        return True
    if isinstance(value, (str, list, tuple, dict)):
        return len(value) == 0
    return False


@dataclass(frozen=True)
class Validator:
    """One named constraint, e.g. ``Validator("minLength", 2)``."""

    name: str
    arg: Any = None

    def check(self, value: Any) -> dict[str, Any] | None:
        """Return an error detail dict, or None when *value* passes."""
        if self.name == "required":
            return {"required": True} if is_empty(value) else None
        if is_empty(value):
            return None
        if self.name in ("minLength", "maxLength"):
            if not hasattr(value, "__len__"):
                return None
            length = len(value)
            failed = length < self.arg if self.name == "minLength" else length > self.arg
            return {"required_length": self.arg, "actual_length": length} if failed else None
        if self.name in ("min", "max"):
            number = _as_number(value)
            if number is None:
                return None
            failed = number < self.arg if self.name == "min" else number > self.arg
            return {self.name: self.arg, "actual": value} if failed else None
        if self.name == "pattern":
            return None if re.fullmatch(str(self.arg), str(value)) else {"pattern": self.arg}
        if self.name == "email":
            return None if _EMAIL.match(str(value)) else {"email": True}
        return None


def _as_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return None if math.isnan(number) else number


def derive_validators(control: ControlDefinition) -> list[Validator]:
    """Collect validators from direct properties and the legacy object."""
    found: list[Validator] = []

    if control.required:
        found.append(Validator("required"))
    if control.min_length:
        found.append(Validator("minLength", control.min_length))
    if control.max_length and control.max_length > 0:
        found.append(Validator("maxLength", control.max_length))
    if control.min is not None:
        found.append(Validator("min", control.min))
    if control.max is not None:
        found.append(Validator("max", control.max))
    if control.pattern:
        found.append(Validator("pattern", control.pattern))
    if control.email:
        found.append(Validator("email"))

    legacy = control.validators or {}
    if legacy.get("required"):
        found.append(Validator("required"))
    for name in ("min", "max"):
        if legacy.get(name) is not None:
            found.append(Validator(name, legacy[name]))
    for name in ("minLength", "maxLength", "pattern"):
        if legacy.get(name):
            found.append(Validator(name, legacy[name]))
    if legacy.get("email"):
        found.append(Validator("email"))

    return found


def run_validators(validators: list[Validator], value: Any) -> dict[str, Any]:
    """Errors keyed by validator name; the first failure per name wins."""
    errors: dict[str, Any] = {}
    for validator in validators:
        if validator.name in errors:
            continue
        detail = validator.check(value)
        if detail is not None:
            errors[validator.name] = detail
    return errors

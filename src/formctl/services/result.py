"""ServiceResult and ServiceError — what the facade hands to the CLI.

Core pipeline classes (resolver, generator, bindings) return plain domain
objects.  Only :class:`formctl.services.forms.FormService` wraps outcomes in a
ServiceResult, so the CLI renders every operation the same way.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class ServiceError(BaseModel):
    """Structured error payload, e.g. ``SCHEMA_CYCLE`` with the reference chain."""

    model_config = {"frozen": True}

    code: str
    message: str
    detail: dict[str, Any] = Field(default_factory=dict)


class ServiceResult(BaseModel):
    """Outcome of one facade operation.

    Attributes:
        ok: Whether the operation succeeded.
        op: Operation name (``"resolve"``, ``"compile"``, ``"options"`` ...).
        data: Operation payload on success.
        warnings: Developer warnings collected while running.
        error: Structured error if ``ok`` is False.
        meta: Optional extras (input file, counts).
    """

    model_config = {"frozen": True}

    ok: bool
    op: str
    data: dict[str, Any] = Field(default_factory=dict)
    warnings: list[str] = Field(default_factory=list)
    error: ServiceError | None = None
    meta: dict[str, Any] | None = None

    @classmethod
    def failure(
        cls,
        op: str,
        code: str,
        message: str,
        **detail: Any,
    ) -> ServiceResult:
        return cls(ok=False, op=op, error=ServiceError(code=code, message=message, detail=detail))

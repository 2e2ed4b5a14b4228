"""Exception types raised by the compiler.

Only :class:`SchemaCycleError` and :class:`DocumentError` ever reach callers.
:class:`ExpressionError` is raised by the expression parser and converted to a
``False`` result inside :func:`formctl.domain.expressions.evaluate`.
"""

from __future__ import annotations

from collections.abc import Sequence


class FormctlError(Exception):
    """Base class for formctl errors."""


class SchemaCycleError(FormctlError):
    """A control library entry references itself, directly or transitively."""

    def __init__(self, chain: Sequence[str], message: str | None = None) -> None:
        self.chain = list(chain)
        super().__init__(message or f"Control reference cycle: {' -> '.join(self.chain)}")


class ExpressionError(FormctlError):
    """Malformed condition expression."""


class DocumentError(FormctlError):
    """A schema, library, or domain-data document could not be read."""

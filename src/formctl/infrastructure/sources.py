"""Domain-data sources — where select and tree options come from.

A source answers ``fetch(category, parent)`` with the domain values of one
category, narrowed to the children of *parent* when one is given.  The option
provider wraps any source with request sharing and caching, so sources stay
simple and stateless.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from pydantic import ValidationError

from formctl.domain.controls import DomainValue
from formctl.domain.errors import DocumentError
from formctl.infrastructure.documents import load_mapping

logger = logging.getLogger(__name__)


@runtime_checkable
class DomainDataSource(Protocol):
    """Async provider of domain values for a category."""

    async def fetch(self, category: str, parent: str | None = None) -> Sequence[DomainValue]: ...


def _coerce(record: DomainValue | Mapping[str, Any]) -> DomainValue:
    if isinstance(record, DomainValue):
        return record
    return DomainValue.model_validate(record)


class StaticDomainSource:
    """In-memory source: category -> ordered records.

    With a parent, only records whose ``parentCode`` equals it (compared as
    text) are returned; record order is preserved.  Unknown categories yield
    an empty list.
    """

    def __init__(
        self, data: Mapping[str, Iterable[DomainValue | Mapping[str, Any]]] | None = None
    ) -> None:
        self._data: dict[str, list[DomainValue]] = {
            category: [_coerce(record) for record in records]
            for category, records in (data or {}).items()
        }

    @property
    def categories(self) -> list[str]:
        return list(self._data)

    async def fetch(self, category: str, parent: str | None = None) -> list[DomainValue]:
        records = self._data.get(category)
        if records is None:
            logger.debug("Unknown domain category %r", category)
            return []
        if parent is None or parent == "":
            return list(records)
        wanted = str(parent)
        return [
            record
            for record in records
            if record.parent_code is not None and str(record.parent_code) == wanted
        ]


def load_domain_file(path: Path) -> StaticDomainSource:
    """Build a :class:`StaticDomainSource` from a ``{category: [records]}`` document.

    Raises:
        DocumentError: If the document is unreadable or a record is malformed.
    """
    data = load_mapping(path)
    for category, records in data.items():
        if not isinstance(records, list):
            raise DocumentError(f"{path}: category {category!r} must be a list of records")
    try:
        return StaticDomainSource(data)
    except ValidationError as exc:
        raise DocumentError(f"{path}: invalid domain record: {exc}") from exc

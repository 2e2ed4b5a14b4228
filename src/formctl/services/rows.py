"""Row-view pipeline for table controls.

A :class:`TableView` derives what a table shows from its row-set, always in
the same order:

1. **filter**: when the table is ``searchable``, keep rows where any scalar
   value contains the search term (case-insensitive);
2. **sort**: when the table is ``sortable``, a stable sort on one column with
   empty values (``None`` or absent) last in either direction;
3. **paginate**: when ``pagination.enabled``, slice out the current page.

The filtered and sorted row order is cached and recomputed after any value
event of the owning model, any row-set change, or any view change.  Rows are
always reported with their index in the underlying row-set, so actions act
on the right row whatever the current view order.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from functools import cmp_to_key
from typing import Any

from formctl.domain.controls import ControlDefinition, TableAction
from formctl.domain.expressions import evaluate
from formctl.domain.model import FormModel, GroupNode, RowSetNode, ValueChange
from formctl.domain.types import SortDirection

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 10
DELETE_ACTION = "delete"


@dataclass(frozen=True)
class ActionEvent:
    """A triggered table action; header actions carry no row."""

    action_id: str
    form_key: str
    row_index: int | None = None
    row_value: dict[str, Any] | None = None


ActionListener = Callable[[ActionEvent], None]


def _search_text(value: Any) -> str | None:
    if value is None or isinstance(value, (Mapping, list, tuple)):
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def row_matches(row: Mapping[str, Any], term: str) -> bool:
    """True when any scalar value of *row* contains *term*, ignoring case."""
    needle = term.lower()
    for value in row.values():
        text = _search_text(value)
        if text and needle in text.lower():
            return True
    return False


def _compare(a: Any, b: Any) -> int:
    try:
        if a < b:
            return -1
        if a > b:
            return 1
        return 0
    except TypeError:
        left, right = str(a), str(b)
        return (left > right) - (left < right)


class TableView:
    """Filter/sort/paginate state over one row-set.

    Parameters:
        rowset: The row-set backing the table.
        control: The table's control definition (view flags and actions).
        model: Owning model; its value events invalidate the cached view.
        default_page_size: Page size when pagination omits ``pageSize``.
    """

    def __init__(
        self,
        rowset: RowSetNode,
        control: ControlDefinition,
        model: FormModel | None = None,
        *,
        default_page_size: int = DEFAULT_PAGE_SIZE,
    ) -> None:
        self.rowset = rowset
        self.control = control
        self.key = control.key or ""
        pagination = control.pagination
        self.paginated = bool(pagination and pagination.enabled)
        size = pagination.page_size if pagination and pagination.page_size else None
        self.page_size = size if size and size > 0 else default_page_size
        self.searchable = bool(control.searchable)
        self.sortable = bool(control.sortable)

        self.search = ""
        self.sort_column: str | None = None
        self.sort_direction = SortDirection.ASC
        self.page = 1

        self._listeners: list[ActionListener] = []
        self._order: list[int] | None = None
        self._order_version = -1
        self._subscription = model.subscribe(self._on_change) if model is not None else None

    # ------------------------------------------------------------------
    # View configuration
    # ------------------------------------------------------------------

    def set_search(self, text: str) -> None:
        """Set the search term and return to the first page."""
        self.search = text or ""
        self.page = 1
        self.invalidate()

    def sort_by(self, column: str) -> None:
        """Sort by *column*; repeating the current column flips the direction."""
        if not self.sortable:
            return
        if self.sort_column == column:
            ascending = self.sort_direction is SortDirection.ASC
            self.sort_direction = SortDirection.DESC if ascending else SortDirection.ASC
        else:
            self.sort_column = column
            self.sort_direction = SortDirection.ASC
        self.invalidate()

    def set_page(self, page: int) -> None:
        """Go to *page*, clamped into ``1..page_count``."""
        self.page = min(max(1, page), self.page_count)

    def invalidate(self) -> None:
        self._order = None

    def _on_change(self, change: ValueChange) -> None:
        self.invalidate()

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    def _ordered_indexes(self) -> list[int]:
        if self._order is not None and self._order_version == self.rowset.version:
            return self._order

        values = [row.value for row in self.rowset.rows]
        indexes = list(range(len(values)))

        term = self.search.strip()
        if self.searchable and term:
            indexes = [i for i in indexes if row_matches(values[i], term)]

        column = self.sort_column
        if self.sortable and column:
            present = [i for i in indexes if values[i].get(column) is not None]
            missing = [i for i in indexes if values[i].get(column) is None]
            present.sort(
                key=cmp_to_key(lambda a, b: _compare(values[a][column], values[b][column])),
                reverse=self.sort_direction is SortDirection.DESC,
            )
            indexes = present + missing

        self._order = indexes
        self._order_version = self.rowset.version
        return indexes

    @property
    def filtered_count(self) -> int:
        return len(self._ordered_indexes())

    @property
    def page_count(self) -> int:
        if not self.paginated:
            return 1
        return max(1, math.ceil(self.filtered_count / self.page_size))

    def view_indexes(self) -> list[int]:
        """Row-set indexes of the rows on the current page, in view order."""
        indexes = self._ordered_indexes()
        if not self.paginated:
            return list(indexes)
        start = (self.page - 1) * self.page_size
        return indexes[start : start + self.page_size]

    def view_rows(self) -> list[tuple[int, GroupNode]]:
        """``(row-set index, row)`` pairs on the current page."""
        return [(index, self.rowset.rows[index]) for index in self.view_indexes()]

    def view_values(self) -> list[dict[str, Any]]:
        return [row.value for _, row in self.view_rows()]

    @property
    def start_item(self) -> int:
        """1-based number of the first row on the page (0 when empty)."""
        if self.filtered_count == 0:
            return 0
        if not self.paginated:
            return 1
        return (self.page - 1) * self.page_size + 1

    @property
    def end_item(self) -> int:
        if not self.paginated:
            return self.filtered_count
        return min(self.page * self.page_size, self.filtered_count)

    # ------------------------------------------------------------------
    # Row operations
    # ------------------------------------------------------------------

    def add_row(self, values: Mapping[str, Any] | None = None) -> int:
        """Append a fresh row and jump to the page that holds the last row."""
        row = self.rowset.new_row()
        if values:
            row.patch_value(values)
        self.rowset.append(row)
        self.invalidate()
        if self.paginated:
            self.page = max(1, math.ceil(len(self.rowset) / self.page_size))
        return len(self.rowset) - 1

    def remove_row(self, index: int) -> None:
        """Remove the row at row-set *index* and clamp the page back into range."""
        self.rowset.remove_at(index)
        self.invalidate()
        if self.page > self.page_count:
            self.page = self.page_count

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def visible_actions(self, index: int) -> list[TableAction]:
        """Row actions whose ``visibleWhen`` holds for ``{"row": <row values>}``."""
        context = {"row": self.rowset.rows[index].value}
        return [
            action
            for action in self.control.row_actions or []
            if not action.visible_when or evaluate(action.visible_when, context)
        ]

    def split_actions(self, index: int) -> tuple[list[TableAction], list[TableAction]]:
        """Visible row actions split into inline buttons and an overflow menu."""
        actions = self.visible_actions(index)
        limit = self.control.max_inline_actions
        if limit is None or limit < 0 or len(actions) <= limit:
            return actions, []
        return actions[:limit], actions[limit:]

    @property
    def header_actions(self) -> list[TableAction]:
        return list(self.control.header_actions or [])

    def add_listener(self, listener: ActionListener) -> None:
        self._listeners.append(listener)

    def trigger_action(self, action_id: str, index: int | None = None) -> ActionEvent:
        """Emit an :class:`ActionEvent`; ``delete`` on a row also removes it.

        Raises:
            IndexError: If *index* is not a row of the table.
        """
        if index is not None and not 0 <= index < len(self.rowset.rows):
            raise IndexError(f"row {index} out of range for table {self.key!r}")
        row_value = self.rowset.rows[index].value if index is not None else None
        event = ActionEvent(action_id, self.key, index, row_value)
        for listener in list(self._listeners):
            listener(event)
        if action_id == DELETE_ACTION and index is not None:
            self.remove_row(index)
        logger.debug("Table %r action %r on row %s", self.key, action_id, index)
        return event

    def close(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None
        self._listeners.clear()

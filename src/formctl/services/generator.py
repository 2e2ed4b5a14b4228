"""FormModelGenerator — resolved schema -> addressable form model.

Path rule, in priority order:

1. explicit ``dataPath`` (absolute, intermediate groups created on demand);
2. ``<parentPath>.<key>`` when nested in a keyed group;
3. bare ``key`` at the root.

A keyless ``group`` is transparent: its children land in the parent's
namespace.  A keyed ``group`` opens one nesting level.  A ``table`` becomes a
row-set whose ``controls`` are the per-row column schema.  Any other control
without a key cannot be addressed and is skipped.

Patching rebuilds row-sets from the incoming arrays first, then patches every
remaining value in one pass, so row-level values always have a home.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from functools import partial
from typing import Any

from formctl.domain.controls import ControlDefinition, FormSchema
from formctl.domain.model import FieldNode, FormModel, GroupNode, Node, PathMap, RowSetNode
from formctl.domain.paths import get_by_path, join_path, split_path
from formctl.domain.types import ControlKind, initial_value
from formctl.domain.validators import derive_validators

logger = logging.getLogger(__name__)


def resolve_data_path(control: ControlDefinition, parent_path: str | None) -> str:
    """Absolute data path for a keyed *control*."""
    if control.data_path:
        return control.data_path
    return join_path(parent_path, control.key or "")


def get_control(model: FormModel, key: str) -> Node | None:
    """Node for control *key*, or None when the key is unknown."""
    return model.get_control(key)


def get_data_path(model: FormModel, key: str) -> str | None:
    """Data path for control *key*, or None when the key is unknown."""
    return model.get_data_path(key)


class FormModelGenerator:
    """Builds :class:`FormModel` instances and patches data into them."""

    def to_model(self, schema: FormSchema) -> FormModel:
        """Instantiate the model tree and its path map for *schema*."""
        root = GroupNode()
        paths: dict[str, str] = {}
        self._build(schema.sections, root, None, paths)
        model = FormModel(root, PathMap(paths), schema)
        logger.debug("Built model for %r with %d addressable keys", schema.code, len(paths))
        return model

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    def _build(
        self,
        controls: Sequence[ControlDefinition],
        root: GroupNode,
        parent_path: str | None,
        paths: dict[str, str],
    ) -> None:
        for control in controls:
            if control.is_transparent:
                self._build(control.children, root, parent_path, paths)
                continue
            if not control.key:
                logger.debug("Skipping control without key (label=%r)", control.label)
                continue

            path = resolve_data_path(control, parent_path)
            previous = paths.get(control.key)
            if previous is not None and previous != path:
                logger.warning(
                    "Duplicate control key %r: %s replaces %s", control.key, path, previous
                )
            paths[control.key] = path

            placed = self._place(root, path, self.create_node(control))
            if placed is not None and control.kind is ControlKind.GROUP:
                self._build(control.children, root, path, paths)

    def create_node(self, control: ControlDefinition) -> Node:
        """Fresh node for one control (children not included)."""
        if control.kind is ControlKind.GROUP:
            return GroupNode()
        if control.kind is ControlKind.ROWSET:
            if not control.children:
                logger.warning("Table %r has no column definitions", control.key)
            return RowSetNode(
                control.children,
                row_factory=partial(self.create_row_group, control.children),
                validators=derive_validators(control),
            )
        return FieldNode(initial_value(control.type), derive_validators(control))

    def create_row_group(self, columns: Sequence[ControlDefinition] | None) -> GroupNode:
        """One row for a table: a field per keyed column, fresh initial values."""
        row = GroupNode()
        if not columns:
            logger.warning("Table control has no column definitions, row is empty")
            return row
        for column in columns:
            if not column.key:
                continue
            row.add(column.key, FieldNode(initial_value(column.type), derive_validators(column)))
        return row

    @staticmethod
    def _place(root: GroupNode, path: str, node: Node) -> Node | None:
        """Attach *node* at absolute *path*, creating intermediate groups.

        Returns the node now living at *path* (an existing group is reused
        when a group lands on it), or None on a path conflict.
        """
        parts = split_path(path)
        if not parts:
            logger.warning("Empty data path, control skipped")
            return None
        container = root
        for index, part in enumerate(parts[:-1]):
            child = container.children.get(part)
            if child is None:
                child = container.add(part, GroupNode())
            elif not isinstance(child, GroupNode):
                logger.warning(
                    "Path conflict at %s: cannot nest %s below a non-group",
                    ".".join(parts[: index + 1]),
                    path,
                )
                return None
            container = child

        name = parts[-1]
        existing = container.children.get(name)
        if isinstance(existing, GroupNode) and isinstance(node, GroupNode):
            return existing
        if existing is not None:
            logger.warning("Path conflict at %s: existing node replaced", path)
        return container.add(name, node)

    # ------------------------------------------------------------------
    # Patching
    # ------------------------------------------------------------------

    def patch_form(
        self,
        model: FormModel,
        data: Mapping[str, Any] | None,
        schema: FormSchema | None = None,
    ) -> None:
        """Load *data* into *model*, rebuilding row-sets before the bulk patch.

        Subscribers see a single change event for the whole patch.
        """
        if not isinstance(data, Mapping):
            return
        schema = schema or model.schema
        with model.batch():
            self._rebuild_rowsets(model, data, schema.sections, None)
            model.root.patch_value(data)

    def _rebuild_rowsets(
        self,
        model: FormModel,
        data: Mapping[str, Any],
        controls: Sequence[ControlDefinition],
        parent_path: str | None,
    ) -> None:
        for control in controls:
            if control.is_transparent:
                self._rebuild_rowsets(model, data, control.children, parent_path)
                continue
            if not control.key:
                continue
            path = resolve_data_path(control, parent_path)

            if control.kind is ControlKind.ROWSET:
                items = get_by_path(data, path)
                node = model.get(path)
                if not isinstance(items, list) or not isinstance(node, RowSetNode):
                    continue
                node.clear()
                for item in items:
                    row = node.new_row()
                    row.patch_value(item)
                    node.append(row)
            elif control.kind is ControlKind.GROUP:
                self._rebuild_rowsets(model, data, control.children, path)

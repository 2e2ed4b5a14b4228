"""Form model — addressable value tree plus the observable value store.

The model is a tree isomorphic to the resolved schema.  Every node is one of:

- :class:`FieldNode`: a scalar value with validators and enablement state.
- :class:`GroupNode`: an ordered mapping of named child nodes.
- :class:`RowSetNode`: a dynamically sized sequence of row groups (tables).

:class:`FormModel` owns the root group, the immutable :class:`PathMap`
(control key -> absolute dot path) and an explicit subscriber list.  Every
mutation is reported to subscribers as a :class:`ValueChange` carrying a deep
copy of the root value taken when the event fired, so observers always see a
consistent snapshot.  ``FormModel.batch()`` coalesces nested mutations into
one event.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Callable, Iterator, Mapping, Sequence
from contextlib import contextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, ClassVar

from formctl.domain.paths import split_path
from formctl.domain.types import ControlKind
from formctl.domain.validators import Validator, run_validators

if TYPE_CHECKING:
    from formctl.domain.controls import ControlDefinition, FormSchema

logger = logging.getLogger(__name__)

_REQUIRED = Validator("required")


@dataclass(frozen=True)
class ValueChange:
    """One value-store event."""

    path: str  # "" when a batch touched several nodes
    value: Any
    snapshot: dict[str, Any]


Listener = Callable[[ValueChange], None]


# ---------------------------------------------------------------------------
# Nodes
# ---------------------------------------------------------------------------


class Node:
    """Common parent/ownership plumbing for model nodes."""

    kind: ClassVar[ControlKind]

    def __init__(self) -> None:
        self._parent: GroupNode | RowSetNode | None = None
        self._name: str = ""
        self._owner: FormModel | None = None

    @property
    def parent(self) -> GroupNode | RowSetNode | None:
        return self._parent

    @property
    def path(self) -> str:
        """Absolute dot path of this node ("" for the root)."""
        parts: list[str] = []
        node: Node | None = self
        while node is not None and node._parent is not None:
            parts.append(node._parent.child_name(node))
            node = node._parent
        return ".".join(reversed(parts))

    @property
    def owner(self) -> FormModel | None:
        node: Node = self
        while node._parent is not None:
            node = node._parent
        return node._owner

    @property
    def value(self) -> Any:
        raise NotImplementedError

    @property
    def valid(self) -> bool:
        raise NotImplementedError

    def patch_value(self, value: Any) -> None:
        raise NotImplementedError

    def _changed(self) -> None:
        owner = self.owner
        if owner is not None:
            owner.notify(self)


class FieldNode(Node):
    """Leaf value with validators."""

    kind = ControlKind.FIELD

    def __init__(self, initial: Any = "", validators: Sequence[Validator] = ()) -> None:
        super().__init__()
        self.initial = initial
        self.validators = list(validators)
        self._value: Any = initial
        self.disabled = False
        self.required_override = False

    @property
    def value(self) -> Any:
        return self._value

    def set_value(self, value: Any, *, emit: bool = True) -> None:
        self._value = value
        if emit:
            self._changed()

    def patch_value(self, value: Any) -> None:
        self.set_value(value)

    def reset(self) -> None:
        self.set_value(self.initial)

    @property
    def required(self) -> bool:
        return self.required_override or any(v.name == "required" for v in self.validators)

    @property
    def errors(self) -> dict[str, Any]:
        """Validation errors; disabled fields are never in error."""
        if self.disabled:
            return {}
        checks = self.validators + [_REQUIRED] if self.required_override else self.validators
        return run_validators(checks, self._value)

    @property
    def valid(self) -> bool:
        return not self.errors


class GroupNode(Node):
    """Ordered mapping of child nodes."""

    kind = ControlKind.GROUP

    def __init__(self) -> None:
        super().__init__()
        self.children: dict[str, Node] = {}

    def add(self, name: str, node: Node) -> Node:
        node._parent = self
        node._name = name
        self.children[name] = node
        return node

    def child_name(self, node: Node) -> str:
        return node._name

    def __contains__(self, name: object) -> bool:
        return name in self.children

    def __iter__(self) -> Iterator[str]:
        return iter(self.children)

    def get(self, path: str | Sequence[str]) -> Node | None:
        """Descend by dot path; row-sets are indexed by integer segment."""
        parts = split_path(path) if isinstance(path, str) else list(path)
        node: Node = self
        for part in parts:
            if isinstance(node, GroupNode):
                child = node.children.get(part)
            elif isinstance(node, RowSetNode) and part.isdigit() and int(part) < len(node):
                child = node.rows[int(part)]
            else:
                return None
            if child is None:
                return None
            node = child
        return node

    @property
    def value(self) -> dict[str, Any]:
        return {name: child.value for name, child in self.children.items()}

    def patch_value(self, value: Any) -> None:
        """Patch matching children; keys without a child are ignored."""
        if not isinstance(value, Mapping):
            return
        owner = self.owner
        with owner.batch() if owner is not None else _noop():
            for name, item in value.items():
                child = self.children.get(name)
                if child is not None:
                    child.patch_value(item)

    @property
    def valid(self) -> bool:
        return all(child.valid for child in self.children.values())


class RowSetNode(Node):
    """Dynamically sized sequence of row groups backing a table."""

    kind = ControlKind.ROWSET

    def __init__(
        self,
        columns: Sequence[ControlDefinition] = (),
        row_factory: Callable[[], GroupNode] | None = None,
        validators: Sequence[Validator] = (),
    ) -> None:
        super().__init__()
        self.columns = list(columns)
        self.rows: list[GroupNode] = []
        self.validators = list(validators)
        self.version = 0
        self._row_factory = row_factory or GroupNode

    def __len__(self) -> int:
        return len(self.rows)

    def __getitem__(self, index: int) -> GroupNode:
        return self.rows[index]

    def child_name(self, node: Node) -> str:
        return str(self.rows.index(node))  # type: ignore[arg-type]

    def new_row(self) -> GroupNode:
        """Fresh, detached row built from the column schema."""
        return self._row_factory()

    def append(self, row: GroupNode | None = None) -> GroupNode:
        row = row if row is not None else self.new_row()
        row._parent = self
        self.rows.append(row)
        self.version += 1
        self._changed()
        return row

    def remove_at(self, index: int) -> GroupNode:
        row = self.rows.pop(index)
        row._parent = None
        self.version += 1
        self._changed()
        return row

    def clear(self) -> None:
        for row in self.rows:
            row._parent = None
        self.rows.clear()
        self.version += 1
        self._changed()

    @property
    def value(self) -> list[dict[str, Any]]:
        return [row.value for row in self.rows]

    def patch_value(self, value: Any) -> None:
        """Patch existing rows by index; never adds or removes rows."""
        if not isinstance(value, Sequence) or isinstance(value, str):
            return
        owner = self.owner
        with owner.batch() if owner is not None else _noop():
            for row, item in zip(self.rows, value, strict=False):
                row.patch_value(item)

    @property
    def errors(self) -> dict[str, Any]:
        return run_validators(self.validators, self.rows)

    @property
    def valid(self) -> bool:
        return not self.errors and all(row.valid for row in self.rows)


@contextmanager
def _noop() -> Iterator[None]:
    yield


# ---------------------------------------------------------------------------
# PathMap
# ---------------------------------------------------------------------------


class PathMap(Mapping[str, str]):
    """Immutable mapping of control key -> absolute dot path."""

    def __init__(self, paths: Mapping[str, str] | None = None) -> None:
        self._paths: dict[str, str] = dict(paths or {})

    def __getitem__(self, key: str) -> str:
        return self._paths[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._paths)

    def __len__(self) -> int:
        return len(self._paths)

    def __repr__(self) -> str:
        return f"PathMap({self._paths!r})"

    def path_for(self, key: str) -> str | None:
        return self._paths.get(key)


# ---------------------------------------------------------------------------
# Value store
# ---------------------------------------------------------------------------


class Subscription:
    """Handle returned by :meth:`FormModel.subscribe`; also a context manager."""

    def __init__(self, model: FormModel, listener: Listener) -> None:
        self._model = model
        self._listener: Listener | None = listener

    @property
    def active(self) -> bool:
        return self._listener is not None

    def unsubscribe(self) -> None:
        if self._listener is None:
            return
        listeners = self._model._listeners
        for index, entry in enumerate(listeners):
            if entry is self._listener:
                del listeners[index]
                break
        self._listener = None

    def __enter__(self) -> Subscription:
        return self

    def __exit__(self, *exc: object) -> None:
        self.unsubscribe()


class FormModel:
    """One compiled form instance: root group, path map, and subscribers.

    Attributes:
        root: Root group node holding every addressable control.
        path_map: Control key -> data path, fixed at compile time.
        schema: The resolved schema the model was built from.
    """

    def __init__(self, root: GroupNode, path_map: PathMap, schema: FormSchema) -> None:
        self.root = root
        self.path_map = path_map
        self.schema = schema
        root._owner = self
        self._listeners: list[Listener] = []
        self._batch_depth = 0
        self._pending = False

    # --- lookups ---

    def get(self, path: str) -> Node | None:
        return self.root.get(path)

    def get_data_path(self, key: str) -> str | None:
        return self.path_map.path_for(key)

    def get_control(self, key: str) -> Node | None:
        path = self.path_map.path_for(key)
        return None if path is None else self.root.get(path)

    # --- values ---

    @property
    def value(self) -> dict[str, Any]:
        return self.root.value

    def snapshot(self) -> dict[str, Any]:
        return copy.deepcopy(self.root.value)

    def set_value(self, path: str, value: Any) -> None:
        """Set the field at *path*.

        Raises:
            KeyError: If *path* does not address a field.
        """
        node = self.root.get(path)
        if not isinstance(node, FieldNode):
            raise KeyError(path)
        node.set_value(value)

    @property
    def valid(self) -> bool:
        return self.root.valid

    def errors(self) -> dict[str, dict[str, Any]]:
        """Field errors keyed by absolute path."""
        found: dict[str, dict[str, Any]] = {}
        stack: list[Node] = [self.root]
        while stack:
            node = stack.pop()
            if isinstance(node, FieldNode):
                if node.errors:
                    found[node.path] = node.errors
            elif isinstance(node, GroupNode):
                stack.extend(node.children.values())
            elif isinstance(node, RowSetNode):
                if node.errors:
                    found[node.path] = node.errors
                stack.extend(node.rows)
        return dict(sorted(found.items()))

    # --- observers ---

    def subscribe(self, listener: Listener) -> Subscription:
        self._listeners.append(listener)
        return Subscription(self, listener)

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    @contextmanager
    def batch(self) -> Iterator[None]:
        """Coalesce every change inside the block into one event."""
        self._batch_depth += 1
        try:
            yield
        finally:
            self._batch_depth -= 1
            if self._batch_depth == 0 and self._pending:
                self._pending = False
                self._emit(ValueChange(path="", value=None, snapshot=self.snapshot()))

    def notify(self, node: Node) -> None:
        if self._batch_depth:
            self._pending = True
            return
        self._emit(ValueChange(path=node.path, value=node.value, snapshot=self.snapshot()))

    def _emit(self, change: ValueChange) -> None:
        for listener in list(self._listeners):
            try:
                listener(change)
            except Exception:
                logger.warning("Value listener failed for %r", change.path, exc_info=True)

    def close(self) -> None:
        """Drop every subscriber (form teardown)."""
        self._listeners.clear()

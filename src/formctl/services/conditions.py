"""ConditionBinder — keeps control state in step with conditional expressions.

Each keyed control may declare ``visibleWhen``, ``disabledWhen`` and
``requiredWhen``.  The binder evaluates them against ``{"model": snapshot}``
once when bound and again on every value-store event, then pushes the outcome
into the model:

- a control that is hidden (static ``hidden`` or ``visibleWhen`` false) or
  disabled has every field below it disabled, which drops it from validation;
- ``requiredWhen`` toggles a dynamic required check on the field.

State changes are attribute writes on the nodes and never emit value events.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from formctl.domain.controls import ControlDefinition
from formctl.domain.expressions import evaluate
from formctl.domain.model import FieldNode, FormModel, GroupNode, Node, RowSetNode, ValueChange
from formctl.domain.types import ControlKind
from formctl.services.generator import resolve_data_path


@dataclass(frozen=True)
class ControlState:
    visible: bool = True
    disabled: bool = False
    required: bool = False

    @property
    def active(self) -> bool:
        return self.visible and not self.disabled


DEFAULT_STATE = ControlState()


def evaluate_control(control: ControlDefinition, context: Mapping[str, Any]) -> ControlState:
    """Evaluate the three conditions of *control* against *context*."""
    visible = not control.hidden
    if visible and control.visible_when:
        visible = evaluate(control.visible_when, context)
    disabled = bool(control.disabled_when) and evaluate(control.disabled_when, context)
    required = bool(control.required_when) and evaluate(control.required_when, context)
    return ControlState(visible=visible, disabled=disabled, required=required)


def _set_disabled(node: Node | None, disabled: bool) -> None:
    if isinstance(node, FieldNode):
        node.disabled = disabled
    elif isinstance(node, GroupNode):
        for child in node.children.values():
            _set_disabled(child, disabled)
    elif isinstance(node, RowSetNode):
        for row in node.rows:
            _set_disabled(row, disabled)


class ConditionBinder:
    """Binds the conditional expressions of a model's schema to its nodes."""

    def __init__(self, model: FormModel) -> None:
        self._model = model
        self.states: dict[str, ControlState] = {}
        self._subscription = model.subscribe(self._on_change)
        self.refresh()

    @property
    def bound(self) -> bool:
        return self._subscription.active

    def state(self, key: str) -> ControlState:
        return self.states.get(key, DEFAULT_STATE)

    def refresh(self, snapshot: Mapping[str, Any] | None = None) -> None:
        """Re-evaluate every condition; *snapshot* defaults to the current value."""
        model_value = snapshot if snapshot is not None else self._model.snapshot()
        states: dict[str, ControlState] = {}
        self._apply(self._model.schema.sections, None, False, {"model": model_value}, states)
        self.states = states

    def _on_change(self, change: ValueChange) -> None:
        self.refresh(change.snapshot)

    def _apply(
        self,
        controls: Sequence[ControlDefinition],
        parent_path: str | None,
        inherited_off: bool,
        context: Mapping[str, Any],
        states: dict[str, ControlState],
    ) -> None:
        for control in controls:
            state = evaluate_control(control, context)
            off = inherited_off or not state.active
            if control.is_transparent:
                self._apply(control.children, parent_path, off, context, states)
                continue
            if not control.key:
                continue

            states[control.key] = state
            path = resolve_data_path(control, parent_path)
            node = self._model.get(path)
            if control.kind is ControlKind.GROUP:
                self._apply(control.children, path, off, context, states)
                continue
            _set_disabled(node, off)
            if isinstance(node, FieldNode):
                node.required_override = state.required

    def close(self) -> None:
        self._subscription.unsubscribe()

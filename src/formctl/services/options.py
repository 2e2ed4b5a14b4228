"""Cascading option provider — option lists for select and tree controls.

:class:`OptionProvider` wraps a :class:`DomainDataSource` with a replay
cache keyed ``category`` or ``category:parent``.  Repeated requests for a key
share the same in-flight or completed task; entries are only ever added, and
a failed fetch is evicted so a later request retries.

:class:`OptionBinding` drives one control:

- inline ``options`` are used as-is, no fetch;
- ``categoryCode`` without ``dependentOn`` loads once;
- with ``dependentOn`` the binding follows the parent field: it loads for the
  parent's current value on start, then on every distinct change read from
  the event snapshot.  An empty parent means no options and no fetch.

Only the latest parent transition may land.  Each request carries a
generation number and the previous waiter is cancelled; the shared cache task
itself is shielded so other controls reusing the key are unaffected.  After a
load, a selection missing from the new list is cleared.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from functools import partial
from typing import Any

from formctl.domain.controls import ControlDefinition, DomainValue
from formctl.domain.hierarchy import TreeState
from formctl.domain.model import FieldNode, FormModel, Subscription, ValueChange
from formctl.domain.paths import get_by_path
from formctl.domain.types import OPTION_TYPES, ControlType
from formctl.domain.validators import is_empty
from formctl.infrastructure.sources import DomainDataSource

logger = logging.getLogger(__name__)

Options = tuple[DomainValue, ...]

_UNSET: Any = object()


def cache_key(category: str, parent: Any = None) -> str:
    """``category`` or ``category:parent``."""
    if parent is None or parent == "":
        return category
    return f"{category}:{parent}"


def static_options(control: ControlDefinition) -> Options:
    """Inline ``{label, value}`` options as domain values."""
    return tuple(DomainValue.from_option(option) for option in control.options or [])


class OptionProvider:
    """Shared, memoized access to a domain-data source."""

    def __init__(self, source: DomainDataSource) -> None:
        self._source = source
        self._cache: dict[str, asyncio.Future[Options]] = {}

    @property
    def source(self) -> DomainDataSource:
        return self._source

    @property
    def cached_keys(self) -> list[str]:
        return list(self._cache)

    def get_options(self, category: str, parent: Any = None) -> asyncio.Future[Options]:
        """Shared task for ``(category, parent)``; must run inside an event loop.

        Await it through :func:`asyncio.shield` when the waiter may be
        cancelled, or use :meth:`fetch`.
        """
        key = cache_key(category, parent)
        cached = self._cache.get(key)
        if cached is not None:
            return cached
        parent_code = None if parent is None or parent == "" else str(parent)
        task = asyncio.ensure_future(self._load(category, parent_code))
        self._cache[key] = task
        task.add_done_callback(partial(self._settle, key))
        logger.debug("Fetching options for %s", key)
        return task

    async def fetch(self, category: str, parent: Any = None) -> Options:
        """Await the shared task without letting cancellation reach it."""
        return await asyncio.shield(self.get_options(category, parent))

    async def _load(self, category: str, parent: str | None) -> Options:
        values = await self._source.fetch(category, parent)
        return tuple(values)

    def _settle(self, key: str, task: asyncio.Future[Options]) -> None:
        if not task.cancelled() and task.exception() is None:
            return
        if self._cache.get(key) is task:
            del self._cache[key]
        if not task.cancelled():
            logger.warning("Option fetch for %s failed: %s", key, task.exception())

    def invalidate(self, category: str | None = None) -> None:
        """Drop cached entries (all, or those of one category)."""
        if category is None:
            self._cache.clear()
            return
        for key in [k for k in self._cache if k == category or k.startswith(f"{category}:")]:
            del self._cache[key]


class OptionBinding:
    """Live option list for one select or tree control of a form model.

    Attributes:
        options: Current option list.
        loading: True while a fetch for the latest parent value is pending.
        error: The exception of the latest failed fetch, else None.
        tree: Tree state for ``tree`` controls, rebuilt on every load.
    """

    def __init__(
        self, model: FormModel, control: ControlDefinition, provider: OptionProvider | None
    ) -> None:
        self.control = control
        self.key = control.key or ""
        self.options: Options = ()
        self.loading = False
        self.error: BaseException | None = None
        self.tree: TreeState | None = TreeState() if control.type is ControlType.TREE else None
        self._model = model
        self._provider = provider
        self._generation = 0
        self._task: asyncio.Task[None] | None = None
        self._parent_path: str | None = None
        self._parent_value: Any = _UNSET
        self._subscription: Subscription | None = None
        self._listeners: list[Callable[[OptionBinding], None]] = []
        self._closed = False

    # --- lifecycle ---

    def start(self) -> None:
        """Load the initial option list.

        Category-backed controls schedule fetches, so this must be called
        from a running event loop.
        """
        control = self.control
        if control.options:
            self._apply(static_options(control))
            return
        if not control.category_code:
            return
        if self._provider is None:
            logger.warning(
                "No option provider for %r (category %r)", self.key, control.category_code
            )
            return
        if not control.dependent_on:
            self._request(None)
            return

        self._parent_path = self._model.get_data_path(control.dependent_on)
        if self._parent_path is None:
            logger.warning(
                "Control %r depends on unknown control %r", self.key, control.dependent_on
            )
            return
        self._subscription = self._model.subscribe(self._on_change)
        self._parent_changed(get_by_path(self._model.value, self._parent_path))

    def close(self) -> None:
        """Stop following the parent and drop any pending fetch."""
        self._closed = True
        self._generation += 1
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription: Subscription | None = None
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self.loading = False

    async def wait(self) -> None:
        """Wait until no fetch is pending (superseded fetches included)."""
        while self._task is not None and not self._task.done():
            await asyncio.wait({self._task})

    def add_listener(self, listener: Callable[[OptionBinding], None]) -> None:
        """Call *listener* after every applied option list."""
        self._listeners.append(listener)

    @property
    def parent_value(self) -> Any:
        return None if self._parent_value is _UNSET else self._parent_value

    # --- cascade ---

    def _on_change(self, change: ValueChange) -> None:
        if self._parent_path is not None:
            self._parent_changed(get_by_path(change.snapshot, self._parent_path))

    def _parent_changed(self, value: Any) -> None:
        if self._parent_value is not _UNSET and value == self._parent_value:
            return
        self._parent_value = value
        if is_empty(value):
            self._supersede()
            self.loading = False
            self.error = None
            self._apply(())
            return
        self._request(value)

    def _supersede(self) -> int:
        self._generation += 1
        if self._task is not None and not self._task.done():
            self._task.cancel()
        return self._generation

    def _request(self, parent: Any) -> None:
        generation = self._supersede()
        self.loading = True
        self.error = None
        loop = asyncio.get_running_loop()
        self._task = loop.create_task(self._fetch(generation, parent))

    async def _fetch(self, generation: int, parent: Any) -> None:
        assert self._provider is not None
        category = self.control.category_code or ""
        try:
            values = await self._provider.fetch(category, parent)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            if generation != self._generation:
                return
            logger.warning("Options for %r unavailable: %s", self.key, exc)
            self.loading = False
            self.error = exc
            self._apply((), reconcile=False)
            return
        if generation != self._generation:
            logger.debug("Discarding superseded options for %r", self.key)
            return
        self.loading = False
        self._apply(values)

    def _apply(self, values: Sequence[DomainValue], *, reconcile: bool = True) -> None:
        if self._closed:
            return
        self.options = tuple(values)
        if self.tree is not None:
            self.tree.load(self.options)
        if reconcile:
            self._reconcile()
        for listener in list(self._listeners):
            listener(self)

    def _reconcile(self) -> None:
        node = self._model.get_control(self.key)
        if not isinstance(node, FieldNode) or is_empty(node.value):
            return
        codes = {str(option.code) for option in self.options}
        if str(node.value) not in codes:
            logger.debug("Clearing %r: %r is not among the new options", self.key, node.value)
            node.set_value(None)


def bind_options(
    model: FormModel, provider: OptionProvider | None
) -> dict[str, OptionBinding]:
    """Unstarted bindings for every keyed option control of *model*'s schema."""
    bindings: dict[str, OptionBinding] = {}
    for control in model.schema.iter_controls():
        if control.type not in OPTION_TYPES or not control.key:
            continue
        if model.get_data_path(control.key) is None:
            continue
        bindings[control.key] = OptionBinding(model, control, provider)
    return bindings

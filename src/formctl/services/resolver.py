"""SchemaResolver — expand library references into a fully merged schema.

For every node of a raw schema:

- A bare string is a library reference.  Unknown references degrade to a
  fallback text field labeled ``[ref]``; resolution never fails on them.
- An object whose ``code`` (or, failing that, ``key``) names a library entry
  is merged shallowly: library fields first, the object's own fields on top.
- Any other object is a custom control and is kept as written.

Children (``controls``) are resolved recursively in every case, and a merge
never drops a child list defined on either side.  Resolution is idempotent:
resolving an already resolved schema returns an equal schema.

Library entries can reference each other.  The chain of codes being expanded
is tracked, and re-entering a code on the chain raises
:class:`~formctl.domain.errors.SchemaCycleError` instead of recursing forever.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from formctl.domain.controls import ControlDefinition, FormSchema, normalize_keys
from formctl.domain.errors import SchemaCycleError
from formctl.domain.library import ControlLibrary

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 32


def fallback_control(ref: str) -> dict[str, Any]:
    """Placeholder for an unknown library reference."""
    return {"key": ref, "type": "text", "label": f"[{ref}]"}


class SchemaResolver:
    """Compiles raw schema documents against a control library.

    Parameters:
        library: Entries that string references and ``code`` overrides resolve against.
        max_depth: Nesting limit; deeper documents raise ``SchemaCycleError``.
    """

    def __init__(self, library: ControlLibrary, *, max_depth: int = DEFAULT_MAX_DEPTH) -> None:
        self._library = library
        self._max_depth = max_depth

    @property
    def library(self) -> ControlLibrary:
        return self._library

    def resolve(self, schema: Mapping[str, Any] | FormSchema) -> FormSchema:
        """Resolve every section of *schema*.

        Raises:
            SchemaCycleError: If library entries reference each other in a loop.
        """
        raw = schema.to_raw() if isinstance(schema, FormSchema) else dict(schema)
        sections = [self.resolve_control(section) for section in raw.get("sections") or []]
        resolved = FormSchema.model_validate({**raw, "sections": sections})
        logger.debug(
            "Resolved schema %r: %d sections, %d controls",
            resolved.code,
            len(resolved.sections),
            len(resolved.iter_controls()),
        )
        return resolved

    def resolve_control(
        self,
        config: str | Mapping[str, Any] | ControlDefinition,
        _chain: tuple[str, ...] = (),
    ) -> dict[str, Any]:
        """Resolve one node to its merged raw dict (children included)."""
        if len(_chain) > self._max_depth:
            raise SchemaCycleError(
                [c for c in _chain if c], f"Control nesting exceeds max depth {self._max_depth}"
            )

        if isinstance(config, ControlDefinition):
            config = config.to_raw()

        code: str | None = None
        library_entry: dict[str, Any] | None = None

        if isinstance(config, str):
            library_entry = self._library.raw(config)
            if library_entry is None:
                logger.warning("Unknown control reference %r, using fallback field", config)
                return fallback_control(config)
            code = config
            node: dict[str, Any] = {}
        elif isinstance(config, Mapping):
            node = normalize_keys(dict(config))
            code = self._library_code(node)
            if code is not None:
                library_entry = self._library.raw(code)
        else:
            logger.warning("Unsupported control node %r, using fallback field", config)
            return fallback_control(str(config))

        if code is not None and code in _chain:
            raise SchemaCycleError([c for c in (*_chain, code) if c])

        if library_entry is not None:
            merged = {**library_entry, **node}
            merged.setdefault("code", code)
            if merged.get("controls") is None and library_entry.get("controls") is not None:
                merged["controls"] = library_entry["controls"]
        else:
            merged = node

        children = merged.get("controls")
        if children is not None:
            chain = (*_chain, code) if code is not None else (*_chain, "")
            merged["controls"] = [self.resolve_control(child, chain) for child in children]
        return merged

    def _library_code(self, node: Mapping[str, Any]) -> str | None:
        for candidate in (node.get("code"), node.get("key")):
            if isinstance(candidate, str) and candidate in self._library:
                return candidate
        return None

"""Pluggy hook specifications for formctl.

One setup-time hook extends the control library; one lifecycle hook reports
compiled forms.  Plugin authors decorate implementations with
:data:`hookimpl`.
"""

from __future__ import annotations

from typing import Any

import pluggy

PROJECT_NAME = "formctl"

hookspec = pluggy.HookspecMarker(PROJECT_NAME)
hookimpl = pluggy.HookimplMarker(PROJECT_NAME)


class FormctlHookSpec:
    """Hook specifications for the formctl plugin system."""

    @hookspec
    def register_controls(self) -> dict[str, dict[str, Any]] | None:
        """Return library code -> control definition entries to add to the library."""

    @hookspec
    def post_compile(
        self,
        form_code: str,
        path_count: int,
        warnings: list[str],
    ) -> None:
        """Called after a form schema has been compiled into a model."""

"""Plugin discovery, loading, and library contributions.

Discovery: entry points in the ``formctl.plugins`` group via pluggy, plus
single-file plugins from a local directory (``.formctl/plugins/`` by default).
"""

from __future__ import annotations

import importlib.util
import inspect
import logging
import sys
from collections.abc import Mapping
from pathlib import Path
from types import ModuleType
from typing import Any

import pluggy

from formctl.plugins.hookspecs import PROJECT_NAME, FormctlHookSpec

ENTRY_POINT_GROUP = "formctl.plugins"

logger = logging.getLogger(__name__)


class PluginManager:
    """Discovers plugins and exposes their hooks."""

    def __init__(self) -> None:
        self._pm = pluggy.PluginManager(PROJECT_NAME)
        self._pm.add_hookspecs(FormctlHookSpec)
        self._loaded = False

    def discover_and_load(self, *, local_dir: Path | None = None) -> list[str]:
        """Load entry-point plugins, then any local single-file plugins.

        Returns the names of all registered plugins.
        """
        self._pm.load_setuptools_entrypoints(ENTRY_POINT_GROUP)
        self._instantiate_class_plugins()
        if local_dir is not None:
            self._discover_local(local_dir)
        self._loaded = True
        return self.list_plugin_names()

    def register_plugin(self, plugin: object, name: str | None = None) -> None:
        """Register a plugin instance directly."""
        resolved_name = name or plugin.__class__.__name__
        self._pm.register(plugin, name=resolved_name)
        logger.debug("Registered plugin: %s", resolved_name)

    def unregister(self, plugin: object) -> None:
        self._pm.unregister(plugin)

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    @property
    def hook(self) -> pluggy.HookRelay:
        return self._pm.hook

    def list_plugin_names(self) -> list[str]:
        return [self._pm.get_name(p) or p.__class__.__name__ for p in self._pm.get_plugins()]

    # ------------------------------------------------------------------
    # Contributions
    # ------------------------------------------------------------------

    def collect_controls(self) -> dict[str, dict[str, Any]]:
        """Merge every plugin's ``register_controls`` result.

        A failing plugin, or one returning something other than a mapping of
        mappings, is skipped with a warning.
        """
        entries: dict[str, dict[str, Any]] = {}
        for plugin in self._pm.get_plugins():
            name = self._pm.get_name(plugin) or plugin.__class__.__name__
            hook = getattr(plugin, "register_controls", None)
            if hook is None:
                continue
            try:
                contributed = hook()
            except Exception:
                logger.warning("Plugin %s failed to register controls", name, exc_info=True)
                continue
            if contributed is None:
                continue
            if not isinstance(contributed, Mapping):
                logger.warning("Plugin %s returned non-mapping control registrations", name)
                continue
            for code, definition in contributed.items():
                if not isinstance(definition, Mapping):
                    logger.warning("Skipping control %r from plugin %s", code, name)
                    continue
                entries[str(code)] = dict(definition)
        return entries

    def notify_compiled(self, form_code: str, path_count: int, warnings: list[str]) -> None:
        """Fire ``post_compile`` on every plugin.

        Each implementation runs on its own, so one failing plugin neither stops
        the others nor the compile; its failure becomes a warning in *warnings*.
        """
        for impl in reversed(self._pm.hook.post_compile.get_hookimpls()):
            try:
                impl.function(form_code=form_code, path_count=path_count, warnings=warnings)
            except Exception:
                message = f"Plugin {impl.plugin_name} failed in post_compile"
                logger.warning(message, exc_info=True)
                # a collect_warnings() list already holds the logged message
                if message not in warnings:
                    warnings.append(message)

    # ------------------------------------------------------------------
    # Discovery internals
    # ------------------------------------------------------------------

    def _discover_local(self, local_dir: Path) -> None:
        """Register hook-carrying classes from ``*.py`` files in *local_dir*.

        Files starting with ``_`` are skipped.  A file that fails to import or
        a class that fails to instantiate is logged and skipped.
        """
        if not local_dir.is_dir():
            return
        for py_file in sorted(local_dir.glob("*.py")):
            if py_file.name.startswith("_"):
                continue
            module_name = f"formctl_local_plugin_{py_file.stem}"
            module = self._load_module(module_name, py_file)
            if module is None:
                continue
            for _attr, cls in inspect.getmembers(module, inspect.isclass):
                if cls.__module__ != module_name or not self._has_hook_impls(cls):
                    continue
                try:
                    self.register_plugin(cls(), name=module_name)
                except Exception:
                    logger.warning(
                        "Failed to instantiate plugin class %s from %s",
                        cls.__name__,
                        py_file,
                        exc_info=True,
                    )

    @staticmethod
    def _load_module(module_name: str, py_file: Path) -> ModuleType | None:
        try:
            spec = importlib.util.spec_from_file_location(module_name, py_file)
            if spec is None or spec.loader is None:
                logger.warning("Could not create module spec for %s", py_file)
                return None
            module = importlib.util.module_from_spec(spec)
            sys.modules[module_name] = module
            spec.loader.exec_module(module)
        except Exception:
            logger.warning("Failed to load local plugin %s", py_file, exc_info=True)
            sys.modules.pop(module_name, None)
            return None
        return module

    def _instantiate_class_plugins(self) -> None:
        """Entry points may register classes; hooks need bound instances."""
        for plugin in list(self._pm.get_plugins()):
            if not inspect.isclass(plugin) or not self._has_hook_impls(plugin):
                continue
            name = self._pm.get_name(plugin) or plugin.__name__
            self._pm.unregister(plugin)
            try:
                instance = plugin()
            except Exception:
                logger.warning("Failed to instantiate entry-point plugin %s", name, exc_info=True)
                continue
            self._pm.register(instance, name=name)

    @staticmethod
    def _has_hook_impls(cls: type) -> bool:
        """Whether *cls* has a method marked with ``@hookimpl`` (``formctl_impl``)."""
        for name in dir(cls):
            if name.startswith("_"):
                continue
            method = getattr(cls, name, None)
            if callable(method) and getattr(method, f"{PROJECT_NAME}_impl", None):
                return True
        return False

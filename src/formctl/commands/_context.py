"""AppContext — shared Click context for all commands.

Created once by the root CLI group and handed to subcommands via
``@click.pass_obj``.  The library, option provider, plugins, and service are
built lazily so ``--help`` and ``--version`` never touch the filesystem
beyond config discovery.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any

import click

from formctl.output.formatters import OutputSettings, format_result

if TYPE_CHECKING:
    from formctl.config.settings import FormSettings
    from formctl.domain.library import ControlLibrary
    from formctl.plugins.manager import PluginManager
    from formctl.services.forms import FormService
    from formctl.services.options import OptionProvider
    from formctl.services.result import ServiceResult


class AppContext:
    """Shared context flowing through Click's command hierarchy."""

    def __init__(self, settings: FormSettings) -> None:
        self.settings = settings
        self._plugins: PluginManager | None = None
        self._plugins_loaded = False
        self._library: ControlLibrary | None = None
        self._provider: OptionProvider | None = None
        self._provider_loaded = False
        self._service: FormService | None = None

        from formctl.config.logging import configure_logging

        configure_logging(verbose=settings.verbose, log_json=settings.log_json)

    @property
    def plugins(self) -> PluginManager | None:
        """Loaded plugin manager, or None when plugins are disabled."""
        if not self._plugins_loaded:
            self._plugins_loaded = True
            if self.settings.plugins.enabled:
                from formctl.plugins.manager import PluginManager

                self._plugins = PluginManager()
                self._plugins.discover_and_load(local_dir=self.settings.plugin_dir)
        return self._plugins

    @property
    def library(self) -> ControlLibrary:
        """Built-in entries, then plugin entries, then library files (later wins).

        Raises:
            DocumentError: If a library file cannot be read.
        """
        if self._library is None:
            from formctl.domain.library import ControlLibrary
            from formctl.infrastructure.documents import load_library_files

            builtin = self.settings.library.builtin
            library = ControlLibrary.builtin() if builtin else ControlLibrary()
            if self.plugins is not None:
                library.update(self.plugins.collect_controls())
            library.update(load_library_files(self.settings.library_paths))
            self._library = library
        return self._library

    @property
    def provider(self) -> OptionProvider | None:
        """Option provider over the configured domain file, if any.

        Raises:
            DocumentError: If the domain file cannot be read.
        """
        if not self._provider_loaded:
            domain_file = self.settings.domain_file
            if domain_file is not None:
                from formctl.infrastructure.sources import load_domain_file
                from formctl.services.options import OptionProvider

                self._provider = OptionProvider(load_domain_file(domain_file))
            self._provider_loaded = True
        return self._provider

    @property
    def service(self) -> FormService:
        if self._service is None:
            from formctl.services.forms import FormCompiler, FormService

            compiler = FormCompiler(
                self.library,
                self.provider,
                max_depth=self.settings.library.max_depth,
                page_size=self.settings.table.page_size,
                plugins=self.plugins,
            )
            self._service = FormService(compiler)
        return self._service

    def read_mapping(self, path: Path) -> dict[str, Any]:
        """Load a JSON/YAML mapping document (raises DocumentError)."""
        from formctl.infrastructure.documents import load_mapping

        return load_mapping(path)

    def emit(self, result: ServiceResult) -> None:
        """Format and output a ServiceResult with correct exit semantics.

        * Success: stdout; warnings go to stderr unless in JSON mode.
        * Failure: stderr, exit code 1.
        """
        settings = OutputSettings(
            json_output=self.settings.json_output,
            quiet=self.settings.quiet,
            verbose=self.settings.verbose,
        )
        output = format_result(result, settings=settings)
        if result.ok:
            click.echo(output)
            if not settings.json_output:
                for warning in result.warnings:
                    click.echo(f"WARNING: {warning}", err=True)
        else:
            click.echo(output, err=True)
            raise SystemExit(1)

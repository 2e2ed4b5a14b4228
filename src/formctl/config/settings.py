"""Unified settings — CLI flags, env vars, and TOML config in one object.

Priority chain (highest to lowest):
  1. Init kwargs  — CLI flags passed by Click
  2. Env vars     — ``FORMCTL_*`` prefix, ``__`` for nested sections
  3. TOML file    — ``formctl.toml`` discovered via walk-up
  4. Code defaults — baked into the section models

Relative paths in the TOML sections are relative to ``project_root``, the
directory holding the config file (or the working directory without one).
"""

from __future__ import annotations

import threading
import tomllib
from pathlib import Path
from typing import Any

import click
from pydantic import Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

from formctl.config.discovery import find_config
from formctl.config.models import LibraryConfig, OptionsConfig, PluginsConfig, TableConfig


class TomlSettingsSource(PydanticBaseSettingsSource):
    """Read settings from a ``formctl.toml`` file."""

    def __init__(self, settings_cls: type[BaseSettings], toml_path: Path | None) -> None:
        super().__init__(settings_cls)
        self._data: dict[str, Any] = {}
        if toml_path and toml_path.is_file():
            try:
                self._data = tomllib.loads(toml_path.read_text(encoding="utf-8"))
            except tomllib.TOMLDecodeError as exc:
                raise click.ClickException(f"Invalid TOML in {toml_path}: {exc}") from exc

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        val = self._data.get(field_name)
        return val, field_name, field_name in self._data

    def __call__(self) -> dict[str, Any]:
        return self._data


# Thread-local storage for the TOML path during construction.
_tls = threading.local()


class FormSettings(BaseSettings):
    """Settings for the formctl CLI, stored in ``click.Context.obj``.

    Attributes:
        project_root: Parent of ``formctl.toml``, or CWD if no config found.
        config_path: The TOML file that was loaded, if any.
    """

    model_config = {
        "frozen": True,
        "env_prefix": "FORMCTL_",
        "env_nested_delimiter": "__",
    }

    project_root: Path = Field(default_factory=Path.cwd)
    config_path: Path | None = None

    # --- CLI flags ---
    json_output: bool = False
    quiet: bool = False
    verbose: bool = False
    log_json: bool = False

    # --- TOML sections ---
    library: LibraryConfig = Field(default_factory=LibraryConfig)
    options: OptionsConfig = Field(default_factory=OptionsConfig)
    table: TableConfig = Field(default_factory=TableConfig)
    plugins: PluginsConfig = Field(default_factory=PluginsConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Insert the TOML source between env vars and defaults."""
        toml_path = getattr(_tls, "toml_path", None)
        return (
            init_settings,
            env_settings,
            TomlSettingsSource(settings_cls, toml_path),
        )

    @classmethod
    def from_cli(
        cls,
        *,
        config_path: str | None = None,
        project_root: Path | None = None,
        **cli_flags: Any,
    ) -> FormSettings:
        """Build settings for one CLI invocation.

        An explicit *config_path* must exist; otherwise ``formctl.toml`` is
        discovered by walking up from *project_root* (or the CWD).
        """
        toml_path: Path | None
        if config_path:
            toml_path = Path(config_path)
            if not toml_path.is_file():
                raise click.ClickException(f"Config file not found: {config_path}")
        else:
            toml_path = find_config(project_root)

        root = project_root or (toml_path.parent if toml_path else Path.cwd())

        _tls.toml_path = toml_path
        try:
            return cls(project_root=root, config_path=toml_path, **cli_flags)
        finally:
            _tls.toml_path = None

    def resolve_path(self, path: Path) -> Path:
        """*path* made absolute against ``project_root``."""
        return path if path.is_absolute() else self.project_root / path

    @property
    def library_paths(self) -> list[Path]:
        return [self.resolve_path(p) for p in self.library.paths]

    @property
    def domain_file(self) -> Path | None:
        path = self.options.domain_file
        return None if path is None else self.resolve_path(path)

    @property
    def plugin_dir(self) -> Path:
        return self.resolve_path(self.plugins.local_dir)

"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults baked here, formctl.toml only contains
overrides.  An empty (or absent) file is a valid configuration.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field


class LibraryConfig(BaseModel):
    """[library] section."""

    model_config = {"frozen": True}

    paths: list[Path] = Field(default_factory=list)
    max_depth: int = Field(default=32, ge=1)
    builtin: bool = True


class OptionsConfig(BaseModel):
    """[options] section."""

    model_config = {"frozen": True}

    domain_file: Path | None = None
    parent_param: str = "parentCode"


class TableConfig(BaseModel):
    """[table] section."""

    model_config = {"frozen": True}

    page_size: int = Field(default=10, ge=1)


class PluginsConfig(BaseModel):
    """[plugins] section."""

    model_config = {"frozen": True}

    enabled: bool = True
    local_dir: Path = Path(".formctl/plugins")

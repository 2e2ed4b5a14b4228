"""Tests for FormSettings — unified settings with TOML source."""

from pathlib import Path

import click
import pytest

from formctl.config.settings import FormSettings


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("FORMCTL_CONFIG", "FORMCTL_TABLE__PAGE_SIZE", "FORMCTL_VERBOSE"):
        monkeypatch.delenv(name, raising=False)


class TestDefaults:
    def test_all_defaults(self, tmp_path: Path) -> None:
        settings = FormSettings.from_cli(project_root=tmp_path)
        assert settings.project_root == tmp_path
        assert settings.config_path is None
        assert settings.json_output is False
        assert settings.library.builtin is True
        assert settings.library.max_depth == 32
        assert settings.table.page_size == 10
        assert settings.options.domain_file is None
        assert settings.plugins.enabled is True

    def test_frozen(self, tmp_path: Path) -> None:
        settings = FormSettings.from_cli(project_root=tmp_path)
        with pytest.raises(Exception):
            settings.quiet = True  # type: ignore[misc]


class TestTomlSource:
    def test_loads_from_toml(self, tmp_path: Path) -> None:
        (tmp_path / "formctl.toml").write_text(
            '[table]\npage_size = 25\n\n[options]\ndomain_file = "data/domain.yaml"\n',
            encoding="utf-8",
        )
        settings = FormSettings.from_cli(project_root=tmp_path)
        assert settings.config_path == tmp_path / "formctl.toml"
        assert settings.table.page_size == 25
        assert settings.domain_file == tmp_path / "data" / "domain.yaml"
        assert settings.library.max_depth == 32

    def test_cli_flags_win(self, tmp_path: Path) -> None:
        (tmp_path / "formctl.toml").write_text("verbose = false\n", encoding="utf-8")
        assert FormSettings.from_cli(project_root=tmp_path, verbose=True).verbose is True

    def test_env_beats_toml(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        (tmp_path / "formctl.toml").write_text("[table]\npage_size = 25\n", encoding="utf-8")
        monkeypatch.setenv("FORMCTL_TABLE__PAGE_SIZE", "5")
        assert FormSettings.from_cli(project_root=tmp_path).table.page_size == 5

    def test_invalid_toml(self, tmp_path: Path) -> None:
        (tmp_path / "formctl.toml").write_text("[table\n", encoding="utf-8")
        with pytest.raises(click.ClickException, match="Invalid TOML"):
            FormSettings.from_cli(project_root=tmp_path)

    def test_explicit_config_path(self, tmp_path: Path) -> None:
        config = tmp_path / "custom.toml"
        config.write_text('[library]\npaths = ["lib.yaml"]\n', encoding="utf-8")
        settings = FormSettings.from_cli(config_path=str(config))
        assert settings.project_root == tmp_path
        assert settings.library_paths == [tmp_path / "lib.yaml"]

    def test_missing_explicit_config(self, tmp_path: Path) -> None:
        with pytest.raises(click.ClickException, match="Config file not found"):
            FormSettings.from_cli(config_path=str(tmp_path / "nope.toml"))

    def test_invalid_value_rejected(self, tmp_path: Path) -> None:
        (tmp_path / "formctl.toml").write_text("[table]\npage_size = 0\n", encoding="utf-8")
        with pytest.raises(Exception):
            FormSettings.from_cli(project_root=tmp_path)


class TestPaths:
    def test_absolute_paths_kept(self, tmp_path: Path) -> None:
        settings = FormSettings.from_cli(project_root=tmp_path)
        absolute = tmp_path / "elsewhere" / "x.yaml"
        assert settings.resolve_path(absolute) == absolute

    def test_plugin_dir(self, tmp_path: Path) -> None:
        settings = FormSettings.from_cli(project_root=tmp_path)
        assert settings.plugin_dir == tmp_path / ".formctl" / "plugins"

"""Tests for the check CLI command."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from formctl.cli import cli


@pytest.mark.usefixtures("_isolated_project")
class TestCheckCommand:
    def test_clean_library(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["check"])
        assert result.exit_code == 0
        assert "OK" in result.output

    def test_json_counts_library_file(self, cli_runner: CliRunner) -> None:
        builtin = cli_runner.invoke(cli, ["--json", "check"])
        data = json.loads(builtin.output)
        assert data["ok"] is True
        assert data["data"]["cycles"] == []
        assert data["data"]["entries"] >= 2

    def test_cycle_fails(self, cli_runner: CliRunner, project_root: Path) -> None:
        (project_root / "loop.yaml").write_text(
            "loop.a:\n  key: a\n  type: group\n  controls: [loop.b, missing.field]\n"
            "loop.b:\n  key: b\n  type: group\n  controls: [loop.a]\n",
            encoding="utf-8",
        )
        (project_root / "loop.toml").write_text(
            '[library]\nbuiltin = false\npaths = ["loop.yaml"]\n', encoding="utf-8"
        )
        result = cli_runner.invoke(cli, ["-c", "loop.toml", "check"])
        assert result.exit_code == 1
        assert "loop.a -> loop.b -> loop.a" in result.output

    def test_missing_config(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["-c", "nowhere.toml", "check"])
        assert result.exit_code == 1
        assert "Config file not found" in result.output

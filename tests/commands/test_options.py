"""Tests for the options CLI command."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from formctl.cli import cli


@pytest.mark.usefixtures("_isolated_project")
class TestOptionsCommand:
    def test_children_of_parent(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["options", "state", "--parent", "US"])
        assert result.exit_code == 0
        assert "New York" in result.output
        assert "Ontario" not in result.output
        assert "2 options (state:US)" in result.output

    def test_quiet_codes(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["-q", "options", "country"])
        assert result.exit_code == 0
        assert result.output.split() == ["US", "CA"]

    def test_tree(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["options", "department", "--tree"])
        assert result.exit_code == 0
        assert "ENG  Engineering" in result.output
        assert "  FE  Frontend" in result.output
        assert "HR  People" in result.output

    def test_filter_implies_tree(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["--json", "options", "department", "--filter", "back"])
        assert result.exit_code == 0
        tree = json.loads(result.output)["data"]["tree"]
        assert [row["code"] for row in tree] == ["ENG", "BE"]

    def test_unknown_category_is_empty(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["-q", "options", "planet"])
        assert result.exit_code == 0
        assert result.output.strip() == ""


class TestOptionsWithoutDomain:
    def test_fails(
        self, cli_runner: CliRunner, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.delenv("FORMCTL_CONFIG", raising=False)
        monkeypatch.chdir(tmp_path)
        result = cli_runner.invoke(cli, ["options", "country"])
        assert result.exit_code == 1
        assert "No domain data source configured" in result.output

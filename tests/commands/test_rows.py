"""Tests for the rows CLI command."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from formctl.cli import cli

LINES = {
    "lines": [
        {"item": "washer", "qty": 3},
        {"item": "bolt", "qty": 1, "locked": True},
        {"item": "nut", "qty": 2},
    ]
}


@pytest.fixture(autouse=True)
def order_data(project_root: Path) -> Path:
    path = project_root / "lines.json"
    path.write_text(json.dumps(LINES), encoding="utf-8")
    return path


@pytest.mark.usefixtures("_isolated_project")
class TestRowsCommand:
    def test_sorted_first_page(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(
            cli, ["rows", "order.json", "lines", "--data", "lines.json", "--sort", "qty"]
        )
        assert result.exit_code == 0
        assert "qty ▲" in result.output
        assert "bolt" in result.output
        assert "washer" not in result.output
        assert "1-2 of 3 rows  (page 1/2)" in result.output

    def test_quiet_indexes(self, cli_runner: CliRunner) -> None:
        args = ["-q", "rows", "order.json", "lines", "--data", "lines.json"]
        result = cli_runner.invoke(cli, [*args, "--sort", "qty", "--desc"])
        assert result.exit_code == 0
        assert result.output.split() == ["0", "2"]

    def test_search_and_actions(self, cli_runner: CliRunner) -> None:
        args = ["--json", "rows", "order.json", "lines", "--data", "lines.json"]
        result = cli_runner.invoke(cli, [*args, "--search", "BOLT"])
        assert result.exit_code == 0
        rows = json.loads(result.output)["data"]["rows"]
        assert [row["index"] for row in rows] == [1]
        assert rows[0]["actions"] == ["edit"]

    def test_unknown_table(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(
            cli, ["rows", "order.json", "nope", "--data", "lines.json"]
        )
        assert result.exit_code == 1
        assert "No table with key 'nope'" in result.output

    def test_page_must_be_positive(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(
            cli, ["rows", "order.json", "lines", "--data", "lines.json", "--page", "0"]
        )
        assert result.exit_code == 2

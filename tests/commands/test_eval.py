"""Tests for the eval CLI command."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from formctl.cli import cli


@pytest.mark.usefixtures("_isolated_project")
class TestEvalCommand:
    def test_true(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(
            cli, ["eval", "model.age > 18", "--context", '{"model": {"age": 20}}']
        )
        assert result.exit_code == 0
        assert "result: true" in result.output

    def test_quiet(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(
            cli, ["-q", "eval", "model.country == null", "--context", '{"model": {}}']
        )
        assert result.exit_code == 0
        assert result.output.strip() == "true"

    def test_context_file(self, cli_runner: CliRunner, project_root: Path) -> None:
        (project_root / "row.yaml").write_text("row:\n  status: closed\n", encoding="utf-8")
        result = cli_runner.invoke(
            cli, ["--json", "eval", "row.status != 'closed'", "--context-file", "row.yaml"]
        )
        assert result.exit_code == 0
        assert json.loads(result.output)["data"]["result"] is False

    def test_invalid_context(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["eval", "model.a == 1", "--context", "{bad"])
        assert result.exit_code == 1
        assert "ERROR" in result.output

    def test_context_must_be_object(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["eval", "model.a == 1", "--context", "[1, 2]"])
        assert result.exit_code == 1
        assert "JSON object" in result.output

"""Shared pytest fixtures and test helpers for formctl tests."""

from __future__ import annotations

import copy
import json
import logging
from collections.abc import Iterator
from pathlib import Path
from typing import Any

import pytest
import structlog
from click.testing import CliRunner

from formctl.domain.library import ControlLibrary
from formctl.infrastructure.sources import StaticDomainSource

DOMAIN_DATA: dict[str, list[dict[str, Any]]] = {
    "country": [
        {"code": "US", "displayText": "United States"},
        {"code": "CA", "displayText": "Canada"},
    ],
    "state": [
        {"code": "NY", "displayText": "New York", "parentCode": "US"},
        {"code": "TX", "displayText": "Texas", "parentCode": "US"},
        {"code": "ON", "displayText": "Ontario", "parentCode": "CA"},
    ],
    "department": [
        {"code": "ENG", "displayText": "Engineering"},
        {"code": "FE", "displayText": "Frontend", "parentCode": "ENG"},
        {"code": "BE", "displayText": "Backend", "parentCode": "ENG"},
        {"code": "HR", "displayText": "People"},
    ],
}

EMPLOYEE_SCHEMA: dict[str, Any] = {
    "code": "employee-form",
    "version": 1,
    "label": "Employee",
    "sections": [
        {
            "type": "group",
            "label": "Personal",
            "controls": ["employee.firstName", "employee.lastName", "employee.email"],
        },
        {
            "type": "group",
            "label": "Address",
            "controls": ["address.countryCode", "address.stateCode", "address.city"],
        },
        {
            "key": "emergency",
            "type": "group",
            "controls": [{"key": "contactName"}, {"key": "phone", "pattern": "\\+?\\d+"}],
        },
    ],
}

ORDER_SCHEMA: dict[str, Any] = {
    "code": "order-form",
    "sections": [
        {"key": "customer", "type": "text"},
        {
            "key": "lines",
            "type": "table",
            "sortable": True,
            "searchable": True,
            "pagination": {"enabled": True, "pageSize": 2},
            "rowActions": [
                {"id": "edit", "label": "Edit"},
                {"id": "delete", "label": "Delete", "visibleWhen": "row.locked != true"},
            ],
            "controls": [
                {"key": "item", "type": "text"},
                {"key": "qty", "type": "number"},
                {"key": "locked", "type": "checkbox"},
            ],
        },
    ],
}


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def library() -> ControlLibrary:
    return ControlLibrary.builtin()


@pytest.fixture
def domain_source() -> StaticDomainSource:
    return StaticDomainSource(DOMAIN_DATA)


@pytest.fixture
def project_root(tmp_path: Path) -> Path:
    """Temporary project with a config file, a domain file and a library file."""
    (tmp_path / "domain.json").write_text(json.dumps(DOMAIN_DATA), encoding="utf-8")
    (tmp_path / "library.yaml").write_text(
        "custom.nickname:\n  key: nickName\n  type: text\n  label: Nickname\n",
        encoding="utf-8",
    )
    (tmp_path / "formctl.toml").write_text(
        '[library]\npaths = ["library.yaml"]\n\n[options]\ndomain_file = "domain.json"\n',
        encoding="utf-8",
    )
    (tmp_path / "employee.json").write_text(json.dumps(EMPLOYEE_SCHEMA), encoding="utf-8")
    (tmp_path / "order.json").write_text(json.dumps(ORDER_SCHEMA), encoding="utf-8")
    return tmp_path


@pytest.fixture
def _isolated_project(project_root: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Change CWD to a temp project so the CLI discovers its ``formctl.toml``.

    Use via ``@pytest.mark.usefixtures("_isolated_project")`` on command test
    classes.
    """
    monkeypatch.delenv("FORMCTL_CONFIG", raising=False)
    monkeypatch.chdir(project_root)


@pytest.fixture
def employee_schema() -> dict[str, Any]:
    """Transparent personal and address sections plus a keyed emergency group."""
    return copy.deepcopy(EMPLOYEE_SCHEMA)


@pytest.fixture
def order_schema() -> dict[str, Any]:
    """A sortable, searchable table paginated two rows per page."""
    return copy.deepcopy(ORDER_SCHEMA)


@pytest.fixture(autouse=True)
def _restore_logging() -> Iterator[None]:
    """Undo the root handler swap ``configure_logging`` performs on CLI runs."""
    root = logging.getLogger()
    package = logging.getLogger("formctl")
    root_level, package_level = root.level, package.level
    yield
    for handler in list(root.handlers):
        if isinstance(handler.formatter, structlog.stdlib.ProcessorFormatter):
            root.removeHandler(handler)
    root.setLevel(root_level)
    package.setLevel(package_level)

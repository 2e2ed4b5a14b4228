"""Tests for the option hierarchy builder and tree state."""

import logging

import pytest

from formctl.domain.controls import DomainValue
from formctl.domain.hierarchy import TreeState, build_forest, filter_forest


def _v(code: str, text: str = "", parent: str | None = None) -> DomainValue:
    return DomainValue(code=code, display_text=text or code, parent_code=parent)


DEPARTMENTS = [
    _v("ENG", "Engineering"),
    _v("FE", "Frontend", "ENG"),
    _v("BE", "Backend", "ENG"),
    _v("API", "API Team", "BE"),
    _v("HR", "People"),
]


class TestBuildForest:
    def test_groups_children_in_order(self) -> None:
        roots = build_forest(DEPARTMENTS)
        assert [r.code for r in roots] == ["ENG", "HR"]
        assert [c.code for c in roots[0].children] == ["FE", "BE"]
        assert roots[0].children[1].children[0].code == "API"

    def test_orphan_becomes_extra_root(self) -> None:
        roots = build_forest([_v("A"), _v("B", parent="GONE")])
        assert [r.code for r in roots] == ["A", "B"]

    def test_self_parent_is_root(self) -> None:
        assert [r.code for r in build_forest([_v("A", parent="A")])] == ["A"]

    def test_cycle_promoted_without_loss(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING, logger="formctl"):
            roots = build_forest([_v("A", parent="B"), _v("B", parent="A"), _v("C")])
        codes = {n.code for r in roots for n in [r, *r.children]}
        assert codes == {"A", "B", "C"}
        assert "cycle" in caplog.text

    def test_duplicate_codes_first_wins(self) -> None:
        roots = build_forest([_v("A", "first"), _v("A", "second")])
        assert len(roots) == 1
        assert roots[0].display_text == "first"

    def test_numeric_codes_become_text(self) -> None:
        roots = build_forest([DomainValue(code=1), DomainValue(code=2, parent_code=1)])
        assert roots[0].code == "1"
        assert roots[0].children[0].code == "2"

    def test_to_dict(self) -> None:
        (root,) = build_forest([_v("A"), _v("B", parent="A")])
        assert root.to_dict()["children"][0]["parentCode"] == "A"


class TestFilterForest:
    def test_keeps_ancestors_of_matches(self) -> None:
        roots = filter_forest(build_forest(DEPARTMENTS), "api")
        assert [r.code for r in roots] == ["ENG"]
        assert [c.code for c in roots[0].children] == ["BE"]

    def test_blank_filter_is_identity(self) -> None:
        roots = build_forest(DEPARTMENTS)
        assert filter_forest(roots, "  ") is roots


class TestTreeState:
    def test_collapsed_by_default(self) -> None:
        state = TreeState(DEPARTMENTS)
        assert [row.code for row in state.visible()] == ["ENG", "HR"]

    def test_expand_and_toggle(self) -> None:
        state = TreeState(DEPARTMENTS)
        state.expand("ENG")
        rows = state.visible()
        assert [(r.code, r.level) for r in rows] == [("ENG", 0), ("FE", 1), ("BE", 1), ("HR", 0)]
        assert rows[0].expanded and rows[0].expandable
        state.toggle("ENG")
        assert "ENG" not in state.expanded

    def test_select_expands_ancestors(self) -> None:
        state = TreeState(DEPARTMENTS)
        assert state.select("API") is True
        assert state.selected == "API"
        assert state.ancestors("API") == ["ENG", "BE"]
        assert "API" in [row.code for row in state.visible()]

    def test_select_unknown(self) -> None:
        assert TreeState(DEPARTMENTS).select("NOPE") is False

    def test_filter_forces_expansion(self) -> None:
        state = TreeState(DEPARTMENTS)
        state.filter("team")
        assert [row.code for row in state.visible()] == ["ENG", "BE", "API"]

    def test_reload_drops_stale_expansion(self) -> None:
        state = TreeState(DEPARTMENTS)
        state.expand("ENG")
        state.load([_v("HR")])
        assert state.expanded == set()
        assert "ENG" not in state

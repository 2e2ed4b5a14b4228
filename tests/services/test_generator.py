"""Tests for FormModelGenerator."""

import logging
from typing import Any

import pytest

from formctl.domain.controls import FormSchema
from formctl.domain.library import ControlLibrary
from formctl.domain.model import FieldNode, GroupNode, RowSetNode, ValueChange
from formctl.domain.paths import get_by_path
from formctl.services.generator import FormModelGenerator, get_control, get_data_path
from formctl.services.resolver import SchemaResolver


def _schema(*sections: Any) -> FormSchema:
    return FormSchema.model_validate({"code": "t", "sections": list(sections)})


@pytest.fixture
def generator() -> FormModelGenerator:
    return FormModelGenerator()


class TestPaths:
    def test_root_and_nested(self, generator: FormModelGenerator) -> None:
        model = generator.to_model(
            _schema(
                {"key": "name"},
                {"key": "address", "type": "group", "controls": [{"key": "city"}]},
            )
        )
        assert dict(model.path_map) == {
            "name": "name",
            "address": "address",
            "city": "address.city",
        }
        assert isinstance(model.get("address.city"), FieldNode)

    def test_keyless_group_splices(self, generator: FormModelGenerator) -> None:
        model = generator.to_model(
            _schema(
                {"type": "group", "label": "Section", "controls": [{"key": "a"}, {"key": "b"}]}
            )
        )
        assert dict(model.path_map) == {"a": "a", "b": "b"}
        assert model.value == {"a": "", "b": ""}

    def test_nested_keyless_inside_keyed(self, generator: FormModelGenerator) -> None:
        model = generator.to_model(
            _schema(
                {
                    "key": "person",
                    "type": "group",
                    "controls": [{"type": "group", "controls": [{"key": "age"}]}],
                }
            )
        )
        assert model.get_data_path("age") == "person.age"

    def test_data_path_overrides(self, generator: FormModelGenerator) -> None:
        model = generator.to_model(
            _schema(
                {
                    "key": "address",
                    "type": "group",
                    "controls": [{"key": "zip", "dataPath": "postal.code"}],
                }
            )
        )
        assert model.get_data_path("zip") == "postal.code"
        assert model.value == {"address": {}, "postal": {"code": ""}}

    def test_keyless_field_skipped(self, generator: FormModelGenerator) -> None:
        model = generator.to_model(_schema({"type": "text", "label": "Note"}, {"key": "a"}))
        assert list(model.path_map) == ["a"]

    def test_path_uniqueness_over_builtin_schema(
        self, library: ControlLibrary, employee_schema: dict[str, Any]
    ) -> None:
        schema = SchemaResolver(library).resolve(employee_schema)
        model = FormModelGenerator().to_model(schema)
        keys = [c.key for c in schema.iter_controls() if c.key]
        assert sorted(model.path_map) == sorted(keys)
        assert len(set(model.path_map.values())) == len(model.path_map)
        assert model.get_data_path("stateCode") == "stateCode"
        assert model.get_data_path("phone") == "emergency.phone"
        assert model.get_data_path("firstName") == "firstName"

    def test_duplicate_key_last_wins(
        self, generator: FormModelGenerator, caplog: pytest.LogCaptureFixture
    ) -> None:
        with caplog.at_level(logging.WARNING, logger="formctl"):
            model = generator.to_model(
                _schema({"key": "a"}, {"key": "g", "type": "group", "controls": [{"key": "a"}]})
            )
        assert model.get_data_path("a") == "g.a"
        assert "Duplicate control key" in caplog.text

    def test_conflict_through_field(
        self, generator: FormModelGenerator, caplog: pytest.LogCaptureFixture
    ) -> None:
        with caplog.at_level(logging.WARNING, logger="formctl"):
            model = generator.to_model(_schema({"key": "a"}, {"key": "b", "dataPath": "a.b"}))
        assert model.value == {"a": ""}
        assert "Path conflict" in caplog.text

    def test_module_lookups(self, generator: FormModelGenerator) -> None:
        model = generator.to_model(_schema({"key": "a"}))
        assert get_data_path(model, "a") == "a"
        assert get_control(model, "a") is model.get("a")
        assert get_control(model, "missing") is None
        assert get_data_path(model, "missing") is None


class TestNodes:
    def test_initial_values_and_validators(self, generator: FormModelGenerator) -> None:
        model = generator.to_model(
            _schema({"key": "agree", "type": "checkbox"}, {"key": "name", "required": True})
        )
        assert model.value == {"agree": False, "name": ""}
        assert model.errors() == {"name": {"required": {"required": True}}}

    def test_table_is_rowset(self, generator: FormModelGenerator) -> None:
        model = generator.to_model(
            _schema({"key": "lines", "type": "table", "controls": [{"key": "qty"}]})
        )
        rows = model.get("lines")
        assert isinstance(rows, RowSetNode)
        assert rows.value == []
        assert rows.append().value == {"qty": ""}

    def test_table_without_columns_warns(
        self, generator: FormModelGenerator, caplog: pytest.LogCaptureFixture
    ) -> None:
        with caplog.at_level(logging.WARNING, logger="formctl"):
            model = generator.to_model(_schema({"key": "lines", "type": "table"}))
            row = model.get("lines").append()
        assert isinstance(row, GroupNode)
        assert row.value == {}
        assert "no column definitions" in caplog.text


class TestPatchForm:
    def test_round_trip(self, generator: FormModelGenerator, order_schema: dict[str, Any]) -> None:
        schema = FormSchema.model_validate(order_schema)
        model = generator.to_model(schema)
        data = {
            "customer": "ACME",
            "lines": [
                {"item": "bolt", "qty": 3, "locked": False},
                {"item": "nut", "qty": 1, "locked": True},
            ],
        }
        generator.patch_form(model, data, schema)
        assert model.value == data
        for path in ("customer", "lines.1.item", "lines.0.qty"):
            assert get_by_path(model.value, path) == get_by_path(data, path)

    def test_rebuild_replaces_rows(
        self, generator: FormModelGenerator, order_schema: dict[str, Any]
    ) -> None:
        schema = FormSchema.model_validate(order_schema)
        model = generator.to_model(schema)
        generator.patch_form(model, {"lines": [{"item": "a"}, {"item": "b"}]})
        generator.patch_form(model, {"lines": [{"item": "c"}]})
        assert model.value["lines"] == [{"item": "c", "qty": "", "locked": False}]

    def test_single_event(
        self, generator: FormModelGenerator, order_schema: dict[str, Any]
    ) -> None:
        model = generator.to_model(FormSchema.model_validate(order_schema))
        events: list[ValueChange] = []
        model.subscribe(events.append)
        generator.patch_form(model, {"customer": "x", "lines": [{"item": "a"}]})
        assert len(events) == 1

    def test_unknown_keys_and_bad_data_ignored(self, generator: FormModelGenerator) -> None:
        model = generator.to_model(_schema({"key": "a"}))
        generator.patch_form(model, {"a": 1, "zzz": 2})
        generator.patch_form(model, ["not", "a", "mapping"])  # type: ignore[arg-type]
        assert model.value == {"a": 1}

    def test_tables_inside_groups(self, generator: FormModelGenerator) -> None:
        schema = _schema(
            {
                "key": "order",
                "type": "group",
                "controls": [{"key": "lines", "type": "table", "controls": [{"key": "sku"}]}],
            }
        )
        model = generator.to_model(schema)
        generator.patch_form(model, {"order": {"lines": [{"sku": "X1"}]}}, schema)
        assert model.value == {"order": {"lines": [{"sku": "X1"}]}}

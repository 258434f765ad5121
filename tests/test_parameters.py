"""Tests for parameter derivation and value coercion."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from crud_generator.core.crud_schema import CrudSchema, resolve_schema
from crud_generator.core.errors import FieldValueError
from crud_generator.core.parameters import (
    ParameterSpec,
    as_optional,
    coerce_value,
    derive_field_parameters,
)


class TestDeriveFieldParameters:
    """Positions, types and mandatory flags."""

    def test_positions_and_types(self, widget_schema: CrudSchema) -> None:
        params = derive_field_parameters(widget_schema)
        assert [(p.name, p.position, p.param_type) for p in params] == [
            ("Name", 0, "string"),
            ("Description", 1, "string"),
            ("Price", 2, "double"),
            ("Stock", 3, "int"),
        ]

    def test_mandatory_follows_required_fields(self, widget_schema: CrudSchema) -> None:
        params = {p.name: p for p in derive_field_parameters(widget_schema)}
        assert params["Name"].mandatory
        assert not params["Price"].mandatory

    def test_input_hints_carried(self, widget_schema: CrudSchema) -> None:
        params = {p.name: p for p in derive_field_parameters(widget_schema)}
        assert params["Description"].multiline
        assert params["Description"].rich_text

    def test_date_prefix_is_datetime(self) -> None:
        schema = resolve_schema("T", "P", field_map={"Name": "", "DateDue": "", "Active": ""},
                                type_hints={"Active": "bool"})
        params = {p.name: p.param_type for p in derive_field_parameters(schema)}
        assert params == {"Name": "string", "DateDue": "datetime", "Active": "switch"}

    def test_type_hint_wins_over_date_prefix(self) -> None:
        schema = resolve_schema("T", "P", field_map={"Name": "", "DateFlag": ""},
                                type_hints={"DateFlag": "bool"})
        params = {p.name: p.param_type for p in derive_field_parameters(schema)}
        assert params["DateFlag"] == "switch"
        assert not schema.policy("DateFlag").compressible

    def test_without_name_positions_start_at_one(self) -> None:
        schema = resolve_schema("T", "P", field_map={"A": "", "B": ""})
        assert [p.position for p in derive_field_parameters(schema)] == [1, 2]


def test_as_optional_shifts_positions(widget_schema: CrudSchema) -> None:
    params = as_optional(derive_field_parameters(widget_schema), shift=1)
    assert [p.position for p in params] == [1, 2, 3, 4]
    assert not any(p.mandatory for p in params)


class TestCoerceValue:

    @pytest.mark.parametrize(
        ("param_type", "raw", "expected"),
        [
            ("int", "42", 42),
            ("double", "2.5", 2.5),
            ("switch", "yes", True),
            ("switch", "off", False),
            ("switch", True, True),
            ("string", 7, "7"),
            ("datetime", "2024-03-01T10:00:00", datetime(2024, 3, 1, 10, 0, tzinfo=timezone.utc)),
        ],
    )
    def test_valid_values(self, param_type: str, raw: object, expected: object) -> None:
        assert coerce_value(ParameterSpec("F", param_type), raw) == expected

    @pytest.mark.parametrize(
        ("param_type", "raw"),
        [("int", "many"), ("double", "n/a"), ("switch", "maybe"), ("datetime", "soon")],
    )
    def test_invalid_values(self, param_type: str, raw: str) -> None:
        with pytest.raises(FieldValueError, match="'F'"):
            coerce_value(ParameterSpec("F", param_type), raw)

    def test_none_passes_through(self) -> None:
        assert coerce_value(ParameterSpec("F", "int"), None) is None

    def test_naive_and_offset_datetimes_compare(self) -> None:
        param = ParameterSpec("F", "datetime")
        naive = coerce_value(param, "2024-01-02")
        offset = coerce_value(param, "2024-01-01T22:00:00-03:00")
        assert naive.tzinfo is timezone.utc
        assert offset.utcoffset() == timedelta(hours=-3)
        assert offset < naive

    def test_datetime_instances_are_made_aware(self) -> None:
        coerced = coerce_value(ParameterSpec("F", "datetime"), datetime(2024, 5, 1))
        assert coerced == datetime(2024, 5, 1, tzinfo=timezone.utc)


def test_to_dict_omits_defaults() -> None:
    spec = ParameterSpec("Name", mandatory=True, position=0)
    assert spec.to_dict() == {"name": "Name", "type": "string", "mandatory": True, "position": 0}

"""Tests for CRUD command set generation."""

from __future__ import annotations

import pytest

from crud_generator.core.command_specs import (
    build_command_set,
    generate_crud,
    noun_slug,
)
from crud_generator.core.crud_schema import CrudSchema
from crud_generator.core.errors import SchemaResolutionError


@pytest.mark.parametrize(
    ("noun", "slug"),
    [("CatalogWidgets", "catalog-widgets"), ("Shop Items", "shop-items"), ("API2Keys", "api2-keys")],
)
def test_noun_slug(noun: str, slug: str) -> None:
    assert noun_slug(noun) == slug


class TestCommandSet:
    """Shape of the four generated commands."""

    def test_names(self, widget_schema: CrudSchema) -> None:
        command_set = build_command_set(widget_schema)
        assert [c.name for c in command_set.commands] == [
            "create-catalog-widgets",
            "read-catalog-widgets",
            "update-catalog-widgets",
            "delete-catalog-widgets",
        ]

    def test_create_uses_field_parameters(self, widget_schema: CrudSchema) -> None:
        create = build_command_set(widget_schema).create
        assert [p.name for p in create.parameters] == ["Name", "Description", "Price", "Stock"]
        assert create.parameter("row_key") is None

    def test_update_has_row_key_first(self, widget_schema: CrudSchema) -> None:
        update = build_command_set(widget_schema).update
        row_key = update.parameter("row_key")
        name = update.parameter("Name")
        assert row_key is not None and row_key.mandatory and row_key.position == 0
        assert name is not None and not name.mandatory and name.position == 1
        assert update.parameter("merge") is not None

    def test_read_selectors_are_exclusive_sets(self, widget_schema: CrudSchema) -> None:
        read = build_command_set(widget_schema).read
        sets = {p.name: p.parameter_set for p in read.parameters if p.parameter_set}
        assert sets == {"keyword": "keyword", "name": "name", "row_key": "row_key"}
        assert read.default_parameter_set == "all"
        assert read.parameter("mine") is None

    def test_user_scoped_read_adds_owner_selectors(self, notes_schema: CrudSchema) -> None:
        read = build_command_set(notes_schema).read
        mine = read.parameter("mine")
        assert mine is not None and mine.param_type == "switch"
        assert read.parameter("user_id") is not None
        assert read.parameter("read_code") is not None

    def test_delete_has_force(self, widget_schema: CrudSchema) -> None:
        delete = build_command_set(widget_schema).delete
        force = delete.parameter("force")
        assert force is not None and force.param_type == "switch"

    def test_caller_supplied_key_adds_row_key_to_create(self) -> None:
        command_set = generate_crud("T", "P", field_map={"Name": ""}, key_type="CallerSupplied")
        row_key = command_set.create.parameter("row_key")
        assert row_key is not None and row_key.mandatory


def test_to_dict_is_plain_data(widget_schema: CrudSchema) -> None:
    data = build_command_set(widget_schema).to_dict()
    assert data["noun"] == "CatalogWidgets"
    assert data["key_type"] == "Sequential"
    assert data["unique_names"] is True
    assert data["required_fields"] == ["Name"]
    assert data["commands"][0]["parameters"][0] == {
        "name": "Name",
        "type": "string",
        "mandatory": True,
        "position": 0,
        "description": "Widget name",
    }


def test_generate_crud_propagates_resolution_errors() -> None:
    with pytest.raises(SchemaResolutionError):
        generate_crud("T", "P", field_map={"Name": ""}, key_type="Nope")

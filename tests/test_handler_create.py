"""Tests for CrudHandler.create."""

from __future__ import annotations

import pytest

from crud_generator.core.codec import COMPRESSED_PREFIX
from crud_generator.core.crud_schema import resolve_schema
from crud_generator.core.errors import FieldValueError
from crud_generator.core.handler import CrudHandler, OutcomeStatus
from crud_generator.core.identity import APP_KEY_FIELD, OWNER_FIELD, USER_ID_FIELD, RequestContext
from crud_generator.core.table_store import ROW_KEY, InMemoryTableStore


class TestCreate:
    """Key allocation, coercion and value packing."""

    def test_sequential_keys(self, widget_handler: CrudHandler) -> None:
        keys = [
            widget_handler.create({"Name": name}).records[0][ROW_KEY]
            for name in ("A", "B", "C")
        ]
        assert keys == ["1", "2", "3"]

    def test_values_are_coerced(self, widget_handler: CrudHandler) -> None:
        outcome = widget_handler.create({"Name": "Bolt", "Price": "2.5", "Stock": "10"})
        assert outcome.status is OutcomeStatus.CREATED
        assert outcome.ok
        record = outcome.record
        assert record is not None
        assert (record["Price"], record["Stock"]) == (2.5, 10)

    def test_meta_parameters_and_none_are_dropped(
        self, widget_handler: CrudHandler, store: InMemoryTableStore,
    ) -> None:
        widget_handler.create({"Name": "Bolt", "verbose": True, "what_if": False, "Price": None})
        [stored] = store.search("Catalog", "Widgets")
        assert "verbose" not in stored
        assert "what_if" not in stored
        assert "Price" not in stored

    def test_unknown_field(self, widget_handler: CrudHandler) -> None:
        with pytest.raises(FieldValueError, match="Unknown field 'Colour'"):
            widget_handler.create({"Name": "Bolt", "Colour": "red"})

    def test_missing_required_field(
        self, widget_handler: CrudHandler, store: InMemoryTableStore,
    ) -> None:
        with pytest.raises(FieldValueError, match="Name"):
            widget_handler.create({"Price": 1})
        assert store.search_calls == 0

    def test_large_description_is_stored_compressed(
        self, widget_handler: CrudHandler, store: InMemoryTableStore,
    ) -> None:
        text = "lorem ipsum " * 300
        outcome = widget_handler.create({"Name": "Big", "Description": text})
        [stored] = store.search("Catalog", "Widgets")
        assert stored["Description"].startswith(COMPRESSED_PREFIX)
        assert outcome.records[0]["Description"] == text


class TestUniqueNames:

    def test_duplicate_name_is_a_no_op(
        self,
        widget_handler: CrudHandler,
        store: InMemoryTableStore,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        widget_handler.create({"Name": "Bolt", "Price": 1})
        outcome = widget_handler.create({"Name": "Bolt", "Price": 9})

        assert outcome.status is OutcomeStatus.ALREADY_EXISTS
        assert not outcome.ok
        assert outcome.records[0]["Price"] == 1
        assert len(store.search("Catalog", "Widgets")) == 1
        assert "already exists" in capsys.readouterr().out

    def test_duplicates_allowed_without_uniqueness(self, store: InMemoryTableStore) -> None:
        schema = resolve_schema("Catalog", "Parts", field_map={"Name": ""})
        handler = CrudHandler(schema, store)
        handler.create({"Name": "Bolt"})
        handler.create({"Name": "Bolt"})
        assert len(store.search("Catalog", "Parts")) == 2


class TestOwnership:
    """OwnerID stamping on user-scoped schemas."""

    def test_owner_from_session(self, notes_handler: CrudHandler) -> None:
        outcome = notes_handler.create({"Name": "n"}, RequestContext(session_user_id="alice"))
        assert outcome.records[0][OWNER_FIELD] == "alice"

    def test_owner_from_account_name(self, notes_handler: CrudHandler) -> None:
        assert notes_handler.create({"Name": "n"}).records[0][OWNER_FIELD] == "os-user"

    def test_owner_from_app_key(
        self, notes_handler: CrudHandler, store: InMemoryTableStore,
    ) -> None:
        store.put("Workspace", "Users", "u1", {USER_ID_FIELD: "bob", APP_KEY_FIELD: "key-1"})
        outcome = notes_handler.create({"Name": "n"}, RequestContext(app_key="key-1"))
        assert outcome.records[0][OWNER_FIELD] == "bob"

    def test_unknown_app_key_is_rejected(
        self, notes_handler: CrudHandler, store: InMemoryTableStore,
    ) -> None:
        outcome = notes_handler.create({"Name": "n"}, RequestContext(app_key="nope"))
        assert outcome.status is OutcomeStatus.REJECTED
        assert store.search("Workspace", "Notes") == []

    def test_non_scoped_schema_has_no_owner(self, widget_handler: CrudHandler) -> None:
        record = widget_handler.create({"Name": "Bolt"}).records[0]
        assert OWNER_FIELD not in record

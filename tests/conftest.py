"""Shared fixtures for the crud_generator test suite.

Provides in-memory stores, a couple of resolved schemas and a composable
``make_project_dir`` factory for CLI tests that need schematics on disk.
"""

from __future__ import annotations

import argparse
import os
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any

import pytest

from crud_generator.core.crud_schema import CrudSchema, resolve_schema
from crud_generator.core.handler import CrudHandler
from crud_generator.core.table_store import InMemoryTableStore

# ---------------------------------------------------------------------------
# Namespace builders
# ---------------------------------------------------------------------------

_RECORDS_DEFAULTS: dict[str, object] = {
    "schematic": "widgets",
    "operation": "read",
    "assignments": [],
    "keyword": None,
    "name": None,
    "row_key": None,
    "mine": False,
    "user_id": None,
    "read_code": None,
    "select": None,
    "sort_field": None,
    "sort_type": None,
    "no_markdown": False,
    "merge": False,
    "force": False,
    "session_user": None,
    "app_key": None,
}


def make_namespace(**overrides: Any) -> argparse.Namespace:
    """Build an ``argparse.Namespace`` shaped like ``crudgen records`` output.

    Usage::

        args = make_namespace(operation="create", assignments=["Name=A"])
    """
    merged = {**_RECORDS_DEFAULTS, **overrides}
    return argparse.Namespace(**merged)


# ---------------------------------------------------------------------------
# Schemas and handlers
# ---------------------------------------------------------------------------


def plain_markup(text: str) -> str:
    """Deterministic markup converter for assertions."""
    return f"<p>{text}</p>"


@pytest.fixture()
def store() -> InMemoryTableStore:
    return InMemoryTableStore()


@pytest.fixture()
def widget_schema() -> CrudSchema:
    """Sequential-key widget catalog with unique names."""
    return resolve_schema(
        "Catalog",
        "Widgets",
        field_map={
            "Name": "Widget name",
            "Description": "Long description",
            "Price": "Unit price",
            "Stock": "Units in stock",
        },
        type_hints={"Price": "float", "Stock": "int"},
        key_type="Sequential",
        uniqueness_by_name=True,
    )


@pytest.fixture()
def notes_schema() -> CrudSchema:
    """User-scoped notes keyed by GUID."""
    return resolve_schema(
        "Workspace",
        "Notes",
        field_map={"Name": "Title", "Description": "Body"},
        is_user_scoped=True,
        read_code_partition="NoteCodes",
    )


@pytest.fixture()
def widget_handler(widget_schema: CrudSchema, store: InMemoryTableStore) -> CrudHandler:
    return CrudHandler(widget_schema, store, markup=plain_markup)


@pytest.fixture()
def notes_handler(notes_schema: CrudSchema, store: InMemoryTableStore) -> CrudHandler:
    return CrudHandler(
        notes_schema,
        store,
        markup=plain_markup,
        account_name_provider=lambda: "os-user",
    )


# ---------------------------------------------------------------------------
# Composable project-dir factory
# ---------------------------------------------------------------------------

_DEFAULT_WIDGETS = (
    "table: Catalog\n"
    "partition: Widgets\n"
    "key_type: Sequential\n"
    "unique_names: true\n"
    "fields:\n"
    "  Name: Widget name\n"
    "  Description: Long description\n"
    "  Price: Unit price\n"
    "type_hints:\n"
    "  Price: float\n"
)


def _make_project_dir(
    tmp_path: Path,
    *,
    schematics: dict[str, str] | None = None,
    project_file: str | None = None,
) -> Iterator[Path]:
    """Create an isolated project directory and chdir into it.

    Args:
        tmp_path: pytest ``tmp_path`` fixture.
        schematics: ``name -> YAML text`` written under ``schematics/``.
        project_file: Content for ``crud.yaml``, or None to skip.

    Yields:
        The project root ``Path``.
    """
    schematics_dir = tmp_path / "schematics"
    schematics_dir.mkdir()
    if schematics is None:
        schematics = {"widgets": _DEFAULT_WIDGETS}
    for name, content in schematics.items():
        (schematics_dir / f"{name}.yaml").write_text(content)

    if project_file is not None:
        (tmp_path / "crud.yaml").write_text(project_file)

    original_cwd = Path.cwd()
    os.chdir(tmp_path)
    try:
        yield tmp_path
    finally:
        os.chdir(original_cwd)


@pytest.fixture()
def project_dir(tmp_path: Path) -> Iterator[Path]:
    """Project with a single ``widgets`` schematic and no crud.yaml."""
    yield from _make_project_dir(tmp_path)


@pytest.fixture()
def make_project_dir(tmp_path: Path) -> Iterator[Callable[..., Path]]:
    """Factory variant of ``project_dir`` for custom layouts."""
    original_cwd = Path.cwd()
    generators: list[Iterator[Path]] = []

    def _factory(**kwargs: Any) -> Path:
        gen = _make_project_dir(tmp_path, **kwargs)
        generators.append(gen)
        return next(gen)

    try:
        yield _factory
    finally:
        generators.clear()
        os.chdir(original_cwd)

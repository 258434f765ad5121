"""Table store interface and local implementations.

The handler only talks to a ``TableStore``:

    search(table, partition, row_key=None, where=None, select=None) -> records
    put(table, partition_key, row_key, record) -> record
    update(table, partition_key, row_key, record, merge) -> record
    delete(table, partition_key, row_key)

Records are flat dicts carrying ``PartitionKey``, ``RowKey`` and
``Timestamp`` alongside their own properties.

Two implementations ship with the package:

- ``InMemoryTableStore``: dict backed, used by tests and embedding code.
- ``YamlTableStore``: one YAML file per storage account, used by the CLI.
"""

import os
from collections.abc import Iterable, Mapping
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Protocol

from crud_generator.core.crud_schema import CrudSchema
from crud_generator.core.errors import StorageConfigError
from crud_generator.helpers.helpers_logging import print_info
from crud_generator.helpers.yaml_loader import load_yaml_file, save_yaml_file

PARTITION_KEY = "PartitionKey"
ROW_KEY = "RowKey"
TIMESTAMP = "Timestamp"
KEY_COLUMNS = (PARTITION_KEY, ROW_KEY)

TABLES_DIR = ".tables"

Record = dict[str, Any]
# table -> partition -> row key -> properties
TableData = dict[str, dict[str, dict[str, Record]]]


class TableStore(Protocol):
    """Partitioned table storage used by CrudHandler."""

    def search(
        self,
        table: str,
        partition: str,
        *,
        row_key: str | None = None,
        where: Mapping[str, Any] | None = None,
        select: Iterable[str] | None = None,
    ) -> list[Record]:
        """Return records of a partition, optionally filtered and projected."""
        ...

    def put(self, table: str, partition_key: str, row_key: str, record: Record) -> Record:
        """Insert or replace a record and return it as stored."""
        ...

    def update(
        self,
        table: str,
        partition_key: str,
        row_key: str,
        record: Record,
        *,
        merge: bool,
    ) -> Record:
        """Replace or merge into an existing record and return it."""
        ...

    def delete(self, table: str, partition_key: str, row_key: str) -> None:
        """Remove a record."""
        ...


def _project(record: Record, select: Iterable[str] | None) -> Record:
    if select is None:
        return dict(record)
    wanted = set(select)
    return {key: value for key, value in record.items() if key in wanted}


def _matches(record: Record, where: Mapping[str, Any] | None) -> bool:
    if not where:
        return True
    return all(record.get(key) == value for key, value in where.items())


class InMemoryTableStore:
    """Dict-backed TableStore.

    Attributes:
        search_calls: Number of ``search`` calls made so far.
    """

    def __init__(self, data: TableData | None = None) -> None:
        self.data: TableData = data if data is not None else {}
        self.search_calls = 0

    def _partition(self, table: str, partition: str) -> dict[str, Record]:
        return self.data.setdefault(table, {}).setdefault(partition, {})

    def search(
        self,
        table: str,
        partition: str,
        *,
        row_key: str | None = None,
        where: Mapping[str, Any] | None = None,
        select: Iterable[str] | None = None,
    ) -> list[Record]:
        self.search_calls += 1
        rows = self.data.get(table, {}).get(partition, {})
        if row_key is not None:
            candidates = [rows[row_key]] if row_key in rows else []
        else:
            candidates = list(rows.values())
        return [_project(row, select) for row in candidates if _matches(row, where)]

    def put(self, table: str, partition_key: str, row_key: str, record: Record) -> Record:
        stored = {
            **{k: v for k, v in record.items() if k not in (*KEY_COLUMNS, TIMESTAMP)},
            PARTITION_KEY: partition_key,
            ROW_KEY: row_key,
            TIMESTAMP: datetime.now(timezone.utc).isoformat(),
        }
        self._partition(table, partition_key)[row_key] = stored
        return dict(stored)

    def update(
        self,
        table: str,
        partition_key: str,
        row_key: str,
        record: Record,
        *,
        merge: bool,
    ) -> Record:
        rows = self._partition(table, partition_key)
        if row_key not in rows:
            raise KeyError(f"{table}/{partition_key}/{row_key}")
        base = dict(rows[row_key]) if merge else {}
        base.update(record)
        return self.put(table, partition_key, row_key, base)

    def delete(self, table: str, partition_key: str, row_key: str) -> None:
        self._partition(table, partition_key).pop(row_key, None)


class YamlTableStore(InMemoryTableStore):
    """TableStore persisted to a YAML file.

    The whole file is loaded on construction and rewritten after every
    mutation. Layout::

        Catalog:
          Widgets:
            '1':
              Name: Sprocket
              PartitionKey: Widgets
              RowKey: '1'
    """

    def __init__(self, path: Path) -> None:
        self.path = path
        data: TableData = {}
        if path.exists():
            raw = load_yaml_file(path)
            for table, partitions in raw.items():
                if not isinstance(partitions, dict):
                    continue
                data[table] = {
                    str(partition): {str(key): dict(row) for key, row in rows.items()}
                    for partition, rows in partitions.items()
                    if isinstance(rows, dict)
                }
        super().__init__(data)

    def _save(self) -> None:
        save_yaml_file(self.data, self.path)  # type: ignore[arg-type]

    def put(self, table: str, partition_key: str, row_key: str, record: Record) -> Record:
        stored = super().put(table, partition_key, row_key, record)
        self._save()
        return stored

    def delete(self, table: str, partition_key: str, row_key: str) -> None:
        super().delete(table, partition_key, row_key)
        self._save()


def resolve_setting(name: str, settings: Mapping[str, Any] | None = None) -> str:
    """Resolve a named setting from the environment, then project settings.

    Raises:
        StorageConfigError: If neither source has a non-empty value.
    """
    value = os.environ.get(name)
    if not value and settings is not None:
        raw = settings.get(name)
        value = "" if raw is None else str(raw)
    if not value:
        raise StorageConfigError(name)
    return value


def open_store(
    schema: CrudSchema,
    project_root: Path,
    settings: Mapping[str, Any] | None = None,
) -> YamlTableStore:
    """Connect to the storage account named by the schema's settings.

    Both the account and the key setting must resolve.

    Raises:
        StorageConfigError: If either setting is missing.
    """
    account = resolve_setting(schema.storage_account_setting, settings)
    resolve_setting(schema.storage_key_setting, settings)
    path = project_root / TABLES_DIR / f"{account}.yaml"
    print_info(f"Using table store '{account}' ({path})")
    return YamlTableStore(path)

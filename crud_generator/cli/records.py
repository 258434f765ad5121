#!/usr/bin/env python3
"""Run CRUD operations for a schematic against the project's table store.

Usage:
    crudgen records widgets create --set Name=Sprocket --set Price=2.5
    crudgen records widgets read --keyword sprocket
    crudgen records widgets read --sort-field Price --sort-type float
    crudgen records widgets update --row-key 1 --set Price=3 --merge
    crudgen records widgets delete --name Sprocket --force

Without ``auto_connect: true`` in the schematic, records are kept in
``.tables/local.yaml`` under the project root.
"""

import argparse
import sys
from pathlib import Path
from typing import NoReturn

import click

from crud_generator.core.crud_schema import CrudSchema, resolve_schema
from crud_generator.core.errors import KeyAllocationError
from crud_generator.core.handler import CrudHandler, CrudOutcome, OutcomeStatus
from crud_generator.core.identity import RequestContext
from crud_generator.core.table_store import (
    TABLES_DIR,
    Record,
    TableStore,
    YamlTableStore,
    open_store,
)
from crud_generator.helpers.helpers_logging import (
    print_error,
    print_info,
    print_success,
)
from crud_generator.helpers.project_config import (
    get_project_root,
    load_project_settings,
    load_schematic,
)
from crud_generator.helpers.yaml_loader import dump_yaml_string

LOCAL_STORE_NAME = "local"


class RecordsArgumentParser(argparse.ArgumentParser):
    """Parser that reports errors with the CLI's error style."""

    def error(self, message: str) -> NoReturn:
        print_error(message)
        print_info("Run 'crudgen records <schematic> <operation> --help' for usage")
        raise SystemExit(1)


def _add_identity_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--session-user", help="Authenticated session user id")
    parser.add_argument("--app-key", help="Application key to resolve the user from")


def _add_selector_options(parser: argparse.ArgumentParser, *, read: bool) -> None:
    group = parser.add_mutually_exclusive_group(required=not read)
    group.add_argument("--keyword", help="Match Name or Description")
    group.add_argument("--name", help="Exact Name match")
    group.add_argument("--row-key", help="Exact row key match")
    if read:
        group.add_argument("--mine", action="store_true", help="Records owned by the caller")
        group.add_argument("--user-id", help="Records owned by a user id")
        group.add_argument("--read-code", help="Records linked to a read code")


def _build_parser() -> RecordsArgumentParser:
    parser = RecordsArgumentParser(
        prog="crudgen records",
        description="Create, read, update and delete schematic records",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("schematic", help="Schematic name (schematics/<name>.yaml)")
    operations = parser.add_subparsers(dest="operation", required=True)

    create = operations.add_parser("create", help="Create a record")
    create.add_argument("--set", action="append", default=[], metavar="FIELD=VALUE",
                        dest="assignments", help="Field value (repeatable)")
    create.add_argument("--row-key", help="Row key (caller-supplied key schematics)")
    _add_identity_options(create)

    read = operations.add_parser("read", help="Read records")
    _add_selector_options(read, read=True)
    read.add_argument("--select", action="append", metavar="FIELD",
                      help="Property to fetch (repeatable)")
    read.add_argument("--sort-field", help="Property to sort by")
    read.add_argument("--sort-type", choices=("string", "int", "float", "datetime", "bool"),
                      help="Sort comparison type")
    read.add_argument("--no-markdown", action="store_true",
                      help="Return markup without HTML conversion")
    _add_identity_options(read)

    update = operations.add_parser("update", help="Update a record")
    update.add_argument("--row-key", required=True, help="Row key of the record")
    update.add_argument("--set", action="append", default=[], metavar="FIELD=VALUE",
                        dest="assignments", help="Field value (repeatable)")
    update.add_argument("--merge", action="store_true",
                        help="Merge fields instead of replacing the record")
    _add_identity_options(update)

    delete = operations.add_parser("delete", help="Delete records")
    _add_selector_options(delete, read=False)
    delete.add_argument("--force", action="store_true", help="Skip confirmation")
    _add_identity_options(delete)

    return parser


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def parse_assignments(assignments: list[str]) -> dict[str, str]:
    """Parse ``FIELD=VALUE`` pairs.

    Raises:
        ValueError: If an assignment has no ``=`` or an empty field name.
    """
    values: dict[str, str] = {}
    for assignment in assignments:
        field_name, sep, value = assignment.partition("=")
        if not sep or not field_name.strip():
            raise ValueError(f"Invalid assignment '{assignment}' (expected FIELD=VALUE)")
        values[field_name.strip()] = value
    return values


def _load_schema(root: Path, schematic: str) -> CrudSchema:
    options = load_schematic(schematic, root)
    table = str(options.pop("table", "") or "")
    partition = str(options.pop("partition", "") or "")
    return resolve_schema(table, partition, **options)


def _open_store(schema: CrudSchema, root: Path) -> TableStore:
    if schema.auto_connect:
        return open_store(schema, root, load_project_settings(root))
    return YamlTableStore(root / TABLES_DIR / f"{LOCAL_STORE_NAME}.yaml")


def _confirm_delete(record: Record) -> bool:
    label = record.get("Name") or record.get("RowKey")
    return click.confirm(f"Delete '{label}' (row key {record.get('RowKey')})?", default=False)


def _report(outcome: CrudOutcome) -> int:
    if outcome.records:
        print(dump_yaml_string(outcome.records), end="")

    if outcome.status is OutcomeStatus.FOUND:
        print_success(f"{len(outcome.records)} record(s) found")
        return 0
    if outcome.status is OutcomeStatus.NOT_FOUND and not outcome.message:
        print_info("No records matched")
        return 0
    if outcome.ok:
        print_success(f"{outcome.status.value}: {len(outcome.records)} record(s)")
        return 0
    return 1


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------


def _run_operation(handler: CrudHandler, args: argparse.Namespace) -> CrudOutcome:
    context = RequestContext(session_user_id=args.session_user, app_key=args.app_key)

    if args.operation == "create":
        return handler.create(parse_assignments(args.assignments), context, row_key=args.row_key)

    if args.operation == "read":
        return handler.read(
            context,
            keyword=args.keyword,
            name=args.name,
            row_key=args.row_key,
            mine=args.mine,
            user_id=args.user_id,
            read_code=args.read_code,
            select=args.select,
            sort_field=args.sort_field,
            sort_type=args.sort_type,
            no_markdown=args.no_markdown,
        )

    if args.operation == "update":
        return handler.update(
            args.row_key,
            parse_assignments(args.assignments),
            context,
            merge=args.merge,
        )

    return handler.delete(
        context,
        keyword=args.keyword,
        name=args.name,
        row_key=args.row_key,
        force=args.force,
        confirm=None if args.force else _confirm_delete,
    )


def _dispatch(args: argparse.Namespace, store: TableStore | None = None) -> int:
    root = get_project_root()
    try:
        schema = _load_schema(root, args.schematic)
        handler = CrudHandler(schema, store if store is not None else _open_store(schema, root))
        outcome = _run_operation(handler, args)
    except (FileNotFoundError, ValueError, KeyAllocationError) as exc:
        print_error(str(exc))
        return 1
    return _report(outcome)


def main(argv: list[str] | None = None) -> int:
    """Entry point for ``crudgen records``."""
    parser = _build_parser()
    args = parser.parse_args(argv)
    return _dispatch(args)


if __name__ == "__main__":
    sys.exit(main())

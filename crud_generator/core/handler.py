"""Generic CRUD handler parameterized by a CrudSchema.

One ``CrudHandler`` serves every schematic: the schema supplies the table,
partition, fields, key policy and ownership rules, and the store supplies
persistence. Every operation takes an explicit ``RequestContext``.

Results are ``CrudOutcome`` values so callers can tell a created record
from a duplicate, a missing row or a rejected request:

    created         new record written
    found           read returned records
    updated         existing record overwritten or merged
    deleted         one or more records removed
    already_exists  unique-name create found an existing record
    not_found       no record matched
    rejected        identity/ownership/confirmation check failed
"""

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from crud_generator.core.codec import MarkupConverter, pack_record, unpack_record
from crud_generator.core.crud_schema import CrudSchema
from crud_generator.core.errors import FieldValueError, QueryTooBroadError
from crud_generator.core.field_spec import NAME_FIELD
from crud_generator.core.identity import OWNER_FIELD, RequestContext, resolve_user_id
from crud_generator.core.parameters import (
    ParameterSpec,
    coerce_value,
    derive_field_parameters,
)
from crud_generator.core.row_keys import generate_row_key
from crud_generator.core.table_store import KEY_COLUMNS, ROW_KEY, Record, TableStore
from crud_generator.helpers.helpers_logging import print_error, print_warning

DESCRIPTION_FIELD = "Description"
READ_CODE_FIELD = "ReadCode"
READ_CODE_TARGET_FIELD = "ItemRowKey"

# Invocation-control options that never become record properties
META_PARAMETERS = frozenset({
    "error_action",
    "warning_action",
    "error_variable",
    "warning_variable",
    "information_action",
    "information_variable",
    "out_variable",
    "out_buffer",
    "pipeline_variable",
    "verbose",
    "debug",
    "what_if",
    "confirm",
})

_WILDCARD_CHARS = frozenset("*?% ")

ConfirmCallback = Callable[[Record], bool]


class OutcomeStatus(Enum):
    """Tagged result of a CRUD operation."""

    CREATED = "created"
    FOUND = "found"
    UPDATED = "updated"
    DELETED = "deleted"
    ALREADY_EXISTS = "already_exists"
    NOT_FOUND = "not_found"
    REJECTED = "rejected"


_SUCCESS_STATUSES = frozenset({
    OutcomeStatus.CREATED,
    OutcomeStatus.FOUND,
    OutcomeStatus.UPDATED,
    OutcomeStatus.DELETED,
})


@dataclass
class CrudOutcome:
    """Result of a CRUD operation.

    Attributes:
        status: What happened.
        records: Records written, found or removed.
        message: Explanation for no-op and rejected outcomes.
    """

    status: OutcomeStatus
    records: list[Record] = field(default_factory=list[Record])
    message: str = ""

    @property
    def ok(self) -> bool:
        """True when the operation did what was asked."""
        return self.status in _SUCCESS_STATUSES

    @property
    def record(self) -> Record | None:
        """First record, if any."""
        return self.records[0] if self.records else None


def is_too_broad(keyword: str) -> bool:
    """True for empty keywords or keywords made only of wildcards."""
    return all(char in _WILDCARD_CHARS for char in keyword)


def _rejected(message: str) -> CrudOutcome:
    print_error(message)
    return CrudOutcome(OutcomeStatus.REJECTED, message=message)


def _no_op(status: OutcomeStatus, message: str, records: list[Record] | None = None) -> CrudOutcome:
    print_warning(message)
    return CrudOutcome(status, records=records or [], message=message)


class CrudHandler:
    """Create/read/update/delete records of one schema partition."""

    def __init__(
        self,
        schema: CrudSchema,
        store: TableStore,
        *,
        markup: MarkupConverter | None = None,
        account_name_provider: Callable[[], str] | None = None,
    ) -> None:
        self.schema = schema
        self.store = store
        self.markup = markup
        self.account_name_provider = account_name_provider
        self.parameters: dict[str, ParameterSpec] = {
            param.name: param for param in derive_field_parameters(schema)
        }

    # ------------------------------------------------------------------
    # Value helpers
    # ------------------------------------------------------------------

    def _build_record(self, values: Mapping[str, Any]) -> Record:
        """Strip meta options and coerce values to their parameter types."""
        record: Record = {}
        for name, value in values.items():
            if name in META_PARAMETERS or value is None:
                continue
            param = self.parameters.get(name)
            if param is None:
                raise FieldValueError(
                    f"Unknown field '{name}' for {self.schema.noun}"
                )
            record[name] = coerce_value(param, value)
        return record

    def _resolve_user(self, context: RequestContext) -> str | None:
        return resolve_user_id(
            self.schema, self.store, context, self.account_name_provider,
        )

    def _unpack(self, records: Iterable[Record], *, convert_markup: bool) -> list[Record]:
        return [
            unpack_record(
                self.schema,
                record,
                convert_markup=convert_markup,
                converter=self.markup,
            )
            for record in records
        ]

    def _search(self, **kwargs: Any) -> list[Record]:
        return self.store.search(self.schema.table, self.schema.partition, **kwargs)

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create(
        self,
        values: Mapping[str, Any],
        context: RequestContext | None = None,
        row_key: str | None = None,
    ) -> CrudOutcome:
        """Store a new record built from caller-supplied values."""
        context = context or RequestContext()
        record = self._build_record(values)

        missing = sorted(name for name in self.schema.required_fields if name not in record)
        if missing:
            raise FieldValueError(f"Missing required field(s): {', '.join(missing)}")

        if self.schema.is_user_scoped:
            user_id = self._resolve_user(context)
            if user_id is None:
                return _rejected("No user matches the supplied application key")
            record[OWNER_FIELD] = user_id

        if self.schema.uniqueness_by_name and NAME_FIELD in record:
            existing = self._search(where={NAME_FIELD: record[NAME_FIELD]})
            if existing:
                return _no_op(
                    OutcomeStatus.ALREADY_EXISTS,
                    f"{self.schema.noun} named '{record[NAME_FIELD]}' already exists",
                    self._unpack(existing, convert_markup=False),
                )

        new_key = generate_row_key(self.schema, self.store, record, row_key)
        stored = self.store.put(
            self.schema.table,
            self.schema.partition,
            new_key,
            pack_record(self.schema, record),
        )
        return CrudOutcome(
            OutcomeStatus.CREATED,
            records=self._unpack([stored], convert_markup=False),
        )

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def _keyword_matches(self, keyword: str, select: list[str] | None) -> list[Record]:
        search_select = None
        if select is not None:
            search_select = [NAME_FIELD, DESCRIPTION_FIELD, *KEY_COLUMNS]
        candidates = self._search(select=search_select)

        needle = keyword.lower()
        matches: list[Record] = []
        for candidate in candidates:
            plain = unpack_record(self.schema, candidate, convert_markup=False)
            # Each field is matched on its own
            if any(
                needle in str(plain.get(name) or "").lower()
                for name in (NAME_FIELD, DESCRIPTION_FIELD)
            ):
                matches.append(candidate)

        if select is None:
            return matches

        # Re-fetch matches with the caller's projection
        projection = [*select, *KEY_COLUMNS]
        records: list[Record] = []
        for match in matches:
            records.extend(self._search(row_key=str(match[ROW_KEY]), select=projection))
        return records

    def _read_code_matches(self, read_code: str, select: list[str] | None) -> list[Record]:
        partition = self.schema.read_code_partition
        if partition is None:
            raise FieldValueError(f"{self.schema.noun} has no read-code partition")
        codes = self.store.search(
            self.schema.table, partition, where={READ_CODE_FIELD: read_code},
        )
        records: list[Record] = []
        for code in codes:
            target = code.get(READ_CODE_TARGET_FIELD)
            if target:
                records.extend(self._search(row_key=str(target), select=select))
        return records

    def _select_records(
        self,
        context: RequestContext,
        *,
        keyword: str | None = None,
        name: str | None = None,
        row_key: str | None = None,
        mine: bool = False,
        user_id: str | None = None,
        read_code: str | None = None,
        select: list[str] | None = None,
    ) -> list[Record] | None:
        """Fetch raw records for one selector; None means the caller is unknown."""
        if keyword is not None:
            return self._keyword_matches(keyword, select)
        if name is not None:
            return self._search(where={NAME_FIELD: name}, select=select)
        if row_key is not None:
            return self._search(row_key=row_key, select=select)
        if mine or user_id is not None:
            owner = user_id if user_id is not None else self._resolve_user(context)
            if owner is None:
                return None
            return self._search(where={OWNER_FIELD: owner}, select=select)
        if read_code is not None:
            return self._read_code_matches(read_code, select)
        return self._search(select=select)

    def _check_selectors(self, selectors: dict[str, object]) -> None:
        chosen = [name for name, value in selectors.items() if value not in (None, False)]
        if len(chosen) > 1:
            raise FieldValueError(
                f"Selectors are mutually exclusive: {', '.join(chosen)}"
            )
        keyword = selectors.get("keyword")
        if isinstance(keyword, str) and is_too_broad(keyword):
            raise QueryTooBroadError(keyword)
        if (selectors.get("mine") or selectors.get("user_id") is not None) and not self.schema.is_user_scoped:
            raise FieldValueError(f"{self.schema.noun} records are not user scoped")

    def read(
        self,
        context: RequestContext | None = None,
        *,
        keyword: str | None = None,
        name: str | None = None,
        row_key: str | None = None,
        mine: bool = False,
        user_id: str | None = None,
        read_code: str | None = None,
        select: Iterable[str] | None = None,
        sort_field: str | None = None,
        sort_type: str | None = None,
        no_markdown: bool = False,
    ) -> CrudOutcome:
        """Retrieve records by one selector (all records when none is given).

        Raises:
            QueryTooBroadError: For a wildcard-only keyword, before any
                storage call.
            FieldValueError: For conflicting or unsupported selectors.
        """
        context = context or RequestContext()
        self._check_selectors({
            "keyword": keyword,
            "name": name,
            "row_key": row_key,
            "mine": mine,
            "user_id": user_id,
            "read_code": read_code,
        })
        projection = list(select) if select is not None else None

        records = self._select_records(
            context,
            keyword=keyword,
            name=name,
            row_key=row_key,
            mine=mine,
            user_id=user_id,
            read_code=read_code,
            select=projection,
        )
        if records is None:
            return _rejected("No user matches the supplied application key")

        sort_by = sort_field or self.schema.sort_field
        if sort_by:
            records = sort_records(records, sort_by, sort_type or self.schema.sort_type)

        unpacked = self._unpack(records, convert_markup=not no_markdown)
        status = OutcomeStatus.FOUND if unpacked else OutcomeStatus.NOT_FOUND
        return CrudOutcome(status, records=unpacked)

    # ------------------------------------------------------------------
    # Update
    # ------------------------------------------------------------------

    def update(
        self,
        row_key: str,
        values: Mapping[str, Any],
        context: RequestContext | None = None,
        *,
        merge: bool = False,
    ) -> CrudOutcome:
        """Overwrite or merge into the record stored under ``row_key``."""
        context = context or RequestContext()
        existing = self._search(row_key=row_key)
        if not existing:
            return _no_op(
                OutcomeStatus.NOT_FOUND,
                f"No {self.schema.noun} record with row key '{row_key}'",
            )

        owner = existing[0].get(OWNER_FIELD)
        if owner:
            caller = self._resolve_user(context)
            if caller != owner:
                return _rejected(
                    f"Record '{row_key}' is owned by another user; update refused"
                )

        record = self._build_record(values)
        if owner:
            record[OWNER_FIELD] = owner

        stored = self.store.update(
            self.schema.table,
            self.schema.partition,
            row_key,
            pack_record(self.schema, record),
            merge=merge,
        )
        return CrudOutcome(
            OutcomeStatus.UPDATED,
            records=self._unpack([stored], convert_markup=False),
        )

    # ------------------------------------------------------------------
    # Delete
    # ------------------------------------------------------------------

    def delete(
        self,
        context: RequestContext | None = None,
        *,
        keyword: str | None = None,
        name: str | None = None,
        row_key: str | None = None,
        force: bool = False,
        confirm: ConfirmCallback | None = None,
    ) -> CrudOutcome:
        """Remove the records matched by one selector.

        On user-scoped schemas, records owned by someone other than the
        caller are left out of the delete set. Unless ``force`` is set,
        ``confirm`` is asked about every record.
        """
        context = context or RequestContext()
        selectors: dict[str, object] = {"keyword": keyword, "name": name, "row_key": row_key}
        if all(value is None for value in selectors.values()):
            raise FieldValueError("Delete needs a keyword, name or row key")
        self._check_selectors(selectors)

        if not force and confirm is None:
            return _rejected("Delete requires confirmation (pass force to skip it)")

        candidates = self._select_records(
            context, keyword=keyword, name=name, row_key=row_key,
        ) or []

        if self.schema.is_user_scoped:
            caller = self._resolve_user(context)
            candidates = [
                record for record in candidates
                if not record.get(OWNER_FIELD) or record.get(OWNER_FIELD) == caller
            ]

        removed: list[Record] = []
        for record in candidates:
            if not force and confirm is not None and not confirm(record):
                continue
            self.store.delete(self.schema.table, self.schema.partition, str(record[ROW_KEY]))
            removed.append(record)

        if not removed:
            return CrudOutcome(OutcomeStatus.NOT_FOUND, message="Nothing was deleted")
        return CrudOutcome(
            OutcomeStatus.DELETED,
            records=self._unpack(removed, convert_markup=False),
        )


# ----------------------------------------------------------------------
# Sorting
# ----------------------------------------------------------------------

_SORT_PARAM_TYPES = {
    "int": "int",
    "float": "double",
    "datetime": "datetime",
    "bool": "switch",
}


def sort_records(records: list[Record], sort_field: str, sort_type: str | None = None) -> list[Record]:
    """Sort records client side by one field.

    With a sort type the values are compared as that type; values that
    cannot be converted (or are missing) sort last. Without one the values
    are compared as strings.
    """
    param_type = _SORT_PARAM_TYPES.get((sort_type or "string").lower())
    sort_param = ParameterSpec(name=sort_field, param_type=param_type or "string")

    def sort_key(record: Record) -> tuple[int, Any]:
        value = record.get(sort_field)
        if value is None:
            return (1, "")
        if param_type is None:
            return (0, str(value))
        try:
            return (0, coerce_value(sort_param, value))
        except FieldValueError:
            return (1, "")

    return sorted(records, key=sort_key)

"""CRUD schema model and resolution.

A ``CrudSchema`` is built once per generation call from caller input and is
never mutated afterwards. It drives both the generated command specs and
the generic ``CrudHandler``; nothing is compiled per schema.

Example:
    >>> schema = resolve_schema(
    ...     "Catalog", "Widgets",
    ...     field_map={"Name": "Widget name", "Description": "Details"},
    ...     key_type="Sequential",
    ... )
    >>> schema.noun
    'CatalogWidgets'
    >>> [f.name for f in schema.fields]
    ['Name', 'Description']
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum

from crud_generator.core.errors import SchemaResolutionError
from crud_generator.core.field_spec import (
    NAME_FIELD,
    FieldSpec,
    FieldType,
    apply_input_hints,
    fields_from_mapping,
    order_fields,
)
from crud_generator.core.schema_source import SchemaFetcher, resolve_fields_from_ref

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

DEFAULT_LARGE_FIELDS = ("description",)
DEFAULT_HTML_FIELDS = ("description", "articlebody")
DEFAULT_USER_PARTITION = "Users"
DEFAULT_STORAGE_ACCOUNT_SETTING = "AzureStorageAccountName"
DEFAULT_STORAGE_KEY_SETTING = "AzureStorageAccountKey"

VALID_SORT_TYPES = ("string", "int", "float", "datetime", "bool")


class KeyType(Enum):
    """Row key generation strategy for new records."""

    GUID = "Guid"
    HEX = "Hex"
    SMALL_HEX = "SmallHex"
    SEQUENTIAL = "Sequential"
    NAMED = "Named"
    CALLER_SUPPLIED = "CallerSupplied"

    @classmethod
    def parse(cls, value: "str | KeyType") -> "KeyType":
        """Parse a key type name case-insensitively."""
        if isinstance(value, KeyType):
            return value
        wanted = str(value).strip().lower()
        for member in cls:
            if member.value.lower() == wanted or member.name.lower() == wanted:
                return member
        valid = ", ".join(member.value for member in cls)
        raise SchemaResolutionError(f"Unknown key type '{value}' (expected one of: {valid})")


@dataclass(frozen=True)
class FieldPolicy:
    """Per-field value handling, computed once from the schema.

    Attributes:
        compressible: Large values are compressed on write and expanded on read.
        convert_markup: Light markup is converted to HTML on read.
    """

    compressible: bool = False
    convert_markup: bool = False


@dataclass(frozen=True)
class CrudSchema:
    """Immutable description of one table partition's CRUD command set."""

    table: str
    partition: str
    noun: str
    type_name: str
    fields: tuple[FieldSpec, ...]
    required_fields: frozenset[str] = frozenset()
    key_type: KeyType = KeyType.GUID
    is_user_scoped: bool = False
    uniqueness_by_name: bool = False
    user_partition: str = DEFAULT_USER_PARTITION
    read_code_partition: str | None = None
    sort_field: str | None = None
    sort_type: str | None = None
    large_fields: tuple[str, ...] = DEFAULT_LARGE_FIELDS
    html_fields: tuple[str, ...] = DEFAULT_HTML_FIELDS
    convert_markdown: bool = True
    auto_connect: bool = False
    storage_account_setting: str = DEFAULT_STORAGE_ACCOUNT_SETTING
    storage_key_setting: str = DEFAULT_STORAGE_KEY_SETTING
    policies: Mapping[str, FieldPolicy] = field(default_factory=dict)

    @property
    def field_names(self) -> list[str]:
        """Field names in resolution order."""
        return [spec.name for spec in self.fields]

    def get_field(self, name: str) -> FieldSpec | None:
        """Look up a field by exact name."""
        for spec in self.fields:
            if spec.name == name:
                return spec
        return None

    def policy(self, name: str) -> FieldPolicy:
        """Value policy for a field; unknown fields get no special handling."""
        return self.policies.get(name, FieldPolicy())


def _derive_policies(
    fields: Iterable[FieldSpec],
    *,
    convert_markdown: bool,
) -> dict[str, FieldPolicy]:
    policies: dict[str, FieldPolicy] = {}
    for spec in fields:
        is_text = spec.field_type is FieldType.STRING
        policies[spec.name] = FieldPolicy(
            compressible=is_text,
            convert_markup=is_text and spec.rich_text and convert_markdown,
        )
    return policies


def _resolve_required(
    fields: list[FieldSpec],
    required_fields: Iterable[str] | None,
) -> frozenset[str]:
    names = {spec.name for spec in fields}
    if required_fields is None:
        return frozenset({NAME_FIELD}) if NAME_FIELD in names else frozenset()

    required = frozenset(required_fields)
    missing = sorted(required - names)
    if missing:
        raise SchemaResolutionError(
            f"Required field(s) not in schema: {', '.join(missing)}"
        )
    return required


def resolve_schema(
    table: str,
    partition: str,
    *,
    field_map: Mapping[str, str] | None = None,
    schema_ref: str | None = None,
    type_hints: Mapping[str, str] | None = None,
    required_fields: Iterable[str] | None = None,
    key_type: "str | KeyType" = KeyType.GUID,
    is_user_scoped: bool = False,
    user_partition: str = DEFAULT_USER_PARTITION,
    read_code_partition: str | None = None,
    uniqueness_by_name: bool = False,
    sort_field: str | None = None,
    sort_type: str | None = None,
    large_fields: Iterable[str] = DEFAULT_LARGE_FIELDS,
    html_fields: Iterable[str] = DEFAULT_HTML_FIELDS,
    include_fields: Iterable[str] | None = None,
    noun: str | None = None,
    type_name: str | None = None,
    field_order: Iterable[str] | None = None,
    convert_markdown: bool = True,
    auto_connect: bool = False,
    storage_account_setting: str = DEFAULT_STORAGE_ACCOUNT_SETTING,
    storage_key_setting: str = DEFAULT_STORAGE_KEY_SETTING,
    fetcher: SchemaFetcher | None = None,
) -> CrudSchema:
    """Resolve caller input into a CrudSchema.

    Exactly one of ``field_map`` (explicit mode) or ``schema_ref``
    (derived mode) must be given.

    Raises:
        SchemaResolutionError: When the table/partition is missing, no
            fields can be resolved, a required field is absent, or the key
            type or sort type is unknown.
    """
    if not table or not partition:
        raise SchemaResolutionError("Both table and partition are required")
    if (field_map is None) == (schema_ref is None):
        raise SchemaResolutionError("Provide exactly one of a field map or a schema reference")

    if field_map is not None:
        fields = fields_from_mapping(field_map, type_hints)
        if include_fields is not None:
            wanted = {name.lower() for name in include_fields}
            fields = [spec for spec in fields if spec.name.lower() in wanted]
    else:
        fields = resolve_fields_from_ref(str(schema_ref), include_fields, fetcher)

    if not fields:
        source = "field map" if field_map is not None else f"schema '{schema_ref}'"
        raise SchemaResolutionError(f"No fields could be resolved from {source}")

    fields = order_fields(fields, field_order)
    large = tuple(large_fields)
    html = tuple(html_fields)
    fields = apply_input_hints(fields, large, html)

    if sort_type is not None and sort_type.lower() not in VALID_SORT_TYPES:
        raise SchemaResolutionError(
            f"Unknown sort type '{sort_type}' (expected one of: {', '.join(VALID_SORT_TYPES)})"
        )

    return CrudSchema(
        table=table,
        partition=partition,
        noun=noun or f"{table}{partition}",
        type_name=type_name or f"{table}.{partition}",
        fields=tuple(fields),
        required_fields=_resolve_required(fields, required_fields),
        key_type=KeyType.parse(key_type),
        is_user_scoped=is_user_scoped,
        uniqueness_by_name=uniqueness_by_name,
        user_partition=user_partition,
        read_code_partition=read_code_partition,
        sort_field=sort_field,
        sort_type=sort_type.lower() if sort_type else None,
        large_fields=large,
        html_fields=html,
        convert_markdown=convert_markdown,
        auto_connect=auto_connect,
        storage_account_setting=storage_account_setting,
        storage_key_setting=storage_key_setting,
        policies=_derive_policies(fields, convert_markdown=convert_markdown),
    )

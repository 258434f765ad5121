"""Row key generation strategies.

Guid, Hex and SmallHex keys are random. Sequential keys search the
partition for the first unused positive integer, assuming keys are
allocated contiguously from 1:

    probe 1, 2, 4, 8, ... until an unused key is found
    bisect between the last used and first unused probe

This costs O(log n) lookups and needs no counter record. It is not safe
under concurrent callers: two simultaneous creates can pick the same key.
"""

import secrets
import uuid
from collections.abc import Callable

from crud_generator.core.crud_schema import CrudSchema, KeyType
from crud_generator.core.errors import FieldValueError, KeyAllocationError
from crud_generator.core.field_spec import NAME_FIELD
from crud_generator.core.table_store import TableStore

HEX_KEY_LIMIT = 2**31
SMALL_HEX_KEY_LIMIT = 0x10000
_SMALL_HEX_ATTEMPTS = 32


def guid_key() -> str:
    """Fresh random unique identifier."""
    return str(uuid.uuid4())


def hex_key(limit: int = HEX_KEY_LIMIT) -> str:
    """Random integer below ``limit`` formatted as lowercase hex."""
    return format(secrets.randbelow(limit), "x")


def find_next_sequential_key(is_used: Callable[[int], bool]) -> int:
    """Find the first unused key of a contiguous 1-based key space.

    Args:
        is_used: Returns True when a key is already taken.

    Returns:
        The smallest unused key (1 for an empty partition).
    """
    if not is_used(1):
        return 1

    used, candidate = 1, 2
    while is_used(candidate):
        used, candidate = candidate, candidate * 2

    # Invariant: ``used`` is taken, ``candidate`` is free
    while candidate - used > 1:
        middle = (used + candidate) // 2
        if is_used(middle):
            used = middle
        else:
            candidate = middle
    return candidate


def _row_exists(schema: CrudSchema, store: TableStore, row_key: str) -> bool:
    rows = store.search(
        schema.table,
        schema.partition,
        row_key=row_key,
        select=("RowKey",),
    )
    return bool(rows)


def generate_row_key(
    schema: CrudSchema,
    store: TableStore,
    record: dict[str, object],
    supplied_key: str | None = None,
) -> str:
    """Produce a row key for a new record according to the schema key type.

    Raises:
        FieldValueError: When a caller-supplied or Name key is missing.
        KeyAllocationError: When no free small hex key is found.
    """
    key_type = schema.key_type

    if key_type is KeyType.GUID:
        return guid_key()
    if key_type is KeyType.HEX:
        return hex_key()
    if key_type is KeyType.SMALL_HEX:
        for _attempt in range(_SMALL_HEX_ATTEMPTS):
            key = hex_key(SMALL_HEX_KEY_LIMIT)
            if not _row_exists(schema, store, key):
                return key
        raise KeyAllocationError(
            f"No free small hex key found in {schema.table}/{schema.partition}"
        )
    if key_type is KeyType.SEQUENTIAL:
        next_key = find_next_sequential_key(
            lambda key: _row_exists(schema, store, str(key))
        )
        return str(next_key)
    if key_type is KeyType.NAMED:
        name = record.get(NAME_FIELD)
        if not name:
            raise FieldValueError("Named row keys require a Name value")
        return str(name)

    if not supplied_key:
        raise FieldValueError("A row key must be supplied for this schema")
    return supplied_key

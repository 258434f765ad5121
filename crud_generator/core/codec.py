"""Value packing for storage and unpacking for reads.

Write path: text values larger than ``COMPRESSION_THRESHOLD_BYTES`` are
gzip-compressed and stored as ``gzip:<base64>``.

Read path: compressed values are expanded, then rich-text fields holding
light markup are converted to HTML with ``markdown``.

Which fields take part is decided by the schema's ``FieldPolicy`` values,
not by inspecting every property of every record. Both read conversions are
best effort: a failure prints a warning and leaves the value unchanged.
"""

import base64
import binascii
import gzip
import re
from collections.abc import Callable
from typing import Any

import markdown

from crud_generator.core.crud_schema import CrudSchema
from crud_generator.helpers.helpers_logging import print_warning

COMPRESSION_THRESHOLD_BYTES = 2048
COMPRESSED_PREFIX = "gzip:"

_HTML_RE = re.compile(r"^\s*<[A-Za-z!/]")

# Markup converter signature: light markup -> HTML
MarkupConverter = Callable[[str], str]


def compress_value(value: str) -> str:
    """Compress text into the stored ``gzip:<base64>`` form."""
    packed = gzip.compress(value.encode("utf-8"))
    return COMPRESSED_PREFIX + base64.b64encode(packed).decode("ascii")


def decompress_value(value: str) -> str:
    """Expand a ``gzip:<base64>`` value back to text.

    Raises:
        ValueError: If the payload is not valid compressed text.
    """
    payload = value[len(COMPRESSED_PREFIX):]
    try:
        return gzip.decompress(base64.b64decode(payload, validate=True)).decode("utf-8")
    except (binascii.Error, OSError, EOFError, UnicodeDecodeError) as exc:
        raise ValueError(f"invalid compressed value: {exc}") from exc


def looks_compressed(value: Any) -> bool:
    """True for strings in the stored compressed form."""
    return isinstance(value, str) and value.startswith(COMPRESSED_PREFIX)


def looks_like_html(value: str) -> bool:
    """True when the text already starts with a tag."""
    return bool(_HTML_RE.match(value))


def markdown_to_html(text: str) -> str:
    """Default markup converter."""
    return markdown.markdown(text)


def pack_record(schema: CrudSchema, record: dict[str, Any]) -> dict[str, Any]:
    """Compress oversized text values of compressible fields."""
    packed = dict(record)
    for name, value in record.items():
        if not isinstance(value, str) or not schema.policy(name).compressible:
            continue
        if len(value.encode("utf-8")) > COMPRESSION_THRESHOLD_BYTES:
            packed[name] = compress_value(value)
    return packed


def unpack_record(
    schema: CrudSchema,
    record: dict[str, Any],
    *,
    convert_markup: bool = True,
    converter: MarkupConverter | None = None,
) -> dict[str, Any]:
    """Expand compressed values and convert markup per field policy."""
    convert = converter or markdown_to_html
    unpacked = dict(record)
    for name, value in record.items():
        policy = schema.policy(name)
        if not isinstance(value, str):
            continue

        if policy.compressible and looks_compressed(value):
            try:
                value = decompress_value(value)
            except ValueError as exc:
                print_warning(f"Could not decompress '{name}': {exc}")
                continue
            unpacked[name] = value

        if convert_markup and policy.convert_markup and value and not looks_like_html(value):
            try:
                unpacked[name] = convert(value)
            except Exception as exc:  # noqa: BLE001
                print_warning(f"Could not convert markup in '{name}': {exc}")
    return unpacked

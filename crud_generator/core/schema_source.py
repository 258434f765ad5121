"""Derived-mode schema resolution from an external schema document.

A schema reference is a URL (or a bare type name, expanded against
schema.org). The document is fetched with ``requests`` and every property
table row is turned into a field:

    <tr>
      <th class="prop-nam"><code>price</code></th>
      <td class="prop-ect">Number or Text</td>
      <td class="prop-desc">The offer price of a product.</td>
    </tr>

Parsing never raises: a malformed or empty document simply yields no rows.
The caller decides what an empty field list means.
"""

import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from html.parser import HTMLParser

import requests

from crud_generator.core.errors import SchemaResolutionError
from crud_generator.core.field_spec import FieldSpec, dedupe_fields, infer_field_type
from crud_generator.helpers.helpers_logging import print_warning

SCHEMA_BASE_URL = "https://schema.org/"
ID_FIELD = "Id"
ID_DESCRIPTION = "A unique identifier for the item"

_FETCH_TIMEOUT_SECONDS = 30
_MIN_ROW_CELLS = 2
_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_CELL_TAGS = ("td", "th")

# Fetcher signature: reference -> document text
SchemaFetcher = Callable[[str], str]


@dataclass(frozen=True)
class PropertyRow:
    """One property row scraped from a schema document."""

    name: str
    type_hint: str
    description: str


class _PropertyTableParser(HTMLParser):
    """Collect table rows as lists of (is_header, text) cells."""

    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self.rows: list[list[tuple[bool, str]]] = []
        self._row: list[tuple[bool, str]] | None = None
        self._cell_tag: str | None = None
        self._cell_text: list[str] = []

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        if tag == "tr":
            self._close_row()
            self._row = []
        elif tag in _CELL_TAGS and self._row is not None:
            self._close_cell()
            self._cell_tag = tag
            self._cell_text = []

    def handle_endtag(self, tag: str) -> None:
        if tag in _CELL_TAGS:
            self._close_cell()
        elif tag in ("tr", "table"):
            self._close_row()

    def handle_data(self, data: str) -> None:
        if self._cell_tag is not None:
            self._cell_text.append(data)

    def close(self) -> None:
        super().close()
        self._close_row()

    def _close_cell(self) -> None:
        if self._cell_tag is None or self._row is None:
            return
        text = " ".join("".join(self._cell_text).split())
        self._row.append((self._cell_tag == "th", text))
        self._cell_tag = None
        self._cell_text = []

    def _close_row(self) -> None:
        self._close_cell()
        if self._row:
            self.rows.append(self._row)
        self._row = None


def expand_schema_ref(ref: str) -> str:
    """Turn a bare type name into a schema.org URL; URLs pass through."""
    ref = ref.strip()
    if "://" in ref:
        return ref
    return SCHEMA_BASE_URL + ref.lstrip("/")


def _http_fetch(url: str) -> str:
    response = requests.get(url, timeout=_FETCH_TIMEOUT_SECONDS)
    response.raise_for_status()
    return response.text


def fetch_schema_document(ref: str, fetcher: SchemaFetcher | None = None) -> str:
    """Fetch the schema document for a reference.

    Args:
        ref: Schema URL or bare type name (e.g. ``Product``).
        fetcher: Optional replacement for the HTTP fetch.

    Returns:
        The document text.

    Raises:
        SchemaResolutionError: If the document cannot be fetched.
    """
    url = expand_schema_ref(ref)
    fetch = fetcher or _http_fetch
    try:
        return fetch(url)
    except requests.RequestException as exc:
        raise SchemaResolutionError(f"Could not fetch schema '{url}': {exc}") from exc


def parse_property_rows(document: str) -> list[PropertyRow]:
    """Extract property rows (name, expected type, description).

    Header-only rows and rows whose first cell is not an identifier are
    skipped. Returns an empty list for malformed or empty input.
    """
    if not document or not document.strip():
        return []

    parser = _PropertyTableParser()
    try:
        parser.feed(document)
        parser.close()
    except (AssertionError, ValueError) as exc:
        print_warning(f"Could not parse schema document: {exc}")
        return []

    rows: list[PropertyRow] = []
    for cells in parser.rows:
        if len(cells) < _MIN_ROW_CELLS:
            continue
        if all(is_header for is_header, _text in cells):
            continue
        name = cells[0][1]
        if not _IDENTIFIER_RE.match(name):
            continue
        type_hint = cells[1][1] if len(cells) > _MIN_ROW_CELLS else ""
        rows.append(PropertyRow(name=name, type_hint=type_hint, description=cells[-1][1]))
    return rows


def _field_name(property_name: str) -> str:
    """Capitalize a scraped property name ('price' -> 'Price')."""
    return property_name[:1].upper() + property_name[1:]


def fields_from_schema_document(
    document: str,
    include_fields: Iterable[str] | None = None,
) -> list[FieldSpec]:
    """Turn a schema document into field specs.

    Args:
        document: HTML text of the schema document.
        include_fields: Optional names to keep (case-insensitive).

    Returns:
        De-duplicated fields; an ``Id`` field is added when the document
        has none. Empty when the document has no property rows.
    """
    rows = parse_property_rows(document)
    if not rows:
        return []

    fields = dedupe_fields(
        FieldSpec(
            name=_field_name(row.name),
            description=row.description,
            field_type=infer_field_type(row.type_hint, _field_name(row.name)),
        )
        for row in rows
    )

    if include_fields is not None:
        wanted = {name.lower() for name in include_fields}
        fields = [spec for spec in fields if spec.name.lower() in wanted]

    if not any(spec.name.lower() == ID_FIELD.lower() for spec in fields):
        fields.append(FieldSpec(name=ID_FIELD, description=ID_DESCRIPTION))
    return fields


def resolve_fields_from_ref(
    ref: str,
    include_fields: Iterable[str] | None = None,
    fetcher: SchemaFetcher | None = None,
) -> list[FieldSpec]:
    """Fetch and parse a schema reference into field specs."""
    document = fetch_schema_document(ref, fetcher)
    return fields_from_schema_document(document, include_fields)

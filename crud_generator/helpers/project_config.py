"""
Project configuration: root discovery, settings and schematic loading.

Project layout::

    crud.yaml                 # optional: settings + defaults
    schematics/
      widgets.yaml            # one schematic per file
    .tables/                  # local table store files (created on demand)

Example schematic::

    table: Catalog
    partition: Widgets
    key_type: Sequential
    unique_names: true
    fields:
      Name: Widget name
      Description: Long description
      Price: Unit price
    type_hints:
      Price: float
"""

from pathlib import Path
from typing import Any, cast

import yaml

from crud_generator.helpers.yaml_loader import ConfigDict, load_yaml_file

PROJECT_FILE = "crud.yaml"
SCHEMATICS_DIR = "schematics"

# Schematic keys that are spelled differently from resolve_schema() options
_OPTION_ALIASES: dict[str, str] = {
    "fields": "field_map",
    "user_scoped": "is_user_scoped",
    "unique_names": "uniqueness_by_name",
    "schema": "schema_ref",
}

_KNOWN_OPTIONS = frozenset({
    "table",
    "partition",
    "field_map",
    "schema_ref",
    "type_hints",
    "required_fields",
    "key_type",
    "is_user_scoped",
    "user_partition",
    "read_code_partition",
    "uniqueness_by_name",
    "sort_field",
    "sort_type",
    "large_fields",
    "html_fields",
    "include_fields",
    "noun",
    "type_name",
    "field_order",
    "convert_markdown",
    "auto_connect",
    "storage_account_setting",
    "storage_key_setting",
})


def get_project_root() -> Path:
    """Get the project root directory.

    Searches upwards from the current working directory for ``crud.yaml``
    or a ``schematics/`` directory.

    Returns:
        Path to project root (current directory when no marker is found)
    """
    current = Path.cwd()
    for parent in [current, *current.parents]:
        if (parent / PROJECT_FILE).exists() or (parent / SCHEMATICS_DIR).is_dir():
            return parent
    return current


def load_project_file(root: Path | None = None) -> ConfigDict:
    """Load crud.yaml, or an empty mapping when the project has none."""
    project_file = (root or get_project_root()) / PROJECT_FILE
    if not project_file.exists():
        return {}
    return load_yaml_file(project_file)


def load_project_settings(root: Path | None = None) -> dict[str, Any]:
    """Named settings from the ``settings:`` block of crud.yaml."""
    raw = load_project_file(root).get("settings")
    if not isinstance(raw, dict):
        return {}
    return {str(key): value for key, value in cast(dict[str, Any], raw).items()}


def list_schematics(root: Path | None = None) -> list[str]:
    """Names of all schematics under schematics/ (sorted)."""
    schematics_dir = (root or get_project_root()) / SCHEMATICS_DIR
    if not schematics_dir.is_dir():
        return []
    names = {path.stem for path in schematics_dir.glob("*.yaml")}
    names.update(path.stem for path in schematics_dir.glob("*.yml"))
    return sorted(names)


def _schematic_path(name: str, root: Path) -> Path:
    schematics_dir = root / SCHEMATICS_DIR
    for suffix in (".yaml", ".yml"):
        candidate = schematics_dir / f"{name}{suffix}"
        if candidate.exists():
            return candidate
    return schematics_dir / f"{name}.yaml"


def normalize_options(raw: dict[str, Any]) -> dict[str, Any]:
    """Map schematic keys onto resolve_schema() option names.

    Raises:
        ValueError: If the schematic contains unknown keys.
    """
    options: dict[str, Any] = {}
    for key, value in raw.items():
        option = _OPTION_ALIASES.get(str(key), str(key))
        if option not in _KNOWN_OPTIONS:
            raise ValueError(f"Unknown schematic option '{key}'")
        if isinstance(value, dict):
            value = {str(k): v for k, v in value.items()}
        elif isinstance(value, list):
            value = [str(item) for item in value]
        options[option] = value
    return options


def load_schematic(name: str, root: Path | None = None) -> dict[str, Any]:
    """Load one schematic merged over crud.yaml ``defaults:``.

    Returns:
        resolve_schema() keyword options, including ``table`` and
        ``partition``.

    Raises:
        FileNotFoundError: If the schematic file does not exist
        ValueError: If the schematic has unknown keys
    """
    project_root = root or get_project_root()
    path = _schematic_path(name, project_root)
    schematic = cast(dict[str, Any], dict(load_yaml_file(path)))

    defaults_raw = load_project_file(project_root).get("defaults")
    defaults = cast(dict[str, Any], dict(defaults_raw)) if isinstance(defaults_raw, dict) else {}

    return normalize_options({**defaults, **schematic})


def describe_schematics(root: Path | None = None) -> dict[str, str]:
    """Map schematic names to a ``table/partition`` label.

    Read-only quick look with ``yaml.safe_load``; unreadable schematics are
    labelled ``(invalid)`` instead of failing the listing.
    """
    project_root = root or get_project_root()
    labels: dict[str, str] = {}
    for name in list_schematics(project_root):
        path = _schematic_path(name, project_root)
        try:
            with path.open(encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError):
            labels[name] = "(invalid)"
            continue
        if not isinstance(data, dict):
            labels[name] = "(invalid)"
            continue
        labels[name] = f"{data.get('table', '?')}/{data.get('partition', '?')}"
    return labels

"""Helper utilities for logging, YAML I/O and project configuration."""

from crud_generator.helpers.project_config import (
    get_project_root,
    list_schematics,
    load_schematic,
)

__all__ = [
    "get_project_root",
    "list_schematics",
    "load_schematic",
]

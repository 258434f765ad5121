"""
YAML loading and saving with ruamel.yaml.

Schematics, project settings and the local table store are all plain
YAML documents. Comments and key order survive a load/save cycle.
"""

import io
from pathlib import Path
from typing import Any, Union, cast

from ruamel.yaml import YAML

# Recursive type for nested YAML structures
ConfigValue = Union[str, int, float, bool, None, 'ConfigDict', list['ConfigValue']]
ConfigDict = dict[str, ConfigValue]


def _create_yaml_loader() -> YAML:
    """Create the round-trip YAML instance shared by the package."""
    yaml_obj = YAML()
    yaml_obj.preserve_quotes = True
    yaml_obj.default_flow_style = False
    yaml_obj.indent(mapping=2, sequence=4, offset=2)
    return yaml_obj


yaml: YAML = _create_yaml_loader()


def load_yaml_file(file_path: Path) -> ConfigDict:
    """Load a YAML mapping from disk.

    Args:
        file_path: Path to YAML file to load

    Returns:
        Mapping loaded from YAML (empty dict for an empty file)

    Raises:
        FileNotFoundError: If file does not exist
        ValueError: If the document root is not a mapping
    """
    if not file_path.exists():
        raise FileNotFoundError(f"YAML file not found: {file_path}")

    with file_path.open(encoding='utf-8') as f:
        raw: Any = yaml.load(f)

    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ValueError(f"Expected a mapping at the root of {file_path}")
    return cast(ConfigDict, raw)


def save_yaml_file(data: ConfigDict, file_path: Path) -> None:
    """Save data to a YAML file, creating parent directories.

    Args:
        data: Mapping to save
        file_path: Path to YAML file to write
    """
    file_path.parent.mkdir(parents=True, exist_ok=True)

    with file_path.open('w', encoding='utf-8') as f:
        yaml.dump(data, f)


def dump_yaml_string(data: object) -> str:
    """Render data as a YAML document string."""
    buffer = io.StringIO()
    yaml.dump(data, buffer)
    return buffer.getvalue()

#!/usr/bin/env python3
"""Generate CRUD command specifications from a schematic.

Usage:
    crudgen generate --list
    crudgen generate widgets
    crudgen generate widgets --format summary
    crudgen generate widgets --output build/widgets.commands.yaml
"""

import argparse
import sys
from pathlib import Path
from typing import NoReturn

from crud_generator.core.command_specs import CrudCommandSet, generate_crud
from crud_generator.helpers.helpers_logging import (
    print_dim,
    print_error,
    print_header,
    print_info,
    print_success,
    print_warning,
)
from crud_generator.helpers.project_config import (
    describe_schematics,
    get_project_root,
    load_schematic,
)
from crud_generator.helpers.yaml_loader import dump_yaml_string

_EPILOG = """\
Examples:
  # List schematics under schematics/
    crudgen generate --list

  # Print the command set as YAML
    crudgen generate widgets

  # Print a short per-command summary
    crudgen generate widgets --format summary

  # Write the command set to a file
    crudgen generate widgets --output build/widgets.commands.yaml
"""


class GenerateArgumentParser(argparse.ArgumentParser):
    """Parser that reports errors with the CLI's error style."""

    def error(self, message: str) -> NoReturn:
        print_error(message)
        print_info("Run 'crudgen generate --help' for usage")
        raise SystemExit(1)


def _build_parser() -> GenerateArgumentParser:
    parser = GenerateArgumentParser(
        prog="crudgen generate",
        description="Generate CRUD command specifications from a schematic",
        epilog=_EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("schematic", nargs="?", help="Schematic name (schematics/<name>.yaml)")
    parser.add_argument("--list", action="store_true", help="List available schematics")
    parser.add_argument("--output", metavar="FILE", help="Write YAML to FILE instead of stdout")
    parser.add_argument(
        "--format",
        choices=("yaml", "summary"),
        default="yaml",
        help="Output format (default: yaml)",
    )
    return parser


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


def _handle_list(root: Path) -> int:
    labels = describe_schematics(root)
    if not labels:
        print_warning(f"No schematics found under {root / 'schematics'}")
        return 0
    print_info(f"Schematics ({len(labels)}):")
    for name, label in labels.items():
        print(f"  {name:20} {label}")
    return 0


def _print_summary(command_set: CrudCommandSet) -> None:
    schema = command_set.schema
    print_header(f"{schema.noun} ({schema.table}/{schema.partition})")
    print_dim(f"  key type: {schema.key_type.value}, fields: {len(schema.fields)}")
    for command in command_set.commands:
        print_info(f"  {command.name}")
        for param in command.parameters:
            flags = []
            if param.mandatory:
                flags.append("mandatory")
            if param.position is not None:
                flags.append(f"position {param.position}")
            if param.parameter_set:
                flags.append(f"set {param.parameter_set}")
            suffix = f" ({', '.join(flags)})" if flags else ""
            print(f"    {param.name}: {param.param_type}{suffix}")


def _handle_generate(
    root: Path,
    schematic: str,
    output: str | None,
    output_format: str,
) -> int:
    options = load_schematic(schematic, root)
    table = options.pop("table", None)
    partition = options.pop("partition", None)
    command_set = generate_crud(str(table or ""), str(partition or ""), **options)

    if output_format == "summary":
        _print_summary(command_set)
        return 0

    rendered = dump_yaml_string(command_set.to_dict())
    if output is None:
        print(rendered, end="")
        return 0

    output_path = Path(output)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(rendered, encoding="utf-8")
    print_success(f"Wrote {len(command_set.commands)} commands to {output_path}")
    return 0


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------


def _dispatch(args: argparse.Namespace) -> int:
    root = get_project_root()
    if args.list:
        return _handle_list(root)

    if not args.schematic:
        print_error("A schematic name is required (or use --list)")
        return 1

    try:
        return _handle_generate(root, args.schematic, args.output, args.format)
    except (FileNotFoundError, ValueError) as exc:
        print_error(str(exc))
        return 1


def main(argv: list[str] | None = None) -> int:
    """Entry point for ``crudgen generate``."""
    parser = _build_parser()
    args = parser.parse_args(argv)
    return _dispatch(args)


if __name__ == "__main__":
    sys.exit(main())

#!/usr/bin/env python3
"""CRUD Generator CLI - Main Entry Point.

Usage:
    crudgen <command> [options]

Commands:
    generate    Generate CRUD command specifications from a schematic
    records     Create, read, update and delete schematic records
    help        Show this help message
"""

from __future__ import annotations

import importlib
import sys

import click

from crud_generator.helpers.project_config import get_project_root

# Exit code for Ctrl-C / declined prompts
_EXIT_CANCELLED = 130

# Commands backed by argparse handler modules exposing main(argv)
COMMANDS: dict[str, dict[str, str]] = {
    "generate": {
        "module": "crud_generator.cli.generate",
        "description": "Generate CRUD command specifications from a schematic",
        "usage": "crudgen generate <schematic> [--format yaml|summary] [--output FILE]",
    },
    "records": {
        "module": "crud_generator.cli.records",
        "description": "Create, read, update and delete schematic records",
        "usage": "crudgen records <schematic> <create|read|update|delete> [options]",
    },
}

COMMAND_ALIASES: dict[str, str] = {
    "gen": "generate",
    "rec": "records",
}


def print_help() -> None:
    """Print help message with all available commands."""
    print(__doc__)
    print(f"📍 Project root: {get_project_root()}")

    print("\n📦 Commands:")
    for cmd, info in COMMANDS.items():
        print(f"  {cmd:12} - {info['description']}")
        print(f"  {' ' * 12}   Usage: {info['usage']}")

    print("\n⚡ Aliases:")
    for alias, canonical in COMMAND_ALIASES.items():
        print(f"  {alias:12} - alias for {canonical}")


def execute_command(command: str, extra_args: list[str]) -> int:
    """Run a registered handler module in-process."""
    cmd_info = COMMANDS.get(command)
    if cmd_info is None:
        print(f"❌ Unknown command: {command}")
        print("\nRun 'crudgen help' to see available commands.")
        return 1

    module = importlib.import_module(cmd_info["module"])
    try:
        return int(module.main(extra_args))
    except SystemExit as exc:
        return exc.code if isinstance(exc.code, int) else 1


@click.group(invoke_without_command=True)
@click.pass_context
def _click_cli(ctx: click.Context) -> int:
    """Top-level crudgen command group."""
    if ctx.invoked_subcommand is None:
        print_help()
    return 0


def _register_passthrough_command(command_name: str, description: str, name: str) -> None:
    """Register a click command that forwards its raw args to a handler module."""

    @click.command(
        name=name,
        help=description,
        context_settings={
            "allow_extra_args": True,
            "ignore_unknown_options": True,
        },
        add_help_option=False,
    )
    @click.pass_context
    def _cmd(ctx: click.Context) -> int:
        return execute_command(command_name, list(ctx.args))

    _click_cli.add_command(_cmd)


def _register_commands() -> None:
    for cmd, info in COMMANDS.items():
        _register_passthrough_command(cmd, info["description"], cmd)

    for alias, canonical in COMMAND_ALIASES.items():
        _register_passthrough_command(canonical, COMMANDS[canonical]["description"], alias)

    @click.command(name="help", help="Show help message")
    def _help_cmd() -> int:
        print_help()
        return 0

    _click_cli.add_command(_help_cmd)


_register_commands()


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    args = list(sys.argv[1:] if argv is None else argv)

    if not args or args[0] in ["help", "--help", "-h"]:
        print_help()
        return 0

    try:
        result = _click_cli.main(
            args=args,
            prog_name="crudgen",
            standalone_mode=False,
        )
    except click.Abort:
        print("\n⚠️  Cancelled by user")
        return _EXIT_CANCELLED
    except click.ClickException as exc:
        exc.show()
        return exc.exit_code

    return 0 if result is None else int(result)


if __name__ == "__main__":
    sys.exit(main())

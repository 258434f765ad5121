"""Tests for top-level CLI main() routing and error/abort handling."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import click
import pytest

from crud_generator.cli import commands


class TestRouting:
    """Passthrough commands and aliases reach their handler modules."""

    def test_no_args_prints_help(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert commands.main([]) == 0
        out = capsys.readouterr().out
        assert "Commands:" in out
        assert "records" in out

    @pytest.mark.parametrize("command", ["generate", "gen"])
    def test_generate_and_alias(
        self, command: str, project_dir: Path, capsys: pytest.CaptureFixture[str],
    ) -> None:
        assert commands.main([command, "--list"]) == 0
        assert "widgets" in capsys.readouterr().out

    def test_records_passthrough(self, project_dir: Path) -> None:
        assert commands.main(["rec", "widgets", "create", "--set", "Name=Bolt"]) == 0
        assert (project_dir / ".tables" / "local.yaml").exists()

    def test_handler_exit_code_is_returned(self, project_dir: Path) -> None:
        assert commands.main(["generate", "widgets", "--format", "xml"]) == 1

    def test_unknown_command(self) -> None:
        assert commands.execute_command("deploy", []) == 1


class TestCommandsMainAbortHandling:
    """Ensure Ctrl-C style aborts produce friendly output without traceback."""

    def test_main_handles_click_abort_with_friendly_message(
        self,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        """click.Abort should return 130 and print a friendly cancellation message."""
        with patch(
            "sys.argv",
            ["crudgen", "records", "widgets", "delete", "--name", "Bolt"],
        ), patch.object(
            commands._click_cli,
            "main",
            side_effect=click.Abort(),
        ):
            result = commands.main()

        assert result == 130
        assert "Cancelled by user" in capsys.readouterr().out

    def test_main_handles_click_exception(
        self,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        exc = click.ClickException("boom")
        with patch.object(commands._click_cli, "main", side_effect=exc):
            result = commands.main(["generate", "widgets"])

        assert result == exc.exit_code
        assert "Error: boom" in capsys.readouterr().err

"""Unit tests for flek_cli.errors and flek_cli.output."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from flek_cli import output
from flek_cli.errors import (
    EXIT_SYSTEM_ERROR,
    EXIT_USER_ERROR,
    CLIError,
    format_pydantic_error,
    handle_file_not_found,
    handle_validation_error,
)
from flek_loader.config import LoaderConfig


def _validation_error() -> ValidationError:
    try:
        LoaderConfig(server_uri="localhost", retry={"max_attempts": 0})  # type: ignore[arg-type]
    except ValidationError as e:
        return e
    raise AssertionError("expected ValidationError")


class TestFormatPydanticError:
    """Tests for format_pydantic_error()."""

    def test_lists_each_field(self) -> None:
        message = format_pydantic_error(_validation_error())

        lines = message.splitlines()
        assert lines[0] == "Validation failed:"
        assert any(line.startswith("  - server_uri:") for line in lines)
        assert any(line.startswith("  - retry.max_attempts:") for line in lines)


class TestHandlers:
    """Tests for the handle_* helpers."""

    def test_validation_error_is_user_error(self) -> None:
        with pytest.raises(CLIError) as exc_info:
            handle_validation_error(_validation_error(), "flek.yaml")

        assert exc_info.value.exit_code == EXIT_USER_ERROR
        assert "Invalid configuration in flek.yaml" in exc_info.value.message

    def test_file_not_found_is_system_error(self) -> None:
        with pytest.raises(CLIError) as exc_info:
            handle_file_not_found("flek.yaml")

        assert exc_info.value.exit_code == EXIT_SYSTEM_ERROR
        assert exc_info.value.message == "File not found: flek.yaml"


class TestOutput:
    """Tests for console helpers."""

    def test_success_and_error_markers(self, capsys: pytest.CaptureFixture[str]) -> None:
        output.set_no_color(True)

        output.success("Loaded widget")
        output.error("Failed widget")

        captured = capsys.readouterr().out
        assert "✓ Loaded widget" in captured
        assert "✗ Failed widget" in captured

    def test_set_no_color_replaces_console(self) -> None:
        before = output.console

        output.set_no_color(True)

        assert output.console is not before
        assert output.console.no_color is True

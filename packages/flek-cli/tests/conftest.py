"""Shared test fixtures for flek-cli tests.

Provides CliRunner fixtures and a populated mocks directory.
"""

from __future__ import annotations

from pathlib import Path

import pytest
from click.testing import CliRunner

HELLO_SOURCE = '''def Hello(*, name="world"):
    return f"Hello, {name}!"

exports.default = Hello
'''


@pytest.fixture
def cli_runner() -> CliRunner:
    """Create a Click test runner.

    Returns:
        CliRunner instance for testing CLI commands.
    """
    return CliRunner()


@pytest.fixture
def mocks_dir(tmp_path: Path) -> Path:
    """Return a mocks directory holding Hello.py.

    Returns:
        Path to the populated directory.
    """
    directory = tmp_path / "__mocks__"
    directory.mkdir()
    (directory / "Hello.py").write_text(HELLO_SOURCE, encoding="utf-8")
    return directory


@pytest.fixture
def hello_source() -> str:
    return HELLO_SOURCE

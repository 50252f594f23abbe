"""Pytest configuration for the Umjunsik test suite."""

import sys
from pathlib import Path

import pytest

# Add the project root to the path for umjunsik imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from umjunsik import parse as parse_source  # noqa: E402


@pytest.fixture
def compile_ir():
    """Compile source to IR text with structure verification."""
    from umjunsik import compile_source

    def _compile(source: str) -> str:
        return compile_source(source, check=True)

    return _compile


@pytest.fixture
def program_of():
    """Parse a program given as statement lines (the start marker is added)."""

    def _parse(*lines: str):
        return parse_source("어떻게\n" + "\n".join(lines) + "\n이 사람이름이냐ㅋㅋ\n")

    return _parse

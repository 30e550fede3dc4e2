"""Test setup for sheet2tree."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from sheet2tree.schemas import RawTable  # noqa: E402


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers for pytest.

    This allows running integration tests selectively:
        pytest -m integration       # run only integration tests
        pytest -m "not integration" # skip integration tests
    """
    config.addinivalue_line(
        "markers",
        "integration: marks tests as integration tests (call a live document service)",
    )


@pytest.fixture
def course_table() -> RawTable:
    """Block/Week/Topic sheet with an ignored Note column."""
    return RawTable.from_rows(
        [
            ["Block", "Week", "Topic", "Note"],
            ["A", "1", "Intro", "skip me"],
            ["A", "1", "Intro2", ""],
            ["A", "2", "Basics", ""],
        ]
    )


@pytest.fixture
def course_config() -> dict:
    return {0: None, 1: 0, 2: 1, 3: "ignore"}


@pytest.fixture
def merged_cell_table() -> RawTable:
    """Two blocks written only on the first row of each block."""
    return RawTable.from_rows(
        [
            ["Block", "Week", "Topic", "Teacher"],
            ["A", "1", "Intro", "Kim"],
            ["", "", "Setup", "Lee"],
            ["", "2", "Basics", "Kim"],
            ["B", "1", "Review", "Ng"],
        ]
    )


@pytest.fixture
def merged_cell_config() -> dict:
    return {0: None, 1: 0, 2: 1}


@pytest.fixture
def network_timeout() -> float:
    """Default timeout for network operations in seconds."""
    return 60.0

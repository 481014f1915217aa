"""
Shared fixtures for cellpipe tests.
"""

from collections.abc import Iterable, Sequence
from pathlib import Path

import pytest

from cellpipe.context import ExecutionContext
from cellpipe.data import Cell, Row
from cellpipe.printer import Printer
from cellpipe.streams import InputStream, OutputStream, unlimited_streams
from cellpipe.types import INTEGER, TEXT, ColumnType


@pytest.fixture
def context(tmp_path: Path) -> ExecutionContext:
    """Execution context whose working directory is a fresh temporary directory."""
    return ExecutionContext.create(cwd=tmp_path)


@pytest.fixture
def printer() -> Printer:
    return Printer("test")


@pytest.fixture
def number_schema() -> tuple[ColumnType, ...]:
    return (ColumnType.named("n", INTEGER), ColumnType.named("label", TEXT))


@pytest.fixture
def make_input():
    """Factory for an initialized input stream pre-loaded with rows."""

    def _make(
        schema: Sequence[ColumnType],
        rows: Iterable[Iterable[Cell]],
        close: bool = True,
    ) -> InputStream:
        sender, receiver = unlimited_streams(label="fixture")
        output = sender.initialize(schema)
        for cells in rows:
            output.send(Row(cells))
        if close:
            output.close()
        return receiver.initialize(timeout=1)

    return _make


@pytest.fixture
def make_output():
    """Factory for an initialized (producer, consumer) pair."""

    def _make(schema: Sequence[ColumnType]) -> tuple[OutputStream, InputStream]:
        sender, receiver = unlimited_streams(label="fixture-output")
        output = sender.initialize(schema)
        return output, receiver.initialize(timeout=1)

    return _make


@pytest.fixture
def numbered_rows():
    def _rows(count: int) -> list[list[Cell]]:
        return [[Cell.integer(i), Cell.text(f"row{i}")] for i in range(count)]

    return _rows

"""
Row and table containers.

A Row is only a positional sequence of cells; the schema it must fit is held by
whoever carries it (a stream, a table, or a TypedRow when a row is itself a
cell value). Fit is checked at construction boundaries, not continuously.
"""

import logging
from collections.abc import Iterable, Iterator, Sequence
from typing import TYPE_CHECKING

from cellpipe.errors import SchemaError
from cellpipe.types import CellTag, CellType, ColumnType, Schema, format_schema
from cellpipe.utils.arrow_utils import rows_to_arrow_table
from cellpipe.utils.lazy_module import LazyModule

if TYPE_CHECKING:
    import polars as pl
    import pyarrow as pa

    from cellpipe.data.cell import Cell
else:
    pl = LazyModule("polars")

logger = logging.getLogger(__name__)


class Row:
    __slots__ = ("cells",)

    def __init__(self, cells: Iterable["Cell"]):
        self.cells: tuple["Cell", ...] = tuple(cells)

    def __len__(self) -> int:
        return len(self.cells)

    def __iter__(self) -> Iterator["Cell"]:
        return iter(self.cells)

    def __getitem__(self, idx: int) -> "Cell":
        return self.cells[idx]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Row):
            return NotImplemented
        return len(self.cells) == len(other.cells) and all(
            a == b for a, b in zip(self.cells, other.cells)
        )

    # rows are containers of possibly unhashable cells
    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"Row({list(self.cells)!r})"

    def fits(self, schema: Sequence[ColumnType]) -> bool:
        if len(self.cells) != len(schema):
            return False
        return all(
            _cell_fits(cell, column.cell_type) for cell, column in zip(self.cells, schema)
        )

    def validate(self, schema: Sequence[ColumnType]) -> None:
        """
        Raises:
            SchemaError: if the row's length or any cell's type does not match
        """
        if len(self.cells) != len(schema):
            raise SchemaError(
                f"Row has {len(self.cells)} cells but the schema {format_schema(schema)} "
                f"has {len(schema)} columns"
            )
        for idx, (cell, column) in enumerate(zip(self.cells, schema)):
            if not _cell_fits(cell, column.cell_type):
                raise SchemaError(
                    f"Cell {idx} of type {cell.cell_type} does not fit column {column}"
                )

    def partial_clone(self) -> "Row":
        return Row(cell.partial_clone() for cell in self.cells)

    def concrete(self) -> "Row":
        return Row(cell.concrete() for cell in self.cells)


def _cell_fits(cell: "Cell", column_type: CellType) -> bool:
    if cell.tag != column_type.tag:
        return False
    # leaf kinds are fully described by the tag, composites also by their layout
    return not column_type.is_tabular or cell.cell_type == column_type


class TypedRow:
    """A row together with its schema, the payload of a Row cell."""

    __slots__ = ("schema", "row")

    def __init__(self, schema: Iterable[ColumnType], row: Row):
        self.schema: Schema = tuple(schema)
        self.row = row
        row.validate(self.schema)

    @property
    def cells(self) -> tuple["Cell", ...]:
        return self.row.cells

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TypedRow):
            return NotImplemented
        return self.schema == other.schema and self.row == other.row

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"TypedRow({format_schema(self.schema)}, {list(self.row.cells)!r})"

    def partial_clone(self) -> "TypedRow":
        return TypedRow(self.schema, self.row.partial_clone())

    def concrete(self) -> "TypedRow":
        return TypedRow(_concrete_schema(self.schema), self.row.concrete())


class Rows:
    """
    A fully materialized table: schema plus an ordered list of rows. A Rows
    instance owns all of its data and has no outstanding producer.
    """

    def __init__(self, schema: Iterable[ColumnType], rows: Iterable[Row] = ()):
        self.schema: Schema = tuple(schema)
        self.rows: list[Row] = list(rows)

    @classmethod
    def from_cells(
        cls, schema: Iterable[ColumnType], rows: Iterable[Iterable["Cell"]]
    ) -> "Rows":
        """Build a table from plain cell sequences, validating each against the schema."""
        table = cls(schema)
        for cells in rows:
            table.append(Row(cells))
        return table

    def append(self, row: Row) -> None:
        row.validate(self.schema)
        self.rows.append(row)

    def __len__(self) -> int:
        return len(self.rows)

    def __iter__(self) -> Iterator[Row]:
        return iter(self.rows)

    def __getitem__(self, idx: int) -> Row:
        return self.rows[idx]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Rows):
            return NotImplemented
        return self.schema == other.schema and self.rows == other.rows

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"Rows({format_schema(self.schema)}, {len(self.rows)} rows)"

    @property
    def column_names(self) -> list[str]:
        return [column.name or f"column_{idx}" for idx, column in enumerate(self.schema)]

    def column(self, name: str) -> list["Cell"]:
        for idx, column in enumerate(self.schema):
            if column.name == name:
                return [row[idx] for row in self.rows]
        raise KeyError(name)

    def partial_clone(self) -> "Rows":
        return Rows(self.schema, (row.partial_clone() for row in self.rows))

    def concrete(self) -> "Rows":
        """Copy of this table in which every nested stream has been drained."""
        return Rows(
            _concrete_schema(self.schema), (row.concrete() for row in self.rows)
        )

    def to_arrow(self) -> "pa.Table":
        return rows_to_arrow_table(self.schema, self.column_names, self.rows)

    def to_polars(self) -> "pl.DataFrame":
        return pl.from_arrow(self.to_arrow())  # type: ignore[return-value]


def _concrete_type(cell_type: CellType) -> CellType:
    if cell_type.tag == CellTag.OUTPUT:
        return CellType.rows(_concrete_schema(cell_type.columns))
    if cell_type.tag in (CellTag.ROWS, CellTag.ROW):
        return CellType(cell_type.tag, columns=_concrete_schema(cell_type.columns))
    if cell_type.tag == CellTag.LIST and cell_type.element is not None:
        return CellType.list_of(_concrete_type(cell_type.element))
    return cell_type


def _concrete_schema(schema: Sequence[ColumnType]) -> Schema:
    """The schema a table has once every nested stream in it has been drained."""
    return tuple(
        ColumnType(column.name, _concrete_type(column.cell_type)) for column in schema
    )

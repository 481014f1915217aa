"""Conversion of materialized tables into Arrow."""

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from cellpipe.types import CellTag, CellType, ColumnType
from cellpipe.utils.lazy_module import LazyModule

if TYPE_CHECKING:
    import pyarrow as pa

    from cellpipe.data.rows import Row
else:
    pa = LazyModule("pyarrow")

logger = logging.getLogger(__name__)

# kinds stored natively, everything else is stored as its textual form
_NATIVE_TAGS = frozenset(
    {CellTag.INTEGER, CellTag.BOOLEAN, CellTag.TIME, CellTag.DURATION}
)

_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1


def cell_type_to_arrow(cell_type: CellType) -> "pa.DataType":
    if cell_type.tag == CellTag.INTEGER:
        return pa.int64()
    if cell_type.tag == CellTag.BOOLEAN:
        return pa.bool_()
    if cell_type.tag == CellTag.TIME:
        return pa.timestamp("us", tz="UTC")
    if cell_type.tag == CellTag.DURATION:
        return pa.duration("us")
    return pa.large_string()


def _storage_value(cell: Any) -> Any:
    if cell.tag in _NATIVE_TAGS:
        return cell.value
    return cell.to_string()


def _fits_int64(cells: Sequence[Any]) -> bool:
    return all(_INT64_MIN <= cell.value <= _INT64_MAX for cell in cells)


def column_to_arrow(column: ColumnType, cells: Sequence[Any]) -> "pa.Array":
    """
    Build the arrow array of one column. Integer columns holding a value
    outside the int64 range are stored as their decimal text instead.
    """
    if column.cell_type.tag == CellTag.INTEGER and not _fits_int64(cells):
        logger.warning(
            f"Column {column} holds integers outside the int64 range, "
            "exporting it as text"
        )
        return pa.array([cell.to_string() for cell in cells], type=pa.large_string())
    return pa.array(
        [_storage_value(cell) for cell in cells],
        type=cell_type_to_arrow(column.cell_type),
    )


def rows_to_arrow_table(
    schema: Sequence[ColumnType], names: Sequence[str], rows: Sequence["Row"]
) -> "pa.Table":
    arrays = [
        column_to_arrow(column, [row[idx] for row in rows])
        for idx, column in enumerate(schema)
    ]
    return pa.Table.from_arrays(arrays, names=list(names))

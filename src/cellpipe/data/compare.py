"""
Ordering, equality and hashing of cells.

Cells of different kinds are ordered by the rank of their tag, so sorting a
heterogeneous list is always deterministic. Within a kind the order is
lexicographic, numeric or chronological; Command, Closure, Env, Output and Dict
cells are never ordered, not even against themselves.

Equality is structural, with two exceptions:

- a Glob cell equals a Text cell when the pattern matches the text. This is a
  pattern-matching shorthand and not an equivalence relation: Glob("a*") equals
  both Text("abc") and Text("abd"), which are not equal to each other.
- File cells (and a File against a Text) compare their canonical paths. Two
  spellings of the same location are equal; a path that can not be
  canonicalized, e.g. because it does not exist, is never equal to anything.
"""

import logging
from collections.abc import Sequence
from pathlib import Path

from cellpipe.data.cell import Cell
from cellpipe.types import CellTag

logger = logging.getLogger(__name__)

_TEXTUAL_PATTERN_TAGS = (CellTag.GLOB, CellTag.REGEX)


def _sign(value: int) -> int:
    return (value > 0) - (value < 0)


def _three_way(a, b) -> int:
    if a < b:
        return -1
    if a > b:
        return 1
    return 0


def _cmp_sequences(left: Sequence[Cell], right: Sequence[Cell]) -> int | None:
    for a, b in zip(left, right):
        result = partial_cmp(a, b)
        if result is None or result != 0:
            return result
    return _sign(len(left) - len(right))


def partial_cmp(a: Cell, b: Cell) -> int | None:
    """
    Compare two cells. Returns -1, 0 or 1, or None if they can not be ordered.
    """
    if a.tag != b.tag:
        return _sign(a.tag - b.tag)
    tag = a.tag
    if not a.cell_type.is_orderable:
        return None
    if tag in _TEXTUAL_PATTERN_TAGS:
        return _three_way(a.value.pattern, b.value.pattern)
    if tag == CellTag.ROW:
        return _cmp_sequences(a.value.cells, b.value.cells)
    if tag == CellTag.LIST:
        return _cmp_sequences(a.value.cells, b.value.cells)
    if tag == CellTag.ROWS:
        for row_a, row_b in zip(a.value.rows, b.value.rows):
            result = _cmp_sequences(row_a.cells, row_b.cells)
            if result is None or result != 0:
                return result
        return _sign(len(a.value.rows) - len(b.value.rows))
    # Text, Op, Field, File, Integer, Boolean, Time and Duration order natively
    return _three_way(a.value, b.value)


def _canonical(path: Path) -> Path | None:
    try:
        return path.resolve(strict=True)
    except (OSError, RuntimeError):
        return None


def _same_file(a: Path, b: Path) -> bool:
    canonical_a = _canonical(a)
    if canonical_a is None:
        return False
    return canonical_a == _canonical(b)


def cells_equal(a: Cell, b: Cell) -> bool:
    ta, tb = a.tag, b.tag
    if ta == CellTag.GLOB and tb == CellTag.TEXT:
        return a.value.matches(b.value)
    if ta == CellTag.TEXT and tb == CellTag.GLOB:
        return b.value.matches(a.value)
    if ta == CellTag.FILE and tb in (CellTag.FILE, CellTag.TEXT):
        return _same_file(a.value, Path(b.value))
    if ta == CellTag.TEXT and tb == CellTag.FILE:
        return _same_file(Path(a.value), b.value)
    if ta != tb:
        return False
    if ta in _TEXTUAL_PATTERN_TAGS:
        return a.value.pattern == b.value.pattern
    if ta == CellTag.OUTPUT:
        # a live stream is only ever equal to itself
        return a.value is b.value
    if ta == CellTag.LIST:
        return a.value.element_type == b.value.element_type and _cells_equal(
            a.value.cells, b.value.cells
        )
    if ta == CellTag.DICT:
        return (
            a.value.key_type == b.value.key_type
            and a.value.value_type == b.value.value_type
            and a.value.items == b.value.items
        )
    # Rows and TypedRow implement structural equality themselves
    return a.value == b.value


def _cells_equal(left: Sequence[Cell], right: Sequence[Cell]) -> bool:
    return len(left) == len(right) and all(
        cells_equal(x, y) for x, y in zip(left, right)
    )


def hash_cell_value(cell: Cell) -> int:
    """Hash of a hashable cell, delegating to the payload. Callers check hashability."""
    if cell.tag in _TEXTUAL_PATTERN_TAGS:
        return hash((cell.tag, cell.value.pattern))
    return hash((cell.tag, cell.value))

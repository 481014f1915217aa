from .cell import Alignment, Cell
from .casting import can_cast, cast_cell, castable_from_text, parse_text
from .compare import cells_equal, partial_cmp
from .rows import Row, Rows, TypedRow
from .values import CellDict, CellList, Closure

__all__ = [
    "Alignment",
    "Cell",
    "CellDict",
    "CellList",
    "Closure",
    "Row",
    "Rows",
    "TypedRow",
    "can_cast",
    "cast_cell",
    "castable_from_text",
    "parse_text",
    "cells_equal",
    "partial_cmp",
]

"""
The cell conversion table.

Every supported (source kind, target kind) pair is listed in ``_CONVERSIONS``.
A conversion reads the source value as text and builds the target from that
text. Pairs missing from the table fail with UnimplementedConversionError,
including every conversion out of FIELD.
"""

import logging
import re
from collections.abc import Callable
from typing import Any

from cellpipe.data.cell import Cell, integer_to_text, text_to_integer
from cellpipe.errors import CastError, UnimplementedConversionError
from cellpipe.types import TEXT, CellTag, CellType

logger = logging.getLogger(__name__)

_INTEGER_LITERAL = re.compile(r"[+-]?[0-9]+")


def _parse_integer(text: str) -> Cell:
    if _INTEGER_LITERAL.fullmatch(text) is None:
        raise CastError(f"Can not parse {text!r} as an integer")
    return Cell.integer(text_to_integer(text))


# builders of the target kind from text
_FROM_TEXT: dict[CellTag, Callable[[str], Cell]] = {
    CellTag.TEXT: Cell.text,
    CellTag.FILE: Cell.file,
    CellTag.GLOB: Cell.glob,
    CellTag.INTEGER: _parse_integer,
    CellTag.FIELD: Cell.field,
    CellTag.OP: Cell.op,
    CellTag.REGEX: Cell.regex,
}


def _file_text(path: Any) -> str:
    text = str(path)
    try:
        # undecodable bytes in a path survive as lone surrogates
        text.encode("utf-8")
    except UnicodeEncodeError:
        raise CastError("File name is not valid unicode") from None
    return text


# source kind -> (read the value as text, target kinds that can be built)
_CONVERSIONS: dict[CellTag, tuple[Callable[[Any], str], frozenset[CellTag]]] = {
    CellTag.TEXT: (
        lambda value: value,
        frozenset(
            {
                CellTag.FILE,
                CellTag.GLOB,
                CellTag.INTEGER,
                CellTag.FIELD,
                CellTag.OP,
                CellTag.REGEX,
            }
        ),
    ),
    CellTag.FILE: (
        _file_text,
        frozenset(
            {CellTag.TEXT, CellTag.GLOB, CellTag.INTEGER, CellTag.OP, CellTag.REGEX}
        ),
    ),
    CellTag.GLOB: (
        lambda value: value.pattern,
        frozenset(
            {CellTag.TEXT, CellTag.FILE, CellTag.INTEGER, CellTag.OP, CellTag.REGEX}
        ),
    ),
    CellTag.INTEGER: (
        integer_to_text,
        frozenset(
            {
                CellTag.TEXT,
                CellTag.FILE,
                CellTag.GLOB,
                CellTag.FIELD,
                CellTag.OP,
                CellTag.REGEX,
            }
        ),
    ),
    CellTag.REGEX: (
        lambda value: value.pattern,
        frozenset(
            {CellTag.TEXT, CellTag.FILE, CellTag.GLOB, CellTag.INTEGER, CellTag.OP}
        ),
    ),
}


def can_cast(source: CellType, target: CellType) -> bool:
    """True if cells of type ``source`` may be converted to ``target`` (the value may still fail)."""
    if source == target:
        return True
    entry = _CONVERSIONS.get(source.tag)
    return entry is not None and target.tag in entry[1]


def cast_cell(cell: Cell, target: CellType) -> Cell:
    """
    Convert ``cell`` to ``target``. A cell already of the target type is
    returned unchanged.

    Raises:
        UnimplementedConversionError: if the pair is not in the conversion table
        CastError: if the value can not be represented as the target type
    """
    if cell.cell_type == target:
        return cell
    entry = _CONVERSIONS.get(cell.tag)
    if entry is None or target.tag not in entry[1]:
        raise UnimplementedConversionError()
    read_text, _ = entry
    return _FROM_TEXT[target.tag](read_text(cell.value))


def parse_text(text: str, target: CellType) -> Cell:
    """Build a cell of type ``target`` from raw text, e.g. a field of a CSV line."""
    return cast_cell(Cell.text(text), target)


def castable_from_text(target: CellType) -> bool:
    return can_cast(TEXT, target)

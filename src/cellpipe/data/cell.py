"""
The Cell: runtime value flowing through pipelines.

A Cell is a closed tagged union. The tag selects the kind, the value holds the
kind-specific payload:

- TEXT, OP: str
- INTEGER: int (arbitrary precision)
- BOOLEAN: bool
- TIME: timezone-aware datetime
- DURATION: timedelta
- FIELD: tuple of path segments
- GLOB: Glob
- REGEX: compiled re.Pattern (its ``pattern`` attribute is the source text)
- FILE: Path
- COMMAND: a bound command
- CLOSURE: Closure
- ENV: Scope
- OUTPUT: the consumer side of a live stream
- ROWS: Rows
- ROW: TypedRow
- LIST: CellList
- DICT: CellDict

Conversion, comparison and hashing each dispatch from a single place, see
``cellpipe.data.casting`` and ``cellpipe.data.compare``.
"""

import logging
import os
import re
from decimal import Decimal, InvalidOperation
from collections.abc import Iterable, Mapping, Sequence
from datetime import datetime, timedelta
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any

from cellpipe.data.rows import Row, Rows, TypedRow
from cellpipe.data.values import CellDict, CellList, Closure
from cellpipe.errors import (
    ArgumentError,
    CastError,
    InvalidStreamUseError,
    UnhashableCellError,
)
from cellpipe.globbing import Glob
from cellpipe.types import (
    BOOLEAN,
    CLOSURE,
    COMMAND,
    DURATION,
    ENV,
    FIELD,
    FILE,
    GLOB,
    INTEGER,
    OP,
    REGEX,
    TEXT,
    TIME,
    CellTag,
    CellType,
    ColumnType,
)

if TYPE_CHECKING:
    from cellpipe.context import ExecutionContext, Scope
    from cellpipe.streams.channel import InputStream

logger = logging.getLogger(__name__)


class Alignment(Enum):
    LEFT = "left"
    RIGHT = "right"


_LEAF_TYPES = {
    CellTag.TEXT: TEXT,
    CellTag.INTEGER: INTEGER,
    CellTag.BOOLEAN: BOOLEAN,
    CellTag.TIME: TIME,
    CellTag.DURATION: DURATION,
    CellTag.FIELD: FIELD,
    CellTag.GLOB: GLOB,
    CellTag.REGEX: REGEX,
    CellTag.OP: OP,
    CellTag.FILE: FILE,
    CellTag.COMMAND: COMMAND,
    CellTag.CLOSURE: CLOSURE,
    CellTag.ENV: ENV,
}


def integer_to_text(value: int) -> str:
    """Decimal digits of an integer of any size."""
    try:
        return str(value)
    except ValueError:
        # past sys.get_int_max_str_digits(), libmpdec converts without a limit
        return str(Decimal(value))


def text_to_integer(text: str) -> int:
    """
    Parse an optionally signed run of decimal digits, of any length.

    Raises:
        CastError: if the text is not such a literal
    """
    try:
        return int(text)
    except ValueError:
        pass
    try:
        return int(Decimal(text))
    except (InvalidOperation, ValueError, OverflowError) as e:
        raise CastError(f"Can not parse {text!r} as an integer") from e


def compile_regex(source: str) -> re.Pattern:
    """
    Raises:
        CastError: if the source is not a valid regular expression
    """
    try:
        return re.compile(source)
    except re.error as e:
        raise CastError(f"Invalid regular expression {source!r}: {e}") from e


class Cell:
    __slots__ = ("_tag", "_value")

    def __init__(self, tag: CellTag, value: Any):
        self._tag = tag
        self._value = value

    # constructors

    @classmethod
    def text(cls, value: str) -> "Cell":
        return cls(CellTag.TEXT, str(value))

    @classmethod
    def integer(cls, value: int) -> "Cell":
        return cls(CellTag.INTEGER, int(value))

    @classmethod
    def boolean(cls, value: bool) -> "Cell":
        return cls(CellTag.BOOLEAN, bool(value))

    @classmethod
    def time(cls, value: datetime) -> "Cell":
        # naive timestamps are taken to be local time
        if value.tzinfo is None:
            value = value.astimezone()
        return cls(CellTag.TIME, value)

    @classmethod
    def duration(cls, value: timedelta) -> "Cell":
        return cls(CellTag.DURATION, value)

    @classmethod
    def field(cls, path: str | Sequence[str]) -> "Cell":
        """A dotted path. Text is split on ``.`` into its segments."""
        if isinstance(path, str):
            return cls(CellTag.FIELD, tuple(path.split(".")))
        return cls(CellTag.FIELD, tuple(path))

    @classmethod
    def glob(cls, pattern: "str | Glob") -> "Cell":
        if isinstance(pattern, Glob):
            return cls(CellTag.GLOB, pattern)
        return cls(CellTag.GLOB, Glob(pattern))

    @classmethod
    def regex(cls, source: "str | re.Pattern") -> "Cell":
        if isinstance(source, re.Pattern):
            return cls(CellTag.REGEX, source)
        return cls(CellTag.REGEX, compile_regex(source))

    @classmethod
    def op(cls, value: str) -> "Cell":
        return cls(CellTag.OP, str(value))

    @classmethod
    def file(cls, path: str | os.PathLike) -> "Cell":
        return cls(CellTag.FILE, Path(path))

    @classmethod
    def command(cls, command: Any) -> "Cell":
        return cls(CellTag.COMMAND, command)

    @classmethod
    def closure(cls, closure: Closure) -> "Cell":
        return cls(CellTag.CLOSURE, closure)

    @classmethod
    def env(cls, scope: "Scope") -> "Cell":
        return cls(CellTag.ENV, scope)

    @classmethod
    def output(cls, stream: "InputStream") -> "Cell":
        """Wrap the consumer side of a live stream. The cell becomes its single owner."""
        return cls(CellTag.OUTPUT, stream)

    @classmethod
    def rows(cls, rows: Rows) -> "Cell":
        return cls(CellTag.ROWS, rows)

    @classmethod
    def row(cls, schema: Iterable[ColumnType], cells: Iterable["Cell"]) -> "Cell":
        return cls(CellTag.ROW, TypedRow(schema, Row(cells)))

    @classmethod
    def list_of(cls, element_type: CellType, cells: Iterable["Cell"] = ()) -> "Cell":
        values = CellList(element_type, cells)
        for cell in values:
            if cell.cell_type != element_type:
                raise CastError(
                    f"List of {element_type} can not hold a cell of type {cell.cell_type}"
                )
        return cls(CellTag.LIST, values)

    @classmethod
    def dict_of(
        cls,
        key_type: CellType,
        value_type: CellType,
        items: "Mapping[Cell, Cell] | None" = None,
    ) -> "Cell":
        return cls(CellTag.DICT, CellDict(key_type, value_type, items))

    # accessors

    @property
    def tag(self) -> CellTag:
        return self._tag

    @property
    def value(self) -> Any:
        return self._value

    @property
    def cell_type(self) -> CellType:
        """
        Type of this cell. Leaf kinds are described by their tag alone, composite
        kinds embed their row/column/element layout.
        """
        leaf = _LEAF_TYPES.get(self._tag)
        if leaf is not None:
            return leaf
        if self._tag == CellTag.OUTPUT:
            return CellType.output(self._value.schema)
        if self._tag == CellTag.ROWS:
            return CellType.rows(self._value.schema)
        if self._tag == CellTag.ROW:
            return CellType.row(self._value.schema)
        if self._tag == CellTag.LIST:
            return CellType.list_of(self._value.element_type)
        return CellType.dict_of(self._value.key_type, self._value.value_type)

    # lifecycle

    def partial_clone(self) -> "Cell":
        """
        Copy this cell. Every kind can be copied except a live stream, which has
        a single owner and a single consumer.

        Raises:
            InvalidStreamUseError: if this cell, or any cell nested in it, is an Output
        """
        if self._tag == CellTag.OUTPUT:
            raise InvalidStreamUseError()
        if self._tag in (CellTag.ROWS, CellTag.ROW):
            return Cell(self._tag, self._value.partial_clone())
        if self._tag == CellTag.LIST:
            return Cell(
                self._tag,
                CellList(
                    self._value.element_type,
                    (cell.partial_clone() for cell in self._value),
                ),
            )
        if self._tag == CellTag.DICT:
            return Cell(
                self._tag,
                CellDict(
                    self._value.key_type,
                    self._value.value_type,
                    {
                        key.partial_clone(): value.partial_clone()
                        for key, value in self._value.items.items()
                    },
                ),
            )
        # the remaining payloads are immutable and can be shared
        return Cell(self._tag, self._value)

    def concrete(self) -> "Cell":
        """
        Materialize this cell. An Output is drained into a Rows table, which is
        a destructive, one-time operation on the underlying stream. Nested
        streams inside tables, rows and lists are drained as well.

        Raises:
            InvalidStreamUseError: if the stream was already drained
        """
        if self._tag == CellTag.OUTPUT:
            return Cell(CellTag.ROWS, self._value.to_rows().concrete())
        if self._tag in (CellTag.ROWS, CellTag.ROW):
            return Cell(self._tag, self._value.concrete())
        if self._tag == CellTag.LIST:
            cells = [cell.concrete() for cell in self._value]
            element_type = (
                cells[0].cell_type if cells else self._value.element_type
            )
            return Cell(CellTag.LIST, CellList(element_type, cells))
        return self

    def cast(self, target: CellType) -> "Cell":
        """
        Convert this cell to ``target``. Returns self when it already has that type.

        Raises:
            UnimplementedConversionError: if no conversion exists for the pair
            CastError: if the value can not be represented as the target type
        """
        from cellpipe.data.casting import cast_cell

        return cast_cell(self, target)

    def file_expand(self, context: "ExecutionContext", out: list[Path]) -> None:
        """
        Resolve this cell into the files it denotes and append them to ``out``.
        Text and File cells denote one path, relative paths are taken relative
        to the context's working directory. Glob cells expand to every match.

        Raises:
            ArgumentError: if this kind of cell can not name a file
        """
        if self._tag == CellTag.TEXT:
            out.append(context.get_cwd() / self._value)
        elif self._tag == CellTag.FILE:
            out.append(context.get_cwd() / self._value)
        elif self._tag == CellTag.GLOB:
            self._value.glob_files(context.get_cwd(), out)
        else:
            raise ArgumentError("Expected a file name")

    # presentation

    def to_string(self) -> str:
        tag = self._tag
        value = self._value
        if tag in (CellTag.TEXT, CellTag.OP):
            return value
        if tag == CellTag.INTEGER:
            return integer_to_text(value)
        if tag == CellTag.BOOLEAN:
            return "true" if value else "false"
        if tag == CellTag.TIME:
            return value.strftime("%Y-%m-%d %H:%M:%S %z")
        if tag == CellTag.DURATION:
            return f"{value.total_seconds():g}s"
        if tag == CellTag.FIELD:
            return "%" + ".".join(value)
        if tag == CellTag.GLOB:
            return "*{" + value.pattern + "}"
        if tag == CellTag.REGEX:
            return "r{" + value.pattern + "}"
        if tag == CellTag.FILE:
            text = str(value)
            try:
                text.encode("utf-8")
            except UnicodeEncodeError:
                return "<Broken file>"
            return text
        if tag == CellTag.COMMAND:
            return "Command"
        if tag == CellTag.CLOSURE:
            return "<Closure>"
        if tag == CellTag.ENV:
            return "<Env>"
        if tag in (CellTag.ROWS, CellTag.OUTPUT):
            return "<Table>"
        if tag == CellTag.ROW:
            return "<Row>"
        if tag == CellTag.LIST:
            return "[" + ", ".join(cell.to_string() for cell in value) + "]"
        return (
            "{"
            + ", ".join(
                f"{key.to_string()}: {val.to_string()}"
                for key, val in value.items.items()
            )
            + "}"
        )

    def alignment(self) -> Alignment:
        if self._tag in (CellTag.INTEGER, CellTag.DURATION):
            return Alignment.RIGHT
        return Alignment.LEFT

    def __str__(self) -> str:
        return self.to_string()

    def __repr__(self) -> str:
        if self._tag == CellTag.INTEGER:
            return f"Cell.integer({integer_to_text(self._value)})"
        return f"Cell.{self._tag.name.lower()}({self._value!r})"

    # comparison and hashing, see cellpipe.data.compare

    def partial_cmp(self, other: "Cell") -> int | None:
        """
        Three-way comparison: negative, zero or positive, or None when the two
        cells can not be ordered.
        """
        from cellpipe.data.compare import partial_cmp

        return partial_cmp(self, other)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Cell):
            return NotImplemented
        from cellpipe.data.compare import cells_equal

        return cells_equal(self, other)

    def _ordered(self, other: "Cell", op: str) -> int:
        result = self.partial_cmp(other)
        if result is None:
            raise TypeError(
                f"'{op}' not supported between cells of type "
                f"{self.cell_type} and {other.cell_type}"
            )
        return result

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Cell):
            return NotImplemented
        return self._ordered(other, "<") < 0

    def __le__(self, other: object) -> bool:
        if not isinstance(other, Cell):
            return NotImplemented
        return self._ordered(other, "<=") <= 0

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, Cell):
            return NotImplemented
        return self._ordered(other, ">") > 0

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, Cell):
            return NotImplemented
        return self._ordered(other, ">=") >= 0

    def __hash__(self) -> int:
        if not self.cell_type.is_hashable:
            raise UnhashableCellError(
                f"Cells of type {self.cell_type} can not be hashed"
            )
        from cellpipe.data.compare import hash_cell_value

        return hash_cell_value(self)

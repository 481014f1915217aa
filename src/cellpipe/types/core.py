"""
Type descriptors for cells and the schemas of rows, tables and streams.

A CellType is a tag plus, for composite kinds, the recursively embedded
element/row/column description. A schema is an ordered sequence of ColumnType;
the order defines the positional layout of every row that follows it.
"""

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from enum import IntEnum
from typing import TypeAlias

from cellpipe.errors import ArgumentError

logger = logging.getLogger(__name__)


class CellTag(IntEnum):
    """
    Tags of the closed set of cell kinds.

    The integer value doubles as the fixed rank used to order cells of different
    types, so the declaration order below is significant.
    """

    TEXT = 0
    INTEGER = 1
    BOOLEAN = 2
    TIME = 3
    DURATION = 4
    FIELD = 5
    GLOB = 6
    REGEX = 7
    OP = 8
    FILE = 9
    COMMAND = 10
    CLOSURE = 11
    ENV = 12
    OUTPUT = 13
    ROWS = 14
    ROW = 15
    LIST = 16
    DICT = 17


_UNHASHABLE_TAGS = frozenset(
    {
        CellTag.COMMAND,
        CellTag.CLOSURE,
        CellTag.ENV,
        CellTag.OUTPUT,
        CellTag.ROWS,
        CellTag.ROW,
        CellTag.LIST,
        CellTag.DICT,
    }
)

_UNORDERED_TAGS = frozenset(
    {CellTag.COMMAND, CellTag.CLOSURE, CellTag.ENV, CellTag.OUTPUT, CellTag.DICT}
)

# tags whose CellType carries a column list
_TABULAR_TAGS = frozenset({CellTag.OUTPUT, CellTag.ROWS, CellTag.ROW})


@dataclass(frozen=True, slots=True)
class CellType:
    tag: CellTag
    columns: tuple["ColumnType", ...] = field(default=())
    element: "CellType | None" = None
    key: "CellType | None" = None
    value: "CellType | None" = None

    @classmethod
    def output(cls, columns: Iterable["ColumnType"]) -> "CellType":
        return cls(CellTag.OUTPUT, columns=tuple(columns))

    @classmethod
    def rows(cls, columns: Iterable["ColumnType"]) -> "CellType":
        return cls(CellTag.ROWS, columns=tuple(columns))

    @classmethod
    def row(cls, columns: Iterable["ColumnType"]) -> "CellType":
        return cls(CellTag.ROW, columns=tuple(columns))

    @classmethod
    def list_of(cls, element: "CellType") -> "CellType":
        return cls(CellTag.LIST, element=element)

    @classmethod
    def dict_of(cls, key: "CellType", value: "CellType") -> "CellType":
        return cls(CellTag.DICT, key=key, value=value)

    @classmethod
    def from_name(cls, name: str) -> "CellType":
        """
        Resolve a leaf type from its user-facing name, as written in column
        descriptors like ``age:integer``.

        Raises:
            ArgumentError: if the name does not denote a leaf type
        """
        try:
            return _LEAF_TYPES_BY_NAME[name.strip().lower()]
        except KeyError:
            raise ArgumentError(f"Unknown column type {name}") from None

    @property
    def is_hashable(self) -> bool:
        return self.tag not in _UNHASHABLE_TAGS

    @property
    def is_orderable(self) -> bool:
        return self.tag not in _UNORDERED_TAGS

    @property
    def is_tabular(self) -> bool:
        return self.tag in _TABULAR_TAGS

    @property
    def fingerprint(self) -> str:
        """Short, process-independent fingerprint of this type."""
        from cellpipe.hashing import hash_type

        return hash_type(self).to_hex()

    def __str__(self) -> str:
        name = self.tag.name.lower()
        if self.tag in _TABULAR_TAGS:
            return f"{name}<{format_schema(self.columns)}>"
        if self.tag == CellTag.LIST:
            return f"{name}<{self.element}>"
        if self.tag == CellTag.DICT:
            return f"{name}<{self.key},{self.value}>"
        return name


@dataclass(frozen=True, slots=True)
class ColumnType:
    name: str | None
    cell_type: CellType

    @classmethod
    def named(cls, name: str, cell_type: CellType) -> "ColumnType":
        return cls(name, cell_type)

    @classmethod
    def unnamed(cls, cell_type: CellType) -> "ColumnType":
        return cls(None, cell_type)

    def __str__(self) -> str:
        if self.name is None:
            return str(self.cell_type)
        return f"{self.name}:{self.cell_type}"


# An ordered sequence of columns. Names are expected, not required, to be unique.
Schema: TypeAlias = tuple[ColumnType, ...]


TEXT = CellType(CellTag.TEXT)
INTEGER = CellType(CellTag.INTEGER)
BOOLEAN = CellType(CellTag.BOOLEAN)
TIME = CellType(CellTag.TIME)
DURATION = CellType(CellTag.DURATION)
FIELD = CellType(CellTag.FIELD)
GLOB = CellType(CellTag.GLOB)
REGEX = CellType(CellTag.REGEX)
OP = CellType(CellTag.OP)
FILE = CellType(CellTag.FILE)
COMMAND = CellType(CellTag.COMMAND)
CLOSURE = CellType(CellTag.CLOSURE)
ENV = CellType(CellTag.ENV)

_LEAF_TYPES_BY_NAME = {
    "text": TEXT,
    "integer": INTEGER,
    "int": INTEGER,
    "bool": BOOLEAN,
    "boolean": BOOLEAN,
    "time": TIME,
    "duration": DURATION,
    "field": FIELD,
    "glob": GLOB,
    "regex": REGEX,
    "op": OP,
    "file": FILE,
}


def make_schema(columns: Iterable[ColumnType]) -> Schema:
    return tuple(columns)


def format_schema(schema: Sequence[ColumnType]) -> str:
    return ",".join(str(column) for column in schema)


def parse_column_descriptor(descriptor: str) -> ColumnType:
    """
    Parse a ``name:type`` column descriptor.

    Args:
        descriptor: text on the form name:type, e.g. ``size:integer``

    Returns:
        The described column

    Raises:
        ArgumentError: if the descriptor does not have exactly two parts or
            names an unknown type
    """
    parts = descriptor.split(":")
    if len(parts) != 2:
        raise ArgumentError(
            f"Expected a column description on the form name:type, got {descriptor}"
        )
    return ColumnType.named(parts[0], CellType.from_name(parts[1]))


def find_column(schema: Sequence[ColumnType], *tags: CellTag) -> int | None:
    """Index of the first column whose type carries one of the given tags."""
    for idx, column in enumerate(schema):
        if column.cell_type.tag in tags:
            return idx
    return None

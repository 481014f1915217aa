from .core import (
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
    Schema,
    find_column,
    format_schema,
    make_schema,
    parse_column_descriptor,
)

__all__ = [
    "CellTag",
    "CellType",
    "ColumnType",
    "Schema",
    "make_schema",
    "format_schema",
    "find_column",
    "parse_column_descriptor",
    "TEXT",
    "INTEGER",
    "BOOLEAN",
    "TIME",
    "DURATION",
    "FIELD",
    "GLOB",
    "REGEX",
    "OP",
    "FILE",
    "COMMAND",
    "CLOSURE",
    "ENV",
]

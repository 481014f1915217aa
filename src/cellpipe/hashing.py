"""Process-independent content hashes for types, schemas and hashable cells."""

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import timezone
from typing import TYPE_CHECKING

import xxhash

from cellpipe.errors import UnhashableCellError
from cellpipe.types import CellTag, CellType, ColumnType, format_schema

if TYPE_CHECKING:
    from cellpipe.data.cell import Cell

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ContentHash:
    method: str
    digest: bytes

    def to_hex(self, char_count: int | None = 12) -> str:
        """Convert digest to hex string, optionally truncated."""
        hex_str = self.digest.hex()
        return hex_str[:char_count] if char_count else hex_str

    def to_int(self) -> int:
        return int.from_bytes(self.digest, byteorder="big")

    def to_string(self, prefix_method: bool = True) -> str:
        if prefix_method:
            return f"{self.method}:{self.to_hex()}"
        return self.to_hex()

    def __str__(self) -> str:
        return self.to_string()


def _xxh64(text: str) -> ContentHash:
    hasher = xxhash.xxh64()
    hasher.update(text.encode("utf-8", errors="surrogateescape"))
    return ContentHash("xxh64", hasher.digest())


def hash_type(cell_type: CellType) -> ContentHash:
    return _xxh64(str(cell_type))


def hash_schema(schema: Sequence[ColumnType]) -> ContentHash:
    """Fingerprint of a schema. Column names and order both contribute."""
    return _xxh64(format_schema(schema))


def _exact_text(cell: "Cell") -> str:
    # to_string rounds durations and drops sub-second precision from times
    if cell.tag == CellTag.TIME:
        return cell.value.astimezone(timezone.utc).isoformat()
    if cell.tag == CellTag.DURATION:
        value = cell.value
        return f"{value.days}d{value.seconds}s{value.microseconds}us"
    return cell.to_string()


def hash_cell(cell: "Cell") -> ContentHash:
    """
    Stable digest of a hashable cell, suitable for grouping and deduplication
    across processes (unlike the builtin hash, which is salted per process).

    Raises:
        UnhashableCellError: if the cell's type is not hashable
    """
    if not cell.cell_type.is_hashable:
        raise UnhashableCellError(f"Cells of type {cell.cell_type} can not be hashed")
    return _xxh64(f"{cell.tag.name}:{_exact_text(cell)}")

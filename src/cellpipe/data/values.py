"""Payloads of the composite cell kinds that have no better home."""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from cellpipe.types import CellType

if TYPE_CHECKING:
    from cellpipe.context import Scope
    from cellpipe.data.cell import Cell


class CellList:
    """Ordered sequence of cells sharing one element type."""

    __slots__ = ("element_type", "cells")

    def __init__(self, element_type: CellType, cells: Iterable["Cell"] = ()):
        self.element_type = element_type
        self.cells: tuple["Cell", ...] = tuple(cells)

    def __len__(self) -> int:
        return len(self.cells)

    def __iter__(self):
        return iter(self.cells)

    def __getitem__(self, idx: int) -> "Cell":
        return self.cells[idx]

    def __repr__(self) -> str:
        return f"CellList({self.element_type}, {list(self.cells)!r})"


class CellDict:
    """
    Mapping with a declared key and value type. Keys must be of a hashable
    cell type, which is checked once at construction.
    """

    __slots__ = ("key_type", "value_type", "items")

    def __init__(
        self,
        key_type: CellType,
        value_type: CellType,
        items: "Mapping[Cell, Cell] | None" = None,
    ):
        if not key_type.is_hashable:
            raise TypeError(f"Dict keys of type {key_type} are not hashable")
        self.key_type = key_type
        self.value_type = value_type
        self.items: dict["Cell", "Cell"] = dict(items) if items is not None else {}

    def __len__(self) -> int:
        return len(self.items)

    def __repr__(self) -> str:
        return f"CellDict({self.key_type}, {self.value_type}, {self.items!r})"


@dataclass(frozen=True, eq=False)
class Closure:
    """A deferred block of pipeline code plus the scope it captured."""

    body: tuple[Any, ...]
    scope: "Scope"
    parameters: tuple[str, ...] = field(default=())

from .base import Argument, BoundCommand, Command, CompileContext
from .csv_reader import CsvConfig, CsvReader
from .head import Head
from .registry import (
    DEFAULT_REGISTRY,
    CommandCollisionError,
    CommandNotFoundError,
    CommandRegistry,
)

__all__ = [
    "Argument",
    "BoundCommand",
    "Command",
    "CompileContext",
    "CsvConfig",
    "CsvReader",
    "Head",
    "CommandRegistry",
    "CommandCollisionError",
    "CommandNotFoundError",
    "DEFAULT_REGISTRY",
]

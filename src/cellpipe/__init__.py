from .config import DEFAULT_CONFIG, Config
from .context import ExecutionContext, Scope
from .printer import Printer
from . import errors
from . import types
from .data import Cell, Row, Rows
from .streams import unlimited_streams
from .commands import DEFAULT_REGISTRY, Argument, Command
from .pipeline import Job, Pipeline, Stage


__all__ = [
    "DEFAULT_CONFIG",
    "Config",
    "ExecutionContext",
    "Scope",
    "Printer",
    "errors",
    "types",
    "Cell",
    "Row",
    "Rows",
    "unlimited_streams",
    "DEFAULT_REGISTRY",
    "Argument",
    "Command",
    "Job",
    "Pipeline",
    "Stage",
]

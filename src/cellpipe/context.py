"""
Explicit execution context handed to commands.

Working directory, lexical scope and configuration are carried by value into
every call that needs them instead of being looked up in process-wide state.
"""

import logging
import threading
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from cellpipe.config import DEFAULT_CONFIG, Config
from cellpipe.errors import CellpipeError

if TYPE_CHECKING:
    from cellpipe.data.cell import Cell

logger = logging.getLogger(__name__)


class Scope:
    """Thread-safe lexical scope mapping names to cells, with an optional parent."""

    def __init__(
        self, parent: "Scope | None" = None, values: "Mapping[str, Cell] | None" = None
    ):
        self.parent = parent
        self._values: dict[str, "Cell"] = dict(values) if values is not None else {}
        self._lock = threading.RLock()

    def declare(self, name: str, value: "Cell") -> None:
        """Bind ``name`` in this scope, shadowing any binding in a parent."""
        with self._lock:
            self._values[name] = value

    def set(self, name: str, value: "Cell") -> None:
        """
        Rebind ``name`` in the nearest scope that defines it.

        Raises:
            CellpipeError: if no enclosing scope defines the name
        """
        scope: Scope | None = self
        while scope is not None:
            with scope._lock:
                if name in scope._values:
                    scope._values[name] = value
                    return
            scope = scope.parent
        raise CellpipeError(f"Unknown variable {name}")

    def get(self, name: str) -> "Cell | None":
        scope: Scope | None = self
        while scope is not None:
            with scope._lock:
                if name in scope._values:
                    return scope._values[name]
            scope = scope.parent
        return None

    def create_child(self) -> "Scope":
        return Scope(parent=self)

    def __contains__(self, name: str) -> bool:
        return self.get(name) is not None


@dataclass(frozen=True)
class ExecutionContext:
    cwd: Path
    scope: Scope = field(default_factory=Scope)
    config: Config = DEFAULT_CONFIG

    @classmethod
    def create(
        cls,
        cwd: str | Path | None = None,
        scope: Scope | None = None,
        config: Config | None = None,
    ) -> "ExecutionContext":
        """Build a context, reading the process working directory only if none is given."""
        resolved = Path(cwd) if cwd is not None else Path.cwd()
        return cls(
            cwd=resolved.absolute(),
            scope=scope if scope is not None else Scope(),
            config=config if config is not None else DEFAULT_CONFIG,
        )

    def get_cwd(self) -> Path:
        """
        Returns the working directory of this context.

        Raises:
            CellpipeError: if the directory does not exist (anymore)
        """
        if not self.cwd.is_dir():
            raise CellpipeError(f"Working directory {self.cwd} does not exist")
        return self.cwd

    def with_scope(self, scope: Scope) -> "ExecutionContext":
        return ExecutionContext(cwd=self.cwd, scope=scope, config=self.config)

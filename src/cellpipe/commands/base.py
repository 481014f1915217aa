import logging
from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from cellpipe.context import ExecutionContext
from cellpipe.data.cell import Cell
from cellpipe.hashing import hash_schema
from cellpipe.printer import Printer
from cellpipe.streams.channel import (
    InputStream,
    OutputStream,
    UninitializedInputStream,
    UninitializedOutputStream,
)
from cellpipe.types import Schema

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Argument:
    """One entry of a command's argument list: an optional name and a cell."""

    name: str | None
    cell: Cell

    @classmethod
    def named(cls, name: str, cell: Cell) -> "Argument":
        return cls(name, cell)

    @classmethod
    def unnamed(cls, cell: Cell) -> "Argument":
        return cls(None, cell)


@dataclass
class CompileContext:
    """Everything a command needs to set itself up as one stage of a pipeline."""

    input: UninitializedInputStream
    output: UninitializedOutputStream
    arguments: list[Argument]
    printer: Printer
    env: ExecutionContext


class Command(ABC):
    """
    A pipeline stage. Every command goes through the same lifecycle, driven by
    ``compile_and_run``:

    1. wait for the input stream's schema (commands that consume input)
    2. ``parse`` the arguments into a typed configuration
    3. compute ``output_schema`` from that configuration and settle it on the
       output stream, before any row is sent
    4. ``run``

    Errors raised in steps 1 to 3 abort the stage before any row flows.
    """

    name: str = ""
    consumes_input: bool = True

    @abstractmethod
    def parse(
        self,
        arguments: Sequence[Argument],
        input: InputStream | None,
        context: ExecutionContext,
    ) -> Any:
        """
        Resolve the argument list into this command's configuration.

        Raises:
            ArgumentError: on wrong arity, value kind or malformed sub-syntax
        """
        ...

    @abstractmethod
    def output_schema(self, config: Any, input: InputStream | None) -> Schema:
        ...

    @abstractmethod
    def run(
        self,
        config: Any,
        input: InputStream | None,
        output: OutputStream,
        context: CompileContext,
    ) -> None:
        """
        Produce rows on ``output``. Both streams are closed once this returns, so
        work that outlives the call must only use streams it created itself.
        """
        ...

    def compile_and_run(self, context: CompileContext) -> None:
        input: InputStream | None = None
        output: OutputStream | None = None
        try:
            if self.consumes_input:
                input = context.input.initialize(
                    timeout=context.env.config.initialize_timeout
                )
            else:
                context.input.close()
            config = self.parse(context.arguments, input, context.env)
            output = context.output.initialize(self.output_schema(config, input))
            fingerprint = hash_schema(output.schema).to_hex(
                context.env.config.schema_hash_n_char
            )
            logger.debug(
                f"{self.name}: compiled with config {config!r}, output schema {fingerprint}"
            )
            self.run(config, input, output, context)
        finally:
            # closing an uninitialized producer lets the consumer fail fast
            if output is None:
                context.output.close()
            else:
                output.close()
            if input is None:
                context.input.close()
            else:
                input.close()

    def bind(self, *arguments: Argument) -> "BoundCommand":
        return BoundCommand(self, tuple(arguments))

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r})"


@dataclass(frozen=True)
class BoundCommand:
    """A command together with partially applied arguments, the payload of a Command cell."""

    command: Command
    arguments: tuple[Argument, ...] = field(default=())

    def bind(self, *arguments: Argument) -> "BoundCommand":
        return BoundCommand(self.command, self.arguments + tuple(arguments))

    @property
    def name(self) -> str:
        return self.command.name

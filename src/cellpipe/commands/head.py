import logging
from collections.abc import Sequence

from cellpipe.commands.base import Argument, Command, CompileContext
from cellpipe.context import ExecutionContext
from cellpipe.errors import ArgumentError, ChannelClosedError, EndOfStream
from cellpipe.streams.channel import InputStream, OutputStream
from cellpipe.types import CellTag, Schema

logger = logging.getLogger(__name__)


def get_line_count(arguments: Sequence[Argument], default: int = 10) -> int:
    if len(arguments) == 0:
        return default
    if len(arguments) > 1:
        raise ArgumentError("Too many arguments")
    cell = arguments[0].cell
    if cell.tag != CellTag.INTEGER:
        raise ArgumentError("Expected a number")
    return cell.value


def run(lines: int, input: InputStream, output: OutputStream) -> int:
    """
    Forward at most ``lines`` rows from input to output. Stops as soon as the
    count is reached, without reading any further row, or when either end of
    the pipeline goes away. Returns the number of rows forwarded.
    """
    count = 0
    while count < lines:
        try:
            row = input.recv()
        except EndOfStream:
            break
        try:
            output.send(row)
        except ChannelClosedError:
            logger.debug("head: downstream consumer is gone, stopping")
            break
        count += 1
    return count


class Head(Command):
    """Pass through the first N rows of the input, unchanged."""

    name = "head"

    def parse(
        self,
        arguments: Sequence[Argument],
        input: InputStream | None,
        context: ExecutionContext,
    ) -> int:
        return get_line_count(arguments, default=context.config.head_default_lines)

    def output_schema(self, config: int, input: InputStream | None) -> Schema:
        assert input is not None
        return input.schema

    def run(
        self,
        config: int,
        input: InputStream | None,
        output: OutputStream,
        context: CompileContext,
    ) -> None:
        assert input is not None
        forwarded = run(config, input, output)
        logger.debug(f"head: forwarded {forwarded} of at most {config} rows")

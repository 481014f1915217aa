"""
The ``csv`` command: read delimited text files into typed rows.

The output has one row per input file, ``(file, data)``, where ``data`` is a
nested stream of that file's rows. The row is sent before the file is read, then
a worker thread owned by that file fills the nested stream. Workers of different
files run concurrently and their rows interleave freely; rows of one file keep
their order.

Lines that do not split into the declared number of columns, or whose fields do
not parse as the declared types, are reported to the printer and skipped.
"""

import logging
import threading
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass
from pathlib import Path

from cellpipe.commands.base import Argument, Command, CompileContext
from cellpipe.context import ExecutionContext
from cellpipe.data.casting import castable_from_text, parse_text
from cellpipe.data.cell import Cell
from cellpipe.data.rows import Row
from cellpipe.errors import (
    ArgumentError,
    CastError,
    CellpipeError,
    ChannelClosedError,
)
from cellpipe.printer import Printer
from cellpipe.streams.channel import InputStream, OutputStream, unlimited_streams
from cellpipe.types import (
    FILE,
    CellTag,
    CellType,
    ColumnType,
    Schema,
    find_column,
    parse_column_descriptor,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CsvConfig:
    separator: str
    columns: Schema
    skip_head: int
    trim: str | None
    files: tuple[Path, ...]
    # column of the input stream naming the files, used when no file was given
    file_column: int | None = None


def _single_character(name: str, cell: Cell, message: str) -> str:
    if cell.tag != CellTag.TEXT:
        raise ArgumentError(f"Expected text for {name}, got {cell.cell_type}")
    if len(cell.value) != 1:
        raise ArgumentError(message)
    return cell.value


def parse(
    arguments: Sequence[Argument],
    input: InputStream | None,
    context: ExecutionContext,
) -> CsvConfig:
    """
    Resolve the ``csv`` arguments.

    Named arguments: ``col`` (``name:type``, repeatable), ``head`` (number of
    lines to skip), ``sep`` (one character) and ``trim`` (one character).
    Unnamed arguments name the files to read.

    Raises:
        ArgumentError: on any invalid argument
    """
    separator = context.config.csv_separator
    skip_head = context.config.csv_skip_head
    trim: str | None = None
    columns: list[ColumnType] = []
    files: list[Path] = []

    for argument in arguments:
        name, cell = argument.name, argument.cell
        if name is None:
            cell.file_expand(context, files)
        elif name == "col":
            if cell.tag != CellTag.TEXT:
                raise ArgumentError(
                    f"Expected a column description on the form name:type, got {cell.cell_type}"
                )
            column = parse_column_descriptor(cell.value)
            if not castable_from_text(column.cell_type):
                raise ArgumentError(
                    f"Column type {column.cell_type} can not be parsed from text"
                )
            columns.append(column)
        elif name == "head":
            if cell.tag != CellTag.INTEGER:
                raise ArgumentError(f"Expected a number for head, got {cell.cell_type}")
            if cell.value < 0:
                raise ArgumentError("Number of lines to skip can not be negative")
            skip_head = cell.value
        elif name == "sep":
            separator = _single_character(
                name, cell, "Separator must be exactly one character long"
            )
        elif name == "trim":
            trim = _single_character(name, cell, "Only one character can be trimmed")
        else:
            raise ArgumentError(f"Unknown parameter {name}")

    if not columns:
        raise ArgumentError("Expected at least one column description on the form name:type")

    file_column = None
    if not files:
        if input is not None:
            file_column = find_column(input.schema, CellTag.FILE, CellTag.TEXT)
        if file_column is None:
            raise ArgumentError("No files to read")

    return CsvConfig(
        separator=separator,
        columns=tuple(columns),
        skip_head=skip_head,
        trim=trim,
        files=tuple(files),
        file_column=file_column,
    )


def split_line(line: str, separator: str, trim: str | None) -> list[str]:
    if line.endswith("\n"):
        line = line[:-1]
    if line.endswith("\r"):
        line = line[:-1]
    fields = line.split(separator)
    if trim is not None:
        fields = [field.strip(trim) for field in fields]
    return fields


def read_file(path: Path, config: CsvConfig, output: OutputStream, printer: Printer) -> None:
    """
    Worker body: read ``path`` line by line into ``output``, which is closed
    when the file is exhausted, can not be read, or the consumer goes away.
    """
    expected = len(config.columns)
    with output:
        try:
            handle = open(path, encoding="utf-8")
        except OSError as e:
            printer.report_failure(CellpipeError(f"csv: Could not open {path}: {e}"))
            return

        with handle:
            try:
                for line_number, line in enumerate(handle, start=1):
                    if line_number <= config.skip_head:
                        continue
                    fields = split_line(line, config.separator, config.trim)
                    if len(fields) != expected:
                        printer.error(
                            f"csv: Wrong number of columns in CSV file {path}:{line_number}, "
                            f"expected {expected}, got {len(fields)}"
                        )
                        continue
                    try:
                        cells = [
                            parse_text(value, column.cell_type)
                            for value, column in zip(fields, config.columns)
                        ]
                    except CastError as e:
                        printer.report_failure(CastError(f"csv: {path}:{line_number}: {e}"))
                        continue
                    output.send(Row(cells))
            except ChannelClosedError:
                logger.debug(f"csv: consumer of {path} is gone, stopping")
                return
            except UnicodeDecodeError as e:
                printer.report_failure(
                    CastError(f"csv: {path} is not valid UTF-8 text: {e}")
                )
                return
    logger.debug(f"csv: finished reading {path}")


def handle(path: Path, config: CsvConfig, output: OutputStream, printer: Printer) -> threading.Thread:
    """
    Announce ``path`` on the outer stream together with a nested stream for its
    rows, then start the worker that fills the nested stream.
    """
    sender, receiver = unlimited_streams(label=f"csv:{path}")
    nested = sender.initialize(config.columns)
    try:
        output.send(Row([Cell.file(path), Cell.output(receiver.initialize())]))
    except CellpipeError:
        nested.close()
        raise
    worker = threading.Thread(
        target=read_file,
        args=(path, config, nested, printer),
        name=f"csv-{path.name}",
        daemon=True,
    )
    worker.start()
    logger.debug(f"csv: started worker for {path}")
    return worker


def files_from_input(
    input: InputStream, column: int, context: ExecutionContext, printer: Printer
) -> Iterator[Path]:
    """Yield the files named by each input row as soon as that row arrives."""
    for row in input:
        files: list[Path] = []
        try:
            row[column].file_expand(context, files)
        except CellpipeError as e:
            printer.report_failure(e)
        yield from files


class CsvReader(Command):
    name = "csv"

    def parse(
        self,
        arguments: Sequence[Argument],
        input: InputStream | None,
        context: ExecutionContext,
    ) -> CsvConfig:
        return parse(arguments, input, context)

    def output_schema(self, config: CsvConfig, input: InputStream | None) -> Schema:
        return (
            ColumnType.named("file", FILE),
            ColumnType.named("data", CellType.output(config.columns)),
        )

    def run(
        self,
        config: CsvConfig,
        input: InputStream | None,
        output: OutputStream,
        context: CompileContext,
    ) -> None:
        files: Iterable[Path] = config.files
        if not files and input is not None and config.file_column is not None:
            files = files_from_input(input, config.file_column, context.env, context.printer)
        for path in files:
            try:
                handle(path, config, output, context.printer)
            except ChannelClosedError:
                logger.debug("csv: downstream consumer is gone, not reading more files")
                return

"""Tests for the csv command: argument parsing, line splitting and file workers."""

import gc
import threading

import pytest

from cellpipe.commands import Argument, CompileContext, CsvReader
from cellpipe.commands.csv_reader import CsvConfig, parse, read_file, split_line
from cellpipe.data import Cell, Row
from cellpipe.errors import ArgumentError, CastError
from cellpipe.streams import empty_stream, unlimited_streams
from cellpipe.types import FILE, INTEGER, TEXT, CellTag, CellType, ColumnType

INT_COLUMNS = (ColumnType.named("a", INTEGER), ColumnType.named("b", INTEGER))
TEXT_COLUMNS = (ColumnType.named("a", TEXT), ColumnType.named("b", TEXT))


def col(descriptor):
    return Argument.named("col", Cell.text(descriptor))


def csv_config(path, columns, **kwargs):
    options = dict(separator=",", skip_head=0, trim=None)
    options.update(kwargs)
    return CsvConfig(columns=columns, files=(path,), **options)


def read_into_rows(path, config, printer):
    sender, receiver = unlimited_streams(label="csv-test")
    read_file(path, config, sender.initialize(config.columns), printer)
    return receiver.initialize(timeout=1).to_rows()


def values(rows):
    return [[cell.value for cell in row] for row in rows]


class TestParse:
    def test_files_and_columns(self, context):
        config = parse(
            [Argument.unnamed(Cell.text("data.csv")), col("a:integer"), col("b:text")],
            None,
            context,
        )
        assert config.files == (context.cwd / "data.csv",)
        assert config.columns == (
            ColumnType.named("a", INTEGER),
            ColumnType.named("b", TEXT),
        )
        assert config.separator == ","
        assert config.skip_head == 0
        assert config.trim is None

    def test_options(self, context):
        config = parse(
            [
                Argument.unnamed(Cell.file("x.csv")),
                col("a:text"),
                Argument.named("sep", Cell.text(";")),
                Argument.named("trim", Cell.text('"')),
                Argument.named("head", Cell.integer(2)),
            ],
            None,
            context,
        )
        assert config.separator == ";"
        assert config.trim == '"'
        assert config.skip_head == 2

    def test_glob_argument_expands(self, context):
        for name in ("b.csv", "a.csv", "c.txt"):
            (context.cwd / name).write_text("1\n")
        config = parse([Argument.unnamed(Cell.glob("*.csv")), col("a:integer")], None, context)
        assert [path.name for path in config.files] == ["a.csv", "b.csv"]

    @pytest.mark.parametrize(
        "arguments, message",
        [
            ([col("a:integer")], "No files to read"),
            ([Argument.unnamed(Cell.text("f"))], "at least one column"),
            ([Argument.unnamed(Cell.text("f")), col("a")], "on the form name:type"),
            ([Argument.unnamed(Cell.text("f")), col("a:nope")], "Unknown column type"),
            (
                [Argument.unnamed(Cell.text("f")), col("a:bool")],
                "can not be parsed from text",
            ),
            (
                [Argument.unnamed(Cell.text("f")), Argument.named("col", Cell.integer(1))],
                "on the form name:type",
            ),
            (
                [Argument.unnamed(Cell.text("f")), col("a:text"), Argument.named("sep", Cell.text(";;"))],
                "Separator must be exactly one character long",
            ),
            (
                [Argument.unnamed(Cell.text("f")), col("a:text"), Argument.named("trim", Cell.text("ab"))],
                "Only one character can be trimmed",
            ),
            (
                [Argument.unnamed(Cell.text("f")), col("a:text"), Argument.named("head", Cell.integer(-1))],
                "can not be negative",
            ),
            (
                [Argument.unnamed(Cell.text("f")), col("a:text"), Argument.named("bogus", Cell.integer(1))],
                "Unknown parameter bogus",
            ),
            ([Argument.unnamed(Cell.integer(3)), col("a:text")], "Expected a file name"),
        ],
    )
    def test_invalid_arguments(self, context, arguments, message):
        with pytest.raises(ArgumentError, match=message):
            parse(arguments, None, context)

    def test_files_from_input_column(self, context, make_input):
        schema = (ColumnType.named("n", INTEGER), ColumnType.named("path", TEXT))
        input = make_input(schema, [])
        config = parse([col("a:text")], input, context)
        assert config.files == ()
        assert config.file_column == 1


class TestSplitLine:
    def test_strips_line_endings(self):
        assert split_line("a,b\n", ",", None) == ["a", "b"]
        assert split_line("a,b\r\n", ",", None) == ["a", "b"]

    def test_trim(self):
        assert split_line('"a", "b"\n', ",", '" ') == ["a", "b"]

    def test_empty_fields_are_kept(self):
        assert split_line("a,,\n", ",", None) == ["a", "", ""]


class TestReadFile:
    def test_typed_rows_in_file_order(self, tmp_path, printer):
        path = tmp_path / "numbers.csv"
        path.write_text("1,2\n3,4\n")
        rows = read_into_rows(path, csv_config(path, INT_COLUMNS), printer)
        assert values(rows) == [[1, 2], [3, 4]]
        assert printer.messages == []

    def test_unparseable_line_is_skipped(self, tmp_path, printer):
        path = tmp_path / "numbers.csv"
        path.write_text("a,b\n1,2\n3,4\n")
        rows = read_into_rows(path, csv_config(path, INT_COLUMNS), printer)
        assert values(rows) == [[1, 2], [3, 4]]
        assert len(printer.failures) == 1
        assert isinstance(printer.failures[0], CastError)
        assert f"{path}:1" in printer.messages[0]

    def test_very_long_integer_field(self, tmp_path, printer):
        path = tmp_path / "long.csv"
        path.write_text("1\n" + "9" * 5000 + "\n3\n")
        columns = (ColumnType.named("n", INTEGER),)
        rows = read_into_rows(path, csv_config(path, columns), printer)
        assert values(rows) == [[1], [10**5000 - 1], [3]]
        assert printer.messages == []

    def test_wrong_field_count_is_skipped(self, tmp_path, printer):
        path = tmp_path / "short.csv"
        path.write_text("a,b\n1\n3,4\n")
        rows = read_into_rows(path, csv_config(path, TEXT_COLUMNS), printer)
        assert values(rows) == [["a", "b"], ["3", "4"]]
        assert len(printer.messages) == 1
        assert "Wrong number of columns" in printer.messages[0]
        assert f"{path}:2" in printer.messages[0]

    def test_skip_head_and_trim(self, tmp_path, printer):
        path = tmp_path / "quoted.csv"
        path.write_text('"a";"b"\n"1";"2"\n')
        config = csv_config(path, TEXT_COLUMNS, separator=";", skip_head=1, trim='"')
        assert values(read_into_rows(path, config, printer)) == [["1", "2"]]

    def test_missing_file_is_reported_and_stream_ends(self, tmp_path, printer):
        path = tmp_path / "missing.csv"
        rows = read_into_rows(path, csv_config(path, TEXT_COLUMNS), printer)
        assert len(rows) == 0
        assert "Could not open" in printer.messages[0]

    def test_stops_when_consumer_is_gone(self, tmp_path, printer):
        path = tmp_path / "many.csv"
        path.write_text("".join(f"{i},{i}\n" for i in range(100)))
        sender, receiver = unlimited_streams()
        output = sender.initialize(INT_COLUMNS)
        receiver.initialize(timeout=1).close()
        read_file(path, csv_config(path, INT_COLUMNS), output, printer)
        assert output.is_closed
        assert printer.messages == []

    def test_stops_when_nested_stream_cell_is_dropped(self, tmp_path, printer, caplog):
        path = tmp_path / "many.csv"
        path.write_text("".join(f"{i},{i}\n" for i in range(1000)))
        sender, receiver = unlimited_streams()
        output = sender.initialize(INT_COLUMNS)
        row = Row([Cell.file(path), Cell.output(receiver.initialize(timeout=1))])
        del row
        gc.collect()
        with caplog.at_level("DEBUG", logger="cellpipe.commands.csv_reader"):
            read_file(path, csv_config(path, INT_COLUMNS), output, printer)
        assert "is gone, stopping" in caplog.text
        assert "finished reading" not in caplog.text


class TestCsvReader:
    def run_csv(self, arguments, context, printer, input=None):
        sender, receiver = unlimited_streams(label="csv-output")
        CsvReader().compile_and_run(
            CompileContext(
                input=input if input is not None else empty_stream(),
                output=sender,
                arguments=arguments,
                printer=printer,
                env=context,
            )
        )
        return receiver.initialize(timeout=1)

    def test_one_row_per_file_with_nested_stream(self, context, printer):
        (context.cwd / "one.csv").write_text("1,2\n")
        (context.cwd / "two.csv").write_text("3,4\n5,6\n")
        result = self.run_csv(
            [
                Argument.unnamed(Cell.glob("*.csv")),
                col("a:integer"),
                col("b:integer"),
            ],
            context,
            printer,
        )
        assert result.schema == (
            ColumnType.named("file", FILE),
            ColumnType.named("data", CellType.output(INT_COLUMNS)),
        )
        rows = list(result)
        assert [row[0].value.name for row in rows] == ["one.csv", "two.csv"]
        assert all(row[1].tag == CellTag.OUTPUT for row in rows)
        tables = [row[1].concrete() for row in rows]
        assert tables[0].tag == CellTag.ROWS
        assert values(tables[0].value) == [[1, 2]]
        assert values(tables[1].value) == [[3, 4], [5, 6]]

    def test_files_named_by_input_column(self, context, printer):
        (context.cwd / "in.csv").write_text("x\n")
        input_schema = (ColumnType.named("name", TEXT),)
        sender, receiver = unlimited_streams(label="names")
        names = sender.initialize(input_schema)
        names.send(Row([Cell.text("in.csv")]))
        names.close()
        result = self.run_csv([col("v:text")], context, printer, input=receiver)
        (row,) = list(result)
        assert row[0].value == context.cwd / "in.csv"
        assert values(row[1].value.to_rows()) == [["x"]]

    def test_outer_stream_ends_before_workers_finish(self, context, printer):
        (context.cwd / "data.csv").write_text("1\n")
        result = self.run_csv(
            [Argument.unnamed(Cell.text("data.csv")), col("n:integer")], context, printer
        )
        (row,) = list(result)
        nested = row[1].value
        assert values(nested.to_rows()) == [[1]]

    def test_reads_each_file_as_its_name_arrives(self, context, printer):
        (context.cwd / "first.csv").write_text("1\n")
        (context.cwd / "second.csv").write_text("2\n")
        names_sender, names_receiver = unlimited_streams(label="names")
        names = names_sender.initialize((ColumnType.named("name", TEXT),))
        sender, receiver = unlimited_streams(label="csv-output")
        stage = threading.Thread(
            target=CsvReader().compile_and_run,
            args=(
                CompileContext(
                    input=names_receiver,
                    output=sender,
                    arguments=[col("n:integer")],
                    printer=printer,
                    env=context,
                ),
            ),
            daemon=True,
        )
        stage.start()

        names.send(Row([Cell.text("first.csv")]))
        result = receiver.initialize(timeout=5)
        # the upstream is still open while the first file is already announced
        first = result.recv(timeout=5)
        assert first[0].value == context.cwd / "first.csv"
        assert values(first[1].value.to_rows()) == [[1]]

        names.send(Row([Cell.text("second.csv")]))
        names.close()
        second = result.recv(timeout=5)
        assert second[0].value == context.cwd / "second.csv"
        stage.join(timeout=5)
        assert not stage.is_alive()

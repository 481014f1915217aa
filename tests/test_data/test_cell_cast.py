"""Tests for the cell conversion table."""

import os
import re
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from cellpipe.data import Cell, can_cast, parse_text
from cellpipe.errors import CastError, UnimplementedConversionError
from cellpipe.types import (
    BOOLEAN,
    DURATION,
    FIELD,
    FILE,
    GLOB,
    INTEGER,
    OP,
    REGEX,
    TEXT,
    TIME,
    CellTag,
)

FIELD_TARGETS = [FILE, GLOB, INTEGER, OP, REGEX, TEXT]


def sample_cells() -> list[Cell]:
    return [
        Cell.text("abc"),
        Cell.integer(42),
        Cell.boolean(True),
        Cell.time(datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)),
        Cell.duration(timedelta(seconds=90)),
        Cell.field("a.b"),
        Cell.glob("*.txt"),
        Cell.regex("a+b"),
        Cell.op("=="),
        Cell.file("data/file.csv"),
    ]


class TestCastIdentity:
    @pytest.mark.parametrize("cell", sample_cells(), ids=lambda c: c.tag.name)
    def test_cast_to_own_type_returns_same_cell(self, cell):
        assert cell.cast(cell.cell_type) is cell


class TestTextCasts:
    def test_text_to_integer(self):
        assert Cell.text("112432").cast(INTEGER) == Cell.integer(112432)
        assert Cell.text("-7").cast(INTEGER).value == -7

    def test_integer_is_arbitrary_precision(self):
        big = "1" + "0" * 40
        assert Cell.text(big).cast(INTEGER).value == 10**40

    def test_integers_longer_than_the_int_str_limit(self):
        digits = "9" * 5000
        parsed = Cell.text(digits).cast(INTEGER)
        assert parsed.value == 10**5000 - 1
        assert parsed.cast(TEXT).value == digits
        assert Cell.text("-" + digits).cast(INTEGER).value == -(10**5000 - 1)

    def test_huge_integer_to_other_kinds(self):
        huge = Cell.integer(10**5000)
        expected = "1" + "0" * 5000
        assert huge.to_string() == expected
        assert huge.cast(OP).value == expected
        assert huge.cast(GLOB).value.pattern == expected
        assert repr(huge) == f"Cell.integer({expected})"

    @pytest.mark.parametrize("text", ["1d", "", " 1", "1_000", "0x10", "1.5"])
    def test_text_to_integer_rejects_non_numeric(self, text):
        with pytest.raises(CastError):
            Cell.text(text).cast(INTEGER)

    def test_text_to_other_leaf_kinds(self):
        assert Cell.text("1d").cast(GLOB).tag == CellTag.GLOB
        assert Cell.text("1d").cast(FILE).value == Path("1d")
        assert Cell.text("fad").cast(FIELD).value == ("fad",)
        assert Cell.text("a.b.c").cast(FIELD).value == ("a", "b", "c")
        assert Cell.text("fad").cast(OP).tag == CellTag.OP

    def test_text_to_regex_compiles_the_pattern(self):
        cell = Cell.text("a+b").cast(REGEX)
        assert isinstance(cell.value, re.Pattern)
        assert cell.value.pattern == "a+b"

    def test_text_to_regex_rejects_bad_syntax(self):
        with pytest.raises(CastError, match="Invalid regular expression"):
            Cell.text("a(b").cast(REGEX)

    @pytest.mark.parametrize("target", [TIME, BOOLEAN, DURATION])
    def test_text_to_unlisted_kind_is_unimplemented(self, target):
        with pytest.raises(UnimplementedConversionError, match="Unimplemented conversion"):
            Cell.text("1d").cast(target)


class TestRoundTrips:
    @pytest.mark.parametrize("target", [FILE, GLOB, OP])
    @pytest.mark.parametrize("text", ["abc", "dir/file.txt", "*.csv", "x-1"])
    def test_format_preserving_round_trip(self, text, target):
        assert Cell.text(text).cast(target).cast(TEXT).value == text

    @pytest.mark.parametrize("text", ["0042", "+5", "-13", "7"])
    def test_integer_round_trip_preserves_the_number(self, text):
        back = Cell.text(text).cast(INTEGER).cast(TEXT)
        assert int(back.value) == int(text)

    def test_leading_zeros_are_lost(self):
        assert Cell.text("0042").cast(INTEGER).cast(TEXT).value == "42"


class TestOtherSources:
    def test_integer_stringifies_first(self):
        assert Cell.integer(12).cast(TEXT).value == "12"
        assert Cell.integer(12).cast(FILE).value == Path("12")
        assert Cell.integer(12).cast(GLOB).value.pattern == "12"
        assert Cell.integer(12).cast(FIELD).value == ("12",)
        assert Cell.integer(12).cast(OP).value == "12"
        assert Cell.integer(12).cast(REGEX).value.pattern == "12"

    def test_glob_uses_its_pattern(self):
        glob = Cell.glob("*.txt")
        assert glob.cast(TEXT).value == "*.txt"
        assert glob.cast(FILE).value == Path("*.txt")
        assert glob.cast(OP).value == "*.txt"
        assert Cell.glob("17").cast(INTEGER).value == 17
        with pytest.raises(CastError):
            glob.cast(INTEGER)
        with pytest.raises(CastError):
            glob.cast(REGEX)

    def test_regex_uses_its_source_text(self):
        regex = Cell.regex("ab+")
        assert regex.cast(TEXT).value == "ab+"
        assert regex.cast(GLOB).value.pattern == "ab+"
        assert regex.cast(FILE).value == Path("ab+")
        assert Cell.regex("12").cast(INTEGER).value == 12

    def test_file_casts(self):
        cell = Cell.file("notes/a.txt")
        assert cell.cast(TEXT).value == "notes/a.txt"
        assert cell.cast(GLOB).value.pattern == "notes/a.txt"
        assert Cell.file("99").cast(INTEGER).value == 99
        assert cell.cast(REGEX).value.pattern == "notes/a.txt"

    @pytest.mark.skipif(os.name != "posix", reason="needs undecodable file names")
    @pytest.mark.parametrize("target", [TEXT, GLOB, INTEGER, OP, REGEX])
    def test_file_with_invalid_unicode_name(self, target):
        broken = Cell.file(Path(os.fsdecode(b"bad\xffname")))
        with pytest.raises(CastError, match="File name is not valid unicode"):
            broken.cast(target)

    @pytest.mark.parametrize(
        "cell, target",
        [
            (Cell.file("a"), FIELD),
            (Cell.glob("a"), FIELD),
            (Cell.regex("a"), FIELD),
            (Cell.integer(1), BOOLEAN),
            (Cell.boolean(True), TEXT),
            (Cell.op("+"), TEXT),
        ],
    )
    def test_pairs_missing_from_the_table(self, cell, target):
        with pytest.raises(UnimplementedConversionError):
            cell.cast(target)


class TestFieldConversionsAreNotEnabled:
    @pytest.mark.parametrize("target", FIELD_TARGETS, ids=lambda t: str(t))
    @pytest.mark.parametrize("path", ["a", "a.b", "12"])
    def test_field_casts_fail_as_unimplemented(self, path, target):
        with pytest.raises(UnimplementedConversionError, match="Unimplemented conversion"):
            Cell.field(path).cast(target)


class TestHelpers:
    def test_can_cast(self):
        assert can_cast(TEXT, INTEGER)
        assert can_cast(FIELD, FIELD)
        assert not can_cast(FIELD, TEXT)
        assert not can_cast(TEXT, BOOLEAN)

    def test_parse_text(self):
        assert parse_text("5", INTEGER) == Cell.integer(5)
        assert parse_text("x", TEXT) == Cell.text("x")

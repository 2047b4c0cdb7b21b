"""Tests for static error records and their rendering."""

import pytest

from lox.errors import (
    E_EXPECTED_SEMICOLON,
    E_INVALID_CHARACTER,
    E_INVALID_CHARACTERS,
    E_UNTERMINATED_STRING,
    LoxError,
    format_error,
    merge_invalid_characters,
)
from lox.tokens import scan


def _invalid(line: int, col: int, c: str) -> LoxError:
    return LoxError(E_INVALID_CHARACTER, line, line, col, col, c)


def test_text_includes_detail():
    e = LoxError(E_EXPECTED_SEMICOLON, 1, 1, 3, 3)
    assert str(e) == "Parsing error: Expected semicolon at end of expression"
    e = LoxError(E_INVALID_CHARACTER, 1, 1, 3, 3, "@")
    assert str(e) == "Lexical error: Invalid character: @"


def test_unknown_kind_is_rejected():
    with pytest.raises(ValueError):
        LoxError("NoSuchKind", 1, 1, 1, 1)


def test_adjacent_invalid_characters_merge():
    merged = merge_invalid_characters(
        [_invalid(1, 3, "@"), _invalid(1, 4, "#"), _invalid(1, 5, "$")]
    )
    (e,) = merged
    assert e.kind == E_INVALID_CHARACTERS
    assert (e.line_start, e.col_start, e.col_end) == (1, 3, 5)
    assert e.detail == "@ # $"


def test_separated_invalid_characters_stay_apart():
    errors = [_invalid(1, 3, "@"), _invalid(1, 5, "#"), _invalid(2, 6, "$")]
    merged = merge_invalid_characters(errors)
    assert [e.kind for e in merged] == [E_INVALID_CHARACTER] * 3


def test_merge_keeps_other_errors_in_order():
    other = LoxError(E_UNTERMINATED_STRING, 3, 3, 1, 1)
    merged = merge_invalid_characters(
        [_invalid(1, 1, "@"), _invalid(1, 2, "@"), other, _invalid(4, 1, "#")]
    )
    assert [e.kind for e in merged] == [
        E_INVALID_CHARACTERS,
        E_UNTERMINATED_STRING,
        E_INVALID_CHARACTER,
    ]


def test_merge_from_scanner():
    _, errors = scan("var x = @@;\n#")
    merged = merge_invalid_characters(errors)
    assert [(e.kind, e.line_start) for e in merged] == [
        (E_INVALID_CHARACTERS, 1),
        (E_INVALID_CHARACTER, 2),
    ]


def test_format_error_underlines_span():
    source = "var a = 1;\nprint a +;\n"
    e = LoxError(E_EXPECTED_SEMICOLON, 2, 2, 7, 9)
    assert format_error(source, e) == (
        "2| print a +;\n"
        "         ^^^--- Parsing error: Expected semicolon at end of expression"
    )


def test_format_error_past_last_line():
    e = LoxError(E_EXPECTED_SEMICOLON, 5, 5, 1, 1)
    assert format_error("print 1", e) == (
        "5| \n   ^--- Parsing error: Expected semicolon at end of expression"
    )

"""Tests for the Lox scanner."""

from lox.errors import E_INVALID_CHARACTER, E_UNTERMINATED_STRING
from lox.tokens import (
    TK_BANG,
    TK_BANG_EQUAL,
    TK_DOT,
    TK_EOF,
    TK_EQUAL_EQUAL,
    TK_IDENTIFIER,
    TK_LESS,
    TK_LESS_EQUAL,
    TK_NUMBER,
    TK_SEMICOLON,
    TK_SLASH,
    TK_STRING,
    scan,
)


def _types(source: str) -> list[str]:
    tokens, errors = scan(source)
    assert errors == [], [str(e) for e in errors]
    return [t.type for t in tokens]


def test_empty_source_is_just_eof():
    tokens, errors = scan("")
    assert errors == []
    assert len(tokens) == 1
    eof = tokens[0]
    assert eof.type == TK_EOF
    assert (eof.line, eof.col, eof.length) == (1, 1, 1)


def test_two_char_operators_win():
    assert _types("! != < <= ==") == [
        TK_BANG,
        TK_BANG_EQUAL,
        TK_LESS,
        TK_LESS_EQUAL,
        TK_EQUAL_EQUAL,
        TK_EOF,
    ]


def test_comment_runs_to_end_of_line():
    assert _types("a // b c\n/ d") == [TK_IDENTIFIER, TK_SLASH, TK_IDENTIFIER, TK_EOF]


def test_keywords_use_their_own_type():
    tokens, _ = scan("class fun orchid this")
    assert [t.type for t in tokens] == ["class", "fun", TK_IDENTIFIER, "this", TK_EOF]
    assert tokens[2].literal == "orchid"
    assert tokens[3].literal == "this"
    assert tokens[0].literal is None


def test_number_literal_is_float():
    tokens, _ = scan("12 3.25")
    assert tokens[0].type == TK_NUMBER
    assert tokens[0].literal == 12.0
    assert isinstance(tokens[0].literal, float)
    assert tokens[1].literal == 3.25
    assert tokens[1].length == 4


def test_trailing_dot_is_not_part_of_number():
    assert _types("1.;") == [TK_NUMBER, TK_DOT, TK_SEMICOLON, TK_EOF]


def test_leading_dot_is_not_a_number():
    assert _types(".5") == [TK_DOT, TK_NUMBER, TK_EOF]


def test_string_literal_spans_lines():
    tokens, errors = scan('"a\nb" x')
    assert errors == []
    s = tokens[0]
    assert s.type == TK_STRING
    assert s.literal == "a\nb"
    assert s.lexeme == '"a\nb"'
    assert (s.line, s.col, s.length) == (1, 1, 5)
    x = tokens[1]
    assert (x.line, x.col) == (2, 4)


def test_positions_are_one_based():
    tokens, _ = scan("var x;\n  print x;")
    assert [(t.line, t.col) for t in tokens] == [
        (1, 1),
        (1, 5),
        (1, 6),
        (2, 3),
        (2, 9),
        (2, 10),
        (2, 11),
    ]


def test_invalid_character_is_reported_and_skipped():
    tokens, errors = scan("a @ b")
    assert [t.type for t in tokens] == [TK_IDENTIFIER, TK_IDENTIFIER, TK_EOF]
    assert len(errors) == 1
    e = errors[0]
    assert e.kind == E_INVALID_CHARACTER
    assert (e.line_start, e.col_start, e.col_end) == (1, 3, 3)
    assert e.detail == "@"


def test_unterminated_string_ends_scanning():
    tokens, errors = scan('print "abc')
    assert [t.type for t in tokens] == ["print", TK_EOF]
    assert len(errors) == 1
    assert errors[0].kind == E_UNTERMINATED_STRING
    assert errors[0].line_start == 1


def test_underscore_identifiers():
    tokens, _ = scan("_private a_1")
    assert [t.lexeme for t in tokens[:-1]] == ["_private", "a_1"]


def test_debug_line():
    tokens, _ = scan("42")
    assert tokens[0].debug() == "| NUMBER : Line : 1; Column: 1; Length: 2 Value: 42.0"
    assert tokens[1].debug() == "| EOF : Line : 1; Column: 3; Length: 1"

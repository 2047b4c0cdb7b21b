"""Lox scanner — lexes source into a flat token list plus lexical errors."""

from __future__ import annotations

from .errors import E_INVALID_CHARACTER, E_UNTERMINATED_STRING, LoxError


# Single-character tokens
TK_LEFT_PAREN = "LEFT_PAREN"
TK_RIGHT_PAREN = "RIGHT_PAREN"
TK_LEFT_BRACE = "LEFT_BRACE"
TK_RIGHT_BRACE = "RIGHT_BRACE"
TK_COMMA = "COMMA"
TK_DOT = "DOT"
TK_MINUS = "MINUS"
TK_PLUS = "PLUS"
TK_SEMICOLON = "SEMICOLON"
TK_SLASH = "SLASH"
TK_STAR = "STAR"

# One or two character tokens
TK_BANG = "BANG"
TK_BANG_EQUAL = "BANG_EQUAL"
TK_EQUAL = "EQUAL"
TK_EQUAL_EQUAL = "EQUAL_EQUAL"
TK_GREATER = "GREATER"
TK_GREATER_EQUAL = "GREATER_EQUAL"
TK_LESS = "LESS"
TK_LESS_EQUAL = "LESS_EQUAL"

# Literals
TK_IDENTIFIER = "IDENTIFIER"
TK_STRING = "STRING"
TK_NUMBER = "NUMBER"

TK_EOF = "EOF"

# Keywords use the keyword itself as token type
KEYWORDS: set[str] = {
    "and",
    "class",
    "else",
    "false",
    "for",
    "fun",
    "if",
    "nil",
    "or",
    "print",
    "return",
    "super",
    "this",
    "true",
    "var",
    "while",
}

SINGLE_CHARS: dict[str, str] = {
    "(": TK_LEFT_PAREN,
    ")": TK_RIGHT_PAREN,
    "{": TK_LEFT_BRACE,
    "}": TK_RIGHT_BRACE,
    ",": TK_COMMA,
    ".": TK_DOT,
    "-": TK_MINUS,
    "+": TK_PLUS,
    ";": TK_SEMICOLON,
    "*": TK_STAR,
}

# c -> (type alone, type when followed by '=')
EQUAL_PAIRS: dict[str, tuple[str, str]] = {
    "!": (TK_BANG, TK_BANG_EQUAL),
    "=": (TK_EQUAL, TK_EQUAL_EQUAL),
    "<": (TK_LESS, TK_LESS_EQUAL),
    ">": (TK_GREATER, TK_GREATER_EQUAL),
}


class Token:
    """A token with type, source text, literal value and position."""

    __slots__ = ("type", "lexeme", "literal", "line", "col", "length")

    def __init__(
        self,
        type_: str,
        lexeme: str,
        literal: float | str | None,
        line: int,
        col: int,
        length: int,
    ):
        self.type: str = type_
        self.lexeme: str = lexeme
        self.literal: float | str | None = literal
        self.line: int = line
        self.col: int = col
        self.length: int = length

    def __repr__(self) -> str:
        return (
            "Token("
            + self.type
            + ", "
            + repr(self.lexeme)
            + ", "
            + str(self.line)
            + ", "
            + str(self.col)
            + ")"
        )

    def debug(self) -> str:
        text = (
            "| "
            + self.type
            + " : Line : "
            + str(self.line)
            + "; Column: "
            + str(self.col)
            + "; Length: "
            + str(self.length)
        )
        if self.literal is not None:
            text += " Value: " + str(self.literal)
        return text


def _is_digit(c: str) -> bool:
    return c >= "0" and c <= "9"


def _is_alpha(c: str) -> bool:
    return c.isalpha() or c == "_"


def _is_alnum(c: str) -> bool:
    return _is_alpha(c) or c.isdigit()


def scan(source: str) -> tuple[list[Token], list[LoxError]]:
    """Scan Lox source into a token list ending with TK_EOF, plus lexical errors.

    Scanning never stops early: an unknown character yields one InvalidCharacter
    error and the scanner moves on; an unterminated string ends the input.
    """
    tokens: list[Token] = []
    errors: list[LoxError] = []
    pos = 0
    line = 1
    col = 1
    length = len(source)

    while pos < length:
        c = source[pos]

        if c == "\n":
            pos += 1
            line += 1
            col = 1
            continue

        if c == " " or c == "\t" or c == "\r":
            pos += 1
            col += 1
            continue

        # Line comment: //
        if c == "/" and pos + 1 < length and source[pos + 1] == "/":
            while pos < length and source[pos] != "\n":
                pos += 1
                col += 1
            continue

        start_pos = pos
        start_line = line
        start_col = col

        if c in SINGLE_CHARS:
            tokens.append(Token(SINGLE_CHARS[c], c, None, line, col, 1))
            pos += 1
            col += 1
            continue

        if c == "/":
            tokens.append(Token(TK_SLASH, c, None, line, col, 1))
            pos += 1
            col += 1
            continue

        if c in EQUAL_PAIRS:
            alone, with_equal = EQUAL_PAIRS[c]
            if pos + 1 < length and source[pos + 1] == "=":
                tokens.append(Token(with_equal, c + "=", None, line, col, 2))
                pos += 2
                col += 2
            else:
                tokens.append(Token(alone, c, None, line, col, 1))
                pos += 1
                col += 1
            continue

        # String literal, may span lines
        if c == '"':
            pos += 1
            col += 1
            while pos < length and source[pos] != '"':
                if source[pos] == "\n":
                    line += 1
                    col = 1
                else:
                    col += 1
                pos += 1
            if pos >= length:
                errors.append(
                    LoxError(
                        E_UNTERMINATED_STRING,
                        line,
                        line,
                        max(col - 1, 1),
                        max(col - 1, 1),
                    )
                )
                break
            pos += 1  # skip closing "
            col += 1
            contents = source[start_pos + 1 : pos - 1]
            tokens.append(
                Token(
                    TK_STRING,
                    source[start_pos:pos],
                    contents,
                    start_line,
                    start_col,
                    pos - start_pos,
                )
            )
            continue

        # Number: digits ( '.' digit+ )?
        if _is_digit(c):
            while pos < length and _is_digit(source[pos]):
                pos += 1
                col += 1
            if (
                pos + 1 < length
                and source[pos] == "."
                and _is_digit(source[pos + 1])
            ):
                pos += 1
                col += 1
                while pos < length and _is_digit(source[pos]):
                    pos += 1
                    col += 1
            raw = source[start_pos:pos]
            tokens.append(
                Token(TK_NUMBER, raw, float(raw), start_line, start_col, len(raw))
            )
            continue

        # Identifier or keyword
        if _is_alpha(c):
            while pos < length and _is_alnum(source[pos]):
                pos += 1
                col += 1
            word = source[start_pos:pos]
            if word in KEYWORDS:
                literal = word if word == "this" or word == "super" else None
                tokens.append(
                    Token(word, word, literal, start_line, start_col, len(word))
                )
            else:
                tokens.append(
                    Token(TK_IDENTIFIER, word, word, start_line, start_col, len(word))
                )
            continue

        errors.append(LoxError(E_INVALID_CHARACTER, line, line, col, col, c))
        pos += 1
        col += 1

    tokens.append(Token(TK_EOF, "", None, line, col, 1))
    return tokens, errors

"""Lox diagnostics — structured error records shared by scanner, parser and resolver."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .tokens import Token


# Lexical
E_INVALID_CHARACTER = "InvalidCharacter"
E_INVALID_CHARACTERS = "InvalidCharacters"
E_UNTERMINATED_STRING = "UnterminatedString"

# Parsing
E_UNCLOSED_PARENS = "UnclosedParens"
E_EXPECTED_EXPRESSION = "ExpectedExpression"
E_EXPECTED_SEMICOLON = "ExpectedSemicolon"
E_EXPECTED_VARIABLE_NAME = "ExpectedVariableName"
E_EXPECTED_OPEN_BRACE = "ExpectedOpenBrace"
E_EXPECTED_CLOSED_BRACE = "ExpectedClosedBrace"
E_EXPECTED_OPEN_PAREN = "ExpectedOpenParen"
E_EXPECTED_CLOSED_PAREN = "ExpectedClosedParen"
E_EXPECTED_IDENTIFIER = "ExpectedIdentifier"
E_EXPECTED_DOT = "ExpectedDot"
E_NESTING_TOO_DEEP = "NestingTooDeep"

# Semantic
E_INVALID_ASSIGNMENT_TARGET = "InvalidAssignmentTarget"
E_MAX_ARGUMENTS = "MaxArguments"
E_MAX_PARAMETERS = "MaxParameters"
E_DUPLICATE_DECLARATION = "DuplicateDeclaration"
E_INITIALIZER_ERROR = "InitializerError"
E_INVALID_RETURN_USAGE = "InvalidReturnUsage"
E_INVALID_THIS_USAGE = "InvalidThisUsage"
E_INVALID_SUPERCLASS = "InvalidSuperclass"
E_INVALID_USE_OF_SUPER = "InvalidUseOfSuper"

ERROR_TEXT: dict[str, str] = {
    E_INVALID_CHARACTER: "Lexical error: Invalid character",
    E_INVALID_CHARACTERS: "Lexical error: Invalid characters group",
    E_UNTERMINATED_STRING: "Lexical error: Unterminated string",
    E_UNCLOSED_PARENS: "Parsing error: Parenthesis not closed",
    E_EXPECTED_EXPRESSION: "Parsing error: Expected expression",
    E_EXPECTED_SEMICOLON: "Parsing error: Expected semicolon at end of expression",
    E_EXPECTED_VARIABLE_NAME: "Parsing error: Expected variable name",
    E_EXPECTED_OPEN_BRACE: "Parsing error: Expected '{'",
    E_EXPECTED_CLOSED_BRACE: "Parsing error: Expected '}'",
    E_EXPECTED_OPEN_PAREN: "Parsing error: Expected '('",
    E_EXPECTED_CLOSED_PAREN: "Parsing error: Expected ')'",
    E_EXPECTED_IDENTIFIER: "Parsing error: Expected identifier",
    E_EXPECTED_DOT: "Parsing error: Expected dot",
    E_NESTING_TOO_DEEP: "Parsing error: Nesting too deep",
    E_INVALID_ASSIGNMENT_TARGET: "Semantic error: Invalid assignment target",
    E_MAX_ARGUMENTS: "Semantic error: Maximum number of arguments reached",
    E_MAX_PARAMETERS: "Semantic error: Maximum number of parameters reached",
    E_DUPLICATE_DECLARATION: "Semantic error: Duplicate declaration",
    E_INITIALIZER_ERROR: "Semantic error: Invalid initializer",
    E_INVALID_RETURN_USAGE: "Semantic error: Invalid return usage",
    E_INVALID_THIS_USAGE: "Semantic error: Can't use 'this' in the current context",
    E_INVALID_SUPERCLASS: "Semantic error: Invalid superclass",
    E_INVALID_USE_OF_SUPER: "Semantic error: Invalid use of super",
}

LEXICAL_KINDS: set[str] = {
    E_INVALID_CHARACTER,
    E_INVALID_CHARACTERS,
    E_UNTERMINATED_STRING,
}


class LoxError(Exception):
    """A static (lexical, syntax or semantic) error with its source span."""

    def __init__(
        self,
        kind: str,
        line_start: int,
        line_end: int,
        col_start: int,
        col_end: int,
        detail: str | None = None,
    ):
        if kind not in ERROR_TEXT:
            raise ValueError("unknown error kind: " + kind)
        self.kind: str = kind
        self.line_start: int = line_start
        self.line_end: int = line_end
        self.col_start: int = col_start
        self.col_end: int = col_end
        self.detail: str | None = detail
        super().__init__(self.text())

    def text(self) -> str:
        if self.detail is None:
            return ERROR_TEXT[self.kind]
        return ERROR_TEXT[self.kind] + ": " + self.detail

    def __str__(self) -> str:
        return self.text()

    def __repr__(self) -> str:
        return (
            "LoxError("
            + self.kind
            + ", "
            + str(self.line_start)
            + ":"
            + str(self.col_start)
            + "-"
            + str(self.line_end)
            + ":"
            + str(self.col_end)
            + ", "
            + repr(self.detail)
            + ")"
        )


def error_at(token: Token, kind: str, detail: str | None = None) -> LoxError:
    """Build an error spanning exactly the given token."""
    return LoxError(
        kind,
        token.line,
        token.line,
        token.col,
        token.col + token.length - 1,
        detail,
    )


def merge_invalid_characters(errors: list[LoxError]) -> list[LoxError]:
    """Coalesce runs of adjacent InvalidCharacter errors into one group error."""
    result: list[LoxError] = []
    i = 0
    while i < len(errors):
        e = errors[i]
        if e.kind != E_INVALID_CHARACTER:
            result.append(e)
            i += 1
            continue
        run = 1
        j = i + 1
        while j < len(errors):
            u = errors[j]
            prev = errors[j - 1]
            if (
                u.kind == E_INVALID_CHARACTER
                and u.line_start == prev.line_end
                and u.col_start == prev.col_end + 1
            ):
                run += 1
                j += 1
            else:
                break
        if run == 1:
            result.append(e)
        else:
            chars = [str(errors[k].detail) for k in range(i, i + run)]
            result.append(
                LoxError(
                    E_INVALID_CHARACTERS,
                    e.line_start,
                    e.line_start,
                    e.col_start,
                    e.col_start + run - 1,
                    " ".join(chars),
                )
            )
        i += run
    return result


def format_error(source: str, error: LoxError) -> str:
    """Render an error against its source line, underlining the span with carets."""
    lines = source.split("\n")
    idx = error.line_start - 1
    line_text = ""
    if 0 <= idx < len(lines):
        line_text = lines[idx].replace("\t", " ").rstrip("\r")
    preamble = str(error.line_start) + "| "
    width = error.col_end - error.col_start + 1
    if width < 1:
        width = 1
    underline = " " * (len(preamble) + error.col_start - 1) + "^" * width
    return preamble + line_text + "\n" + underline + "--- " + str(error)

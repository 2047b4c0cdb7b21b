"""Lox scanner, parser, resolver and interpreter — public API."""

from __future__ import annotations

from dataclasses import dataclass, field
import io
import logging
import sys
from typing import TextIO

from .ast import Expr, Stmt
from .errors import LoxError, merge_invalid_characters
from .parse import parse as parse_tokens
from .resolve import resolve as resolve_stmts
from .runtime import Interpreter, LoxRuntimeError
from .tokens import Token, scan as scan_source

logger = logging.getLogger(__name__)

# Each nesting level of a Lox program costs several Python frames
RECURSION_LIMIT = 20000

if sys.getrecursionlimit() < RECURSION_LIMIT:
    sys.setrecursionlimit(RECURSION_LIMIT)

STAGE_SCAN = "scan"
STAGE_PARSE = "parse"
STAGE_RESOLVE = "resolve"
STAGE_RUNTIME = "runtime"
STAGE_OK = "ok"


def scan(source: str) -> tuple[list[Token], list[LoxError]]:
    """Scan source into tokens. Lexical errors are returned unmerged."""
    tokens, errors = scan_source(source)
    logger.debug("scanned %d tokens, %d errors", len(tokens), len(errors))
    return tokens, errors


def parse(source: str | list[Token]) -> tuple[list[Stmt], list[LoxError]]:
    """Parse source text or an already scanned token list.

    Given text, the merged lexical errors come first in the returned list.
    """
    lex_errors: list[LoxError] = []
    if isinstance(source, str):
        tokens, lex_errors = scan_source(source)
    else:
        tokens = source
    stmts, errors = parse_tokens(tokens)
    errors = merge_invalid_characters(lex_errors) + errors
    logger.debug("parsed %d statements, %d errors", len(stmts), len(errors))
    return stmts, errors


def resolve(stmts: list[Stmt], locals_: dict[Expr, int]) -> list[LoxError]:
    """Resolve local bindings into `locals_`. Returns a list of errors (empty = ok)."""
    errors = resolve_stmts(stmts, locals_)
    logger.debug("resolved %d locals, %d errors", len(locals_), len(errors))
    return errors


@dataclass
class RunResult:
    """Outcome of one pipeline run: the stage it stopped at and what it reported."""

    stage: str
    errors: list[LoxError] = field(default_factory=list)
    runtime_error: LoxRuntimeError | None = None
    output: str = ""

    @property
    def ok(self) -> bool:
        return self.stage == STAGE_OK


def run(source: str, *, stdout: TextIO | None = None) -> RunResult:
    """Scan, parse, resolve and interpret source, halting at the first failing stage.

    Printed output goes to `stdout` when given; otherwise it is captured into
    `RunResult.output`.
    """
    tokens, lex_errors = scan(source)
    if lex_errors:
        return RunResult(STAGE_SCAN, merge_invalid_characters(lex_errors))

    stmts, parse_errors = parse(tokens)
    if parse_errors:
        return RunResult(STAGE_PARSE, parse_errors)

    buffer: io.StringIO | None = None
    if stdout is None:
        buffer = io.StringIO()
        stdout = buffer
    interpreter = Interpreter(stdout=stdout)

    resolve_errors = resolve(stmts, interpreter.locals)
    if resolve_errors:
        return RunResult(STAGE_RESOLVE, resolve_errors)

    err = interpreter.interpret(stmts)
    output = buffer.getvalue() if buffer is not None else ""
    if err is not None:
        return RunResult(STAGE_RUNTIME, runtime_error=err, output=output)
    return RunResult(STAGE_OK, output=output)

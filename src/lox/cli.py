"""Lox CLI — run a .lox file or read a program interactively."""

from __future__ import annotations

import logging
import sys
import time
from typing import Callable, TextIO, TypeVar

from . import parse, resolve, scan
from .errors import LoxError, format_error, merge_invalid_characters
from .printer import to_sexpr
from .runtime import Interpreter

T = TypeVar("T")

EXIT_OK = 0
EXIT_USAGE = 64
EXIT_DATAERR = 65
EXIT_SOFTWARE = 70

REPL_SENTINEL = ";;"

USAGE: str = """\
lox [FILE] [OPTIONS]

Run a Lox program. Without FILE, read a program from standard input;
end it with a line containing only ';;'.

Options:
  -t         Time interpretation
  -ta        Time every stage
  -ds        Echo the source and dump scanned tokens
  -dp        Dump each parsed statement
  -v         Debug logging to stderr
  -h, --help Show this help message
"""


class Options:
    def __init__(self) -> None:
        self.path: str = ""
        self.timed_execution: bool = False
        self.timed_all: bool = False
        self.debug_scanner: bool = False
        self.debug_parser: bool = False
        self.verbose: bool = False


def main(argv: list[str] | None = None) -> int:
    args = argv if argv is not None else sys.argv[1:]
    opts = Options()
    for arg in args:
        if arg == "--help" or arg == "-h":
            print(USAGE, end="")
            return EXIT_OK
        elif arg == "-t":
            opts.timed_execution = True
        elif arg == "-ta":
            opts.timed_all = True
        elif arg == "-ds":
            opts.debug_scanner = True
        elif arg == "-dp":
            opts.debug_parser = True
        elif arg == "-v":
            opts.verbose = True
        elif arg.startswith("-"):
            print("lox: unknown flag '" + arg + "'", file=sys.stderr)
            return EXIT_USAGE
        elif opts.path == "":
            opts.path = arg
        else:
            print("lox: unexpected argument '" + arg + "'", file=sys.stderr)
            return EXIT_USAGE

    if opts.verbose:
        logging.basicConfig(
            level=logging.DEBUG, format="%(name)s: %(message)s", stream=sys.stderr
        )

    if opts.path == "":
        source = read_prompt(sys.stdin, sys.stdout)
    else:
        try:
            with open(opts.path, encoding="utf-8") as f:
                source = f.read()
        except FileNotFoundError:
            print("lox: " + opts.path + ": No such file or directory", file=sys.stderr)
            return EXIT_USAGE
        except (OSError, ValueError) as e:
            print("lox: " + opts.path + ": " + str(e), file=sys.stderr)
            return EXIT_USAGE

    return run_source(source, opts, sys.stdout, sys.stderr)


def read_prompt(stdin: TextIO, stdout: TextIO) -> str:
    """Collect lines until the ';;' sentinel (or EOF) and return them as one program."""
    stdout.write("Welcome to Lox.\nInput ;; to end input mode.\n")
    source = ""
    while True:
        stdout.write("> ")
        stdout.flush()
        line = stdin.readline()
        if line == "":
            break
        line = line.strip()
        if line == REPL_SENTINEL:
            break
        source += line + "\n"
    return source


def _timed(
    label: str, enabled: bool, out: TextIO, fn: Callable[[], T]
) -> T:
    if not enabled:
        return fn()
    start = time.perf_counter()
    result = fn()
    elapsed = int((time.perf_counter() - start) * 1000)
    out.write(label + " (ms):" + str(elapsed) + "\n")
    return result


def _report(source: str, errors: list[LoxError], err: TextIO) -> None:
    for e in errors:
        err.write(format_error(source, e) + "\n")


def run_source(source: str, opts: Options, out: TextIO, err: TextIO) -> int:
    """Run the pipeline stage by stage and map the outcome to an exit code."""
    tokens, lex_errors = _timed(
        "Scanner", opts.timed_all, out, lambda: scan(source)
    )
    if opts.debug_scanner:
        out.write(source + "\n\n")
        for tok in tokens:
            out.write(tok.debug() + "\n")
    if lex_errors:
        err.write("Errors Found:\n\n")
        _report(source, merge_invalid_characters(lex_errors), err)
        return EXIT_DATAERR

    stmts, parse_errors = _timed(
        "Parser", opts.timed_all, out, lambda: parse(tokens)
    )
    if parse_errors:
        _report(source, parse_errors, err)
        return EXIT_DATAERR

    if opts.debug_parser:
        for i, st in enumerate(stmts):
            out.write(str(i + 1) + ": " + to_sexpr(st) + "\n")

    interpreter = Interpreter(stdout=out)
    resolve_errors = _timed(
        "Analyzer",
        opts.timed_all,
        out,
        lambda: resolve(stmts, interpreter.locals),
    )
    if resolve_errors:
        _report(source, resolve_errors, err)
        return EXIT_DATAERR

    runtime_error = _timed(
        "Interpreter",
        opts.timed_all or opts.timed_execution,
        out,
        lambda: interpreter.interpret(stmts),
    )
    if runtime_error is not None:
        err.write(str(runtime_error) + "\n\n")
        return EXIT_SOFTWARE
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())

"""Tests for values, environments and the interpreter."""

import io
import math

import pytest

from lox import STAGE_OK, STAGE_RESOLVE, STAGE_RUNTIME, parse, resolve, run
from lox.runtime import (
    R_ARITY_MISMATCH,
    R_NOT_CALLABLE,
    R_OPERAND_MUST_BE_NUMBER,
    R_OPERANDS_MUST_BE_NUMBERS,
    R_OPERANDS_MUST_BE_NUMBERS_OR_STRINGS,
    R_STACK_OVERFLOW,
    R_UNDEFINED_VARIABLE,
    Environment,
    InternalError,
    Interpreter,
    LoxRuntimeError,
    VBool,
    VNil,
    VNumber,
    VString,
    format_number,
    is_truthy,
    values_equal,
)
from lox.tokens import TK_IDENTIFIER, Token


def _interpret(source: str):
    """Run source on a fresh interpreter. Returns (output, runtime error)."""
    stmts, errors = parse(source)
    assert errors == [], [str(e) for e in errors]
    out = io.StringIO()
    interpreter = Interpreter(stdout=out)
    errors = resolve(stmts, interpreter.locals)
    assert errors == [], [str(e) for e in errors]
    err = interpreter.interpret(stmts)
    return out.getvalue(), err


def _name(lexeme: str) -> Token:
    return Token(TK_IDENTIFIER, lexeme, lexeme, 1, 1, len(lexeme))


# ---------------------------------------------------------------------------
# Values
# ---------------------------------------------------------------------------


def test_truthiness():
    assert not is_truthy(VNil())
    assert not is_truthy(VBool(False))
    assert is_truthy(VBool(True))
    assert is_truthy(VNumber(0.0))
    assert is_truthy(VString(""))


def test_equality_is_type_strict():
    assert values_equal(VNil(), VNil())
    assert not values_equal(VNil(), VBool(False))
    assert not values_equal(VNumber(1.0), VString("1"))
    assert not values_equal(VBool(True), VNumber(1.0))
    assert values_equal(VString("a"), VString("a"))
    assert values_equal(VNumber(math.nan), VNumber(math.nan))


@pytest.mark.parametrize(
    "value,text",
    [
        (3.0, "3"),
        (-0.5, "-0.5"),
        (-0.0, "-0"),
        (0.0, "0"),
        (2.5, "2.5"),
        (1e21, "1000000000000000000000"),
        (math.inf, "inf"),
        (-math.inf, "-inf"),
        (math.nan, "nan"),
    ],
)
def test_format_number(value, text):
    assert format_number(value) == text


# ---------------------------------------------------------------------------
# Environments
# ---------------------------------------------------------------------------


def test_environment_chain_lookup_and_assign():
    outer = Environment()
    outer.define("a", VNumber(1.0))
    inner = Environment(outer)
    assert inner.get(_name("a")) == VNumber(1.0)
    inner.assign(_name("a"), VNumber(2.0))
    assert outer.values["a"] == VNumber(2.0)
    assert "a" not in inner.values


def test_environment_undefined_name():
    env = Environment()
    with pytest.raises(LoxRuntimeError) as exc:
        env.get(_name("ghost"))
    assert exc.value.kind == R_UNDEFINED_VARIABLE
    assert "Undefined variable 'ghost'." in str(exc.value)


def test_resolved_access_at_distance():
    outer = Environment()
    outer.define("x", VString("outer"))
    inner = Environment(outer)
    inner.define("x", VString("inner"))
    assert inner.get_at(0, "x") == VString("inner")
    assert inner.get_at(1, "x") == VString("outer")
    inner.assign_at(1, "x", VString("changed"))
    assert outer.values["x"] == VString("changed")


def test_binding_mismatch_is_internal_error():
    outer = Environment()
    inner = Environment(outer)
    with pytest.raises(InternalError):
        inner.get_at(1, "missing")
    with pytest.raises(InternalError):
        inner.assign_at(5, "x", VNil())


# ---------------------------------------------------------------------------
# Interpreter
# ---------------------------------------------------------------------------


def test_print_goes_to_given_stream():
    out, err = _interpret('print "hi"; print 1 + 2;')
    assert err is None
    assert out == "hi\n3\n"


def test_runtime_error_stops_execution():
    out, err = _interpret('print "before"; print -"x"; print "after";')
    assert out == "before\n"
    assert err is not None
    assert err.kind == R_OPERAND_MUST_BE_NUMBER
    assert (err.line, err.col) == (1, 23)
    assert str(err) == (
        "Runtime exception on line 1 column 23 : Operand must be a number."
    )


@pytest.mark.parametrize(
    "source,kind",
    [
        ('1 + "a";', R_OPERANDS_MUST_BE_NUMBERS_OR_STRINGS),
        ("nil + nil;", R_OPERANDS_MUST_BE_NUMBERS_OR_STRINGS),
        ('"a" - "b";', R_OPERANDS_MUST_BE_NUMBERS),
        ("true < 1;", R_OPERANDS_MUST_BE_NUMBERS),
        ('"a" * 2;', R_OPERANDS_MUST_BE_NUMBERS),
        ("1();", R_NOT_CALLABLE),
        ("fun f(a) {} f();", R_ARITY_MISMATCH),
    ],
)
def test_runtime_error_kinds(source, kind):
    _, err = _interpret(source)
    assert err is not None
    assert err.kind == kind


def test_division_follows_ieee():
    out, err = _interpret("print 1 / 0; print -1 / 0; print 0 / 0; print 7 / 2;")
    assert err is None
    assert out == "inf\n-inf\nnan\n3.5\n"


def test_logical_operators_return_operands():
    out, _ = _interpret('print nil or "default"; print 0 and "second"; print false and 1;')
    assert out == "default\nsecond\nfalse\n"


def test_same_tree_on_fresh_interpreters_gives_same_output():
    stmts, errors = parse(
        "fun make() { var n = 0; fun bump() { n = n + 1; return n; } return bump; }\n"
        "var b = make(); print b(); print b();"
    )
    assert errors == []
    outputs = []
    for _ in range(2):
        out = io.StringIO()
        interpreter = Interpreter(stdout=out)
        assert resolve(stmts, interpreter.locals) == []
        assert interpreter.interpret(stmts) is None
        outputs.append(out.getvalue())
    assert outputs == ["1\n2\n", "1\n2\n"]


def test_unresolved_tree_is_internal_error():
    stmts, errors = parse("{ var a = 1; { print a; } }")
    assert errors == []
    interpreter = Interpreter(stdout=io.StringIO())
    resolve(stmts, interpreter.locals)
    ((ref, depth),) = interpreter.locals.items()
    interpreter.locals[ref] = depth + 1
    with pytest.raises(InternalError):
        interpreter.interpret(stmts)


def test_recursive_returns_unwind_each_frame():
    out, err = _interpret(
        "fun down(n) { if (n == 0) return 0; return down(n - 1); } print down(50);"
    )
    assert err is None
    assert out == "0\n"


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------


def test_run_captures_output():
    result = run("print 1;")
    assert result.ok
    assert result.stage == STAGE_OK
    assert result.output == "1\n"


def test_run_writes_to_stream_when_given():
    out = io.StringIO()
    result = run("print 1;", stdout=out)
    assert result.ok
    assert result.output == ""
    assert out.getvalue() == "1\n"


def test_run_keeps_output_before_runtime_error():
    result = run('print "a"; nope;')
    assert result.stage == STAGE_RUNTIME
    assert result.output == "a\n"
    assert result.runtime_error is not None
    assert result.runtime_error.kind == R_UNDEFINED_VARIABLE


def test_static_errors_prevent_execution():
    result = run('print "never"; return;')
    assert result.stage == STAGE_RESOLVE
    assert result.output == ""
    assert len(result.errors) == 1


def test_stack_overflow_is_a_runtime_error():
    stmts, errors = parse("fun f() { f(); }\nf();")
    assert errors == []
    interpreter = Interpreter(stdout=io.StringIO())
    assert resolve(stmts, interpreter.locals) == []
    err = interpreter.interpret(stmts)
    assert err is not None
    assert err.kind == R_STACK_OVERFLOW
    assert (err.line, err.col) == (1, 13)
    assert str(err) == "Runtime exception on line 1 column 13 : Stack overflow."
    assert interpreter.call_depth == 0


def test_run_reports_stack_overflow():
    result = run("fun deep(n) { return deep(n + 1) + 1; } print deep(0);")
    assert result.stage == STAGE_RUNTIME
    assert result.runtime_error.kind == R_STACK_OVERFLOW


def test_recursion_several_hundred_calls_deep():
    result = run("fun sum(n) { if (n == 0) return 0; return n + sum(n - 1); } print sum(400);")
    assert result.ok
    assert result.output == "80200\n"

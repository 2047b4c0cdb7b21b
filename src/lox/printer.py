"""Lox AST printer — parenthesized dump of any node, for debugging."""

from __future__ import annotations

from .ast import (
    Assign,
    Binary,
    Block,
    Call,
    ClassDecl,
    Expr,
    ExpressionStmt,
    FunctionDecl,
    Get,
    Grouping,
    If,
    Literal,
    Logical,
    Print,
    Return,
    Set,
    Stmt,
    Super,
    This,
    Unary,
    VarDecl,
    Variable,
    While,
)
from .runtime import format_number


def to_sexpr(node: Expr | Stmt) -> str:
    """Render an expression or statement as a parenthesized tree."""
    if isinstance(node, Expr):
        return _expr(node)
    return _stmt(node)


def _paren(name: str, *parts: Expr | Stmt | None) -> str:
    out = "(" + name
    for p in parts:
        if p is None:
            continue
        out += " " + to_sexpr(p)
    return out + ")"


def _literal(value: float | str | bool | None) -> str:
    if value is None:
        return "nil"
    if isinstance(value, bool):
        return "'" + ("true" if value else "false") + "'"
    if isinstance(value, float):
        return "'" + format_number(value) + "'"
    return "'" + value + "'"


def _expr(e: Expr) -> str:
    if isinstance(e, Literal):
        return _literal(e.value)
    if isinstance(e, Variable):
        return "(Var " + e.name.lexeme + ")"
    if isinstance(e, Assign):
        return _paren("Assign " + e.name.lexeme, e.value)
    if isinstance(e, Binary) or isinstance(e, Logical):
        return _paren(e.op.type, e.left, e.right)
    if isinstance(e, Unary):
        return _paren(e.op.type, e.right)
    if isinstance(e, Grouping):
        return _paren("Group", e.expression)
    if isinstance(e, Call):
        return _paren("FnCall", e.callee, *e.arguments)
    if isinstance(e, Get):
        return _paren("Get " + e.name.lexeme, e.obj)
    if isinstance(e, Set):
        return (
            "(Set "
            + e.name.lexeme
            + " on "
            + to_sexpr(e.obj)
            + " to "
            + to_sexpr(e.value)
            + ")"
        )
    if isinstance(e, This):
        return "(This)"
    if isinstance(e, Super):
        return "(Super " + e.method.lexeme + ")"
    raise AssertionError("unhandled expression type: " + type(e).__name__)


def _stmt(s: Stmt) -> str:
    if isinstance(s, ExpressionStmt):
        return _paren("Stmt", s.expression)
    if isinstance(s, Print):
        return _paren("Print", s.expression)
    if isinstance(s, VarDecl):
        return _paren("VarDecl " + s.name.lexeme, s.initializer)
    if isinstance(s, Block):
        return _paren("Block", *s.statements)
    if isinstance(s, If):
        return _paren("If", s.condition, s.then_branch, s.else_branch)
    if isinstance(s, While):
        return _paren("While", s.condition, s.body)
    if isinstance(s, Return):
        return _paren("Return", s.value)
    if isinstance(s, FunctionDecl):
        out = "(FnDecl '" + s.name.lexeme + "'"
        for p in s.params:
            out += " '" + p.lexeme + "'"
        return out + " " + _paren("Body", *s.body) + ")"
    if isinstance(s, ClassDecl):
        name = "ClassDecl " + s.name.lexeme
        if s.superclass is not None:
            name += " < " + s.superclass.name.lexeme
        return _paren(name, *s.methods)
    raise AssertionError("unhandled statement type: " + type(s).__name__)

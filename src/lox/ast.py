"""Lox AST — parse-time node definitions.

Nodes compare and hash by identity: the resolver's binding table is keyed by the
node object, so two `x` references at different positions stay distinct.
"""

from __future__ import annotations

from dataclasses import dataclass

from .tokens import Token


# ============================================================
# EXPRESSIONS
# ============================================================


@dataclass(frozen=True, eq=False)
class Expr:
    """Base for all expressions."""


@dataclass(frozen=True, eq=False)
class Assign(Expr):
    """name = value."""

    name: Token
    value: Expr


@dataclass(frozen=True, eq=False)
class Binary(Expr):
    """left op right, for arithmetic, comparison and equality."""

    left: Expr
    op: Token
    right: Expr


@dataclass(frozen=True, eq=False)
class Call(Expr):
    """callee(arguments). paren is the closing ')' used for error positions."""

    callee: Expr
    paren: Token
    arguments: list[Expr]


@dataclass(frozen=True, eq=False)
class Get(Expr):
    """obj.name."""

    obj: Expr
    name: Token


@dataclass(frozen=True, eq=False)
class Set(Expr):
    """obj.name = value."""

    obj: Expr
    name: Token
    value: Expr


@dataclass(frozen=True, eq=False)
class Super(Expr):
    """super.method."""

    keyword: Token
    method: Token


@dataclass(frozen=True, eq=False)
class This(Expr):
    keyword: Token


@dataclass(frozen=True, eq=False)
class Grouping(Expr):
    """( expression )."""

    expression: Expr


@dataclass(frozen=True, eq=False)
class Logical(Expr):
    """left and/or right."""

    left: Expr
    op: Token
    right: Expr


@dataclass(frozen=True, eq=False)
class Literal(Expr):
    """Number (float), string, boolean, or nil (None)."""

    value: float | str | bool | None


@dataclass(frozen=True, eq=False)
class Unary(Expr):
    op: Token
    right: Expr


@dataclass(frozen=True, eq=False)
class Variable(Expr):
    name: Token


# ============================================================
# STATEMENTS
# ============================================================


@dataclass(frozen=True, eq=False)
class Stmt:
    """Base for all statements."""


@dataclass(frozen=True, eq=False)
class Block(Stmt):
    statements: list[Stmt]


@dataclass(frozen=True, eq=False)
class FunctionDecl(Stmt):
    """fun name(params) { body }, also used for methods."""

    name: Token
    params: list[Token]
    body: list[Stmt]


@dataclass(frozen=True, eq=False)
class ClassDecl(Stmt):
    """class Name < Superclass { methods }."""

    name: Token
    superclass: Variable | None
    methods: list[FunctionDecl]


@dataclass(frozen=True, eq=False)
class ExpressionStmt(Stmt):
    expression: Expr


@dataclass(frozen=True, eq=False)
class If(Stmt):
    condition: Expr
    then_branch: Stmt
    else_branch: Stmt | None


@dataclass(frozen=True, eq=False)
class Print(Stmt):
    expression: Expr


@dataclass(frozen=True, eq=False)
class Return(Stmt):
    """return value?; keyword is kept for error positions."""

    keyword: Token
    value: Expr | None


@dataclass(frozen=True, eq=False)
class VarDecl(Stmt):
    """var name = initializer?;"""

    name: Token
    initializer: Expr | None


@dataclass(frozen=True, eq=False)
class While(Stmt):
    condition: Expr
    body: Stmt

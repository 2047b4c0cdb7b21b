"""Lox scope resolver — static pass binding each local variable reference to a depth.

The frame stack built here mirrors, one for one, the environments the
interpreter creates at run time: blocks, function bodies, the `super` frame of a
subclass and the `this` frame of every class.
"""

from __future__ import annotations

import logging

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
from .errors import (
    E_DUPLICATE_DECLARATION,
    E_INITIALIZER_ERROR,
    E_INVALID_RETURN_USAGE,
    E_INVALID_SUPERCLASS,
    E_INVALID_THIS_USAGE,
    E_INVALID_USE_OF_SUPER,
    LoxError,
    error_at,
)
from .tokens import Token

logger = logging.getLogger(__name__)

FN_NONE = "none"
FN_FUNCTION = "function"
FN_INITIALIZER = "initializer"
FN_METHOD = "method"

CLASS_NONE = "none"
CLASS_CLASS = "class"
CLASS_SUBCLASS = "subclass"


class Resolver:
    """Walks the statement tree once, filling `locals` and collecting errors.

    `locals` maps a Variable/Assign/This/Super node to the number of frames
    between the reference and its declaration. Globals get no entry.
    """

    def __init__(self, locals_: dict[Expr, int]) -> None:
        self.locals: dict[Expr, int] = locals_
        self.errors: list[LoxError] = []
        # name -> defined? (False between declare and define)
        self.scopes: list[dict[str, bool]] = []
        self.current_fn: str = FN_NONE
        self.current_class: str = CLASS_NONE
        # globals whose initializer is being resolved
        self.pending_globals: set[str] = set()

    def error(self, tok: Token, kind: str, detail: str | None = None) -> None:
        self.errors.append(error_at(tok, kind, detail))

    # ── Scope management ──────────────────────────────────────

    def begin_scope(self) -> None:
        self.scopes.append({})

    def end_scope(self) -> None:
        self.scopes.pop()

    def declare(self, name: Token) -> None:
        if len(self.scopes) == 0:
            return
        scope = self.scopes[-1]
        if name.lexeme in scope:
            self.error(
                name,
                E_DUPLICATE_DECLARATION,
                "Variable with this name already declared in this scope.",
            )
            return
        scope[name.lexeme] = False

    def define(self, name: Token) -> None:
        if len(self.scopes) == 0:
            return
        self.scopes[-1][name.lexeme] = True

    def resolve_local(self, expr: Expr, name: str) -> None:
        i = len(self.scopes) - 1
        while i >= 0:
            if name in self.scopes[i]:
                depth = len(self.scopes) - 1 - i
                self.locals[expr] = depth
                logger.debug("bound %r at depth %d", name, depth)
                return
            i -= 1
        # Not found: assumed global, looked up by name at run time.

    # ── Statements ────────────────────────────────────────────

    def resolve_stmts(self, stmts: list[Stmt]) -> None:
        for s in stmts:
            self.resolve_stmt(s)

    def resolve_stmt(self, stmt: Stmt) -> None:
        if isinstance(stmt, Block):
            self.begin_scope()
            self.resolve_stmts(stmt.statements)
            self.end_scope()
        elif isinstance(stmt, VarDecl):
            self.resolve_var_decl(stmt)
        elif isinstance(stmt, FunctionDecl):
            self.declare(stmt.name)
            self.define(stmt.name)
            self.resolve_function(stmt, FN_FUNCTION)
        elif isinstance(stmt, ClassDecl):
            self.resolve_class(stmt)
        elif isinstance(stmt, ExpressionStmt):
            self.resolve_expr(stmt.expression)
        elif isinstance(stmt, If):
            self.resolve_expr(stmt.condition)
            self.resolve_stmt(stmt.then_branch)
            if stmt.else_branch is not None:
                self.resolve_stmt(stmt.else_branch)
        elif isinstance(stmt, Print):
            self.resolve_expr(stmt.expression)
        elif isinstance(stmt, Return):
            self.resolve_return(stmt)
        elif isinstance(stmt, While):
            self.resolve_expr(stmt.condition)
            self.resolve_stmt(stmt.body)
        else:
            raise AssertionError("unhandled statement type: " + type(stmt).__name__)

    def resolve_var_decl(self, stmt: VarDecl) -> None:
        self.declare(stmt.name)
        if stmt.initializer is not None:
            is_global = len(self.scopes) == 0
            if is_global:
                self.pending_globals.add(stmt.name.lexeme)
            self.resolve_expr(stmt.initializer)
            if is_global:
                self.pending_globals.discard(stmt.name.lexeme)
        self.define(stmt.name)

    def resolve_function(self, fn: FunctionDecl, kind: str) -> None:
        enclosing = self.current_fn
        self.current_fn = kind
        self.begin_scope()
        for param in fn.params:
            self.declare(param)
            self.define(param)
        self.resolve_stmts(fn.body)
        self.end_scope()
        self.current_fn = enclosing

    def resolve_class(self, stmt: ClassDecl) -> None:
        enclosing = self.current_class
        self.current_class = CLASS_CLASS
        self.declare(stmt.name)
        self.define(stmt.name)

        superclass = stmt.superclass
        if superclass is not None and superclass.name.lexeme == stmt.name.lexeme:
            self.error(
                superclass.name,
                E_INVALID_SUPERCLASS,
                "A class cannot inherit from itself.",
            )
        if superclass is not None:
            self.current_class = CLASS_SUBCLASS
            self.resolve_expr(superclass)
            self.begin_scope()
            self.scopes[-1]["super"] = True

        self.begin_scope()
        self.scopes[-1]["this"] = True
        for method in stmt.methods:
            kind = FN_METHOD
            if method.name.lexeme == "init":
                kind = FN_INITIALIZER
            self.resolve_function(method, kind)
        self.end_scope()

        if superclass is not None:
            self.end_scope()
        self.current_class = enclosing

    def resolve_return(self, stmt: Return) -> None:
        if self.current_fn == FN_NONE:
            self.error(
                stmt.keyword,
                E_INVALID_RETURN_USAGE,
                "Cannot return from top-level code.",
            )
        if stmt.value is not None:
            if self.current_fn == FN_INITIALIZER:
                self.error(
                    stmt.keyword,
                    E_INVALID_RETURN_USAGE,
                    "Can't return a value from an initializer.",
                )
            self.resolve_expr(stmt.value)

    # ── Expressions ───────────────────────────────────────────

    def resolve_expr(self, expr: Expr) -> None:
        if isinstance(expr, Variable):
            self.resolve_variable(expr)
        elif isinstance(expr, Assign):
            self.resolve_expr(expr.value)
            self.resolve_local(expr, expr.name.lexeme)
        elif isinstance(expr, Binary):
            self.resolve_expr(expr.left)
            self.resolve_expr(expr.right)
        elif isinstance(expr, Logical):
            self.resolve_expr(expr.left)
            self.resolve_expr(expr.right)
        elif isinstance(expr, Call):
            self.resolve_expr(expr.callee)
            for arg in expr.arguments:
                self.resolve_expr(arg)
        elif isinstance(expr, Get):
            self.resolve_expr(expr.obj)
        elif isinstance(expr, Set):
            self.resolve_expr(expr.value)
            self.resolve_expr(expr.obj)
        elif isinstance(expr, Grouping):
            self.resolve_expr(expr.expression)
        elif isinstance(expr, Literal):
            return
        elif isinstance(expr, Unary):
            self.resolve_expr(expr.right)
        elif isinstance(expr, This):
            if self.current_class == CLASS_NONE:
                self.error(expr.keyword, E_INVALID_THIS_USAGE)
                return
            self.resolve_local(expr, "this")
        elif isinstance(expr, Super):
            if self.current_class == CLASS_NONE:
                self.error(
                    expr.keyword,
                    E_INVALID_USE_OF_SUPER,
                    "Cannot use 'super' outside of a class.",
                )
            elif self.current_class != CLASS_SUBCLASS:
                self.error(
                    expr.keyword,
                    E_INVALID_USE_OF_SUPER,
                    "Cannot use 'super' in a class without superclass.",
                )
            self.resolve_local(expr, "super")
        else:
            raise AssertionError("unhandled expression type: " + type(expr).__name__)

    def resolve_variable(self, expr: Variable) -> None:
        name = expr.name.lexeme
        state = self._innermost_state(name)
        if state is False or (state is None and name in self.pending_globals):
            self.error(
                expr.name,
                E_INITIALIZER_ERROR,
                "Cannot read a variable in its own initializer.",
            )
        self.resolve_local(expr, name)

    def _innermost_state(self, name: str) -> bool | None:
        """Defined-state of the nearest frame declaring `name`, None if no frame does."""
        i = len(self.scopes) - 1
        while i >= 0:
            if name in self.scopes[i]:
                return self.scopes[i][name]
            i -= 1
        return None


def resolve(stmts: list[Stmt], locals_: dict[Expr, int]) -> list[LoxError]:
    """Resolve a parsed program into `locals_`. Returns a list of errors (empty = ok)."""
    resolver = Resolver(locals_)
    resolver.resolve_stmts(stmts)
    return resolver.errors

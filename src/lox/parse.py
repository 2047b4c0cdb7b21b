"""Lox parser — recursive descent, one method per grammar production.

On a syntax error the parser records it, skips to the next statement boundary
and carries on, so one pass reports every independent error in the file.
"""

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
from .errors import (
    E_EXPECTED_CLOSED_BRACE,
    E_EXPECTED_CLOSED_PAREN,
    E_EXPECTED_DOT,
    E_EXPECTED_EXPRESSION,
    E_EXPECTED_IDENTIFIER,
    E_EXPECTED_OPEN_BRACE,
    E_EXPECTED_OPEN_PAREN,
    E_EXPECTED_SEMICOLON,
    E_EXPECTED_VARIABLE_NAME,
    E_INVALID_ASSIGNMENT_TARGET,
    E_MAX_ARGUMENTS,
    E_MAX_PARAMETERS,
    E_NESTING_TOO_DEEP,
    E_UNCLOSED_PARENS,
    LoxError,
    error_at,
)
from .tokens import (
    TK_BANG,
    TK_BANG_EQUAL,
    TK_COMMA,
    TK_DOT,
    TK_EOF,
    TK_EQUAL,
    TK_EQUAL_EQUAL,
    TK_GREATER,
    TK_GREATER_EQUAL,
    TK_IDENTIFIER,
    TK_LEFT_BRACE,
    TK_LEFT_PAREN,
    TK_LESS,
    TK_LESS_EQUAL,
    TK_MINUS,
    TK_NUMBER,
    TK_PLUS,
    TK_RIGHT_BRACE,
    TK_RIGHT_PAREN,
    TK_SEMICOLON,
    TK_SLASH,
    TK_STAR,
    TK_STRING,
    Token,
)

MAX_ARGS = 255

# Statements, function bodies, expressions and unary operands nested inside each other
MAX_NESTING = 200

# Tokens that start a declaration or statement; synchronization stops before them
SYNC_KEYWORDS: set[str] = {
    "class",
    "fun",
    "var",
    "for",
    "if",
    "while",
    "print",
    "return",
}


class _ParseAbort(Exception):
    """Unwinds to the enclosing declaration after an error has been recorded."""


class _NestingLimit(Exception):
    """Unwinds the whole parse once the input nests deeper than MAX_NESTING."""


class Parser:
    """Recursive descent parser for Lox."""

    def __init__(self, tokens: list[Token]):
        self.tokens: list[Token] = tokens
        self.pos: int = 0
        self.errors: list[LoxError] = []
        self.depth: int = 0

    # ── Helpers ──────────────────────────────────────────────

    def current(self) -> Token:
        return self.tokens[self.pos]

    def previous(self) -> Token:
        return self.tokens[self.pos - 1]

    def at_end(self) -> bool:
        return self.current().type == TK_EOF

    def advance(self) -> Token:
        tok = self.tokens[self.pos]
        if not self.at_end():
            self.pos += 1
        return tok

    def at(self, *types: str) -> bool:
        return self.current().type in types

    def match(self, *types: str) -> bool:
        if self.current().type in types:
            self.advance()
            return True
        return False

    def expect(self, type_: str, kind: str, detail: str | None = None) -> Token:
        if self.at(type_):
            return self.advance()
        raise self.error(self.current(), kind, detail)

    def error(self, tok: Token, kind: str, detail: str | None = None) -> _ParseAbort:
        self.errors.append(error_at(tok, kind, detail))
        return _ParseAbort()

    def enter(self) -> None:
        if self.depth >= MAX_NESTING:
            self.errors.append(error_at(self.current(), E_NESTING_TOO_DEEP))
            raise _NestingLimit()
        self.depth += 1

    def leave(self) -> None:
        self.depth -= 1

    def synchronize(self) -> None:
        self.advance()
        while not self.at_end():
            if self.previous().type == TK_SEMICOLON:
                return
            if self.current().type in SYNC_KEYWORDS:
                return
            self.advance()

    # ── Top Level ────────────────────────────────────────────

    def parse_program(self) -> list[Stmt]:
        stmts: list[Stmt] = []
        try:
            while not self.at_end():
                stmt = self.parse_declaration()
                if stmt is not None:
                    stmts.append(stmt)
        except _NestingLimit:
            # already recorded; the rest of the input is not parsed
            return stmts
        return stmts

    def parse_declaration(self) -> Stmt | None:
        """declaration → classDecl | funDecl | varDecl | statement"""
        try:
            if self.match("class"):
                return self.parse_class_decl()
            if self.match("fun"):
                return self.parse_function()
            if self.match("var"):
                return self.parse_var_decl()
            return self.parse_statement()
        except _ParseAbort:
            self.synchronize()
            return None

    def parse_class_decl(self) -> ClassDecl:
        name = self.expect(TK_IDENTIFIER, E_EXPECTED_IDENTIFIER)
        superclass: Variable | None = None
        if self.match(TK_LESS):
            superclass = Variable(self.expect(TK_IDENTIFIER, E_EXPECTED_IDENTIFIER))
        self.expect(TK_LEFT_BRACE, E_EXPECTED_OPEN_BRACE)
        methods: list[FunctionDecl] = []
        while not self.at(TK_RIGHT_BRACE) and not self.at_end():
            methods.append(self.parse_function())
        self.expect(TK_RIGHT_BRACE, E_EXPECTED_CLOSED_BRACE)
        return ClassDecl(name, superclass, methods)

    def parse_function(self) -> FunctionDecl:
        name = self.expect(TK_IDENTIFIER, E_EXPECTED_IDENTIFIER)
        self.expect(TK_LEFT_PAREN, E_EXPECTED_OPEN_PAREN)
        params: list[Token] = []
        if not self.at(TK_RIGHT_PAREN):
            while True:
                if len(params) >= MAX_ARGS:
                    self.error(self.current(), E_MAX_PARAMETERS)
                params.append(self.expect(TK_IDENTIFIER, E_EXPECTED_IDENTIFIER))
                if not self.match(TK_COMMA):
                    break
        self.expect(TK_RIGHT_PAREN, E_EXPECTED_CLOSED_PAREN)
        self.expect(TK_LEFT_BRACE, E_EXPECTED_OPEN_BRACE)
        self.enter()
        try:
            body = self.parse_block()
        finally:
            self.leave()
        return FunctionDecl(name, params, body)

    def parse_var_decl(self) -> VarDecl:
        name = self.expect(TK_IDENTIFIER, E_EXPECTED_VARIABLE_NAME)
        initializer: Expr | None = None
        if self.match(TK_EQUAL):
            initializer = self.parse_expression()
        self.expect(TK_SEMICOLON, E_EXPECTED_SEMICOLON)
        return VarDecl(name, initializer)

    # ── Statements ───────────────────────────────────────────

    def parse_statement(self) -> Stmt:
        self.enter()
        try:
            return self._statement()
        finally:
            self.leave()

    def _statement(self) -> Stmt:
        if self.match("for"):
            return self.parse_for()
        if self.match("if"):
            return self.parse_if()
        if self.match("print"):
            return self.parse_print()
        if self.match("return"):
            return self.parse_return()
        if self.match("while"):
            return self.parse_while()
        if self.match(TK_LEFT_BRACE):
            return Block(self.parse_block())
        return self.parse_expression_stmt()

    def parse_block(self) -> list[Stmt]:
        """Statements up to and including the closing '}'; the '{' is consumed."""
        stmts: list[Stmt] = []
        while not self.at(TK_RIGHT_BRACE) and not self.at_end():
            stmt = self.parse_declaration()
            if stmt is not None:
                stmts.append(stmt)
        self.expect(TK_RIGHT_BRACE, E_EXPECTED_CLOSED_BRACE)
        return stmts

    def parse_if(self) -> If:
        self.expect(TK_LEFT_PAREN, E_EXPECTED_OPEN_PAREN)
        condition = self.parse_expression()
        self.expect(TK_RIGHT_PAREN, E_EXPECTED_CLOSED_PAREN)
        then_branch = self.parse_statement()
        else_branch: Stmt | None = None
        if self.match("else"):
            else_branch = self.parse_statement()
        return If(condition, then_branch, else_branch)

    def parse_while(self) -> While:
        self.expect(TK_LEFT_PAREN, E_EXPECTED_OPEN_PAREN)
        condition = self.parse_expression()
        self.expect(TK_RIGHT_PAREN, E_EXPECTED_CLOSED_PAREN)
        body = self.parse_statement()
        return While(condition, body)

    def parse_for(self) -> Stmt:
        """Desugar for (init; cond; incr) body into blocks around a while."""
        self.expect(TK_LEFT_PAREN, E_EXPECTED_OPEN_PAREN)
        initializer: Stmt | None
        if self.match(TK_SEMICOLON):
            initializer = None
        elif self.match("var"):
            initializer = self.parse_var_decl()
        else:
            initializer = self.parse_expression_stmt()

        condition: Expr | None = None
        if not self.at(TK_SEMICOLON):
            condition = self.parse_expression()
        self.expect(TK_SEMICOLON, E_EXPECTED_SEMICOLON)

        increment: Expr | None = None
        if not self.at(TK_RIGHT_PAREN):
            increment = self.parse_expression()
        self.expect(TK_RIGHT_PAREN, E_EXPECTED_CLOSED_PAREN)

        body = self.parse_statement()
        if increment is not None:
            body = Block([body, ExpressionStmt(increment)])
        if condition is None:
            condition = Literal(True)
        body = While(condition, body)
        if initializer is not None:
            body = Block([initializer, body])
        return body

    def parse_print(self) -> Print:
        value = self.parse_expression()
        self.expect(TK_SEMICOLON, E_EXPECTED_SEMICOLON)
        return Print(value)

    def parse_return(self) -> Return:
        keyword = self.previous()
        value: Expr | None = None
        if not self.at(TK_SEMICOLON):
            value = self.parse_expression()
        self.expect(TK_SEMICOLON, E_EXPECTED_SEMICOLON)
        return Return(keyword, value)

    def parse_expression_stmt(self) -> ExpressionStmt:
        expr = self.parse_expression()
        self.expect(TK_SEMICOLON, E_EXPECTED_SEMICOLON)
        return ExpressionStmt(expr)

    # ── Expressions ──────────────────────────────────────────

    def parse_expression(self) -> Expr:
        self.enter()
        try:
            return self.parse_assignment()
        finally:
            self.leave()

    def parse_assignment(self) -> Expr:
        """assignment → (call ".")? IDENTIFIER "=" assignment | logic_or"""
        expr = self.parse_or()
        if self.at(TK_EQUAL):
            equals = self.advance()
            value = self.parse_expression()
            if isinstance(expr, Variable):
                return Assign(expr.name, value)
            if isinstance(expr, Get):
                return Set(expr.obj, expr.name, value)
            # recorded without unwinding
            self.error(equals, E_INVALID_ASSIGNMENT_TARGET)
        return expr

    def parse_or(self) -> Expr:
        expr = self.parse_and()
        while self.at("or"):
            op = self.advance()
            right = self.parse_and()
            expr = Logical(expr, op, right)
        return expr

    def parse_and(self) -> Expr:
        expr = self.parse_equality()
        while self.at("and"):
            op = self.advance()
            right = self.parse_equality()
            expr = Logical(expr, op, right)
        return expr

    def parse_equality(self) -> Expr:
        expr = self.parse_comparison()
        while self.at(TK_BANG_EQUAL, TK_EQUAL_EQUAL):
            op = self.advance()
            right = self.parse_comparison()
            expr = Binary(expr, op, right)
        return expr

    def parse_comparison(self) -> Expr:
        expr = self.parse_term()
        while self.at(TK_GREATER, TK_GREATER_EQUAL, TK_LESS, TK_LESS_EQUAL):
            op = self.advance()
            right = self.parse_term()
            expr = Binary(expr, op, right)
        return expr

    def parse_term(self) -> Expr:
        expr = self.parse_factor()
        while self.at(TK_MINUS, TK_PLUS):
            op = self.advance()
            right = self.parse_factor()
            expr = Binary(expr, op, right)
        return expr

    def parse_factor(self) -> Expr:
        expr = self.parse_unary()
        while self.at(TK_SLASH, TK_STAR):
            op = self.advance()
            right = self.parse_unary()
            expr = Binary(expr, op, right)
        return expr

    def parse_unary(self) -> Expr:
        if self.at(TK_BANG, TK_MINUS):
            op = self.advance()
            self.enter()
            try:
                right = self.parse_unary()
            finally:
                self.leave()
            return Unary(op, right)
        return self.parse_call()

    def parse_call(self) -> Expr:
        expr = self.parse_primary()
        while True:
            if self.match(TK_LEFT_PAREN):
                expr = self.finish_call(expr)
            elif self.match(TK_DOT):
                name = self.expect(TK_IDENTIFIER, E_EXPECTED_IDENTIFIER)
                expr = Get(expr, name)
            else:
                break
        return expr

    def finish_call(self, callee: Expr) -> Call:
        args: list[Expr] = []
        if not self.at(TK_RIGHT_PAREN):
            while True:
                if len(args) >= MAX_ARGS:
                    self.error(self.current(), E_MAX_ARGUMENTS)
                args.append(self.parse_expression())
                if not self.match(TK_COMMA):
                    break
        paren = self.expect(TK_RIGHT_PAREN, E_EXPECTED_CLOSED_PAREN)
        return Call(callee, paren, args)

    def parse_primary(self) -> Expr:
        if self.match("false"):
            return Literal(False)
        if self.match("true"):
            return Literal(True)
        if self.match("nil"):
            return Literal(None)
        if self.at(TK_NUMBER, TK_STRING):
            return Literal(self.advance().literal)
        if self.at("super"):
            keyword = self.advance()
            self.expect(TK_DOT, E_EXPECTED_DOT, "after 'super'")
            method = self.expect(
                TK_IDENTIFIER, E_EXPECTED_IDENTIFIER, "for superclass method name"
            )
            return Super(keyword, method)
        if self.at("this"):
            return This(self.advance())
        if self.at(TK_IDENTIFIER):
            return Variable(self.advance())
        if self.match(TK_LEFT_PAREN):
            expr = self.parse_expression()
            self.expect(TK_RIGHT_PAREN, E_UNCLOSED_PARENS)
            return Grouping(expr)
        raise self.error(self.current(), E_EXPECTED_EXPRESSION)


def parse(tokens: list[Token]) -> tuple[list[Stmt], list[LoxError]]:
    """Parse a token list into statements. Returns (statements, errors)."""
    parser = Parser(tokens)
    stmts = parser.parse_program()
    return stmts, parser.errors

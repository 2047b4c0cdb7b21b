"""Lox runtime — values, environments, and the tree-walking interpreter."""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
import math
import sys
from typing import TextIO

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
from .tokens import (
    TK_BANG,
    TK_BANG_EQUAL,
    TK_EQUAL_EQUAL,
    TK_GREATER,
    TK_GREATER_EQUAL,
    TK_LESS,
    TK_LESS_EQUAL,
    TK_MINUS,
    TK_PLUS,
    TK_SLASH,
    TK_STAR,
    Token,
)

logger = logging.getLogger(__name__)


# ============================================================
# Diagnostics
# ============================================================

R_UNDEFINED_VARIABLE = "UndefinedVariable"
R_OPERAND_MUST_BE_NUMBER = "OperandMustBeNumber"
R_OPERANDS_MUST_BE_NUMBERS = "OperandsMustBeNumbers"
R_OPERANDS_MUST_BE_NUMBERS_OR_STRINGS = "OperandsMustBeNumbersOrStrings"
R_NOT_CALLABLE = "NotCallable"
R_ARITY_MISMATCH = "ArityMismatch"
R_NOT_AN_INSTANCE = "NotAnInstance"
R_UNDEFINED_PROPERTY = "UndefinedProperty"
R_SUPERCLASS_MUST_BE_CLASS = "SuperclassMustBeClass"
R_STACK_OVERFLOW = "StackOverflow"

# Nested Lox calls allowed before a StackOverflow runtime error
MAX_CALL_DEPTH = 1000


class LoxRuntimeError(Exception):
    """Runtime fault raised at the first failed precondition; fatal to the run."""

    def __init__(self, kind: str, message: str, line: int, col: int):
        self.kind: str = kind
        self.message: str = message
        self.line: int = line
        self.col: int = col
        super().__init__(
            "Runtime exception on line "
            + str(line)
            + " column "
            + str(col)
            + " : "
            + message
        )

    @classmethod
    def at(cls, tok: Token, kind: str, message: str) -> LoxRuntimeError:
        return cls(kind, message, tok.line, tok.col)


class InternalError(Exception):
    """The resolver and interpreter disagree about where a binding lives."""


# ============================================================
# Values
# ============================================================


class Value:
    """A runtime value: nil, boolean, number, string, function, class or instance."""

    def to_string(self) -> str:
        raise NotImplementedError


@dataclass(frozen=True)
class VNil(Value):
    def to_string(self) -> str:
        return "nil"


@dataclass(frozen=True)
class VBool(Value):
    value: bool

    def to_string(self) -> str:
        return "true" if self.value else "false"


@dataclass(frozen=True)
class VNumber(Value):
    value: float

    def to_string(self) -> str:
        return format_number(self.value)


@dataclass(frozen=True)
class VString(Value):
    value: str

    def to_string(self) -> str:
        return self.value


def format_number(x: float) -> str:
    if math.isnan(x):
        return "nan"
    if math.isinf(x):
        return "inf" if x > 0 else "-inf"
    if x.is_integer():
        if x == 0.0 and math.copysign(1.0, x) < 0:
            return "-0"
        return str(int(x))
    return repr(x)


def from_literal(value: float | str | bool | None) -> Value:
    if value is None:
        return VNil()
    if isinstance(value, bool):
        return VBool(value)
    if isinstance(value, str):
        return VString(value)
    return VNumber(float(value))


def is_truthy(v: Value) -> bool:
    if isinstance(v, VNil):
        return False
    if isinstance(v, VBool):
        return v.value
    return True


def values_equal(a: Value, b: Value) -> bool:
    """nil equals only nil; other values equal only values of the same tag."""
    if isinstance(a, VNil):
        return isinstance(b, VNil)
    if isinstance(a, VNumber) and isinstance(b, VNumber):
        if math.isnan(a.value) and math.isnan(b.value):
            return True
        return a.value == b.value
    if isinstance(a, VString) and isinstance(b, VString):
        return a.value == b.value
    if isinstance(a, VBool) and isinstance(b, VBool):
        return a.value == b.value
    return a is b


# ============================================================
# Environments
# ============================================================


class Environment:
    """One lexical scope's bindings, linked to the enclosing scope.

    Closures hold a reference to the environment they were defined in, so an
    environment lives as long as its longest-lived holder.
    """

    def __init__(self, enclosing: Environment | None = None) -> None:
        self.values: dict[str, Value] = {}
        self.enclosing: Environment | None = enclosing

    def define(self, name: str, value: Value) -> None:
        self.values[name] = value

    def get(self, name: Token) -> Value:
        env: Environment | None = self
        while env is not None:
            if name.lexeme in env.values:
                return env.values[name.lexeme]
            env = env.enclosing
        raise LoxRuntimeError.at(
            name, R_UNDEFINED_VARIABLE, "Undefined variable '" + name.lexeme + "'."
        )

    def assign(self, name: Token, value: Value) -> None:
        env: Environment | None = self
        while env is not None:
            if name.lexeme in env.values:
                env.values[name.lexeme] = value
                return
            env = env.enclosing
        raise LoxRuntimeError.at(
            name, R_UNDEFINED_VARIABLE, "Undefined variable '" + name.lexeme + "'."
        )

    def ancestor(self, distance: int) -> Environment:
        env = self
        for _ in range(distance):
            if env.enclosing is None:
                raise InternalError(
                    "no environment " + str(distance) + " levels out"
                )
            env = env.enclosing
        return env

    def get_at(self, distance: int, name: str) -> Value:
        env = self.ancestor(distance)
        if name not in env.values:
            raise InternalError(
                "'" + name + "' not bound at distance " + str(distance)
            )
        return env.values[name]

    def assign_at(self, distance: int, name: str, value: Value) -> None:
        env = self.ancestor(distance)
        if name not in env.values:
            raise InternalError(
                "'" + name + "' not bound at distance " + str(distance)
            )
        env.values[name] = value


# ============================================================
# Callables, classes, instances
# ============================================================


class LoxCallable(Value):
    def arity(self) -> int:
        raise NotImplementedError

    def call(self, interpreter: Interpreter, args: list[Value]) -> Value:
        raise NotImplementedError


class LoxFunction(LoxCallable):
    def __init__(
        self,
        declaration: FunctionDecl,
        closure: Environment,
        is_initializer: bool = False,
    ) -> None:
        self.declaration: FunctionDecl = declaration
        self.closure: Environment = closure
        self.is_initializer: bool = is_initializer

    def bind(self, instance: LoxInstance) -> LoxFunction:
        env = Environment(self.closure)
        env.define("this", instance)
        return LoxFunction(self.declaration, env, self.is_initializer)

    def arity(self) -> int:
        return len(self.declaration.params)

    def call(self, interpreter: Interpreter, args: list[Value]) -> Value:
        env = Environment(self.closure)
        for i, param in enumerate(self.declaration.params):
            env.define(param.lexeme, args[i])
        ret = interpreter.execute_block(self.declaration.body, env)
        if self.is_initializer:
            return self.closure.get_at(0, "this")
        if ret is not None and ret.value is not None:
            return ret.value
        return VNil()

    def to_string(self) -> str:
        return "<fn " + self.declaration.name.lexeme + ">"

    def __repr__(self) -> str:
        return "LoxFunction(" + self.declaration.name.lexeme + ")"


class LoxClass(LoxCallable):
    def __init__(
        self,
        name: str,
        superclass: LoxClass | None,
        methods: dict[str, LoxFunction],
    ) -> None:
        self.name: str = name
        self.superclass: LoxClass | None = superclass
        self.methods: dict[str, LoxFunction] = methods

    def find_method(self, name: str) -> LoxFunction | None:
        klass: LoxClass | None = self
        while klass is not None:
            if name in klass.methods:
                return klass.methods[name]
            klass = klass.superclass
        return None

    def arity(self) -> int:
        init = self.find_method("init")
        if init is None:
            return 0
        return init.arity()

    def call(self, interpreter: Interpreter, args: list[Value]) -> Value:
        instance = LoxInstance(self)
        init = self.find_method("init")
        if init is not None:
            init.bind(instance).call(interpreter, args)
        return instance

    def to_string(self) -> str:
        return self.name

    def __repr__(self) -> str:
        return "LoxClass(" + self.name + ")"


@dataclass(eq=False)
class LoxInstance(Value):
    klass: LoxClass
    fields: dict[str, Value] = field(default_factory=dict)

    def get(self, name: Token) -> Value:
        if name.lexeme in self.fields:
            return self.fields[name.lexeme]
        method = self.klass.find_method(name.lexeme)
        if method is not None:
            return method.bind(self)
        raise LoxRuntimeError.at(
            name, R_UNDEFINED_PROPERTY, "Undefined property '" + name.lexeme + "'."
        )

    def set(self, name: Token, value: Value) -> None:
        self.fields[name.lexeme] = value

    def to_string(self) -> str:
        return self.klass.name + " instance"


# ============================================================
# Control flow signal (internal)
# ============================================================


@dataclass
class _Return:
    """Returned, never raised, by statement execution to unwind to the caller."""

    value: Value | None


# ============================================================
# Interpreter
# ============================================================


class Interpreter:
    """Executes resolved statements against a persistent global environment."""

    def __init__(self, stdout: TextIO | None = None) -> None:
        self.globals: Environment = Environment()
        self.environment: Environment = self.globals
        # filled by the resolver: reference node -> scope distance
        self.locals: dict[Expr, int] = {}
        self.stdout: TextIO = stdout if stdout is not None else sys.stdout
        self.call_depth: int = 0

    def interpret(self, stmts: list[Stmt]) -> LoxRuntimeError | None:
        """Run statements in order; return the runtime error that stopped them, if any."""
        try:
            for st in stmts:
                self.execute(st)
        except LoxRuntimeError as e:
            logger.debug("runtime error: %s", e)
            return e
        return None

    # ---- Statements --------------------------------------------------------

    def execute_block(self, stmts: list[Stmt], env: Environment) -> _Return | None:
        previous = self.environment
        try:
            self.environment = env
            for st in stmts:
                ret = self.execute(st)
                if ret is not None:
                    return ret
        finally:
            self.environment = previous
        return None

    def execute(self, st: Stmt) -> _Return | None:
        if isinstance(st, ExpressionStmt):
            self.evaluate(st.expression)
            return None

        if isinstance(st, Print):
            value = self.evaluate(st.expression)
            self.stdout.write(value.to_string() + "\n")
            return None

        if isinstance(st, VarDecl):
            value: Value = VNil()
            if st.initializer is not None:
                value = self.evaluate(st.initializer)
            self.environment.define(st.name.lexeme, value)
            return None

        if isinstance(st, Block):
            return self.execute_block(st.statements, Environment(self.environment))

        if isinstance(st, If):
            if is_truthy(self.evaluate(st.condition)):
                return self.execute(st.then_branch)
            if st.else_branch is not None:
                return self.execute(st.else_branch)
            return None

        if isinstance(st, While):
            while is_truthy(self.evaluate(st.condition)):
                ret = self.execute(st.body)
                if ret is not None:
                    return ret
            return None

        if isinstance(st, FunctionDecl):
            fn = LoxFunction(st, self.environment, False)
            self.environment.define(st.name.lexeme, fn)
            return None

        if isinstance(st, Return):
            if st.value is None:
                return _Return(None)
            return _Return(self.evaluate(st.value))

        if isinstance(st, ClassDecl):
            self._execute_class(st)
            return None

        raise AssertionError("unhandled statement type: " + type(st).__name__)

    def _execute_class(self, st: ClassDecl) -> None:
        superclass: LoxClass | None = None
        if st.superclass is not None:
            sc = self.evaluate(st.superclass)
            if not isinstance(sc, LoxClass):
                raise LoxRuntimeError.at(
                    st.superclass.name,
                    R_SUPERCLASS_MUST_BE_CLASS,
                    "Superclass must be a class.",
                )
            superclass = sc

        self.environment.define(st.name.lexeme, VNil())

        previous = self.environment
        try:
            if superclass is not None:
                self.environment = Environment(self.environment)
                self.environment.define("super", superclass)
            methods: dict[str, LoxFunction] = {}
            for method in st.methods:
                methods[method.name.lexeme] = LoxFunction(
                    method, self.environment, method.name.lexeme == "init"
                )
            klass = LoxClass(st.name.lexeme, superclass, methods)
        finally:
            self.environment = previous

        self.environment.assign(st.name, klass)

    # ---- Expressions -------------------------------------------------------

    def evaluate(self, expr: Expr) -> Value:
        if isinstance(expr, Literal):
            return from_literal(expr.value)

        if isinstance(expr, Grouping):
            return self.evaluate(expr.expression)

        if isinstance(expr, Variable):
            return self._look_up(expr.name, expr)

        if isinstance(expr, This):
            return self._look_up(expr.keyword, expr)

        if isinstance(expr, Assign):
            value = self.evaluate(expr.value)
            distance = self.locals.get(expr)
            if distance is not None:
                self.environment.assign_at(distance, expr.name.lexeme, value)
            else:
                self.globals.assign(expr.name, value)
            return value

        if isinstance(expr, Unary):
            right = self.evaluate(expr.right)
            if expr.op.type == TK_BANG:
                return VBool(not is_truthy(right))
            if expr.op.type == TK_MINUS:
                if not isinstance(right, VNumber):
                    raise LoxRuntimeError.at(
                        expr.op, R_OPERAND_MUST_BE_NUMBER, "Operand must be a number."
                    )
                return VNumber(-right.value)
            raise AssertionError("unknown unary operator " + expr.op.type)

        if isinstance(expr, Binary):
            left = self.evaluate(expr.left)
            right = self.evaluate(expr.right)
            return self._eval_binary(expr.op, left, right)

        if isinstance(expr, Logical):
            left = self.evaluate(expr.left)
            if expr.op.type == "or":
                if is_truthy(left):
                    return left
            elif not is_truthy(left):
                return left
            return self.evaluate(expr.right)

        if isinstance(expr, Call):
            return self._eval_call(expr)

        if isinstance(expr, Get):
            obj = self.evaluate(expr.obj)
            if isinstance(obj, LoxInstance):
                return obj.get(expr.name)
            raise LoxRuntimeError.at(
                expr.name, R_NOT_AN_INSTANCE, "Only instances have properties."
            )

        if isinstance(expr, Set):
            obj = self.evaluate(expr.obj)
            if not isinstance(obj, LoxInstance):
                raise LoxRuntimeError.at(
                    expr.name, R_NOT_AN_INSTANCE, "Only instances have fields."
                )
            value = self.evaluate(expr.value)
            obj.set(expr.name, value)
            return value

        if isinstance(expr, Super):
            return self._eval_super(expr)

        raise AssertionError("unhandled expression type: " + type(expr).__name__)

    def _look_up(self, name: Token, expr: Expr) -> Value:
        distance = self.locals.get(expr)
        if distance is not None:
            return self.environment.get_at(distance, name.lexeme)
        return self.globals.get(name)

    def _eval_call(self, expr: Call) -> Value:
        callee = self.evaluate(expr.callee)
        args: list[Value] = []
        for arg in expr.arguments:
            args.append(self.evaluate(arg))
        if not isinstance(callee, LoxCallable):
            raise LoxRuntimeError.at(
                expr.paren, R_NOT_CALLABLE, "Can only call functions and classes."
            )
        if len(args) != callee.arity():
            raise LoxRuntimeError.at(
                expr.paren,
                R_ARITY_MISMATCH,
                "Expected "
                + str(callee.arity())
                + " arguments but got "
                + str(len(args))
                + ".",
            )
        if self.call_depth >= MAX_CALL_DEPTH:
            raise LoxRuntimeError.at(expr.paren, R_STACK_OVERFLOW, "Stack overflow.")
        self.call_depth += 1
        try:
            return callee.call(self, args)
        except RecursionError:
            # host stack ran out before MAX_CALL_DEPTH
            raise LoxRuntimeError.at(
                expr.paren, R_STACK_OVERFLOW, "Stack overflow."
            ) from None
        finally:
            self.call_depth -= 1

    def _eval_super(self, expr: Super) -> Value:
        distance = self.locals.get(expr)
        if distance is None:
            raise InternalError("'super' was not resolved")
        superclass = self.environment.get_at(distance, "super")
        # 'this' is always one frame nearer than 'super'
        instance = self.environment.get_at(distance - 1, "this")
        if not isinstance(superclass, LoxClass) or not isinstance(
            instance, LoxInstance
        ):
            raise InternalError("'super' frames hold unexpected values")
        method = superclass.find_method(expr.method.lexeme)
        if method is None:
            raise LoxRuntimeError.at(
                expr.method,
                R_UNDEFINED_PROPERTY,
                "Undefined property '" + expr.method.lexeme + "'.",
            )
        return method.bind(instance)

    def _eval_binary(self, op: Token, left: Value, right: Value) -> Value:
        if op.type == TK_EQUAL_EQUAL:
            return VBool(values_equal(left, right))
        if op.type == TK_BANG_EQUAL:
            return VBool(not values_equal(left, right))

        if op.type == TK_PLUS:
            if isinstance(left, VNumber) and isinstance(right, VNumber):
                return VNumber(left.value + right.value)
            if isinstance(left, VString) and isinstance(right, VString):
                return VString(left.value + right.value)
            raise LoxRuntimeError.at(
                op,
                R_OPERANDS_MUST_BE_NUMBERS_OR_STRINGS,
                "Operands must be two numbers or two strings.",
            )

        if not isinstance(left, VNumber) or not isinstance(right, VNumber):
            raise LoxRuntimeError.at(
                op, R_OPERANDS_MUST_BE_NUMBERS, "Operands must be numbers."
            )
        a = left.value
        b = right.value
        if op.type == TK_MINUS:
            return VNumber(a - b)
        if op.type == TK_STAR:
            return VNumber(a * b)
        if op.type == TK_SLASH:
            return VNumber(_divide(a, b))
        if op.type == TK_GREATER:
            return VBool(a > b)
        if op.type == TK_GREATER_EQUAL:
            return VBool(a >= b)
        if op.type == TK_LESS:
            return VBool(a < b)
        if op.type == TK_LESS_EQUAL:
            return VBool(a <= b)
        raise AssertionError("unknown binary operator " + op.type)


def _divide(a: float, b: float) -> float:
    """IEEE-754 division: x/0 is a signed infinity, 0/0 is nan."""
    if b == 0.0:
        if a == 0.0 or math.isnan(a):
            return math.nan
        return math.copysign(math.inf, a) * math.copysign(1.0, b)
    return a / b

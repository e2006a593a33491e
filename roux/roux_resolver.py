"""
Static scope resolution for Roux programs.

A single pass over the syntax tree that tells the interpreter, for every local
variable reference, how many frames out its declaration lives. References that
are not found in any local scope are left unrecorded and treated as globals.
The pass also rejects a small class of errors before anything runs and emits
a few non-fatal usage warnings.
"""
from enum import Enum, auto
from typing import Dict, List, Optional

from roux.roux_ast import (
    Expr, Stmt, Literal, Grouping, Unary, Binary, Logical, Ternary, Assign, Suffix,
    Variable, Call, Get, Set, Subscript, SubscriptSet, This, Lambda,
    Expression, Print, Var, Block, If, While, Break, Continue, Function, Return, Class
)
from roux.roux_datatypes import ResolveError, RouxClass
from roux.roux_tokens import Token


class VariableState(Enum):
    DECLARED = auto()
    DEFINED = auto()
    READ = auto()


class FunctionType(Enum):
    NONE = auto()
    FUNCTION = auto()
    CONSTRUCTOR = auto()
    LAMBDA = auto()
    METHOD = auto()
    STATIC = auto()


class ClassType(Enum):
    NONE = auto()
    CLASS = auto()
    STATIC = auto()


class _Variable:
    __slots__ = ("name", "state")

    def __init__(self, name: Optional[Token], state: VariableState):
        self.name = name
        self.state = state


class Resolver:
    """Resolves local variable distances into the interpreter's locals table.

    The first fatal problem is reported through the error reporter and stops
    the pass; warnings are reported and the pass continues.
    """

    def __init__(self, interpreter, reporter):
        self.interpreter = interpreter
        self.reporter = reporter
        self.scopes: List[Dict[str, _Variable]] = []
        self.current_function = FunctionType.NONE
        self.current_class = ClassType.NONE

    def resolve(self, statements: List[Stmt]):
        try:
            self._resolve_all(statements)
        except ResolveError as e:
            self.reporter.error_at(e.token, str(e))

    def resolve_expression(self, expr: Expr):
        try:
            self._resolve_expr(expr)
        except ResolveError as e:
            self.reporter.error_at(e.token, str(e))

    def _resolve_all(self, statements: List[Stmt]):
        for stmt in statements:
            self._resolve_stmt(stmt)

    # =================================================================
    # Statements
    # =================================================================

    def _resolve_stmt(self, stmt: Stmt):
        match stmt:
            case Block():
                self._begin_scope()
                self._resolve_all(stmt.statements)
                self._end_scope()
            case Var():
                self._declare(stmt.name)
                if stmt.initializer is not None:
                    self._resolve_expr(stmt.initializer)
                self._define(stmt.name)
            case Function():
                self._declare(stmt.name)
                self._define(stmt.name)
                self._resolve_function(stmt.params, stmt.body, FunctionType.FUNCTION)
            case Class():
                self._resolve_class(stmt)
            case Expression() | Print():
                self._resolve_expr(stmt.expression)
            case If():
                self._resolve_expr(stmt.condition)
                self._resolve_stmt(stmt.then_branch)
                if stmt.else_branch is not None:
                    self._resolve_stmt(stmt.else_branch)
            case While():
                self._resolve_expr(stmt.condition)
                self._resolve_stmt(stmt.body)
                if stmt.increment is not None:
                    self._resolve_expr(stmt.increment)
            case Return():
                if self.current_function == FunctionType.NONE:
                    raise ResolveError(stmt.keyword, "Can't return from top-level code.")
                if stmt.value is not None:
                    if self.current_function == FunctionType.CONSTRUCTOR:
                        raise ResolveError(stmt.keyword, "Can't return a value from a constructor.")
                    self._resolve_expr(stmt.value)
            case Break() | Continue():
                pass
            case _:
                raise TypeError(f"Cannot resolve statement {type(stmt).__name__}")

    def _resolve_class(self, stmt: Class):
        enclosing_class = self.current_class

        self._declare(stmt.name)
        self._define(stmt.name)
        if stmt.base is not None:
            self._resolve_expr(stmt.base)

        # Static methods see the enclosing scopes but not `this`.
        self.current_class = ClassType.STATIC
        for method in stmt.static_methods:
            self._resolve_function(method.params, method.body, FunctionType.STATIC)

        self.current_class = ClassType.CLASS
        self._begin_scope()
        self.scopes[-1]["this"] = _Variable(None, VariableState.READ)
        for method in stmt.methods:
            kind = FunctionType.METHOD
            if method.name.lexeme == RouxClass.CONSTRUCTOR:
                kind = FunctionType.CONSTRUCTOR
            self._resolve_function(method.params, method.body, kind)
        self._end_scope()

        self.current_class = enclosing_class

    def _resolve_function(self, params: List[Token], body: List[Stmt], kind: FunctionType):
        enclosing_function = self.current_function
        self.current_function = kind

        self._begin_scope()
        for param in params:
            self._declare(param)
            self._define(param)
        self._resolve_all(body)
        self._warn_unreachable(body)
        self._end_scope()

        self.current_function = enclosing_function

    def _warn_unreachable(self, body: List[Stmt]):
        # Only the statements directly in the body are checked, not nested blocks.
        for stmt in body[:-1]:
            if isinstance(stmt, Return):
                self.reporter.warning(stmt.keyword, "Unreachable code detected.")
                return

    # =================================================================
    # Expressions
    # =================================================================

    def _resolve_expr(self, expr: Expr):
        match expr:
            case Variable():
                self._check_initialized(expr.name)
                self._resolve_local(expr, expr.name)
            case Assign():
                self._resolve_expr(expr.value)
                self._resolve_local(expr, expr.name)
            case Suffix():
                self._check_initialized(expr.name)
                self._resolve_local(expr, expr.name)
            case This():
                if self.current_class == ClassType.NONE:
                    raise ResolveError(expr.keyword, "Can't use 'this' outside of a class.")
                if self.current_class == ClassType.STATIC:
                    raise ResolveError(expr.keyword, "Can't use 'this' in a static method.")
                self._resolve_local(expr, expr.keyword)
            case Binary() | Logical():
                self._resolve_expr(expr.left)
                self._resolve_expr(expr.right)
            case Unary():
                self._resolve_expr(expr.right)
            case Grouping():
                self._resolve_expr(expr.expression)
            case Ternary():
                self._resolve_expr(expr.condition)
                self._resolve_expr(expr.then_branch)
                self._resolve_expr(expr.else_branch)
            case Call():
                self._resolve_expr(expr.callee)
                for argument in expr.arguments:
                    self._resolve_expr(argument)
            case Get():
                self._resolve_expr(expr.object)
            case Set():
                self._resolve_expr(expr.value)
                self._resolve_expr(expr.object)
            case Subscript():
                self._resolve_expr(expr.object)
                self._resolve_expr(expr.index)
            case SubscriptSet():
                self._resolve_expr(expr.value)
                self._resolve_expr(expr.object)
                self._resolve_expr(expr.index)
            case Lambda():
                self._resolve_function(expr.params, expr.body, FunctionType.LAMBDA)
            case Literal():
                pass
            case _:
                raise TypeError(f"Cannot resolve expression {type(expr).__name__}")

    # =================================================================
    # Scopes
    # =================================================================

    def _begin_scope(self):
        self.scopes.append({})

    def _end_scope(self):
        scope = self.scopes.pop()
        for variable in scope.values():
            if variable.state != VariableState.READ:
                self.reporter.warning(variable.name, "Local variable is never used.")

    def _declare(self, name: Token):
        if not self.scopes:
            return
        scope = self.scopes[-1]
        if name.lexeme in scope:
            raise ResolveError(name, "Variable with this name is already declared in this scope.")
        scope[name.lexeme] = _Variable(name, VariableState.DECLARED)

    def _define(self, name: Token):
        if not self.scopes:
            return
        self.scopes[-1][name.lexeme].state = VariableState.DEFINED

    def _check_initialized(self, name: Token):
        if not self.scopes:
            return
        variable = self.scopes[-1].get(name.lexeme)
        if variable is not None and variable.state == VariableState.DECLARED:
            raise ResolveError(name, "Can't read local variable in its own initializer.")

    def _resolve_local(self, expr: Expr, name: Token):
        for depth, scope in enumerate(reversed(self.scopes)):
            if name.lexeme in scope:
                scope[name.lexeme].state = VariableState.READ
                self.interpreter.resolve(expr, depth)
                return
        # Not found in any local scope: a global, looked up by name at run time.

"""
The tree-walking evaluator for Roux.
"""
import math
import os
import sys
from typing import Any, Dict, List, Optional

from roux.roux_ast import (
    Expr, Stmt, Literal, Grouping, Unary, Binary, Logical, Ternary, Assign, Suffix,
    Variable, Call, Get, Set, Subscript, SubscriptSet, This, Lambda,
    Expression, Print, Var, Block, If, While, Break, Continue, Function, Return, Class
)
from roux.roux_config import RouxConfig
from roux.roux_datatypes import (
    Environment, RouxCallable, RouxFunction, RouxLambda, RouxClass, RouxInstance,
    NativeFunction, NativeClass, RouxRuntimeError,
    Completion, Signal, NORMAL, BREAK, CONTINUE
)
from roux.roux_printer import Printer
from roux.roux_tokens import Token, TokenType

# Host exceptions raised by native code that are reported as Roux runtime errors.
_NATIVE_ERRORS = (IndexError, KeyError, ValueError, TypeError)


class Interpreter:
    """Executes resolved Roux syntax trees.

    Holds the global frame and the current frame pointer for one runtime, plus
    the resolver's locals table (node id -> scope distance). Statements return a
    `Completion`; runtime errors are raised as `RouxRuntimeError` and caught at
    the top level, where they are handed to the error reporter.
    """

    def __init__(self, io, reporter, config: Optional[RouxConfig] = None):
        self.io = io
        self.reporter = reporter
        self.config = config or RouxConfig()
        self.globals = Environment()
        self.environment = self.globals
        self.locals: Dict[int, int] = {}
        self.printer = Printer()

    def _dbg(self, *parts):
        if self.config.debug or os.environ.get("ROUX_DEBUG"):
            print("[DBG]", *parts, file=sys.stderr)

    # =================================================================
    # Entry points
    # =================================================================

    def interpret(self, statements: List[Stmt]):
        self._dbg("interpret:", len(statements), "statement(s)")
        try:
            for stmt in statements:
                self.execute(stmt)
        except RouxRuntimeError as e:
            self._report(e)
        except RecursionError:
            self._report(RouxRuntimeError(None, "Stack overflow."))

    def interpret_expression(self, expr: Expr) -> Any:
        """Evaluates one expression and returns its value (None after an error)."""
        try:
            return self.evaluate(expr)
        except RouxRuntimeError as e:
            self._report(e)
        except RecursionError:
            self._report(RouxRuntimeError(None, "Stack overflow."))
        return None

    def _report(self, error: RouxRuntimeError):
        self._dbg("runtime error:", error.message, "at", error.token)
        self.reporter.runtime_error(error)

    def resolve(self, expr: Expr, depth: int):
        self.locals[expr.node_id] = depth

    # =================================================================
    # Statements
    # =================================================================

    def execute(self, stmt: Stmt) -> Completion:
        match stmt:
            case Expression():
                self.evaluate(stmt.expression)
                return NORMAL
            case Print():
                value = self.evaluate(stmt.expression)
                self.io.output(self.stringify(value))
                return NORMAL
            case Var():
                value = None
                if stmt.initializer is not None:
                    value = self.evaluate(stmt.initializer)
                self.environment.define(stmt.name.lexeme, value)
                return NORMAL
            case Block():
                return self.execute_block(stmt.statements, Environment(self.environment))
            case If():
                if self._is_truthy(self.evaluate(stmt.condition)):
                    return self.execute(stmt.then_branch)
                if stmt.else_branch is not None:
                    return self.execute(stmt.else_branch)
                return NORMAL
            case While():
                return self._execute_while(stmt)
            case Break():
                return BREAK
            case Continue():
                return CONTINUE
            case Function():
                self.environment.define(stmt.name.lexeme, RouxFunction(stmt, self.environment))
                return NORMAL
            case Return():
                value = None
                if stmt.value is not None:
                    value = self.evaluate(stmt.value)
                return Completion(Signal.RETURN, value)
            case Class():
                self._execute_class(stmt)
                return NORMAL
            case _:
                raise TypeError(f"Cannot execute statement {type(stmt).__name__}")

    def execute_block(self, statements: List[Stmt], environment: Environment) -> Completion:
        """Runs statements in `environment`, restoring the current frame afterwards."""
        previous = self.environment
        try:
            self.environment = environment
            for stmt in statements:
                completion = self.execute(stmt)
                if completion.is_abrupt:
                    return completion
            return NORMAL
        finally:
            self.environment = previous

    def _execute_while(self, stmt: While) -> Completion:
        while self._is_truthy(self.evaluate(stmt.condition)):
            completion = self.execute(stmt.body)
            if completion.signal is Signal.BREAK:
                break
            if completion.signal is Signal.RETURN:
                return completion
            # Normal completion and `continue` both fall through to the increment.
            if stmt.increment is not None:
                self.evaluate(stmt.increment)
        return NORMAL

    def _execute_class(self, stmt: Class):
        self.environment.define(stmt.name.lexeme, None)

        base = None
        if stmt.base is not None:
            base = self.evaluate(stmt.base)
            if not isinstance(base, RouxClass):
                raise RouxRuntimeError(stmt.name, "Base must be a class.")

        methods = {
            method.name.lexeme: RouxFunction(method, self.environment,
                                             method.name.lexeme == RouxClass.CONSTRUCTOR)
            for method in stmt.methods
        }
        static_methods = {
            method.name.lexeme: RouxFunction(method, self.environment)
            for method in stmt.static_methods
        }
        klass = RouxClass(stmt.name.lexeme, methods, static_methods, base)
        self.environment.assign(stmt.name, klass)

    # =================================================================
    # Expressions
    # =================================================================

    def evaluate(self, expr: Expr) -> Any:
        match expr:
            case Literal():
                return expr.value
            case Grouping():
                return self.evaluate(expr.expression)
            case Unary():
                return self._unary(expr)
            case Binary():
                return self._binary(expr)
            case Logical():
                left = self.evaluate(expr.left)
                if expr.operator.type == TokenType.OR:
                    if self._is_truthy(left):
                        return left
                elif not self._is_truthy(left):
                    return left
                return self.evaluate(expr.right)
            case Ternary():
                if self._is_truthy(self.evaluate(expr.condition)):
                    return self.evaluate(expr.then_branch)
                return self.evaluate(expr.else_branch)
            case Variable():
                return self._lookup_variable(expr.name, expr)
            case This():
                return self._lookup_variable(expr.keyword, expr)
            case Assign():
                value = self.evaluate(expr.value)
                self._assign_variable(expr.name, expr, value)
                return value
            case Suffix():
                old = self._lookup_variable(expr.name, expr)
                self._check_number_operand(expr.operator, old)
                step = 1.0 if expr.operator.type == TokenType.PLUS_PLUS else -1.0
                self._assign_variable(expr.name, expr, old + step)
                return old
            case Call():
                callee = self.evaluate(expr.callee)
                arguments = [self.evaluate(argument) for argument in expr.arguments]
                return self.call_value(callee, arguments, expr.paren)
            case Get():
                obj = self.evaluate(expr.object)
                if isinstance(obj, (RouxInstance, RouxClass)):
                    return obj.get(expr.name)
                raise RouxRuntimeError(expr.name, "Only instances have properties.")
            case Set():
                obj = self.evaluate(expr.object)
                if not isinstance(obj, RouxInstance):
                    raise RouxRuntimeError(expr.name, "Only instances have fields.")
                if expr.operator is None:
                    value = self.evaluate(expr.value)
                else:
                    current = obj.get(expr.name)
                    value = self._apply_binary(expr.operator, current, self.evaluate(expr.value))
                obj.set(expr.name, value)
                return value
            case Subscript():
                obj = self.evaluate(expr.object)
                index = self.evaluate(expr.index)
                return self._subscript(obj, index, expr.bracket)
            case SubscriptSet():
                obj = self.evaluate(expr.object)
                index = self.evaluate(expr.index)
                if expr.operator is None:
                    value = self.evaluate(expr.value)
                else:
                    current = self._subscript(obj, index, expr.bracket)
                    value = self._apply_binary(expr.operator, current, self.evaluate(expr.value))
                return self._subscript_set(obj, index, value, expr.bracket)
            case Lambda():
                return RouxLambda(expr, self.environment)
            case _:
                raise TypeError(f"Cannot evaluate expression {type(expr).__name__}")

    def call_value(self, callee: Any, arguments: List[Any], token: Optional[Token]) -> Any:
        """The single call path shared by script calls and host calls."""
        if not isinstance(callee, RouxCallable):
            raise RouxRuntimeError(token, "Can only call functions and classes.")
        if len(arguments) != callee.arity():
            raise RouxRuntimeError(token, f"Expected {callee.arity()} arguments but got {len(arguments)}.")
        if not isinstance(callee, (NativeFunction, NativeClass)):
            return callee.call(self, arguments)
        try:
            return callee.call(self, arguments)
        except _NATIVE_ERRORS as e:
            message = str(e.args[0]) if e.args else type(e).__name__
            raise RouxRuntimeError(token, message) from e

    def stringify(self, value: Any) -> str:
        return self.printer.pformat(value)

    # --- Variables ---

    def _lookup_variable(self, name: Token, expr: Expr) -> Any:
        distance = self.locals.get(expr.node_id)
        if distance is not None:
            return self.environment.get_at(distance, name.lexeme)
        return self.globals.get(name)

    def _assign_variable(self, name: Token, expr: Expr, value: Any):
        distance = self.locals.get(expr.node_id)
        if distance is not None:
            self.environment.assign_at(distance, name, value)
        else:
            self.globals.assign(name, value)

    # --- Operators ---

    def _unary(self, expr: Unary) -> Any:
        right = self.evaluate(expr.right)
        match expr.operator.type:
            case TokenType.MINUS:
                self._check_number_operand(expr.operator, right)
                return -right
            case TokenType.BANG:
                return not self._is_truthy(right)
        raise RouxRuntimeError(expr.operator, f"Unknown unary operator '{expr.operator.lexeme}'.")

    def _binary(self, expr: Binary) -> Any:
        left = self.evaluate(expr.left)
        right = self.evaluate(expr.right)
        return self._apply_binary(expr.operator, left, right)

    def _apply_binary(self, op: Token, left: Any, right: Any) -> Any:
        match op.type:
            case TokenType.COMMA:
                return right
            case TokenType.PLUS:
                return self._add(op, left, right)
            case TokenType.MINUS:
                self._check_number_operands(op, left, right)
                return left - right
            case TokenType.STAR:
                self._check_number_operands(op, left, right)
                return left * right
            case TokenType.SLASH:
                self._check_number_operands(op, left, right)
                return self._divide(left, right)
            case TokenType.PERCENT:
                self._check_number_operands(op, left, right)
                return self._modulo(left, right)
            case TokenType.GREATER:
                self._check_number_operands(op, left, right)
                return left > right
            case TokenType.GREATER_EQUAL:
                self._check_number_operands(op, left, right)
                return left >= right
            case TokenType.LESS:
                self._check_number_operands(op, left, right)
                return left < right
            case TokenType.LESS_EQUAL:
                self._check_number_operands(op, left, right)
                return left <= right
            case TokenType.EQUAL_EQUAL:
                return self._is_equal(left, right)
            case TokenType.BANG_EQUAL:
                return not self._is_equal(left, right)
            case TokenType.BAR | TokenType.CARET | TokenType.AMPERSAND:
                return self._bitwise(op, left, right)
        raise RouxRuntimeError(op, f"Unknown binary operator '{op.lexeme}'.")

    def _add(self, op: Token, left: Any, right: Any) -> Any:
        if self._is_number(left) and self._is_number(right):
            return left + right
        if isinstance(left, str) and isinstance(right, str):
            return left + right
        # Text absorbs any other non-null operand, keeping operand order.
        if isinstance(left, str) and right is not None:
            return left + self.stringify(right)
        if isinstance(right, str) and left is not None:
            return self.stringify(left) + right
        raise RouxRuntimeError(op, "Operands must be two numbers or two strings.")

    @staticmethod
    def _divide(left: float, right: float) -> float:
        if right == 0:
            if left == 0 or math.isnan(left):
                return math.nan
            return math.copysign(math.inf, left) * math.copysign(1.0, right)
        return left / right

    @staticmethod
    def _modulo(left: float, right: float) -> float:
        try:
            return math.fmod(left, right)
        except ValueError:
            return math.nan

    def _bitwise(self, op: Token, left: Any, right: Any) -> float:
        self._check_number_operands(op, left, right)
        if not (math.isfinite(left) and math.isfinite(right)):
            raise RouxRuntimeError(op, "Operands must be finite numbers.")
        a, b = int(left), int(right)
        match op.type:
            case TokenType.BAR:
                return float(a | b)
            case TokenType.CARET:
                return float(a ^ b)
        return float(a & b)

    # --- Value rules ---

    @staticmethod
    def _is_number(value: Any) -> bool:
        # bool is an int subclass in Python but never a Roux number.
        return type(value) is float

    @staticmethod
    def _is_truthy(value: Any) -> bool:
        if value is None:
            return False
        if isinstance(value, bool):
            return value
        return True

    @staticmethod
    def _is_equal(a: Any, b: Any) -> bool:
        if a is None and b is None:
            return True
        if a is None or b is None:
            return False
        return type(a) is type(b) and a == b

    def _check_number_operand(self, op: Token, operand: Any):
        if not self._is_number(operand):
            raise RouxRuntimeError(op, "Operand must be a number.")

    def _check_number_operands(self, op: Token, left: Any, right: Any):
        if not (self._is_number(left) and self._is_number(right)):
            raise RouxRuntimeError(op, "Operands must be numbers.")

    # --- Subscripts ---

    def _subscript(self, obj: Any, index: Any, bracket: Token) -> Any:
        if isinstance(obj, str):
            return obj[self._text_index(obj, index, bracket)]
        if isinstance(obj, RouxInstance):
            at = obj.get(bracket.copy(TokenType.IDENTIFIER, "at"))
            return self.call_value(at, [index], bracket)
        raise RouxRuntimeError(bracket, "Only text and instances can be subscripted.")

    def _subscript_set(self, obj: Any, index: Any, value: Any, bracket: Token) -> Any:
        if isinstance(obj, RouxInstance):
            set_at = obj.get(bracket.copy(TokenType.IDENTIFIER, "setAt"))
            self.call_value(set_at, [index, value], bracket)
            return value
        if isinstance(obj, str):
            raise RouxRuntimeError(bracket, "Text cannot be modified by index.")
        raise RouxRuntimeError(bracket, "Only instances support index assignment.")

    def _text_index(self, text: str, index: Any, bracket: Token) -> int:
        if not self._is_number(index) or not index.is_integer():
            raise RouxRuntimeError(bracket, "Text index must be an integer.")
        i = int(index)
        if i < 0 or i >= len(text):
            raise RouxRuntimeError(bracket, "Text index out of range.")
        return i

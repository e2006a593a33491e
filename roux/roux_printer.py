"""
Formatters for Roux runtime values and syntax trees.
"""
import math

from roux.roux_datatypes import (
    RouxClass, RouxInstance, RouxFunction, RouxLambda, NativeFunction
)
from roux.roux_ast import (
    Literal, Grouping, Unary, Binary, Logical, Ternary, Assign, Suffix, Variable,
    Call, Get, Set, Subscript, SubscriptSet, This, Lambda
)


class Printer:
    """Formats Roux values the way `print` and text concatenation show them."""

    def __init__(self):
        self._handlers = self._create_handlers()

    def pformat(self, obj) -> str:
        """Public entry point to format a value."""
        handler = self._get_handler(obj)
        return handler(obj)

    def _get_handler(self, obj):
        """Dispatcher to find the correct formatting method."""
        obj_type = type(obj)
        if obj_type in self._handlers:
            return self._handlers[obj_type]
        # Subclasses (native classes and instances) fall back to isinstance checks.
        if isinstance(obj, RouxClass):
            return self._pformat_class
        if isinstance(obj, RouxInstance):
            return self._pformat_instance
        return repr

    def _create_handlers(self):
        return {
            str: self._pformat_str,
            float: self._pformat_number,
            int: self._pformat_number,
            bool: self._pformat_bool,
            type(None): self._pformat_none,
            RouxFunction: self._pformat_function,
            RouxLambda: self._pformat_lambda,
            NativeFunction: self._pformat_native,
            RouxClass: self._pformat_class,
            RouxInstance: self._pformat_instance,
        }

    def _pformat_str(self, obj):
        return obj

    def _pformat_number(self, obj):
        obj = float(obj)
        if math.isnan(obj):
            return "NaN"
        if math.isinf(obj):
            return "Infinity" if obj > 0 else "-Infinity"
        if obj == 0 and math.copysign(1.0, obj) < 0:
            return "-0"
        # Integral values print without a trailing ".0".
        if obj.is_integer() and abs(obj) < 1e16:
            return str(int(obj))
        return repr(obj)

    def _pformat_bool(self, obj):
        return 'true' if obj else 'false'

    def _pformat_none(self, obj):
        return 'null'

    def _pformat_function(self, obj):
        return f"<fn {obj.name}>"

    def _pformat_lambda(self, obj):
        return "<lambda fn>"

    def _pformat_native(self, obj):
        return f"<native fn {obj.name}>"

    def _pformat_class(self, obj):
        return obj.name

    def _pformat_instance(self, obj):
        return f"<{obj.klass.name} instance>"


class AstPrinter:
    """Renders expression trees in a fully parenthesized prefix form.

    Useful for checking how the parser grouped an expression, e.g.
    `1 + 2 * 3` renders as `(+ 1 (* 2 3))`.
    """

    def __init__(self):
        self._values = Printer()

    def pformat(self, expr) -> str:
        match expr:
            case Literal():
                return self._values.pformat(expr.value)
            case Grouping():
                return self._parenthesize("group", expr.expression)
            case Unary():
                return self._parenthesize(expr.operator.lexeme, expr.right)
            case Binary() | Logical():
                return self._parenthesize(expr.operator.lexeme, expr.left, expr.right)
            case Ternary():
                return self._parenthesize("?:", expr.condition, expr.then_branch, expr.else_branch)
            case Assign():
                return f"(= {expr.name.lexeme} {self.pformat(expr.value)})"
            case Suffix():
                return f"(post{expr.operator.lexeme} {expr.name.lexeme})"
            case Variable():
                return expr.name.lexeme
            case Call():
                return self._parenthesize("call", expr.callee, *expr.arguments)
            case Get():
                return f"(get {self.pformat(expr.object)} {expr.name.lexeme})"
            case Set():
                obj = self.pformat(expr.object)
                value = self.pformat(expr.value)
                if expr.operator is not None:
                    value = f"({expr.operator.lexeme} (get {obj} {expr.name.lexeme}) {value})"
                return f"(set {obj} {expr.name.lexeme} {value})"
            case Subscript():
                return self._parenthesize("index", expr.object, expr.index)
            case SubscriptSet():
                obj, index = self.pformat(expr.object), self.pformat(expr.index)
                value = self.pformat(expr.value)
                if expr.operator is not None:
                    value = f"({expr.operator.lexeme} (index {obj} {index}) {value})"
                return f"(index-set {obj} {index} {value})"
            case This():
                return "this"
            case Lambda():
                params = " ".join(p.lexeme for p in expr.params)
                return f"(lambda ({params}))"
            case _:
                raise TypeError(f"Cannot print syntax node {type(expr).__name__}")

    def _parenthesize(self, name, *exprs) -> str:
        parts = [name] + [self.pformat(e) for e in exprs]
        return f"({' '.join(parts)})"

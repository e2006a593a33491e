"""
Defines the core data types for the Roux language runtime.

This module provides the scope frames, control-flow completions, callables,
classes and instances that the interpreter works with, along with the
exceptions raised across the pipeline.
"""

import inspect
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, TYPE_CHECKING

from roux.roux_tokens import Token

if TYPE_CHECKING:
    from roux.roux_ast import Function, Lambda
    from roux.roux_interpreter import Interpreter


# =================================================================
# Exceptions
# =================================================================

class RouxError(Exception):
    """Base class for every error raised by the Roux pipeline."""


class ParseError(RouxError):
    def __init__(self, token: Token, message: str):
        super().__init__(message)
        self.token = token


class ResolveError(RouxError):
    def __init__(self, token: Token, message: str):
        super().__init__(message)
        self.token = token


class RouxRuntimeError(RouxError):
    """A fatal error raised while evaluating a program.

    `token` points at the offending operator, name or call site; it is None for
    errors raised by host calls that have no source location.
    """
    def __init__(self, token: Optional[Token], message: str):
        super().__init__(message)
        self.token = token
        self.message = message


class PathNotFound(RouxError):
    def __init__(self, key: str):
        super().__init__(key)
        self.key = key


# =================================================================
# Control flow
# =================================================================

class Signal(Enum):
    NORMAL = "normal"
    RETURN = "return"
    BREAK = "break"
    CONTINUE = "continue"


class Completion:
    """The outcome of executing a statement.

    Return, break and continue travel back up the tree as values rather than
    exceptions, so routine control flow never shares a channel with errors.
    """
    __slots__ = ("signal", "value")

    def __init__(self, signal: Signal, value: Any = None):
        self.signal = signal
        self.value = value

    @property
    def is_abrupt(self) -> bool:
        return self.signal is not Signal.NORMAL

    def __repr__(self) -> str:
        if self.signal is Signal.RETURN:
            return f"Completion(return {self.value!r})"
        return f"Completion({self.signal.value})"


NORMAL = Completion(Signal.NORMAL)
BREAK = Completion(Signal.BREAK)
CONTINUE = Completion(Signal.CONTINUE)


def is_return(x) -> bool:
    return isinstance(x, Completion) and x.signal is Signal.RETURN


# =================================================================
# Scope frames
# =================================================================

class Environment:
    """A scope frame: name bindings plus a link to the enclosing frame.

    The enclosing link is fixed at construction. Frames captured by closures
    outlive the call that created them; the host garbage collector reclaims
    them once no closure or active call refers to them.
    """
    def __init__(self, enclosing: Optional['Environment'] = None):
        self.values: Dict[str, Any] = {}
        self._enclosing = enclosing

    @property
    def enclosing(self) -> Optional['Environment']:
        return self._enclosing

    def define(self, name: str, value: Any):
        # Redefinition in the same frame is allowed (globals, REPL sessions).
        self.values[name] = value

    def get(self, name: Token) -> Any:
        env = self
        while env is not None:
            if name.lexeme in env.values:
                return env.values[name.lexeme]
            env = env._enclosing
        raise RouxRuntimeError(name, f"Undefined variable '{name.lexeme}'.")

    def assign(self, name: Token, value: Any):
        env = self
        while env is not None:
            if name.lexeme in env.values:
                env.values[name.lexeme] = value
                return
            env = env._enclosing
        raise RouxRuntimeError(name, f"Undefined variable '{name.lexeme}'.")

    def get_at(self, distance: int, name: str) -> Any:
        return self.ancestor(distance).values[name]

    def assign_at(self, distance: int, name: Token, value: Any):
        self.ancestor(distance).values[name.lexeme] = value

    def ancestor(self, distance: int) -> 'Environment':
        env = self
        for _ in range(distance):
            env = env._enclosing
        return env

    def fetch(self, name: str, check_enclosing: bool = False) -> Any:
        """Looks a name up by text, for host-side access without a token."""
        env = self
        while env is not None:
            if name in env.values:
                return env.values[name]
            if not check_enclosing:
                break
            env = env._enclosing
        raise PathNotFound(name)

    def __repr__(self) -> str:
        keys = ', '.join(self.values.keys())
        enclosing = f", enclosing=#{id(self._enclosing)}" if self._enclosing else ""
        return f"<Environment values=[{keys}]{enclosing}>"


# =================================================================
# Callables
# =================================================================

class RouxCallable(ABC):
    """Abstract base class for all objects callable within Roux."""

    @abstractmethod
    def arity(self) -> int:
        raise NotImplementedError

    @abstractmethod
    def call(self, interpreter: 'Interpreter', arguments: List[Any]) -> Any:
        raise NotImplementedError


class RouxFunction(RouxCallable):
    """A function or method declared in Roux source.

    This is a closure, bundling the declaration with the frame that was
    active when it was declared.
    """
    def __init__(self, declaration: 'Function', closure: Environment, is_initializer: bool = False):
        self.declaration = declaration
        self.closure = closure
        self.is_initializer = is_initializer

    @property
    def name(self) -> str:
        return self.declaration.name.lexeme

    def arity(self) -> int:
        return len(self.declaration.params)

    def bind(self, instance: 'RouxInstance') -> 'RouxFunction':
        """Wraps the closure in a frame that defines `this` as `instance`."""
        env = Environment(self.closure)
        env.define("this", instance)
        return RouxFunction(self.declaration, env, self.is_initializer)

    def call(self, interpreter: 'Interpreter', arguments: List[Any]) -> Any:
        env = Environment(self.closure)
        for param, arg in zip(self.declaration.params, arguments):
            env.define(param.lexeme, arg)
        completion = interpreter.execute_block(self.declaration.body, env)
        if self.is_initializer:
            return self.closure.get_at(0, "this")
        if is_return(completion):
            return completion.value
        return None

    def __repr__(self) -> str:
        return f"<fn {self.name}>"


class RouxLambda(RouxCallable):
    """An anonymous `fun (...) { ... }` expression closed over its frame."""
    def __init__(self, declaration: 'Lambda', closure: Environment):
        self.declaration = declaration
        self.closure = closure

    @property
    def name(self) -> str:
        return "lambda"

    def arity(self) -> int:
        return len(self.declaration.params)

    def call(self, interpreter: 'Interpreter', arguments: List[Any]) -> Any:
        env = Environment(self.closure)
        for param, arg in zip(self.declaration.params, arguments):
            env.define(param.lexeme, arg)
        completion = interpreter.execute_block(self.declaration.body, env)
        if is_return(completion):
            return completion.value
        return None

    def __repr__(self) -> str:
        return "<lambda fn>"


class NativeFunction(RouxCallable):
    """Wraps a Python callable so scripts can call it like any Roux function.

    Arity is taken from the Python signature unless given explicitly. Return
    values are converted into the Roux value domain.
    """
    def __init__(self, name: str, func: Callable, arity: Optional[int] = None):
        self.name = name
        self.func = func
        self._arity = arity if arity is not None else _positional_arity(func)

    def arity(self) -> int:
        return self._arity

    def call(self, interpreter: 'Interpreter', arguments: List[Any]) -> Any:
        return to_roux_value(self.func(*arguments))

    def __repr__(self) -> str:
        return f"<native fn {self.name}>"


def _positional_arity(func: Callable) -> int:
    params = inspect.signature(func).parameters.values()
    return sum(
        1 for p in params
        if p.kind in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)
        and p.default is inspect.Parameter.empty
    )


# =================================================================
# Classes and instances
# =================================================================

class RouxInstance:
    """An object created by calling a class. Fields are created on first assignment."""
    def __init__(self, klass: Optional['RouxClass']):
        self.klass = klass
        self.fields: Dict[str, Any] = {}

    def get(self, name: Token) -> Any:
        if name.lexeme in self.fields:
            return self.fields[name.lexeme]
        method = self.klass.find_static_method(name.lexeme)
        if method is not None:
            return method
        method = self.klass.find_method(name.lexeme)
        if isinstance(method, RouxFunction):
            return method.bind(self)
        if method is not None:
            return method
        raise RouxRuntimeError(name, f"Undefined property '{name.lexeme}'.")

    def set(self, name: Token, value: Any):
        self.fields[name.lexeme] = value

    def __repr__(self) -> str:
        return f"<{self.klass.name} instance>"


class RouxClass(RouxCallable):
    """A class value. Calling it constructs an instance.

    Instance methods are bound to the receiver on lookup; static methods are
    returned as-is. The optional base expression is evaluated and kept but
    plays no part in method or constructor lookup.
    """
    CONSTRUCTOR = "construct"

    def __init__(self, name: str, methods: Dict[str, RouxCallable],
                 static_methods: Dict[str, RouxCallable], base: Optional['RouxClass'] = None):
        self.name = name
        self.methods = methods
        self.static_methods = static_methods
        self.base = base

    def find_method(self, name: str) -> Optional[RouxCallable]:
        return self.methods.get(name)

    def find_static_method(self, name: str) -> Optional[RouxCallable]:
        return self.static_methods.get(name)

    def get(self, name: Token) -> Any:
        method = self.find_static_method(name.lexeme)
        if method is not None:
            return method
        raise RouxRuntimeError(name, f"Undefined static method '{name.lexeme}'.")

    def arity(self) -> int:
        constructor = self.find_method(self.CONSTRUCTOR)
        return constructor.arity() if constructor is not None else 0

    def call(self, interpreter: 'Interpreter', arguments: List[Any]) -> Any:
        instance = RouxInstance(self)
        constructor = self.find_method(self.CONSTRUCTOR)
        if isinstance(constructor, RouxFunction):
            constructor.bind(instance).call(interpreter, arguments)
        return instance

    def __repr__(self) -> str:
        return self.name


def roux_api_method(func):
    """A decorator to explicitly mark backing-class methods as callable from Roux."""
    func._is_roux_api = True
    return func


def _camel_case(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


class NativeInstance(RouxInstance):
    """An instance of a native class.

    Its methods are closures over a private Python backing object, so scripts
    see them exactly like script-defined methods.
    """
    def __init__(self, klass: 'NativeClass', backing: Any):
        super().__init__(klass)
        self.backing = backing
        self.native_methods: Dict[str, NativeFunction] = {}
        for name, member in inspect.getmembers(backing):
            if not callable(member):
                continue
            is_api = getattr(member, "_is_roux_api", False)
            if not is_api:
                func = getattr(member, "__func__", None)
                is_api = getattr(func, "_is_roux_api", False) if func is not None else False
            if not is_api:
                continue
            roux_name = _camel_case(name)
            self.native_methods[roux_name] = NativeFunction(roux_name, member)

    def get(self, name: Token) -> Any:
        if name.lexeme in self.fields:
            return self.fields[name.lexeme]
        if name.lexeme in self.native_methods:
            return self.native_methods[name.lexeme]
        return super().get(name)


class NativeClass(RouxClass):
    """A class whose instances are backed by a host-side Python object.

    Calling the class constructs the backing object with the call's arguments;
    the class arity is the backing constructor's positional parameter count.
    """
    def __init__(self, name: str, backing_type: type,
                 static_methods: Optional[Dict[str, RouxCallable]] = None):
        super().__init__(name, {}, static_methods or {})
        self.backing_type = backing_type

    def arity(self) -> int:
        return _positional_arity(self.backing_type)

    def call(self, interpreter: 'Interpreter', arguments: List[Any]) -> Any:
        return NativeInstance(self, self.backing_type(*arguments))


# =================================================================
# Host value conversion
# =================================================================

def to_roux_value(value: Any) -> Any:
    """Converts a host value into the Roux value domain.

    Numbers widen to float; plain Python callables become native functions.
    Values with no Roux counterpart raise TypeError.
    """
    match value:
        case None | bool() | str() | float():
            return value
        case int():
            return float(value)
        case RouxCallable() | RouxInstance() | Environment():
            return value
        case _ if callable(value):
            return NativeFunction(getattr(value, "__name__", "native"), value)
        case _:
            raise TypeError(f"Cannot convert host value of type {type(value).__name__} to a Roux value")

"""
The embedding surface for Roux: runs source through the whole pipeline and
lets a host call into, inspect and extend the global frame.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Literal, Optional, Tuple

from roux.roux_config import RouxConfig
from roux.roux_datatypes import (
    Environment, RouxClass, RouxInstance, RouxRuntimeError, PathNotFound, to_roux_value
)
from roux.roux_interpreter import Interpreter
from roux.roux_parser import Parser
from roux.roux_printer import AstPrinter
from roux.roux_reporter import ErrorReporter, RouxIO
from roux.roux_resolver import Resolver
from roux.roux_scanner import Scanner
from roux.roux_stdlib import LibraryBinder, StandardLibrary
from roux.roux_tokens import Token, TokenType


@dataclass
class ExecutionResult:
    """The structured result of running or evaluating source."""
    status: Literal['success', 'error']
    value: Any = None
    error_message: Optional[str] = None
    error_token: Optional[Token] = None
    side_effects: List[Dict] = field(default_factory=list)

    def format_error(self) -> str:
        """Formats the error message with its line when a token is known."""
        if self.status != 'error':
            return ""
        msg = str(self.error_message or "Unknown error")
        if self.error_token is not None and not msg.startswith("[line "):
            return f"[line {self.error_token.line}] {msg}"
        return msg


class Runtime:
    """One independent Roux world: a global frame, an evaluator and its diagnostics.

    Runtimes share no state, so a host may create one per concurrent caller.
    A failed run leaves the error flags set; `run` and `evaluate` refuse to
    start again until `reset_error_system()` is called.
    """

    def __init__(self, io: Optional[RouxIO] = None, config: Optional[RouxConfig] = None,
                 binders: Optional[Iterable[LibraryBinder]] = None):
        self.config = config or RouxConfig()
        self.io = io or RouxIO()
        self.reporter = ErrorReporter(self.io, self.config)
        self.interpreter = Interpreter(self.io, self.reporter, self.config)
        self.ast_printer = AstPrinter()

        if self.config.load_stdlib:
            self.bind(StandardLibrary())
        for binder in binders or ():
            self.bind(binder)

    @property
    def globals(self) -> Environment:
        return self.interpreter.globals

    def _dbg(self, *parts):
        self.interpreter._dbg(*parts)

    def bind(self, binder: LibraryBinder):
        """Lets a library binder define its native values in the global frame."""
        self._dbg("bind:", type(binder).__name__)
        binder.bind(self)

    # =================================================================
    # Pipeline
    # =================================================================

    def run(self, source: str) -> ExecutionResult:
        """Scans, parses, resolves and executes a program."""
        refused = self._refuse_if_failed()
        if refused is not None:
            return refused
        self._begin_run()

        tokens = Scanner(source, self.reporter).scan_tokens()
        self._dbg("scan:", len(tokens), "token(s)")
        statements = Parser(tokens, self.reporter, self.config).parse()
        if self.reporter.had_error:
            return self._result()
        self._dbg("parse:", len(statements), "statement(s)")

        self._resolve(tokens, lambda resolver: resolver.resolve(statements))
        if self.reporter.had_error:
            return self._result()

        self.interpreter.interpret(statements)
        return self._result()

    def evaluate(self, source: str) -> ExecutionResult:
        """Evaluates a single expression and returns its value in the result."""
        refused = self._refuse_if_failed()
        if refused is not None:
            return refused
        self._begin_run()

        tokens = Scanner(source, self.reporter).scan_tokens()
        expr = Parser(tokens, self.reporter, self.config).parse_expression()
        if self.reporter.had_error or expr is None:
            return self._result()
        self._dbg("ast:", self.ast_printer.pformat(expr))

        self._resolve(tokens, lambda resolver: resolver.resolve_expression(expr))
        if self.reporter.had_error:
            return self._result()

        value = self.interpreter.interpret_expression(expr)
        return self._result(value)

    def _resolve(self, tokens: List[Token], resolve):
        try:
            resolve(Resolver(self.interpreter, self.reporter))
        except RecursionError:
            self.reporter.error(tokens[-1].line, "Expression nested too deeply.")

    def reset_error_system(self):
        """Clears the error flags so the next run can proceed."""
        self.reporter.reset()

    def _begin_run(self):
        # Only warnings can be left over here; a failed run is refused earlier.
        self.io.clear()
        self.reporter.diagnostics.clear()

    def _refuse_if_failed(self) -> Optional[ExecutionResult]:
        if not (self.reporter.had_error or self.reporter.had_runtime_error):
            return None
        return ExecutionResult(
            status='error',
            error_message="A previous run failed; call reset_error_system() before running again.",
        )

    def _result(self, value: Any = None) -> ExecutionResult:
        effects = list(self.io.side_effects)
        errors = self.reporter.errors
        if errors:
            first = errors[0]
            return ExecutionResult(status='error', error_message=first.message,
                                   error_token=first.token, side_effects=effects)
        return ExecutionResult(status='success', value=value, side_effects=effects)

    # =================================================================
    # Host interaction
    # =================================================================

    def call_function(self, address_or_callable, *args) -> Any:
        """Calls a Roux callable, given directly or by dotted address."""
        callee = address_or_callable
        if isinstance(address_or_callable, str):
            callee = self.get_value(address_or_callable)
        arguments = [to_roux_value(arg) for arg in args]
        return self.interpreter.call_value(callee, arguments, None)

    def create_instance(self, class_name_or_class, *args) -> RouxInstance:
        """Instantiates a Roux class, given directly or by dotted address."""
        klass = class_name_or_class
        if isinstance(class_name_or_class, str):
            klass = self.get_value(class_name_or_class)
        if not isinstance(klass, RouxClass):
            raise RouxRuntimeError(None, f"'{class_name_or_class}' is not a class.")
        arguments = [to_roux_value(arg) for arg in args]
        return self.interpreter.call_value(klass, arguments, None)

    def get_value(self, address: str) -> Any:
        """Fetches the value at a dotted address such as `game.player.name`."""
        container, name = self._address_to_container(address)
        return self._fetch(container, name)

    def set_value(self, address: str, value: Any):
        """Assigns the value at a dotted address, creating the final name if needed."""
        container, name = self._address_to_container(address)
        value = to_roux_value(value)
        match container:
            case Environment():
                container.define(name, value)
            case RouxInstance():
                container.fields[name] = value
            case _:
                raise PathNotFound(address)

    def define_value(self, name: str, value: Any):
        """Defines (or redefines) a global, converting host values first."""
        self.globals.define(name, to_roux_value(value))

    def _address_to_container(self, address: str) -> Tuple[Any, str]:
        *parents, last = address.split(".")
        container = self.globals
        for part in parents:
            container = self._fetch(container, part)
        return container, last

    def _fetch(self, container: Any, name: str) -> Any:
        match container:
            case Environment():
                return container.fetch(name)
            case RouxInstance():
                try:
                    return container.get(Token(TokenType.IDENTIFIER, name, None, 0))
                except RouxRuntimeError:
                    raise PathNotFound(name) from None
            case RouxClass():
                method = container.find_static_method(name)
                if method is None:
                    raise PathNotFound(name)
                return method
            case _:
                raise PathNotFound(name)

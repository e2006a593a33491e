"""
I/O hooks and diagnostic reporting for the Roux pipeline.
"""
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

import pystache

from roux.roux_config import RouxConfig
from roux.roux_datatypes import RouxRuntimeError
from roux.roux_tokens import Token, TokenType


def _ignore(message: str) -> None:
    return None


class RouxIO:
    """Decouples the interpreter from any concrete console or stream.

    Each hook receives one message. Every emitted message is also recorded in
    `side_effects` as `{'topics': [...], 'message': ...}` until cleared, so a
    host can inspect what a run produced without installing hooks.
    """
    def __init__(self,
                 on_output: Optional[Callable[[str], None]] = None,
                 on_error: Optional[Callable[[str], None]] = None,
                 on_input: Optional[Callable[[str], None]] = None):
        self.on_output = on_output or _ignore
        self.on_error = on_error or _ignore
        self.on_input = on_input or _ignore
        self.side_effects: List[Dict] = []

    def output(self, message: str):
        self.side_effects.append({'topics': ['stdout'], 'message': message})
        self.on_output(message)

    def error(self, message: str, topic: str = 'stderr'):
        self.side_effects.append({'topics': [topic], 'message': message})
        self.on_error(message)

    def input(self, message: str):
        self.side_effects.append({'topics': ['stdin'], 'message': message})
        self.on_input(message)

    def clear(self):
        self.side_effects.clear()


@dataclass
class Diagnostic:
    """One reported problem, kept for hosts and tests to inspect."""
    severity: str  # 'error', 'warning' or 'runtime_error'
    line: Optional[int]
    where: str
    message: str
    rendered: str
    token: Optional[Token] = None


class ErrorReporter:
    """Collects lex, parse, resolve and runtime diagnostics.

    Errors raise `had_error`; runtime errors raise `had_runtime_error`. Both
    flags stay set until `reset()` so a host can tell that a run failed.
    Messages are rendered through the mustache templates in the config.
    """
    def __init__(self, io: RouxIO, config: Optional[RouxConfig] = None):
        self.io = io
        self.config = config or RouxConfig()
        self.had_error = False
        self.had_runtime_error = False
        self.diagnostics: List[Diagnostic] = []
        self._renderer = pystache.Renderer(escape=lambda u: u)

    def reset(self):
        self.had_error = False
        self.had_runtime_error = False
        self.diagnostics.clear()

    @property
    def errors(self) -> List[Diagnostic]:
        return [d for d in self.diagnostics if d.severity != 'warning']

    @property
    def warnings(self) -> List[Diagnostic]:
        return [d for d in self.diagnostics if d.severity == 'warning']

    def error(self, line: int, message: str):
        """Reports an error known only by its line (scanner errors)."""
        self._report('error', line, "", message)
        self.had_error = True

    def error_at(self, token: Token, message: str):
        self._report('error', token.line, self._where(token), message, token)
        self.had_error = True

    def warning(self, token: Token, message: str):
        if not self.config.warnings:
            return
        self._report('warning', token.line, self._where(token), message, token)

    def runtime_error(self, error: RouxRuntimeError):
        token = error.token
        line = token.line if token is not None else None
        self._report('runtime_error', line, "", error.message, token)
        self.had_runtime_error = True

    def _where(self, token: Token) -> str:
        if token.type == TokenType.EOF:
            return " at end"
        return f" at '{token.lexeme}'"

    def _report(self, severity: str, line: Optional[int], where: str, message: str,
                token: Optional[Token] = None):
        template = self.config.templates[severity]
        context = {'line': line if line is not None else '?', 'where': where, 'message': message}
        rendered = self._renderer.render(template, context)
        self.diagnostics.append(Diagnostic(severity, line, where, message, rendered, token))
        self.io.error(rendered, topic='warning' if severity == 'warning' else 'stderr')

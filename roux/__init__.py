"""
Roux: a small embeddable scripting language.
"""
from roux.roux_config import RouxConfig, load_config
from roux.roux_datatypes import (
    RouxError, ParseError, ResolveError, RouxRuntimeError, PathNotFound,
    RouxClass, RouxInstance, RouxFunction, RouxLambda, NativeFunction, NativeClass,
    roux_api_method,
)
from roux.roux_reporter import RouxIO, ErrorReporter
from roux.roux_runtime import Runtime, ExecutionResult
from roux.roux_stdlib import LibraryBinder, StandardLibrary

__all__ = [
    "Runtime", "ExecutionResult", "RouxIO", "ErrorReporter", "RouxConfig", "load_config",
    "RouxError", "ParseError", "ResolveError", "RouxRuntimeError", "PathNotFound",
    "RouxClass", "RouxInstance", "RouxFunction", "RouxLambda", "NativeFunction", "NativeClass",
    "roux_api_method", "LibraryBinder", "StandardLibrary",
]

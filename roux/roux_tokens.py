"""
Token types and the immutable Token record produced by the scanner.
"""
from dataclasses import dataclass
from enum import Enum, auto
from typing import Any


class TokenType(Enum):
    # Single-character tokens
    LEFT_PAREN = auto()
    RIGHT_PAREN = auto()
    LEFT_BRACE = auto()
    RIGHT_BRACE = auto()
    LEFT_BRACKET = auto()
    RIGHT_BRACKET = auto()
    COMMA = auto()
    DOT = auto()
    MINUS = auto()
    PLUS = auto()
    SEMICOLON = auto()
    COLON = auto()
    QUESTION = auto()
    SLASH = auto()
    STAR = auto()
    PERCENT = auto()

    # One or two character tokens
    AMPERSAND = auto()
    AMPERSAND_EQUAL = auto()
    BAR = auto()
    BAR_EQUAL = auto()
    CARET = auto()
    CARET_EQUAL = auto()
    BANG = auto()
    BANG_EQUAL = auto()
    EQUAL = auto()
    EQUAL_EQUAL = auto()
    GREATER = auto()
    GREATER_EQUAL = auto()
    LESS = auto()
    LESS_EQUAL = auto()
    PLUS_EQUAL = auto()
    MINUS_EQUAL = auto()
    SLASH_EQUAL = auto()
    STAR_EQUAL = auto()
    PERCENT_EQUAL = auto()
    PLUS_PLUS = auto()
    MINUS_MINUS = auto()

    # Literals
    IDENTIFIER = auto()
    STRING = auto()
    NUMBER = auto()

    # Keywords
    AND = auto()
    BASE = auto()
    BREAK = auto()
    CLASS = auto()
    CONTINUE = auto()
    ELSE = auto()
    FALSE = auto()
    FOR = auto()
    FUN = auto()
    IF = auto()
    NULL = auto()
    OPERATOR = auto()
    OR = auto()
    PRIVATE = auto()
    PROTECTED = auto()
    PUBLIC = auto()
    PRINT = auto()
    RETURN = auto()
    STATIC = auto()
    THIS = auto()
    TRUE = auto()
    VAR = auto()
    WHILE = auto()

    EOF = auto()


KEYWORDS = {
    "and": TokenType.AND,
    "base": TokenType.BASE,
    "break": TokenType.BREAK,
    "class": TokenType.CLASS,
    "continue": TokenType.CONTINUE,
    "else": TokenType.ELSE,
    "false": TokenType.FALSE,
    "for": TokenType.FOR,
    "fun": TokenType.FUN,
    "if": TokenType.IF,
    "null": TokenType.NULL,
    "operator": TokenType.OPERATOR,
    "or": TokenType.OR,
    "private": TokenType.PRIVATE,
    "protected": TokenType.PROTECTED,
    "public": TokenType.PUBLIC,
    "print": TokenType.PRINT,
    "return": TokenType.RETURN,
    "static": TokenType.STATIC,
    "this": TokenType.THIS,
    "true": TokenType.TRUE,
    "var": TokenType.VAR,
    "while": TokenType.WHILE,
}

# Compound assignment operator -> the binary operator it applies.
COMPOUND_OPERATORS = {
    TokenType.PLUS_EQUAL: (TokenType.PLUS, "+"),
    TokenType.MINUS_EQUAL: (TokenType.MINUS, "-"),
    TokenType.STAR_EQUAL: (TokenType.STAR, "*"),
    TokenType.SLASH_EQUAL: (TokenType.SLASH, "/"),
    TokenType.PERCENT_EQUAL: (TokenType.PERCENT, "%"),
    TokenType.AMPERSAND_EQUAL: (TokenType.AMPERSAND, "&"),
    TokenType.BAR_EQUAL: (TokenType.BAR, "|"),
    TokenType.CARET_EQUAL: (TokenType.CARET, "^"),
}


@dataclass(frozen=True)
class Token:
    """A single lexeme of Roux source, tagged with its type and source line."""
    type: TokenType
    lexeme: str
    literal: Any
    line: int

    def copy(self, new_type: TokenType, new_lexeme: str = "") -> 'Token':
        """Derives a synthetic token at the same line, e.g. `+` from `+=`."""
        return Token(new_type, new_lexeme or self.lexeme, self.literal, self.line)

    def __str__(self) -> str:
        return f"{self.type.name} {self.lexeme} {self.literal}"

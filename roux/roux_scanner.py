"""
Turns Roux source text into a flat list of tokens.
"""
from typing import Any, List, Optional

from roux.roux_tokens import Token, TokenType, KEYWORDS


# Characters that may follow an operator to form a two-character token.
_EQUAL_SUFFIXED = {
    "*": (TokenType.STAR_EQUAL, TokenType.STAR),
    "%": (TokenType.PERCENT_EQUAL, TokenType.PERCENT),
    "|": (TokenType.BAR_EQUAL, TokenType.BAR),
    "&": (TokenType.AMPERSAND_EQUAL, TokenType.AMPERSAND),
    "^": (TokenType.CARET_EQUAL, TokenType.CARET),
    "!": (TokenType.BANG_EQUAL, TokenType.BANG),
    "=": (TokenType.EQUAL_EQUAL, TokenType.EQUAL),
    "<": (TokenType.LESS_EQUAL, TokenType.LESS),
    ">": (TokenType.GREATER_EQUAL, TokenType.GREATER),
}

_SINGLE = {
    "(": TokenType.LEFT_PAREN,
    ")": TokenType.RIGHT_PAREN,
    "{": TokenType.LEFT_BRACE,
    "}": TokenType.RIGHT_BRACE,
    "[": TokenType.LEFT_BRACKET,
    "]": TokenType.RIGHT_BRACKET,
    ",": TokenType.COMMA,
    ".": TokenType.DOT,
    ";": TokenType.SEMICOLON,
    ":": TokenType.COLON,
    "?": TokenType.QUESTION,
}


class Scanner:
    """Scans a source string into tokens.

    Lexical problems (an unterminated string, a stray character) are reported
    to the error reporter with their line number; scanning carries on so that
    one pass surfaces every lexical error in the source.
    """

    def __init__(self, source: str, reporter):
        self.source = source
        self.reporter = reporter
        self.tokens: List[Token] = []
        self.start = 0
        self.current = 0
        self.line = 1

    def scan_tokens(self) -> List[Token]:
        while not self._at_end():
            self.start = self.current
            self._scan_token()
        self.tokens.append(Token(TokenType.EOF, "", None, self.line))
        return self.tokens

    def _scan_token(self):
        c = self._advance()
        match c:
            case _ if c in _SINGLE:
                self._add_token(_SINGLE[c])
            case "-":
                if self._match("-"):
                    self._add_token(TokenType.MINUS_MINUS)
                elif self._match("="):
                    self._add_token(TokenType.MINUS_EQUAL)
                else:
                    self._add_token(TokenType.MINUS)
            case "+":
                if self._match("+"):
                    self._add_token(TokenType.PLUS_PLUS)
                elif self._match("="):
                    self._add_token(TokenType.PLUS_EQUAL)
                else:
                    self._add_token(TokenType.PLUS)
            case _ if c in _EQUAL_SUFFIXED:
                with_equal, alone = _EQUAL_SUFFIXED[c]
                self._add_token(with_equal if self._match("=") else alone)
            case "/":
                if self._match("/"):
                    self._line_comment()
                elif self._match("*"):
                    self._block_comment()
                elif self._match("="):
                    self._add_token(TokenType.SLASH_EQUAL)
                else:
                    self._add_token(TokenType.SLASH)
            case '"' | "'":
                self._string(c)
            case " " | "\r" | "\t":
                pass
            case "\n":
                self.line += 1
            case _:
                if self._is_digit(c):
                    self._number()
                elif self._is_alpha(c):
                    self._identifier()
                else:
                    self.reporter.error(self.line, "Unexpected character.")

    def _line_comment(self):
        while self._peek() != "\n" and not self._at_end():
            self.current += 1

    def _block_comment(self):
        while not self._at_end():
            if self._peek() == "*" and self._peek_next() == "/":
                self.current += 2
                return
            if self._peek() == "\n":
                self.line += 1
            self.current += 1

    def _string(self, quote: str):
        while self._peek() != quote and not self._at_end():
            if self._peek() == "\n":
                self.line += 1
            self.current += 1

        if self._at_end():
            self.reporter.error(self.line, "Unterminated string.")
            return

        self.current += 1  # closing quote
        value = self.source[self.start + 1:self.current - 1]
        self._add_token(TokenType.STRING, value)

    def _number(self):
        while self._is_digit(self._peek()):
            self.current += 1

        # A fractional part needs at least one digit after the dot.
        if self._peek() == "." and self._is_digit(self._peek_next()):
            self.current += 1
            while self._is_digit(self._peek()):
                self.current += 1

        self._add_token(TokenType.NUMBER, float(self.source[self.start:self.current]))

    def _identifier(self):
        while self._is_alpha(self._peek()) or self._is_digit(self._peek()):
            self.current += 1
        text = self.source[self.start:self.current]
        self._add_token(KEYWORDS.get(text, TokenType.IDENTIFIER))

    # --- Helpers ---

    @staticmethod
    def _is_digit(c: str) -> bool:
        return "0" <= c <= "9"

    @staticmethod
    def _is_alpha(c: str) -> bool:
        return ("a" <= c <= "z") or ("A" <= c <= "Z") or c == "_"

    def _add_token(self, token_type: TokenType, literal: Optional[Any] = None):
        lexeme = self.source[self.start:self.current]
        self.tokens.append(Token(token_type, lexeme, literal, self.line))

    def _match(self, expected: str) -> bool:
        if self._at_end() or self.source[self.current] != expected:
            return False
        self.current += 1
        return True

    def _advance(self) -> str:
        c = self.source[self.current]
        self.current += 1
        return c

    def _peek(self) -> str:
        if self._at_end():
            return "\0"
        return self.source[self.current]

    def _peek_next(self) -> str:
        if self.current + 1 >= len(self.source):
            return "\0"
        return self.source[self.current + 1]

    def _at_end(self) -> bool:
        return self.current >= len(self.source)

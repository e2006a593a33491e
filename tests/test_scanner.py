import pytest

from roux.roux_reporter import ErrorReporter, RouxIO
from roux.roux_scanner import Scanner
from roux.roux_tokens import TokenType as T


def scan(src: str):
    reporter = ErrorReporter(RouxIO())
    tokens = Scanner(src, reporter).scan_tokens()
    return tokens, reporter


def types(tokens):
    return [t.type for t in tokens]


SCAN_CASES = [
    ("plus_family", "+ ++ +=", [T.PLUS, T.PLUS_PLUS, T.PLUS_EQUAL, T.EOF]),
    ("minus_family", "- -- -=", [T.MINUS, T.MINUS_MINUS, T.MINUS_EQUAL, T.EOF]),
    ("greedy_longest_match", "+++", [T.PLUS_PLUS, T.PLUS, T.EOF]),
    ("slash_family", "/ /=", [T.SLASH, T.SLASH_EQUAL, T.EOF]),
    ("equal_suffixed", "* *= % %= | |= & &= ^ ^=",
     [T.STAR, T.STAR_EQUAL, T.PERCENT, T.PERCENT_EQUAL, T.BAR, T.BAR_EQUAL,
      T.AMPERSAND, T.AMPERSAND_EQUAL, T.CARET, T.CARET_EQUAL, T.EOF]),
    ("comparison", "! != = == < <= > >=",
     [T.BANG, T.BANG_EQUAL, T.EQUAL, T.EQUAL_EQUAL, T.LESS, T.LESS_EQUAL,
      T.GREATER, T.GREATER_EQUAL, T.EOF]),
    ("single_characters", "( ) { } [ ] , . ; : ?",
     [T.LEFT_PAREN, T.RIGHT_PAREN, T.LEFT_BRACE, T.RIGHT_BRACE, T.LEFT_BRACKET,
      T.RIGHT_BRACKET, T.COMMA, T.DOT, T.SEMICOLON, T.COLON, T.QUESTION, T.EOF]),
    ("keywords", "class fun var this null static while",
     [T.CLASS, T.FUN, T.VAR, T.THIS, T.NULL, T.STATIC, T.WHILE, T.EOF]),
    ("reserved_keywords", "base operator private protected public",
     [T.BASE, T.OPERATOR, T.PRIVATE, T.PROTECTED, T.PUBLIC, T.EOF]),
    ("identifiers", "_foo1 bar classy",
     [T.IDENTIFIER, T.IDENTIFIER, T.IDENTIFIER, T.EOF]),
    ("no_whitespace", "1-1", [T.NUMBER, T.MINUS, T.NUMBER, T.EOF]),
]


@pytest.mark.parametrize(
    "test_id, src, expected",
    SCAN_CASES,
    ids=[t[0] for t in SCAN_CASES]
)
def test_token_types(test_id, src, expected):
    tokens, reporter = scan(src)
    assert not reporter.had_error
    assert types(tokens) == expected


def test_numbers_are_floats():
    tokens, _ = scan("12 3.5")
    assert [t.literal for t in tokens[:2]] == [12.0, 3.5]
    assert all(type(t.literal) is float for t in tokens[:2])


def test_trailing_dot_is_not_part_of_number():
    tokens, _ = scan("1.")
    assert types(tokens) == [T.NUMBER, T.DOT, T.EOF]
    assert tokens[0].literal == 1.0


@pytest.mark.parametrize("src", ['"hi"', "'hi'"])
def test_strings_in_either_quote(src):
    tokens, _ = scan(src)
    assert tokens[0].type == T.STRING
    assert tokens[0].literal == "hi"
    assert tokens[0].lexeme == src


def test_multiline_string_counts_lines():
    tokens, _ = scan('"a\nb" x')
    assert tokens[0].literal == "a\nb"
    assert tokens[1].lexeme == "x"
    assert tokens[1].line == 2


def test_line_comment_is_skipped():
    tokens, _ = scan("// nothing here\n1")
    assert types(tokens) == [T.NUMBER, T.EOF]
    assert tokens[0].line == 2


def test_block_comment_is_skipped_and_counts_lines():
    tokens, _ = scan("/* a\n b */ 2")
    assert types(tokens) == [T.NUMBER, T.EOF]
    assert tokens[0].line == 2


def test_unexpected_character_is_reported_and_scanning_continues():
    tokens, reporter = scan("@ 1")
    assert reporter.had_error
    assert types(tokens) == [T.NUMBER, T.EOF]
    diag = reporter.diagnostics[0]
    assert diag.message == "Unexpected character."
    assert diag.line == 1
    assert diag.rendered == "[line 1] Error: Unexpected character."


def test_tilde_is_not_an_operator():
    tokens, reporter = scan("~1")
    assert types(tokens) == [T.NUMBER, T.EOF]
    assert reporter.diagnostics[0].message == "Unexpected character."


def test_unterminated_string_is_reported():
    tokens, reporter = scan('"abc')
    assert reporter.had_error
    assert reporter.diagnostics[0].message == "Unterminated string."
    assert types(tokens) == [T.EOF]


def test_eof_token_carries_last_line():
    tokens, _ = scan("1\n2\n")
    assert tokens[-1].type == T.EOF
    assert tokens[-1].line == 3


def test_token_copy_derives_synthetic_token():
    tokens, _ = scan("+=")
    plus = tokens[0].copy(T.PLUS, "+")
    assert plus.type == T.PLUS
    assert plus.lexeme == "+"
    assert plus.line == tokens[0].line

"""
Recursive-descent parser for Roux.

Grammar, lowest precedence first:

    program     -> declaration* EOF
    declaration -> classDecl | funDecl | varDecl | statement
    classDecl   -> "class" IDENTIFIER ( ":" call )? "{" ( "static"? function )* "}"
    funDecl     -> "fun" function
    function    -> IDENTIFIER "(" parameters? ")" block
    varDecl     -> "var" IDENTIFIER ( "=" expression )? ";"
    statement   -> exprStmt | printStmt | ifStmt | whileStmt | forStmt
                 | breakStmt | continueStmt | returnStmt | block

    expression  -> comma
    comma       -> assignment ( "," assignment )*
    assignment  -> ( call "." )? IDENTIFIER ( "=" | "+=" | ... ) assignment | ternary
    ternary     -> logic_or ( "?" ternary ":" ternary )?
    logic_or    -> logic_and ( "or" logic_and )*
    logic_and   -> equality ( "and" equality )*
    equality    -> comparison ( ( "!=" | "==" ) comparison )*
    comparison  -> bit_or ( ( ">" | ">=" | "<" | "<=" ) bit_or )*
    bit_or      -> bit_xor ( "|" bit_xor )*
    bit_xor     -> bit_and ( "^" bit_and )*
    bit_and     -> term ( "&" term )*
    term        -> factor ( ( "-" | "+" ) factor )*
    factor      -> unary ( ( "/" | "*" | "%" ) unary )*
    unary       -> ( "!" | "-" ) unary | prefix
    prefix      -> ( "++" | "--" ) postfix | postfix
    postfix     -> call ( "++" | "--" )?
    call        -> primary ( "(" arguments? ")" | "." IDENTIFIER | "[" expression "]" )*
    primary     -> "true" | "false" | "null" | "this" | NUMBER | STRING | IDENTIFIER
                 | "(" expression ")" | "fun" "(" parameters? ")" block

Compound assignment, prefix increments and `for` loops are desugared here.
Variables become plain assignments and `for` becomes `while`. Property and
subscript targets keep the binary operator on their `Set` / `SubscriptSet`
node so the receiver and index are evaluated once.
"""
from typing import Callable, List, Optional

from roux.roux_ast import (
    Expr, Stmt, Literal, Grouping, Unary, Binary, Logical, Ternary, Assign, Suffix,
    Variable, Call, Get, Set, Subscript, SubscriptSet, This, Lambda,
    Expression, Print, Var, Block, If, While, Break, Continue, Function, Return, Class
)
from roux.roux_config import RouxConfig
from roux.roux_datatypes import ParseError
from roux.roux_tokens import Token, TokenType, COMPOUND_OPERATORS

# Tokens that can begin a statement; error recovery resumes at one of these.
_STATEMENT_STARTS = {
    TokenType.CLASS, TokenType.FUN, TokenType.VAR, TokenType.FOR,
    TokenType.IF, TokenType.WHILE, TokenType.PRINT, TokenType.RETURN,
}


class Parser:
    """Builds a syntax tree from a token list.

    Errors are reported to the error reporter as they are found. A failed
    statement is skipped by synchronizing to the next statement boundary, so a
    single pass reports as many independent errors as it can. Callers must not
    evaluate the result when the reporter has recorded an error.
    """

    def __init__(self, tokens: List[Token], reporter, config: Optional[RouxConfig] = None):
        self.tokens = tokens
        self.reporter = reporter
        self.config = config or RouxConfig()
        self.current = 0
        self.loop_depth = 0

    def parse(self) -> List[Stmt]:
        statements = []
        try:
            while not self._at_end():
                stmt = self._declaration()
                if stmt is not None:
                    statements.append(stmt)
        except RecursionError:
            self._error(self._peek(), "Expression nested too deeply.")
        return statements

    def parse_expression(self) -> Optional[Expr]:
        """Parses a single expression that must span the whole token list."""
        try:
            expr = self._expression()
            if not self._at_end():
                raise self._error(self._peek(), "Expect end of expression.")
            return expr
        except ParseError:
            return None
        except RecursionError:
            self._error(self._peek(), "Expression nested too deeply.")
            return None

    # =================================================================
    # Declarations
    # =================================================================

    def _declaration(self) -> Optional[Stmt]:
        try:
            if self._match(TokenType.CLASS):
                return self._class_declaration()
            if self._check(TokenType.FUN) and self._check_next(TokenType.IDENTIFIER):
                self._advance()
                return self._function("function")
            if self._match(TokenType.VAR):
                return self._var_declaration()
            return self._statement()
        except ParseError:
            self._synchronize()
            return None

    def _class_declaration(self) -> Class:
        name = self._consume(TokenType.IDENTIFIER, "Expect class name.")
        base = None
        if self._match(TokenType.COLON):
            base = self._call()

        self._consume(TokenType.LEFT_BRACE, "Expect '{' before class body.")
        methods, static_methods = [], []
        while not self._check(TokenType.RIGHT_BRACE) and not self._at_end():
            if self._match(TokenType.STATIC):
                static_methods.append(self._function("static method"))
            else:
                methods.append(self._function("method"))
        self._consume(TokenType.RIGHT_BRACE, "Expect '}' after class body.")
        return Class(name, base, methods, static_methods)

    def _function(self, kind: str) -> Function:
        name = self._consume(TokenType.IDENTIFIER, f"Expect {kind} name.")
        self._consume(TokenType.LEFT_PAREN, f"Expect '(' after {kind} name.")
        params = self._parameters()
        self._consume(TokenType.LEFT_BRACE, f"Expect '{{' before {kind} body.")
        body = self._function_body()
        return Function(name, params, body)

    def _parameters(self) -> List[Token]:
        params = []
        if not self._check(TokenType.RIGHT_PAREN):
            while True:
                if len(params) >= self.config.max_parameters:
                    self._error(self._peek(), f"Can't have more than {self.config.max_parameters} parameters.")
                params.append(self._consume(TokenType.IDENTIFIER, "Expect parameter name."))
                if not self._match(TokenType.COMMA):
                    break
        self._consume(TokenType.RIGHT_PAREN, "Expect ')' after parameters.")
        return params

    def _function_body(self) -> List[Stmt]:
        # Loops do not extend into nested function bodies.
        enclosing_depth = self.loop_depth
        self.loop_depth = 0
        try:
            return self._block()
        finally:
            self.loop_depth = enclosing_depth

    def _var_declaration(self) -> Var:
        name = self._consume(TokenType.IDENTIFIER, "Expect variable name.")
        initializer = None
        if self._match(TokenType.EQUAL):
            initializer = self._expression()
        self._consume(TokenType.SEMICOLON, "Expect ';' after variable declaration.")
        return Var(name, initializer)

    # =================================================================
    # Statements
    # =================================================================

    def _statement(self) -> Stmt:
        if self._match(TokenType.PRINT):
            return self._print_statement()
        if self._match(TokenType.IF):
            return self._if_statement()
        if self._match(TokenType.WHILE):
            return self._while_statement()
        if self._match(TokenType.FOR):
            return self._for_statement()
        if self._match(TokenType.BREAK):
            return self._loop_jump(Break, "break")
        if self._match(TokenType.CONTINUE):
            return self._loop_jump(Continue, "continue")
        if self._match(TokenType.RETURN):
            return self._return_statement()
        if self._match(TokenType.LEFT_BRACE):
            return Block(self._block())
        return self._expression_statement()

    def _print_statement(self) -> Print:
        value = self._expression()
        self._consume(TokenType.SEMICOLON, "Expect ';' after value.")
        return Print(value)

    def _if_statement(self) -> If:
        self._consume(TokenType.LEFT_PAREN, "Expect '(' after 'if'.")
        condition = self._expression()
        self._consume(TokenType.RIGHT_PAREN, "Expect ')' after if condition.")
        then_branch = self._statement()
        else_branch = self._statement() if self._match(TokenType.ELSE) else None
        return If(condition, then_branch, else_branch)

    def _while_statement(self) -> While:
        self._consume(TokenType.LEFT_PAREN, "Expect '(' after 'while'.")
        condition = self._expression()
        self._consume(TokenType.RIGHT_PAREN, "Expect ')' after condition.")
        return While(condition, self._loop_body())

    def _for_statement(self) -> Stmt:
        self._consume(TokenType.LEFT_PAREN, "Expect '(' after 'for'.")
        if self._match(TokenType.SEMICOLON):
            initializer = None
        elif self._match(TokenType.VAR):
            initializer = self._var_declaration()
        else:
            initializer = self._expression_statement()

        condition = None if self._check(TokenType.SEMICOLON) else self._expression()
        self._consume(TokenType.SEMICOLON, "Expect ';' after loop condition.")
        increment = None if self._check(TokenType.RIGHT_PAREN) else self._expression()
        self._consume(TokenType.RIGHT_PAREN, "Expect ')' after for clauses.")

        body = self._loop_body()
        loop = While(condition or Literal(True), body, increment)
        if initializer is None:
            return loop
        return Block([initializer, loop])

    def _loop_body(self) -> Stmt:
        self.loop_depth += 1
        try:
            return self._statement()
        finally:
            self.loop_depth -= 1

    def _loop_jump(self, node_type, word: str) -> Stmt:
        keyword = self._previous()
        if self.loop_depth == 0:
            self._error(keyword, f"Can't use '{word}' outside of a loop.")
        self._consume(TokenType.SEMICOLON, f"Expect ';' after '{word}'.")
        return node_type(keyword)

    def _return_statement(self) -> Return:
        keyword = self._previous()
        value = None
        if not self._check(TokenType.SEMICOLON):
            value = self._expression()
        self._consume(TokenType.SEMICOLON, "Expect ';' after return value.")
        return Return(keyword, value)

    def _block(self) -> List[Stmt]:
        statements = []
        while not self._check(TokenType.RIGHT_BRACE) and not self._at_end():
            stmt = self._declaration()
            if stmt is not None:
                statements.append(stmt)
        self._consume(TokenType.RIGHT_BRACE, "Expect '}' after block.")
        return statements

    def _expression_statement(self) -> Expression:
        expr = self._expression()
        self._consume(TokenType.SEMICOLON, "Expect ';' after expression.")
        return Expression(expr)

    # =================================================================
    # Expressions
    # =================================================================

    def _expression(self) -> Expr:
        return self._binary(self._assignment, TokenType.COMMA)

    def _assignment(self) -> Expr:
        expr = self._ternary()

        if self._match(TokenType.EQUAL, *COMPOUND_OPERATORS):
            operator = self._previous()
            value = self._assignment()
            binary_op = None
            if operator.type in COMPOUND_OPERATORS:
                binary_type, lexeme = COMPOUND_OPERATORS[operator.type]
                binary_op = operator.copy(binary_type, lexeme)

            match expr:
                case Variable():
                    if binary_op is not None:
                        value = Binary(expr, binary_op, value)
                    return Assign(expr.name, value)
                case Get():
                    return Set(expr.object, expr.name, value, binary_op)
                case Subscript():
                    return SubscriptSet(expr.object, expr.bracket, expr.index, value, binary_op)
            # Reported without unwinding; the parser is not confused.
            self._error(operator, "Invalid assignment target.")

        return expr

    def _ternary(self) -> Expr:
        expr = self._or()
        if self._match(TokenType.QUESTION):
            then_branch = self._ternary()
            self._consume(TokenType.COLON, "Expect ':' after then branch of ternary expression.")
            else_branch = self._ternary()
            expr = Ternary(expr, then_branch, else_branch)
        return expr

    def _or(self) -> Expr:
        return self._logical(self._and, TokenType.OR)

    def _and(self) -> Expr:
        return self._logical(self._equality, TokenType.AND)

    def _equality(self) -> Expr:
        return self._binary(self._comparison, TokenType.BANG_EQUAL, TokenType.EQUAL_EQUAL)

    def _comparison(self) -> Expr:
        return self._binary(self._bit_or, TokenType.GREATER, TokenType.GREATER_EQUAL,
                            TokenType.LESS, TokenType.LESS_EQUAL)

    def _bit_or(self) -> Expr:
        return self._binary(self._bit_xor, TokenType.BAR)

    def _bit_xor(self) -> Expr:
        return self._binary(self._bit_and, TokenType.CARET)

    def _bit_and(self) -> Expr:
        return self._binary(self._term, TokenType.AMPERSAND)

    def _term(self) -> Expr:
        return self._binary(self._factor, TokenType.MINUS, TokenType.PLUS)

    def _factor(self) -> Expr:
        return self._binary(self._unary, TokenType.SLASH, TokenType.STAR, TokenType.PERCENT)

    def _unary(self) -> Expr:
        if self._match(TokenType.BANG, TokenType.MINUS):
            operator = self._previous()
            return Unary(operator, self._unary())
        return self._prefix()

    def _prefix(self) -> Expr:
        if not self._match(TokenType.PLUS_PLUS, TokenType.MINUS_MINUS):
            return self._postfix()

        operator = self._previous()
        target = self._postfix()
        binary_type, lexeme = ((TokenType.PLUS, "+") if operator.type == TokenType.PLUS_PLUS
                               else (TokenType.MINUS, "-"))
        binary_op = operator.copy(binary_type, lexeme)
        match target:
            case Variable():
                return Assign(target.name, Binary(target, binary_op, Literal(1.0)))
            case Get():
                return Set(target.object, target.name, Literal(1.0), binary_op)
        self._error(operator, "Invalid increment target.")
        return target

    def _postfix(self) -> Expr:
        expr = self._call()
        if self._match(TokenType.PLUS_PLUS, TokenType.MINUS_MINUS):
            operator = self._previous()
            if isinstance(expr, Variable):
                return Suffix(expr.name, operator)
            self._error(operator, "Invalid increment target.")
        return expr

    def _call(self) -> Expr:
        expr = self._primary()
        while True:
            if self._match(TokenType.LEFT_PAREN):
                expr = self._finish_call(expr)
            elif self._match(TokenType.DOT):
                name = self._consume(TokenType.IDENTIFIER, "Expect property name after '.'.")
                expr = Get(expr, name)
            elif self._match(TokenType.LEFT_BRACKET):
                bracket = self._previous()
                index = self._expression()
                self._consume(TokenType.RIGHT_BRACKET, "Expect ']' after index.")
                expr = Subscript(expr, bracket, index)
            else:
                return expr

    def _finish_call(self, callee: Expr) -> Call:
        arguments = []
        if not self._check(TokenType.RIGHT_PAREN):
            while True:
                if len(arguments) >= self.config.max_parameters:
                    self._error(self._peek(), f"Can't have more than {self.config.max_parameters} arguments.")
                arguments.append(self._assignment())
                if not self._match(TokenType.COMMA):
                    break
        paren = self._consume(TokenType.RIGHT_PAREN, "Expect ')' after arguments.")
        return Call(callee, paren, arguments)

    def _primary(self) -> Expr:
        if self._match(TokenType.FALSE):
            return Literal(False)
        if self._match(TokenType.TRUE):
            return Literal(True)
        if self._match(TokenType.NULL):
            return Literal(None)
        if self._match(TokenType.NUMBER, TokenType.STRING):
            return Literal(self._previous().literal)
        if self._match(TokenType.THIS):
            return This(self._previous())
        if self._match(TokenType.IDENTIFIER):
            return Variable(self._previous())
        if self._match(TokenType.LEFT_PAREN):
            expr = self._expression()
            self._consume(TokenType.RIGHT_PAREN, "Expect ')' after expression.")
            return Grouping(expr)
        if self._match(TokenType.FUN):
            return self._lambda()
        raise self._error(self._peek(), "Expect expression.")

    def _lambda(self) -> Lambda:
        keyword = self._previous()
        self._consume(TokenType.LEFT_PAREN, "Expect '(' after 'fun'.")
        params = self._parameters()
        self._consume(TokenType.LEFT_BRACE, "Expect '{' before lambda body.")
        return Lambda(keyword, params, self._function_body())

    # =================================================================
    # Helpers
    # =================================================================

    def _binary(self, operand: Callable[[], Expr], *types: TokenType) -> Expr:
        """Parses a left-associative run of binary operators of one precedence."""
        expr = operand()
        while self._match(*types):
            operator = self._previous()
            expr = Binary(expr, operator, operand())
        return expr

    def _logical(self, operand: Callable[[], Expr], token_type: TokenType) -> Expr:
        expr = operand()
        while self._match(token_type):
            operator = self._previous()
            expr = Logical(expr, operator, operand())
        return expr

    def _synchronize(self):
        """Discards tokens up to the start of the next statement."""
        self._advance()
        while not self._at_end():
            if self._previous().type == TokenType.SEMICOLON:
                return
            if self._peek().type in _STATEMENT_STARTS:
                return
            self._advance()

    def _error(self, token: Token, message: str) -> ParseError:
        self.reporter.error_at(token, message)
        return ParseError(token, message)

    def _consume(self, token_type: TokenType, message: str) -> Token:
        if self._check(token_type):
            return self._advance()
        raise self._error(self._peek(), message)

    def _match(self, *types: TokenType) -> bool:
        for token_type in types:
            if self._check(token_type):
                self._advance()
                return True
        return False

    def _check(self, token_type: TokenType) -> bool:
        if self._at_end():
            return False
        return self._peek().type == token_type

    def _check_next(self, token_type: TokenType) -> bool:
        if self.current + 1 >= len(self.tokens):
            return False
        return self.tokens[self.current + 1].type == token_type

    def _advance(self) -> Token:
        if not self._at_end():
            self.current += 1
        return self._previous()

    def _peek(self) -> Token:
        return self.tokens[self.current]

    def _previous(self) -> Token:
        return self.tokens[self.current - 1]

    def _at_end(self) -> bool:
        return self._peek().type == TokenType.EOF

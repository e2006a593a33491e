"""
Syntax tree nodes for Roux programs.

Every node receives a process-unique integer id when it is built. The resolver
keys its scope-distance annotations by that id, so the tree itself is never
mutated after parsing.
"""
import itertools
from dataclasses import dataclass
from typing import Any, List, Optional

from roux.roux_tokens import Token

_node_ids = itertools.count(1)


class Node:
    """Base for all syntax tree nodes."""

    def __post_init__(self):
        self.node_id = next(_node_ids)


class Expr(Node):
    pass


class Stmt(Node):
    pass


# =================================================================
# Expressions
# =================================================================

@dataclass(eq=False)
class Literal(Expr):
    value: Any


@dataclass(eq=False)
class Grouping(Expr):
    expression: Expr


@dataclass(eq=False)
class Unary(Expr):
    operator: Token
    right: Expr


@dataclass(eq=False)
class Binary(Expr):
    left: Expr
    operator: Token
    right: Expr


@dataclass(eq=False)
class Logical(Expr):
    """`and` / `or`, evaluated with short-circuiting."""
    left: Expr
    operator: Token
    right: Expr


@dataclass(eq=False)
class Ternary(Expr):
    condition: Expr
    then_branch: Expr
    else_branch: Expr


@dataclass(eq=False)
class Assign(Expr):
    name: Token
    value: Expr


@dataclass(eq=False)
class Suffix(Expr):
    """Postfix `x++` / `x--`; yields the value held before the update."""
    name: Token
    operator: Token


@dataclass(eq=False)
class Variable(Expr):
    name: Token


@dataclass(eq=False)
class Call(Expr):
    callee: Expr
    paren: Token
    arguments: List[Expr]


@dataclass(eq=False)
class Get(Expr):
    object: Expr
    name: Token


@dataclass(eq=False)
class Set(Expr):
    """`object.name = value`.

    For compound forms (`+=`, prefix `++`) `operator` is the binary operator to
    apply between the current field value and `value`; the receiver is still
    evaluated only once.
    """
    object: Expr
    name: Token
    value: Expr
    operator: Optional[Token] = None


@dataclass(eq=False)
class Subscript(Expr):
    object: Expr
    bracket: Token
    index: Expr


@dataclass(eq=False)
class SubscriptSet(Expr):
    object: Expr
    bracket: Token
    index: Expr
    value: Expr
    operator: Optional[Token] = None


@dataclass(eq=False)
class This(Expr):
    keyword: Token


@dataclass(eq=False)
class Lambda(Expr):
    keyword: Token
    params: List[Token]
    body: List['Stmt']


# =================================================================
# Statements
# =================================================================

@dataclass(eq=False)
class Expression(Stmt):
    expression: Expr


@dataclass(eq=False)
class Print(Stmt):
    expression: Expr


@dataclass(eq=False)
class Var(Stmt):
    name: Token
    initializer: Optional[Expr]


@dataclass(eq=False)
class Block(Stmt):
    statements: List[Stmt]


@dataclass(eq=False)
class If(Stmt):
    condition: Expr
    then_branch: Stmt
    else_branch: Optional[Stmt]


@dataclass(eq=False)
class While(Stmt):
    """A loop. `increment` is set for desugared `for` loops and also runs
    after a `continue`."""
    condition: Expr
    body: Stmt
    increment: Optional[Expr] = None


@dataclass(eq=False)
class Break(Stmt):
    keyword: Token


@dataclass(eq=False)
class Continue(Stmt):
    keyword: Token


@dataclass(eq=False)
class Function(Stmt):
    name: Token
    params: List[Token]
    body: List[Stmt]


@dataclass(eq=False)
class Return(Stmt):
    keyword: Token
    value: Optional[Expr]


@dataclass(eq=False)
class Class(Stmt):
    name: Token
    base: Optional[Expr]
    methods: List[Function]
    static_methods: List[Function]

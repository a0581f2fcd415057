"""
Defines the syntax tree the Sable interpreter walks.

The transformer builds these from the raw parse tree. Literal nodes keep their
source text; turning that text into a runtime value (and reporting malformed
literals) is the interpreter's job.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union


class Node:
    """Base class for syntax nodes. `loc` is attached after construction."""
    loc: Optional[Dict[str, Any]] = None


# =================================================================
# Expressions
# =================================================================

@dataclass
class NumberLiteral(Node):
    text: str


@dataclass
class StringLiteral(Node):
    text: str


@dataclass
class BooleanLiteral(Node):
    text: str


@dataclass
class NullLiteral(Node):
    pass


@dataclass
class Identifier(Node):
    name: str


@dataclass
class MemberAccess(Node):
    """`object.member`, right-nested: a.b.c is MemberAccess(a, MemberAccess(b, c))."""
    object: Identifier
    member: Union[Identifier, 'MemberAccess']


@dataclass
class Group(Node):
    """A parenthesised expression."""
    expr: Node


@dataclass
class Call(Node):
    callee: Union[Identifier, MemberAccess]
    args: List[Node] = field(default_factory=list)


@dataclass
class Ternary(Node):
    condition: Node
    then_branch: Node
    else_branch: Node


@dataclass
class Assignment(Node):
    target: Node
    operator: str
    value: Node


@dataclass
class BinaryChain(Node):
    """A run of same-precedence operators, folded left to right.

    `kind` is 'comparison', 'sum' or 'product'.
    """
    kind: str
    first: Node
    rest: List[Tuple[str, Node]] = field(default_factory=list)


@dataclass
class Unary(Node):
    operator: str
    operand: Node


# =================================================================
# Statements
# =================================================================

@dataclass
class ExpressionStatement(Node):
    expr: Node


@dataclass
class Block(Node):
    statements: List[Node] = field(default_factory=list)


@dataclass
class FunctionDeclaration(Node):
    name: str
    params: List[str]
    body: Block
    # Source text of the body, braces included.
    source: str = ""


@dataclass
class Declaration(Node):
    """`let name = value;` (mutable) or `const name = value;`."""
    name: str
    value: Node
    mutable: bool


@dataclass
class ReturnStatement(Node):
    expr: Optional[Node] = None


@dataclass
class Script(Node):
    statements: List[Node] = field(default_factory=list)


EXPRESSION_TYPES = (
    NumberLiteral, StringLiteral, BooleanLiteral, NullLiteral,
    Identifier, MemberAccess, Group, Call, Ternary, Assignment, BinaryChain, Unary,
)

"""
Syntax tree node definitions for pest scripts.

The tree is built once by the parser and never mutated: every node is a
frozen dataclass and composite nodes own their children outright.
Comparison and logical operators share ``BinaryOp``; ``!=``, ``<=``,
``>=`` and unary minus are lowered by the parser onto the remaining
operators, and template literals are lowered onto ``Concatenation``.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Union
from abc import ABC
from .tokens import SourceSpan, TokenType


# =============================================================================
# Base Classes
# =============================================================================

@dataclass(frozen=True)
class AstNode(ABC):
    """Base class for all syntax tree nodes."""
    span: SourceSpan  # Source location for error reporting


# =============================================================================
# Expression Nodes
# =============================================================================

@dataclass(frozen=True)
class Expression(AstNode):
    """Base class for all expressions."""
    pass


@dataclass(frozen=True)
class Literal(Expression):
    """An integer or string literal."""
    value: Union[int, str]
    literal_type: TokenType  # INT_LITERAL or STRING_LITERAL


@dataclass(frozen=True)
class Identifier(Expression):
    """A reference to a binding (or the reserved name ``now``)."""
    name: str


@dataclass(frozen=True)
class Dot(Expression):
    """The current match context: the text a pattern is matched against."""
    pass


@dataclass(frozen=True)
class BinaryOp(Expression):
    """Arithmetic, comparison or logical operation.

    Operators: PLUS MINUS STAR SLASH PERCENT EQ LT GT AND OR.
    """
    left: Expression
    operator: TokenType
    right: Expression


@dataclass(frozen=True)
class UnaryOp(Expression):
    """Logical negation (operator NOT)."""
    operator: TokenType
    operand: Expression


@dataclass(frozen=True)
class Concatenation(Expression):
    """Two operands joined as text, or split apart when matching."""
    left: Expression
    right: Expression


@dataclass(frozen=True)
class Assignment(Expression):
    """``name = value``; yields the assigned value."""
    target: Identifier
    value: Expression


# =============================================================================
# Statements
# =============================================================================

@dataclass(frozen=True)
class Statement(AstNode):
    """Base class for all statements."""
    pass


@dataclass(frozen=True)
class ExpressionStatement(Statement):
    """A bare expression, evaluated for its side effects."""
    expression: Expression


@dataclass(frozen=True)
class SendStatement(Statement):
    """``> expr``: write the text of expr to the connection."""
    expression: Expression


@dataclass(frozen=True)
class ReceiveStatement(Statement):
    """``< pattern``: read one CRLF-terminated line and match it."""
    pattern: Expression
    source_text: str


@dataclass(frozen=True)
class AssertStatement(Statement):
    """``~ expr``: fail the run unless expr is true."""
    condition: Expression
    source_text: str


@dataclass(frozen=True)
class Script(AstNode):
    """A complete script: statements executed strictly in order."""
    statements: List[Statement] = field(default_factory=list)
    filename: Optional[str] = None

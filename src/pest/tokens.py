"""
Token types for the pest script lexer.

Token type categories follow the error code ranges used in errors.py:
- E0xx: Lexer errors
- E1xx: Parser errors
- E4xx: Runtime errors
"""

from enum import Enum, auto
from dataclasses import dataclass
from typing import Any, Optional


class TokenType(Enum):
    """All token types recognized by the script lexer."""

    # --- Special ---
    INVALID = auto()            # unrecognized input (always paired with a diagnostic)
    EOF = auto()                # end of input
    NEWLINE = auto()            # statement separator

    # --- Literals ---
    IDENTIFIER = auto()         # foo
    INT_LITERAL = auto()        # 123, 0x7f, 017
    STRING_LITERAL = auto()     # "abc"
    TEMPLATE_START = auto()     # :text{   or   :text<newline>
    TEMPLATE_CONT = auto()      # }text{   or   }text<newline>

    # --- Statement markers ---
    ASSERT = auto()             # ~

    # --- Arithmetic operators ---
    PLUS = auto()               # +
    MINUS = auto()              # -
    STAR = auto()               # *
    SLASH = auto()              # /
    PERCENT = auto()            # %

    # --- Comparison operators ---
    EQ = auto()                 # ==
    NE = auto()                 # !=
    LT = auto()                 # <   (also the receive marker)
    GT = auto()                 # >   (also the send marker)
    LE = auto()                 # <=
    GE = auto()                 # >=

    # --- Logical operators ---
    NOT = auto()                # !
    AND = auto()                # &&
    OR = auto()                 # ||

    # --- Misc ---
    ASSIGN = auto()             # =
    DOT = auto()                # .
    LPAREN = auto()             # (
    RPAREN = auto()             # )


@dataclass(frozen=True)
class SourceLocation:
    """Represents a position in source code."""
    line: int           # 1-indexed line number
    column: int         # 1-indexed column number
    offset: int         # 0-indexed character offset from start
    filename: Optional[str] = None

    def __str__(self) -> str:
        if self.filename:
            return f"{self.filename}:{self.line}:{self.column}"
        return f"{self.line}:{self.column}"


@dataclass(frozen=True)
class SourceSpan:
    """Represents a range in source code."""
    start: SourceLocation
    end: SourceLocation

    def __str__(self) -> str:
        if self.start.filename:
            return f"{self.start.filename}:{self.start.line}:{self.start.column}-{self.end.line}:{self.end.column}"
        return f"{self.start.line}:{self.start.column}-{self.end.line}:{self.end.column}"


@dataclass(frozen=True)
class Token:
    """A single token from the lexer.

    For template tokens `value` is the literal text of the segment and
    `continues` tells whether an embedded expression follows it.
    """
    type: TokenType
    value: Any              # decoded value (int, str) or None
    lexeme: str             # the original source text
    span: SourceSpan        # location in source
    continues: bool = False

    @property
    def offset(self) -> int:
        return self.span.start.offset

    def __str__(self) -> str:
        if self.type in (TokenType.INT_LITERAL, TokenType.STRING_LITERAL,
                         TokenType.IDENTIFIER, TokenType.TEMPLATE_START,
                         TokenType.TEMPLATE_CONT):
            return f"{self.type.name}({self.value!r})"
        return self.type.name


# Printable spellings used in diagnostics
TOKEN_SPELLING: dict[TokenType, str] = {
    TokenType.EOF: "end of input",
    TokenType.NEWLINE: "newline",
    TokenType.ASSERT: "'~'",
    TokenType.PLUS: "'+'",
    TokenType.MINUS: "'-'",
    TokenType.STAR: "'*'",
    TokenType.SLASH: "'/'",
    TokenType.PERCENT: "'%'",
    TokenType.EQ: "'=='",
    TokenType.NE: "'!='",
    TokenType.LT: "'<'",
    TokenType.GT: "'>'",
    TokenType.LE: "'<='",
    TokenType.GE: "'>='",
    TokenType.NOT: "'!'",
    TokenType.AND: "'&&'",
    TokenType.OR: "'||'",
    TokenType.ASSIGN: "'='",
    TokenType.DOT: "'.'",
    TokenType.LPAREN: "'('",
    TokenType.RPAREN: "')'",
}


def describe_token(token: Token) -> str:
    """Human-readable description of a token for error messages."""
    spelling = TOKEN_SPELLING.get(token.type)
    if spelling is not None:
        return spelling
    if token.type == TokenType.IDENTIFIER:
        return f"identifier '{token.value}'"
    if token.type == TokenType.INT_LITERAL:
        return f"integer {token.lexeme}"
    if token.type == TokenType.STRING_LITERAL:
        return "string literal"
    if token.type == TokenType.TEMPLATE_START:
        return "template literal"
    if token.type == TokenType.TEMPLATE_CONT:
        return "'}'"
    return f"invalid input {token.lexeme!r}"

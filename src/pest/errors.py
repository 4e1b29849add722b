"""
Script diagnostics and exceptions.

Error code ranges:
- E0xx: Lexer errors
- E1xx: Parser errors
- E4xx: Runtime errors (unrecoverable, end the run)
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, List
from .tokens import SourceSpan, SourceLocation


class ErrorSeverity(Enum):
    """Severity levels for diagnostics."""
    ERROR = "error"
    WARNING = "warning"


@dataclass
class Diagnostic:
    """A single diagnostic message."""
    code: str                       # E001, E101, etc.
    message: str                    # Human-readable message
    severity: ErrorSeverity
    span: SourceSpan
    source_line: Optional[str] = None   # The actual line of source code
    hints: List[str] = field(default_factory=list)

    def format(self, show_source: bool = True) -> str:
        """Format the diagnostic for display."""
        parts = []

        # Header: location: severity[code]: message
        loc = f"{self.span.start}"
        parts.append(f"{loc}: {self.severity.value}[{self.code}]: {self.message}")

        # Source line with caret
        if show_source and self.source_line is not None:
            parts.append(f"  |")
            line_num = str(self.span.start.line)
            parts.append(f"{line_num:>3} | {self.source_line}")

            col = self.span.start.column
            end_col = self.span.end.column if self.span.start.line == self.span.end.line else len(self.source_line) + 1
            underline_len = max(1, end_col - col)
            parts.append(f"    | {' ' * (col - 1)}{'^' * underline_len}")

        for hint in self.hints:
            parts.append(f"    = hint: {hint}")

        return "\n".join(parts)


class DslError(Exception):
    """Base exception for script errors."""

    def __init__(self, diagnostic: Diagnostic):
        self.diagnostic = diagnostic
        super().__init__(diagnostic.message)

    @property
    def code(self) -> str:
        return self.diagnostic.code

    def __str__(self) -> str:
        return self.diagnostic.format()


class LexerError(DslError):
    """Error during lexical analysis (E0xx)."""
    pass


class ParserError(DslError):
    """Error during parsing (E1xx)."""
    pass


class EvaluationError(DslError):
    """Unrecoverable error while running a script (E4xx)."""
    pass


def locate(source: str, offset: int, filename: Optional[str] = None) -> SourceLocation:
    """
    Compute the 1-based line and column of a character offset.

    Offsets and columns count characters of the decoded source, the
    same units the lexer reports: in ``"café" @`` the ``@`` is at
    column 8 although it is the ninth byte of the line. An undecodable
    source byte counts as one character.
    """
    offset = max(0, min(offset, len(source)))
    line = source.count("\n", 0, offset) + 1
    column = offset - (source.rfind("\n", 0, offset) + 1) + 1
    return SourceLocation(line, column, offset, filename)


def _diag(code: str, message: str, span: SourceSpan, source_line: Optional[str],
          hints: Optional[List[str]] = None) -> Diagnostic:
    return Diagnostic(
        code=code,
        message=message,
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
        hints=hints or [],
    )


# --- Lexer error codes ---

def error_invalid_character(char: str, span: SourceSpan, source_line: str = None) -> LexerError:
    """E001: Invalid character."""
    return LexerError(_diag("E001", f"invalid character {char!r}", span, source_line))


def error_unterminated_string(span: SourceSpan, source_line: str = None) -> LexerError:
    """E002: Unterminated string literal."""
    return LexerError(_diag(
        "E002", "string not terminated", span, source_line,
        hints=["string literals must be closed on the line they start"],
    ))


def error_unknown_escape(seq: str, span: SourceSpan, source_line: str = None) -> LexerError:
    """E003: Unknown escape sequence."""
    return LexerError(_diag(
        "E003", f"unknown escape sequence '\\{seq}'", span, source_line,
        hints=["valid escapes: \\a \\b \\f \\n \\r \\t \\v \\\\ \\\" \\NNN \\xHH \\uHHHH \\UHHHHHHHH"],
    ))


def error_illegal_escape_character(span: SourceSpan, source_line: str = None) -> LexerError:
    """E004: Illegal character inside a numeric escape."""
    return LexerError(_diag("E004", "illegal character in escape sequence", span, source_line))


def error_invalid_code_point(span: SourceSpan, source_line: str = None) -> LexerError:
    """E005: Escape denotes an out-of-range or surrogate code point."""
    return LexerError(_diag("E005", "escape sequence is invalid Unicode code point", span, source_line))


def error_expected_double(op: str, span: SourceSpan, source_line: str = None) -> LexerError:
    """E006/E007: Lone '&' or '|'."""
    code = "E006" if op == "&" else "E007"
    return LexerError(_diag(code, f"expected '{op}{op}'", span, source_line))


def error_invalid_integer(text: str, span: SourceSpan, source_line: str = None) -> LexerError:
    """E008: Integer literal without digits or wider than 64 bits."""
    return LexerError(_diag("E008", f"invalid integer literal '{text}'", span, source_line))


# --- Parser error codes ---

def error_unexpected_token(expected: str, found: str, span: SourceSpan,
                           source_line: str = None) -> ParserError:
    """E101: Unexpected token."""
    return ParserError(_diag("E101", f"expected {expected}, found {found}", span, source_line))


def error_unexpected_eof(expected: str, span: SourceSpan, source_line: str = None) -> ParserError:
    """E102: Unexpected end of input."""
    return ParserError(_diag("E102", f"unexpected end of input, expected {expected}", span, source_line))


def error_assignment_target(span: SourceSpan, source_line: str = None) -> ParserError:
    """E103: Left-hand side of '=' is not a bare identifier."""
    return ParserError(_diag("E103", "not an identifier in assignment", span, source_line))


def error_unclosed_group(span: SourceSpan, source_line: str = None) -> ParserError:
    """E104: Missing ')'."""
    return ParserError(_diag("E104", "expected ')' to close group", span, source_line))


def error_unclosed_template(span: SourceSpan, source_line: str = None) -> ParserError:
    """E105: Embedded template expression is not followed by '}'."""
    return ParserError(_diag(
        "E105", "expected '}' after embedded template expression", span, source_line,
        hints=["templates look like :text{expr}text"],
    ))


# --- Runtime error codes ---

def error_unbound_identifier(name: str, span: SourceSpan, source_line: str = None) -> EvaluationError:
    """E401: Reference to a name with no binding."""
    return EvaluationError(_diag("E401", f"unbound reference {name}", span, source_line))


def error_division_by_zero(span: SourceSpan, source_line: str = None) -> EvaluationError:
    """E402: Integer division or remainder by zero."""
    return EvaluationError(_diag("E402", "integer division by zero", span, source_line))


def error_connection(detail: str, span: SourceSpan, source_line: str = None) -> EvaluationError:
    """E403: Write, read, or end-of-stream failure on the connection."""
    return EvaluationError(_diag("E403", f"connection failure: {detail}", span, source_line))


def error_no_match(received: str, pattern: str, span: SourceSpan,
                   source_line: str = None) -> EvaluationError:
    """E404: Received line does not match the pattern."""
    return EvaluationError(_diag("E404", f"no match {received!r} != {pattern}", span, source_line))


def error_ambiguous_match(received: str, pattern: str, span: SourceSpan,
                          source_line: str = None) -> EvaluationError:
    """E405: Received line splits across the pattern in more than one way."""
    return EvaluationError(_diag(
        "E405", f"ambiguous match {received!r} against {pattern}", span, source_line,
        hints=["anchor adjacent captures with literal text so only one split succeeds"],
    ))


def error_content_mismatch(received: str, matched: str, span: SourceSpan,
                           source_line: str = None) -> EvaluationError:
    """E406: Match succeeded but produced text different from the received line."""
    return EvaluationError(_diag("E406", f"mismatch {received!r} != {matched!r}", span, source_line))


def error_assertion_failed(expression_text: str, span: SourceSpan,
                           source_line: str = None) -> EvaluationError:
    """E407: Assertion evaluated to false."""
    return EvaluationError(_diag("E407", f"test failed: {expression_text}", span, source_line))


def error_missing_match_context(span: SourceSpan, source_line: str = None) -> EvaluationError:
    """E408: A pattern that needs received data was evaluated without any."""
    return EvaluationError(_diag(
        "E408", "no match: expression needs received data", span, source_line,
        hints=["'.' only has a value inside a '<' receive pattern"],
    ))


class DiagnosticCollector:
    """Collects diagnostics during lexing and parsing."""

    def __init__(self):
        self.diagnostics: List[Diagnostic] = []
        self._error_count = 0

    def add(self, diagnostic: Diagnostic) -> None:
        """Add a diagnostic."""
        self.diagnostics.append(diagnostic)
        if diagnostic.severity == ErrorSeverity.ERROR:
            self._error_count += 1

    def add_error(self, error: DslError) -> None:
        """Add an error exception as a diagnostic."""
        self.add(error.diagnostic)

    @property
    def error_count(self) -> int:
        return self._error_count

    @property
    def has_errors(self) -> bool:
        return self._error_count > 0

    def __iter__(self):
        return iter(self.diagnostics)

    def __len__(self) -> int:
        return len(self.diagnostics)

    def format_all(self, show_source: bool = True) -> str:
        """Format all diagnostics for display."""
        parts = [d.format(show_source) for d in self.diagnostics]
        if self._error_count > 0:
            parts.append(f"{self._error_count} error(s)")
        return "\n".join(parts)

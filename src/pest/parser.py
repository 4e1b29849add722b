"""
Recursive descent parser for pest scripts.

Converts a token stream into a ``Script`` of statements. The parser
keeps one token of lookahead and pulls tokens lazily, so it can consume
a ``Lexer`` directly. Syntax errors are recorded in
``Parser.diagnostics`` and parsing resumes at the next line.
"""

from typing import Iterable, Iterator, List, Optional
from .tokens import Token, TokenType, SourceLocation, SourceSpan, describe_token
from .ast import (
    Expression, Literal, Identifier, Dot, BinaryOp, UnaryOp,
    Concatenation, Assignment,
    Statement, ExpressionStatement, SendStatement, ReceiveStatement,
    AssertStatement, Script,
)
from .errors import (
    DiagnosticCollector,
    ParserError,
    error_unexpected_token,
    error_unexpected_eof,
    error_assignment_target,
    error_unclosed_group,
    error_unclosed_template,
)


class Parser:
    """
    Recursive descent parser for pest scripts.

    Usage:
        parser = Parser(Lexer(source))
        script = parser.parse_script()

    Statements are dispatched on their first token:
        > expr      send
        < expr      receive and match
        ~ expr      assert
        expr        evaluate (assignments)

    Expressions use precedence climbing:
        Lowest:  =  (right-associative, identifier targets only)
                 ||
                 &&
                 == != < > <= >=  (at most one per level)
                 + -
                 * / %
        Highest: unary ! -
    """

    # Operator precedence levels (higher = tighter binding)
    PRECEDENCE = {
        TokenType.OR: 1,
        TokenType.AND: 2,
        TokenType.EQ: 3,
        TokenType.NE: 3,
        TokenType.LT: 3,
        TokenType.GT: 3,
        TokenType.LE: 3,
        TokenType.GE: 3,
        TokenType.PLUS: 4,
        TokenType.MINUS: 4,
        TokenType.STAR: 5,
        TokenType.SLASH: 5,
        TokenType.PERCENT: 5,
    }

    # Negated comparisons are lowered onto their complements
    NEGATED = {
        TokenType.NE: TokenType.EQ,
        TokenType.LE: TokenType.GT,
        TokenType.GE: TokenType.LT,
    }

    COMPARISON_PRECEDENCE = 3

    def __init__(self, tokens: Iterable[Token], filename: Optional[str] = None,
                 source: Optional[str] = None):
        self._tokens: Iterator[Token] = iter(tokens)
        self.filename = filename
        if source is None:
            source = getattr(tokens, "source", None)
        self.source = source  # Original source for receive/assert text
        self._lines = source.split('\n') if source is not None else []
        self.diagnostics = DiagnosticCollector()
        self._lexemes: List[str] = []
        self._previous: Optional[Token] = None
        self._current: Optional[Token] = None
        self._advance()

    # =========================================================================
    # Token Navigation
    # =========================================================================

    def _advance(self) -> Token:
        """Consume and return current token; EOF is never consumed."""
        token = self._current
        if token is not None:
            if token.type == TokenType.EOF:
                return token
            self._lexemes.append(token.lexeme)
        self._previous = token
        following = next(self._tokens, None)
        if following is None:
            following = self._synthesize_eof()
        self._current = following
        return token

    def _synthesize_eof(self) -> Token:
        if self._previous is None:
            here = SourceLocation(1, 1, 0, self.filename)
        else:
            here = self._previous.span.end
        return Token(TokenType.EOF, None, "", SourceSpan(here, here))

    def _check(self, token_type: TokenType) -> bool:
        return self._current.type == token_type

    def _match(self, *token_types: TokenType) -> Optional[Token]:
        """Consume token if it matches any of the given types."""
        if self._current.type in token_types:
            return self._advance()
        return None

    def _skip_newlines(self) -> None:
        while self._check(TokenType.NEWLINE):
            self._advance()

    def _span_from(self, start: Token) -> SourceSpan:
        """Create a span from start token to the last consumed token."""
        end = self._previous if self._previous is not None else start
        if end.span.end.offset < start.span.start.offset:
            end = start
        return SourceSpan(start.span.start, end.span.end)

    def _source_line(self, line: int) -> Optional[str]:
        if 1 <= line <= len(self._lines):
            return self._lines[line - 1].rstrip('\r')
        return None

    def _record(self, error: ParserError) -> None:
        self.diagnostics.add_error(error)

    def _error(self, expected: str) -> None:
        """Record an unexpected-token error at the current token."""
        token = self._current
        line = self._source_line(token.span.start.line)
        if token.type == TokenType.EOF:
            self._record(error_unexpected_eof(expected, token.span, line))
        else:
            self._record(error_unexpected_token(expected, describe_token(token), token.span, line))

    def _text_since(self, mark: int, start: Token) -> str:
        """Source text of the tokens consumed since ``mark``."""
        if self.source is not None and self._previous is not None:
            end = self._previous.span.end.offset
            return self.source[start.span.start.offset:end].strip()
        return " ".join(self._lexemes[mark:])

    # =========================================================================
    # Statement Parsing
    # =========================================================================

    def _parse_statement(self) -> Statement:
        """Parse one statement and its terminating newline."""
        errors_before = self.diagnostics.error_count
        start = self._current

        if self._match(TokenType.GT):
            expr = self._parse_expression()
            stmt = SendStatement(span=self._span_from(start), expression=expr)
        elif self._match(TokenType.LT):
            mark, first = len(self._lexemes), self._current
            expr = self._parse_expression()
            stmt = ReceiveStatement(
                span=self._span_from(start),
                pattern=expr,
                source_text=self._text_since(mark, first),
            )
        elif self._match(TokenType.ASSERT):
            mark, first = len(self._lexemes), self._current
            expr = self._parse_expression()
            stmt = AssertStatement(
                span=self._span_from(start),
                condition=expr,
                source_text=self._text_since(mark, first),
            )
        else:
            expr = self._parse_expression()
            stmt = ExpressionStatement(span=expr.span, expression=expr)

        self._expect_statement_end(already_failed=self.diagnostics.error_count > errors_before)
        return stmt

    def _expect_statement_end(self, already_failed: bool) -> None:
        """Expect NEWLINE or EOF; otherwise report once and skip the line."""
        if self._check(TokenType.EOF):
            return
        if self._match(TokenType.NEWLINE):
            return
        if not already_failed:
            self._error("newline")
        while not self._check(TokenType.NEWLINE) and not self._check(TokenType.EOF):
            self._advance()
        self._match(TokenType.NEWLINE)

    # =========================================================================
    # Expression Parsing (Precedence Climbing)
    # =========================================================================

    def _parse_expression(self) -> Expression:
        """Parse an expression, lowest precedence first (assignment)."""
        start = self._current
        target = self._parse_binary_expr(1)

        assign = self._match(TokenType.ASSIGN)
        if assign is None:
            return target

        value = self._parse_expression()
        # (x) = 1 is rejected: the target must be written as a bare name
        if isinstance(target, Identifier) and start.type != TokenType.LPAREN:
            return Assignment(span=self._span_from(start), target=target, value=value)

        self._record(error_assignment_target(
            SourceSpan(start.span.start, assign.span.start),
            self._source_line(start.span.start.line),
        ))
        return target

    def _parse_binary_expr(self, min_precedence: int) -> Expression:
        """Parse binary expressions with precedence climbing."""
        start = self._current
        left = self._parse_unary_expr()
        last_precedence = None

        while True:
            op_token = self._current
            precedence = self.PRECEDENCE.get(op_token.type)

            if precedence is None or precedence < min_precedence:
                break
            if last_precedence is not None:
                # an operator the right operand refused is left for the caller to reject
                if precedence > last_precedence:
                    break
                # comparisons do not chain: a == b == c is a syntax error
                if precedence == last_precedence == self.COMPARISON_PRECEDENCE:
                    break

            self._advance()  # consume operator
            right = self._parse_binary_expr(precedence + 1)
            last_precedence = precedence
            left = self._make_binary(left, op_token.type, right, self._span_from(start))

        return left

    def _make_binary(self, left: Expression, operator: TokenType, right: Expression,
                     span: SourceSpan) -> Expression:
        if operator in self.NEGATED:
            inner = BinaryOp(span=span, left=left, operator=self.NEGATED[operator], right=right)
            return UnaryOp(span=span, operator=TokenType.NOT, operand=inner)
        return BinaryOp(span=span, left=left, operator=operator, right=right)

    def _parse_unary_expr(self) -> Expression:
        """Parse unary expressions (! and -)."""
        start = self._current
        if self._match(TokenType.NOT):
            operand = self._parse_unary_expr()
            return UnaryOp(span=self._span_from(start), operator=TokenType.NOT, operand=operand)
        if self._match(TokenType.MINUS):
            # -x is 0 - x
            operand = self._parse_unary_expr()
            zero = Literal(span=start.span, value=0, literal_type=TokenType.INT_LITERAL)
            return BinaryOp(span=self._span_from(start), left=zero,
                            operator=TokenType.MINUS, right=operand)
        return self._parse_primary_expr()

    def _parse_primary_expr(self) -> Expression:
        """Parse atoms: identifiers, literals, '.', groups and templates."""
        token = self._current

        if token.type == TokenType.IDENTIFIER:
            self._advance()
            return Identifier(span=token.span, name=token.value)

        if token.type == TokenType.INT_LITERAL:
            self._advance()
            return Literal(span=token.span, value=token.value,
                           literal_type=TokenType.INT_LITERAL)

        if token.type == TokenType.STRING_LITERAL:
            self._advance()
            return Literal(span=token.span, value=token.value,
                           literal_type=TokenType.STRING_LITERAL)

        if token.type == TokenType.DOT:
            self._advance()
            return Dot(span=token.span)

        if token.type == TokenType.LPAREN:
            return self._parse_group()

        if token.type == TokenType.TEMPLATE_START:
            return self._parse_template()

        self._error("expression")
        # Newlines end the statement; anything else is skipped so parsing advances.
        if token.type not in (TokenType.NEWLINE, TokenType.EOF):
            self._advance()
        # placeholder; scripts with syntax errors never run
        return Literal(span=token.span, value="", literal_type=TokenType.STRING_LITERAL)

    def _parse_group(self) -> Expression:
        """Parse ( expr )."""
        open_token = self._advance()
        expr = self._parse_expression()
        if self._match(TokenType.RPAREN) is None:
            self._record(error_unclosed_group(
                SourceSpan(open_token.span.start, self._current.span.start),
                self._source_line(open_token.span.start.line),
            ))
        return expr

    def _parse_template(self) -> Expression:
        """Lower :text{expr}text... into a right-nested concatenation chain.

        Every template ends with an implicit CRLF.
        """
        token = self._advance()
        parts: List[Expression] = []

        while True:
            if token.value:
                parts.append(Literal(span=token.span, value=token.value,
                                     literal_type=TokenType.STRING_LITERAL))
            if not token.continues:
                break
            parts.append(self._parse_expression())
            if not self._check(TokenType.TEMPLATE_CONT):
                self._record(error_unclosed_template(
                    self._current.span, self._source_line(self._current.span.start.line)))
                break
            token = self._advance()

        end = self._previous.span.end
        node: Expression = Literal(span=SourceSpan(end, end), value="\r\n",
                                   literal_type=TokenType.STRING_LITERAL)
        for part in reversed(parts):
            node = Concatenation(span=SourceSpan(part.span.start, node.span.end),
                                 left=part, right=node)
        return node

    # =========================================================================
    # Script
    # =========================================================================

    def parse_script(self) -> Script:
        """Parse a complete script."""
        start = self._current
        statements: List[Statement] = []

        while True:
            self._skip_newlines()
            if self._check(TokenType.EOF):
                break
            statements.append(self._parse_statement())

        return Script(span=self._span_from(start), statements=statements,
                      filename=self.filename)


def parse(tokens: Iterable[Token], filename: Optional[str] = None,
          source: Optional[str] = None) -> Script:
    """
    Convenience function to parse tokens into a script.

    Syntax errors do not raise; use a ``Parser`` directly to inspect its
    ``diagnostics``.

    Args:
        tokens: Tokens from the lexer (a list or a ``Lexer``)
        filename: Optional filename for error messages
        source: Optional original source for receive/assert text

    Returns:
        Parsed Script
    """
    parser = Parser(tokens, filename, source)
    return parser.parse_script()

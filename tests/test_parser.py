"""
Unit tests for the pest parser.
"""

import pytest
from pest import (
    Lexer, Parser, parse, tokenize, compile_script, TokenType,
    Literal, Identifier, Dot, BinaryOp, UnaryOp, Concatenation, Assignment,
    ExpressionStatement, SendStatement, ReceiveStatement, AssertStatement,
)


def parse_source(source):
    return parse(Lexer(source))


def parse_expr(source):
    """Parse a single expression statement and return its expression."""
    script = parse_source(source)
    assert len(script.statements) == 1
    stmt = script.statements[0]
    assert isinstance(stmt, ExpressionStatement)
    return stmt.expression


def error_codes(source):
    parser = Parser(Lexer(source))
    parser.parse_script()
    return [d.code for d in parser.diagnostics]


class TestStatements:
    """Test statement dispatch."""

    def test_empty_script(self):
        """Empty source parses to no statements."""
        script = parse_source("")
        assert script.statements == []

    def test_blank_lines(self):
        """Blank lines, including trailing ones, are skipped."""
        script = parse_source("\n\nx = 1\n\n\n")
        assert len(script.statements) == 1

    def test_send(self):
        """'>' starts a send."""
        script = parse_source('> "PING\\r\\n"\n')
        stmt = script.statements[0]
        assert isinstance(stmt, SendStatement)
        assert isinstance(stmt.expression, Literal)
        assert stmt.expression.value == "PING\r\n"

    def test_receive_keeps_source_text(self):
        """A receive remembers its pattern text for messages."""
        script = parse_source("< :250 {greeting = .}\n")
        stmt = script.statements[0]
        assert isinstance(stmt, ReceiveStatement)
        assert stmt.source_text == ":250 {greeting = .}"

    def test_assert_keeps_source_text(self):
        """An assert remembers its condition text for messages."""
        script = parse_source("~ n == 3\n")
        stmt = script.statements[0]
        assert isinstance(stmt, AssertStatement)
        assert stmt.source_text == "n == 3"

    def test_statements_in_order(self):
        """Statements keep source order."""
        script = parse_source('x = 1\n> "a"\n< "b"\n~ x\n')
        kinds = [type(s) for s in script.statements]
        assert kinds == [ExpressionStatement, SendStatement, ReceiveStatement, AssertStatement]

    def test_parses_token_list(self):
        """The parser accepts a list of tokens as well as a lexer."""
        script = parse(tokenize("x = 1"), source="x = 1")
        assert isinstance(script.statements[0].expression, Assignment)


class TestExpressions:
    """Test expression precedence and lowering."""

    def test_assignment(self):
        """Simple assignment."""
        expr = parse_expr("x = 5")
        assert isinstance(expr, Assignment)
        assert expr.target.name == "x"
        assert expr.value.value == 5

    def test_assignment_right_associative(self):
        """a = b = 1 assigns b first."""
        expr = parse_expr("a = b = 1")
        assert isinstance(expr, Assignment)
        assert isinstance(expr.value, Assignment)
        assert expr.value.target.name == "b"

    def test_multiplication_binds_tighter(self):
        """'*' binds tighter than '+'."""
        expr = parse_expr("1 + 2 * 3")
        assert expr.operator == TokenType.PLUS
        assert expr.right.operator == TokenType.STAR

    def test_left_associative(self):
        """Additive operators associate left."""
        expr = parse_expr("10 - 4 - 3")
        assert expr.operator == TokenType.MINUS
        assert isinstance(expr.left, BinaryOp)
        assert expr.left.operator == TokenType.MINUS
        assert expr.right.value == 3

    def test_logical_precedence(self):
        """'&&' binds tighter than '||'."""
        expr = parse_expr("a || b && c")
        assert expr.operator == TokenType.OR
        assert expr.right.operator == TokenType.AND

    def test_comparison_under_logical(self):
        """Comparisons bind tighter than logical operators."""
        expr = parse_expr("a == 1 && b < 2")
        assert expr.operator == TokenType.AND
        assert expr.left.operator == TokenType.EQ
        assert expr.right.operator == TokenType.LT

    @pytest.mark.parametrize("op,inner", [
        ("!=", TokenType.EQ),
        ("<=", TokenType.GT),
        (">=", TokenType.LT),
    ])
    def test_negated_comparisons_lower(self, op, inner):
        """!=, <= and >= become a negated complement."""
        expr = parse_expr(f"a {op} b")
        assert isinstance(expr, UnaryOp)
        assert expr.operator == TokenType.NOT
        assert expr.operand.operator == inner

    def test_unary_minus_lowers_to_subtraction(self):
        """-x becomes 0 - x."""
        expr = parse_expr("-5")
        assert isinstance(expr, BinaryOp)
        assert expr.operator == TokenType.MINUS
        assert expr.left.value == 0
        assert expr.right.value == 5

    def test_nested_unary(self):
        """Unary operators nest."""
        expr = parse_expr("!!a")
        assert isinstance(expr, UnaryOp)
        assert isinstance(expr.operand, UnaryOp)
        assert isinstance(expr.operand.operand, Identifier)

    def test_grouping(self):
        """Parentheses override precedence."""
        expr = parse_expr("(1 + 2) * 3")
        assert expr.operator == TokenType.STAR
        assert expr.left.operator == TokenType.PLUS

    def test_dot(self):
        """'.' is the match context."""
        assert isinstance(parse_expr("."), Dot)


class TestTemplates:
    """Test template lowering."""

    def test_plain_template_appends_crlf(self):
        """Every template ends with CRLF."""
        expr = parse_expr(":HELLO")
        assert isinstance(expr, Concatenation)
        assert expr.left.value == "HELLO"
        assert expr.right.value == "\r\n"

    def test_empty_template_is_crlf(self):
        """An empty template is just CRLF."""
        expr = parse_expr(":")
        assert isinstance(expr, Literal)
        assert expr.value == "\r\n"

    def test_right_nested_chain(self):
        """Segments nest to the right."""
        expr = parse_expr(":seq{n}!")
        assert expr.left.value == "seq"
        assert isinstance(expr.right.left, Identifier)
        assert expr.right.right.left.value == "!"
        assert expr.right.right.right.value == "\r\n"

    def test_adjacent_expressions(self):
        """Empty segments between expressions are dropped."""
        expr = parse_expr(":{a}{b}")
        assert isinstance(expr.left, Identifier)
        assert isinstance(expr.right.left, Identifier)
        assert expr.right.right.value == "\r\n"

    def test_assignment_inside_template(self):
        """Embedded expressions may assign."""
        expr = parse_expr(":250 {greeting = .}")
        assert isinstance(expr.right.left, Assignment)
        assert isinstance(expr.right.left.value, Dot)


class TestParserErrors:
    """Test error recording and recovery."""

    def test_comparison_does_not_chain(self):
        """a == b == c is rejected."""
        assert error_codes("a == b == c") == ["E101"]

    def test_comparison_chain_after_logical(self):
        """A chained comparison under '&&' is rejected."""
        assert error_codes("a && b == c == d") == ["E101"]

    def test_assignment_target(self):
        """Only identifiers can be assigned."""
        parser = Parser(Lexer("1 = x"))
        parser.parse_script()
        [diag] = list(parser.diagnostics)
        assert diag.code == "E103"
        assert diag.span.start.offset == 0

    @pytest.mark.parametrize("source", ["(x) = 3", "((x)) = 3", "(x = 1) = 2"])
    def test_parenthesized_assignment_target(self, source):
        """A parenthesized name is not an assignment target."""
        assert error_codes(source) == ["E103"]

    def test_grouped_assignment_value(self):
        """Parentheses on the right of '=' are fine."""
        expr = parse_expr("x = (y)")
        assert isinstance(expr, Assignment)
        assert isinstance(expr.value, Identifier)

    def test_missing_operand_at_eof(self):
        """Running out of input mid-expression."""
        assert error_codes("x = 1 +") == ["E102"]

    def test_unexpected_token(self):
        """A token that cannot start an expression."""
        assert error_codes("> )") == ["E101"]

    def test_unclosed_group(self):
        """A group without ')'."""
        assert error_codes("(1 + 2") == ["E104"]

    def test_unclosed_template(self):
        """An embedded expression without '}'."""
        assert error_codes(":a{b c}") == ["E105"]

    def test_one_error_per_bad_line(self):
        """The rest of a bad line is skipped."""
        assert error_codes("> ) ) )\n~ ) )\nx = 1\n") == ["E101", "E101"]

    def test_later_statements_still_parse(self):
        """Parsing resumes on the next line."""
        parser = Parser(Lexer("> )\nx = 1\n"))
        script = parser.parse_script()
        assert isinstance(script.statements[-1].expression, Assignment)


class TestCompile:
    """Test compile_script."""

    def test_clean_script(self):
        """A clean script compiles with its filename."""
        result = compile_script("x = 1\n", "a.pest")
        assert not result.has_errors
        assert result.script.filename == "a.pest"

    def test_lexical_errors_take_precedence(self):
        """Only lexical errors are reported when there are any."""
        result = compile_script("x = @\n> )\n")
        assert result.has_errors
        assert result.script is None
        assert [d.code for d in result.diagnostics] == ["E001"]

    def test_syntax_errors_block_script(self):
        """A script with syntax errors is withheld."""
        result = compile_script("x = (1\n")
        assert result.script is None
        assert [d.code for d in result.diagnostics] == ["E104"]

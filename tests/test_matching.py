"""
Tests for concatenation matching against received text.
"""

import pytest

from pest import (
    compile_script, Interpreter, TokenType, SourceLocation, SourceSpan,
    Literal, Identifier, Dot, Concatenation, Assignment,
)
from pest.runtime import (
    create_environment, int_val, string_val, MatchFailure,
)


HERE = SourceLocation(1, 1, 0)
SPAN = SourceSpan(HERE, HERE)


def lit(text):
    return Literal(span=SPAN, value=text, literal_type=TokenType.STRING_LITERAL)


def dot():
    return Dot(span=SPAN)


def concat(left, right):
    return Concatenation(span=SPAN, left=left, right=right)


def capture(name, value):
    return Assignment(span=SPAN, target=Identifier(span=SPAN, name=name), value=value)


def pattern(source):
    """Compile a one-line pattern expression."""
    result = compile_script(source)
    assert not result.has_errors
    return result.script.statements[0].expression


@pytest.fixture
def env():
    return create_environment()


def match(expr, text, env):
    return Interpreter().match(expr, env.with_dot(text))


class TestWithoutContext:
    """Operands that stand alone are simply joined."""

    @pytest.mark.parametrize("a,b", [
        (lit("x"), lit("y")),
        (lit(""), lit("")),
        (Literal(span=SPAN, value=12, literal_type=TokenType.INT_LITERAL), lit("!")),
    ])
    def test_join(self, a, b, env):
        """The result is the joined text of both operands."""
        interp = Interpreter()
        result = interp.evaluate(concat(a, b), env)
        expected = interp.evaluate(a, env).as_string() + interp.evaluate(b, env).as_string()
        assert result == string_val(expected)

    def test_context_is_irrelevant(self, env):
        """Self-sufficient operands ignore the match context."""
        outcome = match(concat(lit("a"), lit("b")), "zzz", env)
        assert outcome.value == string_val("ab")

    def test_needs_context(self, env):
        """A dot with no context has no value."""
        with pytest.raises(MatchFailure):
            Interpreter().evaluate(concat(lit("a"), dot()), env)


class TestPrefixAndSuffix:
    """A self-sufficient operand anchors one end of the text."""

    @pytest.mark.parametrize("prefix,text", [
        ("x", "xyz"),
        ("", "abc"),
        ("abc", "abc"),
        ("220 ", "220 ready\r\n"),
    ])
    def test_prefix_yields_whole_text(self, prefix, text, env):
        """literal . against text with that prefix yields the text."""
        outcome = match(concat(lit(prefix), dot()), text, env)
        assert outcome.failure is None
        assert outcome.value == string_val(text)

    def test_missing_prefix(self, env):
        """'yz' does not match 'x' . ."""
        outcome = match(concat(lit("x"), dot()), "yz", env)
        assert outcome.value is None
        assert not outcome.failure.ambiguous

    def test_suffix(self, env):
        """A literal right operand anchors the end."""
        outcome = match(concat(capture("head", dot()), lit("\r\n")), "HELO\r\n", env)
        assert outcome.value == string_val("HELO\r\n")
        assert env.bindings["head"] == string_val("HELO")

    def test_missing_suffix(self, env):
        """Text without the suffix fails."""
        outcome = match(concat(dot(), lit("\r\n")), "HELO", env)
        assert outcome.failure is not None

    def test_unnamed_dot_binds_nothing(self, env):
        """Structure is checked without capturing anything."""
        outcome = match(concat(lit("220 "), concat(dot(), lit("\r\n"))), "220 ready\r\n", env)
        assert outcome.value == string_val("220 ready\r\n")
        assert env.bindings == {}

    def test_prefix_built_from_byte_escapes(self, env):
        """A bound prefix spelled with byte escapes anchors decoded text."""
        compiled = compile_script('p = "\\xc3\\xa9 "\n')
        Interpreter(compiled.source).execute(compiled.script, env)
        outcome = match(pattern(":{p}{rest = .}"), "é ok\r\n", env)
        assert outcome.failure is None
        assert env.bindings["rest"] == string_val("ok")


class TestSplitSearch:
    """Neither operand stands alone: every split point is tried."""

    @pytest.mark.parametrize("text", ["ab", "xyz", "a", "hello world"])
    def test_dot_dot_is_ambiguous(self, text, env):
        """. . splits non-empty text more than one way."""
        outcome = match(concat(dot(), dot()), text, env)
        assert outcome.value is None
        assert outcome.failure.ambiguous

    def test_dot_dot_on_empty_text(self, env):
        """Empty text has exactly one split."""
        outcome = match(concat(dot(), dot()), "", env)
        assert outcome.value == string_val("")

    def test_single_split(self, env):
        """Only the split at the space lets both halves match."""
        expr = concat(concat(capture("verb", dot()), lit(" ")),
                      concat(capture("arg", dot()), lit("\r\n")))
        outcome = match(expr, "MAIL FROM\r\n", env)
        assert outcome.failure is None
        assert env.bindings["verb"] == string_val("MAIL")
        assert env.bindings["arg"] == string_val("FROM")

    def test_captures_reflect_winning_split(self, env):
        """Bindings come from the split that matched."""
        expr = concat(concat(capture("a", dot()), lit("-")), capture("b", dot()))
        outcome = match(expr, "left-right", env)
        assert outcome.value == string_val("left-right")
        assert env.bindings["a"] == string_val("left")
        assert env.bindings["b"] == string_val("right")

    def test_two_separators_are_ambiguous(self, env):
        """Two candidate separators make the split ambiguous."""
        expr = concat(concat(dot(), lit("-")), dot())
        outcome = match(expr, "a-b-c", env)
        assert outcome.failure.ambiguous

    def test_no_split(self, env):
        """No separator means no match, not ambiguity."""
        expr = concat(concat(dot(), lit("-")), dot())
        outcome = match(expr, "abc", env)
        assert outcome.failure is not None
        assert not outcome.failure.ambiguous


class TestTemplates:
    """Templates build lines and match them."""

    def test_interpolation(self, env):
        """:seq{n} with n = 7 is 'seq7\\r\\n'."""
        env.set_variable("n", int_val(7))
        value = Interpreter().evaluate(pattern(":seq{n}"), env)
        assert value == string_val("seq7\r\n")

    def test_capture_in_template(self, env):
        """name = . inside a template captures text."""
        outcome = match(pattern(":250 {greeting = .}"), "250 mail.example.com\r\n", env)
        assert outcome.failure is None
        assert env.bindings["greeting"] == string_val("mail.example.com")

    def test_bound_pattern_builds_its_own_text(self, env):
        """A fully bound template yields its own text whatever was received."""
        env.set_variable("t", int_val(42))
        outcome = match(pattern(":PONG {t}"), "PONG 43\r\n", env)
        assert outcome.value == string_val("PONG 42\r\n")

    def test_two_captures_with_separator(self, env):
        """Spaces inside the captured text make a space separator ambiguous."""
        outcome = match(pattern(":{code = .} {text = .}"), "550 no such user\r\n", env)
        assert outcome.failure.ambiguous

    def test_anchored_captures(self, env):
        """A separator that appears once splits uniquely."""
        outcome = match(pattern(":{code = .}:{text = .}"), "550:no such user\r\n", env)
        assert outcome.failure is None
        assert env.bindings["code"] == string_val("550")
        assert env.bindings["text"] == string_val("no such user")

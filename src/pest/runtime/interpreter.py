"""
Tree-walking interpreter for pest scripts.

Evaluates syntax tree nodes against an Environment. Most nodes compute
a value from their children; ``Concatenation`` doubles as a matcher
that splits received text between its operands (see
``Interpreter._eval_concatenation``).
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Union

from .values import Value, int_val, bool_val, string_val
from .context import Clock, Environment, create_environment
from .protocol import execute_send, execute_receive, execute_assert
from ..ast import (
    Script, Statement, ExpressionStatement, SendStatement, ReceiveStatement,
    AssertStatement, Expression, Literal, Identifier, Dot, BinaryOp, UnaryOp,
    Concatenation, Assignment,
)
from ..errors import (
    Diagnostic, DiagnosticCollector, EvaluationError,
    error_unbound_identifier, error_division_by_zero, error_missing_match_context,
)
from ..tokens import SourceSpan, TokenType
from ..transport import Channel


logger = logging.getLogger(__name__)

RESERVED_NOW = "now"


class MatchFailure(Exception):
    """An expression has no value: it needs text to match and has none, or
    the text it was given does not fit.

    This is the recoverable failure concatenation searches over; it never
    leaves the interpreter.
    """

    def __init__(self, reason: str, ambiguous: bool = False):
        super().__init__(reason)
        self.ambiguous = ambiguous


@dataclass
class MatchOutcome:
    """Either the value an expression produced or why it produced none."""
    value: Optional[Value] = None
    failure: Optional[MatchFailure] = None


@dataclass
class ExecutionResult:
    """Result of running a script."""
    success: bool
    bindings: Dict[str, Value] = field(default_factory=dict)
    statements_run: int = 0
    diagnostic: Optional[Diagnostic] = None
    error_message: Optional[str] = None


@dataclass
class CompileResult:
    """Result of lexing and parsing a script."""
    script: Optional[Script]
    diagnostics: List[Diagnostic]
    source: str = ""

    @property
    def has_errors(self) -> bool:
        return bool(self.diagnostics)


def _divide(numerator: int, denominator: int) -> int:
    """Signed division truncating toward zero."""
    quotient = abs(numerator) // abs(denominator)
    if (numerator < 0) != (denominator < 0):
        quotient = -quotient
    return quotient


class Interpreter:
    """
    Tree-walking interpreter for pest scripts.

    Statements run strictly in order against one Environment. The first
    ``EvaluationError`` ends the run.
    """

    def __init__(self, source: str = ""):
        self._lines = source.split('\n') if source else []

    def source_line(self, span: SourceSpan) -> Optional[str]:
        """Get a source line for error messages."""
        line_num = span.start.line
        if 1 <= line_num <= len(self._lines):
            return self._lines[line_num - 1].rstrip('\r')
        return None

    def execute(self, script: Script, env: Environment) -> ExecutionResult:
        """
        Run a script, converting the first failure into a result.

        Args:
            script: A parsed script with no diagnostics
            env: The environment for this run

        Returns:
            ExecutionResult with the final bindings
        """
        count = 0
        try:
            for stmt in script.statements:
                self._execute_statement(stmt, env)
                count += 1
        except EvaluationError as e:
            return ExecutionResult(
                success=False,
                bindings=env.bindings,
                statements_run=count,
                diagnostic=e.diagnostic,
                error_message=e.diagnostic.message,
            )
        return ExecutionResult(success=True, bindings=env.bindings, statements_run=count)

    def run(self, script: Script, env: Environment) -> None:
        """Run a script, raising ``EvaluationError`` on the first failure."""
        for stmt in script.statements:
            self._execute_statement(stmt, env)

    def _execute_statement(self, stmt: Statement, env: Environment) -> Value:
        """Execute a statement."""
        if isinstance(stmt, SendStatement):
            return execute_send(self, stmt, env)
        elif isinstance(stmt, ReceiveStatement):
            return execute_receive(self, stmt, env)
        elif isinstance(stmt, AssertStatement):
            return execute_assert(self, stmt, env)
        elif isinstance(stmt, ExpressionStatement):
            return self.evaluate_statement_expression(stmt.expression, env.with_dot(None), stmt)
        else:
            raise RuntimeError(f"Unknown statement type: {type(stmt).__name__}")

    def evaluate_statement_expression(self, expr: Expression, env: Environment,
                                      stmt: Statement) -> Value:
        """Evaluate a statement's operand; a missing value ends the run."""
        try:
            return self.evaluate(expr, env)
        except MatchFailure as e:
            logger.debug("no value outside a receive: %s", e)
            raise error_missing_match_context(stmt.span, self.source_line(stmt.span)) from e

    def match(self, expr: Expression, env: Environment) -> MatchOutcome:
        """Evaluate, capturing a recoverable failure instead of raising it."""
        try:
            return MatchOutcome(value=self.evaluate(expr, env))
        except MatchFailure as e:
            return MatchOutcome(failure=e)

    def evaluate(self, expr: Expression, env: Environment) -> Value:
        """
        Evaluate an expression to produce a Value.

        Raises:
            MatchFailure: If the expression has no value in this context
            EvaluationError: On an unrecoverable error
        """
        if isinstance(expr, Literal):
            return self._eval_literal(expr)
        elif isinstance(expr, Identifier):
            return self._eval_identifier(expr, env)
        elif isinstance(expr, Dot):
            return self._eval_dot(env)
        elif isinstance(expr, Concatenation):
            return self._eval_concatenation(expr, env)
        elif isinstance(expr, BinaryOp):
            return self._eval_binary_op(expr, env)
        elif isinstance(expr, UnaryOp):
            return self._eval_unary_op(expr, env)
        elif isinstance(expr, Assignment):
            return self._eval_assignment(expr, env)
        else:
            raise RuntimeError(f"Unknown expression type: {type(expr).__name__}")

    def _eval_literal(self, lit: Literal) -> Value:
        if lit.literal_type == TokenType.INT_LITERAL:
            return int_val(lit.value)
        elif lit.literal_type == TokenType.STRING_LITERAL:
            return string_val(lit.value)
        else:
            raise RuntimeError(f"Unknown literal type: {lit.literal_type}")

    def _eval_identifier(self, ident: Identifier, env: Environment) -> Value:
        """Look up a binding; ``now`` reads the environment clock instead."""
        if ident.name == RESERVED_NOW:
            return int_val(env.clock())
        value = env.get_variable(ident.name)
        if value is None:
            raise error_unbound_identifier(ident.name, ident.span, self.source_line(ident.span))
        return value

    def _eval_dot(self, env: Environment) -> Value:
        if env.dot is None:
            raise MatchFailure("'.' has no match context")
        return string_val(env.dot)

    def _eval_assignment(self, node: Assignment, env: Environment) -> Value:
        value = self.evaluate(node.value, env)
        env.set_variable(node.target.name, value)
        logger.debug("%s = %r", node.target.name, value)
        return value

    def _eval_unary_op(self, op: UnaryOp, env: Environment) -> Value:
        if op.operator == TokenType.NOT:
            return bool_val(not self.evaluate(op.operand, env).as_bool())
        raise RuntimeError(f"Unknown unary operator: {op.operator}")

    def _eval_binary_op(self, op: BinaryOp, env: Environment) -> Value:
        """Evaluate a binary operation over Integer (or Boolean) coercions."""
        # Short-circuit for logical operators
        if op.operator == TokenType.OR:
            if self.evaluate(op.left, env).as_bool():
                return bool_val(True)
            return bool_val(self.evaluate(op.right, env).as_bool())
        elif op.operator == TokenType.AND:
            if not self.evaluate(op.left, env).as_bool():
                return bool_val(False)
            return bool_val(self.evaluate(op.right, env).as_bool())

        left = self.evaluate(op.left, env).as_int()
        right = self.evaluate(op.right, env).as_int()

        # Arithmetic operators
        if op.operator == TokenType.PLUS:
            return int_val(left + right)
        elif op.operator == TokenType.MINUS:
            return int_val(left - right)
        elif op.operator == TokenType.STAR:
            return int_val(left * right)
        elif op.operator in (TokenType.SLASH, TokenType.PERCENT):
            if right == 0:
                raise error_division_by_zero(op.span, self.source_line(op.span))
            quotient = _divide(left, right)
            if op.operator == TokenType.SLASH:
                return int_val(quotient)
            return int_val(left - right * quotient)

        # Comparison operators
        elif op.operator == TokenType.EQ:
            return bool_val(left == right)
        elif op.operator == TokenType.LT:
            return bool_val(left < right)
        elif op.operator == TokenType.GT:
            return bool_val(left > right)

        else:
            raise RuntimeError(f"Unknown binary operator: {op.operator}")

    def _eval_concatenation(self, node: Concatenation, env: Environment) -> Value:
        """
        Join or match two operands.

        Operands that have values on their own are simply joined. Otherwise
        the match context is split between them:

        - a self-sufficient left operand must be a prefix of the context,
          and the right operand is matched against the rest;
        - a self-sufficient right operand must be a suffix, and the left
          operand is matched against what precedes it;
        - if neither stands alone, every split point is tried and exactly
          one must succeed. Two or more successful splits are ambiguous.
        """
        free = env.with_dot(None)
        left = self.match(node.left, free).value
        right = self.match(node.right, free).value

        if left is not None and right is not None:
            return string_val(left.as_string() + right.as_string())

        dot = env.dot
        if dot is None:
            raise MatchFailure("pattern needs text to match")

        if left is not None:
            prefix = left.as_string()
            if not dot.startswith(prefix):
                raise MatchFailure(f"{dot!r} does not start with {prefix!r}")
            right = self.evaluate(node.right, env.with_dot(dot[len(prefix):]))
            return string_val(prefix + right.as_string())

        if right is not None:
            suffix = right.as_string()
            if not dot.endswith(suffix):
                raise MatchFailure(f"{dot!r} does not end with {suffix!r}")
            left = self.evaluate(node.left, env.with_dot(dot[:len(dot) - len(suffix)]))
            return string_val(left.as_string() + suffix)

        hit = None
        for i in range(len(dot) + 1):
            if self.match(node.left, env.with_dot(dot[:i])).failure is not None:
                continue
            if self.match(node.right, env.with_dot(dot[i:])).failure is not None:
                continue
            if hit is not None:
                logger.debug("ambiguous split of %r at %d and %d", dot, hit, i)
                raise MatchFailure(f"{dot!r} splits more than one way", ambiguous=True)
            hit = i

        if hit is None:
            raise MatchFailure(f"no split of {dot!r} matches")

        # Evaluate the winning split again so assignments reflect it rather
        # than the last split tried.
        left = self.evaluate(node.left, env.with_dot(dot[:hit]))
        right = self.evaluate(node.right, env.with_dot(dot[hit:]))
        return string_val(left.as_string() + right.as_string())


def compile_script(source: Union[str, bytes], filename: Optional[str] = None) -> CompileResult:
    """
    Lex and parse a script.

    Lexical errors take precedence: if the lexer reports anything, only
    those diagnostics are returned. A result with diagnostics carries
    no script.
    """
    from ..lexer import Lexer
    from ..parser import Parser

    lexer = Lexer(source, filename)
    parser = Parser(lexer, filename, lexer.source)
    script = parser.parse_script()

    if lexer.has_errors:
        return CompileResult(None, list(lexer.diagnostics), lexer.source)
    if parser.diagnostics.has_errors:
        return CompileResult(None, list(parser.diagnostics), lexer.source)
    return CompileResult(script, [], lexer.source)


def compile_and_run(
    source: Union[str, bytes],
    channel: Channel,
    filename: Optional[str] = None,
    clock: Optional[Clock] = None,
) -> ExecutionResult:
    """
    High-level API to compile and run a script in one call.

        from pest import compile_and_run, connect

        with connect("localhost:7777") as channel:
            result = compile_and_run('> "PING\\r\\n"\\n< "PONG\\r\\n"\\n', channel)
        if not result.success:
            print(result.error_message)

    Args:
        source: Script source
        channel: Connection to the peer under test
        filename: Optional filename for error messages
        clock: Optional source for ``now``

    Returns:
        ExecutionResult; compile errors are reported as a failed result
    """
    compiled = compile_script(source, filename)
    if compiled.has_errors:
        collector = DiagnosticCollector()
        for diagnostic in compiled.diagnostics:
            collector.add(diagnostic)
        return ExecutionResult(
            success=False,
            diagnostic=compiled.diagnostics[0],
            error_message=collector.format_all(show_source=False),
        )

    env = create_environment(channel=channel, clock=clock)
    interpreter = Interpreter(compiled.source)
    return interpreter.execute(compiled.script, env)

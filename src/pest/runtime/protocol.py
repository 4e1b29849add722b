"""
Protocol statements: send, receive and assert.

These are the only statements that touch the connection. Each one is
fail-fast: the first deviation raises an ``EvaluationError`` that ends
the run.
"""

import logging
from typing import TYPE_CHECKING

from .values import Value, string_val
from .context import Environment
from ..ast import SendStatement, ReceiveStatement, AssertStatement
from ..errors import (
    error_connection,
    error_no_match,
    error_ambiguous_match,
    error_content_mismatch,
    error_assertion_failed,
)
from ..transport import Channel

if TYPE_CHECKING:
    from .interpreter import Interpreter


logger = logging.getLogger(__name__)

WIRE_ENCODING = "utf-8"
WIRE_ERRORS = "surrogateescape"


def encode_text(text: str) -> bytes:
    return text.encode(WIRE_ENCODING, WIRE_ERRORS)


def decode_text(data: bytes) -> str:
    return data.decode(WIRE_ENCODING, WIRE_ERRORS)


def read_line(channel: Channel) -> bytes:
    """
    Read bytes up to and including the next CR LF.

    Raises:
        EOFError: If the stream ends before the terminator
        OSError: If the read fails
    """
    buf = bytearray()
    while not buf.endswith(b"\r\n"):
        chunk = channel.read(1)
        if not chunk:
            raise EOFError(f"connection closed after {len(buf)} byte(s) of an unterminated line")
        buf += chunk
    return bytes(buf)


def execute_send(interpreter: "Interpreter", stmt: SendStatement, env: Environment) -> Value:
    """Evaluate the operand without match context and write its text."""
    text = interpreter.evaluate_statement_expression(stmt.expression, env.with_dot(None), stmt)
    try:
        env.channel.write(encode_text(text.as_string()))
    except OSError as e:
        raise error_connection(f"write failed: {e}", stmt.span,
                               interpreter.source_line(stmt.span)) from e
    logger.info(">%r", text.as_string())
    return string_val(text.as_string())


def execute_receive(interpreter: "Interpreter", stmt: ReceiveStatement, env: Environment) -> Value:
    """Read one line and match it against the statement's pattern."""
    try:
        line = decode_text(read_line(env.channel))
    except EOFError as e:
        raise error_connection(str(e), stmt.span, interpreter.source_line(stmt.span)) from e
    except OSError as e:
        raise error_connection(f"read failed: {e}", stmt.span,
                               interpreter.source_line(stmt.span)) from e
    logger.info("<%r", line)

    outcome = interpreter.match(stmt.pattern, env.with_dot(line))
    if outcome.failure is not None:
        factory = error_ambiguous_match if outcome.failure.ambiguous else error_no_match
        raise factory(line[:-2], stmt.source_text, stmt.span, interpreter.source_line(stmt.span))

    matched = outcome.value.as_string()
    if matched != line:
        raise error_content_mismatch(line, matched, stmt.span, interpreter.source_line(stmt.span))
    return string_val(line)


def execute_assert(interpreter: "Interpreter", stmt: AssertStatement, env: Environment) -> Value:
    """Fail the run unless the condition is true."""
    condition = interpreter.evaluate_statement_expression(stmt.condition, env.with_dot(None), stmt)
    if not condition.as_bool():
        raise error_assertion_failed(stmt.source_text, stmt.span, interpreter.source_line(stmt.span))
    return condition

"""
pest - conformance testing for line-oriented network protocols.

A pest script is a sequence of sends, receives and assertions run
against a live connection:

    t = now
    > :PING {t}
    < :PONG {t}
    < :250 {greeting = .}

This package provides:
- Lexer: Tokenizes script source
- Parser: Builds a Script from tokens
- Interpreter: Runs a Script over a Channel, matching received lines
- Transport: TCP channels for the command line runner

Usage:
    from pest import compile_script, compile_and_run, connect

    result = compile_script(source, "greeting.pest")
    if result.has_errors:
        for diag in result.diagnostics:
            print(diag.format())

    with connect("localhost:25") as channel:
        outcome = compile_and_run(source, channel, "greeting.pest")
"""

from .tokens import (
    Token,
    TokenType,
    SourceLocation,
    SourceSpan,
)

from .lexer import (
    Lexer,
    tokenize,
)

from .parser import (
    Parser,
    parse,
)

from .ast import (
    AstNode,
    # Expressions
    Expression,
    Literal,
    Identifier,
    Dot,
    BinaryOp,
    UnaryOp,
    Concatenation,
    Assignment,
    # Statements
    Statement,
    ExpressionStatement,
    SendStatement,
    ReceiveStatement,
    AssertStatement,
    Script,
)

from .errors import (
    Diagnostic,
    DiagnosticCollector,
    ErrorSeverity,
    DslError,
    LexerError,
    ParserError,
    EvaluationError,
    locate,
)

from .runtime import (
    Interpreter,
    ExecutionResult,
    CompileResult,
    Environment,
    create_environment,
    Value,
    ValueType,
    compile_script,
    compile_and_run,
)

from .transport import (
    Channel,
    SocketChannel,
    connect,
    parse_address,
)

__version__ = "0.1.0"

__all__ = [
    # Tokens
    'Token',
    'TokenType',
    'SourceLocation',
    'SourceSpan',
    # Lexer / parser
    'Lexer',
    'tokenize',
    'Parser',
    'parse',
    # Syntax tree
    'AstNode',
    'Expression',
    'Literal',
    'Identifier',
    'Dot',
    'BinaryOp',
    'UnaryOp',
    'Concatenation',
    'Assignment',
    'Statement',
    'ExpressionStatement',
    'SendStatement',
    'ReceiveStatement',
    'AssertStatement',
    'Script',
    # Errors
    'Diagnostic',
    'DiagnosticCollector',
    'ErrorSeverity',
    'DslError',
    'LexerError',
    'ParserError',
    'EvaluationError',
    'locate',
    # Runtime
    'Interpreter',
    'ExecutionResult',
    'CompileResult',
    'Environment',
    'create_environment',
    'Value',
    'ValueType',
    'compile_script',
    'compile_and_run',
    # Transport
    'Channel',
    'SocketChannel',
    'connect',
    'parse_address',
]

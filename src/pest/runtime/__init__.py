"""
pest runtime - tree-walking interpreter for conformance scripts.

This module provides:
- Interpreter: Runs scripts statement by statement
- Value: The three runtime value kinds and their coercions
- Environment: Bindings, match context, clock and connection for a run
- Protocol statements: send, receive and assert
"""

from .values import (
    Value,
    ValueType,
    int_val,
    bool_val,
    string_val,
    wrap_int64,
    canonical_text,
)

from .context import (
    Environment,
    create_environment,
    system_clock,
)

from .protocol import (
    read_line,
    encode_text,
    decode_text,
)

from .interpreter import (
    Interpreter,
    ExecutionResult,
    CompileResult,
    MatchFailure,
    MatchOutcome,
    compile_script,
    compile_and_run,
)

__all__ = [
    # Values
    'Value',
    'ValueType',
    'int_val',
    'bool_val',
    'string_val',
    'wrap_int64',
    'canonical_text',

    # Context
    'Environment',
    'create_environment',
    'system_clock',

    # Protocol
    'read_line',
    'encode_text',
    'decode_text',

    # Interpreter
    'Interpreter',
    'ExecutionResult',
    'CompileResult',
    'MatchFailure',
    'MatchOutcome',
    'compile_script',
    'compile_and_run',
]

"""
Execution environment for the pest interpreter.

One Environment belongs to one script run. It holds the connection, the
binding table shared by every statement, the clock behind ``now``, and
an optional match context (the text a pattern is being matched against).
"""

import time
from dataclasses import dataclass, field, replace
from typing import Callable, Dict, Optional

from .values import Value
from ..transport import Channel


Clock = Callable[[], int]


def system_clock() -> int:
    """Nanoseconds since the Unix epoch."""
    return time.time_ns()


@dataclass(frozen=True)
class Environment:
    """
    An evaluation view over a script run.

    ``with_dot`` returns a new view that shares the same binding table
    but carries a different match context. Views are created and
    discarded within a single evaluation call, so entering a sub-match
    never changes what the caller sees.
    """
    channel: Optional[Channel] = None
    bindings: Dict[str, Value] = field(default_factory=dict)
    clock: Clock = system_clock
    dot: Optional[str] = None

    def with_dot(self, dot: Optional[str]) -> "Environment":
        """A view of the same run with match context ``dot``."""
        if dot is self.dot:
            return self
        return replace(self, dot=dot)

    def get_variable(self, name: str) -> Optional[Value]:
        return self.bindings.get(name)

    def set_variable(self, name: str, value: Value) -> None:
        self.bindings[name] = value


def create_environment(
    channel: Optional[Channel] = None,
    bindings: Optional[Dict[str, Value]] = None,
    clock: Optional[Clock] = None,
) -> Environment:
    """
    Create a fresh environment for one script run.

    Args:
        channel: The connection sends and receives use
        bindings: Initial bindings (copied)
        clock: Source for ``now``; defaults to the system clock

    Returns:
        An Environment with no match context
    """
    return Environment(
        channel=channel,
        bindings=dict(bindings or {}),
        clock=clock or system_clock,
    )

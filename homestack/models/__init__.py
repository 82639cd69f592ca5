"""Data models for homestack."""

from .commands import (  # noqa: F401
    COMMANDS,
    CommandKind,
    CommandSpec,
    Invocation,
)
from .stack import (  # noqa: F401
    FanOutResult,
    Stack,
    StackResult,
)

__all__ = [
    # Command models
    "COMMANDS",
    "CommandKind",
    "CommandSpec",
    "Invocation",
    # Stack models
    "FanOutResult",
    "Stack",
    "StackResult",
]

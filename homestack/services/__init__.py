"""Service layer for homestack command execution."""

from .dispatcher import Dispatcher, parse_invocation
from .global_commands import GlobalCommands
from .stack_operations import StackOperations

__all__ = ["Dispatcher", "GlobalCommands", "StackOperations", "parse_invocation"]

"""Command dispatcher: routes an invocation to a global command or a lifecycle verb."""

import sys
from collections.abc import Collection, Mapping, Sequence

import structlog

from ..constants import EXIT_FAILURE, EXIT_OK
from ..core.discovery import discover_stacks, resolve_stack
from ..core.exceptions import UnknownCommandError, UsageError
from ..core.settings import HomestackSettings
from ..models.commands import COMMANDS, CommandKind, CommandSpec, Invocation
from ..models.stack import FanOutResult
from .global_commands import GlobalCommands, render_help
from .stack_operations import StackOperations


def parse_invocation(
    tokens: Sequence[str],
    commands: Mapping[str, CommandSpec] = COMMANDS,
    stack_names: Collection[str] = (),
) -> Invocation:
    """Split `[stack] <command> [args...]` into its parts.

    With two or more tokens, a first token naming a known stack followed by
    a known command is read as `<stack> <command>`, even when the stack
    shares its name with a command. Otherwise a known command in first
    position means no stack was named, and any other first token is taken
    as the stack. An empty command name yields an invocation with an empty
    command and no stack.

    Raises:
        UnknownCommandError: For a single token that is not a command
    """
    if not tokens or tokens[0] == "":
        return Invocation("")

    first, *rest = tokens
    if rest and first in stack_names and rest[0] in commands:
        return Invocation(rest[0], first, tuple(rest[1:]))
    if first in commands:
        return Invocation(first, None, tuple(rest))
    if rest:
        if rest[0] == "":
            return Invocation("")
        return Invocation(rest[0], first, tuple(rest[1:]))
    raise UnknownCommandError(first)


class Dispatcher:
    """Validates a command, then runs it against one stack, every stack, or none."""

    def __init__(
        self,
        settings: HomestackSettings,
        operations: StackOperations | None = None,
        commands: Mapping[str, CommandSpec] = COMMANDS,
    ):
        self.settings = settings
        self.operations = operations or StackOperations(settings)
        self.global_commands = GlobalCommands(settings, self.operations)
        self.commands = commands
        self.logger = structlog.get_logger().bind(service="Dispatcher")

    async def run(self, tokens: Sequence[str]) -> int:
        """Parse and dispatch a command line, returning the exit status.

        An unknown or empty command prints the help text and returns 1.
        """
        try:
            invocation = parse_invocation(tokens, self.commands, self._stack_names(tokens))
            return await self.dispatch(invocation)
        except UnknownCommandError as e:
            self.logger.debug("Unknown command", command=e.command)
            print(str(e), file=sys.stderr)
            print(render_help())
            return EXIT_FAILURE
        finally:
            await self.operations.runner.cleanup_all()

    def _stack_names(self, tokens: Sequence[str]) -> set[str]:
        """Names a leading token could refer to, when it collides with a command."""
        if len(tokens) < 2 or tokens[0] not in self.commands:
            return set()
        names = set()
        for stack in discover_stacks(self.settings.root):
            names.add(stack.name)
            if stack.project:
                names.add(stack.project)
        return names

    async def dispatch(self, invocation: Invocation) -> int:
        if not invocation.command:
            self.logger.debug("Empty command")
            print(render_help())
            return EXIT_FAILURE

        spec = self.commands.get(invocation.command)
        if spec is None:
            raise UnknownCommandError(invocation.command)

        self.logger.info(
            "Dispatching command",
            command=spec.name,
            kind=spec.kind.value,
            stack=invocation.stack,
            args=list(invocation.args),
        )

        if invocation.stack is not None:
            if not spec.is_lifecycle:
                raise UsageError(f"'{spec.name}' is a global command and does not take a stack")
            return await self._run_single(invocation.stack, spec.name, invocation.args)

        if spec.is_lifecycle:
            return await self._run_all(spec.name, invocation.args)
        if spec.kind is CommandKind.GLOBAL:
            return await self.global_commands.run(spec.name, invocation.args)
        raise AssertionError(f"Unhandled command kind: {spec.kind}")

    async def _run_single(self, stack_name: str, verb: str, args: Sequence[str]) -> int:
        stack = resolve_stack(self.settings.root, stack_name)
        result = await self.operations.run_verb(stack, verb, args)
        return result.returncode

    async def _run_all(self, verb: str, args: Sequence[str]) -> int:
        stacks = discover_stacks(self.settings.root)
        if not stacks:
            self.logger.info("No stacks found", root=str(self.settings.root))
            return EXIT_OK

        outcome = await self.operations.fan_out(stacks, verb, args, self.settings.fan_out)
        self._print_summary(outcome)
        return outcome.returncode

    def _print_summary(self, outcome: FanOutResult) -> None:
        succeeded = len(outcome.results) - len(outcome.failures)
        print(f"==> {outcome.verb}: {succeeded}/{len(outcome.results)} stacks succeeded")
        for failure in outcome.failures:
            step = f" at '{failure.failed_step}'" if failure.failed_step else ""
            detail = f": {failure.error}" if failure.error else f" (exit code {failure.returncode})"
            print(f"    failed: {failure.stack}{step}{detail}")
        if outcome.skipped:
            print(f"    skipped: {', '.join(outcome.skipped)}")
        if outcome.prune_returncode:
            print(f"    prune failed (exit code {outcome.prune_returncode})")

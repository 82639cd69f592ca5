"""Command registry: maps each command name to its kind, resolved once at import."""

from dataclasses import dataclass
from enum import Enum


class CommandKind(Enum):
    """Whether a command is defined by homestack or passed to the compose runtime."""

    GLOBAL = "global"
    LIFECYCLE = "lifecycle"


@dataclass(frozen=True)
class CommandSpec:
    """A command name tagged with its kind and help text."""

    name: str
    kind: CommandKind
    summary: str
    usage: str = ""

    @property
    def is_lifecycle(self) -> bool:
        return self.kind is CommandKind.LIFECYCLE


@dataclass(frozen=True)
class Invocation:
    """A parsed command line: command name, optional stack and trailing args."""

    command: str
    stack: str | None = None
    args: tuple[str, ...] = ()


LIFECYCLE_VERBS = (
    CommandSpec("up", CommandKind.LIFECYCLE, "start all services", "[args]"),
    CommandSpec("stop", CommandKind.LIFECYCLE, "stop services, keep containers", "[args]"),
    CommandSpec("down", CommandKind.LIFECYCLE, "stop and remove containers", "[args]"),
    CommandSpec("restart", CommandKind.LIFECYCLE, "restart services", "[args]"),
    CommandSpec(
        "update", CommandKind.LIFECYCLE, "pull, build, up, then system-wide prune", "[args]"
    ),
    CommandSpec("pull", CommandKind.LIFECYCLE, "pull service images", "[args]"),
    CommandSpec("ps", CommandKind.LIFECYCLE, "list containers", "[args]"),
    CommandSpec("logs", CommandKind.LIFECYCLE, "show service logs", "[args]"),
)

GLOBAL_COMMANDS = (
    CommandSpec("help", CommandKind.GLOBAL, "print this usage text"),
    CommandSpec("init", CommandKind.GLOBAL, "check docker and compose are available"),
    CommandSpec("prune", CommandKind.GLOBAL, "remove unused container resources", "[args]"),
    CommandSpec("password", CommandKind.GLOBAL, "generate a random password", "[length]"),
    CommandSpec("docs", CommandKind.GLOBAL, "describe services, images and ports of every stack"),
    CommandSpec("list", CommandKind.GLOBAL, "list discovered stacks"),
)

COMMANDS: dict[str, CommandSpec] = {spec.name: spec for spec in LIFECYCLE_VERBS + GLOBAL_COMMANDS}

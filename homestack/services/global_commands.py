"""
Global Commands

Commands defined by homestack itself rather than by the compose runtime:
help, init, prune, password, docs and list.
"""

import asyncio
import base64
import secrets
from collections.abc import Awaitable, Callable, Sequence
from typing import Any

import docker
import structlog
from docker.errors import DockerException

from ..constants import EXIT_FAILURE, EXIT_OK
from ..core.discovery import discover_stacks, load_compose
from ..core.exceptions import ComposeCommandError, ComposeFileError, UsageError
from ..core.settings import ROOT_ENV_VAR, FanOutMode, HomestackSettings
from ..models.commands import GLOBAL_COMMANDS, LIFECYCLE_VERBS, CommandSpec
from .stack_operations import StackOperations

DOCKER_CLIENT_TIMEOUT = 10  # seconds, used by 'init' only

Handler = Callable[[Sequence[str]], Awaitable[int]]


def generate_password(length: int) -> str:
    """Base64 of `length` random bytes with the trailing '=' padding removed."""
    return base64.b64encode(secrets.token_bytes(length)).decode("ascii").rstrip("=")


def _command_rows(specs: Sequence[CommandSpec]) -> list[str]:
    rows = []
    for spec in specs:
        invocation = f"{spec.name} {spec.usage}".strip()
        rows.append(f"  {invocation:<20}{spec.summary}")
    return rows


def render_help() -> str:
    """Build the usage text shown by 'help' and after an unknown command."""
    modes = " | ".join(mode.value for mode in FanOutMode)
    lines = [
        "Usage: homestack [options] [stack] <command> [args...]",
        "",
        "Lifecycle verbs (all stacks, or only the named one):",
        *_command_rows(LIFECYCLE_VERBS),
        "",
        "Global commands:",
        *_command_rows(GLOBAL_COMMANDS),
        "",
        "Options:",
        "  --root DIR          stacks root directory",
        f"  --fan-out MODE      {modes}",
        "  --log-level LEVEL   DEBUG | INFO | WARNING | ERROR",
        "  --log-dir DIR       also write JSON logs to DIR/homestack.log",
        "",
        "Environment:",
        f"  {ROOT_ENV_VAR:<20}stacks root directory (required)",
        "  HOMESTACK_FAN_OUT   fan-out policy when no stack is named",
    ]
    return "\n".join(lines)


def _format_port(port: Any) -> str:
    # Long syntax: {"target": 80, "published": 8080, "protocol": "tcp"}
    if isinstance(port, dict):
        target = port.get("target", "?")
        published = port.get("published")
        text = f"{published}:{target}" if published else str(target)
        protocol = port.get("protocol")
        return f"{text}/{protocol}" if protocol and protocol != "tcp" else text
    return str(port)


class GlobalCommands:
    """Handlers for every global command, keyed by command name."""

    def __init__(self, settings: HomestackSettings, operations: StackOperations):
        self.settings = settings
        self.operations = operations
        self.logger = structlog.get_logger().bind(service="GlobalCommands")
        self.handlers: dict[str, Handler] = {
            "help": self.help,
            "init": self.init,
            "prune": self.prune,
            "password": self.password,
            "docs": self.docs,
            "list": self.list_stacks,
        }

    async def run(self, name: str, args: Sequence[str] = ()) -> int:
        """Run a global command by name and return its exit status."""
        return await self.handlers[name](args)

    async def help(self, args: Sequence[str] = ()) -> int:
        print(render_help())
        return EXIT_OK

    async def password(self, args: Sequence[str] = ()) -> int:
        """Print a random password; the optional argument is the byte count."""
        if len(args) > 1:
            raise UsageError("password takes at most one argument: [length]")
        length = self.settings.password_length
        if args:
            try:
                length = int(args[0])
            except ValueError as e:
                raise UsageError(f"password length must be an integer, got '{args[0]}'") from e
        if length <= 0:
            raise UsageError(f"password length must be positive, got {length}")
        print(generate_password(length))
        return EXIT_OK

    async def prune(self, args: Sequence[str] = ()) -> int:
        return await self.operations.prune(args)

    async def init(self, args: Sequence[str] = ()) -> int:
        """Check that the docker daemon and the compose plugin are usable."""
        if args:
            raise UsageError("init takes no arguments")

        daemon_ok, daemon_detail = await asyncio.to_thread(self._check_daemon)
        print(f"{'ok' if daemon_ok else 'FAIL':<5}docker daemon: {daemon_detail}")

        compose_ok, compose_detail = await self._check_compose()
        print(f"{'ok' if compose_ok else 'FAIL':<5}docker compose: {compose_detail}")

        stacks = discover_stacks(self.settings.root)
        print(f"{'ok':<5}stacks root: {self.settings.root} ({len(stacks)} stacks)")

        return EXIT_OK if daemon_ok and compose_ok else EXIT_FAILURE

    def _check_daemon(self) -> tuple[bool, str]:
        try:
            client = docker.from_env(timeout=DOCKER_CLIENT_TIMEOUT)
            try:
                version = client.version()
            finally:
                client.close()
        except DockerException as e:
            self.logger.debug("Docker daemon check failed", error=str(e))
            return False, str(e)
        return True, f"version {version.get('Version', 'unknown')}"

    async def _check_compose(self) -> tuple[bool, str]:
        cmd = [*self.settings.compose_command, "version", "--short"]
        try:
            result = await self.operations.runner.run_command(
                cmd, timeout=DOCKER_CLIENT_TIMEOUT, check=False
            )
        except (ComposeCommandError, asyncio.TimeoutError) as e:
            return False, str(e)
        if not result.success:
            return False, result.stderr.strip() or f"exit code {result.returncode}"
        return True, f"version {result.stdout.strip()}"

    async def docs(self, args: Sequence[str] = ()) -> int:
        """Print services, images and published ports of every stack."""
        if args:
            raise UsageError("docs takes no arguments")

        stacks = discover_stacks(self.settings.root)
        if not stacks:
            print(f"No stacks found under {self.settings.root}")
            return EXIT_OK

        status = EXIT_OK
        for stack in stacks:
            print(f"# {stack.label}")
            print(f"  compose file: {stack.compose_file}")
            try:
                compose = load_compose(stack)
            except ComposeFileError as e:
                print(f"  unreadable: {e}")
                status = EXIT_FAILURE
                continue

            services = compose.get("services") or {}
            for service_name, service in services.items():
                service = service or {}
                image = service.get("image") or "(build)"
                ports = ", ".join(_format_port(p) for p in service.get("ports") or [])
                line = f"  - {service_name}: {image}"
                if ports:
                    line += f"  ports: {ports}"
                print(line)
            print()
        return status

    async def list_stacks(self, args: Sequence[str] = ()) -> int:
        """Print one line per discovered stack."""
        if args:
            raise UsageError("list takes no arguments")
        stacks = discover_stacks(self.settings.root)
        if not stacks:
            print(f"No stacks found under {self.settings.root}")
            return EXIT_OK
        for stack in stacks:
            print(f"{stack.name}\t{stack.project or '-'}\t{stack.compose_file}")
        return EXIT_OK

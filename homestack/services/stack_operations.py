"""
Stack Operations Module

Lifecycle operations for compose stacks: single verbs, the composite
update, system-wide prune, and applying a verb to every stack.
"""

import asyncio
from collections.abc import Sequence

import structlog

from ..constants import DETACH_FLAGS, EXIT_FAILURE, UPDATE_STEPS
from ..core.exceptions import ComposeCommandError
from ..core.settings import FanOutMode, HomestackSettings
from ..core.subprocess_manager import SubprocessManager
from ..models.stack import FanOutResult, Stack, StackResult

# Exit code reported for a runtime call that exceeded command_timeout
TIMEOUT_EXIT_CODE = 124


class StackOperations:
    """Runs compose verbs with each stack's directory as the child's working directory."""

    def __init__(self, settings: HomestackSettings, runner: SubprocessManager | None = None):
        self.settings = settings
        self.runner = runner or SubprocessManager()
        self.logger = structlog.get_logger().bind(service="StackOperations")

    def build_compose_command(
        self, verb: str, args: Sequence[str] = (), detach: bool | None = None
    ) -> list[str]:
        """Build the runtime command line for a verb.

        'up' gets -d when detaching is enabled and the caller did not pass it.
        """
        if detach is None:
            detach = self.settings.detach
        cmd = [*self.settings.compose_command, verb]
        if verb == "up" and detach and not any(arg in DETACH_FLAGS for arg in args):
            cmd.append("-d")
        cmd.extend(args)
        return cmd

    async def _compose(
        self, stack: Stack, verb: str, args: Sequence[str] = (), detach: bool | None = None
    ) -> int:
        cmd = self.build_compose_command(verb, args, detach=detach)
        try:
            result = await self.runner.run_command(
                cmd,
                cwd=str(stack.path),
                timeout=self.settings.command_timeout,
                check=False,
                capture_output=False,
            )
        except asyncio.TimeoutError as e:
            self.logger.error("Compose command timed out", stack=stack.name, verb=verb, error=str(e))
            return TIMEOUT_EXIT_CODE

        if not result.success:
            self.logger.warning(
                "Compose command failed", stack=stack.name, verb=verb, returncode=result.returncode
            )
        return result.returncode

    async def run_verb(
        self, stack: Stack, verb: str, args: Sequence[str] = (), *, prune: bool = True
    ) -> StackResult:
        """Run one lifecycle verb against one stack.

        Args:
            stack: Target stack
            verb: Lifecycle verb, 'update' expands to its ordered steps
            args: Trailing arguments forwarded verbatim
            prune: For 'update', whether to run the system-wide prune afterwards

        Returns:
            StackResult carrying the runtime's exit code
        """
        if verb == "update":
            return await self.update(stack, args, prune=prune)

        returncode = await self._compose(stack, verb, args)
        return StackResult(
            stack=stack.name,
            verb=verb,
            returncode=returncode,
            failed_step=verb if returncode != 0 else None,
        )

    async def update(
        self, stack: Stack, args: Sequence[str] = (), *, prune: bool = True
    ) -> StackResult:
        """Pull, build and recreate a stack, then prune unused resources.

        Steps run strictly in order and stop at the first failure. Trailing
        args go to the 'up' step.
        """
        for step in UPDATE_STEPS:
            step_args = args if step == "up" else ()
            returncode = await self._compose(stack, step, step_args, detach=True)
            if returncode != 0:
                return StackResult(
                    stack=stack.name, verb="update", returncode=returncode, failed_step=step
                )

        if prune:
            returncode = await self.prune()
            if returncode != 0:
                return StackResult(
                    stack=stack.name, verb="update", returncode=returncode, failed_step="prune"
                )

        return StackResult(stack=stack.name, verb="update", returncode=0)

    async def prune(self, args: Sequence[str] = ()) -> int:
        """Remove unused containers, networks, images and build cache system-wide."""
        cmd = [*self.settings.docker_command, "system", "prune", "--force", *args]
        try:
            result = await self.runner.run_command(
                cmd,
                timeout=self.settings.command_timeout,
                check=False,
                capture_output=False,
            )
        except asyncio.TimeoutError as e:
            self.logger.error("Prune timed out", error=str(e))
            return TIMEOUT_EXIT_CODE
        return result.returncode

    async def _run_stack(self, stack: Stack, verb: str, args: Sequence[str]) -> StackResult:
        """Run a verb for one stack of a fan-out, recording runner errors as failures."""
        try:
            return await self.run_verb(stack, verb, args, prune=False)
        except ComposeCommandError as e:
            self.logger.error(
                "Compose command could not run", stack=stack.name, verb=verb, error=str(e)
            )
            return StackResult(
                stack=stack.name,
                verb=verb,
                returncode=EXIT_FAILURE,
                failed_step=verb,
                error=str(e),
            )

    async def fan_out(
        self,
        stacks: Sequence[Stack],
        verb: str,
        args: Sequence[str] = (),
        mode: FanOutMode = FanOutMode.BEST_EFFORT,
    ) -> FanOutResult:
        """Apply a verb to every stack according to the fan-out policy.

        A stack whose runtime cannot be started counts as a failed stack and
        does not abort the remaining ones. For 'update' the prune runs once
        after all stacks, and is skipped when fail-fast stopped on a failing
        stack.
        """
        outcome = FanOutResult(verb=verb)
        if not stacks:
            return outcome

        self.logger.info("Applying verb to all stacks", verb=verb, mode=mode.value, count=len(stacks))

        if mode is FanOutMode.PARALLEL:
            for stack in stacks:
                print(f"==> {stack.label}: {verb}")
            results = await asyncio.gather(
                *(self._run_stack(stack, verb, args) for stack in stacks)
            )
            outcome.results.extend(results)
        else:
            for index, stack in enumerate(stacks):
                print(f"==> {stack.label}: {verb}")
                result = await self._run_stack(stack, verb, args)
                outcome.results.append(result)
                if not result.success and mode is FanOutMode.FAIL_FAST:
                    outcome.skipped.extend(s.name for s in stacks[index + 1:])
                    break

        if verb == "update" and not (mode is FanOutMode.FAIL_FAST and outcome.failures):
            print("==> system: prune")
            outcome.prune_returncode = await self.prune()

        return outcome

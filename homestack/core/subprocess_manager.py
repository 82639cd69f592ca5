"""Subprocess execution for the external compose runtime with proper resource handling."""

import asyncio
import os
from pathlib import Path
from typing import Any, Optional

import structlog

from homestack.core.exceptions import ComposeCommandError

logger = structlog.get_logger()

KILL_TIMEOUT = 5  # Time to wait after SIGTERM before SIGKILL


class SubprocessManager:
    """Runs external commands in an explicit working directory and tracks them for cleanup."""

    def __init__(self):
        self._active_processes: set[asyncio.subprocess.Process] = set()
        self._cleanup_lock = asyncio.Lock()

    async def run_command(
        self,
        cmd: list[str],
        *,
        cwd: Optional[str] = None,
        timeout: Optional[float] = None,
        check: bool = True,
        capture_output: bool = True,
        env: Optional[dict[str, str]] = None,
        stdin: Optional[str] = None,
    ) -> "SubprocessResult":
        """
        Run a command asynchronously with proper resource management.

        The working directory is passed to the child process only; the
        current directory of this process is never changed.

        Args:
            cmd: Command and arguments as a list
            cwd: Working directory for the command
            timeout: Timeout in seconds (None waits until the process exits)
            check: Raise exception if command fails
            capture_output: Capture stdout and stderr instead of inheriting them
            env: Environment variables
            stdin: Input to provide to the command

        Returns:
            SubprocessResult with returncode, stdout, and stderr

        Raises:
            ComposeCommandError: If the executable or the working directory is missing,
                or check=True and command fails
            asyncio.TimeoutError: If command times out
        """
        logger.debug(
            "Executing command",
            command=" ".join(cmd),
            timeout=timeout,
            cwd=cwd,
        )

        kwargs: dict[str, Any] = {
            "cwd": cwd,
            "env": env or os.environ.copy(),
        }

        if capture_output:
            kwargs["stdout"] = asyncio.subprocess.PIPE
            kwargs["stderr"] = asyncio.subprocess.PIPE

        if stdin is not None:
            kwargs["stdin"] = asyncio.subprocess.PIPE

        if cwd is not None and not Path(cwd).is_dir():
            raise ComposeCommandError(f"Working directory not found: {cwd}")

        process = None
        try:
            try:
                process = await asyncio.create_subprocess_exec(*cmd, **kwargs)
            except FileNotFoundError as e:
                raise ComposeCommandError(f"Executable not found: {cmd[0]}") from e

            async with self._cleanup_lock:
                self._active_processes.add(process)

            try:
                stdout_bytes, stderr_bytes = await asyncio.wait_for(
                    process.communicate(input=stdin.encode() if stdin is not None else None),
                    timeout=timeout,
                )
            except asyncio.TimeoutError:
                logger.warning(
                    "Command timed out, terminating process",
                    command=" ".join(cmd),
                    timeout=timeout,
                    pid=process.pid,
                )
                await self._terminate(process)
                raise asyncio.TimeoutError(
                    f"Command timed out after {timeout} seconds: {' '.join(cmd)}"
                )

            stdout = stdout_bytes.decode() if stdout_bytes else ""
            stderr = stderr_bytes.decode() if stderr_bytes else ""

            result = SubprocessResult(
                returncode=process.returncode or 0,
                stdout=stdout,
                stderr=stderr,
                cmd=cmd,
                cwd=cwd,
            )

            logger.debug(
                "Command finished",
                command=" ".join(cmd),
                cwd=cwd,
                returncode=result.returncode,
            )

            if check:
                result.check_returncode()

            return result

        finally:
            if process is not None:
                async with self._cleanup_lock:
                    self._active_processes.discard(process)

                if process.returncode is None:
                    await self._terminate(process)

    async def _terminate(self, process: asyncio.subprocess.Process) -> None:
        """Terminate a process, escalating to SIGKILL if it ignores SIGTERM."""
        try:
            process.terminate()
            await asyncio.wait_for(process.wait(), timeout=KILL_TIMEOUT)
        except asyncio.TimeoutError:
            logger.warning("Process did not terminate gracefully, sending SIGKILL", pid=process.pid)
            process.kill()
            await process.wait()
        except ProcessLookupError:
            # Process already terminated
            pass

    async def cleanup_all(self):
        """Terminate every process that is still running."""
        async with self._cleanup_lock:
            processes = [p for p in self._active_processes if p.returncode is None]

        if not processes:
            return

        logger.info("Cleaning up active processes", count=len(processes))
        await asyncio.gather(*(self._terminate(process) for process in processes))

        async with self._cleanup_lock:
            self._active_processes.clear()


class SubprocessResult:
    """Result of a subprocess execution."""

    def __init__(
        self,
        returncode: int,
        stdout: str,
        stderr: str,
        cmd: list[str],
        cwd: Optional[str] = None,
    ):
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        self.cmd = cmd
        self.cwd = cwd

    @property
    def success(self) -> bool:
        """Check if the command succeeded."""
        return self.returncode == 0

    def check_returncode(self):
        """Raise an exception if the command failed."""
        if self.returncode != 0:
            error_msg = (
                self.stderr.strip() if self.stderr
                else self.stdout.strip() if self.stdout
                else "Command failed"
            )
            raise ComposeCommandError(
                f"Command failed with exit code {self.returncode}: {error_msg}"
            )

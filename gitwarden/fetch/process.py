"""Async subprocess runner with shutdown-aware waiting.

The runner never raises for process-level problems. A process that cannot
be started, exits non-zero, or is interrupted by shutdown is reported in
the returned ProcessResult.
"""

import asyncio
import logging
import os
from dataclasses import dataclass
from typing import Dict, Optional, Sequence

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProcessResult:
    """Outcome of running an external command.

    Attributes:
        exit_code: Exit status, None if the process never ran to completion
        stdout: Captured standard output
        stderr: Captured standard error
        spawn_error: Reason the process could not be started, if it wasn't
        cancelled: True if shutdown interrupted the wait
    """

    exit_code: Optional[int] = None
    stdout: str = ""
    stderr: str = ""
    spawn_error: Optional[str] = None
    cancelled: bool = False

    @property
    def started(self) -> bool:
        return self.spawn_error is None

    @property
    def output(self) -> str:
        """Combined stdout and stderr."""
        return "\n".join(part for part in (self.stdout, self.stderr) if part)


class ProcessRunner:
    """Runs external commands in a working directory.

    When shutdown is requested while a command is running, the runner stops
    waiting. With terminate_on_cancel the process is sent SIGTERM and, if it
    has not exited after terminate_timeout seconds, SIGKILL. Without it the
    process is left running and only a warning is logged.

    Example:
        runner = ProcessRunner()
        result = await runner.run("git", ["fetch", "--all"], "/git-repos/app", shutdown_event)
        if result.exit_code == 0:
            ...
    """

    def __init__(
        self,
        terminate_on_cancel: bool = True,
        terminate_timeout: float = 5.0,
        env: Optional[Dict[str, str]] = None,
    ) -> None:
        """Initialize the runner.

        Args:
            terminate_on_cancel: Kill the child process when shutdown interrupts the wait
            terminate_timeout: Seconds to wait after SIGTERM before SIGKILL
            env: Extra environment variables layered over os.environ
        """
        self._terminate_on_cancel = terminate_on_cancel
        self._terminate_timeout = terminate_timeout
        self._env = {**os.environ, **env} if env else None

    async def run(
        self,
        command: str,
        args: Sequence[str],
        cwd: str,
        shutdown_event: Optional[asyncio.Event] = None,
    ) -> ProcessResult:
        """Run a command and wait for it to exit.

        Args:
            command: Executable name or path
            args: Command arguments
            cwd: Working directory for the process
            shutdown_event: When set, stop waiting for the process

        Returns:
            ProcessResult describing what happened
        """
        try:
            process = await asyncio.create_subprocess_exec(
                command,
                *args,
                cwd=cwd,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=self._env,
            )
        except OSError as e:
            # Missing executable or working directory, or no permission
            logger.debug(f"Could not start {command} in {cwd}: {e}")
            return ProcessResult(spawn_error=str(e))

        logger.debug(f"Started {command} {' '.join(args)} (PID {process.pid}) in {cwd}")
        communicate = asyncio.ensure_future(process.communicate())

        try:
            if shutdown_event is None:
                stdout, stderr = await communicate
            else:
                shutdown_wait = asyncio.ensure_future(shutdown_event.wait())
                try:
                    done, _ = await asyncio.wait(
                        {communicate, shutdown_wait},
                        return_when=asyncio.FIRST_COMPLETED,
                    )
                finally:
                    shutdown_wait.cancel()

                if communicate not in done:
                    await self._stop_waiting(process, communicate)
                    return ProcessResult(cancelled=True)

                stdout, stderr = communicate.result()
        except asyncio.CancelledError:
            await self._stop_waiting(process, communicate)
            raise

        return ProcessResult(
            exit_code=process.returncode,
            stdout=_decode(stdout),
            stderr=_decode(stderr),
        )

    async def _stop_waiting(
        self,
        process: asyncio.subprocess.Process,
        communicate: "asyncio.Future[tuple[bytes, bytes]]",
    ) -> None:
        """Abandon the wait on a running process, terminating it if configured."""
        communicate.cancel()
        if process.returncode is not None:
            return

        if not self._terminate_on_cancel:
            logger.warning(f"Shutdown requested; leaving process {process.pid} running")
            return

        logger.info(f"Shutdown requested; terminating process {process.pid}")
        try:
            process.terminate()
        except ProcessLookupError:
            return

        try:
            await asyncio.wait_for(process.wait(), timeout=self._terminate_timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Process {process.pid} did not exit after SIGTERM, killing")
            try:
                process.kill()
            except ProcessLookupError:
                pass
            await process.wait()


def _decode(data: Optional[bytes]) -> str:
    if not data:
        return ""
    return data.decode("utf-8", errors="replace")

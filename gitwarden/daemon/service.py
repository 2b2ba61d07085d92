"""Main daemon service for gitwarden.

This module provides:
- Service lifecycle management (start/stop)
- Signal handling for graceful shutdown
- Background daemon mode with process forking
"""

import asyncio
import logging
import os
import signal
import sys
from pathlib import Path
from typing import Any, Dict, Optional

from gitwarden.config import GitwardenConfig, load_config
from gitwarden.database.connection import create_tables
from gitwarden.fetch.cycle import CycleOrchestrator, create_default_orchestrator
from gitwarden.fetch.loop import AutoFetchScheduler, FetchSettings

logger = logging.getLogger(__name__)


class GitwardenDaemon:
    """Runs the auto-fetch scheduler as a service.

    Settings are re-read from the config file and environment before every
    cycle, so enabling fetching or changing the interval does not need a
    restart. Database location, git executable and warm-up are fixed at
    start.

    Example:
        daemon = GitwardenDaemon(config, config_path=path)

        await daemon.start()
        await daemon.run_until_shutdown()
        await daemon.stop()
    """

    def __init__(
        self,
        config: GitwardenConfig,
        config_path: Optional[Path] = None,
        warmup_seconds: Optional[float] = None,
        orchestrator: Optional[CycleOrchestrator] = None,
    ):
        """Initialize the daemon service.

        Args:
            config: gitwarden configuration at start
            config_path: Config file re-read before every cycle
            warmup_seconds: Override for fetch.warmup_seconds
            orchestrator: Cycle orchestrator (default: built from config)
        """
        self._config = config
        self._config_path = config_path
        self._warmup_seconds = (
            warmup_seconds if warmup_seconds is not None else config.fetch.warmup_seconds
        )
        self._orchestrator = orchestrator
        self._scheduler: Optional[AutoFetchScheduler] = None
        self._task: Optional["asyncio.Task[None]"] = None
        self._running = False
        self._shutdown_event = asyncio.Event()

    def _read_settings(self) -> FetchSettings:
        return FetchSettings.from_config(load_config(self._config_path))

    async def start(self) -> None:
        """Create the catalog tables and start the scheduler task."""
        logger.info("Starting gitwarden daemon...")

        create_tables(self._config)

        if self._orchestrator is None:
            self._orchestrator = create_default_orchestrator(self._config)

        self._scheduler = AutoFetchScheduler(
            orchestrator=self._orchestrator,
            settings_provider=self._read_settings,
            shutdown_event=self._shutdown_event,
            warmup_seconds=self._warmup_seconds,
        )
        self._task = asyncio.create_task(self._scheduler.run())
        self._task.add_done_callback(self._on_scheduler_done)

        self._running = True
        logger.info("gitwarden daemon started successfully")

    def _on_scheduler_done(self, task: "asyncio.Task[None]") -> None:
        # The scheduler only ends on shutdown; make sure the daemon follows
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Auto-fetch scheduler exited with an error: {task.exception()}")
        self._shutdown_event.set()

    async def stop(self) -> None:
        """Stop the scheduler, waiting for an in-flight fetch to wind down."""
        logger.info("Stopping gitwarden daemon...")

        self._running = False
        self._shutdown_event.set()

        if self._task is not None:
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            except Exception as e:
                logger.warning(f"Error stopping scheduler: {e}")
            self._task = None

        logger.info("gitwarden daemon stopped")

    async def run_until_shutdown(self) -> None:
        """Block until request_shutdown() is called."""
        await self._shutdown_event.wait()

    def request_shutdown(self) -> None:
        """Request daemon shutdown."""
        logger.info("Shutdown requested")
        self._shutdown_event.set()

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def scheduler(self) -> Optional[AutoFetchScheduler]:
        """The scheduler, or None if not started."""
        return self._scheduler


async def run_daemon(config: GitwardenConfig, options: Dict[str, Any]) -> None:
    """Run the gitwarden daemon with signal handling.

    Args:
        config: gitwarden configuration
        options: Daemon options including:
            - config_path: Config file to re-read every cycle
            - warmup_seconds: Override for the warm-up delay

    Example:
        await run_daemon(config, {"config_path": path, "warmup_seconds": 0})
    """
    daemon = GitwardenDaemon(
        config,
        config_path=options.get("config_path"),
        warmup_seconds=options.get("warmup_seconds"),
    )

    loop = asyncio.get_running_loop()

    def handle_signal(sig: signal.Signals) -> None:
        logger.info(f"Received signal {sig.name}, initiating shutdown...")
        daemon.request_shutdown()

    for sig in (signal.SIGTERM, signal.SIGINT):
        try:
            loop.add_signal_handler(sig, lambda s=sig: handle_signal(s))
        except NotImplementedError:
            # Windows doesn't support add_signal_handler
            signal.signal(sig, lambda signum, frame: handle_signal(signal.Signals(signum)))

    try:
        await daemon.start()
        await daemon.run_until_shutdown()
    finally:
        await daemon.stop()


def daemonize(log_file: Optional[Path] = None) -> None:
    """Fork into the background.

    Uses the usual double fork, then redirects the standard streams to
    log_file, or to /dev/null when no log file is given. Does nothing on
    Windows.

    Args:
        log_file: Destination for stdout/stderr
    """
    if sys.platform == "win32":
        logger.warning("Daemon mode not supported on Windows")
        return

    pid = os.fork()
    if pid > 0:
        sys.exit(0)

    os.setsid()

    pid = os.fork()
    if pid > 0:
        sys.exit(0)

    sys.stdout.flush()
    sys.stderr.flush()

    with open(os.devnull, "r") as devnull:
        os.dup2(devnull.fileno(), sys.stdin.fileno())

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        with open(log_file, "a+") as f:
            os.dup2(f.fileno(), sys.stdout.fileno())
            os.dup2(f.fileno(), sys.stderr.fileno())
    else:
        with open(os.devnull, "a+") as devnull:
            os.dup2(devnull.fileno(), sys.stdout.fileno())
            os.dup2(devnull.fileno(), sys.stderr.fileno())

    logger.info(f"Daemon process started (PID: {os.getpid()})")

"""Auto-fetch scheduler loop.

The loop waits out a warm-up delay, then repeats forever:

1. Read the fetch settings fresh.
2. If fetching is enabled, run one fetch cycle.
3. Wait the configured interval.

Both waits end early when the shutdown event is set. No exception raised
by a cycle stops the loop; it is logged and the next cycle is tried after
the interval.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from gitwarden.config import DEFAULT_REPOS_BASE_PATH, GitwardenConfig
from gitwarden.fetch.cycle import CycleOrchestrator
from gitwarden.fetch.results import CycleReport

logger = logging.getLogger(__name__)

SECONDS_PER_MINUTE = 60.0
MIN_INTERVAL_MINUTES = 1
DEFAULT_INTERVAL_MINUTES = 5
DEFAULT_WARMUP_SECONDS = 60.0


@dataclass(frozen=True)
class FetchSettings:
    """Settings read at the start of every cycle."""

    enabled: bool = False
    interval_minutes: int = DEFAULT_INTERVAL_MINUTES
    repos_base_path: str = DEFAULT_REPOS_BASE_PATH

    @classmethod
    def from_config(cls, config: GitwardenConfig) -> "FetchSettings":
        return cls(
            enabled=config.fetch.enabled,
            interval_minutes=config.fetch.interval_minutes,
            repos_base_path=config.repos_base_path,
        )


class LoopState(str, Enum):
    STARTING = "starting"
    WARMING_UP = "warming_up"
    RUNNING = "running"
    SKIPPED = "skipped"
    WAITING_INTERVAL = "waiting_interval"
    TERMINATED = "terminated"


SettingsProvider = Callable[[], FetchSettings]


class AutoFetchScheduler:
    """Periodically runs fetch cycles until shutdown.

    Example:
        scheduler = AutoFetchScheduler(
            orchestrator,
            settings_provider=lambda: FetchSettings.from_config(load_config()),
            shutdown_event=shutdown_event,
        )
        task = asyncio.create_task(scheduler.run())
        ...
        scheduler.request_shutdown()
        await task
    """

    def __init__(
        self,
        orchestrator: CycleOrchestrator,
        settings_provider: SettingsProvider,
        shutdown_event: Optional[asyncio.Event] = None,
        warmup_seconds: float = DEFAULT_WARMUP_SECONDS,
    ):
        """Initialize the scheduler.

        Args:
            orchestrator: Runs a single fetch cycle
            settings_provider: Called once per cycle for the current settings
            shutdown_event: Stops the loop when set (created if not given)
            warmup_seconds: Delay before the first cycle
        """
        self._orchestrator = orchestrator
        self._settings_provider = settings_provider
        self._shutdown_event = shutdown_event or asyncio.Event()
        self._warmup_seconds = warmup_seconds
        self._state = LoopState.STARTING
        self._cycles_run = 0
        self._last_report: Optional[CycleReport] = None
        self._interval_minutes = DEFAULT_INTERVAL_MINUTES

    @property
    def state(self) -> LoopState:
        return self._state

    @property
    def cycles_run(self) -> int:
        """Number of cycles in which the orchestrator was invoked."""
        return self._cycles_run

    @property
    def last_report(self) -> Optional[CycleReport]:
        return self._last_report

    @property
    def shutdown_event(self) -> asyncio.Event:
        return self._shutdown_event

    def request_shutdown(self) -> None:
        self._shutdown_event.set()

    async def run(self) -> None:
        """Run the loop until shutdown is requested or the task is cancelled."""
        logger.info("Auto-fetch scheduler started")
        try:
            self._state = LoopState.WARMING_UP
            if self._warmup_seconds > 0:
                logger.debug(f"Waiting {self._warmup_seconds}s before the first fetch cycle")
                if await self._wait(self._warmup_seconds):
                    return

            while not self._shutdown_event.is_set():
                await self._run_once()

                self._state = LoopState.WAITING_INTERVAL
                if await self._wait(self._interval_minutes * SECONDS_PER_MINUTE):
                    return
        finally:
            self._state = LoopState.TERMINATED
            logger.info("Auto-fetch scheduler stopped")

    async def _run_once(self) -> None:
        """Run one cycle if enabled. Every exception is logged and absorbed."""
        self._state = LoopState.SKIPPED
        try:
            settings = self._settings_provider()
            self._interval_minutes = self._effective_interval(settings.interval_minutes)

            if not settings.enabled:
                logger.debug("Auto-fetch is disabled, skipping cycle")
                return

            self._state = LoopState.RUNNING
            self._cycles_run += 1
            self._last_report = await self._orchestrator.run_cycle(
                settings.repos_base_path,
                self._shutdown_event,
            )
        except Exception:
            logger.exception("Auto-fetch cycle failed")

    @staticmethod
    def _effective_interval(interval_minutes: int) -> int:
        if interval_minutes < MIN_INTERVAL_MINUTES:
            logger.warning(
                f"Fetch interval of {interval_minutes} minutes is too short, "
                f"using {MIN_INTERVAL_MINUTES} minute"
            )
            return MIN_INTERVAL_MINUTES
        return interval_minutes

    async def _wait(self, seconds: float) -> bool:
        """Wait for the given time or until shutdown.

        Returns:
            True if shutdown was requested during the wait
        """
        try:
            await asyncio.wait_for(self._shutdown_event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return False
        return True

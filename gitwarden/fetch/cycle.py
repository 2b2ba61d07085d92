"""Fetch cycle orchestration.

A cycle takes one snapshot of cloned repositories and fetches them one at a
time, in snapshot order. Two rules shape it:

- Failures while fetching one repository are logged and contained; the
  next repository is still attempted.
- Catalog changes are committed after every repository. A failed commit is
  not contained: PersistenceError propagates and ends the cycle.
"""

import asyncio
import logging
from contextlib import AbstractContextManager
from datetime import datetime
from typing import Callable, Optional

from gitwarden.config import GitwardenConfig
from gitwarden.database.repositories import RepositoryCatalog, catalog_scope
from gitwarden.fetch.executor import GIT_ENV, FetchExecutor, utcnow
from gitwarden.fetch.process import ProcessRunner
from gitwarden.fetch.results import CycleReport, FetchError, FetchResult
from gitwarden.fetch.selector import RepositorySelector, RepositorySnapshot

logger = logging.getLogger(__name__)

CatalogFactory = Callable[[], AbstractContextManager[RepositoryCatalog]]
SelectorFactory = Callable[[RepositoryCatalog], RepositorySelector]


class CycleOrchestrator:
    """Runs fetch cycles over the repository catalog.

    Example:
        orchestrator = create_default_orchestrator(config)
        report = await orchestrator.run_cycle("/git-repos", shutdown_event)
        print(report.summary())
    """

    def __init__(
        self,
        executor: FetchExecutor,
        catalog_factory: CatalogFactory = catalog_scope,
        selector_factory: SelectorFactory = RepositorySelector,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            executor: Executor used for each repository
            catalog_factory: Opens a catalog scope for one cycle
            selector_factory: Builds the selector from the open catalog
            clock: Source of the current UTC time
        """
        self._executor = executor
        self._catalog_factory = catalog_factory
        self._selector_factory = selector_factory
        self._clock = clock

    async def run_cycle(
        self,
        base_path: str,
        shutdown_event: Optional[asyncio.Event] = None,
    ) -> CycleReport:
        """Fetch every cloned repository once.

        Args:
            base_path: Directory repository paths are resolved under
            shutdown_event: Stops the cycle before the next repository when set

        Returns:
            Report of the attempts made

        Raises:
            PersistenceError: If the catalog query or a commit fails
        """
        report = CycleReport(started_at=self._clock())

        with self._catalog_factory() as catalog:
            snapshot = self._selector_factory(catalog).select()
            report.selected = len(snapshot)
            logger.info(f"Auto-fetch cycle started for {len(snapshot)} repositories")

            for repo in snapshot:
                if shutdown_event is not None and shutdown_event.is_set():
                    logger.info("Shutdown requested, ending fetch cycle early")
                    report.interrupted = True
                    break

                result = await self._fetch_isolated(catalog, repo, base_path, shutdown_event)
                report.results.append(result)

                if not catalog.exists(repo.id):
                    logger.warning(
                        f"Repository {repo.name} was removed during the cycle, "
                        f"not recording the fetch attempt"
                    )
                    catalog.rollback()
                    continue

                self._stage_attempt(catalog, result)
                catalog.commit()

        report.completed_at = self._clock()
        logger.info(f"Auto-fetch cycle finished: {report.summary()}")
        return report

    async def _fetch_isolated(
        self,
        catalog: RepositoryCatalog,
        repo: RepositorySnapshot,
        base_path: str,
        shutdown_event: Optional[asyncio.Event],
    ) -> FetchResult:
        """Fetch one repository; nothing raised here escapes the cycle."""
        started_at = self._clock()
        try:
            result = await self._executor.fetch_one(repo, base_path, shutdown_event)
            if result.success:
                catalog.set_last_checked(repo.id, result.checked_at)
                logger.info(f"Successfully fetched updates for repository {repo.name}")
            else:
                logger.error(f"Failed to fetch updates for repository {repo.name}: {result.error}")
            return result
        except Exception as e:
            logger.exception(f"Failed to fetch updates for repository {repo.name}")
            return FetchResult(
                repository_id=repo.id,
                repository_name=repo.name,
                started_at=started_at,
                completed_at=self._clock(),
                error=FetchError.from_exception(e),
            )

    @staticmethod
    def _stage_attempt(catalog: RepositoryCatalog, result: FetchResult) -> None:
        error = result.error
        catalog.record_attempt(
            result.repository_id,
            started_at=result.started_at,
            completed_at=result.completed_at,
            success=result.success,
            exit_code=error.exit_code if error else 0,
            error_kind=error.kind.value if error else None,
            error=str(error) if error else None,
        )


def create_default_orchestrator(
    config: GitwardenConfig,
    selector_factory: SelectorFactory = RepositorySelector,
) -> CycleOrchestrator:
    """Build an orchestrator wired to the configured database and git.

    Args:
        config: gitwarden configuration
        selector_factory: Optional selector override, e.g. to fetch one repository

    Returns:
        Ready-to-use CycleOrchestrator
    """
    runner = ProcessRunner(
        terminate_on_cancel=config.fetch.terminate_on_cancel,
        terminate_timeout=config.fetch.terminate_timeout,
        env=GIT_ENV,
    )
    executor = FetchExecutor(
        runner=runner,
        git_executable=config.fetch.git_executable,
        fetch_args=config.fetch.fetch_args,
    )
    return CycleOrchestrator(
        executor=executor,
        catalog_factory=lambda: catalog_scope(config),
        selector_factory=selector_factory,
    )

"""Periodic fetching of cloned repositories.

Components, from the inside out:

- ProcessRunner: runs git and waits for it, honouring shutdown
- RepositorySelector: snapshot of the repositories to fetch in a cycle
- FetchExecutor: one fetch of one repository, returned as a FetchResult
- CycleOrchestrator: fetches a snapshot in order and commits after each one
- AutoFetchScheduler: warm-up, enabled check, cycle, interval wait
"""

from gitwarden.fetch.cycle import CycleOrchestrator, create_default_orchestrator
from gitwarden.fetch.executor import FetchExecutor
from gitwarden.fetch.loop import AutoFetchScheduler, FetchSettings, LoopState
from gitwarden.fetch.process import ProcessResult, ProcessRunner
from gitwarden.fetch.results import CycleReport, FetchError, FetchErrorKind, FetchResult
from gitwarden.fetch.selector import RepositorySelector, RepositorySnapshot

__all__ = [
    "AutoFetchScheduler",
    "CycleOrchestrator",
    "CycleReport",
    "FetchError",
    "FetchErrorKind",
    "FetchExecutor",
    "FetchResult",
    "FetchSettings",
    "LoopState",
    "ProcessResult",
    "ProcessRunner",
    "RepositorySelector",
    "RepositorySnapshot",
    "create_default_orchestrator",
]

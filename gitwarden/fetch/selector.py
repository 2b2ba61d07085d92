"""Selection of repositories eligible for fetching."""

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional, Tuple

from gitwarden.database.models import CloneStatus, Repository
from gitwarden.database.repositories import RepositoryCatalog


@dataclass(frozen=True)
class RepositorySnapshot:
    """Immutable copy of a repository record taken at cycle start."""

    id: int
    name: str
    local_path: str
    clone_status: CloneStatus
    last_checked: Optional[datetime] = None

    @classmethod
    def from_model(cls, repo: Repository) -> "RepositorySnapshot":
        return cls(
            id=repo.id,
            name=repo.name,
            local_path=repo.local_path,
            clone_status=repo.clone_status,
            last_checked=repo.last_checked,
        )


class RepositorySelector:
    """Captures the ordered snapshot of cloned repositories for one cycle.

    The snapshot is taken once; repositories added or removed afterwards are
    only seen by the next cycle. Catalog failures propagate as
    PersistenceError.
    """

    def __init__(self, catalog: RepositoryCatalog, names: Optional[Iterable[str]] = None) -> None:
        """
        Args:
            catalog: Catalog to query
            names: Optional restriction to these repository names
        """
        self._catalog = catalog
        self._names = frozenset(names) if names is not None else None

    def select(self) -> Tuple[RepositorySnapshot, ...]:
        """Return cloned repositories in catalog (id) order."""
        repos = self._catalog.get_by_status(CloneStatus.CLONED)
        return tuple(
            RepositorySnapshot.from_model(repo)
            for repo in repos
            if repo.clone_status == CloneStatus.CLONED
            and (self._names is None or repo.name in self._names)
        )

"""Data access for the repository catalog.

RepositoryCatalog wraps one SQLAlchemy session. Writes made during a fetch
cycle are only staged; nothing reaches the database until commit(), which the
cycle orchestrator calls once per repository.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Generator, List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from gitwarden.config import GitwardenConfig
from gitwarden.database.connection import get_session_maker
from gitwarden.database.models import CloneStatus, FetchAttempt, Repository
from gitwarden.exceptions import NotFoundError, PersistenceError, ValidationError

logger = logging.getLogger(__name__)


class RepositoryCatalog:
    """
    Repository catalog operations.

    Query methods raise PersistenceError when the database fails; the fetch
    loop relies on that to tell catalog failures apart from git failures.
    """

    def __init__(self, session: Session):
        """
        Initialize catalog with a database session.

        Args:
            session: SQLAlchemy session
        """
        self.session = session

    def get_by_id(self, repo_id: int) -> Optional[Repository]:
        """
        Get repository by ID.

        Args:
            repo_id: Repository ID

        Returns:
            Repository if found, None otherwise
        """
        try:
            return self.session.get(Repository, repo_id)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to load repository {repo_id}: {e}") from e

    def get_by_name(self, name: str) -> Optional[Repository]:
        """
        Get repository by name.

        Args:
            name: Repository name

        Returns:
            Repository if found, None otherwise
        """
        try:
            return self.session.query(Repository).filter(Repository.name == name).first()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to load repository {name!r}: {e}") from e

    def exists(self, repo_id: int) -> bool:
        """
        Check that a repository row is still present in the database.

        Always queries the database, so rows deleted by another session are
        noticed even when this session has the repository loaded.
        """
        try:
            return (
                self.session.query(Repository.id).filter(Repository.id == repo_id).first()
                is not None
            )
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to load repository {repo_id}: {e}") from e

    def require_by_name(self, name: str) -> Repository:
        """Like get_by_name but raises NotFoundError when missing."""
        repo = self.get_by_name(name)
        if repo is None:
            raise NotFoundError(f"Repository not found: {name}")
        return repo

    def get_by_status(self, status: CloneStatus) -> List[Repository]:
        """
        Get all repositories with the given clone status, ordered by ID.

        Args:
            status: Clone status to filter on

        Returns:
            List of matching repositories
        """
        try:
            return (
                self.session.query(Repository)
                .filter(Repository.clone_status == status)
                .order_by(Repository.id.asc())
                .all()
            )
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to query repositories with status {status.value}: {e}") from e

    def get_all(self, status: Optional[CloneStatus] = None) -> List[Repository]:
        """
        Get all repositories, optionally filtered by status.

        Args:
            status: Optional clone status filter

        Returns:
            List of repositories ordered by ID
        """
        if status is not None:
            return self.get_by_status(status)
        try:
            return self.session.query(Repository).order_by(Repository.id.asc()).all()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to list repositories: {e}") from e

    def create(
        self,
        name: str,
        local_path: str,
        remote_url: Optional[str] = None,
        clone_status: CloneStatus = CloneStatus.NOT_CLONED,
    ) -> Repository:
        """
        Create and commit a new repository record.

        Args:
            name: Unique repository name
            local_path: Path relative to the repositories base path
            remote_url: Optional remote URL (informational)
            clone_status: Initial clone status

        Returns:
            Created repository

        Raises:
            ValidationError: If a repository with this name already exists
        """
        repo = Repository(
            name=name,
            local_path=local_path,
            remote_url=remote_url,
            clone_status=clone_status,
        )
        self.session.add(repo)
        try:
            self.session.commit()
        except IntegrityError as e:
            self.session.rollback()
            raise ValidationError(f"Repository already exists: {name}") from e
        except SQLAlchemyError as e:
            self.session.rollback()
            raise PersistenceError(f"Failed to create repository {name!r}: {e}") from e
        self.session.refresh(repo)
        return repo

    def set_clone_status(self, repo_id: int, status: CloneStatus) -> Repository:
        """Stage a clone status change. Call commit() to persist it."""
        repo = self.get_by_id(repo_id)
        if repo is None:
            raise NotFoundError(f"Repository not found: {repo_id}")
        repo.clone_status = status
        return repo

    def set_last_checked(self, repo_id: int, checked_at: datetime) -> None:
        """
        Stage a new last_checked value for a repository.

        Args:
            repo_id: Repository ID
            checked_at: Time of the successful fetch (UTC)
        """
        repo = self.get_by_id(repo_id)
        if repo is None:
            raise NotFoundError(f"Repository not found: {repo_id}")
        repo.last_checked = checked_at

    def record_attempt(
        self,
        repo_id: int,
        started_at: datetime,
        completed_at: datetime,
        success: bool,
        exit_code: Optional[int] = None,
        error_kind: Optional[str] = None,
        error: Optional[str] = None,
    ) -> FetchAttempt:
        """Stage a fetch attempt history row. Call commit() to persist it."""
        attempt = FetchAttempt(
            repository_id=repo_id,
            started_at=started_at,
            completed_at=completed_at,
            success=success,
            exit_code=exit_code,
            error_kind=error_kind,
            error=error,
        )
        self.session.add(attempt)
        return attempt

    def get_attempts(self, repo_id: int, limit: int = 20) -> List[FetchAttempt]:
        """
        Get the most recent fetch attempts for a repository.

        Args:
            repo_id: Repository ID
            limit: Maximum number of attempts to return

        Returns:
            Attempts, newest first
        """
        try:
            return (
                self.session.query(FetchAttempt)
                .filter(FetchAttempt.repository_id == repo_id)
                .order_by(FetchAttempt.started_at.desc(), FetchAttempt.id.desc())
                .limit(limit)
                .all()
            )
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to load fetch history for {repo_id}: {e}") from e

    def commit(self) -> None:
        """
        Commit all staged changes.

        Raises:
            PersistenceError: If the commit fails; staged changes are rolled back
        """
        try:
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise PersistenceError(f"Failed to commit catalog changes: {e}") from e

    def rollback(self) -> None:
        """Discard staged changes."""
        self.session.rollback()


@contextmanager
def catalog_scope(config: Optional[GitwardenConfig] = None) -> Generator[RepositoryCatalog, None, None]:
    """
    Open a catalog for the duration of one unit of work.

    The scope never commits implicitly: callers decide
    when to commit. Uncommitted changes are rolled back on error and the
    session is always closed.

    Usage:
        with catalog_scope() as catalog:
            repos = catalog.get_by_status(CloneStatus.CLONED)

    Args:
        config: gitwarden configuration (uses global if not provided)

    Yields:
        RepositoryCatalog bound to a fresh session
    """
    SessionLocal = get_session_maker(config)
    session = SessionLocal()

    try:
        yield RepositoryCatalog(session)
    except BaseException:
        session.rollback()
        raise
    finally:
        session.close()

"""
SQLAlchemy models for the gitwarden repository catalog.

Repository rows are created by whatever clones the mirrors; the fetch loop
only ever writes Repository.last_checked and appends FetchAttempt rows.
"""

import enum
from datetime import datetime, timezone
from typing import Any, List, Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, declarative_base, mapped_column, relationship
from sqlalchemy.types import TypeDecorator

Base = declarative_base()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UTCDateTime(TypeDecorator):
    """DateTime stored as naive UTC, returned as timezone-aware UTC.

    SQLite has no timezone support, so values are normalized on the way in
    and re-tagged on the way out.
    """

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value: Optional[datetime], dialect: Any) -> Optional[datetime]:
        if value is None:
            return None
        if value.tzinfo is None:
            return value
        return value.astimezone(timezone.utc).replace(tzinfo=None)

    def process_result_value(self, value: Optional[datetime], dialect: Any) -> Optional[datetime]:
        if value is None:
            return None
        return value.replace(tzinfo=timezone.utc)


class CloneStatus(str, enum.Enum):
    """Clone lifecycle of a mirrored repository.

    Only CLONED repositories are eligible for fetching.
    """

    NOT_CLONED = "NotCloned"
    CLONING = "Cloning"
    CLONED = "Cloned"
    FAILED = "Failed"

    @classmethod
    def parse(cls, value: str) -> "CloneStatus":
        """Parse a status from its value or name, case-insensitively."""
        normalized = value.replace("_", "").replace("-", "").lower()
        for status in cls:
            if normalized in (status.value.lower(), status.name.replace("_", "").lower()):
                return status
        raise ValueError(f"Unknown clone status: {value}")


class Repository(Base):
    """
    A locally mirrored git repository.

    Stores:
    - Identity (id, name)
    - Location relative to the configured base directory
    - Clone status, maintained by the cloning side
    - When the mirror was last successfully fetched
    """

    __tablename__ = "repositories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String, nullable=False, unique=True, index=True)
    local_path: Mapped[str] = mapped_column(String, nullable=False)
    remote_url: Mapped[Optional[str]] = mapped_column(String, nullable=True)

    clone_status: Mapped[CloneStatus] = mapped_column(
        Enum(
            CloneStatus,
            name="clone_status",
            values_callable=lambda statuses: [s.value for s in statuses],
            native_enum=False,
        ),
        default=CloneStatus.NOT_CLONED,
        nullable=False,
        index=True,
    )

    # Only ever advanced by a successful fetch
    last_checked: Mapped[Optional[datetime]] = mapped_column(
        UTCDateTime(), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), default=utcnow, onupdate=utcnow, nullable=False
    )

    attempts: Mapped[List["FetchAttempt"]] = relationship(
        "FetchAttempt",
        back_populates="repository",
        cascade="all, delete-orphan",
    )


class FetchAttempt(Base):
    """
    Fetch attempt history.

    One row per repository per cycle, written in the same commit as the
    last_checked update.
    """

    __tablename__ = "fetch_attempts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    repository_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("repositories.id"), nullable=False, index=True
    )

    started_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    completed_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)

    success: Mapped[bool] = mapped_column(Boolean, nullable=False)
    exit_code: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    # spawn_failure, command_failure, cancelled, unexpected
    error_kind: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    repository: Mapped[Repository] = relationship("Repository", back_populates="attempts")


Index("ix_fetch_attempts_started_at", FetchAttempt.started_at.desc())

"""Audit model for SEO audit runs."""

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Dict, List, Optional
from uuid import UUID, uuid4

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSON
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from seo_audit.core.database import Base
from seo_audit.core.exceptions import InvalidTransitionError
from seo_audit.schemas.audit import AUDIT_TRANSITIONS, AuditStatus
from seo_audit.schemas.rules import Category

if TYPE_CHECKING:
    from seo_audit.models.issue import Issue
    from seo_audit.models.page import Page
    from seo_audit.models.project import Project

# Category -> column holding its score
CATEGORY_COLUMNS = {
    Category.TECHNICAL: "technical_score",
    Category.ONPAGE: "onpage_score",
    Category.STRUCTURED_DATA: "structured_data_score",
    Category.PERFORMANCE: "performance_score",
    Category.LOCAL_SEO: "local_seo_score",
}


class Audit(Base):
    """One SEO audit of a project's site.

    Status only moves along queued -> running -> completed/failed
    (or straight from queued to failed); ``mark_*`` methods enforce it.

    Attributes:
        id: Unique identifier (UUID).
        project_id: Owning project.
        url: The URL being audited.
        status: Current audit status (queued, running, completed, failed).
        total_score: Score from 0-100, set on completion.
        technical_score: Technical category score.
        onpage_score: On-page category score.
        structured_data_score: Structured data category score.
        performance_score: Performance category score.
        local_seo_score: Local SEO category score.
        performance_data: Raw PageSpeed result.
        audit_metadata: Pages crawled, catalog version, duration and similar.
        error_message: Error message if audit failed.
        started_at: When the audit was created.
        completed_at: When the audit finished.
    """

    __tablename__ = "audits"

    id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        primary_key=True,
        default=uuid4,
    )
    project_id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
    )
    url: Mapped[str] = mapped_column(
        String(2048),
        nullable=False,
    )
    status: Mapped[str] = mapped_column(
        String(20),
        default=AuditStatus.QUEUED.value,
        nullable=False,
    )
    total_score: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    technical_score: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    onpage_score: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    structured_data_score: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    performance_score: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    local_seo_score: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    performance_data: Mapped[Optional[Dict[str, Any]]] = mapped_column(
        JSON,
        nullable=True,
        default=None,
    )
    # "metadata" is reserved on declarative classes
    audit_metadata: Mapped[Dict[str, Any]] = mapped_column(
        "metadata",
        JSON,
        nullable=False,
        default=dict,
    )
    error_message: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )
    started_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    completed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # Relationships
    project: Mapped["Project"] = relationship(
        "Project",
        back_populates="audits",
    )
    pages: Mapped[List["Page"]] = relationship(
        "Page",
        back_populates="audit",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    issues: Mapped[List["Issue"]] = relationship(
        "Issue",
        back_populates="audit",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("ix_audits_project_id", "project_id"),
        Index("ix_audits_status", "status"),
        Index("ix_audits_started_at", "started_at"),
    )

    def __repr__(self) -> str:
        """String representation of the audit."""
        return f"<Audit(id={self.id}, url={self.url}, status={self.status})>"

    @property
    def is_complete(self) -> bool:
        """Check if audit has finished (success or failure)."""
        return AuditStatus(self.status).is_terminal

    def category_scores(self) -> Dict[Category, Optional[int]]:
        return {category: getattr(self, column) for category, column in CATEGORY_COLUMNS.items()}

    def _transition(self, target: AuditStatus) -> None:
        current = AuditStatus(self.status)
        if target not in AUDIT_TRANSITIONS[current]:
            raise InvalidTransitionError(current.value, target.value)
        self.status = target.value

    def mark_running(self) -> None:
        """Mark the audit as running."""
        self._transition(AuditStatus.RUNNING)

    def mark_complete(
        self,
        total_score: int,
        category_scores: Dict[Category, int],
        metadata: Dict[str, Any],
        performance_data: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Mark the audit as complete with scores."""
        self._transition(AuditStatus.COMPLETED)
        self.total_score = total_score
        for category, column in CATEGORY_COLUMNS.items():
            setattr(self, column, category_scores.get(category, 0))
        self.audit_metadata = {**(self.audit_metadata or {}), **metadata}
        self.performance_data = performance_data
        self.completed_at = datetime.now(timezone.utc)

    def mark_failed(self, error: str, metadata: Optional[Dict[str, Any]] = None) -> None:
        """Mark the audit as failed with error message."""
        self._transition(AuditStatus.FAILED)
        self.error_message = error
        if metadata:
            self.audit_metadata = {**(self.audit_metadata or {}), **metadata}
        self.completed_at = datetime.now(timezone.utc)

"""Issue model for problems found by audit rules."""

from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, Optional
from uuid import UUID, uuid4

from sqlalchemy import DateTime, ForeignKey, Index, String, Text
from sqlalchemy.dialects.postgresql import JSON
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from seo_audit.core.database import Base

if TYPE_CHECKING:
    from seo_audit.models.audit import Audit
    from seo_audit.models.page import Page


class Issue(Base):
    """An issue reported by a rule during an audit.

    Attributes:
        id: Unique identifier (UUID).
        audit_id: Owning audit.
        page_id: Page the issue was found on, null for site-wide issues.
        rule_id: Rule that reported it.
        severity: critical, warning or info.
        message: Description of the problem.
        recommendation: How to fix it.
        issue_metadata: Measured values and other details.
        created_at: When the issue was stored.
    """

    __tablename__ = "issues"

    id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        primary_key=True,
        default=uuid4,
    )
    audit_id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("audits.id", ondelete="CASCADE"),
        nullable=False,
    )
    page_id: Mapped[Optional[UUID]] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("pages.id", ondelete="SET NULL"),
        nullable=True,
    )
    rule_id: Mapped[str] = mapped_column(
        String(100),
        ForeignKey("rules.id"),
        nullable=False,
    )
    severity: Mapped[str] = mapped_column(String(20), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    recommendation: Mapped[str] = mapped_column(Text, nullable=False, default="")
    issue_metadata: Mapped[Dict[str, Any]] = mapped_column(
        "metadata",
        JSON,
        nullable=False,
        default=dict,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    audit: Mapped["Audit"] = relationship("Audit", back_populates="issues")
    page: Mapped[Optional["Page"]] = relationship("Page", back_populates="issues")

    __table_args__ = (
        Index("ix_issues_audit_id", "audit_id"),
        Index("ix_issues_severity", "severity"),
    )

    def __repr__(self) -> str:
        return f"<Issue(rule={self.rule_id}, severity={self.severity})>"

"""Page model for crawled pages."""

from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, List, Optional
from uuid import UUID, uuid4

from sqlalchemy import DateTime, Float, ForeignKey, Index, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSON
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from seo_audit.core.database import Base

if TYPE_CHECKING:
    from seo_audit.models.audit import Audit
    from seo_audit.models.issue import Issue

# Stored HTML is truncated to this many characters
MAX_STORED_HTML = 50_000


class Page(Base):
    """A page fetched during an audit.

    Attributes:
        id: Unique identifier (UUID).
        audit_id: Owning audit.
        url: Requested URL.
        final_url: URL after redirects.
        status_code: HTTP status code.
        load_time: Fetch time in milliseconds.
        page_size: Body size in bytes.
        headers: Response headers.
        html: Response body, truncated.
        resources: Referenced images, scripts and stylesheets.
        internal_links: Same-host links.
        external_links: Links to other hosts.
        json_ld: Embedded JSON-LD objects.
        console_errors: Errors reported while processing the page.
        crawled_at: When the page row was stored.
    """

    __tablename__ = "pages"

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
    url: Mapped[str] = mapped_column(String(2048), nullable=False)
    final_url: Mapped[Optional[str]] = mapped_column(String(2048), nullable=True)
    status_code: Mapped[int] = mapped_column(Integer, nullable=False)
    load_time: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    page_size: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    headers: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    html: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    resources: Mapped[List[Any]] = mapped_column(JSON, nullable=False, default=list)
    internal_links: Mapped[List[Any]] = mapped_column(JSON, nullable=False, default=list)
    external_links: Mapped[List[Any]] = mapped_column(JSON, nullable=False, default=list)
    json_ld: Mapped[List[Any]] = mapped_column(JSON, nullable=False, default=list)
    console_errors: Mapped[List[Any]] = mapped_column(JSON, nullable=False, default=list)
    crawled_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    audit: Mapped["Audit"] = relationship("Audit", back_populates="pages")
    issues: Mapped[List["Issue"]] = relationship("Issue", back_populates="page")

    __table_args__ = (
        Index("ix_pages_audit_id", "audit_id"),
    )

    def __repr__(self) -> str:
        return f"<Page(id={self.id}, url={self.url}, status={self.status_code})>"

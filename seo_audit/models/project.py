"""Project model grouping audits of one site."""

from datetime import datetime
from typing import TYPE_CHECKING, List
from uuid import UUID, uuid4

from sqlalchemy import DateTime, String
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from seo_audit.core.database import Base

if TYPE_CHECKING:
    from seo_audit.models.audit import Audit


class Project(Base):
    """A site whose audits are tracked together.

    Attributes:
        id: Unique identifier (UUID).
        name: Display name.
        domain: Registered domain, used for same-origin checks.
        created_at: When the project was created.
        audits: Audits run for this project.
    """

    __tablename__ = "projects"

    id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        primary_key=True,
        default=uuid4,
    )
    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    domain: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    audits: Mapped[List["Audit"]] = relationship(
        "Audit",
        back_populates="project",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<Project(id={self.id}, domain={self.domain})>"

"""Rule model mirroring the in-code rule catalog."""

from sqlalchemy import Boolean, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from seo_audit.core.database import Base


class Rule(Base):
    """A catalog rule as stored in the database.

    Rows are written from the code catalog at startup so issues can
    reference rule ids; the table is never edited at runtime.
    """

    __tablename__ = "rules"

    id: Mapped[str] = mapped_column(String(100), primary_key=True)
    category: Mapped[str] = mapped_column(String(50), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    weight: Mapped[int] = mapped_column(Integer, nullable=False)
    scope: Mapped[str] = mapped_column(String(20), nullable=False, default="page")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<Rule(id={self.id}, weight={self.weight})>"

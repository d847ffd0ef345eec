"""SQLAlchemy-модель тезисов об организации."""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import (
    UUID,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from company_service.db.base import Base


class OrganizationThesis(Base):
    """
    Тезис уровня contrarian_level (1..10). На одном уровне может быть несколько
    разных тезисов, точные дубликаты текста запрещены уникальностью.
    status проверяется в приложении: validated | denied.
    """

    __tablename__ = "organization_theses"
    __table_args__ = (
        UniqueConstraint(
            "organization_id",
            "contrarian_level",
            "thesis_html",
            name="uq_organization_theses_org_level_text",
        ),
        CheckConstraint(
            "contrarian_level BETWEEN 1 AND 10",
            name="ck_organization_theses_level_range",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    organization_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    contrarian_level: Mapped[int] = mapped_column(Integer, nullable=False)
    thesis_html: Mapped[str] = mapped_column(Text, nullable=False)
    thesis_supporting_evidence_html: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        default="validated",
        server_default=text("'validated'"),
    )
    status_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status_changed_by_type: Mapped[Optional[str]] = mapped_column(
        String(8),
        nullable=True,
        comment="ai | user",
    )
    status_changed_by_user_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    status_changed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import UUID, CheckConstraint, DateTime, ForeignKey, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from company_service.db.base import Base


class OrganizationThesisGeneration(Base):
    """Флаг фоновой генерации тезисов на уровень: NULL = idle, 'generating' = в работе."""

    __tablename__ = "organization_thesis_generations"
    __table_args__ = (
        CheckConstraint(
            "status IS NULL OR status IN ('generating')",
            name="ck_organization_thesis_generations_status",
        ),
    )

    organization_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        primary_key=True,
    )
    contrarian_level: Mapped[int] = mapped_column(Integer, primary_key=True)
    status: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    generating_started_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

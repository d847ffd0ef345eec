"""SQLAlchemy-модель направленных связей между организациями."""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import (
    UUID,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
    func,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from company_service.db.base import Base


class OrganizationRelation(Base):
    """
    Связь source -> target. status = 'not_related' хранит проверенное отсутствие
    связи (в отличие от отсутствия строки, которое означает «не проверялось»).
    """

    __tablename__ = "organization_relations"
    __table_args__ = (
        CheckConstraint(
            "source_organization_id <> target_organization_id",
            name="ck_organization_relations_not_self",
        ),
        Index("ix_organization_relations_target", "target_organization_id"),
        {"comment": "Направленные связи между организациями (source -> target)"},
    )

    source_organization_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        primary_key=True,
    )
    target_organization_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        primary_key=True,
    )
    relation_type: Mapped[Optional[str]] = mapped_column(
        String(32),
        nullable=True,
        comment="subsidiary / holding / product / main_company / client / supplier / shareholder / other",
    )
    relation_confidence_level: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    relation_confidence_rationale: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        default="active",
        server_default=text("'active'"),
        comment="active / ended / hidden / not_related",
    )
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

"""SQLAlchemy-модели организаций (брендов) и таблицы внешних идентификаторов."""

import uuid
from datetime import date, datetime
from typing import Any, Optional

from sqlalchemy import (
    UUID,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from company_service.db.base import Base, JSONType


class Organization(Base):
    """
    Организация (бренд). Внутренний id стабилен; внешние ключи (workspace/legacy)
    живут в organization_identifiers. domain всегда выводится из url при записи.
    """

    __tablename__ = "organizations"
    __table_args__ = (
        CheckConstraint(
            "status IS NULL OR status IN ('generating')",
            name="ck_organizations_status",
        ),
    )

    # --- Идентификация ---
    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        comment="Внутренний идентификатор организации.",
    )
    name: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    domain: Mapped[Optional[str]] = mapped_column(
        Text,
        unique=True,
        nullable=True,
        comment="Хост из url (без www., поддомены сохраняются). Уникален среди не-NULL.",
    )
    linkedin_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # --- Профиль ---
    location: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    bio: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    elevator_pitch: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    mission: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    story: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    offerings: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    problem_solution: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    goals: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    categories: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    founded_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    contact_name: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    contact_email: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    contact_phone: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    social_media: Mapped[Optional[dict[str, Any]]] = mapped_column(JSONType, nullable=True)

    # --- Генерация профиля ---
    status: Mapped[Optional[str]] = mapped_column(
        String(32),
        nullable=True,
        comment="NULL = idle; 'generating' = идёт фоновая генерация профиля.",
    )
    generating_started_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
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


class OrganizationIdentifier(Base):
    """
    Crosswalk внешних идентификаторов: (scheme, value) -> organization_id.
    scheme: workspace (clerk_org_id) | legacy_external (устаревший внешний id).
    """

    __tablename__ = "organization_identifiers"
    __table_args__ = (
        UniqueConstraint("scheme", "value", name="uq_organization_identifiers_scheme_value"),
        CheckConstraint(
            "scheme IN ('workspace', 'legacy_external')",
            name="ck_organization_identifiers_scheme",
        ),
        Index("ix_organization_identifiers_organization_id", "organization_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    organization_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
    )
    scheme: Mapped[str] = mapped_column(String(32), nullable=False)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

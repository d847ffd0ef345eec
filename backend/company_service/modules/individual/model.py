"""SQLAlchemy-модели людей, их членства в организациях и постов LinkedIn."""

import uuid
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import (
    UUID,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from company_service.db.base import Base, JSONType


class Individual(Base):
    """Человек. Естественный ключ слияния: linkedin_url."""

    __tablename__ = "individuals"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    first_name: Mapped[str] = mapped_column(Text, nullable=False)
    last_name: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        comment="Коллекторы иногда знают только имя.",
    )
    linkedin_url: Mapped[Optional[str]] = mapped_column(Text, unique=True, nullable=True)
    personal_website_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
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


class OrganizationIndividual(Base):
    """
    Членство человека в организации: одно ребро на пару (organization, individual).
    status меняется только явным вызовом update_membership_status.
    """

    __tablename__ = "organization_individuals"
    __table_args__ = (
        Index("ix_organization_individuals_individual_id", "individual_id"),
    )

    organization_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        primary_key=True,
    )
    individual_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("individuals.id", ondelete="CASCADE"),
        primary_key=True,
    )
    organization_role: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    joined_organization_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    belonging_confidence_level: Mapped[Optional[str]] = mapped_column(
        String(32),
        nullable=True,
        comment="found_online | guessed | user_inputed",
    )
    belonging_confidence_rationale: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        default="active",
        server_default=text("'active'"),
        comment="active | ended | hidden",
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


class IndividualLinkedinPost(Base):
    """Пост/статья человека в LinkedIn (коллектор пишет через crud.upsert_linkedin_post)."""

    __tablename__ = "individual_linkedin_posts"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    individual_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("individuals.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    linkedin_post_id: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
    linkedin_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    author_name: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    content: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_repost: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    has_article: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    article_link: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    article_title: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    article_data: Mapped[Optional[dict[str, Any]]] = mapped_column(JSONType, nullable=True)
    likes_count: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    comments_count: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    shares_count: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    posted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

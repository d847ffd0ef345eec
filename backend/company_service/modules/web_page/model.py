"""SQLAlchemy-модели веб-страниц и скачанного контента."""

import uuid
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import UUID, Boolean, DateTime, String, Text, func, true
from sqlalchemy.orm import Mapped, mapped_column

from company_service.db.base import Base, JSONType


class WebPage(Base):
    """
    Страница, найденная агентом. Идентичность: normalized_url;
    normalized_url и domain выводятся из url при каждой записи.
    """

    __tablename__ = "web_pages"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    url: Mapped[str] = mapped_column(Text, nullable=False)
    normalized_url: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
    domain: Mapped[Optional[str]] = mapped_column(Text, nullable=True, index=True)
    page_category: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        default="other",
        comment="company_info / offerings / credibility / content / legal / other / ...",
    )
    should_scrape: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        server_default=true(),
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


class ScrapedContent(Base):
    """
    Контент страницы, связан с web_pages по normalized_url (join, не FK).
    Строка с scraped_at IS NULL - место в очереди скрейпинга.
    """

    __tablename__ = "scraped_contents"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    url: Mapped[str] = mapped_column(Text, nullable=False)
    normalized_url: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
    domain: Mapped[Optional[str]] = mapped_column(Text, nullable=True, index=True)
    raw_response: Mapped[Optional[dict[str, Any]]] = mapped_column(JSONType, nullable=True)
    markdown: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    html: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    title: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    scraped_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
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

"""Pydantic-схемы веб-страниц и очереди скрейпинга."""

from __future__ import annotations

import re
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Известные категории; неизвестные теги агента принимаются как есть
KNOWN_PAGE_CATEGORIES = ("company_info", "offerings", "credibility", "content", "legal", "other")

_CATEGORY_RE = re.compile(r"^[a-z0-9][a-z0-9_-]*$")


class WebPageIn(BaseModel):
    """Элемент пакета страниц от агента."""

    model_config = ConfigDict(extra="ignore")

    url: str = Field(..., min_length=1)
    page_category: Optional[str] = Field(
        None,
        description="Если не передано: 'other' при первой вставке, прежнее значение при обновлении",
    )
    should_scrape: Optional[bool] = None

    @field_validator("url", mode="before")
    @classmethod
    def strip_url(cls, v: Any) -> Any:
        return v.strip() if isinstance(v, str) else v

    @field_validator("page_category", mode="before")
    @classmethod
    def normalize_category(cls, v: Any) -> Any:
        if v is None:
            return None
        if not isinstance(v, str):
            raise ValueError("page_category должен быть строкой")
        v = v.strip().lower().replace(" ", "_")
        if not v:
            return None
        if not _CATEGORY_RE.match(v):
            raise ValueError(f"Недопустимая категория страницы: {v!r}")
        return v


class ScrapeUrlIn(BaseModel):
    """Элемент пакета очереди скрейпинга: строка url или объект {url}."""

    model_config = ConfigDict(extra="ignore")

    url: str = Field(..., min_length=1)

    @field_validator("url", mode="before")
    @classmethod
    def strip_url(cls, v: Any) -> Any:
        return v.strip() if isinstance(v, str) else v


class WebPageIngested(BaseModel):
    url: str
    normalized_url: str
    web_page_id: str
    was_newly_inserted: bool


class ScrapeUrlQueued(BaseModel):
    url: str
    id: str
    was_new: bool


class ScrapedContentIn(BaseModel):
    """Ответ краулера для одной страницы."""

    model_config = ConfigDict(extra="ignore")

    markdown: Optional[str] = None
    html: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    metadata: Optional[dict[str, Any]] = None

    def page_title(self) -> Optional[str]:
        meta = self.metadata or {}
        return self.title or meta.get("title") or meta.get("og:title")

    def page_description(self) -> Optional[str]:
        meta = self.metadata or {}
        return self.description or meta.get("description") or meta.get("og:description")

"""Сервис веб-страниц: точка записи для внешнего краулера."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from company_service.core.errors import ValidationError
from company_service.core.urls import normalize_url
from company_service.modules.web_page import crud
from company_service.modules.web_page.schemas import ScrapedContentIn

logger = logging.getLogger(__name__)


async def record_scraped_content(
    session: AsyncSession,
    url: str,
    raw_response: dict[str, Any],
    *,
    scraped_at: datetime | None = None,
) -> uuid.UUID:
    """
    Сохранить ответ краулера для страницы: markdown/html/title/description
    извлекаются из ответа, сырой ответ хранится целиком, scraped_at
    отмечает страницу как скачанную.
    """
    normalized = normalize_url(url)
    if normalized is None:
        raise ValidationError(f"Некорректный URL страницы: {url!r}")
    if not isinstance(raw_response, dict):
        raise ValidationError(f"Ответ краулера должен быть объектом, получено: {type(raw_response).__name__}")
    try:
        content = ScrapedContentIn.model_validate(raw_response)
    except PydanticValidationError as e:
        raise ValidationError(f"Ответ краулера не разобран: {e.errors()[0]['msg']}") from e

    content_id = await crud.upsert_scraped_content(
        session,
        url=url.strip(),
        normalized_url=normalized,
        values={
            "raw_response": raw_response,
            "markdown": content.markdown,
            "html": content.html,
            "title": content.page_title(),
            "description": content.page_description(),
            "scraped_at": scraped_at or datetime.now(timezone.utc),
        },
    )
    logger.info(
        "Scraped content recorded: normalized_url=%s content_id=%s markdown_len=%s",
        normalized,
        content_id,
        len(content.markdown or ""),
    )
    return content_id

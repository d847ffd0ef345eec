"""CRUD веб-страниц, очереди скрейпинга и скачанного контента."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, Iterable

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from company_service.core.urls import extract_hostname
from company_service.db.upsert import build_upsert_stmt, dialect_insert, dialect_name
from company_service.modules.web_page.model import ScrapedContent, WebPage


def derive_page_keys(normalized_url: str) -> dict[str, Any]:
    """Хук записи страницы: normalized_url и domain всегда пересчитываются вместе."""
    return {"normalized_url": normalized_url, "domain": extract_hostname(normalized_url)}


def build_web_page_upsert_stmt(
    *,
    url: str,
    normalized_url: str,
    page_category: str | None,
    should_scrape: bool | None,
    default_category: str = "other",
    dialect: str = "postgresql",
):
    """
    INSERT ... ON CONFLICT (normalized_url) DO UPDATE.

    page_category и should_scrape: при первой вставке берутся значения по
    умолчанию ('other' / true), при конфликте меняются только если переданы.
    """
    values = {
        "id": uuid.uuid4(),
        "url": url,
        **derive_page_keys(normalized_url),
        "page_category": page_category if page_category is not None else default_category,
        "should_scrape": should_scrape if should_scrape is not None else True,
    }
    overwrite = ["domain"]
    if page_category is not None:
        overwrite.append("page_category")
    if should_scrape is not None:
        overwrite.append("should_scrape")
    return build_upsert_stmt(
        WebPage,
        values,
        index_elements=["normalized_url"],
        coalesce=("url",),
        overwrite=overwrite,
        dialect=dialect,
    ).returning(WebPage.id)


async def get_web_page_id(session: AsyncSession, normalized_url: str) -> uuid.UUID | None:
    result = await session.execute(
        select(WebPage.id).where(WebPage.normalized_url == normalized_url)
    )
    return result.scalar_one_or_none()


async def get_web_page(session: AsyncSession, normalized_url: str) -> WebPage | None:
    result = await session.execute(
        select(WebPage)
        .where(WebPage.normalized_url == normalized_url)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def upsert_web_page(
    session: AsyncSession,
    *,
    url: str,
    normalized_url: str,
    page_category: str | None,
    should_scrape: bool | None,
    default_category: str = "other",
) -> uuid.UUID:
    stmt = build_web_page_upsert_stmt(
        url=url,
        normalized_url=normalized_url,
        page_category=page_category,
        should_scrape=should_scrape,
        default_category=default_category,
        dialect=dialect_name(session),
    )
    result = await session.execute(stmt)
    return result.scalar_one()


async def deselect_sibling_pages(
    session: AsyncSession,
    *,
    domains: Iterable[str],
    keep_normalized_urls: Iterable[str],
) -> int:
    """should_scrape=false для страниц тех же доменов, которых нет в пакете."""
    domains = sorted(set(domains))
    keep = sorted(set(keep_normalized_urls))
    if not domains:
        return 0
    result = await session.execute(
        update(WebPage)
        .where(
            WebPage.domain.in_(domains),
            WebPage.normalized_url.not_in(keep),
            WebPage.should_scrape.is_(True),
        )
        .values(should_scrape=False, updated_at=datetime.now(timezone.utc))
        .execution_options(synchronize_session=False)
    )
    return result.rowcount or 0


async def get_scraped_content_id(session: AsyncSession, normalized_url: str) -> uuid.UUID | None:
    result = await session.execute(
        select(ScrapedContent.id).where(ScrapedContent.normalized_url == normalized_url)
    )
    return result.scalar_one_or_none()


async def enqueue_scrape_url(
    session: AsyncSession,
    *,
    url: str,
    normalized_url: str,
) -> tuple[uuid.UUID, bool]:
    """
    Место в очереди: строка scraped_contents без контента (scraped_at IS NULL).
    Существующая строка не меняется. Возвращает (id, was_new).
    """
    existing_id = await get_scraped_content_id(session, normalized_url)
    if existing_id is not None:
        return existing_id, False

    stmt = (
        dialect_insert(dialect_name(session), ScrapedContent)
        .values(id=uuid.uuid4(), url=url, **derive_page_keys(normalized_url))
        .on_conflict_do_nothing(index_elements=["normalized_url"])
    )
    result = await session.execute(stmt)
    content_id = await get_scraped_content_id(session, normalized_url)
    return content_id, bool(result.rowcount)


async def upsert_scraped_content(
    session: AsyncSession,
    *,
    url: str,
    normalized_url: str,
    values: dict[str, Any],
) -> uuid.UUID:
    """Записать контент страницы (перезаписывает прежний скрейп)."""
    row = {"id": uuid.uuid4(), "url": url, **derive_page_keys(normalized_url), **values}
    stmt = build_upsert_stmt(
        ScrapedContent,
        row,
        index_elements=["normalized_url"],
        overwrite=["url", "domain", *values.keys()],
        dialect=dialect_name(session),
    ).returning(ScrapedContent.id)
    result = await session.execute(stmt)
    return result.scalar_one()

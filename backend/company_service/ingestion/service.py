"""
Массовая загрузка выходов агентов: страницы, очередь скрейпинга, тезисы,
люди и связи между организациями.

Одна загрузка = один вызов в рамках транзакции вызывающего. Нераспознанная
форма пакета прерывает весь вызов; отдельный невалидный элемент
пропускается и попадает в отчёт (skipped).
"""

from __future__ import annotations

import logging
import uuid
from collections import Counter
from typing import Any
from urllib.parse import urljoin

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from company_service.core.config import get_settings
from company_service.core.errors import MalformedPayloadError, NotFoundError
from company_service.core.urls import extract_hostname, normalize_url
from company_service.ingestion.payload import (
    INDIVIDUALS_KEYS,
    PAGES_KEYS,
    RELATIONS_KEYS,
    SCRAPE_URLS_KEYS,
    THESES_KEYS,
    extract_records,
    unwrap_envelopes,
)
from company_service.ingestion.schemas import (
    IndividualsIngestResult,
    RelationRow,
    RelationsIngestResult,
    ScrapeQueueResult,
    SkippedElement,
    ThesesIngestResult,
    ThesisRow,
    WebPagesIngestResult,
    element_url,
)
from company_service.modules.individual.schemas import IndividualIn
from company_service.modules.individual.service import upsert_member
from company_service.modules.organization.schemas import OrganizationUpsert
from company_service.modules.organization.service import resolve_organization_id, upsert_organization
from company_service.modules.relation.schemas import RelationIn
from company_service.modules.relation.service import RelationSkipped, upsert_relation_from_item
from company_service.modules.thesis import crud as thesis_crud
from company_service.modules.thesis.schemas import NewThesisIn, ThesisEvaluationIn
from company_service.modules.thesis.service import apply_thesis_evaluation
from company_service.modules.web_page import crud as web_page_crud
from company_service.modules.web_page.schemas import (
    ScrapeUrlIn,
    ScrapeUrlQueued,
    WebPageIn,
    WebPageIngested,
)

logger = logging.getLogger(__name__)

THESIS_EVALUATIONS_KEY = "thesis_evaluations"


def _validation_reason(e: PydanticValidationError) -> str:
    err = e.errors()[0]
    loc = ".".join(str(p) for p in err.get("loc", ()))
    return f"{loc}: {err['msg']}" if loc else err["msg"]


def _skip(skipped: list[SkippedElement], index: int, reason: str, item: Any) -> None:
    skipped.append(SkippedElement(index=index, reason=reason, url=element_url(item)))
    logger.warning("Ingestion element skipped: index=%s reason=%s", index, reason)


async def ingest_web_pages(session: AsyncSession, payload: Any) -> WebPagesIngestResult:
    """
    Загрузка страниц от агента. Ключ конфликта: normalized_url (разные сырые
    url одной страницы сливаются). Для каждого элемента в отчёте
    {url, normalized_url, web_page_id, was_newly_inserted}.
    """
    settings = get_settings()
    records = extract_records(payload, PAGES_KEYS)
    result = WebPagesIngestResult()
    domains: set[str] = set()
    batch_urls: set[str] = set()

    for index, item in enumerate(records):
        try:
            page = WebPageIn.model_validate(item)
        except PydanticValidationError as e:
            _skip(result.skipped, index, _validation_reason(e), item)
            continue

        normalized = normalize_url(page.url)
        if normalized is None:
            _skip(result.skipped, index, f"некорректный url: {page.url!r}", item)
            continue

        existing_id = await web_page_crud.get_web_page_id(session, normalized)
        web_page_id = await web_page_crud.upsert_web_page(
            session,
            url=page.url,
            normalized_url=normalized,
            page_category=page.page_category,
            should_scrape=page.should_scrape,
            default_category=settings.WEB_PAGE_DEFAULT_CATEGORY,
        )
        result.rows.append(
            WebPageIngested(
                url=page.url,
                normalized_url=normalized,
                web_page_id=str(web_page_id),
                was_newly_inserted=existing_id is None,
            )
        )
        batch_urls.add(normalized)
        domain = extract_hostname(normalized)
        if domain:
            domains.add(domain)

    if settings.WEB_PAGES_DESELECT_SIBLINGS and batch_urls:
        result.deselected_count = await web_page_crud.deselect_sibling_pages(
            session,
            domains=domains,
            keep_normalized_urls=batch_urls,
        )

    logger.info(
        "Web pages ingested: total=%s inserted=%s skipped=%s deselected=%s",
        len(result.rows),
        result.inserted_count,
        len(result.skipped),
        result.deselected_count,
    )
    return result


async def ingest_scrape_urls(session: AsyncSession, domain: str, payload: Any) -> ScrapeQueueResult:
    """
    Поставить url в очередь скрейпинга (строка без контента).
    Элементы: строки или {url}; относительные пути достраиваются от domain.
    """
    base = normalize_url(domain)
    records = extract_records(payload, SCRAPE_URLS_KEYS)
    result = ScrapeQueueResult()

    for index, item in enumerate(records):
        try:
            entry = ScrapeUrlIn.model_validate({"url": item} if isinstance(item, str) else item)
        except PydanticValidationError as e:
            _skip(result.skipped, index, _validation_reason(e), item)
            continue

        raw_url = entry.url
        if raw_url.startswith("/") and not raw_url.startswith("//") and base:
            raw_url = urljoin(base + "/", raw_url)
        normalized = normalize_url(raw_url)
        if normalized is None:
            _skip(result.skipped, index, f"некорректный url: {entry.url!r}", item)
            continue

        content_id, was_new = await web_page_crud.enqueue_scrape_url(
            session,
            url=raw_url,
            normalized_url=normalized,
        )
        result.rows.append(ScrapeUrlQueued(url=raw_url, id=str(content_id), was_new=was_new))

    logger.info(
        "Scrape urls queued: domain=%s total=%s new=%s skipped=%s",
        domain,
        len(result.rows),
        sum(1 for r in result.rows if r.was_new),
        len(result.skipped),
    )
    return result


def _split_thesis_batch(payload: Any) -> tuple[list[Any], list[Any]]:
    """(новые тезисы, оценки) из массива или объекта {theses|new_theses, thesis_evaluations}."""
    inner = unwrap_envelopes(payload)
    if isinstance(inner, list):
        return inner, []
    if not isinstance(inner, dict):
        raise MalformedPayloadError("Ожидался массив тезисов или объект", inner)

    has_new = any(key in inner for key in THESES_KEYS)
    has_evaluations = THESIS_EVALUATIONS_KEY in inner
    if not has_new and not has_evaluations:
        raise MalformedPayloadError(
            f"Не найден массив тезисов (ожидались поля: {', '.join((*THESES_KEYS, THESIS_EVALUATIONS_KEY))})",
            inner,
        )

    new_theses = extract_records(inner, THESES_KEYS, allow_model_envelope=False) if has_new else []
    evaluations = inner.get(THESIS_EVALUATIONS_KEY) or []
    if not isinstance(evaluations, list):
        raise MalformedPayloadError(
            f"Поле {THESIS_EVALUATIONS_KEY!r} должно содержать массив, получено {type(evaluations).__name__}",
            inner,
        )
    return new_theses, evaluations


async def ingest_theses(
    session: AsyncSession,
    organization_identifier: str | uuid.UUID,
    payload: Any,
) -> ThesesIngestResult:
    """
    Upsert тезисов по (organization, contrarian_level, thesis_html): при конфликте
    обновляется только доказательная база; новые строки всегда validated/ai.
    Сначала применяются оценки существующих тезисов, затем вставляются новые:
    текст, уже полученный через update, не создаёт второй строки.
    """
    new_theses, evaluations = _split_thesis_batch(payload)

    organization_id = await resolve_organization_id(session, organization_identifier)
    if organization_id is None:
        raise NotFoundError("organization", organization_identifier)

    result = ThesesIngestResult(organization_id=str(organization_id))
    applied: Counter[str] = Counter()
    offset = len(new_theses)
    for index, item in enumerate(evaluations):
        try:
            evaluation = ThesisEvaluationIn.model_validate(item)
        except PydanticValidationError as e:
            _skip(result.skipped, offset + index, _validation_reason(e), item)
            continue
        action = await apply_thesis_evaluation(session, organization_id, evaluation)
        if action is None:
            result.skipped.append(
                SkippedElement(index=offset + index, reason=f"оценка тезиса {evaluation.id} не применена")
            )
            continue
        applied[action] += 1
    result.evaluations = dict(applied)

    for index, item in enumerate(new_theses):
        try:
            thesis = NewThesisIn.model_validate(item)
        except PydanticValidationError as e:
            _skip(result.skipped, index, _validation_reason(e), item)
            continue

        existing_id = await thesis_crud.find_thesis_id(
            session,
            organization_id=organization_id,
            contrarian_level=thesis.contrarian_level,
            thesis_html=thesis.thesis_html,
        )
        thesis_id = await thesis_crud.upsert_thesis(
            session,
            organization_id=organization_id,
            contrarian_level=thesis.contrarian_level,
            thesis_html=thesis.thesis_html,
            thesis_supporting_evidence_html=thesis.thesis_supporting_evidence_html,
        )
        result.rows.append(
            ThesisRow(id=thesis_id, contrarian_level=thesis.contrarian_level, was_new=existing_id is None)
        )

    logger.info(
        "Theses ingested: organization_id=%s inserted=%s updated=%s evaluations=%s skipped=%s",
        organization_id,
        result.inserted_count,
        result.updated_count,
        result.evaluations,
        len(result.skipped),
    )
    return result


async def ingest_individuals(
    session: AsyncSession,
    organization_identifier: str | uuid.UUID,
    payload: Any,
) -> IndividualsIngestResult:
    """Люди одной организации; организация должна существовать."""
    records = extract_records(payload, INDIVIDUALS_KEYS)

    organization_id = await resolve_organization_id(session, organization_identifier)
    if organization_id is None:
        raise NotFoundError("organization", organization_identifier)

    result = IndividualsIngestResult(organization_id=str(organization_id))
    for index, item in enumerate(records):
        try:
            person = IndividualIn.model_validate(item)
        except PydanticValidationError as e:
            _skip(result.skipped, index, _validation_reason(e), item)
            continue
        result.rows.append(await upsert_member(session, organization_id, person))

    logger.info(
        "Individuals ingested: organization_id=%s total=%s new=%s skipped=%s",
        organization_id,
        len(result.rows),
        sum(1 for r in result.rows if r.was_new_individual),
        len(result.skipped),
    )
    return result


async def ingest_relations(
    session: AsyncSession,
    source_identifier: str,
    payload: Any,
    *,
    source_name: str | None = None,
    source_url: str | None = None,
) -> RelationsIngestResult:
    """
    Связи организации-источника. Источник создаётся/обновляется по своему
    идентификатору; цели ищутся/создаются по хосту organization_url.
    Элементы без url или указывающие на сам источник пропускаются.
    """
    records = extract_records(payload, RELATIONS_KEYS)

    source_id = await upsert_organization(
        session,
        OrganizationUpsert(identifier=source_identifier, name=source_name, url=source_url),
    )
    result = RelationsIngestResult(source_organization_id=str(source_id))

    for index, item in enumerate(records):
        try:
            relation = RelationIn.model_validate(item)
        except PydanticValidationError as e:
            _skip(result.skipped, index, _validation_reason(e), item)
            continue
        try:
            async with session.begin_nested():
                target_id = await upsert_relation_from_item(session, source_id, relation)
        except RelationSkipped as e:
            _skip(result.skipped, index, str(e), item)
            continue
        result.rows.append(
            RelationRow(
                target_organization_id=str(target_id),
                organization_url=relation.organization_url,
                relation_type=relation.relation_type,
                status=relation.status,
            )
        )

    logger.info(
        "Relations ingested: source_id=%s total=%s skipped=%s",
        source_id,
        len(result.rows),
        len(result.skipped),
    )
    return result

"""
Read-side аксессоры графа организации: связи, люди, страницы, статьи, тезисы.

Каждый составной SELECT проходит через require_aliases: все выходные колонки
имеют явные уникальные алиасы (organization_*, target_*, page_*, content_* ...).
Запросы «списком» возвращают {items..., count}, чтобы пустой результат
отличался от ошибки поиска (Err).
"""

from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy import and_, select
from sqlalchemy.engine import Result as SAResult
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from company_service.core.result import Err, ErrorKind, Ok, Result
from company_service.db.aliases import labeled, require_aliases
from company_service.modules.individual.model import (
    Individual,
    IndividualLinkedinPost,
    OrganizationIndividual,
)
from company_service.modules.organization.model import Organization
from company_service.modules.organization.service import resolve_organization_id
from company_service.modules.relation.model import OrganizationRelation
from company_service.modules.thesis.model import OrganizationThesis
from company_service.modules.web_page.model import ScrapedContent, WebPage


def _plain(value: Any) -> Any:
    if isinstance(value, uuid.UUID):
        return str(value)
    return value


def _rows(result: SAResult) -> list[dict[str, Any]]:
    return [{key: _plain(value) for key, value in row._mapping.items()} for row in result.all()]


def _organization_not_found(identifier: Any) -> Err:
    return Err(
        ErrorKind.ORGANIZATION_NOT_FOUND,
        "Organization not found",
        {"organization_id": str(identifier)},
    )


async def _resolve(session: AsyncSession, identifier: Any) -> uuid.UUID | None:
    return await resolve_organization_id(session, identifier)


async def _organization_domain(session: AsyncSession, organization_id: uuid.UUID) -> str | None:
    result = await session.execute(
        require_aliases(
            select(Organization.domain.label("organization_domain")).where(Organization.id == organization_id)
        )
    )
    return result.scalar_one_or_none()


async def get_organization_with_relations(
    session: AsyncSession,
    organization_identifier: str | uuid.UUID,
) -> Result[dict]:
    """Организация и её исходящие связи (включая not_related) с данными целей."""
    organization_id = await _resolve(session, organization_identifier)
    if organization_id is None:
        return _organization_not_found(organization_identifier)

    org_stmt = require_aliases(
        select(
            *labeled(
                "organization",
                Organization.id,
                Organization.name,
                Organization.url,
                Organization.domain,
                Organization.linkedin_url,
                Organization.status,
            )
        ).where(Organization.id == organization_id)
    )
    organization = _rows(await session.execute(org_stmt))[0]

    target = aliased(Organization, name="target_org")
    rel_stmt = require_aliases(
        select(
            OrganizationRelation.relation_type.label("relation_type"),
            OrganizationRelation.relation_confidence_level.label("relation_confidence_level"),
            OrganizationRelation.relation_confidence_rationale.label("relation_confidence_rationale"),
            OrganizationRelation.status.label("relation_status"),
            OrganizationRelation.updated_at.label("relation_updated_at"),
            *labeled("target", target.id, target.name, target.url, target.domain, target.linkedin_url),
        )
        .join(target, target.id == OrganizationRelation.target_organization_id)
        .where(OrganizationRelation.source_organization_id == organization_id)
        .order_by(target.name, target.domain)
    )
    relations = _rows(await session.execute(rel_stmt))
    return Ok({"organization": organization, "relations": relations, "count": len(relations)})


async def get_relation(
    session: AsyncSession,
    source_identifier: str | uuid.UUID,
    target_identifier: str | uuid.UUID,
) -> Result[dict]:
    """
    Сохранённая связь source -> target. not_related возвращается как обычный
    статус; отсутствие строки -> Err(RELATION_NOT_FOUND).
    """
    echo = {"source_organization_id": str(source_identifier), "target_organization_id": str(target_identifier)}
    source_id = await _resolve(session, source_identifier)
    if source_id is None:
        return Err(ErrorKind.ORGANIZATION_NOT_FOUND, "Source organization not found", echo)
    target_id = await _resolve(session, target_identifier)
    if target_id is None:
        return Err(ErrorKind.TARGET_ORGANIZATION_NOT_FOUND, "Target organization not found", echo)

    stmt = require_aliases(
        select(
            OrganizationRelation.source_organization_id.label("source_organization_id"),
            OrganizationRelation.target_organization_id.label("target_organization_id"),
            OrganizationRelation.relation_type.label("relation_type"),
            OrganizationRelation.relation_confidence_level.label("relation_confidence_level"),
            OrganizationRelation.relation_confidence_rationale.label("relation_confidence_rationale"),
            OrganizationRelation.status.label("relationship_status"),
            OrganizationRelation.updated_at.label("relation_updated_at"),
        ).where(
            OrganizationRelation.source_organization_id == source_id,
            OrganizationRelation.target_organization_id == target_id,
        )
    )
    rows = _rows(await session.execute(stmt))
    if not rows:
        return Err(ErrorKind.RELATION_NOT_FOUND, "No relation found", echo)
    return Ok(rows[0])


async def list_organization_individuals(
    session: AsyncSession,
    organization_identifier: str | uuid.UUID,
    *,
    include_hidden: bool = False,
) -> Result[dict]:
    organization_id = await _resolve(session, organization_identifier)
    if organization_id is None:
        return _organization_not_found(organization_identifier)

    stmt = (
        select(
            *labeled(
                "individual",
                Individual.id,
                Individual.first_name,
                Individual.last_name,
                Individual.linkedin_url,
                Individual.personal_website_url,
            ),
            OrganizationIndividual.organization_role.label("organization_role"),
            OrganizationIndividual.joined_organization_at.label("joined_organization_at"),
            OrganizationIndividual.belonging_confidence_level.label("belonging_confidence_level"),
            OrganizationIndividual.belonging_confidence_rationale.label("belonging_confidence_rationale"),
            OrganizationIndividual.status.label("relationship_status"),
        )
        .join(OrganizationIndividual, OrganizationIndividual.individual_id == Individual.id)
        .where(OrganizationIndividual.organization_id == organization_id)
        .order_by(Individual.last_name, Individual.first_name)
    )
    if not include_hidden:
        stmt = stmt.where(OrganizationIndividual.status != "hidden")
    individuals = _rows(await session.execute(require_aliases(stmt)))
    return Ok({"organization_id": str(organization_id), "individuals": individuals, "count": len(individuals)})


async def get_unscraped_pages(
    session: AsyncSession,
    organization_identifier: str | uuid.UUID,
) -> Result[dict]:
    """
    Страницы домена организации с should_scrape=true, у которых ещё нет
    скачанного контента. Результат: {urls, count}.
    """
    organization_id = await _resolve(session, organization_identifier)
    if organization_id is None:
        return _organization_not_found(organization_identifier)

    domain = await _organization_domain(session, organization_id)
    if domain is None:
        return Ok({"organization_id": str(organization_id), "urls": [], "count": 0})

    stmt = require_aliases(
        select(
            WebPage.url.label("page_url"),
            WebPage.normalized_url.label("page_normalized_url"),
        )
        .outerjoin(
            ScrapedContent,
            and_(
                ScrapedContent.normalized_url == WebPage.normalized_url,
                ScrapedContent.scraped_at.is_not(None),
            ),
        )
        .where(
            WebPage.domain == domain,
            WebPage.should_scrape.is_(True),
            ScrapedContent.id.is_(None),
        )
        .order_by(WebPage.normalized_url)
    )
    urls = [row["page_url"] for row in _rows(await session.execute(stmt))]
    return Ok({"organization_id": str(organization_id), "urls": urls, "count": len(urls)})


async def get_scraped_pages(
    session: AsyncSession,
    organization_identifier: str | uuid.UUID,
) -> Result[dict]:
    """Страницы домена организации вместе со скачанным контентом."""
    organization_id = await _resolve(session, organization_identifier)
    if organization_id is None:
        return _organization_not_found(organization_identifier)

    domain = await _organization_domain(session, organization_id)
    if domain is None:
        return Ok({"organization_id": str(organization_id), "pages": [], "count": 0})

    stmt = require_aliases(
        select(
            *labeled("page", WebPage.id, WebPage.url, WebPage.normalized_url, WebPage.page_category),
            *labeled(
                "content",
                ScrapedContent.id,
                ScrapedContent.title,
                ScrapedContent.description,
                ScrapedContent.markdown,
                ScrapedContent.scraped_at,
            ),
        )
        .join(ScrapedContent, ScrapedContent.normalized_url == WebPage.normalized_url)
        .where(
            WebPage.domain == domain,
            ScrapedContent.scraped_at.is_not(None),
        )
        .order_by(WebPage.normalized_url)
    )
    pages = _rows(await session.execute(stmt))
    return Ok({"organization_id": str(organization_id), "pages": pages, "count": len(pages)})


async def get_linkedin_articles(
    session: AsyncSession,
    organization_identifier: str | uuid.UUID,
    individual_id: str | uuid.UUID,
) -> Result[dict]:
    """Статьи человека, только пока существует его членство в организации."""
    echo = {"organization_id": str(organization_identifier), "individual_id": str(individual_id)}
    organization_id = await _resolve(session, organization_identifier)
    if organization_id is None:
        return Err(ErrorKind.ORGANIZATION_NOT_FOUND, "Organization not found", echo)
    try:
        individual_uuid = individual_id if isinstance(individual_id, uuid.UUID) else uuid.UUID(str(individual_id))
    except ValueError:
        return Err(ErrorKind.MEMBERSHIP_NOT_FOUND, "Individual is not linked to organization", echo)

    membership = await session.execute(
        require_aliases(
            select(OrganizationIndividual.status.label("relationship_status")).where(
                OrganizationIndividual.organization_id == organization_id,
                OrganizationIndividual.individual_id == individual_uuid,
            )
        )
    )
    if membership.scalar_one_or_none() is None:
        return Err(ErrorKind.MEMBERSHIP_NOT_FOUND, "Individual is not linked to organization", echo)

    stmt = require_aliases(
        select(
            *labeled(
                "post",
                IndividualLinkedinPost.id,
                IndividualLinkedinPost.linkedin_url,
                IndividualLinkedinPost.posted_at,
            ),
            *labeled(
                "article",
                IndividualLinkedinPost.article_link,
                IndividualLinkedinPost.article_title,
                IndividualLinkedinPost.article_data,
            ),
        )
        .where(
            IndividualLinkedinPost.individual_id == individual_uuid,
            IndividualLinkedinPost.has_article.is_(True),
        )
        .order_by(IndividualLinkedinPost.posted_at.desc())
    )
    articles = _rows(await session.execute(stmt))
    return Ok({**echo, "organization_id": str(organization_id), "articles": articles, "count": len(articles)})


async def list_theses(
    session: AsyncSession,
    organization_identifier: str | uuid.UUID,
    *,
    validated_only: bool = False,
) -> Result[dict]:
    organization_id = await _resolve(session, organization_identifier)
    if organization_id is None:
        return _organization_not_found(organization_identifier)

    stmt = (
        select(
            *labeled(
                "thesis",
                OrganizationThesis.id,
                OrganizationThesis.contrarian_level,
                OrganizationThesis.thesis_html,
                OrganizationThesis.thesis_supporting_evidence_html,
                OrganizationThesis.status,
                OrganizationThesis.status_reason,
                OrganizationThesis.status_changed_by_type,
                OrganizationThesis.status_changed_at,
            )
        )
        .where(OrganizationThesis.organization_id == organization_id)
        .order_by(OrganizationThesis.contrarian_level, OrganizationThesis.id)
    )
    if validated_only:
        stmt = stmt.where(OrganizationThesis.status == "validated")
    theses = _rows(await session.execute(require_aliases(stmt)))
    return Ok({"organization_id": str(organization_id), "theses": theses, "count": len(theses)})

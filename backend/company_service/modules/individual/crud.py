"""CRUD людей, рёбер членства organization_individuals и постов LinkedIn."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from company_service.db.upsert import build_upsert_stmt, dialect_name
from company_service.modules.individual.model import Individual, IndividualLinkedinPost, OrganizationIndividual

INDIVIDUAL_MERGE_FIELDS = ("first_name", "last_name", "personal_website_url")
MEMBERSHIP_MERGE_FIELDS = (
    "organization_role",
    "joined_organization_at",
    "belonging_confidence_level",
    "belonging_confidence_rationale",
)
# Счётчики и признаки поста меняются со временем, коллектор присылает актуальные
POST_OVERWRITE_FIELDS = ("content", "is_repost", "has_article", "likes_count", "comments_count", "shares_count")
POST_MERGE_FIELDS = ("linkedin_url", "author_name", "article_link", "article_title", "article_data", "posted_at")


async def get_individual_id_by_linkedin(session: AsyncSession, linkedin_url: str) -> uuid.UUID | None:
    result = await session.execute(
        select(Individual.id).where(Individual.linkedin_url == linkedin_url)
    )
    return result.scalar_one_or_none()


async def find_member_by_name(
    session: AsyncSession,
    organization_id: uuid.UUID,
    *,
    first_name: str,
    last_name: str | None,
) -> uuid.UUID | None:
    """Человек без LinkedIn: точное совпадение имени среди членов организации."""
    stmt = (
        select(Individual.id)
        .join(OrganizationIndividual, OrganizationIndividual.individual_id == Individual.id)
        .where(
            OrganizationIndividual.organization_id == organization_id,
            Individual.first_name == first_name,
        )
    )
    if last_name is None:
        stmt = stmt.where(Individual.last_name.is_(None))
    else:
        stmt = stmt.where(Individual.last_name == last_name)
    result = await session.execute(stmt.order_by(Individual.created_at).limit(1))
    return result.scalar_one_or_none()


def build_individual_upsert_stmt(values: dict[str, Any], *, dialect: str = "postgresql"):
    """INSERT ... ON CONFLICT (linkedin_url): coalesce имени и сайта."""
    return build_upsert_stmt(
        Individual,
        values,
        index_elements=["linkedin_url"],
        coalesce=INDIVIDUAL_MERGE_FIELDS,
        dialect=dialect,
    ).returning(Individual.id)


async def upsert_individual(session: AsyncSession, values: dict[str, Any]) -> uuid.UUID:
    """
    Upsert по linkedin_url. Без linkedin_url конфликт невозможен (NULL не
    уникален), поэтому такая запись просто вставляется.
    """
    row = {"id": uuid.uuid4(), **values}
    if not row.get("linkedin_url"):
        individual = Individual(**row)
        session.add(individual)
        await session.flush()
        return individual.id
    result = await session.execute(build_individual_upsert_stmt(row, dialect=dialect_name(session)))
    return result.scalar_one()


async def update_individual_fields(
    session: AsyncSession,
    individual_id: uuid.UUID,
    values: dict[str, Any],
) -> None:
    non_null = {k: v for k, v in values.items() if v is not None and k in INDIVIDUAL_MERGE_FIELDS}
    if not non_null:
        return
    await session.execute(
        update(Individual)
        .where(Individual.id == individual_id)
        .values(**non_null, updated_at=datetime.now(timezone.utc))
        .execution_options(synchronize_session=False)
    )


def build_membership_upsert_stmt(values: dict[str, Any], *, dialect: str = "postgresql"):
    """
    INSERT ... ON CONFLICT (organization_id, individual_id).
    status в set_ не входит: повторная загрузка его не перезаписывает.
    joined_organization_at остаётся прежним, если новое значение не передано.
    """
    return build_upsert_stmt(
        OrganizationIndividual,
        values,
        index_elements=["organization_id", "individual_id"],
        coalesce=MEMBERSHIP_MERGE_FIELDS,
        dialect=dialect,
    )


async def upsert_membership(
    session: AsyncSession,
    *,
    organization_id: uuid.UUID,
    individual_id: uuid.UUID,
    values: dict[str, Any],
) -> None:
    row = {"organization_id": organization_id, "individual_id": individual_id, **values}
    await session.execute(build_membership_upsert_stmt(row, dialect=dialect_name(session)))


async def set_membership_status(
    session: AsyncSession,
    *,
    organization_id: uuid.UUID,
    individual_id: uuid.UUID,
    status: str,
) -> datetime | None:
    """Обновить только status и updated_at. None, если ребра нет."""
    now = datetime.now(timezone.utc)
    result = await session.execute(
        update(OrganizationIndividual)
        .where(
            OrganizationIndividual.organization_id == organization_id,
            OrganizationIndividual.individual_id == individual_id,
        )
        .values(status=status, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    if not result.rowcount:
        return None
    return now


def build_linkedin_post_upsert_stmt(values: dict[str, Any], *, dialect: str = "postgresql"):
    """
    INSERT ... ON CONFLICT (linkedin_post_id).
    Переданные счётчики и признаки перезаписываются, остальные поля coalesce.
    individual_id у существующего поста не меняется.
    """
    return build_upsert_stmt(
        IndividualLinkedinPost,
        values,
        index_elements=["linkedin_post_id"],
        coalesce=POST_MERGE_FIELDS,
        overwrite=[name for name in POST_OVERWRITE_FIELDS if name in values],
        dialect=dialect,
    ).returning(IndividualLinkedinPost.id)


async def upsert_linkedin_post(
    session: AsyncSession,
    *,
    individual_id: uuid.UUID,
    values: dict[str, Any],
) -> uuid.UUID:
    """Записать пост человека из LinkedIn, повторная загрузка того же поста обновляет строку."""
    # None не передаётся: JSON-колонка иначе получит 'null' вместо NULL
    known = {k: v for k, v in values.items() if v is not None}
    row = {"id": uuid.uuid4(), **known, "individual_id": individual_id}
    result = await session.execute(build_linkedin_post_upsert_stmt(row, dialect=dialect_name(session)))
    return result.scalar_one()

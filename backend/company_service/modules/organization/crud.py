"""CRUD организаций и crosswalk внешних идентификаторов."""

from __future__ import annotations

import uuid
from typing import Any

import sqlalchemy as sa
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from company_service.db.upsert import dialect_insert, dialect_name
from company_service.modules.organization.model import Organization, OrganizationIdentifier

SCHEME_WORKSPACE = "workspace"
SCHEME_LEGACY_EXTERNAL = "legacy_external"


async def get_organization(session: AsyncSession, organization_id: uuid.UUID) -> Organization | None:
    """Организация по внутреннему id (с перечитыванием из БД)."""
    return await session.get(Organization, organization_id, populate_existing=True)


async def organization_exists(session: AsyncSession, organization_id: uuid.UUID) -> bool:
    result = await session.execute(
        select(Organization.id).where(Organization.id == organization_id)
    )
    return result.scalar_one_or_none() is not None


async def get_organization_by_domain(session: AsyncSession, domain: str) -> Organization | None:
    result = await session.execute(
        select(Organization)
        .where(Organization.domain == domain)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def get_organization_id_by_alias(
    session: AsyncSession,
    scheme: str,
    value: str,
) -> uuid.UUID | None:
    result = await session.execute(
        select(OrganizationIdentifier.organization_id).where(
            OrganizationIdentifier.scheme == scheme,
            OrganizationIdentifier.value == value,
        )
    )
    return result.scalar_one_or_none()


async def list_aliases(session: AsyncSession, organization_id: uuid.UUID) -> list[tuple[str, str]]:
    result = await session.execute(
        select(OrganizationIdentifier.scheme, OrganizationIdentifier.value)
        .where(OrganizationIdentifier.organization_id == organization_id)
        .order_by(OrganizationIdentifier.scheme, OrganizationIdentifier.value)
    )
    return [(row.scheme, row.value) for row in result.all()]


async def ensure_alias(
    session: AsyncSession,
    organization_id: uuid.UUID,
    *,
    scheme: str,
    value: str,
) -> uuid.UUID:
    """
    Привязать (scheme, value) к организации, если привязки ещё нет.
    Возвращает организацию, которой фактически принадлежит алиас
    (при гонке это может быть другая строка).
    """
    stmt = (
        dialect_insert(dialect_name(session), OrganizationIdentifier)
        .values(id=uuid.uuid4(), organization_id=organization_id, scheme=scheme, value=value)
        .on_conflict_do_nothing(index_elements=["scheme", "value"])
    )
    await session.execute(stmt)
    owner = await get_organization_id_by_alias(session, scheme, value)
    return owner if owner is not None else organization_id


async def repoint_aliases(
    session: AsyncSession,
    *,
    from_organization_id: uuid.UUID,
    to_organization_id: uuid.UUID,
) -> int:
    """Перенести все внешние идентификаторы одной организации на другую."""
    result = await session.execute(
        update(OrganizationIdentifier)
        .where(OrganizationIdentifier.organization_id == from_organization_id)
        .values(organization_id=to_organization_id)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount or 0


async def create_organization(session: AsyncSession, values: dict[str, Any]) -> uuid.UUID:
    organization = Organization(id=uuid.uuid4(), **values)
    session.add(organization)
    await session.flush()
    return organization.id


async def apply_merge(
    session: AsyncSession,
    organization_id: uuid.UUID,
    values: dict[str, Any],
) -> None:
    """
    Coalesce-merge: записываются только переданные (непустые) поля,
    остальные колонки не трогаются. updated_at актуализируется всегда.
    """
    await session.execute(
        update(Organization)
        .where(Organization.id == organization_id)
        .values(**values, updated_at=sa.func.now())
        .execution_options(synchronize_session=False)
    )


async def set_domain(
    session: AsyncSession,
    organization_id: uuid.UUID,
    domain: str | None,
) -> None:
    await session.execute(
        update(Organization)
        .where(Organization.id == organization_id)
        .values(domain=domain)
        .execution_options(synchronize_session=False)
    )

"""Чтение и запись флагов генерации (organizations.status и organization_thesis_generations)."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from company_service.db.upsert import build_upsert_stmt, dialect_name
from company_service.modules.generation.model import OrganizationThesisGeneration
from company_service.modules.organization.model import Organization


async def get_organization_generation(
    session: AsyncSession,
    organization_id: uuid.UUID,
) -> tuple[str | None, datetime | None] | None:
    """(status, generating_started_at) организации; None, если организации нет."""
    result = await session.execute(
        select(
            Organization.status.label("organization_status"),
            Organization.generating_started_at.label("organization_started_at"),
        ).where(Organization.id == organization_id)
    )
    row = result.one_or_none()
    if row is None:
        return None
    return row.organization_status, row.organization_started_at


async def set_organization_generation(
    session: AsyncSession,
    organization_id: uuid.UUID,
    *,
    status: str | None,
    started_at: datetime | None,
) -> int:
    result = await session.execute(
        update(Organization)
        .where(Organization.id == organization_id)
        .values(status=status, generating_started_at=started_at)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount or 0


async def list_thesis_generations(
    session: AsyncSession,
    organization_id: uuid.UUID,
) -> list[OrganizationThesisGeneration]:
    result = await session.execute(
        select(OrganizationThesisGeneration)
        .where(OrganizationThesisGeneration.organization_id == organization_id)
        .order_by(OrganizationThesisGeneration.contrarian_level)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def get_thesis_generation_status(
    session: AsyncSession,
    organization_id: uuid.UUID,
    level: int,
) -> str | None:
    result = await session.execute(
        select(OrganizationThesisGeneration.status).where(
            OrganizationThesisGeneration.organization_id == organization_id,
            OrganizationThesisGeneration.contrarian_level == level,
        )
    )
    return result.scalar_one_or_none()


async def mark_thesis_generation(
    session: AsyncSession,
    organization_id: uuid.UUID,
    level: int,
    *,
    status: str,
    started_at: datetime,
) -> None:
    stmt = build_upsert_stmt(
        OrganizationThesisGeneration,
        {
            "organization_id": organization_id,
            "contrarian_level": level,
            "status": status,
            "generating_started_at": started_at,
        },
        index_elements=["organization_id", "contrarian_level"],
        overwrite=("status", "generating_started_at"),
        dialect=dialect_name(session),
    )
    await session.execute(stmt)


async def clear_thesis_generations(
    session: AsyncSession,
    organization_id: uuid.UUID,
) -> int:
    """Все уровни организации в idle. Возвращает число сброшенных уровней."""
    result = await session.execute(
        update(OrganizationThesisGeneration)
        .where(
            OrganizationThesisGeneration.organization_id == organization_id,
            OrganizationThesisGeneration.status.is_not(None),
        )
        .values(status=None, generating_started_at=None)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount or 0

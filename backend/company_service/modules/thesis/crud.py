"""CRUD тезисов организации."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from company_service.db.upsert import build_upsert_stmt, dialect_name
from company_service.modules.thesis.model import OrganizationThesis


def build_thesis_upsert_stmt(values: dict[str, Any], *, dialect: str = "postgresql"):
    """
    INSERT ... ON CONFLICT (organization_id, contrarian_level, thesis_html).
    Новая строка получает статус validated от ai; при конфликте обновляется
    только доказательная база (если передана).
    """
    row = {
        **values,
        "status": "validated",
        "status_changed_by_type": "ai",
        "status_changed_by_user_id": None,
        "status_changed_at": datetime.now(timezone.utc),
    }
    return build_upsert_stmt(
        OrganizationThesis,
        row,
        index_elements=["organization_id", "contrarian_level", "thesis_html"],
        coalesce=("thesis_supporting_evidence_html",),
        dialect=dialect,
    ).returning(OrganizationThesis.id)


async def find_thesis_id(
    session: AsyncSession,
    *,
    organization_id: uuid.UUID,
    contrarian_level: int,
    thesis_html: str,
) -> int | None:
    result = await session.execute(
        select(OrganizationThesis.id).where(
            OrganizationThesis.organization_id == organization_id,
            OrganizationThesis.contrarian_level == contrarian_level,
            OrganizationThesis.thesis_html == thesis_html,
        )
    )
    return result.scalar_one_or_none()


async def upsert_thesis(
    session: AsyncSession,
    *,
    organization_id: uuid.UUID,
    contrarian_level: int,
    thesis_html: str,
    thesis_supporting_evidence_html: str | None,
) -> int:
    stmt = build_thesis_upsert_stmt(
        {
            "organization_id": organization_id,
            "contrarian_level": contrarian_level,
            "thesis_html": thesis_html,
            "thesis_supporting_evidence_html": thesis_supporting_evidence_html,
        },
        dialect=dialect_name(session),
    )
    result = await session.execute(stmt)
    return result.scalar_one()


async def get_thesis(
    session: AsyncSession,
    organization_id: uuid.UUID,
    thesis_id: int,
) -> OrganizationThesis | None:
    """Тезис, только если он принадлежит организации."""
    result = await session.execute(
        select(OrganizationThesis)
        .where(
            OrganizationThesis.id == thesis_id,
            OrganizationThesis.organization_id == organization_id,
        )
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def update_thesis_fields(
    session: AsyncSession,
    thesis_id: int,
    values: dict[str, Any],
) -> None:
    non_null = {k: v for k, v in values.items() if v is not None}
    if not non_null:
        return
    await session.execute(
        update(OrganizationThesis)
        .where(OrganizationThesis.id == thesis_id)
        .values(**non_null, updated_at=datetime.now(timezone.utc))
        .execution_options(synchronize_session=False)
    )


async def set_thesis_status(
    session: AsyncSession,
    *,
    organization_id: uuid.UUID,
    thesis_id: int,
    status: str,
    reason: str | None,
    changed_by_type: str,
    changed_by_user_id: uuid.UUID | None = None,
) -> datetime | None:
    """Обновить статус с отметкой кто/когда. None, если тезиса у организации нет."""
    now = datetime.now(timezone.utc)
    result = await session.execute(
        update(OrganizationThesis)
        .where(
            OrganizationThesis.id == thesis_id,
            OrganizationThesis.organization_id == organization_id,
        )
        .values(
            status=status,
            status_reason=reason,
            status_changed_by_type=changed_by_type,
            status_changed_by_user_id=changed_by_user_id,
            status_changed_at=now,
            updated_at=now,
        )
        .execution_options(synchronize_session=False)
    )
    if not result.rowcount:
        return None
    return now


async def delete_theses(session: AsyncSession, organization_id: uuid.UUID) -> int:
    result = await session.execute(
        delete(OrganizationThesis)
        .where(OrganizationThesis.organization_id == organization_id)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount or 0

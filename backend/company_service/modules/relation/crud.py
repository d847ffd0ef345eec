"""CRUD связей organization_relations."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from company_service.db.upsert import build_upsert_stmt, dialect_name
from company_service.modules.relation.model import OrganizationRelation

RELATION_MERGE_FIELDS = (
    "relation_type",
    "relation_confidence_level",
    "relation_confidence_rationale",
)


def build_relation_upsert_stmt(values: dict[str, Any], *, dialect: str = "postgresql"):
    """
    INSERT ... ON CONFLICT (source, target): coalesce типа и уверенности.
    status перезаписывается только если явно передан; новая связь без
    статуса получает active.
    """
    row = dict(values)
    explicit_status = row.get("status") is not None
    if not explicit_status:
        row["status"] = "active"
    return build_upsert_stmt(
        OrganizationRelation,
        row,
        index_elements=["source_organization_id", "target_organization_id"],
        coalesce=RELATION_MERGE_FIELDS,
        overwrite=("status",) if explicit_status else (),
        dialect=dialect,
    )


async def upsert_relation(
    session: AsyncSession,
    *,
    source_organization_id: uuid.UUID,
    target_organization_id: uuid.UUID,
    values: dict[str, Any],
) -> None:
    row = {
        "source_organization_id": source_organization_id,
        "target_organization_id": target_organization_id,
        **values,
    }
    await session.execute(build_relation_upsert_stmt(row, dialect=dialect_name(session)))


async def set_relation_status(
    session: AsyncSession,
    *,
    source_organization_id: uuid.UUID,
    target_organization_id: uuid.UUID,
    status: str,
) -> datetime | None:
    """Обновить только status и updated_at. None, если связи нет."""
    now = datetime.now(timezone.utc)
    result = await session.execute(
        update(OrganizationRelation)
        .where(
            OrganizationRelation.source_organization_id == source_organization_id,
            OrganizationRelation.target_organization_id == target_organization_id,
        )
        .values(status=status, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    if not result.rowcount:
        return None
    return now

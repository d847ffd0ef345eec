"""Сервис связей между организациями."""

from __future__ import annotations

import logging
import uuid

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from company_service.core.errors import ValidationError
from company_service.core.result import Err, ErrorKind, Ok, Result
from company_service.core.urls import extract_hostname
from company_service.modules.organization.crud import get_organization
from company_service.modules.organization.schemas import OrganizationUpsert
from company_service.modules.organization.service import (
    resolve_organization_id,
    upsert_organization,
)
from company_service.modules.relation import crud
from company_service.modules.relation.schemas import RelationIn, RelationStatusUpdate

logger = logging.getLogger(__name__)


class RelationSkipped(Exception):
    """Элемент пакета связей нельзя применить (причина в сообщении)."""


async def upsert_relation_from_item(
    session: AsyncSession,
    source_organization_id: uuid.UUID,
    item: RelationIn,
) -> uuid.UUID:
    """
    Цель ищется/создаётся по хосту organization_url (coalesce имени и LinkedIn),
    затем upsert ребра source -> target. Возвращает id цели.
    """
    hostname = extract_hostname(item.organization_url)
    if hostname is None:
        raise RelationSkipped(f"url без распознаваемого хоста: {item.organization_url}")
    source = await get_organization(session, source_organization_id)
    if source is not None and source.domain == hostname:
        raise RelationSkipped(f"связь организации с самой собой: {hostname}")

    target_id = await upsert_organization(
        session,
        OrganizationUpsert(
            url=item.organization_url,
            name=item.organization_name,
            linkedin_url=item.organization_linkedin_url,
        ),
    )
    if target_id == source_organization_id:
        raise RelationSkipped(f"связь организации с самой собой: {hostname}")

    await crud.upsert_relation(
        session,
        source_organization_id=source_organization_id,
        target_organization_id=target_id,
        values=item.edge_values(),
    )
    return target_id


async def update_relation_status(
    session: AsyncSession,
    source_identifier: str | uuid.UUID,
    target_identifier: str | uuid.UUID,
    status: str,
) -> Result[dict]:
    """
    Меняет только status связи (включая not_related) и updated_at.
    Нет source, target или самой связи -> Err с соответствующим ErrorKind.
    """
    try:
        status = RelationStatusUpdate(status=status).status
    except PydanticValidationError as e:
        raise ValidationError(f"Недопустимый статус связи: {status!r}") from e

    echo = {
        "source_organization_id": str(source_identifier),
        "target_organization_id": str(target_identifier),
        "relationship_status": status,
    }
    source_id = await resolve_organization_id(session, source_identifier)
    if source_id is None:
        return Err(ErrorKind.ORGANIZATION_NOT_FOUND, "Source organization not found", echo)
    target_id = await resolve_organization_id(session, target_identifier)
    if target_id is None:
        return Err(ErrorKind.TARGET_ORGANIZATION_NOT_FOUND, "Target organization not found", echo)

    updated_at = await crud.set_relation_status(
        session,
        source_organization_id=source_id,
        target_organization_id=target_id,
        status=status,
    )
    if updated_at is None:
        return Err(ErrorKind.RELATION_NOT_FOUND, "Relation not found", echo)

    logger.info(
        "Relation status updated: source_id=%s target_id=%s status=%s",
        source_id,
        target_id,
        status,
    )
    return Ok(
        {
            "source_organization_id": str(source_id),
            "target_organization_id": str(target_id),
            "relationship_status": status,
            "updated_at": updated_at.isoformat(),
        },
        message="Relation status updated",
    )

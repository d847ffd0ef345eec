"""Сервис людей: upsert человека вместе с членством и смена статуса членства."""

from __future__ import annotations

import logging
import uuid

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from company_service.core.errors import NotFoundError, ValidationError
from company_service.core.result import Err, ErrorKind, Ok, Result
from company_service.modules.individual import crud
from company_service.modules.individual.schemas import (
    IndividualIn,
    IndividualMembershipOut,
    MembershipStatusUpdate,
)
from company_service.modules.organization.service import resolve_organization_id

logger = logging.getLogger(__name__)


async def upsert_member(
    session: AsyncSession,
    organization_id: uuid.UUID,
    data: IndividualIn,
) -> IndividualMembershipOut:
    """
    Человек + ребро членства для уже известной организации.
    Ключ человека: linkedin_url; без него ищем точное совпадение имени
    среди членов этой организации, и только потом создаём новую запись.
    """
    was_new = False
    individual_id: uuid.UUID | None = None

    if data.linkedin_url:
        existing = await crud.get_individual_id_by_linkedin(session, data.linkedin_url)
        individual_id = await crud.upsert_individual(session, data.individual_values())
        was_new = existing is None
    else:
        individual_id = await crud.find_member_by_name(
            session,
            organization_id,
            first_name=data.first_name,
            last_name=data.last_name,
        )
        if individual_id is not None:
            await crud.update_individual_fields(session, individual_id, data.individual_values())
        else:
            individual_id = await crud.upsert_individual(session, data.individual_values())
            was_new = True

    await crud.upsert_membership(
        session,
        organization_id=organization_id,
        individual_id=individual_id,
        values=data.membership_values(),
    )
    return IndividualMembershipOut(
        individual_id=str(individual_id),
        organization_id=str(organization_id),
        was_new_individual=was_new,
    )


async def upsert_individual_with_organization(
    session: AsyncSession,
    organization_identifier: str | uuid.UUID,
    data: IndividualIn,
) -> IndividualMembershipOut:
    """
    Организация обязана существовать: неизвестный идентификатор -> NotFoundError
    (человек без организации не создаётся).
    """
    organization_id = await resolve_organization_id(session, organization_identifier)
    if organization_id is None:
        raise NotFoundError("organization", organization_identifier)

    async with session.begin_nested():
        out = await upsert_member(session, organization_id, data)

    logger.info(
        "Individual upserted: organization_id=%s individual_id=%s was_new=%s",
        out.organization_id,
        out.individual_id,
        out.was_new_individual,
    )
    return out


async def update_membership_status(
    session: AsyncSession,
    organization_identifier: str | uuid.UUID,
    individual_id: uuid.UUID | str,
    status: str,
) -> Result[dict]:
    """
    Узкая операция: меняет только status (active | ended | hidden) и updated_at.
    Отсутствие организации или ребра возвращается как Err, не исключение.
    """
    try:
        status = MembershipStatusUpdate(status=status).status
    except PydanticValidationError as e:
        raise ValidationError(f"Недопустимый статус членства: {status!r}") from e

    echo = {
        "organization_id": str(organization_identifier),
        "individual_id": str(individual_id),
        "relationship_status": status,
    }
    organization_id = await resolve_organization_id(session, organization_identifier)
    if organization_id is None:
        return Err(ErrorKind.ORGANIZATION_NOT_FOUND, "Organization not found", echo)

    try:
        individual_uuid = individual_id if isinstance(individual_id, uuid.UUID) else uuid.UUID(str(individual_id))
    except ValueError:
        return Err(ErrorKind.MEMBERSHIP_NOT_FOUND, "Individual is not linked to organization", echo)

    updated_at = await crud.set_membership_status(
        session,
        organization_id=organization_id,
        individual_id=individual_uuid,
        status=status,
    )
    if updated_at is None:
        return Err(ErrorKind.MEMBERSHIP_NOT_FOUND, "Individual is not linked to organization", echo)

    logger.info(
        "Membership status updated: organization_id=%s individual_id=%s status=%s",
        organization_id,
        individual_uuid,
        status,
    )
    return Ok(
        {
            "organization_id": str(organization_id),
            "individual_id": str(individual_uuid),
            "relationship_status": status,
            "updated_at": updated_at.isoformat(),
        },
        message="Membership status updated",
    )

"""Сервис тезисов: оценки агента и ручная смена статуса пользователем."""

from __future__ import annotations

import logging
import uuid

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from company_service.core.errors import ValidationError
from company_service.core.result import Err, ErrorKind, Ok, Result
from company_service.modules.organization.service import resolve_organization_id
from company_service.modules.thesis import crud
from company_service.modules.thesis.schemas import ThesisEvaluationIn, ThesisStatusUpdate
from company_service.modules.user.crud import get_or_create_user

logger = logging.getLogger(__name__)

# Причины, которые ставит ai при deny/undeny без собственного объяснения
_AI_DENY_REASON = "Denied by AI evaluation"
_AI_UNDENY_REASON = "Restored by AI evaluation"


async def apply_thesis_evaluation(
    session: AsyncSession,
    organization_id: uuid.UUID,
    evaluation: ThesisEvaluationIn,
) -> str | None:
    """
    Применить оценку к тезису организации.
    Возвращает выполненное действие или None, если оценка пропущена.
    """
    thesis = await crud.get_thesis(session, organization_id, evaluation.id)
    if thesis is None:
        logger.warning(
            "Thesis evaluation skipped, thesis not found: organization_id=%s thesis_id=%s",
            organization_id,
            evaluation.id,
        )
        return None

    if evaluation.action == "keep":
        return "keep"

    if evaluation.action == "update":
        try:
            async with session.begin_nested():
                await crud.update_thesis_fields(
                    session,
                    thesis.id,
                    {
                        "contrarian_level": evaluation.contrarian_level,
                        "thesis_html": evaluation.thesis_html,
                        "thesis_supporting_evidence_html": evaluation.thesis_supporting_evidence_html,
                    },
                )
        except IntegrityError:
            logger.warning(
                "Thesis evaluation skipped, update duplicates another thesis: organization_id=%s thesis_id=%s",
                organization_id,
                thesis.id,
            )
            return None
        return "update"

    if evaluation.action == "deny":
        status, reason = "denied", evaluation.reason or _AI_DENY_REASON
    else:
        status, reason = "validated", evaluation.reason or _AI_UNDENY_REASON
    await crud.set_thesis_status(
        session,
        organization_id=organization_id,
        thesis_id=thesis.id,
        status=status,
        reason=reason,
        changed_by_type="ai",
    )
    return evaluation.action


async def update_thesis_status(
    session: AsyncSession,
    organization_identifier: str | uuid.UUID,
    thesis_id: int,
    status: str,
    *,
    reason: str | None = None,
    clerk_user_id: str | None = None,
) -> Result[dict]:
    """
    Ручная смена статуса тезиса пользователем (status_changed_by_type=user).
    Чужой или несуществующий тезис -> Err(THESIS_NOT_FOUND).
    """
    try:
        data = ThesisStatusUpdate(status=status, reason=reason)
    except PydanticValidationError as e:
        raise ValidationError(e.errors()[0]["msg"]) from e

    echo = {
        "organization_id": str(organization_identifier),
        "thesis_id": thesis_id,
        "status": data.status,
    }
    organization_id = await resolve_organization_id(session, organization_identifier)
    if organization_id is None:
        return Err(ErrorKind.ORGANIZATION_NOT_FOUND, "Organization not found", echo)

    user_id: uuid.UUID | None = None
    if clerk_user_id:
        user_id = (await get_or_create_user(session, clerk_user_id)).id

    changed_at = await crud.set_thesis_status(
        session,
        organization_id=organization_id,
        thesis_id=thesis_id,
        status=data.status,
        reason=data.reason,
        changed_by_type="user",
        changed_by_user_id=user_id,
    )
    if changed_at is None:
        return Err(ErrorKind.THESIS_NOT_FOUND, "Thesis not found for organization", echo)

    logger.info(
        "Thesis status updated: organization_id=%s thesis_id=%s status=%s user_id=%s",
        organization_id,
        thesis_id,
        data.status,
        user_id,
    )
    return Ok(
        {
            "organization_id": str(organization_id),
            "thesis_id": thesis_id,
            "status": data.status,
            "status_changed_at": changed_at.isoformat(),
        },
        message="Thesis status updated",
    )


async def delete_theses(session: AsyncSession, organization_identifier: str | uuid.UUID) -> Result[dict]:
    organization_id = await resolve_organization_id(session, organization_identifier)
    if organization_id is None:
        return Err(
            ErrorKind.ORGANIZATION_NOT_FOUND,
            "Organization not found",
            {"organization_id": str(organization_identifier)},
        )
    deleted = await crud.delete_theses(session, organization_id)
    logger.info("Theses deleted: organization_id=%s count=%s", organization_id, deleted)
    return Ok({"organization_id": str(organization_id), "deleted": deleted}, message="Theses deleted")

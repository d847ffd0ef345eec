"""
Трекер фоновой генерации: idle (status NULL) <-> in-progress ('generating' + время старта).

Флаг рекомендательный: чтение статуса и запись не защищены блокировкой,
два одновременных start могут оба увидеть idle и оба пройти.
Завершение безусловное и идемпотентное: если ничего не идёт, возвращается
Err(NOTHING_IN_PROGRESS) без изменений в БД.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from company_service.core.config import get_settings
from company_service.core.errors import ValidationError
from company_service.core.result import Err, ErrorKind, Ok, Result
from company_service.modules.generation import crud
from company_service.modules.generation.schemas import (
    GENERATING,
    GenerationStatusOut,
    ScopeStatus,
    ThesisLevelStatus,
)
from company_service.modules.organization.service import resolve_organization_id

logger = logging.getLogger(__name__)


def _not_found(identifier) -> Err:
    return Err(
        ErrorKind.ORGANIZATION_NOT_FOUND,
        "Organization not found",
        {"organization_id": str(identifier)},
    )


async def start_client_info_generation(
    session: AsyncSession,
    organization_identifier: str | uuid.UUID,
) -> Result[dict]:
    organization_id = await resolve_organization_id(session, organization_identifier)
    if organization_id is None:
        return _not_found(organization_identifier)

    current = await crud.get_organization_generation(session, organization_id)
    if current is None:
        return _not_found(organization_identifier)
    status, started_at = current
    if status is not None:
        return Err(
            ErrorKind.ALREADY_IN_PROGRESS,
            "Client info generation already in progress",
            {
                "organization_id": str(organization_id),
                "status": status,
                "started_at": started_at.isoformat() if started_at else None,
            },
        )

    now = datetime.now(timezone.utc)
    await crud.set_organization_generation(session, organization_id, status=GENERATING, started_at=now)
    logger.info("Client info generation started: organization_id=%s", organization_id)
    return Ok(
        {"organization_id": str(organization_id), "status": GENERATING, "started_at": now.isoformat()},
        message="Client info generation started",
    )


async def complete_client_info_generation(
    session: AsyncSession,
    organization_identifier: str | uuid.UUID,
) -> Result[dict]:
    organization_id = await resolve_organization_id(session, organization_identifier)
    if organization_id is None:
        return _not_found(organization_identifier)

    current = await crud.get_organization_generation(session, organization_id)
    if current is None:
        return _not_found(organization_identifier)
    status, _ = current
    if status is None:
        return Err(
            ErrorKind.NOTHING_IN_PROGRESS,
            "No client info generation in progress",
            {"organization_id": str(organization_id)},
        )

    await crud.set_organization_generation(session, organization_id, status=None, started_at=None)
    logger.info("Client info generation completed: organization_id=%s", organization_id)
    return Ok(
        {"organization_id": str(organization_id), "status": None},
        message="Client info generation completed",
    )


async def start_thesis_generation(
    session: AsyncSession,
    organization_identifier: str | uuid.UUID,
    level: int,
) -> Result[dict]:
    settings = get_settings()
    if not settings.THESIS_MIN_LEVEL <= level <= settings.THESIS_MAX_LEVEL:
        raise ValidationError(
            f"contrarian_level вне диапазона {settings.THESIS_MIN_LEVEL}..{settings.THESIS_MAX_LEVEL}: {level}"
        )

    organization_id = await resolve_organization_id(session, organization_identifier)
    if organization_id is None:
        return _not_found(organization_identifier)

    status = await crud.get_thesis_generation_status(session, organization_id, level)
    if status is not None:
        return Err(
            ErrorKind.ALREADY_IN_PROGRESS,
            "Thesis generation already in progress",
            {"organization_id": str(organization_id), "level": level, "status": status},
        )

    now = datetime.now(timezone.utc)
    await crud.mark_thesis_generation(session, organization_id, level, status=GENERATING, started_at=now)
    logger.info("Thesis generation started: organization_id=%s level=%s", organization_id, level)
    return Ok(
        {
            "organization_id": str(organization_id),
            "level": level,
            "status": GENERATING,
            "started_at": now.isoformat(),
        },
        message="Thesis generation started",
    )


async def complete_thesis_generation(
    session: AsyncSession,
    organization_identifier: str | uuid.UUID,
) -> Result[dict]:
    """Сбрасывает в idle сразу все уровни организации."""
    organization_id = await resolve_organization_id(session, organization_identifier)
    if organization_id is None:
        return _not_found(organization_identifier)

    cleared = await crud.clear_thesis_generations(session, organization_id)
    if not cleared:
        return Err(
            ErrorKind.NOTHING_IN_PROGRESS,
            "No thesis generation in progress",
            {"organization_id": str(organization_id)},
        )

    logger.info("Thesis generation completed: organization_id=%s levels=%s", organization_id, cleared)
    return Ok(
        {"organization_id": str(organization_id), "levels_completed": cleared},
        message="Thesis generation completed",
    )


async def get_generation_status(
    session: AsyncSession,
    organization_identifier: str | uuid.UUID,
) -> Result[GenerationStatusOut]:
    organization_id = await resolve_organization_id(session, organization_identifier)
    if organization_id is None:
        return _not_found(organization_identifier)

    current = await crud.get_organization_generation(session, organization_id)
    if current is None:
        return _not_found(organization_identifier)
    status, started_at = current

    theses = [
        ThesisLevelStatus(
            level=row.contrarian_level,
            status=row.status,
            started_at=row.generating_started_at,
        )
        for row in await crud.list_thesis_generations(session, organization_id)
        if row.status is not None
    ]
    out = GenerationStatusOut(
        organization=ScopeStatus(status=status, started_at=started_at),
        theses=theses,
        in_progress=status is not None or bool(theses),
    )
    return Ok(out)

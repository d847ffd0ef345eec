"""
Сервис организаций: разрешение внешних идентификаторов и merge-safe upsert.

Внешние ключи (clerk_org_id рабочего пространства и устаревший внешний id)
хранятся в organization_identifiers; все аксессоры идут через
resolve_organization_id, а не через отдельные пути поиска на каждую схему.
"""

from __future__ import annotations

import logging
import uuid

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from company_service.core.config import get_settings
from company_service.core.urls import extract_hostname
from company_service.modules.organization import crud
from company_service.modules.organization.crud import (
    SCHEME_LEGACY_EXTERNAL,
    SCHEME_WORKSPACE,
)
from company_service.modules.organization.model import Organization
from company_service.modules.organization.schemas import MERGE_FIELDS, OrganizationUpsert

logger = logging.getLogger(__name__)


def classify_identifier(identifier: str) -> tuple[str, str]:
    """
    Определить схему внешнего ключа для upsert.
    org_... -> workspace, всё остальное -> legacy_external.
    """
    value = identifier.strip()
    if value.startswith(get_settings().WORKSPACE_ORG_ID_PREFIX):
        return SCHEME_WORKSPACE, value
    return SCHEME_LEGACY_EXTERNAL, value


def _parse_uuid(value: str) -> uuid.UUID | None:
    try:
        return uuid.UUID(value)
    except ValueError:
        return None


async def resolve_organization_id(
    session: AsyncSession,
    identifier: str | uuid.UUID | None,
) -> uuid.UUID | None:
    """
    Внутренний id организации по любому принятому идентификатору:
    - org_...  -> crosswalk, схема workspace;
    - UUID     -> внутренний id; если такой строки нет, пробуем устаревший внешний id;
    - иное     -> устаревший внешний id.
    Поиск по устаревшему id логируется как deprecated.
    """
    if identifier is None:
        return None
    if isinstance(identifier, uuid.UUID):
        if await crud.organization_exists(session, identifier):
            return identifier
        identifier = str(identifier)

    value = identifier.strip()
    if not value:
        return None

    if value.startswith(get_settings().WORKSPACE_ORG_ID_PREFIX):
        return await crud.get_organization_id_by_alias(session, SCHEME_WORKSPACE, value)

    as_uuid = _parse_uuid(value)
    if as_uuid is not None and await crud.organization_exists(session, as_uuid):
        return as_uuid

    organization_id = await crud.get_organization_id_by_alias(session, SCHEME_LEGACY_EXTERNAL, value)
    if organization_id is not None:
        logger.warning(
            "Deprecated legacy organization identifier used: identifier=%s organization_id=%s",
            value,
            organization_id,
        )
    return organization_id


async def sync_organization_domain(session: AsyncSession, organization_id: uuid.UUID) -> str | None:
    """
    Хук после каждой записи организации: domain = extract_hostname(url).
    Возвращает актуальный domain.
    """
    organization = await crud.get_organization(session, organization_id)
    if organization is None:
        return None
    domain = extract_hostname(organization.url)
    if domain != organization.domain:
        await crud.set_domain(session, organization_id, domain)
        logger.info(
            "Organization domain synced: organization_id=%s domain=%s",
            organization_id,
            domain,
        )
    return domain


async def _absorb_skeleton(
    session: AsyncSession,
    *,
    skeleton: Organization,
    target: Organization,
) -> None:
    """
    Каркасная строка (известна только по внешнему ключу, без domain) сливается
    со строкой, уже владеющей доменом: алиасы переезжают, пустые поля цели
    заполняются из каркаса. Сама строка каркаса не удаляется.
    """
    moved = await crud.repoint_aliases(
        session,
        from_organization_id=skeleton.id,
        to_organization_id=target.id,
    )
    fill = {
        name: getattr(skeleton, name)
        for name in MERGE_FIELDS
        if name != "url" and getattr(target, name) is None and getattr(skeleton, name) is not None
    }
    if fill:
        await crud.apply_merge(session, target.id, fill)
    logger.info(
        "Organization skeleton merged into domain owner: skeleton_id=%s organization_id=%s aliases_moved=%s",
        skeleton.id,
        target.id,
        moved,
    )


async def _upsert_once(session: AsyncSession, data: OrganizationUpsert) -> uuid.UUID:
    values = data.merge_values()
    hostname = extract_hostname(data.url) if data.url else None
    if data.url and hostname is None:
        # url сохраняется как есть, domain после записи станет NULL
        logger.warning("Organization url has no usable hostname: url=%s", data.url)

    key: tuple[str, str] | None = classify_identifier(data.identifier) if data.identifier else None

    key_org: Organization | None = None
    if data.identifier:
        key_org_id = await resolve_organization_id(session, data.identifier)
        if key_org_id is not None:
            key_org = await crud.get_organization(session, key_org_id)
            # Внутренний UUID не является внешним ключом и алиас не создаёт
            if key_org is not None and key_org.id == _parse_uuid(data.identifier.strip()):
                key = None

    domain_org: Organization | None = None
    if hostname:
        domain_org = await crud.get_organization_by_domain(session, hostname)

    if key_org is not None and domain_org is not None and key_org.id != domain_org.id:
        if key_org.domain is None:
            await _absorb_skeleton(session, skeleton=key_org, target=domain_org)
            target_id = domain_org.id
        else:
            logger.warning(
                "Organization domain collision, url not applied: organization_id=%s domain=%s owner_id=%s",
                key_org.id,
                hostname,
                domain_org.id,
            )
            values.pop("url", None)
            target_id = key_org.id
    elif key_org is not None:
        target_id = key_org.id
    elif domain_org is not None:
        target_id = domain_org.id
    else:
        target_id = await crud.create_organization(session, values)
        logger.info(
            "Organization created: organization_id=%s identifier=%s domain=%s",
            target_id,
            data.identifier,
            hostname,
        )

    if key is not None:
        scheme, value = key
        owner_id = await crud.ensure_alias(session, target_id, scheme=scheme, value=value)
        if owner_id != target_id:
            logger.warning(
                "Organization identifier already bound elsewhere: identifier=%s organization_id=%s owner_id=%s",
                value,
                target_id,
                owner_id,
            )
            target_id = owner_id

    if values:
        await crud.apply_merge(session, target_id, values)

    await sync_organization_domain(session, target_id)
    return target_id


async def upsert_organization(session: AsyncSession, data: OrganizationUpsert) -> uuid.UUID:
    """
    Создать или обновить организацию. Никогда не падает на «не найдено»:
    неизвестный ключ создаёт новую строку. Возвращает внутренний id.

    Одновременная вставка той же организации (уникальность domain или алиаса)
    разрешается повтором внутри нового savepoint: второй проход находит
    строку конкурента и мержит в неё.
    """
    try:
        async with session.begin_nested():
            organization_id = await _upsert_once(session, data)
    except IntegrityError:
        logger.info("Organization upsert conflict, retrying: identifier=%s url=%s", data.identifier, data.url)
        async with session.begin_nested():
            organization_id = await _upsert_once(session, data)

    logger.info(
        "Organization upserted: organization_id=%s identifier=%s fields=%s",
        organization_id,
        data.identifier,
        sorted(data.merge_values()),
    )
    return organization_id


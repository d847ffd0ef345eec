"""Пользователи: поиск и ленивое создание по clerk_user_id."""

import uuid

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from company_service.modules.user.model import User


async def get_user_by_clerk_id(session: AsyncSession, clerk_user_id: str) -> User | None:
    result = await session.execute(select(User).where(User.clerk_user_id == clerk_user_id))
    return result.scalar_one_or_none()


async def get_or_create_user(
    session: AsyncSession,
    clerk_user_id: str,
    *,
    email: str | None = None,
) -> User:
    """
    Находит пользователя по clerk_user_id или создаёт новую запись.
    Гонка двух вставок разрешается повторным чтением после IntegrityError.
    """
    user = await get_user_by_clerk_id(session, clerk_user_id)
    if user:
        return user

    user = User(id=uuid.uuid4(), clerk_user_id=clerk_user_id, email=email)
    try:
        async with session.begin_nested():
            session.add(user)
            await session.flush()
    except IntegrityError:
        existing = await get_user_by_clerk_id(session, clerk_user_id)
        if existing:
            return existing
        raise

    return user

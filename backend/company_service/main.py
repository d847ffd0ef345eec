from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncEngine

from company_service.core.logging_config import get_logger, setup_logging
from company_service.db.models import Base
from company_service.db.session import dispose_engine, get_engine

# Настраиваем логирование при импорте сервиса
setup_logging()

logger = get_logger(__name__)


async def init_db(engine: AsyncEngine | None = None) -> None:
    """Создать недостающие таблицы (миграции не ведутся, create_all идемпотентен)."""
    engine = engine or get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database schema ensured: tables=%s", len(Base.metadata.tables))


@asynccontextmanager
async def lifespan() -> AsyncIterator[None]:
    """Инициализация при старте хоста: схема БД; при остановке закрываем пул."""
    await init_db()
    try:
        yield
    finally:
        await dispose_engine()

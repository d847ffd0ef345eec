"""
Общие фикстуры: in-memory SQLite (aiosqlite) вместо PostgreSQL.
Модели и upsert-выражения рассчитаны на оба диалекта.
"""
import pytest
import pytest_asyncio
from sqlalchemy import event
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from company_service.db.models import Base
from company_service.modules.organization.schemas import OrganizationUpsert
from company_service.modules.organization.service import upsert_organization


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        # Транзакциями управляет SQLAlchemy, иначе SAVEPOINT в pysqlite ведёт себя неверно
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session(engine):
    factory = async_sessionmaker(engine, expire_on_commit=False, autoflush=False)
    async with factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def make_org(session):
    """Фабрика организаций: await make_org(identifier=..., url=..., name=...)."""

    async def _make(**fields):
        return await upsert_organization(session, OrganizationUpsert(**fields))

    return _make

"""
INSERT ... ON CONFLICT DO UPDATE для PostgreSQL и SQLite.

Политика обновления по умолчанию: coalesce входящего значения поверх
существующего. Пришедший NULL никогда не затирает уже известное значение.
"""

from __future__ import annotations

from typing import Any, Iterable

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def dialect_name(session: AsyncSession) -> str:
    return session.get_bind().dialect.name


def dialect_insert(dialect: str, model: Any):
    """insert() с поддержкой on_conflict_do_update для нужного диалекта."""
    try:
        return _INSERTS[dialect](model)
    except KeyError:
        raise ValueError(f"Upsert не поддерживается для диалекта {dialect!r}") from None


def prefer_incoming(col: sa.ColumnElement, new_val: sa.ColumnElement) -> sa.ColumnElement:
    """Входящее значение, если оно не NULL, иначе существующее."""
    return sa.func.coalesce(new_val, col)


def build_upsert_stmt(
    model: Any,
    values: dict[str, Any],
    *,
    index_elements: Iterable[str],
    coalesce: Iterable[str] = (),
    overwrite: Iterable[str] = (),
    touch_updated_at: bool = True,
    dialect: str = "postgresql",
):
    """
    Собрать INSERT ... ON CONFLICT (index_elements) DO UPDATE.

    - coalesce: поля, которые обновляются только непустым входящим значением;
    - overwrite: поля, которые всегда берутся из входящей строки;
    - updated_at актуализируется при каждом конфликте (если колонка есть).

    Если обновлять нечего, конфликт превращается в DO UPDATE на ключ самим
    в себя, чтобы RETURNING всегда отдавал строку.
    """
    index_elements = list(index_elements)
    stmt = dialect_insert(dialect, model).values(**values)
    excluded = stmt.excluded

    set_: dict[str, Any] = {}
    for name in coalesce:
        set_[name] = prefer_incoming(getattr(model, name), excluded[name])
    for name in overwrite:
        set_[name] = excluded[name]
    if touch_updated_at and "updated_at" in model.__table__.c:
        set_["updated_at"] = sa.func.now()
    if not set_:
        first = index_elements[0]
        set_[first] = getattr(model, first)

    return stmt.on_conflict_do_update(index_elements=index_elements, set_=set_)

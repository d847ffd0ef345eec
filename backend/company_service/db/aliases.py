"""
Проверка явных алиасов в составных SELECT.

Каждая выходная колонка запроса-аксессора должна быть Label с уникальным
именем, иначе одноимённые колонки разных таблиц неотличимы в результате.
"""

from typing import Any, TypeVar

from sqlalchemy.sql import Select
from sqlalchemy.sql.elements import Label

from company_service.core.errors import CompanyServiceError

S = TypeVar("S", bound=Select)


class UnaliasedColumnError(CompanyServiceError):
    """В SELECT есть колонка без явного уникального алиаса."""


def labeled(prefix: str, *columns: Any) -> list[Label]:
    """Колонки с алиасами вида <prefix>_<имя колонки> (префикс не удваивается)."""
    labels = []
    for col in columns:
        name = col.key if col.key.startswith(f"{prefix}_") else f"{prefix}_{col.key}"
        labels.append(col.label(name))
    return labels


def require_aliases(stmt: S) -> S:
    """Возвращает stmt без изменений или бросает UnaliasedColumnError."""
    seen: set[str] = set()
    for col in stmt.selected_columns:
        if not isinstance(col, Label):
            raise UnaliasedColumnError(f"Колонка без алиаса в SELECT: {col}")
        if col.name in seen:
            raise UnaliasedColumnError(f"Повторяющийся алиас в SELECT: {col.name}")
        seen.add(col.name)
    return stmt

"""
Результат операций с «мягким» not-found: Ok[T] | Err.

Статус-апдейты и завершение генерации не бросают исключений, когда цели нет:
они возвращают Err с ErrorKind, а транспортный слой превращает это в
{success, message, ...} через to_payload().
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar, Union

from pydantic import BaseModel

T = TypeVar("T")


class ErrorKind(str, enum.Enum):
    ORGANIZATION_NOT_FOUND = "organization_not_found"
    TARGET_ORGANIZATION_NOT_FOUND = "target_organization_not_found"
    MEMBERSHIP_NOT_FOUND = "membership_not_found"
    RELATION_NOT_FOUND = "relation_not_found"
    THESIS_NOT_FOUND = "thesis_not_found"
    NOTHING_IN_PROGRESS = "nothing_in_progress"
    ALREADY_IN_PROGRESS = "already_in_progress"


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T
    message: str = "OK"

    @property
    def success(self) -> bool:
        return True

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"success": True, "message": self.message}
        if isinstance(self.value, BaseModel):
            payload.update(self.value.model_dump(mode="json"))
        elif isinstance(self.value, dict):
            payload.update(self.value)
        elif self.value is not None:
            payload["data"] = self.value
        return payload


@dataclass(frozen=True)
class Err:
    kind: ErrorKind
    message: str
    # Эхо входных идентификаторов, чтобы вызывающий мог сопоставить ответ
    echo: dict[str, Any] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return False

    def to_payload(self) -> dict[str, Any]:
        return {"success": False, "message": self.message, "error": self.kind.value, **self.echo}


Result = Union[Ok[T], Err]

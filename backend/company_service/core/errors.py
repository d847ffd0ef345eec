"""Исключения сервиса: ошибки валидации входных данных и жёсткий not-found."""

from typing import Any


class CompanyServiceError(Exception):
    """Базовая ошибка сервиса."""


class ValidationError(CompanyServiceError, ValueError):
    """Входные данные не разбираются или имеют неожиданную форму."""


class MalformedPayloadError(ValidationError):
    """
    Пакет для массовой загрузки не соответствует ни одной известной форме.
    В сообщении всегда указывается наблюдаемая структура верхнего уровня.
    """

    def __init__(self, reason: str, payload: Any = None) -> None:
        self.reason = reason
        self.observed_type = type(payload).__name__
        self.observed_keys: list[str] = (
            sorted(str(k) for k in payload.keys()) if isinstance(payload, dict) else []
        )
        shape = self.observed_type
        if isinstance(payload, dict):
            shape = f"object with keys {self.observed_keys}"
        super().__init__(f"{reason}. Got: {shape}")


class NotFoundError(CompanyServiceError, LookupError):
    """Обязательная родительская сущность не найдена."""

    def __init__(self, entity: str, identifier: Any) -> None:
        self.entity = entity
        self.identifier = identifier
        super().__init__(f"{entity} not found: {identifier}")

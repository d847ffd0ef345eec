"""
Распознавание формы пакета от коллекторов (shape-sniffing).

Принимаемые формы, в порядке проверки:
1. массив записей;
2. объект с именованным полем-обёрткой (pages / theses / urls_to_scrape / ...);
3. объект с полем db_ready_output (выход workflow-движка);
4. сырой ответ модели: candidates[0].content.parts[0].text, где text сам
   содержит сериализованный массив (второй проход разбора).
Если ни одна форма не подошла или итог не массив -> MalformedPayloadError.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from company_service.core.errors import MalformedPayloadError, ValidationError

logger = logging.getLogger(__name__)

WORKFLOW_ENVELOPE_KEY = "db_ready_output"
DETAIL_TRUNCATE = 200

PAGES_KEYS: tuple[str, ...] = ("pages",)
THESES_KEYS: tuple[str, ...] = ("theses", "new_theses")
SCRAPE_URLS_KEYS: tuple[str, ...] = ("urls_to_scrape", "urls")
INDIVIDUALS_KEYS: tuple[str, ...] = ("individuals", "people")
RELATIONS_KEYS: tuple[str, ...] = ("relations", "organizations")


def strip_code_fences(raw_text: str) -> str:
    """Убрать возможную обёртку в ```json ... ```."""
    raw_text = raw_text.strip()
    if raw_text.startswith("```"):
        lines = raw_text.split("\n")
        raw_text = "\n".join(
            line for line in lines if line.strip() and not line.strip().startswith("```")
        )
    return raw_text


def parse_json_text(raw: str | bytes) -> Any:
    """Разобрать JSON-текст; ошибка разбора -> ValidationError с началом текста."""
    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ValidationError(f"Пакет не в UTF-8: {e!s}") from e
    text = strip_code_fences(raw)
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        snippet = text[:DETAIL_TRUNCATE] + ("..." if len(text) > DETAIL_TRUNCATE else "")
        raise ValidationError(f"Пакет не является валидным JSON. {e!s}. Начало: {snippet!r}") from e


def _model_envelope_text(payload: dict[str, Any]) -> str | None:
    """Текст из candidates[0].content.parts[0].text или None, если формы нет."""
    candidates = payload.get("candidates")
    if not isinstance(candidates, list) or not candidates:
        return None
    first = candidates[0]
    if not isinstance(first, dict):
        return None
    content = first.get("content")
    if not isinstance(content, dict):
        return None
    parts = content.get("parts")
    if not isinstance(parts, list) or not parts or not isinstance(parts[0], dict):
        return None
    text = parts[0].get("text")
    return text if isinstance(text, str) else None


def unwrap_envelopes(payload: Any) -> Any:
    """
    Снять только транспортные обёртки (JSON-текст, db_ready_output, ответ модели)
    и вернуть то, что внутри: массив или объект с несколькими полями.
    """
    if isinstance(payload, (str, bytes)):
        payload = parse_json_text(payload)
    if not isinstance(payload, dict):
        return payload
    if WORKFLOW_ENVELOPE_KEY in payload:
        return unwrap_envelopes(payload[WORKFLOW_ENVELOPE_KEY])
    text = _model_envelope_text(payload)
    if text is not None:
        inner = parse_json_text(text)
        if isinstance(inner, dict) and _model_envelope_text(inner) is not None:
            raise MalformedPayloadError("Вложенный ответ модели внутри ответа модели", inner)
        return unwrap_envelopes(inner)
    return payload


def extract_records(
    payload: Any,
    wrapper_keys: tuple[str, ...] = (),
    *,
    allow_model_envelope: bool = True,
) -> list[Any]:
    """
    Вернуть массив записей из пакета любой принятой формы.

    wrapper_keys: именованные поля-обёртки в порядке приоритета; после них
    всегда проверяется db_ready_output. Значение обёртки может само быть
    JSON-строкой или вложенной обёрткой.
    """
    if isinstance(payload, (str, bytes)):
        payload = parse_json_text(payload)

    if isinstance(payload, list):
        return payload

    if not isinstance(payload, dict):
        raise MalformedPayloadError("Ожидался массив или объект", payload)

    for key in (*wrapper_keys, WORKFLOW_ENVELOPE_KEY):
        if key not in payload:
            continue
        value = payload[key]
        if isinstance(value, (str, bytes)):
            value = parse_json_text(value)
        if isinstance(value, list):
            return value
        if isinstance(value, dict):
            # Вложенная обёртка: {"db_ready_output": {"pages": [...]}}
            return extract_records(value, wrapper_keys, allow_model_envelope=False)
        raise MalformedPayloadError(
            f"Поле {key!r} должно содержать массив, получено {type(value).__name__}",
            payload,
        )

    if allow_model_envelope:
        text = _model_envelope_text(payload)
        if text is not None:
            inner = parse_json_text(text)
            logger.debug("Payload unwrapped from model response envelope: type=%s", type(inner).__name__)
            return extract_records(inner, wrapper_keys, allow_model_envelope=False)

    expected = ", ".join((*wrapper_keys, WORKFLOW_ENVELOPE_KEY, "candidates[0].content.parts[0].text"))
    raise MalformedPayloadError(f"Не найден массив записей (ожидались поля: {expected})", payload)

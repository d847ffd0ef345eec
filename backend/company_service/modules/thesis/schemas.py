"""Pydantic-схемы тезисов и проверка статусов."""

from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from company_service.core.config import get_settings

THESIS_STATUSES: tuple[str, ...] = ("validated", "denied")
# Снятые с использования значения: на что заменены
DEPRECATED_THESIS_STATUSES: dict[str, str] = {
    "pending": "validated",
    "generating": "organization_thesis_generations.status",
}


def validate_thesis_status(value: Any) -> str:
    """Статус тезиса: validated | denied. Устаревшие значения отклоняются с подсказкой."""
    if not isinstance(value, str):
        raise ValueError("status тезиса должен быть строкой")
    v = value.strip().lower()
    if v in DEPRECATED_THESIS_STATUSES:
        raise ValueError(
            f"Статус {v!r} устарел, используйте {DEPRECATED_THESIS_STATUSES[v]!r}"
        )
    if v not in THESIS_STATUSES:
        raise ValueError(f"Недопустимый статус тезиса: {v!r}")
    return v


def _check_level(v: int) -> int:
    settings = get_settings()
    if not settings.THESIS_MIN_LEVEL <= v <= settings.THESIS_MAX_LEVEL:
        raise ValueError(
            f"contrarian_level вне диапазона {settings.THESIS_MIN_LEVEL}..{settings.THESIS_MAX_LEVEL}: {v}"
        )
    return v


class NewThesisIn(BaseModel):
    """Новый тезис от агента. Статус от вызывающего не принимается."""

    model_config = ConfigDict(extra="ignore")

    contrarian_level: int = Field(..., validation_alias=AliasChoices("contrarian_level", "level"))
    thesis_html: str = Field(..., min_length=1, validation_alias=AliasChoices("thesis_html", "thesis"))
    thesis_supporting_evidence_html: Optional[str] = Field(
        None,
        validation_alias=AliasChoices(
            "thesis_supporting_evidence_html",
            "supporting_evidence_html",
            "evidence",
        ),
    )

    @field_validator("thesis_html", "thesis_supporting_evidence_html", mode="before")
    @classmethod
    def strip_strings(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v

    @field_validator("contrarian_level")
    @classmethod
    def level_in_range(cls, v: int) -> int:
        return _check_level(v)


class ThesisEvaluationIn(BaseModel):
    """Оценка существующего тезиса агентом. Без action оценка считается keep."""

    model_config = ConfigDict(extra="ignore")

    id: int
    action: Literal["keep", "update", "deny", "undeny"] = "keep"
    contrarian_level: Optional[int] = Field(
        None,
        validation_alias=AliasChoices("new_contrarian_level", "contrarian_level", "level"),
    )
    thesis_html: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("updated_thesis_html", "thesis_html", "thesis"),
    )
    thesis_supporting_evidence_html: Optional[str] = Field(
        None,
        validation_alias=AliasChoices(
            "updated_supporting_evidence_html",
            "thesis_supporting_evidence_html",
            "supporting_evidence_html",
            "evidence",
        ),
    )
    # deny присылает denial_reason, undeny присылает undeny_reason
    reason: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("denial_reason", "undeny_reason", "reason", "status_reason"),
    )

    @field_validator("action", mode="before")
    @classmethod
    def lower_action(cls, v: Any) -> Any:
        if v is None:
            return "keep"
        return v.strip().lower() if isinstance(v, str) else v

    @field_validator("thesis_html", "thesis_supporting_evidence_html", "reason", mode="before")
    @classmethod
    def strip_strings(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v

    @field_validator("contrarian_level")
    @classmethod
    def level_in_range(cls, v: Optional[int]) -> Optional[int]:
        return _check_level(v) if v is not None else v


class ThesisStatusUpdate(BaseModel):
    status: str
    reason: Optional[str] = None

    @field_validator("status", mode="before")
    @classmethod
    def check_status(cls, v: Any) -> str:
        return validate_thesis_status(v)


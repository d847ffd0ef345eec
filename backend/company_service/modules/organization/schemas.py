"""Pydantic-схемы организаций."""

from __future__ import annotations

from datetime import date
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# Поля, участвующие в coalesce-merge при upsert (пришедший NULL не затирает известное)
MERGE_FIELDS: tuple[str, ...] = (
    "name",
    "url",
    "linkedin_url",
    "location",
    "bio",
    "elevator_pitch",
    "mission",
    "story",
    "offerings",
    "problem_solution",
    "goals",
    "categories",
    "founded_date",
    "contact_name",
    "contact_email",
    "contact_phone",
    "social_media",
)


class OrganizationUpsert(BaseModel):
    """Создание/обновление организации по внешнему ключу и/или url."""

    model_config = ConfigDict(extra="ignore")

    identifier: Optional[str] = Field(
        None,
        description="Ключ конфликта: clerk_org_id (org_...) или устаревший внешний id",
    )
    name: Optional[str] = None
    url: Optional[str] = None
    linkedin_url: Optional[str] = None

    location: Optional[str] = None
    bio: Optional[str] = None
    elevator_pitch: Optional[str] = None
    mission: Optional[str] = None
    story: Optional[str] = None
    offerings: Optional[str] = None
    problem_solution: Optional[str] = None
    goals: Optional[str] = None
    categories: Optional[str] = None
    founded_date: Optional[date] = None
    contact_name: Optional[str] = None
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None
    social_media: Optional[dict[str, Any]] = None

    @field_validator("*", mode="before")
    @classmethod
    def blank_to_none(cls, v: Any) -> Any:
        # Пустая строка от коллектора означает «неизвестно», а не «стереть»
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v

    @model_validator(mode="after")
    def require_key(self) -> "OrganizationUpsert":
        if not self.identifier and not self.url:
            raise ValueError("Нужен identifier или url организации")
        return self

    def merge_values(self) -> dict[str, Any]:
        """Только непустые поля профиля."""
        return {
            name: value
            for name in MERGE_FIELDS
            if (value := getattr(self, name)) is not None
        }


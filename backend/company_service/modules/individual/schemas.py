"""Pydantic-схемы людей и их членства в организациях."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

MembershipStatus = Literal["active", "ended", "hidden"]
ConfidenceLevel = Literal["found_online", "guessed", "user_inputed"]


class IndividualIn(BaseModel):
    """Один человек из пакета коллектора (или одиночный вызов)."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    first_name: str = Field(..., min_length=1, description="Имя (обязательно)")
    last_name: Optional[str] = Field(None, description="Фамилия, может быть неизвестна")
    linkedin_url: Optional[str] = Field(None, description="Естественный ключ слияния")
    personal_website_url: Optional[str] = None

    organization_role: Optional[str] = Field(None, description="Роль в организации")
    joined_organization_at: Optional[datetime] = Field(
        None,
        description="Если не передано, существующее значение не меняется",
    )
    belonging_confidence_level: Optional[ConfidenceLevel] = None
    belonging_confidence_rationale: Optional[str] = None

    @field_validator(
        "first_name",
        "last_name",
        "linkedin_url",
        "personal_website_url",
        "organization_role",
        "belonging_confidence_level",
        "belonging_confidence_rationale",
        mode="before",
    )
    @classmethod
    def strip_strings(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v

    @field_validator("linkedin_url")
    @classmethod
    def normalize_linkedin(cls, v: Optional[str]) -> Optional[str]:
        # Ключ слияния сравнивается без завершающего слеша
        if v is None:
            return v
        return v.rstrip("/") or None

    @field_validator("joined_organization_at", mode="before")
    @classmethod
    def blank_datetime(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    def individual_values(self) -> dict[str, Any]:
        return {
            "first_name": self.first_name,
            "last_name": self.last_name,
            "linkedin_url": self.linkedin_url,
            "personal_website_url": self.personal_website_url,
        }

    def membership_values(self) -> dict[str, Any]:
        return {
            "organization_role": self.organization_role,
            "joined_organization_at": self.joined_organization_at,
            "belonging_confidence_level": self.belonging_confidence_level,
            "belonging_confidence_rationale": self.belonging_confidence_rationale,
        }


class IndividualMembershipOut(BaseModel):
    individual_id: str
    organization_id: str
    was_new_individual: bool = False


class MembershipStatusUpdate(BaseModel):
    status: MembershipStatus

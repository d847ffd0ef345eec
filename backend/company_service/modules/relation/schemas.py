"""Pydantic-схемы связей между организациями."""

from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

RelationType = Literal[
    "subsidiary",
    "holding",
    "product",
    "main_company",
    "client",
    "supplier",
    "shareholder",
    "other",
]
RelationStatus = Literal["active", "ended", "hidden", "not_related"]
ConfidenceLevel = Literal["found_online", "guessed", "user_inputed"]


class RelationIn(BaseModel):
    """Элемент пакета связей: цель задаётся url организации."""

    model_config = ConfigDict(extra="ignore")

    organization_url: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("organization_url", "url", "target_url"),
    )
    organization_name: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("organization_name", "name"),
    )
    organization_linkedin_url: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("organization_linkedin_url", "linkedin_url"),
    )
    relation_type: Optional[RelationType] = None
    relation_confidence_level: Optional[ConfidenceLevel] = None
    relation_confidence_rationale: Optional[str] = None
    status: Optional[RelationStatus] = Field(
        None,
        description="Если не передано: active для новой связи, прежний статус для существующей",
    )

    @field_validator("*", mode="before")
    @classmethod
    def blank_to_none(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v

    def edge_values(self) -> dict[str, Any]:
        return {
            "relation_type": self.relation_type,
            "relation_confidence_level": self.relation_confidence_level,
            "relation_confidence_rationale": self.relation_confidence_rationale,
            "status": self.status,
        }


class RelationStatusUpdate(BaseModel):
    status: RelationStatus

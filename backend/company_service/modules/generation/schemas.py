"""Схемы статуса фоновой генерации."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

GENERATING = "generating"


class ScopeStatus(BaseModel):
    status: Optional[str] = Field(None, description="NULL = idle, 'generating' = в работе")
    started_at: Optional[datetime] = None


class ThesisLevelStatus(ScopeStatus):
    level: int


class GenerationStatusOut(BaseModel):
    organization: ScopeStatus
    theses: list[ThesisLevelStatus] = Field(default_factory=list)
    in_progress: bool = False

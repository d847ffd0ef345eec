"""Схемы отчётов массовой загрузки."""

from typing import Any, Optional

from pydantic import BaseModel, Field

from company_service.modules.individual.schemas import IndividualMembershipOut
from company_service.modules.web_page.schemas import ScrapeUrlQueued, WebPageIngested


class SkippedElement(BaseModel):
    """Элемент пакета, пропущенный без прерывания всей загрузки."""

    index: int
    reason: str
    url: Optional[str] = None


class WebPagesIngestResult(BaseModel):
    rows: list[WebPageIngested] = Field(default_factory=list)
    skipped: list[SkippedElement] = Field(default_factory=list)
    deselected_count: int = 0

    @property
    def inserted_count(self) -> int:
        return sum(1 for r in self.rows if r.was_newly_inserted)


class ScrapeQueueResult(BaseModel):
    rows: list[ScrapeUrlQueued] = Field(default_factory=list)
    skipped: list[SkippedElement] = Field(default_factory=list)


class ThesisRow(BaseModel):
    id: int
    contrarian_level: int
    was_new: bool


class ThesesIngestResult(BaseModel):
    organization_id: str
    rows: list[ThesisRow] = Field(default_factory=list)
    evaluations: dict[str, int] = Field(default_factory=dict, description="Число применённых оценок по action")
    skipped: list[SkippedElement] = Field(default_factory=list)

    @property
    def inserted_count(self) -> int:
        return sum(1 for r in self.rows if r.was_new)

    @property
    def updated_count(self) -> int:
        return sum(1 for r in self.rows if not r.was_new)


class IndividualsIngestResult(BaseModel):
    organization_id: str
    rows: list[IndividualMembershipOut] = Field(default_factory=list)
    skipped: list[SkippedElement] = Field(default_factory=list)


class RelationRow(BaseModel):
    target_organization_id: str
    organization_url: str
    relation_type: Optional[str] = None
    status: Optional[str] = None


class RelationsIngestResult(BaseModel):
    source_organization_id: str
    rows: list[RelationRow] = Field(default_factory=list)
    skipped: list[SkippedElement] = Field(default_factory=list)


def element_url(item: Any) -> Optional[str]:
    """url элемента для отчёта о пропуске (если есть)."""
    if isinstance(item, str):
        return item
    if isinstance(item, dict):
        for key in ("url", "organization_url"):
            value = item.get(key)
            if isinstance(value, str):
                return value
    return None

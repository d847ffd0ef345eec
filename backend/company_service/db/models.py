"""Импорт всех моделей, чтобы Base.metadata знала все таблицы (create_all, FK на users)."""

from company_service.db.base import Base
from company_service.modules.generation.model import OrganizationThesisGeneration
from company_service.modules.individual.model import (
    Individual,
    IndividualLinkedinPost,
    OrganizationIndividual,
)
from company_service.modules.organization.model import Organization, OrganizationIdentifier
from company_service.modules.relation.model import OrganizationRelation
from company_service.modules.thesis.model import OrganizationThesis
from company_service.modules.user.model import User
from company_service.modules.web_page.model import ScrapedContent, WebPage

__all__ = [
    "Base",
    "Individual",
    "IndividualLinkedinPost",
    "Organization",
    "OrganizationIdentifier",
    "OrganizationIndividual",
    "OrganizationRelation",
    "OrganizationThesis",
    "OrganizationThesisGeneration",
    "ScrapedContent",
    "User",
    "WebPage",
]

from company_service.modules.graph.service import (
    get_linkedin_articles,
    get_organization_with_relations,
    get_relation,
    get_scraped_pages,
    get_unscraped_pages,
    list_organization_individuals,
    list_theses,
)

__all__ = [
    "get_linkedin_articles",
    "get_organization_with_relations",
    "get_relation",
    "get_scraped_pages",
    "get_unscraped_pages",
    "list_organization_individuals",
    "list_theses",
]

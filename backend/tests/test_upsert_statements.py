import uuid

import pytest
from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite

from company_service.db.aliases import UnaliasedColumnError, labeled, require_aliases
from company_service.modules.individual.crud import build_membership_upsert_stmt
from company_service.modules.organization.model import Organization
from company_service.modules.relation.crud import build_relation_upsert_stmt
from company_service.modules.thesis.crud import build_thesis_upsert_stmt
from company_service.modules.thesis.model import OrganizationThesis
from company_service.modules.web_page.crud import build_web_page_upsert_stmt
from company_service.modules.web_page.model import ScrapedContent, WebPage


def _sql(stmt, dialect=None) -> str:
    return str(stmt.compile(dialect=dialect or postgresql.dialect()))


def _set_clause(sql: str) -> str:
    return sql.split("DO UPDATE SET", 1)[1]


def test_web_page_upsert_conflicts_on_normalized_url_only() -> None:
    stmt = build_web_page_upsert_stmt(
        url="https://Example.com/about/",
        normalized_url="https://example.com/about",
        page_category="team",
        should_scrape=None,
    )
    sql = _sql(stmt)
    assert "ON CONFLICT (normalized_url) DO UPDATE" in sql
    set_clause = _set_clause(sql)
    assert "page_category = excluded.page_category" in set_clause
    # should_scrape не передан: при конфликте не трогается
    assert "should_scrape" not in set_clause


def test_web_page_upsert_without_category_keeps_existing() -> None:
    stmt = build_web_page_upsert_stmt(
        url="https://example.com/about",
        normalized_url="https://example.com/about",
        page_category=None,
        should_scrape=None,
    )
    params = stmt.compile(dialect=postgresql.dialect()).params
    assert params["page_category"] == "other"
    assert params["should_scrape"] is True
    assert "page_category" not in _set_clause(_sql(stmt))


def test_web_page_upsert_compiles_for_sqlite() -> None:
    stmt = build_web_page_upsert_stmt(
        url="https://example.com/a",
        normalized_url="https://example.com/a",
        page_category="legal",
        should_scrape=False,
        dialect="sqlite",
    )
    sql = _sql(stmt, sqlite.dialect())
    assert "ON CONFLICT (normalized_url) DO UPDATE" in sql
    assert "RETURNING" in sql


def test_membership_upsert_never_touches_status() -> None:
    stmt = build_membership_upsert_stmt(
        {
            "organization_id": uuid.uuid4(),
            "individual_id": uuid.uuid4(),
            "organization_role": "CTO",
            "joined_organization_at": None,
            "belonging_confidence_level": "found_online",
            "belonging_confidence_rationale": None,
        }
    )
    sql = _sql(stmt)
    assert "ON CONFLICT (organization_id, individual_id) DO UPDATE" in sql
    set_clause = _set_clause(sql)
    assert "status" not in set_clause
    assert "coalesce(excluded.joined_organization_at, organization_individuals.joined_organization_at)" in set_clause


def test_relation_upsert_status_only_when_explicit() -> None:
    base = {
        "source_organization_id": uuid.uuid4(),
        "target_organization_id": uuid.uuid4(),
        "relation_type": "client",
        "relation_confidence_level": None,
        "relation_confidence_rationale": None,
    }
    implicit = _sql(build_relation_upsert_stmt({**base, "status": None}))
    assert "status" not in _set_clause(implicit)

    explicit = _sql(build_relation_upsert_stmt({**base, "status": "not_related"}))
    assert "status = excluded.status" in _set_clause(explicit)


def test_thesis_upsert_updates_only_evidence() -> None:
    stmt = build_thesis_upsert_stmt(
        {
            "organization_id": uuid.uuid4(),
            "contrarian_level": 3,
            "thesis_html": "<p>x</p>",
            "thesis_supporting_evidence_html": "<p>e</p>",
            # Статус от вызывающего игнорируется
            "status": "denied",
        }
    )
    sql = _sql(stmt)
    assert "ON CONFLICT (organization_id, contrarian_level, thesis_html) DO UPDATE" in sql
    set_clause = _set_clause(sql)
    assert "thesis_supporting_evidence_html" in set_clause
    assert "status" not in set_clause.split("RETURNING")[0]
    assert stmt.compile(dialect=postgresql.dialect()).params["status"] == "validated"


def test_require_aliases_accepts_labeled_select() -> None:
    stmt = select(
        *labeled("page", WebPage.id, WebPage.url),
        *labeled("content", ScrapedContent.id, ScrapedContent.url),
    )
    assert require_aliases(stmt) is stmt
    assert [c.name for c in stmt.selected_columns] == ["page_id", "page_url", "content_id", "content_url"]


def test_require_aliases_rejects_unlabeled_column() -> None:
    stmt = select(WebPage.normalized_url, ScrapedContent.normalized_url.label("content_normalized_url"))
    with pytest.raises(UnaliasedColumnError):
        require_aliases(stmt)


def test_require_aliases_rejects_duplicate_labels() -> None:
    stmt = select(Organization.id.label("id"), WebPage.id.label("id"))
    with pytest.raises(UnaliasedColumnError):
        require_aliases(stmt)


def test_labeled_does_not_double_prefix() -> None:
    labels = labeled("thesis", OrganizationThesis.id, OrganizationThesis.thesis_html)
    assert [label.name for label in labels] == ["thesis_id", "thesis_html"]

import json

import pytest
from sqlalchemy import func, select

from company_service.core.config import get_settings
from company_service.core.errors import MalformedPayloadError, ValidationError
from company_service.ingestion.service import ingest_scrape_urls, ingest_web_pages
from company_service.modules.graph.service import get_scraped_pages, get_unscraped_pages
from company_service.modules.web_page import crud
from company_service.modules.web_page.model import ScrapedContent, WebPage
from company_service.modules.web_page.service import record_scraped_content


async def _page_rows(session) -> list[tuple]:
    result = await session.execute(
        select(WebPage.normalized_url, WebPage.domain, WebPage.page_category, WebPage.should_scrape)
        .order_by(WebPage.normalized_url)
        .execution_options(populate_existing=True)
    )
    return [tuple(row) for row in result.all()]


@pytest.mark.asyncio
async def test_end_to_end_ingest_and_coalesce(session) -> None:
    first = await ingest_web_pages(
        session,
        {"pages": [{"url": "https://Example.com/about/", "page_category": "team"}]},
    )
    assert len(first.rows) == 1
    row = first.rows[0]
    assert row.normalized_url == "https://example.com/about"
    assert row.was_newly_inserted is True

    page = await crud.get_web_page(session, "https://example.com/about")
    assert page.page_category == "team"
    assert page.should_scrape is True
    assert page.domain == "example.com"

    second = await ingest_web_pages(session, {"pages": [{"url": "https://Example.com/about/"}]})
    assert second.rows[0].was_newly_inserted is False
    assert second.rows[0].web_page_id == row.web_page_id

    page = await crud.get_web_page(session, "https://example.com/about")
    assert page.page_category == "team"


@pytest.mark.asyncio
async def test_distinct_raw_urls_dedup_to_one_row(session) -> None:
    result = await ingest_web_pages(
        session,
        [
            {"url": "http://www.example.com/pricing/"},
            {"url": "https://example.com/pricing?utm_source=newsletter"},
        ],
    )
    assert [r.was_newly_inserted for r in result.rows] == [True, False]
    assert result.rows[0].web_page_id == result.rows[1].web_page_id
    count = await session.execute(select(func.count()).select_from(WebPage))
    assert count.scalar_one() == 1


@pytest.mark.asyncio
async def test_default_category_only_on_first_insert(session) -> None:
    await ingest_web_pages(session, [{"url": "https://example.com/legal"}])
    page = await crud.get_web_page(session, "https://example.com/legal")
    assert page.page_category == get_settings().WEB_PAGE_DEFAULT_CATEGORY

    await ingest_web_pages(session, [{"url": "https://example.com/legal", "page_category": "Legal", "should_scrape": False}])
    page = await crud.get_web_page(session, "https://example.com/legal")
    assert page.page_category == "legal"
    assert page.should_scrape is False


@pytest.mark.parametrize(
    "wrap",
    [
        lambda pages: pages,
        lambda pages: {"pages": pages},
        lambda pages: {"db_ready_output": pages},
        lambda pages: {"candidates": [{"content": {"parts": [{"text": json.dumps(pages)}]}}]},
    ],
)
@pytest.mark.asyncio
async def test_shape_tolerance_stores_identical_rows(session, wrap) -> None:
    pages = [
        {"url": "https://shape.io/", "page_category": "company_info"},
        {"url": "https://shape.io/blog/", "page_category": "content"},
    ]
    await ingest_web_pages(session, wrap(pages))
    assert await _page_rows(session) == [
        ("https://shape.io", "shape.io", "company_info", True),
        ("https://shape.io/blog", "shape.io", "content", True),
    ]


@pytest.mark.asyncio
async def test_invalid_elements_are_skipped_and_reported(session) -> None:
    result = await ingest_web_pages(
        session,
        [{"url": "https://ok.io/a"}, {"url": "ftp://nope"}, {"page_category": "other"}, "https://not-an-object.io"],
    )
    assert len(result.rows) == 1
    assert [s.index for s in result.skipped] == [1, 2, 3]
    assert result.skipped[0].url == "ftp://nope"


@pytest.mark.asyncio
async def test_unrecognized_shape_aborts_whole_call(session) -> None:
    with pytest.raises(MalformedPayloadError) as exc:
        await ingest_web_pages(session, {"links": [{"url": "https://x.io"}]})
    assert "links" in str(exc.value)
    assert await _page_rows(session) == []


@pytest.mark.asyncio
async def test_siblings_outside_batch_are_deselected(session) -> None:
    await ingest_web_pages(session, [{"url": "https://sib.io/a"}, {"url": "https://sib.io/b"}, {"url": "https://other.io/z"}])
    result = await ingest_web_pages(session, [{"url": "https://sib.io/a"}])
    assert result.deselected_count == 1

    rows = {r[0]: r[3] for r in await _page_rows(session)}
    assert rows == {
        "https://sib.io/a": True,
        "https://sib.io/b": False,
        "https://other.io/z": True,
    }


@pytest.mark.asyncio
async def test_scrape_queue_placeholders(session) -> None:
    first = await ingest_scrape_urls(
        session,
        "queue.io",
        {"urls_to_scrape": ["https://queue.io/a/", "/b", {"url": "https://queue.io/c"}, 7]},
    )
    assert [r.was_new for r in first.rows] == [True, True, True]
    assert first.rows[1].url == "https://queue.io/b"
    assert [s.index for s in first.skipped] == [3]

    again = await ingest_scrape_urls(session, "queue.io", ["https://www.queue.io/a"])
    assert again.rows[0].was_new is False
    assert again.rows[0].id == first.rows[0].id

    placeholders = await session.execute(
        select(func.count()).select_from(ScrapedContent).where(ScrapedContent.scraped_at.is_(None))
    )
    assert placeholders.scalar_one() == 3


@pytest.mark.asyncio
async def test_unscraped_and_scraped_accessors(session, make_org) -> None:
    await make_org(identifier="org_pages", url="https://pages.io")
    await ingest_web_pages(session, {"pages": [{"url": "https://pages.io/"}, {"url": "https://pages.io/team"}]})
    await ingest_scrape_urls(session, "pages.io", ["https://pages.io/team"])

    unscraped = await get_unscraped_pages(session, "org_pages")
    assert unscraped.value["count"] == 2

    await record_scraped_content(
        session,
        "https://www.pages.io/team/",
        {"markdown": "# Team", "metadata": {"title": "Our team", "description": "People"}},
    )

    unscraped = await get_unscraped_pages(session, "org_pages")
    assert unscraped.value["urls"] == ["https://pages.io/"]
    assert unscraped.value["count"] == 1

    scraped = await get_scraped_pages(session, "org_pages")
    assert scraped.value["count"] == 1
    page = scraped.value["pages"][0]
    assert page["page_normalized_url"] == "https://pages.io/team"
    assert page["content_title"] == "Our team"
    assert page["content_markdown"] == "# Team"


@pytest.mark.asyncio
async def test_unscraped_pages_for_unknown_org_is_err(session) -> None:
    result = await get_unscraped_pages(session, "org_unknown")
    assert not result.success
    assert result.to_payload()["success"] is False


@pytest.mark.asyncio
async def test_record_scraped_content_rejects_bad_url(session) -> None:
    with pytest.raises(ValidationError):
        await record_scraped_content(session, "not a url", {"markdown": "x"})

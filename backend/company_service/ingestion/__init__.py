from company_service.ingestion.payload import extract_records, unwrap_envelopes
from company_service.ingestion.service import (
    ingest_individuals,
    ingest_relations,
    ingest_scrape_urls,
    ingest_theses,
    ingest_web_pages,
)

__all__ = [
    "extract_records",
    "unwrap_envelopes",
    "ingest_individuals",
    "ingest_relations",
    "ingest_scrape_urls",
    "ingest_theses",
    "ingest_web_pages",
]

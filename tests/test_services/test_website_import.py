"""Tests for WebsiteImportService orchestration."""

from unittest.mock import AsyncMock

import pytest

from site_import.exceptions.custom import FetchError, UrlValidationError
from site_import.schemas.crawl import CrawlBudget, CrawlResult, FetchedPage, PageRecord, StopReason
from site_import.schemas.merge import ExistingBusinessRecord, ExistingFaq, ExistingService
from site_import.schemas.suggestions import (
    ExtractedBusinessData,
    FaqSuggestion,
    ImportSuggestionBundle,
    ServiceSuggestion,
    SocialLinkSuggestion,
)
from site_import.services.crawler import WebsiteCrawler
from site_import.services.extraction import ExtractionService
from site_import.services.page_fetcher import PageFetcher
from site_import.services.website_import import WebsiteImportService

START = "https://salon.com/"


@pytest.fixture
def fetcher_mock():
    return AsyncMock(spec=PageFetcher)


@pytest.fixture
def crawler_mock():
    mock = AsyncMock(spec=WebsiteCrawler)
    mock.crawl.return_value = CrawlResult(
        start_url=START,
        pages=[PageRecord(url=START, title="Home", text="Welcome")],
        stop_reason=StopReason.queue_exhausted,
    )
    return mock


@pytest.fixture
def extraction_mock():
    mock = AsyncMock(spec=ExtractionService)
    mock.extract_import_suggestions.return_value = ImportSuggestionBundle(
        services=[ServiceSuggestion(name="Haircut", source_page_url=START)],
        pages_scanned=1,
        source_urls=[START],
    )
    mock.extract_business_data.return_value = ExtractedBusinessData(business_name="Bella Salon")
    return mock


@pytest.fixture
def service(fetcher_mock, crawler_mock, extraction_mock):
    return WebsiteImportService(
        fetcher=fetcher_mock,
        crawler=crawler_mock,
        extraction=extraction_mock,
        default_budget=CrawlBudget(max_pages=5),
    )


# --- scan ---


async def test_scan_completed(service, crawler_mock, extraction_mock):
    result = await service.scan("salon.com")

    assert result.status == "completed"
    assert result.url == START
    assert result.stop_reason == StopReason.queue_exhausted
    assert [s.name for s in result.suggestions.services] == ["Haircut"]
    assert result.suggestions.scan_duration_ms >= 0

    crawler_mock.crawl.assert_awaited_once_with(START, CrawlBudget(max_pages=5))
    extraction_mock.extract_import_suggestions.assert_awaited_once()


async def test_scan_uses_request_budget(service, crawler_mock):
    budget = CrawlBudget(max_pages=3, max_depth=1)
    await service.scan(START, budget)
    crawler_mock.crawl.assert_awaited_once_with(START, budget)


async def test_scan_invalid_url_raises(service, crawler_mock):
    with pytest.raises(UrlValidationError):
        await service.scan("javascript:alert(1)")
    crawler_mock.crawl.assert_not_called()


async def test_scan_no_pages_is_failed(service, crawler_mock, extraction_mock):
    crawler_mock.crawl.return_value = CrawlResult(start_url=START, stop_reason=StopReason.queue_exhausted)

    result = await service.scan(START)

    assert result.status == "failed"
    assert result.message == "No pages could be fetched from this website"
    assert result.suggestions is None
    extraction_mock.extract_import_suggestions.assert_not_called()


async def test_scan_unexpected_error_is_failed(service, crawler_mock):
    crawler_mock.crawl.side_effect = RuntimeError("boom")

    result = await service.scan(START)

    assert result.status == "failed"
    assert result.message == "boom"


# --- scrape ---


async def test_scrape_success(service, fetcher_mock, extraction_mock):
    fetcher_mock.fetch_webpage.return_value = FetchedPage(
        url=START,
        final_url=START,
        status_code=200,
        html="<html><body><h1>Bella Salon</h1><p>Haircuts</p></body></html>",
        title="Bella Salon",
        meta_description="Best salon",
    )

    result = await service.scrape(START)

    assert result.success is True
    assert result.status == "completed"
    assert result.page_title == "Bella Salon"
    assert result.meta_description == "Best salon"
    assert result.extracted_data.business_name == "Bella Salon"
    assert result.pages_scraped == 1

    text, url, title = extraction_mock.extract_business_data.call_args.args
    assert "Haircuts" in text
    assert url == START
    assert title == "Bella Salon"


async def test_scrape_fetch_error_is_failed(service, fetcher_mock, extraction_mock):
    fetcher_mock.fetch_webpage.side_effect = FetchError("Failed to fetch: 404 Not Found", START, 404)

    result = await service.scrape(START)

    assert result.success is False
    assert result.status == "failed"
    assert result.error == "Failed to fetch: 404 Not Found"
    extraction_mock.extract_business_data.assert_not_called()


async def test_scrape_invalid_url_raises(service):
    with pytest.raises(UrlValidationError):
        await service.scrape("ftp://salon.com")


# --- merge ---


def test_merge_builds_summary_and_provenance(service):
    suggestions = ImportSuggestionBundle(
        services=[ServiceSuggestion(name="Haircut"), ServiceSuggestion(name="Balayage")],
        faqs=[FaqSuggestion(question="Do you take walk-ins?", answer="Yes")],
        social_links=[SocialLinkSuggestion(platform="Instagram", url="https://instagram.com/bella")],
        source_urls=[START],
    )
    existing = ExistingBusinessRecord(
        services=[ExistingService(name="Haircut")],
        faqs=[ExistingFaq(question="Do you take walk-ins?", answer="No")],
    )

    response = service.merge(suggestions, existing)

    assert [s.name for s in response.summary.services.to_add] == ["Balayage"]
    assert response.summary.faqs.to_add == []
    assert response.provenance.items_added.services == 1
    assert response.provenance.items_added.faqs == 0
    assert response.provenance.items_added.social_links == 1
    assert response.provenance.source_urls == [START]


def test_merge_uses_configured_thresholds(fetcher_mock, crawler_mock, extraction_mock):
    strict = WebsiteImportService(
        fetcher_mock, crawler_mock, extraction_mock, service_threshold=1.0
    )
    suggestions = ImportSuggestionBundle(services=[ServiceSuggestion(name="Hot Stone Massage Therapy")])
    existing = ExistingBusinessRecord(services=[ExistingService(name="Hot Stone Massage")])

    response = strict.merge(suggestions, existing)

    assert len(response.summary.services.to_add) == 1

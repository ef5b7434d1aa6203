import logging
import time

from site_import.exceptions.custom import FetchError, UrlValidationError
from site_import.mappers.html_text import extract_text_from_html
from site_import.mappers.merge_engine import (
    FAQ_SIMILARITY_THRESHOLD,
    SERVICE_SIMILARITY_THRESHOLD,
    create_provenance_record,
    process_suggestions_for_merge,
)
from site_import.mappers.url_validator import validate_website_url
from site_import.schemas.crawl import CrawlBudget
from site_import.schemas.merge import ExistingBusinessRecord
from site_import.schemas.responses import ImportScanResult, MergeResponse, ScrapeResult
from site_import.schemas.suggestions import ImportSuggestionBundle
from site_import.services.crawler import WebsiteCrawler
from site_import.services.extraction import ExtractionService
from site_import.services.page_fetcher import PageFetcher

logger = logging.getLogger(__name__)


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


class WebsiteImportService:
    def __init__(
        self,
        fetcher: PageFetcher,
        crawler: WebsiteCrawler,
        extraction: ExtractionService,
        default_budget: CrawlBudget | None = None,
        service_threshold: float = SERVICE_SIMILARITY_THRESHOLD,
        faq_threshold: float = FAQ_SIMILARITY_THRESHOLD,
    ):
        self._fetcher = fetcher
        self._crawler = crawler
        self._extraction = extraction
        self._default_budget = default_budget or CrawlBudget()
        self._service_threshold = service_threshold
        self._faq_threshold = faq_threshold

    @staticmethod
    def _validated(url: str) -> str:
        validation = validate_website_url(url)
        if not validation.valid:
            raise UrlValidationError(validation.error or "Invalid URL", url)
        return validation.url

    async def scan(self, url: str, budget: CrawlBudget | None = None) -> ImportScanResult:
        """Crawl a site and extract import suggestions.

        Raises UrlValidationError for an unsafe or malformed URL. Any other
        failure is reported as a "failed" result.
        """
        start_url = self._validated(url)
        started = time.monotonic()

        try:
            crawl = await self._crawler.crawl(start_url, budget or self._default_budget)
            if not crawl.pages:
                logger.warning("Scan of %s collected no pages (%s)", start_url, crawl.stop_reason)
                return ImportScanResult(
                    status="failed",
                    url=start_url,
                    message="No pages could be fetched from this website",
                    stop_reason=crawl.stop_reason,
                )

            suggestions = await self._extraction.extract_import_suggestions(crawl.pages, start_url)
        except Exception as exc:
            logger.exception("Scan of %s failed", start_url)
            return ImportScanResult(status="failed", url=start_url, message=str(exc))

        suggestions = suggestions.model_copy(update={"scan_duration_ms": _elapsed_ms(started)})
        logger.info(
            "Scan of %s completed: %d pages, %d services, %d faqs, %d contact, "
            "%d booking links, %d social links in %dms",
            start_url, suggestions.pages_scanned, len(suggestions.services),
            len(suggestions.faqs), len(suggestions.contact),
            len(suggestions.booking_links), len(suggestions.social_links),
            suggestions.scan_duration_ms,
        )
        return ImportScanResult(
            status="completed",
            url=start_url,
            stop_reason=crawl.stop_reason,
            suggestions=suggestions,
        )

    async def scrape(self, url: str) -> ScrapeResult:
        """Single-page import: fetch, normalize, extract."""
        page_url = self._validated(url)
        started = time.monotonic()

        try:
            page = await self._fetcher.fetch_webpage(page_url)
        except FetchError as exc:
            logger.warning("Scrape of %s failed: %s", page_url, exc.message)
            return ScrapeResult(
                success=False,
                status="failed",
                url=page_url,
                error=exc.message,
                processing_time_ms=_elapsed_ms(started),
            )

        text = extract_text_from_html(page.html)
        extracted = await self._extraction.extract_business_data(text, page_url, page.title)

        return ScrapeResult(
            success=True,
            status="completed",
            url=page_url,
            page_title=page.title,
            meta_description=page.meta_description,
            extracted_data=extracted,
            processing_time_ms=_elapsed_ms(started),
            pages_scraped=1,
        )

    def merge(
        self,
        suggestions: ImportSuggestionBundle,
        existing: ExistingBusinessRecord,
    ) -> MergeResponse:
        """Dedupe suggestions against the existing record and build provenance."""
        summary = process_suggestions_for_merge(
            suggestions,
            existing,
            service_threshold=self._service_threshold,
            faq_threshold=self._faq_threshold,
        )
        provenance = create_provenance_record(
            suggestions,
            services=len(summary.services.to_add),
            faqs=len(summary.faqs.to_add),
            contact=summary.contact.filled,
            policies=len(summary.policies.to_add),
        )
        return MergeResponse(summary=summary, provenance=provenance)

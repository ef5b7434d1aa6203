import logging
import sys
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI

from site_import.config import Settings
from site_import.exceptions.custom import UrlValidationError
from site_import.exceptions.handlers import url_validation_error_handler
from site_import.jobs import JobStore
from site_import.routers.website_import import router as website_import_router
from site_import.schemas.crawl import CrawlBudget
from site_import.services.claude import ClaudeService
from site_import.services.crawler import WebsiteCrawler
from site_import.services.extraction import ExtractionService
from site_import.services.page_fetcher import PageFetcher
from site_import.services.website_import import WebsiteImportService

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = Settings()

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stdout,
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)

    async with httpx.AsyncClient(timeout=30.0) as client:
        fetcher = PageFetcher(client)

        claude: ClaudeService | None = None
        if settings.anthropic_api_key:
            claude = ClaudeService(settings.anthropic_api_key)
        else:
            logger.warning("ANTHROPIC_API_KEY not set, extraction will return fallback data only")

        app.state.website_import_service = WebsiteImportService(
            fetcher,
            WebsiteCrawler(fetcher),
            ExtractionService(claude),
            default_budget=CrawlBudget(
                max_pages=settings.crawl_max_pages,
                max_depth=settings.crawl_max_depth,
                page_timeout=settings.crawl_page_timeout,
                total_timeout=settings.crawl_total_timeout,
                inter_request_delay=settings.crawl_inter_request_delay,
            ),
            service_threshold=settings.service_similarity_threshold,
            faq_threshold=settings.faq_similarity_threshold,
        )
        app.state.job_store = JobStore()

        yield


app = FastAPI(title="Website Import", lifespan=lifespan)

app.add_exception_handler(UrlValidationError, url_validation_error_handler)

app.include_router(website_import_router)
